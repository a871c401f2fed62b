"""
Base service class.

Provides common functionality for all service classes including session management,
logging, and helper decorators.
"""

import functools
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import BinaryPlanConfig, default_plan_config
from app.utils.exceptions import ConflictError, PlatformError


# Type variable for generic decorator return types
T = TypeVar("T")

INTERNAL_ERROR_CODE = "INTERNAL_ERROR"


@dataclass
class ServiceResult:
    """
    Standard service result container.

    Used to return structured results from service methods.
    """
    success: bool
    data: Any = None
    error: str | None = None
    error_code: str | None = None
    details: dict[str, Any] | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "ServiceResult":
        """Successful result."""
        return cls(success=True, data=data)

    @classmethod
    def from_error(cls, error: Exception) -> "ServiceResult":
        """
        Failed result built from an exception.

        Platform errors keep their code and message; anything else is
        reported as a generic internal failure.
        """
        if isinstance(error, PlatformError):
            return cls(
                success=False,
                error=error.message,
                error_code=error.code,
                details=error.details or None,
            )
        return cls(
            success=False,
            error="Internal error",
            error_code=INTERNAL_ERROR_CODE,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the HTTP boundary."""
        payload: dict[str, Any] = {"success": self.success}
        if self.success:
            payload["data"] = self.data
        else:
            payload["error"] = self.error
            payload["error_code"] = self.error_code
            if self.details:
                payload["details"] = self.details
        return payload


class BaseService:
    """
    Base service class.

    Provides common functionality for all service classes:
    - Session management
    - Logging with bound service context
    - Plan configuration
    """

    def __init__(
        self,
        session: AsyncSession,
        config: BinaryPlanConfig | None = None,
    ) -> None:
        """
        Initialize base service.

        Args:
            session: Async database session
            config: Plan rates and limits (defaults to settings)
        """
        self.session = session
        self.config = config or default_plan_config()
        self.logger = logger.bind(service=self.__class__.__name__)

    async def commit(self) -> None:
        """Commit current transaction."""
        await self.session.commit()

    async def rollback(self) -> None:
        """Rollback current transaction."""
        await self.session.rollback()


def transaction(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator to wrap method in transaction with automatic commit/rollback.

    Commits on success, rolls back on exception. Unique constraint
    violations surface as ConflictError.

    Usage:
        @transaction
        async def my_service_method(self, ...):
            # Your code here
            pass

    Args:
        func: Async method to wrap

    Returns:
        Wrapped async method
    """
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        try:
            result = await func(self, *args, **kwargs)
            await self.commit()
            return result
        except IntegrityError as e:
            await self.rollback()
            self.logger.bind(function=func.__name__).warning(
                "Integrity violation in {}: {}", func.__name__, e.orig
            )
            raise ConflictError(
                "Duplicate or conflicting record",
                details={"operation": func.__name__},
            ) from e
        except PlatformError as e:
            await self.rollback()
            self.logger.bind(function=func.__name__, error=e.message).info(
                f"Transaction rolled back in {func.__name__}: {e.code}"
            )
            raise
        except Exception as e:
            await self.rollback()
            self.logger.bind(function=func.__name__, error=str(e)).opt(
                exception=e
            ).error(f"Transaction failed in {func.__name__}")
            raise

    return wrapper


def log_operation(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator to log method entry/exit with timing.

    Usage:
        @log_operation
        async def my_service_method(self, member_id: int):
            # Your code here
            pass

    Args:
        func: Async method to wrap

    Returns:
        Wrapped async method
    """
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        start_time = time.time()

        self.logger.bind(
            function=func.__name__,
            args_count=len(args),
            kwargs_keys=list(kwargs.keys()),
        ).debug(f"Starting {func.__name__}")

        try:
            result = await func(self, *args, **kwargs)
        except Exception as e:
            duration = time.time() - start_time
            self.logger.bind(
                function=func.__name__,
                duration_seconds=round(duration, 3),
                error=str(e),
                success=False,
            ).warning(f"Failed {func.__name__}")
            raise

        duration = time.time() - start_time
        self.logger.bind(
            function=func.__name__,
            duration_seconds=round(duration, 3),
            success=True,
        ).info(f"Completed {func.__name__}")
        return result

    return wrapper
