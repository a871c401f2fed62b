"""
HTTP middlewares.

Maps platform errors to structured JSON responses and resolves the caller
identity supplied by the upstream authenticating gateway.
"""

import json
import secrets

from aiohttp import web
from loguru import logger

from app.services.base_service import ServiceResult
from app.utils.exceptions import (
    ConflictError,
    CorruptTreeError,
    InsufficientBalanceError,
    InvalidInputError,
    LimitExceededError,
    NotFoundError,
    PlatformError,
    PriceUnavailableError,
)


MEMBER_ID_HEADER = "X-Member-Id"
ADMIN_TOKEN_HEADER = "X-Admin-Token"

# Checked in order; first matching base class wins
ERROR_STATUS: tuple[tuple[type[PlatformError], int], ...] = (
    (NotFoundError, 404),
    (InvalidInputError, 400),
    (ConflictError, 409),
    (PriceUnavailableError, 503),
    (InsufficientBalanceError, 422),
    (LimitExceededError, 422),
    (CorruptTreeError, 500),
)


def status_for(error: PlatformError) -> int:
    """HTTP status for a platform error."""
    for error_class, status in ERROR_STATUS:
        if isinstance(error, error_class):
            return status
    return 500


def error_response(error: Exception) -> web.Response:
    """JSON error response in the standard result shape."""
    result = ServiceResult.from_error(error)
    status = status_for(error) if isinstance(error, PlatformError) else 500
    return web.json_response(result.to_dict(), status=status)


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Convert exceptions raised by handlers into JSON responses."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except CorruptTreeError as e:
        logger.bind(details=e.details).critical(
            "Corrupt tree on {} {}: {}", request.method, request.path, e.message
        )
        return error_response(e)
    except PlatformError as e:
        logger.bind(error=e.message).info(
            "{} {} failed: {}", request.method, request.path, e.code
        )
        return error_response(e)
    except Exception as e:
        logger.exception(
            "Unhandled error on {} {}: {}", request.method, request.path, e
        )
        return error_response(e)


def get_member_id(request: web.Request) -> int:
    """
    Caller member id from the gateway header.

    Raises:
        web.HTTPUnauthorized: Header missing or malformed
    """
    raw = request.headers.get(MEMBER_ID_HEADER, "").strip()
    if not raw.isdigit() or int(raw) <= 0:
        raise web.HTTPUnauthorized(
            text=json.dumps(
                ServiceResult(
                    success=False,
                    error="Authenticated member id required",
                    error_code="UNAUTHORIZED",
                ).to_dict()
            ),
            content_type="application/json",
        )
    return int(raw)


def require_admin(request: web.Request, admin_token: str | None) -> None:
    """
    Check the admin token header.

    Raises:
        web.HTTPForbidden: Admin API disabled or token mismatch
    """
    supplied = request.headers.get(ADMIN_TOKEN_HEADER, "")
    if not admin_token or not secrets.compare_digest(supplied, admin_token):
        logger.warning(f"Rejected admin request to {request.path}")
        raise web.HTTPForbidden(reason="Admin token required")
