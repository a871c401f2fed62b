"""
Exception handling utilities.

Defines the platform error hierarchy. Every error carries a stable code
used by the HTTP boundary and a human-readable message.
"""

from typing import Any


class PlatformError(Exception):
    """Base class for expected, user-visible failures."""

    code = "PLATFORM_ERROR"

    def __init__(
        self, message: str, details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize error for API responses."""
        payload: dict[str, Any] = {
            "error": self.message,
            "error_code": self.code,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(PlatformError):
    """Requested entity does not exist."""

    code = "NOT_FOUND"


class InvalidSponsorError(NotFoundError):
    """Sponsor for placement or registration does not exist."""

    code = "INVALID_SPONSOR"


class MemberNotFoundError(NotFoundError):
    """Member does not exist."""

    code = "MEMBER_NOT_FOUND"


class PackageNotFoundError(NotFoundError):
    """Package does not exist or is disabled."""

    code = "PACKAGE_NOT_FOUND"


class RecipientNotFoundError(NotFoundError):
    """Transfer recipient wallet is not registered."""

    code = "RECIPIENT_NOT_FOUND"


class InvalidInputError(PlatformError):
    """Malformed identifier, non-positive amount, invalid side, ..."""

    code = "INVALID_INPUT"


class ConflictError(PlatformError):
    """Duplicate unique identifier (wallet, tx hash, tree slot)."""

    code = "CONFLICT"


class PriceUnavailableError(PlatformError):
    """External token price lookup failed or returned zero."""

    code = "PRICE_UNAVAILABLE"


class InsufficientBalanceError(PlatformError):
    """Requested outflow exceeds the derived balance."""

    code = "INSUFFICIENT_BALANCE"


class LimitExceededError(PlatformError):
    """Rolling withdrawal cap would be exceeded."""

    code = "LIMIT_EXCEEDED"


class CorruptTreeError(PlatformError):
    """
    Cycle or broken parent link detected while walking the tree.

    Fatal: never swallowed, always aborts the surrounding transaction.
    """

    code = "CORRUPT_TREE"


class LedgerImmutableError(PlatformError):
    """Attempt to modify an existing ledger entry."""

    code = "LEDGER_IMMUTABLE"

