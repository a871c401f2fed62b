"""
Model enumerations.

Values are stored as plain strings; StrEnum members compare equal to them.
"""

from enum import StrEnum


class MemberSide(StrEnum):
    """Child slot a member occupies under its tree parent."""

    LEFT = "left"
    RIGHT = "right"
    NONE = "none"  # Root member only


class TransactionType(StrEnum):
    """Ledger entry types."""

    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    REFERRAL_BONUS = "referral_bonus"
    PAIRING_BONUS = "pairing_bonus"
    YIELD_BONUS = "yield_bonus"
    EARNINGS_CAP_ADJUSTMENT = "earnings_cap_adjustment"
    INVEST = "invest"


# Entry types counted as "earned" on the wallet summary
EARNING_TRANSACTION_TYPES = (
    TransactionType.YIELD_BONUS,
    TransactionType.PAIRING_BONUS,
    TransactionType.REFERRAL_BONUS,
)


class ApprovalStatus(StrEnum):
    """Ledger entry approval status. Only APPROVED rows affect balance."""

    APPROVED = "approved"
    PENDING = "pending"
    REJECTED = "rejected"


class InvestmentStatus(StrEnum):
    """Investment lifecycle. COMPLETED never reverts to ACTIVE."""

    ACTIVE = "active"
    COMPLETED = "completed"


class PvEvent(StrEnum):
    """Kind of volume change recorded in PV history."""

    SELF = "self"  # Origin member's own purchase
    PROPAGATION = "propagation"  # Credit to an ancestor leg
    SETTLEMENT = "settlement"  # Matched volume deducted
