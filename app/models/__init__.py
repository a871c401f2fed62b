"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from app.models.base import Base
from app.models.enums import (
    ApprovalStatus,
    InvestmentStatus,
    MemberSide,
    PvEvent,
    TransactionType,
)
from app.models.investment import Investment
from app.models.member import Member
from app.models.package import Package
from app.models.pv_history import PvHistory
from app.models.wallet_transaction import WalletTransaction


__all__ = [
    "Base",
    "ApprovalStatus",
    "InvestmentStatus",
    "MemberSide",
    "PvEvent",
    "TransactionType",
    "Investment",
    "Member",
    "Package",
    "PvHistory",
    "WalletTransaction",
]
