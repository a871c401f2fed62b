"""
Wallet transaction model.

Append-only ledger of every balance-affecting event. Balance is never
stored; it is derived by aggregating APPROVED rows.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.config.business_constants import SYSTEM_ACTOR
from app.models.base import Base
from app.models.enums import ApprovalStatus
from app.models.types import MoneyType
from app.utils.exceptions import LedgerImmutableError


if TYPE_CHECKING:
    from app.models.member import Member


class WalletTransaction(Base):
    """
    Ledger entry.

    Exactly one of in_amount/out_amount is meaningfully non-zero for a
    given type; both columns are always present.
    """

    __tablename__ = "wallet_transactions"
    __table_args__ = (
        CheckConstraint(
            "in_amount >= 0", name="check_wallet_tx_in_non_negative"
        ),
        CheckConstraint(
            "out_amount >= 0", name="check_wallet_tx_out_non_negative"
        ),
        UniqueConstraint(
            "type", "reference", name="uq_wallet_tx_type_reference"
        ),
        Index("idx_wallet_tx_member_type", "member_id", "type"),
        Index("idx_wallet_tx_member_created", "member_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(40), nullable=False)
    in_amount: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    out_amount: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    approval_status: Mapped[str] = mapped_column(
        String(20), default=ApprovalStatus.APPROVED, nullable=False, index=True
    )
    detail: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Blockchain tx hash for deposits/withdrawals (duplicate guard)
    reference: Mapped[str | None] = mapped_column(String(80), nullable=True)

    created_by: Mapped[str] = mapped_column(
        String(50), default=SYSTEM_ACTOR, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    member: Mapped["Member"] = relationship(
        "Member", back_populates="transactions"
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<WalletTransaction(id={self.id}, member_id={self.member_id}, "
            f"type={self.type}, in={self.in_amount}, out={self.out_amount}, "
            f"status={self.approval_status})>"
        )


@event.listens_for(WalletTransaction, "before_update")
def _reject_ledger_update(mapper, connection, target: WalletTransaction) -> None:
    """Ledger rows are immutable; corrections are new entries."""
    raise LedgerImmutableError(
        f"Ledger entry {target.id} cannot be modified"
    )
