"""
PV history model.

Audit trail of every volume credit and debit. Not used for balances.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import MoneyType


class PvHistory(Base):
    """
    PV history entry.

    Attributes:
        event: self / propagation / settlement
        left_delta: Change applied to to_member's left volume
        right_delta: Change applied to to_member's right volume
        self_delta: Change applied to to_member's self volume
        from_member_id: Member whose purchase (or settlement) caused the change
        to_member_id: Member whose counters changed
    """

    __tablename__ = "pv_history"
    __table_args__ = (
        Index("idx_pv_history_to_member", "to_member_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    event: Mapped[str] = mapped_column(String(20), nullable=False)
    left_delta: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    right_delta: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    self_delta: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    from_member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="RESTRICT"), nullable=False
    )
    to_member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="RESTRICT"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<PvHistory(event={self.event}, from={self.from_member_id}, "
            f"to={self.to_member_id}, l={self.left_delta}, "
            f"r={self.right_delta}, s={self.self_delta})>"
        )
