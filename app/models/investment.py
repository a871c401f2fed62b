"""
Investment model.

Represents a package purchase by a member.
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
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.enums import InvestmentStatus
from app.models.types import MoneyType, PriceType, UsdType


if TYPE_CHECKING:
    from app.models.member import Member
    from app.models.package import Package


class Investment(Base):
    """
    Investment entity.

    invested_amount is the token cost of the package, converted from its
    USD price at the token price observed at purchase time.
    """

    __tablename__ = "investments"
    __table_args__ = (
        CheckConstraint(
            "invested_amount > 0",
            name="check_investment_amount_positive",
        ),
        CheckConstraint(
            "status IN ('active', 'completed')",
            name="check_investment_status_valid",
        ),
        Index("idx_investment_member_status", "member_id", "status"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    package_id: Mapped[int] = mapped_column(
        ForeignKey("packages.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # Amounts at purchase time
    invested_amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )  # tokens
    usd_amount: Mapped[Decimal] = mapped_column(
        UsdType, nullable=False
    )
    token_price_usd: Mapped[Decimal] = mapped_column(
        PriceType, nullable=False
    )

    status: Mapped[str] = mapped_column(
        String(20), default=InvestmentStatus.ACTIVE, nullable=False
    )
    detail: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Timestamps
    purchase_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    next_yield_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    member: Mapped["Member"] = relationship(
        "Member", back_populates="investments"
    )
    package: Mapped["Package"] = relationship("Package")

    @property
    def is_active(self) -> bool:
        """True while the investment earns."""
        return self.status == InvestmentStatus.ACTIVE

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Investment(id={self.id}, member_id={self.member_id}, "
            f"package_id={self.package_id}, amount={self.invested_amount}, "
            f"status={self.status})>"
        )
