"""
Member model.

Represents a registered member and its position in the binary tree.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.enums import MemberSide
from app.models.types import MoneyType


if TYPE_CHECKING:
    from app.models.investment import Investment
    from app.models.wallet_transaction import WalletTransaction


class Member(Base):
    """
    Member entity.

    Two independent relationships hang off every member:
    - sponsor: who referred the member (marketing, referral bonus)
    - parent/side: where the member sits in the binary tree (volume path)

    parent_id and side are written once at placement and never change.
    left_volume/right_volume hold unmatched leg volume; they are only
    incremented by volume propagation and decremented by settlement.
    """

    __tablename__ = "members"
    __table_args__ = (
        UniqueConstraint(
            "parent_id", "side", name="uq_members_parent_side"
        ),
        UniqueConstraint("is_root", name="uq_members_single_root"),
        CheckConstraint(
            "side IN ('left', 'right', 'none')",
            name="check_member_side_valid",
        ),
        CheckConstraint(
            "left_volume >= 0", name="check_member_left_volume_non_negative"
        ),
        CheckConstraint(
            "right_volume >= 0",
            name="check_member_right_volume_non_negative",
        ),
        CheckConstraint(
            "self_volume >= 0", name="check_member_self_volume_non_negative"
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Marketing relationship
    sponsor_id: Mapped[int | None] = mapped_column(
        ForeignKey("members.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )

    # Tree relationship
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("members.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    side: Mapped[str] = mapped_column(
        String(10), nullable=False, default=MemberSide.NONE
    )
    # True on the tree root only, NULL elsewhere: the unique constraint
    # admits a single root
    is_root: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    # Volume counters
    left_volume: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    right_volume: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    self_volume: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Identity
    referral_code: Mapped[str] = mapped_column(
        String(20), unique=True, index=True, nullable=False
    )
    profile_id: Mapped[str | None] = mapped_column(
        String(20), unique=True, nullable=True
    )
    wallet_address: Mapped[str] = mapped_column(
        String(42), unique=True, index=True, nullable=False
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Soft deactivation (members are never deleted)
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    sponsor: Mapped[Optional["Member"]] = relationship(
        "Member",
        remote_side=[id],
        foreign_keys=[sponsor_id],
    )
    parent: Mapped[Optional["Member"]] = relationship(
        "Member",
        remote_side=[id],
        foreign_keys=[parent_id],
    )
    transactions: Mapped[list["WalletTransaction"]] = relationship(
        "WalletTransaction",
        back_populates="member",
    )
    investments: Mapped[list["Investment"]] = relationship(
        "Investment",
        back_populates="member",
    )

    @property
    def full_name(self) -> str:
        """First and last name."""
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Member(id={self.id}, parent_id={self.parent_id}, "
            f"side={self.side}, l={self.left_volume}, r={self.right_volume})>"
        )
