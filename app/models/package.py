"""
Package model.

Investment packages offered to members. Read-only reference data for
the purchase and earnings cap engines.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import PercentType, UsdType


class Package(Base):
    """Package entity."""

    __tablename__ = "packages"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    percent_yield: Mapped[Decimal] = mapped_column(
        PercentType, nullable=False
    )
    period_days: Mapped[int] = mapped_column(Integer, nullable=False)
    usd_amount: Mapped[Decimal] = mapped_column(UsdType, nullable=False)
    is_enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    display_order: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Package(id={self.id}, name={self.name}, "
            f"usd_amount={self.usd_amount}, enabled={self.is_enabled})>"
        )
