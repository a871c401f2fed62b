"""
Investment repository.

Data access layer for Investment model.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import InvestmentStatus
from app.models.investment import Investment
from app.models.package import Package
from app.repositories.base import BaseRepository


# Investments that count towards the earnings cap base
CAP_BASE_STATUSES = (InvestmentStatus.ACTIVE, InvestmentStatus.COMPLETED)


class InvestmentRepository(BaseRepository[Investment]):
    """Investment repository with aggregate queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize investment repository."""
        super().__init__(Investment, session)

    async def get_package_usd_total(
        self,
        member_id: int,
        statuses: tuple[InvestmentStatus, ...] = CAP_BASE_STATUSES,
    ) -> Decimal:
        """
        Sum package USD prices of a member's investments.

        Uses the current package price, joined through package_id.

        Args:
            member_id: Member ID
            statuses: Investment statuses to include

        Returns:
            Total USD amount
        """
        stmt = (
            select(func.coalesce(func.sum(Package.usd_amount), 0))
            .select_from(Investment)
            .join(Package, Package.id == Investment.package_id)
            .where(
                Investment.member_id == member_id,
                Investment.status.in_(statuses),
            )
        )
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))

    async def get_invested_tokens_total(
        self,
        member_id: int,
        statuses: tuple[InvestmentStatus, ...] = (InvestmentStatus.ACTIVE,),
    ) -> Decimal:
        """
        Sum token amounts of a member's investments.

        Args:
            member_id: Member ID
            statuses: Investment statuses to include

        Returns:
            Total invested tokens
        """
        stmt = select(
            func.coalesce(func.sum(Investment.invested_amount), 0)
        ).where(
            Investment.member_id == member_id,
            Investment.status.in_(statuses),
        )
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))

    async def get_member_ids_with_investments(
        self,
        statuses: tuple[InvestmentStatus, ...] = CAP_BASE_STATUSES,
    ) -> list[int]:
        """
        Get IDs of members having at least one investment.

        Args:
            statuses: Investment statuses to include

        Returns:
            Sorted member IDs
        """
        stmt = (
            select(Investment.member_id)
            .where(Investment.status.in_(statuses))
            .distinct()
            .order_by(Investment.member_id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def complete_active(
        self, member_id: int, completed_at: datetime, detail: str | None = None
    ) -> int:
        """
        Transition all ACTIVE investments of a member to COMPLETED.

        COMPLETED rows are never touched, so the transition is one-way.

        Args:
            member_id: Member ID
            completed_at: Completion timestamp
            detail: Reason stored on each investment

        Returns:
            Number of investments completed
        """
        values: dict = {
            "status": InvestmentStatus.COMPLETED,
            "completed_at": completed_at,
        }
        if detail:
            values["detail"] = detail
        stmt = (
            update(Investment)
            .where(
                Investment.member_id == member_id,
                Investment.status == InvestmentStatus.ACTIVE,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def get_purchases_since(
        self, since: datetime
    ) -> list[tuple[datetime, Decimal]]:
        """
        Purchase dates and USD amounts of investments made since a moment.

        Every status is included: the figures describe sales, not the
        current state of the investments.

        Args:
            since: Inclusive lower bound on purchase_date

        Returns:
            (purchase_date, usd_amount) pairs, oldest first
        """
        stmt = (
            select(Investment.purchase_date, Investment.usd_amount)
            .where(Investment.purchase_date >= since)
            .order_by(Investment.purchase_date)
        )
        result = await self.session.execute(stmt)
        return [(row[0], Decimal(str(row[1]))) for row in result.all()]
