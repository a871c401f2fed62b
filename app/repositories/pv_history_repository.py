"""
PV history repository.

Append-only audit trail of volume changes.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import PvEvent
from app.models.pv_history import PvHistory
from app.repositories.base import BaseRepository


ZERO = Decimal("0")


class PvHistoryRepository(BaseRepository[PvHistory]):
    """PV history repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize PV history repository."""
        super().__init__(PvHistory, session)

    async def record(
        self,
        event: PvEvent,
        from_member_id: int,
        to_member_id: int,
        left_delta: Decimal = ZERO,
        right_delta: Decimal = ZERO,
        self_delta: Decimal = ZERO,
    ) -> None:
        """
        Write one audit row.

        The row is added to the session and flushed with the surrounding
        unit of work; no refresh round-trip.
        """
        self.session.add(
            PvHistory(
                event=event,
                from_member_id=from_member_id,
                to_member_id=to_member_id,
                left_delta=left_delta,
                right_delta=right_delta,
                self_delta=self_delta,
            )
        )

    async def get_for_member(self, to_member_id: int) -> list[PvHistory]:
        """Get audit rows whose counters belong to a member, oldest first."""
        stmt = (
            select(PvHistory)
            .where(PvHistory.to_member_id == to_member_id)
            .order_by(PvHistory.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
