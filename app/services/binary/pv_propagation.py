"""
PV propagation.

Walks from the originating member up to the root, crediting the full
volume to the leg of every ancestor the path enters through. Volume is
not divided or decayed per level.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import BinaryPlanConfig, default_plan_config
from app.models.enums import MemberSide, PvEvent
from app.repositories.member_repository import MemberRepository
from app.repositories.pv_history_repository import PvHistoryRepository
from app.utils.exceptions import (
    CorruptTreeError,
    InvalidInputError,
    MemberNotFoundError,
)


@dataclass
class PropagationResult:
    """Ancestors credited by one propagation."""

    origin_member_id: int
    volume: Decimal
    credited: list[tuple[int, MemberSide]] = field(default_factory=list)

    @property
    def hops(self) -> int:
        """Number of ancestors credited."""
        return len(self.credited)


class PvPropagationEngine:
    """Credits volume to the ancestor chain."""

    def __init__(
        self,
        session: AsyncSession,
        config: BinaryPlanConfig | None = None,
    ) -> None:
        """Initialize propagation engine."""
        self.session = session
        self.config = config or default_plan_config()
        self.member_repo = MemberRepository(session)
        self.history_repo = PvHistoryRepository(session)

    async def propagate(
        self, origin_member_id: int, volume: Decimal
    ) -> PropagationResult:
        """
        Credit volume to origin (self) and every ancestor (leg).

        Counters are changed with atomic UPDATE statements; parent links
        are immutable, so reading them needs no lock.

        Args:
            origin_member_id: Member whose purchase generated the volume
            volume: Volume to credit (positive)

        Returns:
            PropagationResult listing credited ancestors

        Raises:
            InvalidInputError: Non-positive volume
            MemberNotFoundError: Origin member does not exist
            CorruptTreeError: Cycle, broken parent link or depth ceiling hit
        """
        if volume <= 0:
            raise InvalidInputError(
                "Volume must be positive", details={"volume": str(volume)}
            )

        link = await self.member_repo.get_tree_link(origin_member_id)
        if link is None:
            raise MemberNotFoundError(
                f"Member {origin_member_id} not found",
                details={"member_id": origin_member_id},
            )

        # Pending inserts must reach the database before bulk UPDATEs
        await self.session.flush()

        result = PropagationResult(
            origin_member_id=origin_member_id, volume=volume
        )

        await self.member_repo.increment_self_volume(origin_member_id, volume)
        await self.history_repo.record(
            PvEvent.SELF,
            from_member_id=origin_member_id,
            to_member_id=origin_member_id,
            self_delta=volume,
        )

        current_id = origin_member_id
        visited: set[int] = {current_id}

        while True:
            parent_id, side = link
            if parent_id is None or side == MemberSide.NONE:
                break

            side = MemberSide(side)
            await self.member_repo.increment_side_volume(
                parent_id, side, volume
            )
            await self.history_repo.record(
                PvEvent.PROPAGATION,
                from_member_id=origin_member_id,
                to_member_id=parent_id,
                left_delta=volume if side == MemberSide.LEFT else Decimal("0"),
                right_delta=volume if side == MemberSide.RIGHT else Decimal("0"),
            )
            result.credited.append((parent_id, side))

            if (
                parent_id in visited
                or result.hops > self.config.max_tree_depth
            ):
                self._raise_corrupt(origin_member_id, parent_id, result.hops)

            visited.add(parent_id)
            current_id = parent_id
            link = await self.member_repo.get_tree_link(current_id)
            if link is None:
                self._raise_corrupt(origin_member_id, current_id, result.hops)

        await self.session.flush()

        logger.bind(
            origin_member_id=origin_member_id,
            volume=str(volume),
            hops=result.hops,
        ).debug("Volume propagated")
        return result

    @staticmethod
    def _raise_corrupt(origin_member_id: int, member_id: int, hops: int) -> None:
        logger.bind(
            origin_member_id=origin_member_id, member_id=member_id, hops=hops
        ).critical("Corrupt tree detected during volume propagation")
        raise CorruptTreeError(
            f"Ancestor walk from {origin_member_id} did not reach the root",
            details={"origin_member_id": origin_member_id, "member_id": member_id},
        )
