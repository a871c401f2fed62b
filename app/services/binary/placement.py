"""
Binary tree placement.

Finds where a new member attaches under a sponsor. The descent follows a
single-side chain: starting at the sponsor it keeps moving to the child on
the requested side until that slot is empty. Other subtrees are never
searched, so a deep requested leg always grows at its bottom.
"""

from dataclasses import dataclass

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import BinaryPlanConfig, default_plan_config
from app.models.enums import MemberSide
from app.repositories.member_repository import MemberRepository
from app.utils.exceptions import (
    CorruptTreeError,
    InvalidInputError,
    InvalidSponsorError,
)


@dataclass(frozen=True)
class Placement:
    """Resolved attachment point for a new member."""

    parent_id: int
    side: MemberSide
    depth: int  # Hops below the sponsor (0 = directly under sponsor)


class PlacementEngine:
    """Computes tree attachment points."""

    def __init__(
        self,
        session: AsyncSession,
        config: BinaryPlanConfig | None = None,
    ) -> None:
        """Initialize placement engine."""
        self.session = session
        self.config = config or default_plan_config()
        self.member_repo = MemberRepository(session)

    async def place(
        self,
        sponsor_id: int,
        requested_side: MemberSide | None = None,
    ) -> Placement:
        """
        Find the deepest member of the requested-side chain below sponsor.

        The sponsor and the terminal parent are locked FOR UPDATE. The
        empty-slot check is repeated after locking the candidate, so two
        concurrent registrations cannot pick the same slot; the
        (parent_id, side) unique constraint backs this up.

        Args:
            sponsor_id: Sponsor member ID (must exist)
            requested_side: LEFT or RIGHT (None means LEFT)

        Returns:
            Placement with parent ID and side

        Raises:
            InvalidSponsorError: Sponsor does not exist
            InvalidInputError: Side is NONE
            CorruptTreeError: Descent exceeded the depth ceiling or looped
        """
        side = MemberSide(requested_side or MemberSide.LEFT)
        if side == MemberSide.NONE:
            raise InvalidInputError(
                'side must be "left" or "right"',
                details={"side": str(requested_side)},
            )

        sponsor = await self.member_repo.get_for_update(sponsor_id)
        if sponsor is None:
            raise InvalidSponsorError(
                f"Sponsor {sponsor_id} not found",
                details={"sponsor_id": sponsor_id},
            )

        current_id = sponsor.id
        visited: set[int] = {current_id}
        depth = 0

        while True:
            child = await self.member_repo.get_child(current_id, side)

            if child is None:
                # Lock the candidate parent and re-check its slot
                if current_id != sponsor.id:
                    await self.member_repo.get_for_update(current_id)
                child = await self.member_repo.get_child(
                    current_id, side, for_update=True
                )
                if child is None:
                    logger.bind(
                        sponsor_id=sponsor_id,
                        parent_id=current_id,
                        side=str(side),
                        depth=depth,
                    ).debug("Placement resolved")
                    return Placement(
                        parent_id=current_id, side=side, depth=depth
                    )

            depth += 1
            if depth > self.config.max_tree_depth or child.id in visited:
                logger.bind(
                    sponsor_id=sponsor_id, member_id=child.id, depth=depth
                ).critical("Corrupt tree detected during placement")
                raise CorruptTreeError(
                    f"Placement descent from {sponsor_id} did not terminate",
                    details={"sponsor_id": sponsor_id, "member_id": child.id},
                )

            visited.add(child.id)
            current_id = child.id
