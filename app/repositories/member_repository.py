"""
Member repository.

Data access layer for Member model and binary tree queries.
"""

from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import MemberSide
from app.models.member import Member
from app.repositories.base import BaseRepository


_VOLUME_COLUMNS = {
    MemberSide.LEFT: "left_volume",
    MemberSide.RIGHT: "right_volume",
}


class MemberRepository(BaseRepository[Member]):
    """Member repository with tree queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize member repository."""
        super().__init__(Member, session)

    async def get_by_wallet_address(
        self, wallet_address: str
    ) -> Member | None:
        """
        Get member by wallet address (case-insensitive).

        Args:
            wallet_address: Wallet address

        Returns:
            Member or None
        """
        stmt = select(Member).where(
            func.lower(Member.wallet_address) == wallet_address.lower()
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_referral_code(
        self, referral_code: str
    ) -> Member | None:
        """
        Get member by referral code.

        Args:
            referral_code: Referral code

        Returns:
            Member or None
        """
        return await self.get_by(referral_code=referral_code.upper())

    async def get_root(self) -> Member | None:
        """Get the tree root (member without parent)."""
        stmt = (
            select(Member)
            .where(Member.parent_id.is_(None))
            .order_by(Member.id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_child(
        self, parent_id: int, side: MemberSide, for_update: bool = False
    ) -> Member | None:
        """
        Get the member occupying a child slot.

        Args:
            parent_id: Tree parent ID
            side: LEFT or RIGHT slot
            for_update: Lock the child row

        Returns:
            Child member or None if the slot is empty
        """
        stmt = select(Member).where(
            Member.parent_id == parent_id,
            Member.side == side,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_children(self, parent_ids: list[int]) -> list[Member]:
        """
        Get direct tree children of several parents in one query.

        Args:
            parent_ids: Tree parent IDs

        Returns:
            Children ordered by parent and side
        """
        if not parent_ids:
            return []
        stmt = (
            select(Member)
            .where(Member.parent_id.in_(parent_ids))
            .order_by(Member.parent_id, Member.side)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_sponsored(self, sponsor_id: int) -> int:
        """
        Count members directly sponsored by a member.

        Args:
            sponsor_id: Sponsor member ID

        Returns:
            Number of direct referrals
        """
        return await self.count(sponsor_id=sponsor_id)

    async def increment_side_volume(
        self, member_id: int, side: MemberSide, amount: Decimal
    ) -> None:
        """
        Atomically add volume to one leg counter.

        Uses UPDATE ... SET col = col + :amount so concurrent
        propagations never lose increments.

        Args:
            member_id: Member whose counter changes
            side: LEFT or RIGHT leg
            amount: Volume to add
        """
        column_name = _VOLUME_COLUMNS[MemberSide(side)]
        column = getattr(Member, column_name)
        stmt = (
            update(Member)
            .where(Member.id == member_id)
            .values(**{column_name: column + amount})
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def increment_self_volume(
        self, member_id: int, amount: Decimal
    ) -> None:
        """Atomically add to a member's own volume counter."""
        stmt = (
            update(Member)
            .where(Member.id == member_id)
            .values(self_volume=Member.self_volume + amount)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def deduct_matched_volume(
        self, member_id: int, matched: Decimal
    ) -> None:
        """
        Atomically subtract matched volume from both legs.

        Args:
            member_id: Settled member
            matched: Volume removed from each leg
        """
        stmt = (
            update(Member)
            .where(Member.id == member_id)
            .values(
                left_volume=Member.left_volume - matched,
                right_volume=Member.right_volume - matched,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def get_tree_link(
        self, member_id: int
    ) -> tuple[int | None, str] | None:
        """
        Read only the tree link of a member.

        Args:
            member_id: Member ID

        Returns:
            (parent_id, side) or None if the member does not exist
        """
        stmt = select(Member.parent_id, Member.side).where(
            Member.id == member_id
        )
        result = await self.session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return row.parent_id, row.side
