"""
Member service.

Registration (validation, sponsor resolution, tree placement) and the
team view.
"""

import secrets
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import (
    BinaryPlanConfig,
    PROFILE_ID_PREFIX,
    PROFILE_ID_WIDTH,
    REFERRAL_CODE_ALPHABET,
    REFERRAL_CODE_LENGTH,
)
from app.models.enums import MemberSide
from app.models.member import Member
from app.repositories.member_repository import MemberRepository
from app.services.base_service import BaseService, log_operation, transaction
from app.services.binary import PlacementEngine
from app.utils.exceptions import (
    ConflictError,
    InvalidInputError,
    InvalidSponsorError,
    MemberNotFoundError,
)
from app.validators import (
    normalize_wallet_address,
    validate_name,
    validate_side,
)


REFERRAL_CODE_ATTEMPTS = 10


def generate_referral_code() -> str:
    """Random referral code, e.g. 'K3ZQ8M1A'."""
    return "".join(
        secrets.choice(REFERRAL_CODE_ALPHABET)
        for _ in range(REFERRAL_CODE_LENGTH)
    )


def format_profile_id(member_id: int) -> str:
    """Profile id derived from member id: 7 -> 'D00007'."""
    return f"{PROFILE_ID_PREFIX}{member_id:0{PROFILE_ID_WIDTH}d}"


def _node(member: Member) -> dict[str, Any]:
    return {
        "member_id": member.id,
        "first_name": member.first_name,
        "self_volume": str(member.self_volume),
        "left_volume": str(member.left_volume),
        "right_volume": str(member.right_volume),
    }


class MemberService(BaseService):
    """Member registration and team queries."""

    def __init__(
        self,
        session: AsyncSession,
        config: BinaryPlanConfig | None = None,
    ) -> None:
        """Initialize member service."""
        super().__init__(session, config)
        self.member_repo = MemberRepository(session)
        self.placement_engine = PlacementEngine(session, self.config)

    async def _resolve_sponsor(self, sponsor: str | int | None) -> Member | None:
        """
        Find sponsor by referral code or numeric id.

        No sponsor given means the root member (None for an empty tree).
        """
        if sponsor is None or (isinstance(sponsor, str) and not sponsor.strip()):
            return await self.member_repo.get_root()

        found: Member | None
        if isinstance(sponsor, int) or str(sponsor).strip().isdigit():
            found = await self.member_repo.get_by_id(int(sponsor))
        else:
            found = await self.member_repo.get_by_referral_code(
                str(sponsor).strip()
            )

        if found is None or not found.is_active:
            raise InvalidSponsorError(
                "Sponsor not found", details={"sponsor": str(sponsor)}
            )
        return found

    async def _unique_referral_code(self) -> str:
        for _ in range(REFERRAL_CODE_ATTEMPTS):
            code = generate_referral_code()
            if not await self.member_repo.exists(referral_code=code):
                return code
        raise ConflictError("Could not allocate a unique referral code")

    @log_operation
    @transaction
    async def register_member(
        self,
        first_name: str,
        last_name: str,
        wallet_address: str,
        sponsor: str | int | None = None,
        side: str | None = None,
    ) -> dict[str, Any]:
        """
        Register a member and place it in the binary tree.

        Args:
            first_name: First name
            last_name: Last name
            wallet_address: EVM wallet address (unique)
            sponsor: Sponsor referral code or member id
            side: Requested leg ("left"/"right", default left)

        Returns:
            Registration data (ids, codes, tree position)

        Raises:
            InvalidInputError: Bad name, address or side
            ConflictError: Wallet already registered
            InvalidSponsorError: Sponsor given but unknown
        """
        for value, field in ((first_name, "first_name"), (last_name, "last_name")):
            is_valid, error = validate_name(value, field)
            if not is_valid:
                raise InvalidInputError(error, details={"field": field})

        try:
            wallet = normalize_wallet_address(wallet_address)
        except ValueError as e:
            raise InvalidInputError(
                f"Invalid wallet address: {e}",
                details={"field": "wallet_address"},
            ) from e

        is_valid, requested_side, error = validate_side(side)
        if not is_valid:
            raise InvalidInputError(error, details={"field": "side"})

        if await self.member_repo.get_by_wallet_address(wallet):
            raise ConflictError(
                "This wallet address is already registered",
                details={"wallet_address": wallet},
            )

        sponsor_member = await self._resolve_sponsor(sponsor)

        if sponsor_member is None:
            # Empty tree: first member becomes the root
            parent_id, placed_side, sponsor_id = None, MemberSide.NONE, None
        else:
            placement = await self.placement_engine.place(
                sponsor_member.id, requested_side
            )
            parent_id = placement.parent_id
            placed_side = placement.side
            sponsor_id = sponsor_member.id

        member = await self.member_repo.create(
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            wallet_address=wallet,
            referral_code=await self._unique_referral_code(),
            sponsor_id=sponsor_id,
            parent_id=parent_id,
            side=placed_side,
            is_root=True if sponsor_member is None else None,
        )
        member.profile_id = format_profile_id(member.id)
        await self.session.flush()

        self.logger.bind(
            member_id=member.id,
            sponsor_id=sponsor_id,
            parent_id=parent_id,
            side=str(placed_side),
        ).info(f"Member {member.id} registered")

        return {
            "member_id": member.id,
            "profile_id": member.profile_id,
            "referral_code": member.referral_code,
            "first_name": member.first_name,
            "last_name": member.last_name,
            "wallet_address": member.wallet_address,
            "sponsor_id": sponsor_id,
            "parent_id": parent_id,
            "side": str(placed_side),
        }

    async def get_team_tree(
        self, member_id: int, depth: int | None = None
    ) -> dict[str, Any]:
        """
        Team view: member, sponsor, upline, direct children and subtree.

        The subtree is loaded level by level (one query per level).

        Args:
            member_id: Viewing member
            depth: Subtree depth, clamped to [0, team_view_max_depth]

        Returns:
            Team data

        Raises:
            MemberNotFoundError: Unknown member
        """
        max_depth = self.config.team_view_max_depth
        depth = max_depth if depth is None else max(0, min(depth, max_depth))

        member = await self.member_repo.get_by_id(member_id)
        if member is None:
            raise MemberNotFoundError(
                f"Member {member_id} not found",
                details={"member_id": member_id},
            )

        sponsor = (
            await self.member_repo.get_by_id(member.sponsor_id)
            if member.sponsor_id else None
        )
        upline = (
            await self.member_repo.get_by_id(member.parent_id)
            if member.parent_id else None
        )

        direct: dict[str, Any] = {}
        for leg in (MemberSide.LEFT, MemberSide.RIGHT):
            child = await self.member_repo.get_child(member.id, leg)
            direct[str(leg)] = _node(child) if child else None

        root_node = {**_node(member), "children": {"left": None, "right": None}}
        frontier = {member.id: root_node}

        for _ in range(depth):
            children = await self.member_repo.get_children(list(frontier))
            next_frontier = {}
            for child in children:
                if child.side not in (MemberSide.LEFT, MemberSide.RIGHT):
                    continue
                node = {**_node(child), "children": {"left": None, "right": None}}
                frontier[child.parent_id]["children"][child.side] = node
                next_frontier[child.id] = node
            if not next_frontier:
                break
            frontier = next_frontier

        return {
            "member": {
                **_node(member),
                "referral_code": member.referral_code,
                "profile_id": member.profile_id,
            },
            "sponsor": {
                "member_id": member.sponsor_id,
                "name": sponsor.full_name if sponsor else None,
            },
            "upline": {
                "member_id": member.parent_id,
                "name": upline.full_name if upline else None,
            },
            "children": direct,
            "total_referrals": await self.member_repo.count_sponsored(member.id),
            "tree": root_node,
            "depth": depth,
        }
