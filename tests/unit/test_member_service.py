"""
Tests for member registration and the team view.

Covers:
- Root creation on an empty tree
- Sponsor resolution by referral code and by id
- Validation and duplicate wallets
- Team view structure and depth clamp
- Straight-line placement chains, one member per slot, a single root
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from app.models import Member, MemberSide
from app.services.binary.placement import Placement
from app.services.member_service import (
    MemberService,
    format_profile_id,
    generate_referral_code,
)
from app.utils.exceptions import (
    ConflictError,
    InvalidInputError,
    InvalidSponsorError,
    MemberNotFoundError,
)


class TestHelpers:
    """Identifier helpers."""

    def test_profile_id_format(self):
        """Profile id is D + five digits."""
        assert format_profile_id(7) == "D00007"

    def test_referral_code_alphabet(self):
        """Referral code is 8 upper-case alphanumerics."""
        code = generate_referral_code()

        assert len(code) == 8
        assert code.isalnum() and code.upper() == code


class TestRegistration:
    """MemberService.register_member."""

    @pytest.mark.asyncio
    async def test_first_member_becomes_root(self, session, plan_config, make_wallet):
        """Empty tree: no parent, no sponsor, side none."""
        data = await MemberService(session, plan_config).register_member(
            "Root", "Admin", make_wallet(1001)
        )

        assert data["parent_id"] is None
        assert data["sponsor_id"] is None
        assert data["side"] == MemberSide.NONE
        assert data["profile_id"] == format_profile_id(data["member_id"])

    @pytest.mark.asyncio
    async def test_sponsor_by_referral_code(self, session, plan_config, make_wallet):
        """Sponsor found by code; member placed under it on the left."""
        service = MemberService(session, plan_config)
        root = await service.register_member("Root", "Admin", make_wallet(1001))

        data = await service.register_member(
            "Alice", "Smith", make_wallet(1002),
            sponsor=root["referral_code"].lower(),
        )

        assert data["sponsor_id"] == root["member_id"]
        assert data["parent_id"] == root["member_id"]
        assert data["side"] == MemberSide.LEFT

    @pytest.mark.asyncio
    async def test_sponsor_by_id_and_side(self, session, plan_config, make_wallet):
        """Numeric sponsor id with an explicit right side."""
        service = MemberService(session, plan_config)
        root = await service.register_member("Root", "Admin", make_wallet(1001))

        data = await service.register_member(
            "Bob", "Jones", make_wallet(1003),
            sponsor=str(root["member_id"]), side="right",
        )

        assert data["parent_id"] == root["member_id"]
        assert data["side"] == MemberSide.RIGHT

    @pytest.mark.asyncio
    async def test_no_sponsor_defaults_to_root(self, session, plan_config, make_wallet):
        """Without sponsor the root sponsors the member."""
        service = MemberService(session, plan_config)
        root = await service.register_member("Root", "Admin", make_wallet(1001))
        first = await service.register_member("A", "A", make_wallet(1002))

        second = await service.register_member("B", "B", make_wallet(1003))

        assert second["sponsor_id"] == root["member_id"]
        assert second["parent_id"] == first["member_id"]

    @pytest.mark.asyncio
    async def test_unknown_sponsor(self, session, plan_config, make_wallet):
        """A given but unknown sponsor is rejected."""
        service = MemberService(session, plan_config)
        await service.register_member("Root", "Admin", make_wallet(1001))

        with pytest.raises(InvalidSponsorError):
            await service.register_member(
                "Eve", "X", make_wallet(1002), sponsor="NOPE1234"
            )

    @pytest.mark.asyncio
    async def test_duplicate_wallet(self, session, plan_config, make_wallet):
        """A wallet registers once (case-insensitive)."""
        service = MemberService(session, plan_config)
        await service.register_member("Root", "Admin", make_wallet(0xABCDEF))

        with pytest.raises(ConflictError):
            await service.register_member(
                "Copy", "Cat", make_wallet(0xABCDEF).upper().replace("0X", "0x")
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "first_name,wallet,side",
        [
            ("", "0x" + "1" * 40, None),
            ("Ann", "not-a-wallet", None),
            ("Ann", "0x" + "1" * 40, "up"),
        ],
    )
    async def test_invalid_input(self, session, plan_config, first_name, wallet, side):
        """Names, wallet and side are validated."""
        with pytest.raises(InvalidInputError):
            await MemberService(session, plan_config).register_member(
                first_name, "Lee", wallet, side=side
            )


class TestTeamView:
    """MemberService.get_team_tree."""

    @pytest.mark.asyncio
    async def test_team_tree(self, session, member_factory, plan_config):
        """Direct children, upline and nested subtree."""
        root = await member_factory()
        left = await member_factory(parent=root, side=MemberSide.LEFT)
        right = await member_factory(parent=root, side=MemberSide.RIGHT)
        grandchild = await member_factory(parent=left, side=MemberSide.RIGHT)

        team = await MemberService(session, plan_config).get_team_tree(root.id)

        assert team["children"]["left"]["member_id"] == left.id
        assert team["children"]["right"]["member_id"] == right.id
        assert team["total_referrals"] == 2
        assert team["upline"]["member_id"] is None
        nested = team["tree"]["children"]["left"]["children"]["right"]
        assert nested["member_id"] == grandchild.id

        child_view = await MemberService(session, plan_config).get_team_tree(
            grandchild.id
        )
        assert child_view["upline"]["member_id"] == left.id
        assert child_view["sponsor"]["member_id"] == left.id

    @pytest.mark.asyncio
    async def test_depth_limits_subtree(self, session, member_factory, plan_config):
        """Depth 1 shows children but not grandchildren; direct view is kept."""
        root = await member_factory()
        left = await member_factory(parent=root, side=MemberSide.LEFT)
        await member_factory(parent=left, side=MemberSide.LEFT)

        service = MemberService(session, plan_config)
        shallow = await service.get_team_tree(root.id, depth=1)
        flat = await service.get_team_tree(root.id, depth=0)
        clamped = await service.get_team_tree(root.id, depth=500)

        assert shallow["tree"]["children"]["left"]["children"]["left"] is None
        assert flat["tree"]["children"]["left"] is None
        assert flat["children"]["left"]["member_id"] == left.id
        assert clamped["depth"] == plan_config.team_view_max_depth

    @pytest.mark.asyncio
    async def test_unknown_member(self, session, plan_config):
        """Member must exist."""
        with pytest.raises(MemberNotFoundError):
            await MemberService(session, plan_config).get_team_tree(999)


class TestTreeShape:
    """Tree invariants maintained by registration."""

    @pytest.mark.asyncio
    async def test_same_side_registrations_form_chain(
        self, session, session_maker, plan_config, make_wallet
    ):
        """N registrations under one sponsor and side hang in a straight line."""
        service = MemberService(session, plan_config)
        root = await service.register_member("Root", "Admin", make_wallet(2000))

        placed = []
        for n in range(1, 5):
            placed.append(
                await service.register_member(
                    f"M{n}", "Chain", make_wallet(2000 + n),
                    sponsor=root["referral_code"], side="right",
                )
            )

        parents = [data["parent_id"] for data in placed]
        expected = [root["member_id"]] + [data["member_id"] for data in placed[:-1]]
        assert parents == expected
        assert all(data["side"] == MemberSide.RIGHT for data in placed)
        assert all(data["sponsor_id"] == root["member_id"] for data in placed)

        async with session_maker() as fresh:
            rows = (
                await fresh.execute(
                    select(Member.parent_id, Member.side).where(
                        Member.parent_id.is_not(None)
                    )
                )
            ).all()
        assert len(rows) == len(set(rows)) == 4

    @pytest.mark.asyncio
    async def test_occupied_slot_is_conflict(
        self, session, plan_config, make_wallet, count_rows
    ):
        """A second member on a taken (parent, side) slot is rejected."""
        service = MemberService(session, plan_config)
        root = await service.register_member("Root", "Admin", make_wallet(3000))
        await service.register_member("Left", "Taken", make_wallet(3001))
        service.placement_engine.place = AsyncMock(
            return_value=Placement(
                parent_id=root["member_id"], side=MemberSide.LEFT, depth=0
            )
        )

        with pytest.raises(ConflictError):
            await service.register_member("Late", "Comer", make_wallet(3002))

        assert await count_rows(Member) == 2

    @pytest.mark.asyncio
    async def test_second_root_is_conflict(
        self, session, plan_config, make_wallet, count_rows
    ):
        """Two registrations that both see an empty tree leave one root."""
        service = MemberService(session, plan_config)
        await service.register_member("Root", "Admin", make_wallet(4000))
        service.member_repo.get_root = AsyncMock(return_value=None)

        with pytest.raises(ConflictError):
            await service.register_member("Other", "Root", make_wallet(4001))

        assert await count_rows(Member) == 1
