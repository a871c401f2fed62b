"""
Tests for the direct referral bonus.

Covers:
- 10% of the invested tokens to the direct sponsor
- No payment without sponsor or for indirect levels
"""

from decimal import Decimal

import pytest

from app.models import TransactionType
from app.services.referral import ReferralBonusEngine


class TestReferralBonus:
    """ReferralBonusEngine.award."""

    @pytest.mark.asyncio
    async def test_direct_sponsor_paid(self, session, member_factory, plan_config):
        """Sponsor receives referral_rate x base amount."""
        sponsor = await member_factory()

        entry = await ReferralBonusEngine(session, plan_config).award(
            sponsor_id=sponsor.id,
            source_member_name="Alice Smith",
            level=1,
            base_amount=Decimal("1000"),
        )

        assert entry is not None
        assert entry.member_id == sponsor.id
        assert entry.type == TransactionType.REFERRAL_BONUS
        assert entry.in_amount == Decimal("100")
        assert entry.detail == "Level 1 referral bonus from Alice Smith"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("sponsor_id", [None, 0, -1])
    async def test_no_sponsor(self, session, plan_config, sponsor_id):
        """Nothing is paid without a sponsor."""
        entry = await ReferralBonusEngine(session, plan_config).award(
            sponsor_id=sponsor_id,
            source_member_name="Alice",
            level=1,
            base_amount=Decimal("1000"),
        )

        assert entry is None

    @pytest.mark.asyncio
    async def test_indirect_level_not_paid(
        self, session, member_factory, plan_config
    ):
        """Only level 1 is paid."""
        sponsor = await member_factory()

        entry = await ReferralBonusEngine(session, plan_config).award(
            sponsor_id=sponsor.id,
            source_member_name="Alice",
            level=2,
            base_amount=Decimal("1000"),
        )

        assert entry is None

    @pytest.mark.asyncio
    async def test_bonus_rounding_to_zero(
        self, session, member_factory, plan_config
    ):
        """A bonus below the token quantum is not written."""
        sponsor = await member_factory()

        entry = await ReferralBonusEngine(session, plan_config).award(
            sponsor_id=sponsor.id,
            source_member_name="Alice",
            level=1,
            base_amount=Decimal("0.000001"),
        )

        assert entry is None
