"""
Tests for package purchase orchestration.

Covers:
- USD -> token conversion, referral bonus, propagation, settlement
- Settlement runs for the purchaser only
- Price and package failures
- All-or-nothing on mid-purchase failure
- Admin purchases by wallet and daily purchase totals
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from app.models import (
    Investment,
    Member,
    MemberSide,
    PvHistory,
    TransactionType,
    WalletTransaction,
)
from app.repositories.wallet_transaction_repository import (
    WalletTransactionRepository,
)
from app.services.binary_service import BinaryService
from app.services.investment_service import InvestmentService
from app.services.price_oracle import FixedPriceOracle
from app.utils.exceptions import (
    InvalidInputError,
    MemberNotFoundError,
    PackageNotFoundError,
    PriceUnavailableError,
)


@pytest.fixture
def binary_team(member_factory):
    """Root with a left and a right member, both sponsored by root."""

    async def build():
        root = await member_factory()
        left = await member_factory(parent=root, side=MemberSide.LEFT)
        right = await member_factory(parent=root, side=MemberSide.RIGHT)
        return root, left, right

    return build


class TestPurchase:
    """InvestmentService.purchase_package."""

    @pytest.mark.asyncio
    async def test_purchase_flow(
        self, session, binary_team, package_factory, price_oracle, plan_config
    ):
        """100 USD at 0.5 -> 200 tokens; sponsor 20; root left leg 200."""
        root, left, _ = await binary_team()
        package = await package_factory(Decimal("100"))

        result = await InvestmentService(
            session, price_oracle, plan_config
        ).purchase_package(left.id, package.id)

        assert result.investment.invested_amount == Decimal("200")
        assert result.investment.detail.startswith("By token (")
        assert result.referral_bonus == Decimal("20")
        assert result.propagation.credited == [(root.id, MemberSide.LEFT)]
        assert result.settlement.settled is False

        await session.refresh(root)
        await session.refresh(left)
        assert root.left_volume == Decimal("200")
        assert left.self_volume == Decimal("200")
        entries = await WalletTransactionRepository(session).get_by_member(root.id)
        assert [entry.type for entry in entries] == [TransactionType.REFERRAL_BONUS]

    @pytest.mark.asyncio
    async def test_settlement_only_for_purchaser(
        self, session, binary_team, package_factory, price_oracle, plan_config
    ):
        """Ancestors keep matched volume until settled separately."""
        root, left, right = await binary_team()
        package = await package_factory(Decimal("100"))
        service = InvestmentService(session, price_oracle, plan_config)

        await service.purchase_package(left.id, package.id)
        await service.purchase_package(right.id, package.id)

        await session.refresh(root)
        assert root.left_volume == Decimal("200")
        assert root.right_volume == Decimal("200")
        assert await WalletTransactionRepository(session).count(
            member_id=root.id, type=TransactionType.PAIRING_BONUS
        ) == 0

        settlement = await BinaryService(session, plan_config).settle_pairing(root.id)

        assert settlement.matched == Decimal("200")
        assert settlement.bonus == Decimal("16")

    @pytest.mark.asyncio
    async def test_admin_action_detail(
        self, session, member_factory, package_factory, price_oracle, plan_config
    ):
        """Admin purchases are marked in the detail."""
        root = await member_factory()
        package = await package_factory(Decimal("100"))

        result = await InvestmentService(
            session, price_oracle, plan_config
        ).purchase_package(root.id, package.id, is_admin_action=True)

        assert result.investment.detail.startswith("Admin Action - By token")
        assert result.referral_bonus == Decimal("0")

    @pytest.mark.asyncio
    async def test_price_unavailable(
        self, session, member_factory, package_factory, plan_config, count_rows
    ):
        """Zero price aborts without writing anything."""
        root = await member_factory()
        package = await package_factory()

        with pytest.raises(PriceUnavailableError):
            await InvestmentService(
                session, FixedPriceOracle("0"), plan_config
            ).purchase_package(root.id, package.id)

        assert await count_rows(Investment) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "usd_amount, price",
        [
            (Decimal("100"), "0.0000000000001"),
            (Decimal("1000000000"), "0.0000000001"),
        ],
        ids=["below-price-precision", "token-amount-too-large"],
    )
    async def test_price_too_small(
        self,
        session,
        member_factory,
        package_factory,
        plan_config,
        count_rows,
        usd_amount,
        price,
    ):
        """Prices the ledger cannot represent count as unavailable."""
        root = await member_factory()
        package = await package_factory(usd_amount)

        with pytest.raises(PriceUnavailableError):
            await InvestmentService(
                session, FixedPriceOracle(price), plan_config
            ).purchase_package(root.id, package.id)

        assert await count_rows(Investment) == 0

    @pytest.mark.asyncio
    async def test_disabled_package(
        self, session, member_factory, package_factory, price_oracle, plan_config
    ):
        """Disabled packages cannot be bought."""
        root = await member_factory()
        package = await package_factory(is_enabled=False)

        with pytest.raises(PackageNotFoundError):
            await InvestmentService(
                session, price_oracle, plan_config
            ).purchase_package(root.id, package.id)

    @pytest.mark.asyncio
    async def test_unknown_member(
        self, session, package_factory, price_oracle, plan_config
    ):
        """Purchaser must exist."""
        package = await package_factory()

        with pytest.raises(MemberNotFoundError):
            await InvestmentService(
                session, price_oracle, plan_config
            ).purchase_package(999, package.id)


class TestPurchaseAtomicity:
    """A failure after the first write leaves no trace."""

    @pytest.mark.asyncio
    async def test_failure_during_propagation(
        self, session, session_maker, binary_team, package_factory,
        price_oracle, plan_config, count_rows,
    ):
        """Investment and referral bonus are rolled back."""
        root, left, _ = await binary_team()
        package = await package_factory()
        service = InvestmentService(session, price_oracle, plan_config)
        service.propagation_engine.propagate = AsyncMock(
            side_effect=RuntimeError("store failure")
        )

        with pytest.raises(RuntimeError):
            await service.purchase_package(left.id, package.id)

        assert await count_rows(Investment) == 0
        assert await count_rows(WalletTransaction) == 0

    @pytest.mark.asyncio
    async def test_failure_during_settlement(
        self, session, session_maker, binary_team, package_factory,
        price_oracle, plan_config, count_rows,
    ):
        """Propagated volume is rolled back with the rest."""
        root, left, _ = await binary_team()
        package = await package_factory()
        service = InvestmentService(session, price_oracle, plan_config)
        service.settlement_engine.settle = AsyncMock(
            side_effect=RuntimeError("store failure")
        )

        with pytest.raises(RuntimeError):
            await service.purchase_package(left.id, package.id)

        assert await count_rows(Investment) == 0
        assert await count_rows(WalletTransaction) == 0
        assert await count_rows(PvHistory) == 0
        async with session_maker() as fresh:
            stored_root = await fresh.get(Member, root.id)
            assert stored_root.left_volume == Decimal("0")


class TestAdminPurchase:
    """InvestmentService.purchase_for_wallet."""

    @pytest.mark.asyncio
    async def test_purchase_by_wallet(
        self, session, member_factory, package_factory, price_oracle, plan_config
    ):
        """Wallet lookup ignores case; the purchase is marked as admin."""
        root = await member_factory(wallet_address="0x" + "ab" * 20)
        package = await package_factory(Decimal("100"))

        result = await InvestmentService(
            session, price_oracle, plan_config
        ).purchase_for_wallet("0x" + "AB" * 20, package.id)

        assert result.investment.member_id == root.id
        assert result.investment.detail.startswith("Admin Action - By token")

    @pytest.mark.asyncio
    async def test_unknown_wallet(
        self, session, package_factory, price_oracle, plan_config, make_wallet,
        count_rows,
    ):
        """No member owns the wallet."""
        package = await package_factory()

        with pytest.raises(MemberNotFoundError):
            await InvestmentService(
                session, price_oracle, plan_config
            ).purchase_for_wallet(make_wallet(77), package.id)

        assert await count_rows(Investment) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("wallet", [None, "", "0x123", "not-a-wallet"])
    async def test_invalid_wallet(
        self, session, package_factory, price_oracle, plan_config, wallet
    ):
        """Malformed wallets are rejected before any lookup."""
        package = await package_factory()

        with pytest.raises(InvalidInputError):
            await InvestmentService(
                session, price_oracle, plan_config
            ).purchase_for_wallet(wallet, package.id)


class TestDailyPurchaseTotals:
    """InvestmentService.get_daily_purchase_totals."""

    @pytest.mark.asyncio
    async def test_totals_grouped_by_offset_day(
        self, session, member_factory, package_factory, price_oracle, plan_config
    ):
        """Ten days newest first, UTC+7 days, empty days reported as zero."""
        member = await member_factory()
        package = await package_factory(Decimal("100"))
        now = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
        purchases = [
            (datetime(2026, 3, 10, 0, 0, tzinfo=UTC), Decimal("100")),
            # 01:00 on March 10th at UTC+7
            (datetime(2026, 3, 9, 18, 0, tzinfo=UTC), Decimal("50")),
            # 23:00 on March 9th at UTC+7
            (datetime(2026, 3, 9, 16, 0, tzinfo=UTC), Decimal("500")),
            # Before the first reported day
            (datetime(2026, 2, 28, 16, 0, tzinfo=UTC), Decimal("1000")),
        ]
        for purchased_at, usd_amount in purchases:
            session.add(
                Investment(
                    member_id=member.id,
                    package_id=package.id,
                    invested_amount=usd_amount * 2,
                    usd_amount=usd_amount,
                    token_price_usd=Decimal("0.5"),
                    purchase_date=purchased_at,
                    next_yield_date=purchased_at + timedelta(days=1),
                )
            )
        await session.commit()

        days = await InvestmentService(
            session, price_oracle, plan_config
        ).get_daily_purchase_totals(now=now)

        assert len(days) == 10
        assert days[0]["day"] == "2026-03-10"
        assert Decimal(days[0]["total_amount"]) == Decimal("150")
        assert days[1]["day"] == "2026-03-09"
        assert Decimal(days[1]["total_amount"]) == Decimal("500")
        assert days[-1]["day"] == "2026-03-01"
        assert all(Decimal(day["total_amount"]) == 0 for day in days[2:])
