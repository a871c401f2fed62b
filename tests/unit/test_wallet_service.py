"""
Tests for wallet operations.

Covers:
- Deposits and duplicate transaction hashes
- Withdrawal balance check and rolling cap
- Transfers between members
- Wallet summary figures
"""

from decimal import Decimal

import pytest

from app.models import Investment, InvestmentStatus, TransactionType
from app.services.wallet_service import WalletService
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import (
    ConflictError,
    InsufficientBalanceError,
    InvalidInputError,
    LimitExceededError,
    MemberNotFoundError,
    RecipientNotFoundError,
)


class TestDeposit:
    """WalletService.deposit."""

    @pytest.mark.asyncio
    async def test_deposit_credits_balance(
        self, session, member_factory, plan_config, make_tx_hash
    ):
        """Deposit writes an approved entry."""
        member = await member_factory()
        service = WalletService(session, plan_config)

        data = await service.deposit(member.id, "250.5", make_tx_hash(1))

        assert data["type"] == TransactionType.DEPOSIT
        assert await service.get_balance(member.id) == Decimal("250.5")

    @pytest.mark.asyncio
    async def test_duplicate_hash_rejected(
        self, session, member_factory, plan_config, make_tx_hash
    ):
        """The same hash cannot be deposited twice (case-insensitive)."""
        member = await member_factory()
        service = WalletService(session, plan_config)
        tx_hash = make_tx_hash(0xABC)

        await service.deposit(member.id, "10", tx_hash)
        with pytest.raises(ConflictError):
            await service.deposit(member.id, "10", tx_hash.upper().replace("0X", "0x"))

        assert await service.get_balance(member.id) == Decimal("10")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "amount", ["0", "-5", "abc", None, "1000000000000000001"]
    )
    async def test_invalid_amount(
        self, session, member_factory, plan_config, make_tx_hash, amount
    ):
        """Amount must be positive and within the ledger maximum."""
        member = await member_factory()

        with pytest.raises(InvalidInputError):
            await WalletService(session, plan_config).deposit(
                member.id, amount, make_tx_hash(2)
            )

    @pytest.mark.asyncio
    async def test_invalid_hash(self, session, member_factory, plan_config):
        """Hash must be 0x + 64 hex."""
        member = await member_factory()

        with pytest.raises(InvalidInputError):
            await WalletService(session, plan_config).deposit(
                member.id, "10", "0x1234"
            )

    @pytest.mark.asyncio
    async def test_unknown_member(self, session, plan_config, make_tx_hash):
        """Member must exist."""
        with pytest.raises(MemberNotFoundError):
            await WalletService(session, plan_config).deposit(
                999, "10", make_tx_hash(3)
            )


class TestWithdraw:
    """WalletService.withdraw and check_withdrawal."""

    @pytest.mark.asyncio
    async def test_insufficient_balance(
        self, session, member_factory, plan_config, make_tx_hash
    ):
        """Amount above balance is rejected with the shortfall."""
        member = await member_factory()
        service = WalletService(session, plan_config)
        await service.deposit(member.id, "50", make_tx_hash(1))

        with pytest.raises(InsufficientBalanceError) as exc_info:
            await service.withdraw(member.id, "60", make_tx_hash(2))

        assert Decimal(exc_info.value.details["shortfall"]) == Decimal("10")
        assert await service.get_balance(member.id) == Decimal("50")

    @pytest.mark.asyncio
    async def test_rolling_cap(self, session, member_factory, plan_config, make_tx_hash):
        """10 000 per 24 hours: 10 001 fails, 10 000 passes, then 1 fails."""
        member = await member_factory()
        service = WalletService(session, plan_config)
        await service.deposit(member.id, "20000", make_tx_hash(1))

        with pytest.raises(LimitExceededError) as exc_info:
            await service.withdraw(member.id, "10001", make_tx_hash(2))
        assert Decimal(exc_info.value.details["remaining"]) == Decimal("10000")
        assert "24-hour" in exc_info.value.message

        data = await service.withdraw(member.id, "10000", make_tx_hash(3))
        assert Decimal(data["remaining_allowance"]) == Decimal("0")

        with pytest.raises(LimitExceededError):
            await service.withdraw(member.id, "1", make_tx_hash(4))

        assert await service.get_balance(member.id) == Decimal("10000")

    @pytest.mark.asyncio
    async def test_duplicate_withdraw_hash(
        self, session, member_factory, plan_config, make_tx_hash
    ):
        """A payout hash is recorded once."""
        member = await member_factory()
        service = WalletService(session, plan_config)
        await service.deposit(member.id, "100", make_tx_hash(1))
        await service.withdraw(member.id, "10", make_tx_hash(2))

        with pytest.raises(ConflictError):
            await service.withdraw(member.id, "10", make_tx_hash(2))

    @pytest.mark.asyncio
    async def test_check_has_no_side_effects(
        self, session, member_factory, plan_config, make_tx_hash, count_rows
    ):
        """Pre-check reports figures without writing."""
        from app.models import WalletTransaction

        member = await member_factory()
        service = WalletService(session, plan_config)
        await service.deposit(member.id, "300", make_tx_hash(1))

        check = await service.check_withdrawal(member.id, "500")

        assert check["can_withdraw"] is False
        assert Decimal(check["shortfall"]) == Decimal("200")
        assert Decimal(check["remaining"]) == Decimal("10000")
        assert await count_rows(WalletTransaction) == 1


class TestTransfer:
    """WalletService.transfer."""

    @pytest.mark.asyncio
    async def test_transfer_moves_balance(
        self, session, member_factory, plan_config, make_tx_hash
    ):
        """Sender loses and recipient gains the amount."""
        sender = await member_factory()
        recipient = await member_factory()
        service = WalletService(session, plan_config)
        await service.deposit(sender.id, "100", make_tx_hash(1))

        data = await service.transfer(sender.id, recipient.wallet_address, "40")

        assert data["to_member_id"] == recipient.id
        assert await service.get_balance(sender.id) == Decimal("60")
        assert await service.get_balance(recipient.id) == Decimal("40")

    @pytest.mark.asyncio
    async def test_self_transfer_rejected(
        self, session, member_factory, plan_config, make_tx_hash
    ):
        """Cannot transfer to own wallet."""
        member = await member_factory()
        service = WalletService(session, plan_config)
        await service.deposit(member.id, "100", make_tx_hash(1))

        with pytest.raises(InvalidInputError):
            await service.transfer(member.id, member.wallet_address, "10")

    @pytest.mark.asyncio
    async def test_unknown_recipient(
        self, session, member_factory, plan_config, make_wallet
    ):
        """Recipient wallet must be registered."""
        member = await member_factory()

        with pytest.raises(RecipientNotFoundError):
            await WalletService(session, plan_config).transfer(
                member.id, make_wallet(0xDEAD), "10"
            )

    @pytest.mark.asyncio
    async def test_overdraft_writes_nothing(
        self, session, member_factory, plan_config, make_tx_hash
    ):
        """Transfer above balance leaves both balances unchanged."""
        sender = await member_factory()
        recipient = await member_factory()
        service = WalletService(session, plan_config)
        await service.deposit(sender.id, "5", make_tx_hash(1))

        with pytest.raises(InsufficientBalanceError):
            await service.transfer(sender.id, recipient.wallet_address, "6")

        assert await service.get_balance(sender.id) == Decimal("5")
        assert await service.get_balance(recipient.id) == Decimal("0")


class TestSummary:
    """WalletService.get_summary."""

    @pytest.mark.asyncio
    async def test_summary_figures(
        self, session, member_factory, package_factory, ledger_entry, plan_config
    ):
        """Earned percentage relates balance to USD x 33."""
        member = await member_factory()
        referred = await member_factory(sponsor=member)
        package = await package_factory(Decimal("100"))
        now = utc_now()
        session.add(
            Investment(
                member_id=member.id,
                package_id=package.id,
                invested_amount=Decimal("200"),
                usd_amount=Decimal("100"),
                token_price_usd=Decimal("0.5"),
                status=InvestmentStatus.ACTIVE,
                purchase_date=now,
                next_yield_date=now,
            )
        )
        await session.commit()
        await ledger_entry(member, TransactionType.DEPOSIT, in_amount=Decimal("300"))
        await ledger_entry(
            member, TransactionType.REFERRAL_BONUS, in_amount=Decimal("30")
        )

        summary = await WalletService(session, plan_config).get_summary(member.id)

        assert Decimal(summary["balance"]) == Decimal("330")
        assert Decimal(summary["total_deposit"]) == Decimal("300")
        assert Decimal(summary["total_earned"]) == Decimal("30")
        assert Decimal(summary["total_investment_usd"]) == Decimal("100")
        assert Decimal(summary["active_invested_tokens"]) == Decimal("200")
        assert summary["direct_referrals"] == 1
        assert summary["earned_percentage"] == "10.00"
        assert referred.sponsor_id == member.id
