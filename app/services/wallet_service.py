"""
Wallet service.

Deposits, withdrawals (with the rolling cap), member-to-member transfers
and the wallet summary. Every balance is derived from the ledger.
"""

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import MAX_LEDGER_AMOUNT, BinaryPlanConfig
from app.models.enums import (
    EARNING_TRANSACTION_TYPES,
    InvestmentStatus,
    TransactionType,
)
from app.models.member import Member
from app.repositories.investment_repository import InvestmentRepository
from app.repositories.member_repository import MemberRepository
from app.repositories.wallet_transaction_repository import (
    WalletTransactionRepository,
)
from app.services.base_service import BaseService, log_operation, transaction
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import (
    ConflictError,
    InsufficientBalanceError,
    InvalidInputError,
    LimitExceededError,
    MemberNotFoundError,
    RecipientNotFoundError,
)
from app.utils.money import Amount, Currency
from app.validators import (
    normalize_wallet_address,
    validate_amount,
    validate_tx_hash,
)


ZERO = Decimal("0")


@dataclass(frozen=True)
class WithdrawalCheck:
    """Evaluation of a withdrawal request."""

    amount: Decimal
    balance: Decimal
    limit: Decimal
    used: Decimal
    remaining: Decimal
    window_hours: float

    @property
    def has_balance(self) -> bool:
        return self.amount <= self.balance

    @property
    def within_limit(self) -> bool:
        return self.used + self.amount <= self.limit

    @property
    def can_withdraw(self) -> bool:
        return self.has_balance and self.within_limit

    @property
    def shortfall(self) -> Decimal:
        return max(ZERO, self.amount - self.balance)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        data = {key: str(value) for key, value in asdict(self).items()}
        data["window_hours"] = self.window_hours
        data.update(
            can_withdraw=self.can_withdraw,
            balance_after=str(self.balance - self.amount),
            shortfall=str(self.shortfall),
        )
        return data


def _parse_amount(raw: Any, field: str) -> Decimal:
    is_valid, value, error = validate_amount(raw, max_val=MAX_LEDGER_AMOUNT)
    if not is_valid:
        raise InvalidInputError(
            f"Invalid {field}: {error}",
            details={"field": field},
        )
    return value


def _parse_tx_hash(raw: Any) -> str:
    is_valid, error = validate_tx_hash(raw)
    if not is_valid:
        raise InvalidInputError(error, details={"field": "tx_hash"})
    return raw.strip().lower()


class WalletService(BaseService):
    """Ledger-backed wallet operations."""

    def __init__(
        self,
        session: AsyncSession,
        config: BinaryPlanConfig | None = None,
    ) -> None:
        """Initialize wallet service."""
        super().__init__(session, config)
        self.member_repo = MemberRepository(session)
        self.tx_repo = WalletTransactionRepository(session)
        self.investment_repo = InvestmentRepository(session)

    async def _require_member(
        self, member_id: int, lock: bool = False
    ) -> Member:
        if lock:
            member = await self.member_repo.get_for_update(member_id)
        else:
            member = await self.member_repo.get_by_id(member_id)
        if member is None or not member.is_active:
            raise MemberNotFoundError(
                f"Member {member_id} not found",
                details={"member_id": member_id},
            )
        return member

    async def get_balance(self, member_id: int) -> Decimal:
        """Derived balance (APPROVED in - APPROVED out)."""
        return await self.tx_repo.get_balance(member_id)

    @log_operation
    @transaction
    async def deposit(
        self, member_id: int, amount: Any, tx_hash: str
    ) -> dict[str, Any]:
        """
        Record an on-chain deposit.

        Args:
            member_id: Depositing member
            amount: Token amount (positive)
            tx_hash: BSC transaction hash

        Returns:
            Created entry data and new balance

        Raises:
            InvalidInputError: Bad amount or hash
            ConflictError: Hash already recorded
        """
        value = _parse_amount(amount, "amount")
        reference = _parse_tx_hash(tx_hash)
        await self._require_member(member_id, lock=True)

        if await self.tx_repo.reference_exists(TransactionType.DEPOSIT, reference):
            raise ConflictError(
                "This transaction hash is already used",
                details={"tx_hash": reference},
            )

        entry = await self.tx_repo.append(
            member_id=member_id,
            tx_type=TransactionType.DEPOSIT,
            in_amount=value,
            detail=f"Deposit TX: {reference}",
            reference=reference,
        )

        self.logger.bind(
            member_id=member_id, amount=str(value), tx_hash=reference
        ).info(f"Deposit {value} recorded for member {member_id}")
        return {
            "transaction_id": entry.id,
            "type": str(TransactionType.DEPOSIT),
            "amount": str(value),
            "tx_hash": reference,
            "balance": str(await self.tx_repo.get_balance(member_id)),
        }

    async def _evaluate_withdrawal(
        self, member_id: int, amount: Decimal
    ) -> WithdrawalCheck:
        window = self.config.withdrawal_cap_window
        limit = self.config.withdrawal_cap_amount
        used = await self.tx_repo.get_withdrawn_since(
            member_id, utc_now() - window
        )
        return WithdrawalCheck(
            amount=amount,
            balance=await self.tx_repo.get_balance(member_id),
            limit=limit,
            used=used,
            remaining=max(ZERO, limit - used),
            window_hours=window.total_seconds() / 3600,
        )

    async def check_withdrawal(
        self, member_id: int, amount: Any
    ) -> dict[str, Any]:
        """
        Evaluate a withdrawal without writing anything.

        Args:
            member_id: Member ID
            amount: Requested amount

        Returns:
            can_withdraw flag, cap usage and balance before/after
        """
        value = _parse_amount(amount, "amount")
        await self._require_member(member_id)
        check = await self._evaluate_withdrawal(member_id, value)
        return check.to_dict()

    @log_operation
    @transaction
    async def withdraw(
        self, member_id: int, amount: Any, tx_hash: str
    ) -> dict[str, Any]:
        """
        Withdraw tokens.

        The member row is locked so concurrent withdrawals serialize on
        the balance and cap checks.

        Args:
            member_id: Member ID
            amount: Amount to withdraw (positive)
            tx_hash: Payout transaction hash

        Returns:
            Created entry data and remaining allowance

        Raises:
            InvalidInputError: Bad amount or hash
            ConflictError: Hash already recorded
            InsufficientBalanceError: Amount exceeds balance
            LimitExceededError: Rolling cap would be exceeded
        """
        value = _parse_amount(amount, "amount")
        reference = _parse_tx_hash(tx_hash)
        await self._require_member(member_id, lock=True)

        if await self.tx_repo.reference_exists(TransactionType.WITHDRAW, reference):
            raise ConflictError(
                "This transaction hash is already used",
                details={"tx_hash": reference},
            )

        check = await self._evaluate_withdrawal(member_id, value)
        if not check.has_balance:
            raise InsufficientBalanceError(
                "Insufficient balance",
                details={
                    "current_balance": str(check.balance),
                    "required_amount": str(value),
                    "shortfall": str(check.shortfall),
                },
            )
        if not check.within_limit:
            raise LimitExceededError(
                f"{check.window_hours:g}-hour withdrawal limit exceeded",
                details={
                    "limit": str(check.limit),
                    "used": str(check.used),
                    "remaining": str(check.remaining),
                    "requested": str(value),
                },
            )

        entry = await self.tx_repo.append(
            member_id=member_id,
            tx_type=TransactionType.WITHDRAW,
            out_amount=value,
            detail=f"Withdraw TX: {reference}",
            reference=reference,
        )

        self.logger.bind(
            member_id=member_id, amount=str(value), tx_hash=reference
        ).info(f"Withdrawal {value} recorded for member {member_id}")
        return {
            "transaction_id": entry.id,
            "type": str(TransactionType.WITHDRAW),
            "amount": str(value),
            "tx_hash": reference,
            "balance": str(check.balance - value),
            "remaining_allowance": str(check.remaining - value),
        }

    @log_operation
    @transaction
    async def transfer(
        self, member_id: int, to_wallet_address: str, amount: Any
    ) -> dict[str, Any]:
        """
        Move tokens to another member identified by wallet address.

        Writes a TransferOut entry for the sender and a TransferIn entry
        for the recipient in the same transaction.

        Raises:
            InvalidInputError: Bad amount/address or self-transfer
            RecipientNotFoundError: Wallet not registered
            InsufficientBalanceError: Amount exceeds balance
        """
        value = _parse_amount(amount, "amount")
        try:
            wallet = normalize_wallet_address(to_wallet_address)
        except ValueError as e:
            raise InvalidInputError(
                f"Invalid wallet address: {e}",
                details={"field": "to_wallet_address"},
            ) from e

        recipient = await self.member_repo.get_by_wallet_address(wallet)
        if recipient is None or not recipient.is_active:
            raise RecipientNotFoundError(
                "Recipient not found", details={"to_wallet_address": wallet}
            )
        if recipient.id == member_id:
            raise InvalidInputError("Cannot transfer to own wallet")

        # Lock both rows in id order
        for locked_id in sorted((member_id, recipient.id)):
            await self._require_member(locked_id, lock=True)
        sender = await self.member_repo.get_by_id(member_id)

        balance = await self.tx_repo.get_balance(member_id)
        if value > balance:
            raise InsufficientBalanceError(
                "Insufficient balance",
                details={
                    "current_balance": str(balance),
                    "required_amount": str(value),
                    "shortfall": str(value - balance),
                },
            )

        out_entry = await self.tx_repo.append(
            member_id=member_id,
            tx_type=TransactionType.TRANSFER_OUT,
            out_amount=value,
            detail=f"Transfer to {recipient.wallet_address}",
        )
        in_entry = await self.tx_repo.append(
            member_id=recipient.id,
            tx_type=TransactionType.TRANSFER_IN,
            in_amount=value,
            detail=f"Transfer from {sender.wallet_address}",
        )

        self.logger.bind(
            from_member_id=member_id,
            to_member_id=recipient.id,
            amount=str(value),
        ).info(f"Transfer {value} from member {member_id} to {recipient.id}")
        return {
            "transfer_out_id": out_entry.id,
            "transfer_in_id": in_entry.id,
            "to_member_id": recipient.id,
            "amount": str(value),
            "balance": str(balance - value),
        }

    async def get_summary(self, member_id: int) -> dict[str, Any]:
        """
        Wallet summary for the dashboard.

        earned_percentage relates the derived balance to the investment
        converted with the cap multiplier; total_earned is reported
        separately from the balance.
        """
        await self._require_member(member_id)

        totals = await self.tx_repo.get_totals_by_type(member_id)

        def total_in(tx_type: TransactionType) -> Decimal:
            return totals.get(tx_type, (ZERO, ZERO))[0]

        def total_out(tx_type: TransactionType) -> Decimal:
            return totals.get(tx_type, (ZERO, ZERO))[1]

        balance = sum(
            (entry_in - entry_out for entry_in, entry_out in totals.values()),
            ZERO,
        )
        total_earned = sum(
            (total_in(tx_type) for tx_type in EARNING_TRANSACTION_TYPES), ZERO
        )

        investment_usd = Amount.usd(
            await self.investment_repo.get_package_usd_total(member_id)
        )
        active_usd = Amount.usd(
            await self.investment_repo.get_package_usd_total(
                member_id, statuses=(InvestmentStatus.ACTIVE,)
            )
        )
        investment_base = investment_usd.convert(
            self.config.cap_usd_to_token_multiplier, Currency.TOKEN
        )
        earned_percentage = ZERO
        if investment_base.value > 0:
            earned_percentage = (
                balance * 100 / investment_base.value
            ).quantize(Decimal("0.01"))

        return {
            "balance": str(balance),
            "total_deposit": str(total_in(TransactionType.DEPOSIT)),
            "total_earned": str(total_earned),
            "yield_bonus": str(total_in(TransactionType.YIELD_BONUS)),
            "pairing_bonus": str(total_in(TransactionType.PAIRING_BONUS)),
            "referral_bonus": str(total_in(TransactionType.REFERRAL_BONUS)),
            "total_withdrawn": str(total_out(TransactionType.WITHDRAW)),
            "transfer_in": str(total_in(TransactionType.TRANSFER_IN)),
            "transfer_out": str(total_out(TransactionType.TRANSFER_OUT)),
            "earnings_cap_adjustments": str(
                total_out(TransactionType.EARNINGS_CAP_ADJUSTMENT)
            ),
            "total_investment_usd": str(investment_usd.value),
            "active_investment_usd": str(active_usd.value),
            "active_invested_tokens": str(
                await self.investment_repo.get_invested_tokens_total(member_id)
            ),
            "direct_referrals": await self.member_repo.count_sponsored(member_id),
            "earned_percentage": str(earned_percentage),
        }
