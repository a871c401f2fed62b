"""
Earnings cap enforcement.

Periodic sweep over every member with an ACTIVE or COMPLETED investment.
A member whose derived balance exceeds

    sum(package USD) x cap_usd_to_token_multiplier x earnings_cap_multiplier

gets an EarningsCapAdjustment out-entry for the excess and all of its
ACTIVE investments are completed. Each member runs in its own
transaction; one member failing never stops the sweep.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.business_constants import BinaryPlanConfig, default_plan_config
from app.models.enums import TransactionType
from app.repositories.investment_repository import InvestmentRepository
from app.repositories.member_repository import MemberRepository
from app.repositories.wallet_transaction_repository import (
    WalletTransactionRepository,
)
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import MemberNotFoundError
from app.utils.money import Amount, Currency


LEDGER_QUANTUM = Decimal("0.00000001")


@dataclass(frozen=True)
class MemberCapStatus:
    """Cap evaluation of one member."""

    member_id: int
    investment_usd: Amount
    investment_base: Amount  # converted to ledger units
    earnings_limit: Amount
    balance: Amount

    @property
    def exceeds_limit(self) -> bool:
        return self.balance > self.earnings_limit

    @property
    def excess(self) -> Amount:
        if not self.exceeds_limit:
            return Amount.zero(Currency.TOKEN)
        return (self.balance - self.earnings_limit).quantize(LEDGER_QUANTUM)


@dataclass(frozen=True)
class MemberCapOutcome:
    """Result of enforcing the cap on one member."""

    member_id: int
    adjusted: bool
    excess_removed: Decimal = Decimal("0")
    investments_completed: int = 0
    transaction_id: int | None = None


@dataclass
class SweepReport:
    """Aggregated sweep result."""

    total_members: int = 0
    members_exceeding: int = 0
    members_adjusted: int = 0
    total_excess_removed: Decimal = Decimal("0")
    investments_completed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses and job results."""
        return {
            "total_members": self.total_members,
            "members_exceeding": self.members_exceeding,
            "members_adjusted": self.members_adjusted,
            "total_excess_removed": str(self.total_excess_removed),
            "investments_completed": self.investments_completed,
            "errors": list(self.errors),
        }


class EarningsCapService:
    """Runs the earnings cap sweep."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        config: BinaryPlanConfig | None = None,
    ) -> None:
        """
        Initialize earnings cap service.

        Args:
            session_maker: Factory for per-member sessions
            config: Plan rates and limits
        """
        self.session_maker = session_maker
        self.config = config or default_plan_config()
        self.logger = logger.bind(service=self.__class__.__name__)

    async def evaluate(
        self, session: AsyncSession, member_id: int
    ) -> MemberCapStatus:
        """
        Compute cap figures for a member without changing anything.

        Args:
            session: Database session
            member_id: Member ID

        Returns:
            MemberCapStatus
        """
        investment_repo = InvestmentRepository(session)
        tx_repo = WalletTransactionRepository(session)

        investment_usd = Amount.usd(
            await investment_repo.get_package_usd_total(member_id)
        )
        investment_base = investment_usd.convert(
            self.config.cap_usd_to_token_multiplier, Currency.TOKEN
        )
        earnings_limit = investment_base * self.config.earnings_cap_multiplier
        balance = Amount.tokens(await tx_repo.get_balance(member_id))

        return MemberCapStatus(
            member_id=member_id,
            investment_usd=investment_usd,
            investment_base=investment_base,
            earnings_limit=earnings_limit,
            balance=balance,
        )

    async def enforce_member(self, member_id: int) -> MemberCapOutcome:
        """
        Enforce the cap on one member in its own transaction.

        The member row is locked first so concurrent ledger writers for
        the same member serialize behind the sweep.

        Args:
            member_id: Member ID

        Returns:
            MemberCapOutcome

        Raises:
            Any error after rolling back this member's transaction
        """
        async with self.session_maker() as session:
            try:
                outcome = await self._enforce(session, member_id)
                await session.commit()
                return outcome
            except Exception:
                await session.rollback()
                raise

    async def _enforce(
        self, session: AsyncSession, member_id: int
    ) -> MemberCapOutcome:
        member = await MemberRepository(session).get_for_update(member_id)
        if member is None:
            raise MemberNotFoundError(
                f"Member {member_id} not found",
                details={"member_id": member_id},
            )

        status = await self.evaluate(session, member_id)

        self.logger.bind(
            member_id=member_id,
            balance=str(status.balance.value),
            investment_usd=str(status.investment_usd.value),
            earnings_limit=str(status.earnings_limit.value),
        ).debug(
            f"Member {member_id}: balance={status.balance.value}, "
            f"limit={status.earnings_limit.value}"
        )

        if not status.exceeds_limit:
            return MemberCapOutcome(member_id=member_id, adjusted=False)

        excess = status.excess
        entry = await WalletTransactionRepository(session).append(
            member_id=member_id,
            tx_type=TransactionType.EARNINGS_CAP_ADJUSTMENT,
            out_amount=excess.value,
            detail=(
                f"Earnings cap adjustment - excess removed "
                f"({self.config.earnings_cap_multiplier}x investment limit)"
            ),
        )
        completed = await InvestmentRepository(session).complete_active(
            member_id,
            completed_at=utc_now(),
            detail="Completed by earnings cap",
        )

        self.logger.bind(
            member_id=member_id,
            excess=str(excess.value),
            investments_completed=completed,
        ).warning(
            f"Earnings cap enforced for member {member_id}: "
            f"excess={excess.value}, investments_completed={completed}"
        )

        return MemberCapOutcome(
            member_id=member_id,
            adjusted=True,
            excess_removed=excess.value,
            investments_completed=completed,
            transaction_id=entry.id,
        )

    async def get_member_ids(self) -> list[int]:
        """Members with at least one ACTIVE or COMPLETED investment."""
        async with self.session_maker() as session:
            return await InvestmentRepository(
                session
            ).get_member_ids_with_investments()

    async def run_sweep(self) -> SweepReport:
        """
        Run the sweep over all members with investments.

        Returns:
            SweepReport with totals and collected per-member errors
        """
        report = SweepReport()
        member_ids = await self.get_member_ids()
        report.total_members = len(member_ids)

        self.logger.bind(
            members=len(member_ids),
            cap_multiplier=str(self.config.earnings_cap_multiplier),
        ).info(f"Earnings cap sweep started: {len(member_ids)} members")

        for member_id in member_ids:
            try:
                outcome = await self.enforce_member(member_id)
            except Exception as e:
                report.errors.append(
                    f"Failed to process member {member_id}: {e}"
                )
                self.logger.bind(member_id=member_id).opt(exception=e).error(
                    "Earnings cap failed for member {}: {}", member_id, e
                )
                continue

            if outcome.adjusted:
                report.members_exceeding += 1
                report.members_adjusted += 1
                report.total_excess_removed += outcome.excess_removed
                report.investments_completed += outcome.investments_completed

        self.logger.bind(**report.to_dict()).info("Earnings cap sweep finished")
        return report
