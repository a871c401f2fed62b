"""
Investment service.

Package purchase orchestration: investment row, referral bonus, volume
propagation and the purchaser's own pairing settlement run as one unit
of work. Any failure rolls the whole purchase back.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, time, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import (
    MAX_LEDGER_AMOUNT,
    MIN_TOKEN_PRICE_USD,
    REFERRAL_LEVEL_DIRECT,
    BinaryPlanConfig,
)
from app.models.enums import InvestmentStatus
from app.models.investment import Investment
from app.models.package import Package
from app.repositories.investment_repository import InvestmentRepository
from app.repositories.member_repository import MemberRepository
from app.repositories.package_repository import PackageRepository
from app.services.base_service import BaseService, log_operation, transaction
from app.services.binary import (
    PairingSettlementEngine,
    PropagationResult,
    PvPropagationEngine,
    SettlementResult,
)
from app.services.price_oracle import PriceOracle, create_price_oracle
from app.services.referral import ReferralBonusEngine
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import (
    InvalidInputError,
    MemberNotFoundError,
    PackageNotFoundError,
    PriceUnavailableError,
)
from app.utils.money import Amount, usd_to_tokens
from app.validators.unified import normalize_wallet_address


@dataclass
class PurchaseResult:
    """Outcome of a committed purchase."""

    investment: Investment
    package: Package
    token_price_usd: Decimal
    referral_bonus: Decimal
    propagation: PropagationResult
    settlement: SettlementResult

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "member_id": self.investment.member_id,
            "package": {
                "id": self.package.id,
                "name": self.package.name,
                "percent_yield": str(self.package.percent_yield),
                "period_days": self.package.period_days,
                "usd_amount": str(self.package.usd_amount),
            },
            "investment": {
                "id": self.investment.id,
                "invested_amount": str(self.investment.invested_amount),
                "token_price_usd": str(self.token_price_usd),
                "next_yield_date": self.investment.next_yield_date.isoformat(),
                "detail": self.investment.detail,
                "status": self.investment.status,
            },
            "referral_bonus": str(self.referral_bonus),
            "ancestors_credited": self.propagation.hops,
            "settlement": self.settlement.to_dict(),
        }


class InvestmentService(BaseService):
    """Package purchases."""

    def __init__(
        self,
        session: AsyncSession,
        price_oracle: PriceOracle | None = None,
        config: BinaryPlanConfig | None = None,
    ) -> None:
        """
        Initialize investment service.

        Args:
            session: Async database session
            price_oracle: Token price source (defaults to settings)
            config: Plan rates and limits
        """
        super().__init__(session, config)
        self.price_oracle = price_oracle or create_price_oracle()
        self.member_repo = MemberRepository(session)
        self.package_repo = PackageRepository(session)
        self.investment_repo = InvestmentRepository(session)
        self.referral_engine = ReferralBonusEngine(session, self.config)
        self.propagation_engine = PvPropagationEngine(session, self.config)
        self.settlement_engine = PairingSettlementEngine(session, self.config)

    @log_operation
    @transaction
    async def purchase_package(
        self,
        member_id: int,
        package_id: int,
        is_admin_action: bool = False,
    ) -> PurchaseResult:
        """
        Buy a package.

        Steps: load package, convert USD price to tokens, insert the
        ACTIVE investment, pay the direct sponsor, propagate volume,
        settle the purchaser. All-or-nothing.

        Args:
            member_id: Purchasing member
            package_id: Package to buy
            is_admin_action: Purchase placed by an administrator

        Returns:
            PurchaseResult

        Raises:
            MemberNotFoundError: Unknown member
            PackageNotFoundError: Package absent or disabled
            PriceUnavailableError: Price lookup returned zero
        """
        member = await self.member_repo.get_by_id(member_id)
        if member is None or not member.is_active:
            raise MemberNotFoundError(
                f"Member {member_id} not found",
                details={"member_id": member_id},
            )

        package = await self.package_repo.get_enabled(package_id)
        if package is None:
            raise PackageNotFoundError(
                "Package not found or disabled",
                details={"package_id": package_id},
            )

        price = await self.price_oracle.get_token_price_usd()
        if not price or price < MIN_TOKEN_PRICE_USD:
            raise PriceUnavailableError(
                "Cannot load token price", details={"price": str(price)}
            )

        usd = Amount.usd(package.usd_amount)
        tokens = usd_to_tokens(usd, price, self.config.token_quantum)
        if tokens.value > MAX_LEDGER_AMOUNT:
            raise PriceUnavailableError(
                "Token price too low to convert package price",
                details={"price": str(price), "tokens": str(tokens.value)},
            )

        now = utc_now()
        prefix = "Admin Action - " if is_admin_action else ""
        investment = await self.investment_repo.create(
            member_id=member.id,
            package_id=package.id,
            invested_amount=tokens.value,
            usd_amount=package.usd_amount,
            token_price_usd=price,
            status=InvestmentStatus.ACTIVE,
            detail=f"{prefix}By token ({package.usd_amount} USD)",
            purchase_date=now,
            next_yield_date=now + self.config.yield_delay,
        )

        referral_entry = await self.referral_engine.award(
            sponsor_id=member.sponsor_id,
            source_member_name=member.full_name or f"Member {member.id}",
            level=REFERRAL_LEVEL_DIRECT,
            base_amount=tokens.value,
        )

        propagation = await self.propagation_engine.propagate(
            member.id, tokens.value
        )
        settlement = await self.settlement_engine.settle(member.id)

        self.logger.bind(
            member_id=member.id,
            package_id=package.id,
            usd_amount=str(usd.value),
            token_price_usd=str(price),
            tokens=str(tokens.value),
            ancestors_credited=propagation.hops,
        ).info(f"Package {package.id} purchased by member {member.id}")

        return PurchaseResult(
            investment=investment,
            package=package,
            token_price_usd=price,
            referral_bonus=(
                referral_entry.in_amount if referral_entry else Decimal("0")
            ),
            propagation=propagation,
            settlement=settlement,
        )

    @log_operation
    async def purchase_for_wallet(
        self, wallet_address: str, package_id: int
    ) -> PurchaseResult:
        """
        Buy a package on behalf of the member owning a wallet.

        Args:
            wallet_address: Wallet of the purchasing member
            package_id: Package to buy

        Returns:
            PurchaseResult

        Raises:
            InvalidInputError: Malformed wallet address
            MemberNotFoundError: No member owns the wallet
        """
        try:
            wallet = normalize_wallet_address(wallet_address)
        except ValueError as e:
            raise InvalidInputError(
                f"Invalid wallet address: {e}",
                details={"field": "wallet_address"},
            ) from e

        member = await self.member_repo.get_by_wallet_address(wallet)
        if member is None:
            raise MemberNotFoundError(
                "Member not found for wallet address",
                details={"wallet_address": wallet},
            )
        return await self.purchase_package(
            member.id, package_id, is_admin_action=True
        )

    async def get_daily_purchase_totals(
        self, now: datetime | None = None
    ) -> list[dict[str, Any]]:
        """
        USD purchase totals per calendar day, newest day first.

        Days are counted in the configured report offset and days with
        no purchases are reported as zero.

        Args:
            now: Reference moment (defaults to the current time)

        Returns:
            [{"day": "YYYY-MM-DD", "total_amount": "..."}] for each day
        """
        offset = self.config.report_utc_offset
        days = self.config.daily_invest_report_days
        today = ((now or utc_now()).astimezone(UTC) + offset).date()
        first_day = today - timedelta(days=days - 1)
        since = datetime.combine(first_day, time.min, tzinfo=UTC) - offset

        totals = {today - timedelta(days=i): Decimal("0") for i in range(days)}
        for purchased_at, usd_amount in (
            await self.investment_repo.get_purchases_since(since)
        ):
            if purchased_at.tzinfo is None:
                purchased_at = purchased_at.replace(tzinfo=UTC)
            day = (purchased_at.astimezone(UTC) + offset).date()
            if day in totals:
                totals[day] += usd_amount

        return [
            {"day": day.isoformat(), "total_amount": str(total)}
            for day, total in totals.items()
        ]
