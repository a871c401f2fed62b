"""
Referral bonus engine.

Credits a one-time percentage of an investment to the purchaser's
direct sponsor. Only level 1 is paid; the level argument is recorded
for traceability.
"""

from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import (
    REFERRAL_LEVEL_DIRECT,
    BinaryPlanConfig,
    default_plan_config,
)
from app.models.enums import TransactionType
from app.models.wallet_transaction import WalletTransaction
from app.repositories.wallet_transaction_repository import (
    WalletTransactionRepository,
)
from app.utils.money import Amount


class ReferralBonusEngine:
    """Pays the direct sponsor bonus."""

    def __init__(
        self,
        session: AsyncSession,
        config: BinaryPlanConfig | None = None,
    ) -> None:
        """Initialize referral bonus engine."""
        self.session = session
        self.config = config or default_plan_config()
        self.tx_repo = WalletTransactionRepository(session)

    async def award(
        self,
        sponsor_id: int | None,
        source_member_name: str,
        level: int,
        base_amount: Decimal,
    ) -> WalletTransaction | None:
        """
        Credit a referral bonus to the sponsor.

        Args:
            sponsor_id: Direct sponsor ID (None or <= 0 means no sponsor)
            source_member_name: Name of the purchasing member
            level: Referral level (always 1 for purchases)
            base_amount: Invested token amount the bonus is computed on

        Returns:
            Created ledger entry, or None if nothing was paid
        """
        if not sponsor_id or sponsor_id <= 0:
            return None

        if level != REFERRAL_LEVEL_DIRECT:
            logger.bind(sponsor_id=sponsor_id, level=level).warning(
                f"Referral level {level} requested; only direct "
                f"sponsors are paid"
            )
            return None

        bonus = (
            Amount.tokens(base_amount) * self.config.referral_rate
        ).quantize(self.config.token_quantum)

        if bonus.value <= 0:
            return None

        entry = await self.tx_repo.append(
            member_id=sponsor_id,
            tx_type=TransactionType.REFERRAL_BONUS,
            in_amount=bonus.value,
            detail=(
                f"Level {level} referral bonus from {source_member_name}"
            ),
        )

        logger.bind(
            sponsor_id=sponsor_id,
            source=source_member_name,
            level=level,
            base_amount=str(base_amount),
            bonus=str(bonus.value),
        ).info(f"Referral bonus {bonus.value} credited to sponsor {sponsor_id}")
        return entry
