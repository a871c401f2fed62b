"""
Pairing settlement.

Matches a member's left and right volume, credits the pairing bonus and
removes the matched volume from both legs. Settlement is per member; it
never cascades to ancestors.
"""

from dataclasses import dataclass
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import BinaryPlanConfig, default_plan_config
from app.models.enums import PvEvent, TransactionType
from app.repositories.member_repository import MemberRepository
from app.repositories.pv_history_repository import PvHistoryRepository
from app.repositories.wallet_transaction_repository import (
    WalletTransactionRepository,
)
from app.utils.exceptions import MemberNotFoundError
from app.utils.money import Amount


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of one settlement."""

    member_id: int
    matched: Decimal
    bonus: Decimal
    left_volume: Decimal
    right_volume: Decimal
    transaction_id: int | None = None

    @property
    def settled(self) -> bool:
        """True if any volume was matched."""
        return self.matched > 0

    def to_dict(self) -> dict:
        """Serialize for API responses."""
        return {
            "member_id": self.member_id,
            "matched": str(self.matched),
            "bonus": str(self.bonus),
            "left_volume": str(self.left_volume),
            "right_volume": str(self.right_volume),
            "transaction_id": self.transaction_id,
        }


class PairingSettlementEngine:
    """Settles matched leg volume for one member."""

    def __init__(
        self,
        session: AsyncSession,
        config: BinaryPlanConfig | None = None,
    ) -> None:
        """Initialize settlement engine."""
        self.session = session
        self.config = config or default_plan_config()
        self.member_repo = MemberRepository(session)
        self.tx_repo = WalletTransactionRepository(session)
        self.history_repo = PvHistoryRepository(session)

    async def settle(self, member_id: int) -> SettlementResult:
        """
        Settle pairing volume of a member.

        matched = min(left, right). Zero matched volume is a no-op.

        Args:
            member_id: Member to settle

        Returns:
            SettlementResult (matched == 0 when nothing was settled)

        Raises:
            MemberNotFoundError: Member does not exist
        """
        # Pending volume updates must be visible to the locked read
        await self.session.flush()

        member = await self.member_repo.get_for_update(member_id)
        if member is None:
            raise MemberNotFoundError(
                f"Member {member_id} not found",
                details={"member_id": member_id},
            )

        left = Decimal(member.left_volume)
        right = Decimal(member.right_volume)
        matched = min(left, right)

        if matched <= 0:
            logger.bind(
                member_id=member_id, left=str(left), right=str(right)
            ).debug("Nothing to settle")
            return SettlementResult(
                member_id=member_id,
                matched=Decimal("0"),
                bonus=Decimal("0"),
                left_volume=left,
                right_volume=right,
            )

        bonus = (
            Amount.tokens(matched) * self.config.pairing_rate
        ).quantize(self.config.token_quantum)

        transaction_id = None
        if bonus.value > 0:
            entry = await self.tx_repo.append(
                member_id=member_id,
                tx_type=TransactionType.PAIRING_BONUS,
                in_amount=bonus.value,
                detail=(
                    f"Pairing bonus: matched {matched} at "
                    f"{self.config.pairing_rate}"
                ),
            )
            transaction_id = entry.id

        await self.member_repo.deduct_matched_volume(member_id, matched)
        await self.history_repo.record(
            PvEvent.SETTLEMENT,
            from_member_id=member_id,
            to_member_id=member_id,
            left_delta=-matched,
            right_delta=-matched,
        )
        await self.session.flush()

        logger.bind(
            member_id=member_id, matched=str(matched), bonus=str(bonus.value)
        ).info(
            f"Pairing settled for member {member_id}: "
            f"matched={matched}, bonus={bonus.value}"
        )

        return SettlementResult(
            member_id=member_id,
            matched=matched,
            bonus=bonus.value,
            left_volume=left - matched,
            right_volume=right - matched,
            transaction_id=transaction_id,
        )
