"""
Binary service.

Administrative entry point for pairing settlement outside a purchase.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import BinaryPlanConfig
from app.services.base_service import BaseService, log_operation, transaction
from app.services.binary import PairingSettlementEngine, SettlementResult


class BinaryService(BaseService):
    """Pairing settlement on demand."""

    def __init__(
        self,
        session: AsyncSession,
        config: BinaryPlanConfig | None = None,
    ) -> None:
        """Initialize binary service."""
        super().__init__(session, config)
        self.settlement_engine = PairingSettlementEngine(session, self.config)

    @log_operation
    @transaction
    async def settle_pairing(self, member_id: int) -> SettlementResult:
        """
        Settle one member's matched volume in its own transaction.

        Args:
            member_id: Member to settle

        Returns:
            SettlementResult (matched == 0 when nothing was settled)

        Raises:
            MemberNotFoundError: Unknown member
        """
        return await self.settlement_engine.settle(member_id)
