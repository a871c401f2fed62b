"""
Wallet transaction repository.

Data access layer for the append-only ledger. Balances are always
aggregated from APPROVED rows, never read from a stored field.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import ApprovalStatus, TransactionType
from app.models.wallet_transaction import WalletTransaction
from app.repositories.base import BaseRepository


class WalletTransactionRepository(BaseRepository[WalletTransaction]):
    """Ledger repository. Rows are inserted, never updated or deleted."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize wallet transaction repository."""
        super().__init__(WalletTransaction, session)

    async def append(
        self,
        member_id: int,
        tx_type: TransactionType,
        in_amount: Decimal = Decimal("0"),
        out_amount: Decimal = Decimal("0"),
        detail: str | None = None,
        reference: str | None = None,
        approval_status: ApprovalStatus = ApprovalStatus.APPROVED,
        created_by: str | None = None,
    ) -> WalletTransaction:
        """
        Append a ledger entry.

        Args:
            member_id: Owner of the entry
            tx_type: Entry type
            in_amount: Credit (non-negative)
            out_amount: Debit (non-negative)
            detail: Free-text description
            reference: External reference (tx hash)
            approval_status: Approval status
            created_by: Actor name (defaults to system)

        Returns:
            Created entry
        """
        data = {
            "member_id": member_id,
            "type": tx_type,
            "in_amount": in_amount,
            "out_amount": out_amount,
            "detail": detail,
            "reference": reference,
            "approval_status": approval_status,
        }
        if created_by:
            data["created_by"] = created_by
        return await self.create(**data)

    async def get_balance(self, member_id: int) -> Decimal:
        """
        Derive balance from APPROVED entries.

        Args:
            member_id: Member ID

        Returns:
            sum(in_amount) - sum(out_amount)
        """
        stmt = select(
            func.coalesce(func.sum(WalletTransaction.in_amount), 0),
            func.coalesce(func.sum(WalletTransaction.out_amount), 0),
        ).where(
            WalletTransaction.member_id == member_id,
            WalletTransaction.approval_status == ApprovalStatus.APPROVED,
        )
        result = await self.session.execute(stmt)
        total_in, total_out = result.one()
        return Decimal(str(total_in)) - Decimal(str(total_out))

    async def get_totals_by_type(
        self, member_id: int
    ) -> dict[str, tuple[Decimal, Decimal]]:
        """
        Sum APPROVED in/out amounts grouped by entry type.

        Args:
            member_id: Member ID

        Returns:
            Mapping type -> (total_in, total_out)
        """
        stmt = (
            select(
                WalletTransaction.type,
                func.coalesce(func.sum(WalletTransaction.in_amount), 0),
                func.coalesce(func.sum(WalletTransaction.out_amount), 0),
            )
            .where(
                WalletTransaction.member_id == member_id,
                WalletTransaction.approval_status == ApprovalStatus.APPROVED,
            )
            .group_by(WalletTransaction.type)
        )
        result = await self.session.execute(stmt)
        return {
            row[0]: (Decimal(str(row[1])), Decimal(str(row[2])))
            for row in result.all()
        }

    async def get_withdrawn_since(
        self, member_id: int, since: datetime
    ) -> Decimal:
        """
        Sum withdrawals in a rolling window.

        PENDING withdrawals count towards the window; REJECTED do not.

        Args:
            member_id: Member ID
            since: Window start

        Returns:
            Withdrawn amount since the given time
        """
        stmt = select(
            func.coalesce(func.sum(WalletTransaction.out_amount), 0)
        ).where(
            WalletTransaction.member_id == member_id,
            WalletTransaction.type == TransactionType.WITHDRAW,
            WalletTransaction.approval_status != ApprovalStatus.REJECTED,
            WalletTransaction.created_at >= since,
        )
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))

    async def reference_exists(
        self, tx_type: TransactionType, reference: str
    ) -> bool:
        """
        Check whether an external reference was already recorded.

        Args:
            tx_type: Entry type
            reference: External reference (tx hash)

        Returns:
            True if a row with this type and reference exists
        """
        stmt = select(func.count()).select_from(WalletTransaction).where(
            WalletTransaction.type == tx_type,
            func.lower(WalletTransaction.reference) == reference.lower(),
        )
        result = await self.session.execute(stmt)
        return (result.scalar() or 0) > 0

    async def get_by_member(
        self,
        member_id: int,
        tx_type: TransactionType | None = None,
    ) -> list[WalletTransaction]:
        """
        Get ledger entries of a member, oldest first.

        Args:
            member_id: Member ID
            tx_type: Optional type filter

        Returns:
            List of entries
        """
        filters: dict = {"member_id": member_id}
        if tx_type:
            filters["type"] = tx_type
        return await self.find_by(**filters)
