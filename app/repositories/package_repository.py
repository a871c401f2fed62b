"""
Package repository.

Read-only access to the package catalogue.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.package import Package
from app.repositories.base import BaseRepository


class PackageRepository(BaseRepository[Package]):
    """Package repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize package repository."""
        super().__init__(Package, session)

    async def get_enabled(self, package_id: int) -> Package | None:
        """
        Get package if it exists and is enabled.

        Args:
            package_id: Package ID

        Returns:
            Package or None
        """
        return await self.get_by(id=package_id, is_enabled=True)

    async def list_enabled(self) -> list[Package]:
        """Get enabled packages in display order."""
        stmt = (
            select(Package)
            .where(Package.is_enabled.is_(True))
            .order_by(Package.display_order, Package.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
