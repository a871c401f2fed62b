"""
Package service.

Read-only package catalogue.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.package import Package
from app.repositories.package_repository import PackageRepository
from app.services.base_service import BaseService


def package_to_dict(package: Package) -> dict[str, Any]:
    """Serialize a package for API responses."""
    return {
        "id": package.id,
        "name": package.name,
        "percent_yield": str(package.percent_yield),
        "period_days": package.period_days,
        "usd_amount": str(package.usd_amount),
        "display_order": package.display_order,
    }


class PackageService(BaseService):
    """Package catalogue."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize package service."""
        super().__init__(session)
        self.package_repo = PackageRepository(session)

    async def list_enabled(self) -> list[dict[str, Any]]:
        """Enabled packages in display order."""
        packages = await self.package_repo.list_enabled()
        return [package_to_dict(package) for package in packages]
