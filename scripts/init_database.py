#!/usr/bin/env python3
"""
Initialize database tables and seed data for local runs.

Creates all tables, a default package catalogue and, when a wallet is
given, the root member of the binary tree.

Usage:
    python scripts/init_database.py
    python scripts/init_database.py --root-wallet 0x... --root-name "Root Admin"
"""

import argparse
import asyncio
import sys
from decimal import Decimal
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.database import create_engine
from app.config.settings import settings
from app.models import Base, Package
from app.repositories.member_repository import MemberRepository
from app.repositories.package_repository import PackageRepository
from app.services.member_service import MemberService

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


# name, percent_yield, period_days, usd_amount
DEFAULT_PACKAGES = (
    ("Starter", Decimal("0.50"), 365, Decimal("100")),
    ("Silver", Decimal("0.60"), 365, Decimal("500")),
    ("Gold", Decimal("0.70"), 365, Decimal("1000")),
    ("Platinum", Decimal("0.80"), 365, Decimal("5000")),
)


async def seed_packages(session: AsyncSession) -> None:
    """Insert the default catalogue if no packages exist."""
    repo = PackageRepository(session)
    if await repo.count() > 0:
        logger.info("Packages already present, skipping catalogue seed")
        return

    for order, (name, percent, days, usd) in enumerate(DEFAULT_PACKAGES):
        session.add(
            Package(
                name=name,
                percent_yield=percent,
                period_days=days,
                usd_amount=usd,
                is_enabled=True,
                display_order=order,
            )
        )
    await session.commit()
    logger.info(f"Seeded {len(DEFAULT_PACKAGES)} packages")


async def seed_root(
    session: AsyncSession, wallet_address: str, name: str
) -> None:
    """Register the root member if the tree is empty."""
    if await MemberRepository(session).get_root() is not None:
        logger.info("Root member already present, skipping")
        return

    first_name, _, last_name = name.partition(" ")
    result = await MemberService(session).register_member(
        first_name=first_name,
        last_name=last_name or first_name,
        wallet_address=wallet_address,
    )
    logger.info(
        f"Root member created: id={result['member_id']}, "
        f"referral_code={result['referral_code']}"
    )


async def init_database(root_wallet: str | None, root_name: str) -> None:
    """Create all database tables and seed reference data."""
    logger.info("Connecting to database...")
    engine = create_engine(settings.database_url)

    async with engine.begin() as conn:
        logger.info("Creating tables (checkfirst=True)...")
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_maker() as session:
        await seed_packages(session)
        if root_wallet:
            await seed_root(session, root_wallet, root_name)
        else:
            logger.info("No --root-wallet given, root member not created")

    await engine.dispose()
    logger.success("Database initialized successfully!")


def main() -> None:
    parser = argparse.ArgumentParser(description="Initialize database")
    parser.add_argument("--root-wallet", help="Wallet address of the root member")
    parser.add_argument(
        "--root-name", default="Root Member", help="Root member full name"
    )
    args = parser.parse_args()
    asyncio.run(init_database(args.root_wallet, args.root_name))


if __name__ == "__main__":
    main()
