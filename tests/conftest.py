"""Pytest configuration and shared fixtures for all tests."""

import itertools
import os
import sys
from decimal import Decimal
from pathlib import Path

# Минимальные переменные окружения для тестов (до импорта settings)
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ADMIN_API_TOKEN", "test-admin-token-" + "0" * 16)
os.environ.setdefault("FIXED_TOKEN_PRICE_USD", "0.5")

# Добавить корень проекта в PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import create_async_engine

from app.config.business_constants import BinaryPlanConfig
from app.config.database import create_session_maker
from app.models import Base, Member, MemberSide, Package, WalletTransaction
from app.models.enums import TransactionType
from app.services.price_oracle import FixedPriceOracle


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Throw-away SQLite database with all tables."""
    db_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
def session_maker(engine):
    """Session factory bound to the test database."""
    return create_session_maker(engine)


@pytest_asyncio.fixture
async def session(session_maker):
    """Database session for a single test."""
    async with session_maker() as db_session:
        yield db_session


@pytest.fixture
def plan_config():
    """Default plan rates and limits."""
    return BinaryPlanConfig()


@pytest.fixture
def price_oracle():
    """Token priced at 0.5 USD."""
    return FixedPriceOracle(Decimal("0.5"))


def wallet_for(n: int) -> str:
    """Deterministic valid wallet address."""
    return f"0x{n:040x}"


def tx_hash_for(n: int) -> str:
    """Deterministic valid transaction hash."""
    return f"0x{n:064x}"


@pytest.fixture
def member_factory(session):
    """
    Insert members directly (bypassing placement).

    Usage:
        root = await member_factory()
        left = await member_factory(parent=root, side=MemberSide.LEFT)
    """
    counter = itertools.count(1)

    async def create(
        parent: Member | None = None,
        side: MemberSide = MemberSide.NONE,
        sponsor: Member | None = None,
        **overrides,
    ) -> Member:
        n = next(counter)
        sponsor = sponsor or parent
        data = {
            "first_name": f"Member{n}",
            "last_name": "Test",
            "wallet_address": wallet_for(n),
            "referral_code": f"REF{n:05d}",
            "parent_id": parent.id if parent else None,
            "sponsor_id": sponsor.id if sponsor else None,
            "side": side,
        }
        data.update(overrides)
        member = Member(**data)
        session.add(member)
        await session.commit()
        return member

    return create


@pytest.fixture
def package_factory(session):
    """Insert packages."""

    async def create(
        usd_amount: Decimal = Decimal("100"), **overrides
    ) -> Package:
        data = {
            "name": f"Package {usd_amount}",
            "percent_yield": Decimal("0.50"),
            "period_days": 365,
            "usd_amount": usd_amount,
            "is_enabled": True,
            "display_order": 0,
        }
        data.update(overrides)
        package = Package(**data)
        session.add(package)
        await session.commit()
        return package

    return create


@pytest.fixture
def ledger_entry(session):
    """Insert ledger entries directly."""

    async def create(
        member: Member,
        tx_type: TransactionType = TransactionType.DEPOSIT,
        in_amount: Decimal = Decimal("0"),
        out_amount: Decimal = Decimal("0"),
        **overrides,
    ) -> WalletTransaction:
        entry = WalletTransaction(
            member_id=member.id,
            type=tx_type,
            in_amount=in_amount,
            out_amount=out_amount,
            **overrides,
        )
        session.add(entry)
        await session.commit()
        return entry

    return create


@pytest.fixture
def make_wallet():
    """Deterministic valid wallet address factory."""
    return wallet_for


@pytest.fixture
def make_tx_hash():
    """Deterministic valid transaction hash factory."""
    return tx_hash_for


@pytest.fixture
def count_rows(session_maker):
    """Count rows of a table in a fresh session."""

    async def count(model) -> int:
        async with session_maker() as fresh:
            result = await fresh.execute(
                select(func.count()).select_from(model)
            )
            return result.scalar_one()

    return count
