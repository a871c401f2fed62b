"""
Earnings cap task.

Runs the earnings cap sweep over all members with investments. Scheduled
daily by jobs.scheduler; can also be enqueued through dramatiq.
"""

import asyncio

import dramatiq
import redis.asyncio as redis
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.services.earnings_cap_service import EarningsCapService, SweepReport
from app.utils.redis_utils import get_redis_client
from jobs.broker import broker
from jobs.utils.database import create_task_session_maker


LOCK_NAME = "earnings_cap_sweep"
LOCK_TIMEOUT_SECONDS = 3600


async def sweep_with_lock(
    session_maker: async_sessionmaker[AsyncSession] | None = None,
    redis_client: redis.Redis | None = None,
) -> SweepReport | None:
    """
    Run one sweep unless another worker holds the sweep lock.

    Redis being unreachable does not block the sweep: per-member row
    locks keep a concurrent run from deducting twice.

    Args:
        session_maker: Session factory (defaults to a NullPool task engine)
        redis_client: Redis client for the lock (defaults to settings)

    Returns:
        SweepReport, or None if the sweep was skipped
    """
    engine = None
    if session_maker is None:
        engine, session_maker = create_task_session_maker()

    owns_client = redis_client is None
    client = redis_client or get_redis_client()
    lock = client.lock(LOCK_NAME, timeout=LOCK_TIMEOUT_SECONDS)
    acquired = False

    try:
        try:
            acquired = await lock.acquire(blocking=False)
            if not acquired:
                logger.info("Earnings cap sweep already running, skipping")
                return None
        except redis.RedisError as e:
            logger.warning(f"Sweep lock unavailable, running unlocked: {e}")

        service = EarningsCapService(session_maker)
        return await service.run_sweep()
    finally:
        if acquired:
            try:
                await lock.release()
            except redis.RedisError as e:
                logger.warning(f"Failed to release sweep lock: {e}")
        if owns_client:
            await client.aclose()
        if engine is not None:
            await engine.dispose()


@dramatiq.actor(broker=broker, max_retries=3, time_limit=LOCK_TIMEOUT_SECONDS * 1000)
def run_earnings_cap_sweep() -> None:
    """Dramatiq entry point for the earnings cap sweep."""
    logger.info("Starting earnings cap sweep...")

    report = asyncio.run(sweep_with_lock())
    if report is None:
        return

    if report.success:
        logger.info(
            f"Earnings cap sweep complete: {report.members_adjusted} of "
            f"{report.total_members} members adjusted, "
            f"excess removed: {report.total_excess_removed}"
        )
    else:
        logger.bind(errors=report.errors).error(
            f"Earnings cap sweep finished with {len(report.errors)} errors"
        )
