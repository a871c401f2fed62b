"""
Tests for background jobs.

Covers:
- Sweep lock handling (acquired, held elsewhere, redis down)
- Scheduler job registration
- Health endpoints
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import redis.asyncio as redis
from aiohttp.test_utils import TestClient, TestServer

from jobs import health
from jobs.scheduler import ScheduledJob, create_scheduler, earnings_cap_job
from jobs.tasks.earnings_cap import LOCK_NAME, sweep_with_lock


@pytest.fixture
def redis_lock():
    """Redis client mock whose lock can be configured per test."""
    lock = MagicMock()
    lock.acquire = AsyncMock(return_value=True)
    lock.release = AsyncMock()
    client = MagicMock()
    client.lock.return_value = lock
    client.aclose = AsyncMock()
    return client, lock


class TestSweepWithLock:
    """jobs.tasks.earnings_cap.sweep_with_lock."""

    @pytest.mark.asyncio
    async def test_runs_and_releases(self, session_maker, redis_lock):
        """Sweep runs under the lock and releases it."""
        client, lock = redis_lock

        report = await sweep_with_lock(session_maker, client)

        assert report is not None
        assert report.total_members == 0
        client.lock.assert_called_once()
        assert client.lock.call_args.args[0] == LOCK_NAME
        lock.release.assert_awaited_once()
        client.aclose.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_skips_when_locked(self, session_maker, redis_lock):
        """Another worker holds the lock: nothing runs."""
        client, lock = redis_lock
        lock.acquire.return_value = False

        with patch(
            "jobs.tasks.earnings_cap.EarningsCapService"
        ) as service_class:
            report = await sweep_with_lock(session_maker, client)

        assert report is None
        service_class.assert_not_called()
        lock.release.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_runs_unlocked_when_redis_down(self, session_maker, redis_lock):
        """Redis errors do not block the sweep."""
        client, lock = redis_lock
        lock.acquire.side_effect = redis.ConnectionError("connection refused")

        report = await sweep_with_lock(session_maker, client)

        assert report is not None
        lock.release.assert_not_awaited()


class TestScheduler:
    """jobs.scheduler."""

    def test_enabled_jobs_scheduled(self):
        """Disabled jobs are skipped."""
        async def noop():
            return None

        scheduler = create_scheduler(
            [
                ScheduledJob(id="on", name="On", cron="0 0 * * *", func=noop),
                ScheduledJob(
                    id="off", name="Off", cron="0 1 * * *", func=noop, enabled=False
                ),
            ]
        )

        assert [job.id for job in scheduler.get_jobs()] == ["on"]

    def test_default_jobs(self):
        """Earnings cap sweep is scheduled by default."""
        scheduler = create_scheduler()

        assert scheduler.get_job("earnings_cap_sweep") is not None

    @pytest.mark.asyncio
    async def test_job_run_recorded(self):
        """Job outcome is kept for the health endpoint."""
        with patch(
            "jobs.tasks.earnings_cap.sweep_with_lock",
            AsyncMock(return_value=None),
        ):
            await earnings_cap_job()

        last = health._last_runs["earnings_cap_sweep"]
        assert last["success"] is True
        assert last["summary"] == {"skipped": True}


class TestHealthEndpoints:
    """jobs.health."""

    @pytest.mark.asyncio
    async def test_liveness_and_unhealthy_without_scheduler(self):
        """Liveness always answers; health needs a scheduler."""
        health._scheduler = None
        async with TestClient(TestServer(health.create_health_app())) as client:
            alive = await client.get("/liveness")
            status = await client.get("/health")
            ready = await client.get("/readiness")

            assert alive.status == 200
            assert status.status == 503
            assert ready.status == 503
