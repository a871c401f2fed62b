"""
Job scheduler.

Runs periodic jobs in-process with APScheduler and exposes the health
check server for monitoring.

Usage:
    python -m jobs.scheduler            # run until stopped
    python -m jobs.scheduler list       # show configured jobs
    python -m jobs.scheduler run-once   # run the earnings cap sweep now
"""

import argparse
import asyncio
import signal
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from app.config.logging import setup_logging
from app.config.settings import settings
from jobs.health import (
    record_job_run,
    set_scheduler,
    set_session_maker,
    start_health_server,
    stop_health_server,
)


@dataclass(frozen=True)
class ScheduledJob:
    """Periodic job definition."""

    id: str
    name: str
    cron: str
    func: Callable[[], Awaitable[None]]
    enabled: bool = True


async def earnings_cap_job() -> None:
    """Earnings cap sweep with timing; failures are logged, not raised."""
    from jobs.tasks.earnings_cap import sweep_with_lock

    start = time.monotonic()
    logger.info("Starting Earnings Cap Sweep")
    try:
        report = await sweep_with_lock()
    except Exception as e:
        logger.exception(
            f"Earnings Cap Sweep failed after "
            f"{time.monotonic() - start:.1f}s: {e}"
        )
        record_job_run("earnings_cap_sweep", False, {"error": str(e)})
        return

    duration = time.monotonic() - start
    if report is None:
        logger.info(f"Earnings Cap Sweep skipped ({duration:.1f}s)")
        record_job_run("earnings_cap_sweep", True, {"skipped": True})
        return
    logger.bind(**report.to_dict()).info(
        f"Earnings Cap Sweep completed in {duration:.1f}s"
    )
    record_job_run("earnings_cap_sweep", report.success, report.to_dict())


def get_jobs() -> list[ScheduledJob]:
    """Configured periodic jobs."""
    return [
        ScheduledJob(
            id="earnings_cap_sweep",
            name="Earnings Cap Sweep",
            cron=settings.earnings_cap_cron,
            func=earnings_cap_job,
        ),
    ]


def create_scheduler(jobs: list[ScheduledJob] | None = None) -> AsyncIOScheduler:
    """
    Build scheduler with all enabled jobs.

    Args:
        jobs: Job definitions (defaults to get_jobs())

    Returns:
        Configured, not yet started scheduler
    """
    scheduler = AsyncIOScheduler(timezone="UTC")
    for job in jobs if jobs is not None else get_jobs():
        if not job.enabled:
            logger.info(f"Job {job.name} disabled, not scheduled")
            continue
        scheduler.add_job(
            job.func,
            CronTrigger.from_crontab(job.cron, timezone="UTC"),
            id=job.id,
            name=job.name,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        logger.info(f"Scheduled {job.name}: '{job.cron}' (UTC)")
    return scheduler


async def run_scheduler() -> None:
    """Run scheduler and health server until SIGINT/SIGTERM."""
    scheduler = create_scheduler()
    scheduler.start()
    set_scheduler(scheduler)

    from app.config.database import async_session_maker

    set_session_maker(async_session_maker)

    runner = None
    try:
        runner, _ = await start_health_server(port=settings.health_check_port)
    except OSError as e:
        logger.warning(f"Failed to start health check server: {e}")

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass

    logger.info("Scheduler started")
    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down scheduler...")
        scheduler.shutdown(wait=False)
        if runner is not None:
            await stop_health_server(runner)


def list_jobs() -> None:
    """Print configured jobs."""
    for job in get_jobs():
        status = "enabled" if job.enabled else "disabled"
        print(f"{job.id:<24} {job.cron:<16} {status:<9} {job.name}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Background job scheduler")
    parser.add_argument(
        "command",
        nargs="?",
        default="run",
        choices=("run", "run-once", "list"),
        help="run (default), run-once (sweep now) or list",
    )
    args = parser.parse_args()

    setup_logging(settings.log_level, settings.log_file)

    if args.command == "list":
        list_jobs()
    elif args.command == "run-once":
        asyncio.run(earnings_cap_job())
    else:
        asyncio.run(run_scheduler())


if __name__ == "__main__":
    main()
