"""
Health check server for scheduler monitoring.

Provides HTTP endpoints for health, readiness and liveness probes.
"""

import asyncio
from typing import Any

from aiohttp import web
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.utils.datetime_utils import utc_now

# Global references for health checks
_scheduler: AsyncIOScheduler | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None
_last_runs: dict[str, dict[str, Any]] = {}


def set_scheduler(scheduler: AsyncIOScheduler) -> None:
    """
    Set the scheduler instance for health checks.

    Args:
        scheduler: AsyncIOScheduler instance to monitor
    """
    global _scheduler
    _scheduler = scheduler
    logger.info("Scheduler registered for health checks")


def set_session_maker(session_maker: async_sessionmaker[AsyncSession]) -> None:
    """Register the session factory used by the readiness database ping."""
    global _session_maker
    _session_maker = session_maker


def record_job_run(job_id: str, success: bool, summary: dict[str, Any]) -> None:
    """
    Remember the outcome of the latest run of a job.

    Args:
        job_id: Job identifier
        success: Whether the run finished without errors
        summary: Short result summary shown by /health
    """
    _last_runs[job_id] = {
        "finished_at": utc_now().isoformat(),
        "success": success,
        "summary": summary,
    }


async def health_handler(request: web.Request) -> web.Response:
    """
    Health check endpoint.

    Returns:
        JSON response with scheduler status and latest job runs
    """
    if _scheduler is None:
        return web.json_response(
            {
                "status": "unhealthy",
                "error": "Scheduler not initialized",
            },
            status=503,
        )

    is_running = _scheduler.running
    job_info = [
        {
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
            "last_run": _last_runs.get(job.id),
        }
        for job in _scheduler.get_jobs()
    ]

    return web.json_response(
        {
            "status": "healthy" if is_running else "stopped",
            "scheduler_running": is_running,
            "jobs_count": len(job_info),
            "jobs": job_info,
        },
        status=200 if is_running else 503,
    )


async def readiness_handler(request: web.Request) -> web.Response:
    """
    Readiness check endpoint.

    Ready when the scheduler runs and the database answers.
    """
    if _scheduler is None or not _scheduler.running:
        return web.json_response(
            {"status": "not_ready", "ready": False, "reason": "scheduler"},
            status=503,
        )

    if _session_maker is not None:
        try:
            async with _session_maker() as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning(f"Readiness database ping failed: {e}")
            return web.json_response(
                {"status": "not_ready", "ready": False, "reason": "database"},
                status=503,
            )

    return web.json_response({"status": "ready", "ready": True})


async def liveness_handler(request: web.Request) -> web.Response:
    """Liveness check endpoint."""
    return web.json_response({"status": "alive", "alive": True})


def create_health_app() -> web.Application:
    """Build the health check application."""
    app = web.Application()
    app.router.add_get("/health", health_handler)
    app.router.add_get("/readiness", readiness_handler)
    app.router.add_get("/liveness", liveness_handler)
    return app


async def start_health_server(
    host: str = "0.0.0.0",
    port: int = 8081,
) -> tuple[web.AppRunner, web.TCPSite]:
    """
    Start health check server.

    Args:
        host: Host to bind to
        port: Port to bind to

    Returns:
        Tuple of (AppRunner, TCPSite) for cleanup
    """
    runner = web.AppRunner(create_health_app())
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Health check server started on {host}:{port}")
    return runner, site


async def stop_health_server(
    runner: web.AppRunner,
    timeout: int = 5,
) -> None:
    """
    Stop health check server gracefully.

    Args:
        runner: AppRunner to cleanup
        timeout: Maximum time to wait for cleanup in seconds
    """
    logger.info("Stopping health check server...")
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
        logger.info("Health check server stopped successfully")
    except TimeoutError:
        logger.warning(f"Health check server cleanup timed out after {timeout}s")
