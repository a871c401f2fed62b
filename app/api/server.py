"""
HTTP API server.

aiohttp application exposing the member, investment, wallet and admin
operations. Authentication happens upstream; the gateway forwards the
verified member id in a header.
"""

import asyncio

from aiohttp import web
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.middlewares import error_middleware
from app.api.routes import routes
from app.api.state import ADMIN_TOKEN, PLAN_CONFIG, PRICE_ORACLE, SESSION_MAKER
from app.config.business_constants import BinaryPlanConfig, default_plan_config
from app.config.logging import setup_logging
from app.config.settings import settings
from app.services.price_oracle import PriceOracle, create_price_oracle


async def _close_oracle(app: web.Application) -> None:
    close = getattr(app[PRICE_ORACLE], "close", None)
    if close is not None:
        await close()


def create_app(
    session_maker: async_sessionmaker[AsyncSession] | None = None,
    price_oracle: PriceOracle | None = None,
    config: BinaryPlanConfig | None = None,
    admin_token: str | None = None,
) -> web.Application:
    """
    Build the aiohttp application.

    Args:
        session_maker: Session factory (defaults to the configured database)
        price_oracle: Token price source (defaults to settings)
        config: Plan rates and limits (defaults to settings)
        admin_token: Token required by admin routes (defaults to settings)

    Returns:
        Configured application
    """
    if session_maker is None:
        from app.config.database import async_session_maker

        session_maker = async_session_maker

    app = web.Application(middlewares=[error_middleware])
    app[SESSION_MAKER] = session_maker
    app[PRICE_ORACLE] = price_oracle or create_price_oracle()
    app[PLAN_CONFIG] = config or default_plan_config()
    app[ADMIN_TOKEN] = admin_token or settings.admin_api_token or ""
    app.add_routes(routes)
    app.on_cleanup.append(_close_oracle)
    return app


async def run_api() -> None:
    """Serve the API until cancelled."""
    app = create_app()
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, settings.api_host, settings.api_port)
    await site.start()

    logger.info(f"API server started on {settings.api_host}:{settings.api_port}")

    try:
        await asyncio.Event().wait()
    finally:
        logger.info("Stopping API server...")
        await runner.cleanup()


def main() -> None:
    """Console entry point."""
    setup_logging(settings.log_level, settings.log_file)
    try:
        asyncio.run(run_api())
    except KeyboardInterrupt:
        logger.info("API server stopped by user")


if __name__ == "__main__":
    main()
