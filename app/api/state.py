"""Typed application keys shared by the server and route handlers."""

from aiohttp import web
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.business_constants import BinaryPlanConfig
from app.services.price_oracle import PriceOracle


SESSION_MAKER = web.AppKey("session_maker", async_sessionmaker[AsyncSession])
PRICE_ORACLE = web.AppKey("price_oracle", PriceOracle)
PLAN_CONFIG = web.AppKey("plan_config", BinaryPlanConfig)
ADMIN_TOKEN = web.AppKey("admin_token", str)
