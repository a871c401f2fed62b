"""
Token price oracle.

Looks up the current platform token price in USD. The purchase
orchestrator treats a zero price as unavailable.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Protocol

import aiohttp
from loguru import logger

from app.config.settings import Settings, settings


class PriceOracle(Protocol):
    """Returns token price in USD (0 when unavailable)."""

    async def get_token_price_usd(self) -> Decimal: ...


class FixedPriceOracle:
    """Static price, for local runs and tests."""

    def __init__(self, price: Decimal | str | int) -> None:
        self.price = Decimal(str(price))

    async def get_token_price_usd(self) -> Decimal:
        return self.price


def _extract_price(payload: Any) -> Any:
    """data.attributes.base_token_price_usd, or None if the shape differs."""
    node = payload
    for key in ("data", "attributes", "base_token_price_usd"):
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


class GeckoTerminalPriceOracle:
    """
    Reads base_token_price_usd of a DEX pool from the GeckoTerminal API.

    Failures are logged and reported as price 0.
    """

    def __init__(self, url: str, timeout_seconds: float = 10.0) -> None:
        """
        Initialize oracle.

        Args:
            url: Pool endpoint URL
            timeout_seconds: Total request timeout
        """
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def get_token_price_usd(self) -> Decimal:
        """
        Fetch current price.

        Returns:
            Price in USD, or Decimal(0) on any lookup failure
        """
        try:
            session = await self._get_session()
            async with session.get(
                self.url,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                headers={"Accept": "application/json"},
            ) as response:
                if response.status != 200:
                    logger.warning(f"Price oracle error: HTTP {response.status}")
                    return Decimal("0")
                data = await response.json()
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.error(f"Price oracle request failed: {e}")
            return Decimal("0")
        except ValueError as e:
            logger.warning(f"Price oracle returned invalid JSON: {e}")
            return Decimal("0")

        raw = _extract_price(data)
        try:
            price = Decimal(str(raw)) if raw is not None else Decimal("0")
        except InvalidOperation:
            logger.warning(f"Price oracle returned malformed price: {raw!r}")
            return Decimal("0")

        if not price.is_finite() or price < 0:
            return Decimal("0")

        logger.debug(f"Token price from oracle: {price}")
        return price


def create_price_oracle(source: Settings | None = None) -> PriceOracle:
    """
    Build the configured oracle.

    A fixed price in settings bypasses the HTTP lookup.
    """
    source = source or settings
    if source.fixed_token_price_usd is not None:
        return FixedPriceOracle(source.fixed_token_price_usd)
    return GeckoTerminalPriceOracle(
        source.price_oracle_url,
        timeout_seconds=source.price_oracle_timeout_seconds,
    )
