"""
HTTP API.

aiohttp boundary over the member, investment and wallet services.
"""

from app.api.server import create_app


__all__ = ["create_app"]
