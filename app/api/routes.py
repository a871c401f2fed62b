"""
HTTP route handlers.

Thin boundary: parse the request, call one service operation, wrap the
result. Each request gets its own session.
"""

import json
from typing import Any

from aiohttp import web

from app.api.middlewares import get_member_id, require_admin
from app.api.state import ADMIN_TOKEN, PLAN_CONFIG, PRICE_ORACLE, SESSION_MAKER
from app.services.base_service import ServiceResult
from app.services.binary_service import BinaryService
from app.services.earnings_cap_service import EarningsCapService
from app.services.investment_service import InvestmentService
from app.services.member_service import MemberService
from app.services.package_service import PackageService
from app.services.wallet_service import WalletService
from app.utils.exceptions import InvalidInputError


routes = web.RouteTableDef()


def ok(data: Any = None) -> web.Response:
    """Successful JSON response."""
    return web.json_response(ServiceResult.ok(data).to_dict())


async def read_json(request: web.Request) -> dict[str, Any]:
    """Parse a JSON object body (empty body -> {})."""
    if not request.can_read_body:
        return {}
    try:
        body = await request.json()
    except json.JSONDecodeError as e:
        raise InvalidInputError("Request body must be valid JSON") from e
    if not isinstance(body, dict):
        raise InvalidInputError("Request body must be a JSON object")
    return body


def int_field(body: dict[str, Any], name: str) -> int:
    """Required positive integer field."""
    value = body.get(name)
    if isinstance(value, bool):
        value = None
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(
            f"{name} is required", details={"field": name}
        ) from e
    if number <= 0:
        raise InvalidInputError(
            f"{name} must be positive", details={"field": name}
        )
    return number


@routes.post("/api/members")
async def register_member(request: web.Request) -> web.Response:
    body = await read_json(request)
    async with request.app[SESSION_MAKER]() as session:
        service = MemberService(session, request.app[PLAN_CONFIG])
        data = await service.register_member(
            first_name=body.get("first_name"),
            last_name=body.get("last_name"),
            wallet_address=body.get("wallet_address"),
            sponsor=body.get("sponsor"),
            side=body.get("side"),
        )
    return ok(data)


@routes.get("/api/packages")
async def list_packages(request: web.Request) -> web.Response:
    async with request.app[SESSION_MAKER]() as session:
        return ok(await PackageService(session).list_enabled())


@routes.post("/api/investments")
async def purchase_package(request: web.Request) -> web.Response:
    member_id = get_member_id(request)
    body = await read_json(request)
    package_id = int_field(body, "package_id")
    async with request.app[SESSION_MAKER]() as session:
        service = InvestmentService(
            session,
            price_oracle=request.app[PRICE_ORACLE],
            config=request.app[PLAN_CONFIG],
        )
        result = await service.purchase_package(member_id, package_id)
    return ok(result.to_dict())


@routes.get("/api/team")
async def team(request: web.Request) -> web.Response:
    member_id = get_member_id(request)
    depth = None
    if "depth" in request.query:
        try:
            depth = int(request.query["depth"])
        except ValueError as e:
            raise InvalidInputError("depth must be an integer") from e
    async with request.app[SESSION_MAKER]() as session:
        service = MemberService(session, request.app[PLAN_CONFIG])
        return ok(await service.get_team_tree(member_id, depth))


@routes.get("/api/wallet/summary")
async def wallet_summary(request: web.Request) -> web.Response:
    member_id = get_member_id(request)
    async with request.app[SESSION_MAKER]() as session:
        service = WalletService(session, request.app[PLAN_CONFIG])
        return ok(await service.get_summary(member_id))


@routes.post("/api/wallet/deposit")
async def deposit(request: web.Request) -> web.Response:
    member_id = get_member_id(request)
    body = await read_json(request)
    async with request.app[SESSION_MAKER]() as session:
        service = WalletService(session, request.app[PLAN_CONFIG])
        data = await service.deposit(
            member_id, body.get("amount"), body.get("tx_hash")
        )
    return ok(data)


@routes.post("/api/wallet/withdraw/check")
async def withdraw_check(request: web.Request) -> web.Response:
    member_id = get_member_id(request)
    body = await read_json(request)
    async with request.app[SESSION_MAKER]() as session:
        service = WalletService(session, request.app[PLAN_CONFIG])
        return ok(await service.check_withdrawal(member_id, body.get("amount")))


@routes.post("/api/wallet/withdraw")
async def withdraw(request: web.Request) -> web.Response:
    member_id = get_member_id(request)
    body = await read_json(request)
    async with request.app[SESSION_MAKER]() as session:
        service = WalletService(session, request.app[PLAN_CONFIG])
        data = await service.withdraw(
            member_id, body.get("amount"), body.get("tx_hash")
        )
    return ok(data)


@routes.post("/api/wallet/transfer")
async def transfer(request: web.Request) -> web.Response:
    member_id = get_member_id(request)
    body = await read_json(request)
    async with request.app[SESSION_MAKER]() as session:
        service = WalletService(session, request.app[PLAN_CONFIG])
        data = await service.transfer(
            member_id, body.get("to_wallet_address"), body.get("amount")
        )
    return ok(data)


@routes.post("/api/admin/members/{member_id:\\d+}/settle")
async def admin_settle(request: web.Request) -> web.Response:
    require_admin(request, request.app[ADMIN_TOKEN])
    member_id = int(request.match_info["member_id"])
    async with request.app[SESSION_MAKER]() as session:
        service = BinaryService(session, request.app[PLAN_CONFIG])
        result = await service.settle_pairing(member_id)
    return ok(result.to_dict())


@routes.post("/api/admin/earnings-cap/sweep")
async def admin_sweep(request: web.Request) -> web.Response:
    require_admin(request, request.app[ADMIN_TOKEN])
    service = EarningsCapService(
        request.app[SESSION_MAKER], request.app[PLAN_CONFIG]
    )
    report = await service.run_sweep()
    return ok(report.to_dict())


@routes.post("/api/admin/investments")
async def admin_purchase(request: web.Request) -> web.Response:
    require_admin(request, request.app[ADMIN_TOKEN])
    body = await read_json(request)
    package_id = int_field(body, "package_id")
    async with request.app[SESSION_MAKER]() as session:
        service = InvestmentService(
            session,
            price_oracle=request.app[PRICE_ORACLE],
            config=request.app[PLAN_CONFIG],
        )
        result = await service.purchase_for_wallet(
            body.get("wallet_address"), package_id
        )
    return ok(result.to_dict())


@routes.get("/api/admin/investments/daily")
async def admin_daily_investments(request: web.Request) -> web.Response:
    require_admin(request, request.app[ADMIN_TOKEN])
    async with request.app[SESSION_MAKER]() as session:
        service = InvestmentService(
            session,
            price_oracle=request.app[PRICE_ORACLE],
            config=request.app[PLAN_CONFIG],
        )
        return ok(await service.get_daily_purchase_totals())
