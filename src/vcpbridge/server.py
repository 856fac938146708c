"""aiohttp HTTP surface for the command bridge.

Routes:

* ``POST /vcp/command/{vehicle_id}/{command}``: relay one signed command
  (also mounted at the legacy ``/api/proxy/command/...`` path).
* ``GET /.well-known/appspecific/com.tesla.3p.public-key.pem``: the
  configured public key.
* ``GET /``: liveness text.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable

from aiohttp import web

from vcpbridge._constants import PEM_CONTENT_TYPE, PUBLIC_KEY_PATH
from vcpbridge.bridge import CommandBridge
from vcpbridge.config import BridgeConfig
from vcpbridge.models.intent import CommandIntent

_logger = logging.getLogger(__name__)

BRIDGE_KEY: web.AppKey[CommandBridge] = web.AppKey("bridge", CommandBridge)
CONFIG_KEY: web.AppKey[BridgeConfig] = web.AppKey("config", BridgeConfig)

_Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _bad_request(error: str) -> web.Response:
    return web.json_response({"ok": False, "error": error}, status=400)


def _reject_constant(name: str) -> object:
    raise ValueError(f"{name} is not valid JSON")


async def _read_params(request: web.Request) -> dict[str, object] | web.Response:
    raw = await request.text()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw, parse_constant=_reject_constant)
    except ValueError:
        return _bad_request("Request body must be valid JSON")
    if body is None:
        return {}
    if not isinstance(body, dict):
        return _bad_request("Request body must be a JSON object")
    return body


async def handle_command(request: web.Request) -> web.Response:
    params = await _read_params(request)
    if isinstance(params, web.Response):
        return params

    intent = CommandIntent(
        vehicle_id=request.match_info["vehicle_id"],
        command=request.match_info["command"],
        params=params,
        credential=request.headers.get("Authorization", ""),
    )
    outcome = await request.app[BRIDGE_KEY].handle(intent)
    return web.json_response(outcome.to_body(), status=outcome.status_code)


async def handle_public_key(request: web.Request) -> web.Response:
    pem = request.app[CONFIG_KEY].public_key_pem
    if not pem:
        return web.Response(status=500, text="TESLA_PUBLIC_KEY not set")
    return web.Response(text=pem, content_type=PEM_CONTENT_TYPE)


async def handle_root(_request: web.Request) -> web.Response:
    return web.Response(text="vcpbridge is alive and ready for commands")


def cors_middleware(origin: str) -> Callable[[web.Request, _Handler], Awaitable[web.StreamResponse]]:
    """Allow browser callers from *origin*; answer preflights directly."""

    headers = {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": "Authorization, Content-Type",
    }

    @web.middleware
    async def middleware(request: web.Request, handler: _Handler) -> web.StreamResponse:
        if request.method == "OPTIONS" and "Access-Control-Request-Method" in request.headers:
            return web.Response(status=204, headers=headers)
        try:
            response = await handler(request)
        except web.HTTPException as exc:
            exc.headers.update(headers)
            raise
        response.headers.update(headers)
        return response

    return middleware


def create_app(config: BridgeConfig, *, bridge: CommandBridge | None = None) -> web.Application:
    """Build the aiohttp application.

    The bridge (and its outbound ``aiohttp.ClientSession``) lives for the
    lifetime of the application via a cleanup context.
    """
    app = web.Application(middlewares=[cors_middleware(config.cors_origin)])
    app[CONFIG_KEY] = config
    app[BRIDGE_KEY] = bridge or CommandBridge(config)

    async def bridge_ctx(app: web.Application) -> AsyncIterator[None]:
        async with app[BRIDGE_KEY]:
            yield

    app.cleanup_ctx.append(bridge_ctx)
    app.router.add_get("/", handle_root)
    app.router.add_get(PUBLIC_KEY_PATH, handle_public_key)
    app.router.add_post("/vcp/command/{vehicle_id}/{command}", handle_command)
    app.router.add_post("/api/proxy/command/{vehicle_id}/{command}", handle_command)
    return app


def run(config: BridgeConfig) -> None:
    """Serve until interrupted.

    Client disconnects cancel the in-flight handler, which tears down the
    gateway session instead of letting it run to its timeout.
    """
    app = create_app(config)
    _logger.info(
        "vcpbridge listening on %s:%d region=%s domain=%s",
        config.host,
        config.port,
        config.region,
        config.domain or "<unset>",
    )
    web.run_app(app, host=config.host, port=config.port, handler_cancellation=True, print=None)
