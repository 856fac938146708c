"""WebSocket transport to the VCP gateway."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Protocol

import aiohttp

from vcpbridge.exceptions import VcpTransportError

_logger = logging.getLogger(__name__)


class GatewayConnection(Protocol):
    """Structural view of one open gateway socket.

    ``aiohttp.ClientWebSocketResponse`` satisfies this protocol; tests pass
    in-memory doubles.
    """

    @property
    def closed(self) -> bool: ...

    async def send_str(self, data: str) -> None: ...

    async def receive(self) -> aiohttp.WSMessage: ...

    async def close(self) -> bool: ...

    def exception(self) -> BaseException | None: ...


class GatewayTransport(Protocol):
    """Structural transport interface used by :class:`~vcpbridge.session.GatewaySession`.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (:class:`WebSocketTransport`) concrete.
    """

    async def connect(self, url: str, *, headers: Mapping[str, str]) -> GatewayConnection: ...


class WebSocketTransport:
    """Opens gateway sockets on a shared ``aiohttp.ClientSession``.

    The connect itself is not time-bounded here: the command timeout armed
    by the correlator covers the whole session, including the upgrade.
    """

    def __init__(self, http_session: aiohttp.ClientSession) -> None:
        self._http = http_session

    async def connect(self, url: str, *, headers: Mapping[str, str]) -> GatewayConnection:
        """Open one WebSocket connection to *url*.

        Raises
        ------
        VcpTransportError
            On DNS/TLS/socket failures or when the gateway refuses the upgrade.
        """
        _logger.debug("WS connect %s", url)
        try:
            return await self._http.ws_connect(url, headers=dict(headers), heartbeat=None)
        except aiohttp.WSServerHandshakeError as exc:
            raise VcpTransportError(
                f"Gateway refused WebSocket upgrade: HTTP {exc.status} {exc.message}",
                status_code=exc.status,
                url=url,
            ) from exc
        except (aiohttp.ClientError, OSError) as exc:
            raise VcpTransportError(
                f"WebSocket connection to {url} failed: {exc or type(exc).__name__}",
                url=url,
            ) from exc
