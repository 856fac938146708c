"""One gateway WebSocket session per command."""

from __future__ import annotations

import asyncio
import logging

import aiohttp

from vcpbridge._constants import HANDSHAKE_DELAY_S
from vcpbridge._redact import mask_credential, redact_for_log
from vcpbridge._transport import GatewayConnection, GatewayTransport
from vcpbridge.correlator import Correlator
from vcpbridge.exceptions import VcpProtocolError, VcpTransportError
from vcpbridge.models.frames import HandshakeFrame, RequestFrame

_logger = logging.getLogger(__name__)

#: Upper bound for the close handshake; after it the socket is dropped.
CLOSE_TIMEOUT_S = 1.0

_TERMINAL_TYPES = frozenset({aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED})


class GatewaySession:
    """Owns one gateway connection for the lifetime of a single command.

    Sequencing is fixed: open, send the handshake, wait ``handshake_delay``
    so the gateway can process it, then send the signed request. Inbound
    frames are pumped into the correlator from the moment the handshake is
    sent. A session is never reused.

    Parameters
    ----------
    transport : GatewayTransport
        Opens the underlying socket.
    correlator : Correlator
        Receives every terminal event; all failures converge there.
    handshake_delay : float
        Seconds between the handshake and request frames.
    """

    def __init__(
        self,
        transport: GatewayTransport,
        correlator: Correlator,
        *,
        handshake_delay: float = HANDSHAKE_DELAY_S,
    ) -> None:
        self._transport = transport
        self._correlator = correlator
        self._handshake_delay = handshake_delay
        self._ws: GatewayConnection | None = None
        self._reader: asyncio.Task[None] | None = None
        self._used = False
        self._closed = False
        #: ``(loop time, frame type)`` for every frame sent, in order.
        self.sent: list[tuple[float, str]] = []

    @property
    def connection(self) -> GatewayConnection | None:
        return self._ws

    @property
    def is_closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self, url: str, credential: str) -> GatewayConnection:
        """Connect to *url*, forwarding the caller's ``Authorization`` header.

        Raises
        ------
        VcpTransportError
            If the connection cannot be established.
        VcpProtocolError
            If this session was already opened or closed.
        """
        if self._used or self._closed:
            raise VcpProtocolError("gateway sessions are single-use")
        self._used = True
        _logger.debug("Opening gateway session url=%s auth=%s", url, mask_credential(credential))
        ws = await self._transport.connect(url, headers={"Authorization": credential})
        if self._closed:
            # closed while connecting
            await self._close_connection(ws)
            raise VcpProtocolError("session closed while connecting")
        self._ws = ws
        return ws

    async def send_handshake(self, domain: str) -> None:
        await self._send(HandshakeFrame(domain=domain))

    async def send_request(self, frame: RequestFrame) -> None:
        await self._send(frame)

    async def close(self) -> None:
        """Tear the session down. Idempotent; close errors are swallowed."""
        if self._closed:
            return
        self._closed = True
        reader = self._reader
        if reader is not None and not reader.done():
            reader.cancel()
            await asyncio.wait({reader})
        ws = self._ws
        if ws is not None:
            await self._close_connection(ws)

    async def run(self, url: str, credential: str, domain: str, request: RequestFrame) -> None:
        """Drive the full session, reporting every terminal event to the correlator.

        Never raises for gateway failures: connect errors become transport
        errors, send errors become protocol errors.
        """
        try:
            ws = await self.open(url, credential)
        except VcpTransportError as exc:
            _logger.debug("Gateway connect failed: %s", exc)
            self._correlator.on_error(exc)
            return
        except VcpProtocolError as exc:
            self._correlator.on_send_failure(exc)
            return

        try:
            await self.send_handshake(domain)
        except VcpProtocolError as exc:
            self._correlator.on_send_failure(exc)
            return

        loop = asyncio.get_running_loop()
        request_at = loop.time() + self._handshake_delay
        self._reader = asyncio.create_task(self._read_loop(ws))
        # asyncio.sleep may wake within clock resolution of the deadline
        remaining = self._handshake_delay
        while remaining > 0:
            await asyncio.sleep(remaining)
            remaining = request_at - loop.time()

        if self._correlator.settled:
            _logger.debug("Resolved during handshake delay; request frame not sent")
        else:
            try:
                await self.send_request(request)
            except VcpProtocolError as exc:
                self._correlator.on_send_failure(exc)

        if not self._correlator.settled:
            await asyncio.wait({self._reader})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _send(self, frame: HandshakeFrame | RequestFrame) -> None:
        ws = self._ws
        if ws is None or ws.closed or self._closed:
            raise VcpProtocolError(f"cannot send {frame.type}: connection closed")
        try:
            await ws.send_str(frame.to_wire())
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as exc:
            raise VcpProtocolError(f"failed to send {frame.type}: {exc}") from exc
        self.sent.append((asyncio.get_running_loop().time(), frame.type))
        _logger.debug("WS send %s", redact_for_log(frame))

    async def _read_loop(self, ws: GatewayConnection) -> None:
        while not self._correlator.settled:
            try:
                msg = await ws.receive()
            except (aiohttp.ClientError, ConnectionError, RuntimeError) as exc:
                self._correlator.on_error(exc)
                return

            if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                self._correlator.on_frame(msg.data)
            elif msg.type is aiohttp.WSMsgType.ERROR:
                self._correlator.on_error(ws.exception() or msg.data)
                return
            elif msg.type in _TERMINAL_TYPES:
                _logger.debug("Gateway closed connection code=%s", msg.data)
                self._correlator.on_close()
                return

    async def _close_connection(self, ws: GatewayConnection) -> None:
        if ws.closed:
            return
        try:
            await asyncio.wait_for(ws.close(), CLOSE_TIMEOUT_S)
        except Exception:
            _logger.debug("WS close failed", exc_info=True)
