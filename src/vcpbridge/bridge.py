"""HTTP-to-WebSocket command bridge."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from vcpbridge._constants import BEARER_PREFIX
from vcpbridge._crypto.signing import Signer, sign_params
from vcpbridge._transport import GatewayTransport, WebSocketTransport
from vcpbridge.config import BridgeConfig
from vcpbridge.correlator import Correlator
from vcpbridge.exceptions import VcpConfigError, VcpCryptoError, VcpError
from vcpbridge.models.frames import RequestFrame
from vcpbridge.models.intent import CommandIntent
from vcpbridge.models.outcome import Misconfigured, Outcome, Unauthorized
from vcpbridge.session import GatewaySession

_logger = logging.getLogger(__name__)


def is_bearer_credential(credential: str | None) -> bool:
    """Whether *credential* is a ``Bearer <token>`` header value with a token."""
    if not credential or not credential.startswith(BEARER_PREFIX):
        return False
    return bool(credential[len(BEARER_PREFIX) :].strip())


class CommandBridge:
    """Relays one signed command per call to the VCP gateway.

    Usage::

        async with CommandBridge(BridgeConfig.from_env()) as bridge:
            outcome = await bridge.handle(intent)

    The private key from *config* is loaded once here and shared by every
    command flow. A key that fails to load is reported on each command as
    :class:`~vcpbridge.models.Misconfigured` rather than crashing the
    process.
    """

    def __init__(
        self,
        config: BridgeConfig,
        *,
        signer: Signer | None = None,
        transport: GatewayTransport | None = None,
        http_session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._signer = signer
        self._signer_error: str | None = None
        if signer is None and config.private_key_pem:
            try:
                self._signer = Signer.from_pem(config.private_key_pem)
            except VcpCryptoError as exc:
                _logger.error("TESLA_PRIVATE_KEY could not be loaded: %s", exc)
                self._signer_error = str(exc)
        self._transport = transport
        self._external_session = http_session is not None
        self._http_session = http_session
        self._owns_transport = transport is None

    @property
    def config(self) -> BridgeConfig:
        return self._config

    @property
    def signer(self) -> Signer | None:
        return self._signer

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> CommandBridge:
        if self._owns_transport:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = WebSocketTransport(self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if self._owns_transport:
            self._transport = None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def handle(self, intent: CommandIntent) -> Outcome:
        """Sign, relay and correlate one command, returning its outcome.

        Unauthorized and misconfigured requests are answered without
        touching the signer or opening a gateway session. Everything after
        that is bounded by the correlator's command timeout.
        """
        if not is_bearer_credential(intent.credential):
            _logger.info("Rejecting %s for %s: missing bearer credential", intent.command, intent.vehicle_id)
            return Unauthorized()

        try:
            url, domain = self._require_routing()
            signed = sign_params(self._signer, intent.params)
        except (VcpConfigError, VcpCryptoError) as exc:
            _logger.error("Cannot relay %s for %s: %s", intent.command, intent.vehicle_id, exc)
            return Misconfigured(detail=str(exc))

        transport = self._require_transport()
        correlator = Correlator(timeout=self._config.command_timeout)
        session = GatewaySession(transport, correlator, handshake_delay=self._config.handshake_delay)
        frame = RequestFrame.build(intent, signed)

        correlator.arm()
        runner = asyncio.create_task(session.run(url, intent.credential, domain, frame))
        try:
            outcome = await correlator.wait()
        finally:
            correlator.disarm()
            runner.cancel()
            await asyncio.wait({runner})
            await session.close()

        _logger.info(
            "Command %s for %s resolved as %s (%d)",
            intent.command,
            intent.vehicle_id,
            outcome.kind,
            outcome.status_code,
        )
        return outcome

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_routing(self) -> tuple[str, str]:
        if self._signer is None:
            if self._signer_error:
                raise VcpConfigError(f"TESLA_PRIVATE_KEY invalid: {self._signer_error}")
            raise VcpConfigError("TESLA_PRIVATE_KEY not configured")
        domain = self._config.domain.strip()
        if not domain:
            raise VcpConfigError("TESLA_DOMAIN not configured")
        return self._config.resolved_gateway_url(), domain

    def _require_transport(self) -> GatewayTransport:
        if self._transport is None:
            raise VcpError("Bridge not initialized. Use 'async with CommandBridge(...) as bridge:'")
        return self._transport
