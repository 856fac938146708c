"""Settle-once response correlation for one gateway session.

Four event sources race to decide a command's outcome: an inbound
response frame, the command timeout, a connection error and a connection
close. :class:`Correlator` is a two-state machine (``PENDING`` then
``RESOLVED``) with a single transition guard, :meth:`Correlator._settle`.
The first event to reach the guard decides the outcome; every later event
is a logged no-op.

The correlator never touches the socket. Its owner awaits :meth:`wait`
and closes the session once it returns, whichever event won.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from typing import Any

from vcpbridge._constants import COMMAND_TIMEOUT_S, RESPONSE_FRAME_TYPE
from vcpbridge._redact import redact_for_log
from vcpbridge.models.outcome import (
    Outcome,
    ProtocolError,
    Success,
    Timeout,
    TransportError,
)

_logger = logging.getLogger(__name__)

CLOSED_BEFORE_RESPONSE = "connection closed before response"


class CorrelatorState(enum.StrEnum):
    PENDING = "pending"
    RESOLVED = "resolved"


def parse_response_frame(data: str | bytes) -> dict[str, Any] | None:
    """Return the frame as a dict when it answers the request, else ``None``.

    A frame answers the request when it is a JSON object whose ``type`` is
    ``VehicleCommandResponse`` or which carries a ``result`` key at all
    (``{"result": null}`` counts). Anything else, including non-JSON
    keepalives, is protocol noise.
    """
    try:
        frame = json.loads(data)
    except ValueError:
        return None
    if not isinstance(frame, dict):
        return None
    if frame.get("type") == RESPONSE_FRAME_TYPE or "result" in frame:
        return frame
    return None


class Correlator:
    """Resolves exactly one :data:`Outcome` per command."""

    def __init__(
        self,
        *,
        timeout: float = COMMAND_TIMEOUT_S,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._timeout = timeout
        self._state = CorrelatorState.PENDING
        self._outcome: Outcome | None = None
        self._future: asyncio.Future[Outcome] = self._loop.create_future()
        self._timer: asyncio.TimerHandle | None = None

    @property
    def state(self) -> CorrelatorState:
        return self._state

    @property
    def settled(self) -> bool:
        return self._state is CorrelatorState.RESOLVED

    @property
    def outcome(self) -> Outcome | None:
        return self._outcome

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    def arm(self) -> None:
        """Start the command timeout clock. Calling twice is a no-op."""
        if self._timer is not None or self.settled:
            return
        self._timer = self._loop.call_later(self._timeout, self.on_timeout)

    def disarm(self) -> None:
        """Cancel the timeout clock without resolving (caller went away)."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def wait(self) -> Outcome:
        """Suspend until an outcome is resolved."""
        return await asyncio.shield(self._future)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on_frame(self, data: str | bytes) -> bool:
        frame = parse_response_frame(data)
        if frame is None:
            _logger.debug("Ignoring non-response frame: %s", redact_for_log(data, max_string=128))
            return False
        txid = frame.get("txid")
        return self._settle(Success(txid=txid, response=frame), event="frame")

    def on_timeout(self) -> bool:
        # The timer handle has fired; there is nothing left to cancel.
        self._timer = None
        return self._settle(Timeout(), event="timeout")

    def on_error(self, detail: BaseException | str | None) -> bool:
        text = str(detail) if detail is not None else ""
        if isinstance(detail, BaseException) and not text:
            text = type(detail).__name__
        return self._settle(TransportError(detail=text or "unknown WebSocket error"), event="error")

    def on_close(self) -> bool:
        return self._settle(ProtocolError(detail=CLOSED_BEFORE_RESPONSE, status_code=502), event="close")

    def on_send_failure(self, detail: BaseException | str) -> bool:
        return self._settle(ProtocolError(detail=str(detail)), event="send")

    # ------------------------------------------------------------------
    # Transition guard
    # ------------------------------------------------------------------

    def _settle(self, outcome: Outcome, *, event: str) -> bool:
        if self._state is not CorrelatorState.PENDING:
            resolved = self._outcome.kind if self._outcome is not None else "?"
            _logger.debug("Discarding %s event, already resolved as %s", event, resolved)
            return False
        self._state = CorrelatorState.RESOLVED
        self._outcome = outcome
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if not self._future.done():
            self._future.set_result(outcome)
        _logger.debug("Resolved on %s as %s", event, outcome.kind)
        return True
