"""Command outcomes.

Every command flow ends in exactly one of the variants below. Each variant
knows its HTTP status and the JSON body the HTTP layer sends back, which
always carries ``ok`` so callers can branch on a stable shape.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, JsonValue


class _OutcomeBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    status_code: int

    @property
    def ok(self) -> bool:
        return False

    def to_body(self) -> dict[str, Any]:
        """JSON body for the HTTP response."""
        return {"ok": self.ok}


class Success(_OutcomeBase):
    """The gateway answered the request."""

    kind: Literal["success"] = "success"
    status_code: int = 200
    txid: JsonValue = None
    response: dict[str, JsonValue] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return True

    def to_body(self) -> dict[str, Any]:
        return {"ok": True, "txid": self.txid, "response": self.response}


class Timeout(_OutcomeBase):
    """No answer within the command timeout.

    The command may or may not have been applied by the vehicle.
    """

    kind: Literal["timeout"] = "timeout"
    status_code: int = 504

    def to_body(self) -> dict[str, Any]:
        return {"ok": False, "error": "Timed out waiting for vehicle response"}


class TransportError(_OutcomeBase):
    """Network or WebSocket-layer failure talking to the gateway."""

    kind: Literal["transport_error"] = "transport_error"
    status_code: int = 502
    detail: str = ""

    def to_body(self) -> dict[str, Any]:
        return {"ok": False, "error": "WebSocket error", "details": self.detail}


class ProtocolError(_OutcomeBase):
    """The gateway session closed or misbehaved without answering."""

    kind: Literal["protocol_error"] = "protocol_error"
    status_code: int = 500
    detail: str = ""

    def to_body(self) -> dict[str, Any]:
        return {"ok": False, "error": "Vehicle command session failed", "details": self.detail}


class Unauthorized(_OutcomeBase):
    """Caller did not present a bearer credential."""

    kind: Literal["unauthorized"] = "unauthorized"
    status_code: int = 401

    def to_body(self) -> dict[str, Any]:
        return {"ok": False, "error": "Missing or invalid Authorization header"}


class Misconfigured(_OutcomeBase):
    """The deployment cannot sign or route commands until fixed."""

    kind: Literal["misconfigured"] = "misconfigured"
    status_code: int = 500
    detail: str | None = None

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"ok": False, "error": "Bridge is not configured for vehicle commands"}
        if self.detail:
            body["details"] = self.detail
        return body


Outcome = Annotated[
    Success | Timeout | TransportError | ProtocolError | Unauthorized | Misconfigured,
    Field(discriminator="kind"),
]
