"""Outbound VCP frames.

Both frames are sent as compact UTF-8 JSON text frames, handshake first.
"""

from __future__ import annotations

import json
from typing import Literal

from pydantic import BaseModel, ConfigDict

from vcpbridge._constants import HANDSHAKE_FRAME_TYPE, REQUEST_FRAME_TYPE
from vcpbridge.models.intent import CommandIntent, SignedMessage


class _Frame(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    def to_wire(self) -> str:
        """Serialize to the JSON text sent on the socket."""
        return json.dumps(self.model_dump(), separators=(",", ":"), ensure_ascii=False)


class HandshakeFrame(_Frame):
    """Announces the signing domain to the gateway."""

    type: Literal["VehicleCommandHandshake"] = HANDSHAKE_FRAME_TYPE
    domain: str


class RequestFrame(_Frame):
    """Signed command request."""

    type: Literal["VehicleCommandRequest"] = REQUEST_FRAME_TYPE
    command: str
    vehicle_id: str
    message: str
    signature: str

    @classmethod
    def build(cls, intent: CommandIntent, signed: SignedMessage) -> RequestFrame:
        return cls(
            command=intent.command,
            vehicle_id=intent.vehicle_id,
            message=signed.message,
            signature=signed.signature,
        )
