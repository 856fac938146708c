"""Command intent and signed message models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, JsonValue


class CommandIntent(BaseModel):
    """One inbound command request, as parsed by the HTTP layer.

    ``params`` is passed through untouched: the command set and parameter
    shapes are owned by the gateway, not by the bridge.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    vehicle_id: str
    command: str
    params: dict[str, JsonValue] = Field(default_factory=dict)
    credential: str = Field(default="", repr=False)


class SignedMessage(BaseModel):
    """Detached signature over the encoded command parameters.

    Parameters
    ----------
    message : str
        Unpadded URL-safe base64 of the canonical JSON parameters.
    signature : str
        Unpadded URL-safe base64 of the DER ECDSA/SHA-256 signature
        computed over the ASCII bytes of *message*.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    message: str
    signature: str
