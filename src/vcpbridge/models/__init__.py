"""Pydantic models for vcpbridge."""

from vcpbridge.models.frames import HandshakeFrame, RequestFrame
from vcpbridge.models.intent import CommandIntent, SignedMessage
from vcpbridge.models.outcome import (
    Misconfigured,
    Outcome,
    ProtocolError,
    Success,
    Timeout,
    TransportError,
    Unauthorized,
)

__all__ = [
    "CommandIntent",
    "HandshakeFrame",
    "Misconfigured",
    "Outcome",
    "ProtocolError",
    "RequestFrame",
    "SignedMessage",
    "Success",
    "Timeout",
    "TransportError",
    "Unauthorized",
]
