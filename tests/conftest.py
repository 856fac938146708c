from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import aiohttp
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from vcpbridge._crypto.signing import Signer
from vcpbridge.config import BridgeConfig

DOMAIN = "fleet.example.com"
BEARER = "Bearer eyJhbGciOiJSUzI1NiJ9.payload.sig"


@dataclass
class FakeMessage:
    type: aiohttp.WSMsgType
    data: Any = None


Responder = Callable[["FakeConnection", dict[str, Any]], None]


class FakeConnection:
    """In-memory gateway socket. Gateway-side helpers push inbound frames."""

    def __init__(self, responder: Responder | None = None, *, close_error: Exception | None = None) -> None:
        self.responder = responder
        self.close_error = close_error
        self.frames: list[tuple[float, dict[str, Any]]] = []
        self.closed = False
        self.close_calls = 0
        self.error: BaseException | None = None
        self._inbox: asyncio.Queue[FakeMessage | BaseException] = asyncio.Queue()

    @property
    def frame_types(self) -> list[str]:
        return [frame["type"] for _, frame in self.frames]

    def frame(self, frame_type: str) -> dict[str, Any]:
        return next(frame for _, frame in self.frames if frame["type"] == frame_type)

    async def send_str(self, data: str) -> None:
        if self.closed:
            raise ConnectionResetError("Cannot write to closing transport")
        frame = json.loads(data)
        self.frames.append((asyncio.get_running_loop().time(), frame))
        if self.responder is not None:
            self.responder(self, frame)

    async def receive(self) -> FakeMessage:
        item = await self._inbox.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> bool:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error
        if not self.closed:
            self.closed = True
            self._inbox.put_nowait(FakeMessage(aiohttp.WSMsgType.CLOSED))
        return True

    def exception(self) -> BaseException | None:
        return self.error

    # gateway side

    def push(self, data: str | bytes) -> None:
        msg_type = aiohttp.WSMsgType.BINARY if isinstance(data, bytes) else aiohttp.WSMsgType.TEXT
        self._inbox.put_nowait(FakeMessage(msg_type, data))

    def push_json(self, payload: Any) -> None:
        self.push(json.dumps(payload))

    def drop(self) -> None:
        self.closed = True
        self._inbox.put_nowait(FakeMessage(aiohttp.WSMsgType.CLOSE, 1006))

    def fail(self, exc: BaseException) -> None:
        self.error = exc
        self._inbox.put_nowait(FakeMessage(aiohttp.WSMsgType.ERROR, exc))

    def break_receive(self, exc: BaseException) -> None:
        """Make the pending ``receive()`` call raise *exc*."""
        self._inbox.put_nowait(exc)


class FakeTransport:
    """Hands out one :class:`FakeConnection` per connect and records headers."""

    def __init__(
        self,
        responder: Responder | None = None,
        *,
        error: Exception | None = None,
        hang: bool = False,
    ) -> None:
        self.responder = responder
        self.error = error
        self.hang = hang
        self.calls: list[tuple[str, dict[str, str]]] = []
        self.connections: list[FakeConnection] = []

    @property
    def connection(self) -> FakeConnection:
        return self.connections[-1]

    async def connect(self, url: str, *, headers: Mapping[str, str]) -> FakeConnection:
        self.calls.append((url, dict(headers)))
        if self.hang:
            await asyncio.Event().wait()
        if self.error is not None:
            raise self.error
        conn = FakeConnection(self.responder)
        self.connections.append(conn)
        return conn


def reply_to_request(payload: Any) -> Responder:
    """Gateway that answers the request frame with *payload*."""

    def responder(conn: FakeConnection, frame: dict[str, Any]) -> None:
        if frame["type"] == "VehicleCommandRequest":
            conn.push_json(payload)

    return responder


def drop_on_request(conn: FakeConnection, frame: dict[str, Any]) -> None:
    if frame["type"] == "VehicleCommandRequest":
        conn.drop()


def make_config(private_key_pem: str | None, **overrides: Any) -> BridgeConfig:
    values: dict[str, Any] = {
        "private_key_pem": private_key_pem,
        "domain": DOMAIN,
        "region": "eu",
        "handshake_delay": 0.15,
        "command_timeout": 15.0,
    }
    values.update(overrides)
    return BridgeConfig(**values)


@pytest.fixture(scope="session")
def key_pair() -> tuple[str, str]:
    key = ec.generate_private_key(ec.SECP256R1())
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode("ascii")
    public_pem = (
        key.public_key()
        .public_bytes(serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo)
        .decode("ascii")
    )
    return private_pem, public_pem


@pytest.fixture
def private_key_pem(key_pair: tuple[str, str]) -> str:
    return key_pair[0]


@pytest.fixture
def public_key(key_pair: tuple[str, str]) -> ec.EllipticCurvePublicKey:
    key = serialization.load_pem_public_key(key_pair[1].encode("ascii"))
    assert isinstance(key, ec.EllipticCurvePublicKey)
    return key


@pytest.fixture
def signer(private_key_pem: str) -> Signer:
    return Signer.from_pem(private_key_pem)
