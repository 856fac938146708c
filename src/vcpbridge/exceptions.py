"""Custom exception hierarchy for vcpbridge."""

from __future__ import annotations


class VcpError(Exception):
    """Base exception for all vcpbridge errors."""


class VcpConfigError(VcpError):
    """Invalid or missing deployment configuration (key, domain, region)."""


class VcpCryptoError(VcpError):
    """Key loading or signing failure."""


class VcpTransportError(VcpError):
    """WebSocket-level failure (DNS, TLS, refused upgrade, dropped socket)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class VcpProtocolError(VcpError):
    """The gateway session misbehaved without answering.

    Raised when a frame cannot be sent on the session, e.g. because the
    gateway already closed the connection.
    """
