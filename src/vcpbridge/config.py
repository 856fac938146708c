"""Bridge configuration for vcpbridge."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from vcpbridge._constants import (
    COMMAND_TIMEOUT_S,
    DEFAULT_PORT,
    DEFAULT_REGION,
    HANDSHAKE_DELAY_S,
    gateway_url_for_region,
)
from vcpbridge.exceptions import VcpConfigError


def _env_text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


@dataclasses.dataclass(frozen=True)
class BridgeConfig:
    """Process-wide bridge configuration.

    Parameters
    ----------
    private_key_pem : str or None
        PEM-encoded EC P-256 private key used to sign command parameters.
        Required by the command endpoint.
    public_key_pem : str or None
        PEM document served verbatim at the well-known public key path.
    region : str
        Gateway region (``"na"``, ``"eu"`` or ``"cn"``). Defaults to ``"eu"``.
    domain : str
        Signing domain announced in the handshake frame. Must match the
        domain hosting the public key.
    host : str
        Listen address of the HTTP server.
    port : int
        Listen port of the HTTP server.
    gateway_url : str or None
        Explicit gateway WebSocket URL. When unset the URL is derived
        from *region*.
    command_timeout : float
        Seconds to wait for the gateway response before answering 504.
    handshake_delay : float
        Seconds between the handshake frame and the request frame.
    cors_origin : str
        Value of ``Access-Control-Allow-Origin`` on every response.
    log_level : str
        Root log level used by the CLI.
    """

    private_key_pem: str | None = dataclasses.field(default=None, repr=False)
    public_key_pem: str | None = dataclasses.field(default=None, repr=False)
    region: str = DEFAULT_REGION
    domain: str = ""
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    gateway_url: str | None = None
    command_timeout: float = COMMAND_TIMEOUT_S
    handshake_delay: float = HANDSHAKE_DELAY_S
    cors_origin: str = "*"
    log_level: str = "INFO"

    def resolved_gateway_url(self) -> str:
        """Return the gateway URL for this deployment.

        Raises
        ------
        VcpConfigError
            If no override is set and *region* is not a known region.
        """
        if self.gateway_url:
            return self.gateway_url
        url = gateway_url_for_region(self.region)
        if url is None:
            raise VcpConfigError(f"Unknown gateway region: {self.region!r}")
        return url

    @classmethod
    def from_env(cls, **overrides: Any) -> BridgeConfig:
        """Create configuration from environment variables.

        Reads ``TESLA_PRIVATE_KEY``, ``TESLA_PUBLIC_KEY``, ``TESLA_REGION``,
        ``TESLA_DOMAIN``, ``HOST``, ``PORT`` and the optional ``VCP_*``
        tuning variables. Explicit keyword arguments override environment
        values.
        """
        env = os.environ

        _ENV_TEXT_MAP = {
            "TESLA_PRIVATE_KEY": "private_key_pem",
            "TESLA_PUBLIC_KEY": "public_key_pem",
            "TESLA_REGION": "region",
            "TESLA_DOMAIN": "domain",
            "HOST": "host",
            "VCP_GATEWAY_URL": "gateway_url",
            "VCP_CORS_ORIGIN": "cors_origin",
            "VCP_LOG_LEVEL": "log_level",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_TEXT_MAP.items():
            val = _env_text(env.get(env_key))
            if val is not None:
                config_kwargs[field_name] = val

        # numeric values, handle separately
        port_env = _env_text(env.get("PORT"))
        if port_env is not None and "port" not in overrides:
            try:
                config_kwargs["port"] = int(port_env)
            except ValueError as exc:
                raise VcpConfigError(f"PORT must be an integer, got {port_env!r}") from exc

        for env_key, field_name in (
            ("VCP_COMMAND_TIMEOUT", "command_timeout"),
            ("VCP_HANDSHAKE_DELAY", "handshake_delay"),
        ):
            raw = _env_text(env.get(env_key))
            if raw is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = float(raw)
            except ValueError as exc:
                raise VcpConfigError(f"{env_key} must be a number, got {raw!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
