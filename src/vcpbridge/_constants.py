"""Internal constants shared across the library."""

DEFAULT_REGION = "eu"
DEFAULT_PORT = 8080

#: Fleet gateway hosts keyed by region.
GATEWAY_HOSTS: dict[str, str] = {
    "na": "fleet-api.prd.na.vn.cloud.tesla.com",
    "eu": "fleet-api.prd.eu.vn.cloud.tesla.com",
    "cn": "fleet-api.prd.cn.vn.cloud.tesla.cn",
}
GATEWAY_PATH = "/v1"

PUBLIC_KEY_PATH = "/.well-known/appspecific/com.tesla.3p.public-key.pem"
PEM_CONTENT_TYPE = "application/x-pem-file"

# ------------------------------------------------------------------
# Session timing (seconds)
# ------------------------------------------------------------------

COMMAND_TIMEOUT_S = 15.0
HANDSHAKE_DELAY_S = 0.15

# ------------------------------------------------------------------
# Frame types
# ------------------------------------------------------------------

HANDSHAKE_FRAME_TYPE = "VehicleCommandHandshake"
REQUEST_FRAME_TYPE = "VehicleCommandRequest"
RESPONSE_FRAME_TYPE = "VehicleCommandResponse"

BEARER_PREFIX = "Bearer "


def gateway_url_for_region(region: str) -> str | None:
    """Return the ``wss://`` gateway URL for *region*, or ``None`` if unknown."""
    host = GATEWAY_HOSTS.get(region.strip().lower())
    if host is None:
        return None
    return f"wss://{host}{GATEWAY_PATH}"
