"""vcpbridge - HTTP bridge for signed Vehicle Command Protocol sessions."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("vcpbridge")
except PackageNotFoundError:
    __version__ = "0+local"
from vcpbridge._crypto.signing import Signer, generate_key_pair
from vcpbridge.bridge import CommandBridge
from vcpbridge.config import BridgeConfig
from vcpbridge.correlator import Correlator, CorrelatorState
from vcpbridge.exceptions import (
    VcpConfigError,
    VcpCryptoError,
    VcpError,
    VcpProtocolError,
    VcpTransportError,
)
from vcpbridge.models import (
    CommandIntent,
    HandshakeFrame,
    Misconfigured,
    Outcome,
    ProtocolError,
    RequestFrame,
    SignedMessage,
    Success,
    Timeout,
    TransportError,
    Unauthorized,
)
from vcpbridge.session import GatewaySession

__all__ = [
    "__version__",
    "BridgeConfig",
    "CommandBridge",
    "CommandIntent",
    "Correlator",
    "CorrelatorState",
    "GatewaySession",
    "HandshakeFrame",
    "Misconfigured",
    "Outcome",
    "ProtocolError",
    "RequestFrame",
    "SignedMessage",
    "Signer",
    "Success",
    "Timeout",
    "TransportError",
    "Unauthorized",
    "VcpConfigError",
    "VcpCryptoError",
    "VcpError",
    "VcpProtocolError",
    "VcpTransportError",
    "generate_key_pair",
]
