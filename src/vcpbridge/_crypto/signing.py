"""Detached ECDSA signatures for VCP request frames.

The gateway verifies a two-layer encoding:

1. ``message = base64url(canonical_json(params))``
2. ``signature = base64url(DER(ECDSA_P256(SHA256(message))))``

The signature covers the *encoded* message bytes, never the raw JSON.
Signing the JSON directly produces signatures the gateway rejects.
"""

from __future__ import annotations

import base64
import binascii
import json
from collections.abc import Mapping
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from vcpbridge.exceptions import VcpConfigError, VcpCryptoError
from vcpbridge.models.intent import SignedMessage

_SIGNATURE_ALGORITHM = ec.ECDSA(hashes.SHA256())


def b64url_encode(data: bytes) -> str:
    """URL-safe base64 without ``=`` padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(text: str) -> bytes:
    """Inverse of :func:`b64url_encode`; tolerates missing padding."""
    padded = text + "=" * (-len(text) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise VcpCryptoError(f"invalid base64url value: {exc}") from exc


def canonical_json(params: Mapping[str, Any]) -> str:
    """Compact JSON of *params* in caller-supplied key order.

    No key sorting is applied; only the validity of the signature over
    the encoded form matters to the gateway.
    Non-finite floats raise ``ValueError`` since they have no JSON form.
    """
    return json.dumps(dict(params), separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def encode_message(params: Mapping[str, Any]) -> str:
    """Return the base64url-encoded canonical JSON of *params*."""
    return b64url_encode(canonical_json(params).encode("utf-8"))


def _normalize_pem(pem: str) -> bytes:
    # Platform env vars often carry PEM bodies with literal "\n" escapes.
    text = pem.strip()
    if "\\n" in text and "\n" not in text:
        text = text.replace("\\n", "\n")
    return (text + "\n").encode("ascii")


class Signer:
    """Signs command parameters with a process-wide P-256 private key.

    Instances are immutable after construction and safe to share between
    concurrent command flows.
    """

    __slots__ = ("_private_key",)

    def __init__(self, private_key: ec.EllipticCurvePrivateKey) -> None:
        if not isinstance(private_key.curve, ec.SECP256R1):
            raise VcpCryptoError(f"private key must be on P-256, got {private_key.curve.name}")
        self._private_key = private_key

    @classmethod
    def from_pem(cls, pem: str) -> Signer:
        """Load an unencrypted PEM private key.

        Raises
        ------
        VcpCryptoError
            If the PEM cannot be parsed or is not an EC P-256 key.
        """
        try:
            key = serialization.load_pem_private_key(_normalize_pem(pem), password=None)
        except (ValueError, TypeError, UnicodeEncodeError) as exc:
            raise VcpCryptoError(f"could not load private key: {exc}") from exc
        if not isinstance(key, ec.EllipticCurvePrivateKey):
            raise VcpCryptoError(f"private key must be an EC key, got {type(key).__name__}")
        return cls(key)

    def sign(self, params: Mapping[str, Any]) -> SignedMessage:
        """Encode *params* and sign the encoded form.

        Each call yields a fresh (randomized) ECDSA signature; all of them
        verify against the same public key and message.
        """
        try:
            message = encode_message(params)
            der = self._private_key.sign(message.encode("ascii"), _SIGNATURE_ALGORITHM)
        except (TypeError, ValueError) as exc:
            raise VcpCryptoError(f"signing failed: {exc}") from exc
        return SignedMessage(message=message, signature=b64url_encode(der))

    def verify(self, signed: SignedMessage) -> bool:
        """Check *signed* against this signer's public key."""
        try:
            self._private_key.public_key().verify(
                b64url_decode(signed.signature),
                signed.message.encode("ascii"),
                _SIGNATURE_ALGORITHM,
            )
        except (InvalidSignature, VcpCryptoError):
            return False
        return True

    def public_key_pem(self) -> str:
        """SubjectPublicKeyInfo PEM of the signing key."""
        return (
            self._private_key.public_key()
            .public_bytes(
                serialization.Encoding.PEM,
                serialization.PublicFormat.SubjectPublicKeyInfo,
            )
            .decode("ascii")
        )


def sign_params(signer: Signer | None, params: Mapping[str, Any]) -> SignedMessage:
    """Sign *params*, failing with :class:`VcpConfigError` when no key is loaded."""
    if signer is None:
        raise VcpConfigError("TESLA_PRIVATE_KEY not configured")
    return signer.sign(params)


def generate_key_pair() -> tuple[str, str]:
    """Generate a fresh P-256 key pair as ``(private_pem, public_pem)``."""
    key = ec.generate_private_key(ec.SECP256R1())
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode("ascii")
    return private_pem, Signer(key).public_key_pem()
