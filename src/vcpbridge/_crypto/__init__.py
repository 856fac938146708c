"""Cryptographic primitives for VCP request signing."""

from __future__ import annotations

from vcpbridge._crypto.signing import (
    Signer,
    b64url_decode,
    b64url_encode,
    canonical_json,
    encode_message,
    generate_key_pair,
    sign_params,
)

__all__ = [
    "Signer",
    "b64url_decode",
    "b64url_encode",
    "canonical_json",
    "encode_message",
    "generate_key_pair",
    "sign_params",
]
