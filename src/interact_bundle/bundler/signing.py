"""HMAC-SHA256 signing primitives for bundle manifest hashes.

A bundle signature is the HMAC-SHA256 of the manifest hash (the hex
string, UTF-8 encoded) under a caller-supplied key.  It proves that the
holder of the key produced this exact manifest without any network
verification.
"""
from __future__ import annotations

import hashlib
import hmac
from typing import Union

SigningKey = Union[str, bytes]


def _key_bytes(key: SigningKey) -> bytes:
    raw = key.encode("utf-8") if isinstance(key, str) else bytes(key)
    if not raw:
        raise ValueError("signing key must not be empty")
    return raw


def sign_manifest_hash(manifest_hash: str, key: SigningKey) -> str:
    """Return the hex HMAC-SHA256 of *manifest_hash* under *key*.

    Raises
    ------
    ValueError
        If *key* is empty.
    """
    return hmac.new(
        key=_key_bytes(key),
        msg=manifest_hash.encode("utf-8"),
        digestmod=hashlib.sha256,
    ).hexdigest()


def verify_signature(manifest_hash: str, signature: str, key: SigningKey) -> bool:
    """Check *signature* against *manifest_hash* in constant time."""
    expected = sign_manifest_hash(manifest_hash, key)
    return hmac.compare_digest(expected, signature)


__all__ = [
    "SigningKey",
    "sign_manifest_hash",
    "verify_signature",
]
