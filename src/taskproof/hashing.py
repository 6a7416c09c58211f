"""SHA-256 helpers shared by the Merkle and signature layers."""
from __future__ import annotations

import hashlib
from typing import Any

from .errors import MalformedArtifact

DIGEST_SIZE = 32
HEX_DIGEST_LENGTH = DIGEST_SIZE * 2


def digest(data: bytes) -> bytes:
    """Compute the SHA-256 digest of bytes."""
    return hashlib.sha256(data).digest()


def decode_digest(value: Any, field: str) -> bytes:
    """Decode a hex-encoded digest taken from an artifact.

    Args:
        value: Raw JSON value (expected: 64 hex characters, any case).
        field: Dotted field path, used in the error message.

    Returns:
        The 32-byte digest.

    Raises:
        MalformedArtifact: If the value is not a string of exactly
            64 hex characters.
    """
    if not isinstance(value, str):
        raise MalformedArtifact(f"expected hex digest string, got {type(value).__name__}", field)
    if len(value) != HEX_DIGEST_LENGTH:
        raise MalformedArtifact(
            f"expected {HEX_DIGEST_LENGTH} hex characters, got {len(value)}", field
        )
    try:
        raw = bytes.fromhex(value)
    except ValueError:
        raise MalformedArtifact("digest is not valid hex", field) from None
    # fromhex tolerates embedded whitespace
    return require_digest(raw, field)


def require_digest(value: bytes, field: str) -> bytes:
    if len(value) != DIGEST_SIZE:
        raise MalformedArtifact(f"expected {DIGEST_SIZE}-byte digest, got {len(value)} bytes", field)
    return value


__all__ = [
    "DIGEST_SIZE",
    "HEX_DIGEST_LENGTH",
    "digest",
    "decode_digest",
    "require_digest",
]
