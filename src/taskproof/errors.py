"""Exception taxonomy for proof verification.

Only structural problems are exceptions. A Merkle path that recomputes the
wrong root is an INVALID outcome, and a signature that matches no payload is
recorded on the SignatureResult; neither raises.
"""
from __future__ import annotations


class ProofError(Exception):
    """Base class for taskproof errors."""


class MalformedArtifact(ProofError, ValueError):
    """Raised when an artifact is structurally invalid or cannot be parsed."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        if field:
            message = f"{field}: {message}"
        super().__init__(message)


class ArtifactLoadError(MalformedArtifact):
    """Raised when an artifact file cannot be read."""


class SignatureError(ProofError):
    """Raised for undecodable signature values or public keys."""


class ConfigError(ProofError):
    """Raised when configuration values are invalid."""


__all__ = [
    "ProofError",
    "MalformedArtifact",
    "ArtifactLoadError",
    "SignatureError",
    "ConfigError",
]
