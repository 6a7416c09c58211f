"""Ed25519 signature checks over reconstructed payloads.

Producers do not publish which bytes they signed. Three candidate payloads
are rebuilt from the artifact and tried in a fixed order; the first that
validates wins:

    1. {benchmark, system, merkle_root}
    2. {version, claim, benchmark, system,
        cryptographic_proof: {merkle_root, merkle_leaves}}
    3. the whole document minus its top-level "signature" key

Values are copied verbatim from the parsed document. Fields absent from the
document are left out of the candidate rather than encoded as null.

Public keys may be PEM text, or base64 of: a raw 32-byte key, DER
SubjectPublicKeyInfo, or a PEM document.
"""
from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, List, Optional

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from .artifact import StandardArtifact
from .canonical import KEY_ORDER_SORTED, canonical_json_bytes
from .errors import MalformedArtifact, SignatureError

LOGGER = logging.getLogger(__name__)

ED25519_KEY_SIZE = 32
ED25519_SIGNATURE_SIZE = 64
SIGNATURE_ALGORITHM = "Ed25519"
NO_MATCH_ERROR = "signature does not match any known payload encoding"

_MISSING = object()


@dataclass(frozen=True)
class SignatureResult:
    valid: bool
    matched_candidate: Optional[int] = None
    error: Optional[str] = None
    candidates_tried: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "matched_candidate": self.matched_candidate,
            "error": self.error,
            "candidates_tried": self.candidates_tried,
        }


# ── Candidate builders ───────────────────────────────────────────────────────

def _pick(source: dict, *keys: str) -> dict:
    """Copy ``keys`` from ``source`` in order, skipping absent ones."""
    out = {}
    for key in keys:
        value = source.get(key, _MISSING)
        if value is not _MISSING:
            out[key] = value
    return out


def _crypto_section(doc: dict) -> dict:
    section = doc.get("cryptographic_proof")
    return section if isinstance(section, dict) else {}


def summary_with_root(doc: dict) -> dict:
    """Candidate 1: benchmark, system and the bare merkle root."""
    out = _pick(doc, "benchmark", "system")
    out.update(_pick(_crypto_section(doc), "merkle_root"))
    return out


def versioned_commitment(doc: dict) -> dict:
    """Candidate 2: version, claim, summaries and the root/leaf-count commitment."""
    out = _pick(doc, "version", "claim", "benchmark", "system")
    out["cryptographic_proof"] = _pick(_crypto_section(doc), "merkle_root", "merkle_leaves")
    return out


def unsigned_document(doc: dict) -> dict:
    """Candidate 3: the full document without its signature."""
    return {k: v for k, v in doc.items() if k != "signature"}


CANDIDATE_BUILDERS: tuple[Callable[[dict], dict], ...] = (
    summary_with_root,
    versioned_commitment,
    unsigned_document,
)


def candidate_payloads(artifact: StandardArtifact, key_order: str = KEY_ORDER_SORTED) -> List[bytes]:
    """Return the candidate signed payloads, in trial order."""
    return [canonical_json_bytes(build(artifact.document), key_order) for build in CANDIDATE_BUILDERS]


def iter_candidate_payloads(artifact: StandardArtifact, key_order: str = KEY_ORDER_SORTED) -> Iterator[Optional[bytes]]:
    """Yield candidate payloads one at a time, in trial order.

    A candidate that cannot be encoded yields ``None`` and counts as a
    non-match. Later candidates are only built if earlier ones are rejected.
    """
    for index, build in enumerate(CANDIDATE_BUILDERS, start=1):
        try:
            yield canonical_json_bytes(build(artifact.document), key_order)
        except (MalformedArtifact, RecursionError) as exc:
            LOGGER.debug("payload candidate %d cannot be encoded: %s", index, exc)
            yield None


def match_candidate(
    payloads: Iterable[Optional[bytes]],
    accepts: Callable[[bytes], bool],
) -> tuple[Optional[int], int]:
    """Try payloads in order; return (1-based index of first accepted, number tried).

    ``None`` entries are counted as tried and never accepted.
    """
    tried = 0
    for index, payload in enumerate(payloads, start=1):
        tried += 1
        if payload is not None and accepts(payload):
            LOGGER.debug("signature matched payload candidate %d", index)
            return index, tried
        LOGGER.debug("signature did not match payload candidate %d", index)
    return None, tried


# ── Key and signature decoding ───────────────────────────────────────────────

def load_public_key(text: str) -> Ed25519PublicKey:
    """Load an Ed25519 public key from PEM or base64 text."""
    stripped = text.strip()
    try:
        if stripped.startswith("-----BEGIN"):
            key = serialization.load_pem_public_key(stripped.encode("ascii"))
        else:
            try:
                raw = base64.b64decode(stripped, validate=True)
            except (binascii.Error, ValueError):
                raise SignatureError("public key is neither PEM nor base64") from None
            if len(raw) == ED25519_KEY_SIZE:
                return Ed25519PublicKey.from_public_bytes(raw)
            if raw.lstrip().startswith(b"-----BEGIN"):
                key = serialization.load_pem_public_key(raw)
            else:
                key = serialization.load_der_public_key(raw)
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise SignatureError(f"cannot load public key: {exc}") from exc
    if not isinstance(key, Ed25519PublicKey):
        raise SignatureError(f"public key is not Ed25519 ({type(key).__name__})")
    return key


def decode_signature_value(value: str) -> bytes:
    try:
        sig = bytes.fromhex(value.strip())
    except ValueError:
        raise SignatureError("signature value is not valid hex") from None
    if len(sig) != ED25519_SIGNATURE_SIZE:
        raise SignatureError(f"signature must be {ED25519_SIGNATURE_SIZE} bytes, got {len(sig)}")
    return sig


# ── Verification ─────────────────────────────────────────────────────────────

def verify_signature(artifact: StandardArtifact, key_order: str = KEY_ORDER_SORTED) -> SignatureResult:
    """Check the artifact's signature against each payload candidate.

    Decoding problems and mismatches are reported on the result; they never
    raise. The artifact must carry a signature.
    """
    block = artifact.signature
    if block is None:
        raise ValueError("artifact has no signature")
    if block.algorithm.lower() != SIGNATURE_ALGORITHM.lower():
        return SignatureResult(valid=False, error=f"unsupported signature algorithm {block.algorithm!r}")

    try:
        public_key = load_public_key(block.public_key)
        signature = decode_signature_value(block.value)
    except SignatureError as exc:
        LOGGER.debug("signature unusable: %s", exc)
        return SignatureResult(valid=False, error=str(exc))

    def accepts(payload: bytes) -> bool:
        try:
            public_key.verify(signature, payload)
        except InvalidSignature:
            return False
        return True

    matched, tried = match_candidate(iter_candidate_payloads(artifact, key_order), accepts)
    if matched is None:
        return SignatureResult(valid=False, error=NO_MATCH_ERROR, candidates_tried=tried)
    return SignatureResult(valid=True, matched_candidate=matched, candidates_tried=tried)


__all__ = [
    "SignatureResult",
    "CANDIDATE_BUILDERS",
    "NO_MATCH_ERROR",
    "summary_with_root",
    "versioned_commitment",
    "unsigned_document",
    "candidate_payloads",
    "iter_candidate_payloads",
    "match_candidate",
    "load_public_key",
    "decode_signature_value",
    "verify_signature",
]
