"""Proof artifact model and classification.

Two incompatible shapes arrive through the same entry point:

    standard    - claim + benchmark + system + cryptographic_proof
                  (root, leaf count, sampled leaves with paths) + optional
                  signature
    simplified  - {"tasks", "totalDuration", "rootHash", "hardware"}; a bare
                  root commitment with no per-leaf evidence

``classify`` resolves a parsed document into exactly one of them. Nothing
downstream checks field presence again.
"""
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from .errors import ArtifactLoadError, MalformedArtifact
from .hashing import decode_digest
from .merkle import AuthStep, Side

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_ARTIFACT_BYTES = 64 * 1024 * 1024
DEFAULT_SIGNATURE_ALGORITHM = "Ed25519"

KIND_STANDARD = "standard"
KIND_SIMPLIFIED = "simplified"


@dataclass(frozen=True)
class SampleProof:
    task_index: int
    leaf: bytes
    path: tuple[AuthStep, ...] = ()
    note: Optional[str] = None


@dataclass(frozen=True)
class SignatureBlock:
    value: str
    public_key: str
    algorithm: str = DEFAULT_SIGNATURE_ALGORITHM


@dataclass(frozen=True)
class StandardArtifact:
    benchmark: dict
    merkle_root: bytes
    leaf_count: int
    samples: tuple[SampleProof, ...] = ()
    claim: Optional[str] = None
    version: Any = None
    system: Optional[dict] = None
    signature: Optional[SignatureBlock] = None
    # Parsed JSON as read; signature candidates re-encode producer fields verbatim.
    document: dict = field(default_factory=dict, compare=False, repr=False)

    kind = KIND_STANDARD


@dataclass(frozen=True)
class SimplifiedArtifact:
    task_count: int
    root_hash: bytes
    duration_ms: float
    hardware: str
    document: dict = field(default_factory=dict, compare=False, repr=False)

    kind = KIND_SIMPLIFIED


Artifact = Union[StandardArtifact, SimplifiedArtifact]


# ── Field helpers ────────────────────────────────────────────────────────────

def _require(obj: dict, key: str, path: str) -> Any:
    if key not in obj:
        raise MalformedArtifact("missing required field", f"{path}{key}")
    return obj[key]


def _non_negative_int(value: Any, field_path: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedArtifact(f"expected integer, got {type(value).__name__}", field_path)
    if value < 0:
        raise MalformedArtifact("must be non-negative", field_path)
    return value


def _object(value: Any, field_path: str) -> dict:
    if not isinstance(value, dict):
        raise MalformedArtifact(f"expected object, got {type(value).__name__}", field_path)
    return value


def _string(value: Any, field_path: str) -> str:
    if not isinstance(value, str):
        raise MalformedArtifact(f"expected string, got {type(value).__name__}", field_path)
    return value


def _number(value: Any, field_path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedArtifact(f"expected number, got {type(value).__name__}", field_path)
    try:
        return float(value)
    except OverflowError:
        raise MalformedArtifact("number overflows a double", field_path) from None


# ── Standard form ────────────────────────────────────────────────────────────

def _parse_path(raw: Any, field_path: str) -> tuple[AuthStep, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise MalformedArtifact(f"expected list, got {type(raw).__name__}", field_path)
    steps = []
    for i, entry in enumerate(raw):
        step_path = f"{field_path}[{i}]"
        entry = _object(entry, step_path)
        sibling = decode_digest(_require(entry, "hash", f"{step_path}."), f"{step_path}.hash")
        position = _require(entry, "position", f"{step_path}.")
        try:
            side = Side(position)
        except ValueError:
            raise MalformedArtifact(
                f"expected 'left' or 'right', got {position!r}", f"{step_path}.position"
            ) from None
        steps.append(AuthStep(sibling=sibling, side=side))
    return tuple(steps)


def _parse_sample(raw: Any, field_path: str) -> SampleProof:
    entry = _object(raw, field_path)
    task_index = _non_negative_int(_require(entry, "task_index", f"{field_path}."), f"{field_path}.task_index")
    leaf = decode_digest(_require(entry, "leaf_hash", f"{field_path}."), f"{field_path}.leaf_hash")
    path = _parse_path(entry.get("merkle_proof"), f"{field_path}.merkle_proof")
    note = entry.get("note")
    if note is not None and not isinstance(note, str):
        note = str(note)
    return SampleProof(task_index=task_index, leaf=leaf, path=path, note=note)


def _parse_signature(raw: Any) -> SignatureBlock:
    sig = _object(raw, "signature")
    value = _string(_require(sig, "value", "signature."), "signature.value")
    public_key = _string(_require(sig, "public_key", "signature."), "signature.public_key")
    algorithm = sig.get("algorithm", DEFAULT_SIGNATURE_ALGORITHM)
    algorithm = _string(algorithm, "signature.algorithm")
    return SignatureBlock(value=value, public_key=public_key, algorithm=algorithm)


def _parse_standard(doc: dict) -> StandardArtifact:
    benchmark = _object(doc["benchmark"], "benchmark")
    crypto = _object(_require(doc, "cryptographic_proof", ""), "cryptographic_proof")
    merkle_root = decode_digest(
        _require(crypto, "merkle_root", "cryptographic_proof."), "cryptographic_proof.merkle_root"
    )
    leaf_count = _non_negative_int(
        _require(crypto, "merkle_leaves", "cryptographic_proof."), "cryptographic_proof.merkle_leaves"
    )

    raw_samples = crypto.get("sample_proofs")
    if raw_samples is None:
        raw_samples = []
    if not isinstance(raw_samples, list):
        raise MalformedArtifact(
            f"expected list, got {type(raw_samples).__name__}", "cryptographic_proof.sample_proofs"
        )
    samples = tuple(
        _parse_sample(entry, f"cryptographic_proof.sample_proofs[{i}]")
        for i, entry in enumerate(raw_samples)
    )

    claim = doc.get("claim")
    if claim is not None:
        claim = _string(claim, "claim")
    system = doc.get("system")
    if system is not None:
        system = _object(system, "system")
    signature = _parse_signature(doc["signature"]) if doc.get("signature") is not None else None

    return StandardArtifact(
        benchmark=benchmark,
        merkle_root=merkle_root,
        leaf_count=leaf_count,
        samples=samples,
        claim=claim,
        version=doc.get("version"),
        system=system,
        signature=signature,
        document=doc,
    )


# ── Simplified form ──────────────────────────────────────────────────────────

def _parse_simplified(doc: dict) -> SimplifiedArtifact:
    return SimplifiedArtifact(
        task_count=_non_negative_int(doc["tasks"], "tasks"),
        root_hash=decode_digest(_require(doc, "rootHash", ""), "rootHash"),
        duration_ms=_number(_require(doc, "totalDuration", ""), "totalDuration"),
        hardware=_string(_require(doc, "hardware", ""), "hardware"),
        document=doc,
    )


# ── Entry points ─────────────────────────────────────────────────────────────

def classify(parsed: Any) -> Artifact:
    """Resolve a parsed JSON document into a standard or simplified artifact.

    Raises:
        MalformedArtifact: If the document matches neither shape or a
            required field is missing or ill-typed.
    """
    if not isinstance(parsed, dict):
        raise MalformedArtifact(f"artifact must be a JSON object, got {type(parsed).__name__}")
    if "benchmark" not in parsed and "tasks" in parsed:
        LOGGER.debug("classified artifact as simplified")
        return _parse_simplified(parsed)
    if "benchmark" in parsed:
        LOGGER.debug("classified artifact as standard")
        return _parse_standard(parsed)
    raise MalformedArtifact("unrecognised artifact: neither 'benchmark' nor 'tasks' present")


def _reject_constant(name: str) -> Any:
    raise MalformedArtifact(f"non-finite number {name} is not allowed")


def _finite_float(text: str) -> float:
    value = float(text)
    if math.isinf(value):
        raise MalformedArtifact(f"number {text} overflows a double")
    return value


def _reject_unpaired_surrogates(parsed: Any) -> None:
    """Fail on strings that cannot be re-encoded as UTF-8 (``"\\ud800"``)."""
    stack = [parsed]
    while stack:
        value = stack.pop()
        if isinstance(value, dict):
            texts = list(value)
            stack.extend(value.values())
        elif isinstance(value, list):
            stack.extend(value)
            continue
        elif isinstance(value, str):
            texts = [value]
        else:
            continue
        for text in texts:
            try:
                text.encode("utf-8")
            except UnicodeEncodeError:
                raise MalformedArtifact("string contains an unpaired UTF-16 surrogate") from None


def parse_artifact(raw: Union[bytes, str]) -> Artifact:
    """Decode JSON text and classify it.

    Besides invalid JSON, documents are rejected as malformed when they hold
    NaN/Infinity, numbers that overflow a double, integers too long to
    convert, unpaired surrogates, or nesting deeper than the interpreter
    can decode.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedArtifact(f"artifact is not valid UTF-8: {exc}") from exc
    try:
        parsed = json.loads(raw, parse_constant=_reject_constant, parse_float=_finite_float)
    except MalformedArtifact:
        raise
    except json.JSONDecodeError as exc:
        raise MalformedArtifact(f"invalid JSON: {exc}") from exc
    except RecursionError:
        raise MalformedArtifact("invalid JSON: nesting is too deep") from None
    except ValueError as exc:
        # int() digit limit on very long integer literals
        raise MalformedArtifact(f"invalid JSON: {exc}") from exc
    _reject_unpaired_surrogates(parsed)
    return classify(parsed)


def load_artifact(path: Union[str, Path], max_bytes: int = DEFAULT_MAX_ARTIFACT_BYTES) -> Artifact:
    """Read and classify an artifact file."""
    path = Path(path)
    try:
        size = path.stat().st_size
        if size > max_bytes:
            raise ArtifactLoadError(f"{path}: file is {size} bytes, limit is {max_bytes}")
        data = path.read_bytes()
    except OSError as exc:
        raise ArtifactLoadError(f"cannot read {path}: {exc.strerror or exc}") from exc
    return parse_artifact(data)


__all__ = [
    "KIND_STANDARD",
    "KIND_SIMPLIFIED",
    "DEFAULT_MAX_ARTIFACT_BYTES",
    "SampleProof",
    "SignatureBlock",
    "StandardArtifact",
    "SimplifiedArtifact",
    "Artifact",
    "classify",
    "parse_artifact",
    "load_artifact",
]
