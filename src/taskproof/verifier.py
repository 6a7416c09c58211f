"""Artifact verification: Merkle samples plus optional signature.

Pass/fail is decided by Merkle evidence alone. The signature is informational
and only contributes caveats.

Only sampled leaves are checked. A passing verdict means every sampled leaf
with an authentication path recomputes the claimed root; the remaining
``leaf_count - checked`` leaves are committed to by the root but never
examined. Simplified artifacts carry no per-leaf evidence at all and are
accepted as opaque commitments.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from .artifact import (
    DEFAULT_MAX_ARTIFACT_BYTES,
    KIND_SIMPLIFIED,
    KIND_STANDARD,
    Artifact,
    SimplifiedArtifact,
    StandardArtifact,
    classify,
    load_artifact,
)
from .canonical import KEY_ORDER_SORTED, KEY_ORDERS
from .merkle import Outcome, verify_path
from .signature import SignatureResult, verify_signature

LOGGER = logging.getLogger(__name__)

CAVEAT_SIMPLIFIED = (
    "simplified artifact: root hash accepted as an opaque commitment; "
    "no per-leaf evidence was checked"
)
CAVEAT_NO_SAMPLES = "artifact contains no sample proofs; no leaf was checked"
CAVEAT_NO_SIGNATURE = "no signature present; metadata is unauthenticated"
CAVEAT_SIGNATURE_SKIPPED = "signature check skipped"


class VerdictStatus(enum.Enum):
    VERIFIED = "verified"
    VERIFIED_WITH_CAVEATS = "verified_with_caveats"
    UNVERIFIABLE = "unverifiable"
    FAILED = "failed"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class VerifyOptions:
    skip_signature: bool = False
    key_order: str = KEY_ORDER_SORTED

    def __post_init__(self) -> None:
        if self.key_order not in KEY_ORDERS:
            raise ValueError(f"unknown key order {self.key_order!r}")


@dataclass(frozen=True)
class SampleResult:
    task_index: int
    outcome: Outcome
    note: Optional[str] = None


@dataclass(frozen=True)
class Verdict:
    kind: str
    merkle_valid: bool
    overall_passed: bool
    leaf_count: int
    samples: tuple[SampleResult, ...] = ()
    signature_valid: Optional[bool] = None
    signature: Optional[SignatureResult] = None
    signature_skipped: bool = False
    caveats: tuple[str, ...] = field(default_factory=tuple)

    @property
    def checked_count(self) -> int:
        """Number of samples that were actually recomputed (VALID or INVALID)."""
        return sum(1 for s in self.samples if s.outcome is not Outcome.UNVERIFIABLE)

    @property
    def valid_count(self) -> int:
        return sum(1 for s in self.samples if s.outcome is Outcome.VALID)

    @property
    def invalid_count(self) -> int:
        return sum(1 for s in self.samples if s.outcome is Outcome.INVALID)

    @property
    def unverifiable_count(self) -> int:
        return sum(1 for s in self.samples if s.outcome is Outcome.UNVERIFIABLE)

    @property
    def status(self) -> VerdictStatus:
        if not self.overall_passed:
            return VerdictStatus.FAILED
        if self.valid_count == 0:
            return VerdictStatus.UNVERIFIABLE
        if self.caveats:
            return VerdictStatus.VERIFIED_WITH_CAVEATS
        return VerdictStatus.VERIFIED

    @property
    def scope_note(self) -> str:
        if self.kind == KIND_SIMPLIFIED:
            return f"0 of {self.leaf_count} leaves checked; root hash is unfalsifiable by this tool"
        return (
            f"{self.checked_count} of {self.leaf_count} leaves checked; "
            "unsampled leaves are committed by the root but not verified"
        )


# ── Verification ─────────────────────────────────────────────────────────────

def _verify_simplified(artifact: SimplifiedArtifact) -> Verdict:
    return Verdict(
        kind=KIND_SIMPLIFIED,
        merkle_valid=True,
        overall_passed=True,
        leaf_count=artifact.task_count,
        caveats=(CAVEAT_SIMPLIFIED,),
    )


def _verify_standard(artifact: StandardArtifact, options: VerifyOptions) -> Verdict:
    results = []
    for sample in artifact.samples:
        outcome = verify_path(sample.leaf, sample.path, artifact.merkle_root)
        LOGGER.debug("sample task_index=%d: %s", sample.task_index, outcome.value)
        note = sample.note
        if outcome is Outcome.UNVERIFIABLE and not note:
            note = "no merkle path"
        results.append(SampleResult(task_index=sample.task_index, outcome=outcome, note=note))

    merkle_valid = all(r.outcome is not Outcome.INVALID for r in results)

    caveats = []
    missing = sum(1 for r in results if r.outcome is Outcome.UNVERIFIABLE)
    if missing:
        caveats.append(f"{missing} sample(s) lack an authentication path and were not checked")
    if not results:
        caveats.append(CAVEAT_NO_SAMPLES)

    signature_result: Optional[SignatureResult] = None
    skipped = False
    if artifact.signature is None:
        caveats.append(CAVEAT_NO_SIGNATURE)
    elif options.skip_signature:
        skipped = True
        caveats.append(CAVEAT_SIGNATURE_SKIPPED)
    else:
        signature_result = verify_signature(artifact, options.key_order)
        if not signature_result.valid:
            caveats.append(f"signature not verified: {signature_result.error}")

    return Verdict(
        kind=KIND_STANDARD,
        merkle_valid=merkle_valid,
        overall_passed=merkle_valid,
        leaf_count=artifact.leaf_count,
        samples=tuple(results),
        signature_valid=signature_result.valid if signature_result is not None else None,
        signature=signature_result,
        signature_skipped=skipped,
        caveats=tuple(caveats),
    )


def verify_artifact(artifact: Artifact, options: Optional[VerifyOptions] = None) -> Verdict:
    """Verify a classified artifact.

    Raises:
        MalformedArtifact: If a digest has the wrong length.
    """
    options = options or VerifyOptions()
    if isinstance(artifact, SimplifiedArtifact):
        return _verify_simplified(artifact)
    if isinstance(artifact, StandardArtifact):
        return _verify_standard(artifact, options)
    raise TypeError(f"not an artifact: {type(artifact).__name__}")


def verify_document(parsed: Any, options: Optional[VerifyOptions] = None) -> Verdict:
    """Classify a parsed JSON document and verify it."""
    return verify_artifact(classify(parsed), options)


def verify_file(
    path: Union[str, Path],
    options: Optional[VerifyOptions] = None,
    max_bytes: int = DEFAULT_MAX_ARTIFACT_BYTES,
) -> tuple[Artifact, Verdict]:
    """Load an artifact file and verify it. Returns the artifact alongside its verdict."""
    artifact = load_artifact(path, max_bytes=max_bytes)
    return artifact, verify_artifact(artifact, options)


__all__ = [
    "VerdictStatus",
    "VerifyOptions",
    "SampleResult",
    "Verdict",
    "verify_artifact",
    "verify_document",
    "verify_file",
]
