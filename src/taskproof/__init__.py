"""taskproof - third-party verification of sampled Merkle proof artifacts.

A proof artifact commits to N task records with a Merkle root, carries a
handful of sampled leaves with authentication paths, and optionally an
Ed25519 signature over its summary metadata. This package checks the
artifact's internal consistency only: sampled leaf -> root, and signature ->
payload. Unsampled leaves are never examined.

Public API:
    from taskproof import load_artifact, verify_artifact, run_all

    artifact = load_artifact("proof-1m.json")
    verdict = verify_artifact(artifact)
    verdict.overall_passed, verdict.status, verdict.caveats
"""
from __future__ import annotations

__version__ = "2.0.0"

from taskproof.artifact import (
    SampleProof,
    SignatureBlock,
    SimplifiedArtifact,
    StandardArtifact,
    classify,
    load_artifact,
    parse_artifact,
)
from taskproof.batch import BatchEntry, BatchReport, discover_artifacts, run_all
from taskproof.errors import (
    ArtifactLoadError,
    ConfigError,
    MalformedArtifact,
    ProofError,
    SignatureError,
)
from taskproof.merkle import AuthStep, Outcome, Side, verify_path
from taskproof.signature import SignatureResult, verify_signature
from taskproof.verifier import (
    SampleResult,
    Verdict,
    VerdictStatus,
    VerifyOptions,
    verify_artifact,
    verify_document,
    verify_file,
)

__all__ = [
    "__version__",
    # Artifacts
    "SampleProof",
    "SignatureBlock",
    "SimplifiedArtifact",
    "StandardArtifact",
    "classify",
    "load_artifact",
    "parse_artifact",
    # Merkle
    "AuthStep",
    "Outcome",
    "Side",
    "verify_path",
    # Signature
    "SignatureResult",
    "verify_signature",
    # Verification
    "SampleResult",
    "Verdict",
    "VerdictStatus",
    "VerifyOptions",
    "verify_artifact",
    "verify_document",
    "verify_file",
    # Batch
    "BatchEntry",
    "BatchReport",
    "discover_artifacts",
    "run_all",
    # Errors
    "ArtifactLoadError",
    "ConfigError",
    "MalformedArtifact",
    "ProofError",
    "SignatureError",
]
