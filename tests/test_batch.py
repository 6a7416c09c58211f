"""Tests for batch verification."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from taskproof import batch
from taskproof.batch import discover_artifacts, run_all
from taskproof.verifier import VerdictStatus


@pytest.fixture
def mixed_batch(standard_doc, tree, sign_doc, signing_key, write_artifact) -> tuple[list[Path], set[int]]:
    """Twelve artifacts: good, tampered, malformed and missing files interleaved."""
    tampered = standard_doc()
    tampered["cryptographic_proof"]["sample_proofs"][0]["leaf_hash"] = tree.leaves[2].hex()
    simplified = {"tasks": 10, "totalDuration": 1.5, "rootHash": "ee" * 32, "hardware": "ci"}
    surrogate = sign_doc(standard_doc(claim="bad \ud800"), signing_key, b"payload")

    paths = [
        write_artifact("proof-a.json", standard_doc()),
        write_artifact("proof-b.json", "{ not json"),
        write_artifact("proof-c.json", tampered),
        write_artifact("proof-d.json", simplified),
        write_artifact("proof-e.json", {"claim": "no shape"}),
        write_artifact("proof-f.json", standard_doc(sample_indices=())),
        write_artifact("proof-g.json", [1, 2, 3]),
        write_artifact("proof-h.json", standard_doc(sample_indices=(4,))),
    ]
    paths.append(paths[0].parent / "proof-missing.json")
    paths.append(write_artifact("proof-j.json", "[" * 200_000 + "]" * 200_000))
    paths.append(write_artifact("proof-k.json", surrogate))
    paths.append(write_artifact("proof-l.json", json.dumps(standard_doc())[:-1] + ', "extra": 1e400}'))
    malformed = {1, 4, 6, 8, 9, 10, 11}
    return paths, malformed


@pytest.mark.parametrize("workers", [1, 4])
def test_batch_reports_every_artifact_in_order(mixed_batch, workers):
    paths, malformed = mixed_batch
    report = run_all(paths, workers=workers)

    assert [e.path for e in report.entries] == paths
    assert report.failed_count >= len(malformed)
    assert report.failed_count == len(malformed) + 1  # plus the tampered artifact
    assert report.passed_count == len(paths) - report.failed_count
    assert report.all_passed is False
    for i, entry in enumerate(report.entries):
        if i in malformed:
            assert entry.verdict is None
            assert entry.error
            assert entry.status is VerdictStatus.MALFORMED
        else:
            assert entry.error is None
    assert report.entries[2].status is VerdictStatus.FAILED
    assert report.entries[3].status is VerdictStatus.UNVERIFIABLE


def test_parallel_matches_sequential(mixed_batch):
    paths, _ = mixed_batch
    seq = run_all(paths, workers=1)
    par = run_all(paths, workers=3)
    assert [(e.path, e.status, e.error) for e in seq.entries] == [(e.path, e.status, e.error) for e in par.entries]


def test_empty_batch():
    report = run_all([])
    assert report.entries == []
    assert report.all_passed is True
    assert report.summary() == {"total": 0, "passed": 0, "failed": 0}


def test_invalid_workers():
    with pytest.raises(ValueError):
        run_all([], workers=0)


def test_discover_sorted_and_filtered(tmp_path, write_artifact):
    for name in ["proof-z.json", "proof-a.json", "other.json", "proof-m.txt"]:
        write_artifact(name, {})
    (tmp_path / "proof-dir.json").mkdir()
    found = discover_artifacts(tmp_path)
    assert [p.name for p in found] == ["proof-a.json", "proof-z.json"]


def test_discover_custom_pattern(tmp_path, write_artifact):
    write_artifact("bench-1.json", {})
    write_artifact("proof-1.json", {})
    assert [p.name for p in discover_artifacts(tmp_path, "bench-*.json")] == ["bench-1.json"]


def test_unexpected_error_recorded_not_raised(monkeypatch, write_artifact, standard_doc):
    good = write_artifact("proof-a.json", standard_doc())
    bad = write_artifact("proof-b.json", standard_doc())
    real_verify_file = batch.verify_file

    def flaky(path, options, max_bytes):
        if path == bad:
            raise RuntimeError("disk on fire")
        return real_verify_file(path, options, max_bytes=max_bytes)

    monkeypatch.setattr(batch, "verify_file", flaky)
    report = run_all([good, bad], workers=2)
    assert [e.path for e in report.entries] == [good, bad]
    assert report.entries[0].passed is True
    assert report.entries[1].status is VerdictStatus.MALFORMED
    assert "disk on fire" in report.entries[1].error
