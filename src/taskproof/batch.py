"""Batch verification over many artifact files.

Each artifact is independent. With ``workers > 1`` files are verified on a
thread pool, but entries are always reported in input order. A malformed or
unreadable artifact is recorded as a failed entry and never aborts the run.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Union

from .artifact import DEFAULT_MAX_ARTIFACT_BYTES, Artifact
from .errors import MalformedArtifact
from .verifier import Verdict, VerdictStatus, VerifyOptions, verify_file

LOGGER = logging.getLogger(__name__)

DEFAULT_ARTIFACT_PATTERN = "proof-*.json"


@dataclass
class BatchEntry:
    path: Path
    verdict: Optional[Verdict] = None
    error: Optional[str] = None
    artifact: Optional[Artifact] = field(default=None, repr=False)

    @property
    def passed(self) -> bool:
        return self.verdict is not None and self.verdict.overall_passed

    @property
    def status(self) -> VerdictStatus:
        if self.verdict is None:
            return VerdictStatus.MALFORMED
        return self.verdict.status


@dataclass
class BatchReport:
    entries: List[BatchEntry] = field(default_factory=list)

    @property
    def passed_count(self) -> int:
        return sum(1 for e in self.entries if e.passed)

    @property
    def failed_count(self) -> int:
        return len(self.entries) - self.passed_count

    @property
    def all_passed(self) -> bool:
        return self.failed_count == 0

    def summary(self) -> dict[str, Any]:
        return {
            "total": len(self.entries),
            "passed": self.passed_count,
            "failed": self.failed_count,
        }


def discover_artifacts(directory: Union[str, Path] = ".", pattern: str = DEFAULT_ARTIFACT_PATTERN) -> List[Path]:
    """Find artifact files in ``directory`` matching ``pattern``, sorted by name."""
    root = Path(directory)
    files = sorted(p for p in root.glob(pattern) if p.is_file())
    LOGGER.info("found %d artifact(s) matching %s in %s", len(files), pattern, root)
    return files


def _verify_one(path: Path, options: VerifyOptions, max_bytes: int) -> BatchEntry:
    try:
        artifact, verdict = verify_file(path, options, max_bytes=max_bytes)
    except MalformedArtifact as exc:
        LOGGER.warning("malformed artifact %s: %s", path, exc)
        return BatchEntry(path=path, error=str(exc))
    except Exception as exc:
        # One bad artifact must not abort the rest of the batch
        LOGGER.exception("unexpected error verifying %s", path)
        return BatchEntry(path=path, error=f"unexpected error: {type(exc).__name__}: {exc}")
    return BatchEntry(path=path, verdict=verdict, artifact=artifact)


def run_all(
    paths: Iterable[Union[str, Path]],
    options: Optional[VerifyOptions] = None,
    workers: int = 1,
    max_bytes: int = DEFAULT_MAX_ARTIFACT_BYTES,
) -> BatchReport:
    """Verify every artifact in ``paths`` and aggregate the results.

    Args:
        paths: Artifact files, verified and reported in this order.
        options: Verification options shared by every artifact.
        workers: Thread pool size; 1 verifies sequentially.
        max_bytes: Per-file size limit.

    Returns:
        BatchReport with one entry per input path, in input order.
    """
    options = options or VerifyOptions()
    path_list: Sequence[Path] = [Path(p) for p in paths]
    if workers < 1:
        raise ValueError("workers must be >= 1")

    if workers == 1 or len(path_list) <= 1:
        entries = [_verify_one(p, options, max_bytes) for p in path_list]
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            # map() yields results in submission order
            entries = list(executor.map(lambda p: _verify_one(p, options, max_bytes), path_list))

    report = BatchReport(entries=entries)
    LOGGER.info("batch complete: %d passed, %d failed", report.passed_count, report.failed_count)
    return report


__all__ = [
    "DEFAULT_ARTIFACT_PATTERN",
    "BatchEntry",
    "BatchReport",
    "discover_artifacts",
    "run_all",
]
