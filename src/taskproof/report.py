"""Verdict rendering: JSON-ready dicts and Rich console output.

Every artifact renders to exactly one final status line:

    VERIFIED               all checks passed, no caveats
    VERIFIED WITH CAVEATS  Merkle samples passed; see caveats
    UNVERIFIABLE           passed, but no leaf evidence was checked
    FAILED                 a sampled leaf does not reach the claimed root
    MALFORMED              artifact could not be read or parsed
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from rich.box import ROUNDED
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .artifact import Artifact, SimplifiedArtifact, StandardArtifact
from .batch import BatchEntry, BatchReport
from .merkle import Outcome
from .verifier import Verdict, VerdictStatus

STATUS_LABELS = {
    VerdictStatus.VERIFIED: ("VERIFIED", "green"),
    VerdictStatus.VERIFIED_WITH_CAVEATS: ("VERIFIED WITH CAVEATS", "yellow"),
    VerdictStatus.UNVERIFIABLE: ("UNVERIFIABLE", "yellow"),
    VerdictStatus.FAILED: ("FAILED", "red"),
    VerdictStatus.MALFORMED: ("MALFORMED", "red"),
}

_OUTCOME_STYLE = {
    Outcome.VALID: ("✓ VALID", "green"),
    Outcome.INVALID: ("✗ INVALID", "red"),
    Outcome.UNVERIFIABLE: ("– UNVERIFIABLE", "yellow"),
}


# ── JSON ─────────────────────────────────────────────────────────────────────

def verdict_to_dict(verdict: Verdict, path: Optional[Path] = None) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if path is not None:
        out["path"] = str(path)
    out.update({
        "status": verdict.status.value,
        "kind": verdict.kind,
        "overall_passed": verdict.overall_passed,
        "merkle_valid": verdict.merkle_valid,
        "signature_valid": verdict.signature_valid,
        "signature_skipped": verdict.signature_skipped,
        "leaf_count": verdict.leaf_count,
        "samples": [
            {"task_index": s.task_index, "outcome": s.outcome.value, "note": s.note}
            for s in verdict.samples
        ],
        "caveats": list(verdict.caveats),
        "scope": verdict.scope_note,
    })
    if verdict.signature is not None:
        out["signature"] = verdict.signature.to_dict()
    return out


def entry_to_dict(entry: BatchEntry) -> dict[str, Any]:
    if entry.verdict is not None:
        return verdict_to_dict(entry.verdict, entry.path)
    return {
        "path": str(entry.path),
        "status": VerdictStatus.MALFORMED.value,
        "overall_passed": False,
        "error": entry.error,
    }


def batch_to_dict(report: BatchReport) -> dict[str, Any]:
    return {
        "summary": report.summary(),
        "artifacts": [entry_to_dict(e) for e in report.entries],
    }


# ── Rich output ──────────────────────────────────────────────────────────────

def _status_line(status: VerdictStatus, path: Path) -> str:
    label, style = STATUS_LABELS[status]
    return f"[{style} bold]{label}[/{style} bold]: {escape(str(path))}"


def _header(artifact: Artifact) -> str:
    if isinstance(artifact, SimplifiedArtifact):
        return (
            f"  Tasks:     {artifact.task_count:,}\n"
            f"  Duration:  {artifact.duration_ms / 1000:.1f}s\n"
            f"  Root hash: {artifact.root_hash.hex()}\n"
            f"  Hardware:  {escape(artifact.hardware)}\n"
            "  Format:    simplified (root hash only, no sample proofs)"
        )
    lines = [f"  Claim:     {escape(artifact.claim or '(none)')}"]
    bench = artifact.benchmark
    tasks = bench.get("tasks_completed")
    if isinstance(tasks, int) and not isinstance(tasks, bool):
        lines.append(f"  Tasks:     {tasks:,}")
    tps = bench.get("throughput_tps")
    if isinstance(tps, (int, float)) and not isinstance(tps, bool):
        lines.append(f"  Throughput: {tps:.1f} tasks/sec")
    memory = bench.get("memory")
    if isinstance(memory, dict):
        growth = memory.get("heap_growth_percent")
        if isinstance(growth, (int, float)) and not isinstance(growth, bool):
            lines.append(f"  Memory growth: {growth:.1f}%")
        if memory.get("note"):
            lines.append(f"  Memory note: {escape(str(memory['note']))}")
    lines.append(f"  Root:      {artifact.merkle_root.hex()}")
    lines.append(f"  Leaves:    {artifact.leaf_count:,}")
    return "\n".join(lines)


def _signature_line(verdict: Verdict) -> str:
    if verdict.kind == "simplified":
        return "  Signature:  [dim]not applicable[/dim]"
    if verdict.signature_skipped:
        return "  Signature:  [dim]skipped (--merkle-only)[/dim]"
    if verdict.signature is None:
        return "  Signature:  [yellow]⚠ not present[/yellow]"
    if verdict.signature.valid:
        return f"  Signature:  [green]✓ Ed25519 valid (payload candidate {verdict.signature.matched_candidate})[/green]"
    return f"  Signature:  [yellow]⚠ {escape(verdict.signature.error or 'invalid')}[/yellow]"


def render_verdict(console: Console, path: Path, verdict: Verdict, artifact: Optional[Artifact] = None) -> None:
    """Print one artifact's verdict."""
    if artifact is not None:
        console.print(Panel(
            _header(artifact),
            title=f"[bold cyan]{escape(Path(path).name)}[/bold cyan]",
            border_style="cyan",
            expand=False,
        ))

    if verdict.samples:
        table = Table(title="MERKLE SAMPLES", box=ROUNDED, border_style="cyan", header_style="bold")
        table.add_column("Task", justify="right")
        table.add_column("Outcome")
        table.add_column("Note")
        for s in verdict.samples:
            label, style = _OUTCOME_STYLE[s.outcome]
            table.add_row(f"{s.task_index:,}", f"[{style}]{label}[/{style}]", escape(s.note or ""))
        console.print(table)

    console.print(_signature_line(verdict))
    console.print(f"  [dim]Scope: {escape(verdict.scope_note)}[/dim]")
    for caveat in verdict.caveats:
        console.print(f"  [yellow]⚠ {escape(caveat)}[/yellow]")
    console.print(_status_line(verdict.status, path))


def render_error(console: Console, path: Path, error: str) -> None:
    console.print(f"  [red]✗ {escape(error)}[/red]")
    console.print(_status_line(VerdictStatus.MALFORMED, path))


def render_batch(console: Console, report: BatchReport) -> None:
    """Print every entry followed by a summary table."""
    for entry in report.entries:
        console.print()
        if entry.verdict is not None:
            render_verdict(console, entry.path, entry.verdict, entry.artifact)
        else:
            render_error(console, entry.path, entry.error or "unknown error")

    table = Table(title="SUMMARY", box=ROUNDED, border_style="cyan", header_style="bold")
    table.add_column("Artifact")
    table.add_column("Status")
    for entry in report.entries:
        label, style = STATUS_LABELS[entry.status]
        table.add_row(escape(str(entry.path)), f"[{style}]{label}[/{style}]")
    console.print()
    console.print(table)
    console.print(f"  {report.passed_count} passed, {report.failed_count} failed")


__all__ = [
    "STATUS_LABELS",
    "verdict_to_dict",
    "entry_to_dict",
    "batch_to_dict",
    "render_verdict",
    "render_error",
    "render_batch",
]
