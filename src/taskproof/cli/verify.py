"""taskproof verify - check proof artifacts with stable exit codes.

Usage:
    taskproof verify proof-1m.json
    taskproof verify --all
    taskproof verify --all --merkle-only --json

Exit codes:
    0  - All requested verifications passed
    1  - At least one artifact failed, or could not be read or parsed
    2  - Invalid usage or configuration
"""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from ..batch import discover_artifacts, run_all
from ..canonical import KEY_ORDERS
from ..config import VerifierConfig, load_config
from ..errors import ConfigError, MalformedArtifact
from ..report import batch_to_dict, render_batch, render_error, render_verdict, verdict_to_dict
from ..verifier import VerifyOptions, verify_file
from .exit_codes import EXIT_FAILED, EXIT_VERIFIED, error_to_exit_code, exit_code_description


def _echo_json(result: dict, exit_code: int) -> None:
    result["exit_code"] = exit_code
    result["exit_description"] = exit_code_description(exit_code)
    click.echo(json.dumps(result, indent=2))


def _verify_single(path: Path, options: VerifyOptions, config: VerifierConfig, output_json: bool) -> int:
    try:
        artifact, verdict = verify_file(path, options, max_bytes=config.max_artifact_bytes)
    except MalformedArtifact as e:
        exit_code = error_to_exit_code(e)
        if output_json:
            _echo_json({
                "path": str(path),
                "status": "malformed",
                "overall_passed": False,
                "error": str(e),
            }, exit_code)
        else:
            render_error(Console(highlight=False), path, str(e))
        return exit_code

    exit_code = EXIT_VERIFIED if verdict.overall_passed else EXIT_FAILED
    if output_json:
        _echo_json(verdict_to_dict(verdict, path), exit_code)
    else:
        render_verdict(Console(highlight=False), path, verdict, artifact)
    return exit_code


def _verify_all(directory: Path, options: VerifyOptions, config: VerifierConfig, workers: int, output_json: bool) -> int:
    paths = discover_artifacts(directory, config.artifact_pattern)
    if not paths:
        if output_json:
            _echo_json({"summary": {"total": 0, "passed": 0, "failed": 0}, "artifacts": []}, EXIT_VERIFIED)
        else:
            click.echo(f"No artifact files matching {config.artifact_pattern} found in {directory}")
        return EXIT_VERIFIED

    report = run_all(paths, options, workers=workers, max_bytes=config.max_artifact_bytes)
    exit_code = EXIT_VERIFIED if report.all_passed else EXIT_FAILED
    if output_json:
        _echo_json(batch_to_dict(report), exit_code)
    else:
        console = Console(highlight=False)
        console.print(f"Found {len(paths)} artifact file(s) to verify")
        render_batch(console, report)
    return exit_code


@click.command("verify")
@click.argument("artifact", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option("--all", "verify_all", is_flag=True, help="Verify every artifact matching the configured pattern")
@click.option(
    "--dir",
    "directory",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory searched by --all",
)
@click.option("--merkle-only", is_flag=True, help="Skip signature verification")
@click.option("--json", "output_json", is_flag=True, help="Output result as JSON")
@click.option("--workers", type=click.IntRange(min=1), default=None, help="Parallel workers for --all")
@click.option(
    "--key-order",
    type=click.Choice(KEY_ORDERS),
    default=None,
    help="Key ordering for reconstructed signature payloads",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="JSON config file (default: ./taskproof.json if present)",
)
@click.pass_context
def verify_command(
    ctx: click.Context,
    artifact: Optional[Path],
    verify_all: bool,
    directory: Path,
    merkle_only: bool,
    output_json: bool,
    workers: Optional[int],
    key_order: Optional[str],
    config_path: Optional[Path],
) -> None:
    """Verify Merkle sample proofs and signatures in proof artifacts.

    Pass/fail depends only on the Merkle samples; the signature result is
    reported as a caveat. Only sampled leaves are checked.

    \b
    Examples:
        taskproof verify proof-1m.json
        taskproof verify --all
        taskproof verify --all --merkle-only
    """
    if artifact is None and not verify_all:
        click.echo(ctx.get_help())
        ctx.exit(0)
    if artifact is not None and verify_all:
        raise click.UsageError("pass either an artifact file or --all, not both")

    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.UsageError(str(e))

    options = VerifyOptions(
        skip_signature=merkle_only or config.skip_signature,
        key_order=key_order or config.key_order,
    )

    if verify_all:
        exit_code = _verify_all(directory, options, config, workers or config.workers, output_json)
    else:
        exit_code = _verify_single(artifact, options, config, output_json)
    sys.exit(exit_code)


__all__ = ["verify_command"]
