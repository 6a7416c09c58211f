"""Stable exit codes for the taskproof CLI."""
from __future__ import annotations

from ..errors import MalformedArtifact

EXIT_VERIFIED = 0
EXIT_FAILED = 1
EXIT_USAGE = 2

_DESCRIPTIONS = {
    EXIT_VERIFIED: "all requested verifications passed",
    EXIT_FAILED: "verification failed, or an artifact was malformed or unreadable",
    EXIT_USAGE: "invalid command-line usage or configuration",
}


def error_to_exit_code(error: BaseException) -> int:
    if isinstance(error, MalformedArtifact):
        return EXIT_FAILED
    return EXIT_USAGE


def exit_code_description(code: int) -> str:
    return _DESCRIPTIONS.get(code, "unknown")


__all__ = [
    "EXIT_VERIFIED",
    "EXIT_FAILED",
    "EXIT_USAGE",
    "error_to_exit_code",
    "exit_code_description",
]
