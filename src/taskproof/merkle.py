"""Binary Merkle tree path verification.

An authentication path is an ordered list of sibling digests from leaf to
root. Each step records which side the sibling sits on relative to the
running hash:

    LEFT:   current = H(sibling || current)
    RIGHT:  current = H(current || sibling)

Tree construction helpers (``build_levels``/``prove``) use the same rule and
exist so callers can produce fixtures that the verifier accepts.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import List, Sequence

from .errors import MalformedArtifact
from .hashing import DIGEST_SIZE, digest


class Side(enum.Enum):
    LEFT = "left"
    RIGHT = "right"


class Outcome(enum.Enum):
    VALID = "valid"
    INVALID = "invalid"
    UNVERIFIABLE = "unverifiable"


@dataclass(frozen=True)
class AuthStep:
    sibling: bytes
    side: Side


def _hash_pair(left: bytes, right: bytes) -> bytes:
    return digest(left + right)


def _check_size(value: bytes, what: str) -> None:
    if len(value) != DIGEST_SIZE:
        raise MalformedArtifact(f"{what} must be {DIGEST_SIZE} bytes, got {len(value)}")


def compute_root(leaf: bytes, path: Sequence[AuthStep]) -> bytes:
    """Fold an authentication path over a leaf digest and return the root."""
    _check_size(leaf, "leaf digest")
    for i, step in enumerate(path):
        _check_size(step.sibling, f"sibling digest at step {i}")
    acc = leaf
    for step in path:
        if step.side is Side.LEFT:
            acc = _hash_pair(step.sibling, acc)
        else:
            acc = _hash_pair(acc, step.sibling)
    return acc


def verify_path(leaf: bytes, path: Sequence[AuthStep], expected_root: bytes) -> Outcome:
    """Check a leaf against an expected root.

    An empty path offers no evidence and yields ``Outcome.UNVERIFIABLE``
    regardless of the leaf and root values. Digest length errors raise
    ``MalformedArtifact`` instead of producing an outcome.
    """
    _check_size(expected_root, "expected root")
    if not path:
        _check_size(leaf, "leaf digest")
        return Outcome.UNVERIFIABLE
    computed = compute_root(leaf, path)
    return Outcome.VALID if computed == expected_root else Outcome.INVALID


def build_levels(leaves: List[bytes]) -> List[List[bytes]]:
    """Build every level of the tree, leaves first. Odd nodes pair with themselves."""
    if not leaves:
        raise ValueError("cannot build Merkle tree with zero leaves")
    for i, leaf in enumerate(leaves):
        _check_size(leaf, f"leaf {i}")
    levels: List[List[bytes]] = [list(leaves)]
    current = levels[0]
    while len(current) > 1:
        nxt: List[bytes] = []
        for i in range(0, len(current), 2):
            left = current[i]
            right = current[i + 1] if i + 1 < len(current) else current[i]
            nxt.append(_hash_pair(left, right))
        levels.append(nxt)
        current = nxt
    return levels


def root_from_levels(levels: List[List[bytes]]) -> bytes:
    return levels[-1][0]


def prove(levels: List[List[bytes]], index: int) -> tuple[AuthStep, ...]:
    """Return the authentication path for the leaf at ``index``."""
    if index < 0 or index >= len(levels[0]):
        raise ValueError("index out of range")
    steps: List[AuthStep] = []
    idx = index
    for level in levels[:-1]:
        sibling = idx ^ 1
        if sibling >= len(level):
            sibling = idx
        # even index: we are the left child, so the sibling is on the right
        side = Side.RIGHT if idx % 2 == 0 else Side.LEFT
        steps.append(AuthStep(sibling=level[sibling], side=side))
        idx //= 2
    return tuple(steps)


__all__ = [
    "Side",
    "Outcome",
    "AuthStep",
    "compute_root",
    "verify_path",
    "build_levels",
    "root_from_levels",
    "prove",
]
