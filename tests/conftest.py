"""Pytest configuration and fixtures for taskproof tests."""
from __future__ import annotations

import base64
import copy
import json
import random
from pathlib import Path
from typing import Any, Callable

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from taskproof.hashing import digest
from taskproof.merkle import build_levels, prove, root_from_levels


def raw_public_key_b64(private_key: Ed25519PrivateKey) -> str:
    raw = private_key.public_key().public_bytes(
        serialization.Encoding.Raw,
        serialization.PublicFormat.Raw,
    )
    return base64.b64encode(raw).decode()


def pem_public_key(private_key: Ed25519PrivateKey) -> str:
    return private_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


def compact_sorted(obj: Any) -> bytes:
    """Sorted-key compact JSON, written out independently of taskproof.canonical."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class Tree:
    def __init__(self, n_leaves: int, seed: int = 0):
        rng = random.Random(seed)
        self.leaves = [digest(rng.randbytes(16)) for _ in range(n_leaves)]
        self.levels = build_levels(self.leaves)
        self.root = root_from_levels(self.levels)

    def sample(self, index: int, note: str | None = None) -> dict:
        entry = {
            "task_index": index,
            "leaf_hash": self.leaves[index].hex(),
            "merkle_proof": [
                {"hash": step.sibling.hex(), "position": step.side.value}
                for step in prove(self.levels, index)
            ],
        }
        if note is not None:
            entry["note"] = note
        return entry


@pytest.fixture
def signing_key() -> Ed25519PrivateKey:
    return Ed25519PrivateKey.generate()


@pytest.fixture
def tree() -> Tree:
    return Tree(13, seed=42)


@pytest.fixture
def make_tree() -> Callable[..., Tree]:
    return Tree


@pytest.fixture
def standard_doc(tree: Tree) -> Callable[..., dict]:
    """Factory for a standard-form artifact document (unsigned)."""

    def build(sample_indices=(0, 5, 12), **overrides: Any) -> dict:
        doc = {
            "version": "2.0",
            "claim": "O(1) memory over 13 tasks",
            "benchmark": {
                "tasks_completed": len(tree.leaves),
                "throughput_tps": 1234.5,
                "memory": {"heap_growth_percent": 1.5, "note": "steady"},
            },
            "system": {"platform": "linux", "cpus": 8},
            "cryptographic_proof": {
                "merkle_root": tree.root.hex(),
                "merkle_leaves": len(tree.leaves),
                "sample_proofs": [tree.sample(i) for i in sample_indices],
            },
        }
        doc.update(overrides)
        return doc

    return build


@pytest.fixture
def sign_doc() -> Callable[..., dict]:
    """Attach a signature over ``payload`` to a copy of ``doc``."""

    def attach(doc: dict, private_key: Ed25519PrivateKey, payload: bytes, public_key: str | None = None) -> dict:
        signed = copy.deepcopy(doc)
        signed["signature"] = {
            "algorithm": "Ed25519",
            "value": private_key.sign(payload).hex(),
            "public_key": public_key if public_key is not None else raw_public_key_b64(private_key),
        }
        return signed

    return attach


@pytest.fixture
def write_artifact(tmp_path: Path) -> Callable[[str, Any], Path]:
    def write(name: str, content: Any) -> Path:
        path = tmp_path / name
        if isinstance(content, (bytes, str)):
            data = content if isinstance(content, bytes) else content.encode("utf-8")
            path.write_bytes(data)
        else:
            path.write_text(json.dumps(content, indent=2))
        return path

    return write
