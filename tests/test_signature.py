"""Tests for signature payload reconstruction and Ed25519 checks."""
from __future__ import annotations

import base64
import json

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from conftest import compact_sorted, pem_public_key
from taskproof.artifact import classify
from taskproof.signature import (
    CANDIDATE_BUILDERS,
    NO_MATCH_ERROR,
    candidate_payloads,
    iter_candidate_payloads,
    load_public_key,
    match_candidate,
    verify_signature,
)


def candidate_one(doc: dict) -> dict:
    return {
        "benchmark": doc["benchmark"],
        "system": doc["system"],
        "merkle_root": doc["cryptographic_proof"]["merkle_root"],
    }


def candidate_two(doc: dict) -> dict:
    return {
        "version": doc["version"],
        "claim": doc["claim"],
        "benchmark": doc["benchmark"],
        "system": doc["system"],
        "cryptographic_proof": {
            "merkle_root": doc["cryptographic_proof"]["merkle_root"],
            "merkle_leaves": doc["cryptographic_proof"]["merkle_leaves"],
        },
    }


class TestCandidates:

    def test_three_builders_in_fixed_order(self):
        assert [b.__name__ for b in CANDIDATE_BUILDERS] == [
            "summary_with_root",
            "versioned_commitment",
            "unsigned_document",
        ]

    def test_payloads_match_independent_encoding(self, standard_doc, sign_doc, signing_key):
        doc = sign_doc(standard_doc(), signing_key, b"irrelevant")
        payloads = candidate_payloads(classify(doc))
        unsigned = {k: v for k, v in doc.items() if k != "signature"}
        assert payloads == [
            compact_sorted(candidate_one(doc)),
            compact_sorted(candidate_two(doc)),
            compact_sorted(unsigned),
        ]

    def test_absent_fields_are_omitted_not_null(self, standard_doc):
        doc = standard_doc()
        del doc["version"]
        del doc["system"]
        first, second, _ = candidate_payloads(classify(doc))
        assert b"null" not in first
        assert json.loads(second).keys() == {"claim", "benchmark", "cryptographic_proof"}
        assert json.loads(first).keys() == {"benchmark", "merkle_root"}

    def test_match_candidate_short_circuits(self):
        seen = []

        def accepts(payload: bytes) -> bool:
            seen.append(payload)
            return payload == b"two"

        assert match_candidate([b"one", b"two", b"three"], accepts) == (2, 2)
        assert seen == [b"one", b"two"]

    def test_match_candidate_skips_missing_payloads(self):
        seen = []

        def accepts(payload: bytes) -> bool:
            seen.append(payload)
            return payload == b"two"

        assert match_candidate([None, b"two"], accepts) == (2, 2)
        assert seen == [b"two"]

    def test_match_candidate_none(self):
        assert match_candidate([b"a", b"b", b"c"], lambda p: False) == (None, 3)


class TestVerifySignature:

    def test_candidate_one(self, standard_doc, sign_doc, signing_key):
        doc = standard_doc()
        signed = sign_doc(doc, signing_key, compact_sorted(candidate_one(doc)))
        result = verify_signature(classify(signed))
        assert result.valid is True
        assert result.matched_candidate == 1
        assert result.candidates_tried == 1

    def test_candidate_two(self, standard_doc, sign_doc, signing_key):
        doc = standard_doc()
        signed = sign_doc(doc, signing_key, compact_sorted(candidate_two(doc)))
        result = verify_signature(classify(signed))
        assert result.valid is True
        assert result.matched_candidate == 2
        assert result.candidates_tried == 2

    def test_candidate_two_without_version(self, standard_doc, sign_doc, signing_key):
        doc = standard_doc()
        del doc["version"]
        payload = compact_sorted({
            "claim": doc["claim"],
            "benchmark": doc["benchmark"],
            "system": doc["system"],
            "cryptographic_proof": {
                "merkle_root": doc["cryptographic_proof"]["merkle_root"],
                "merkle_leaves": doc["cryptographic_proof"]["merkle_leaves"],
            },
        })
        result = verify_signature(classify(sign_doc(doc, signing_key, payload)))
        assert result.matched_candidate == 2

    def test_candidate_three(self, standard_doc, sign_doc, signing_key):
        doc = standard_doc()
        signed = sign_doc(doc, signing_key, compact_sorted(doc))
        result = verify_signature(classify(signed))
        assert result.valid is True
        assert result.matched_candidate == 3

    def test_tampered_metadata_matches_nothing(self, standard_doc, sign_doc, signing_key):
        doc = standard_doc()
        signed = sign_doc(doc, signing_key, compact_sorted(candidate_one(doc)))
        signed["benchmark"]["throughput_tps"] = 99999.5
        result = verify_signature(classify(signed))
        assert result.valid is False
        assert result.matched_candidate is None
        assert result.error == NO_MATCH_ERROR
        assert result.candidates_tried == 3

    def test_wrong_key(self, standard_doc, sign_doc, signing_key):
        doc = standard_doc()
        other = Ed25519PrivateKey.generate()
        signed = sign_doc(doc, other, compact_sorted(candidate_one(doc)),
                          public_key=pem_public_key(signing_key))
        assert verify_signature(classify(signed)).valid is False

    def test_document_key_order(self, standard_doc, sign_doc, signing_key):
        doc = standard_doc()
        insertion_order = json.dumps(candidate_one(doc), separators=(",", ":")).encode()
        artifact = classify(sign_doc(doc, signing_key, insertion_order))
        assert verify_signature(artifact, "sorted").valid is False
        result = verify_signature(artifact, "document")
        assert result.valid is True
        assert result.matched_candidate == 1

    def test_producer_integral_float_form(self, standard_doc, sign_doc, signing_key):
        doc = standard_doc()
        doc["benchmark"]["throughput_tps"] = 2000.0
        # producer serialises 2000.0 as 2000
        payload = compact_sorted(candidate_one(doc)).replace(b"2000.0", b"2000")
        result = verify_signature(classify(sign_doc(doc, signing_key, payload)))
        assert result.matched_candidate == 1

    def test_producer_small_fraction_form(self, standard_doc, sign_doc, signing_key):
        doc = standard_doc()
        doc["benchmark"]["memory"]["heap_growth_percent"] = 0.00005
        # producer serialises 5e-05 as 0.00005
        payload = compact_sorted(candidate_one(doc)).replace(b"5e-05", b"0.00005")
        result = verify_signature(classify(sign_doc(doc, signing_key, payload)))
        assert result.matched_candidate == 1

    def test_first_match_stops_before_unencodable_candidate(self, standard_doc, sign_doc, signing_key):
        doc = standard_doc()
        signed = sign_doc(doc, signing_key, compact_sorted(candidate_one(doc)))
        signed["extra"] = float("inf")
        result = verify_signature(classify(signed))
        assert result.valid is True
        assert result.matched_candidate == 1
        assert result.candidates_tried == 1

    def test_unencodable_candidate_is_a_non_match(self, standard_doc, sign_doc, signing_key):
        doc = standard_doc()
        signed = sign_doc(doc, signing_key, compact_sorted(candidate_two(doc)))
        signed["extra"] = "bad \ud800"
        artifact = classify(signed)

        payloads = list(iter_candidate_payloads(artifact))
        assert payloads[2] is None
        assert verify_signature(artifact).matched_candidate == 2

        other = sign_doc(signed, signing_key, b"unrelated")
        result = verify_signature(classify(other))
        assert result.valid is False
        assert result.error == NO_MATCH_ERROR
        assert result.candidates_tried == 3

    def test_unsupported_algorithm(self, standard_doc, sign_doc, signing_key):
        doc = standard_doc()
        signed = sign_doc(doc, signing_key, compact_sorted(candidate_one(doc)))
        signed["signature"]["algorithm"] = "RSA"
        result = verify_signature(classify(signed))
        assert result.valid is False
        assert "unsupported" in result.error

    def test_bad_signature_hex(self, standard_doc, sign_doc, signing_key):
        signed = sign_doc(standard_doc(), signing_key, b"x")
        signed["signature"]["value"] = "zz" * 64
        result = verify_signature(classify(signed))
        assert result.valid is False
        assert "hex" in result.error

    def test_short_signature(self, standard_doc, sign_doc, signing_key):
        signed = sign_doc(standard_doc(), signing_key, b"x")
        signed["signature"]["value"] = "00" * 10
        result = verify_signature(classify(signed))
        assert result.valid is False
        assert result.candidates_tried == 0

    def test_unloadable_key(self, standard_doc, sign_doc, signing_key):
        signed = sign_doc(standard_doc(), signing_key, b"x", public_key="not a key!")
        result = verify_signature(classify(signed))
        assert result.valid is False
        assert "public key" in result.error

    def test_requires_signature(self, standard_doc):
        with pytest.raises(ValueError):
            verify_signature(classify(standard_doc()))


class TestLoadPublicKey:

    def _raw(self, key: Ed25519PrivateKey) -> bytes:
        return key.public_key().public_bytes(serialization.Encoding.Raw, serialization.PublicFormat.Raw)

    def test_pem(self, signing_key):
        loaded = load_public_key(pem_public_key(signing_key))
        assert loaded.public_bytes(serialization.Encoding.Raw, serialization.PublicFormat.Raw) == self._raw(signing_key)

    def test_base64_raw(self, signing_key):
        loaded = load_public_key(base64.b64encode(self._raw(signing_key)).decode())
        assert loaded.public_bytes(serialization.Encoding.Raw, serialization.PublicFormat.Raw) == self._raw(signing_key)

    def test_base64_der(self, signing_key):
        der = signing_key.public_key().public_bytes(
            serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
        )
        loaded = load_public_key(base64.b64encode(der).decode())
        assert loaded.public_bytes(serialization.Encoding.Raw, serialization.PublicFormat.Raw) == self._raw(signing_key)

    def test_base64_pem(self, signing_key):
        wrapped = base64.b64encode(pem_public_key(signing_key).encode()).decode()
        loaded = load_public_key(wrapped)
        assert loaded.public_bytes(serialization.Encoding.Raw, serialization.PublicFormat.Raw) == self._raw(signing_key)
