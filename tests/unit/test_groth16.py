"""
Unit tests for Groth16 parsing and verification.

Proofs come from the trapdoor circuits in conftest, so these exercise the
real BN254 pairing check.
"""

import json

import pytest
from py_ecc.optimized_bn128 import curve_order

from shielded_pool.crypto.groth16 import (
    encode_verifying_key,
    parse_proof,
    parse_verifying_key,
    prepare_verifying_key,
    verify_proof,
)


@pytest.fixture(scope="module")
def circuit(groth16_prover):
    return groth16_prover.circuits[groth16_prover.keys.deposit]


@pytest.fixture(scope="module")
def prepared(circuit):
    return prepare_verifying_key(parse_verifying_key(circuit.vk_blob))


class TestParsing:
    """Tests for snarkjs JSON parsing."""

    def test_verifying_key(self, circuit):
        vk = parse_verifying_key(circuit.vk_blob)
        assert vk.n_public == 2
        assert encode_verifying_key(vk) == circuit.vk_blob

    def test_accepts_decoded_dict(self, circuit):
        vk = parse_verifying_key(json.loads(circuit.vk_blob))
        assert vk.n_public == 2

    def test_off_curve_point(self, circuit):
        data = json.loads(circuit.vk_blob)
        data["vk_alpha_1"] = ["1", "3", "1"]
        with pytest.raises(ValueError):
            parse_verifying_key(json.dumps(data))

    def test_wrong_protocol(self, circuit):
        data = json.loads(circuit.vk_blob)
        data["protocol"] = "plonk"
        with pytest.raises(ValueError):
            parse_verifying_key(json.dumps(data))

    def test_npublic_mismatch(self, circuit):
        data = json.loads(circuit.vk_blob)
        data["nPublic"] = 7
        with pytest.raises(ValueError):
            parse_verifying_key(json.dumps(data))

    def test_missing_field(self, circuit):
        data = json.loads(circuit.vk_blob)
        del data["vk_delta_2"]
        with pytest.raises(ValueError):
            parse_verifying_key(json.dumps(data))

    def test_proof_not_json(self):
        with pytest.raises(ValueError):
            parse_proof(b"\x00\x01garbage")


class TestVerification:
    """Tests for the pairing check."""

    def test_valid_proof(self, circuit, prepared):
        proof = circuit.prove([1000, 42])
        assert verify_proof(prepared, [1000, 42], parse_proof(proof))

    def test_tampered_input(self, circuit, prepared):
        proof = circuit.prove([1000, 42])
        assert not verify_proof(prepared, [1001, 42], parse_proof(proof))

    def test_wrong_arity(self, circuit, prepared):
        proof = circuit.prove([1000, 42])
        assert not verify_proof(prepared, [1000], parse_proof(proof))

    def test_input_outside_field(self, circuit, prepared):
        proof = circuit.prove([1000, 42])
        assert not verify_proof(prepared, [1000 + curve_order, 42], parse_proof(proof))
