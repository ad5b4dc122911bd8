"""
Unit tests for the proof verification gate and backends.
"""

import json

import pytest

from shielded_pool.core.errors import MalformedVerifyingKey
from shielded_pool.core.verifier import (
    Groth16Verifier,
    MockVerifier,
    VerificationGate,
    VerifyingKeys,
    make_backend,
)


VK = b"unit-test-circuit"


class TestMockBackend:
    """Tests for the hash-bound mock verifier."""

    def test_accepts_matching_proof(self):
        gate = VerificationGate(MockVerifier())
        proof = MockVerifier.prove(VK, [1, 2, 3])
        assert gate.verify(VK, [1, 2, 3], proof)

    def test_rejects_other_inputs(self):
        gate = VerificationGate(MockVerifier())
        proof = MockVerifier.prove(VK, [1, 2, 3])
        assert not gate.verify(VK, [1, 2, 4], proof)
        assert not gate.verify(VK, [1, 2], proof)

    def test_rejects_other_key(self):
        gate = VerificationGate(MockVerifier())
        proof = MockVerifier.prove(VK, [1, 2, 3])
        assert not gate.verify(b"another-circuit", [1, 2, 3], proof)

    def test_empty_key_malformed(self):
        gate = VerificationGate(MockVerifier())
        with pytest.raises(MalformedVerifyingKey):
            gate.load_key(b"")


class TestGroth16Backend:
    """Tests for Groth16 through the gate."""

    @pytest.fixture
    def circuit(self, groth16_prover):
        return groth16_prover.circuits[groth16_prover.keys.deposit]

    def test_accepts_valid_proof(self, circuit):
        gate = VerificationGate(Groth16Verifier())
        assert gate.verify(circuit.vk_blob, [7, 9], circuit.prove([7, 9]))

    def test_garbage_proof_rejected_not_raised(self, circuit):
        gate = VerificationGate(Groth16Verifier())
        assert gate.verify(circuit.vk_blob, [7, 9], b"not a proof") is False

    def test_off_curve_proof_rejected(self, circuit):
        gate = VerificationGate(Groth16Verifier())
        data = json.loads(circuit.prove([7, 9]))
        data["pi_a"] = ["1", "3", "1"]
        assert gate.verify(circuit.vk_blob, [7, 9], json.dumps(data).encode()) is False

    def test_malformed_key(self):
        gate = VerificationGate(Groth16Verifier())
        with pytest.raises(MalformedVerifyingKey):
            gate.load_key(b'{"protocol": "groth16"}')


class TestCaching:
    """Tests for key caching and result memoization."""

    def test_result_memoized(self):
        gate = VerificationGate(MockVerifier())
        proof = MockVerifier.prove(VK, [5])
        assert gate.verify(VK, [5], proof)
        assert gate.verify(VK, [5], proof)
        assert gate.verifications == 1
        assert gate.cache_hits == 1

    def test_rejections_memoized_too(self):
        gate = VerificationGate(MockVerifier())
        assert not gate.verify(VK, [5], b"bad")
        assert not gate.verify(VK, [5], b"bad")
        assert gate.verifications == 1

    def test_cache_bounded(self):
        gate = VerificationGate(MockVerifier(), cache_size=2)
        for i in range(3):
            gate.verify(VK, [i], MockVerifier.prove(VK, [i]))
        assert gate.stats()["cached_results"] == 2

    def test_key_loaded_once(self):
        gate = VerificationGate(MockVerifier())
        gate.verify(VK, [1], b"x")
        gate.verify(VK, [2], b"y")
        assert gate.stats()["loaded_keys"] == 1


class TestFactory:
    def test_known_backends(self):
        assert make_backend("mock").name == "mock"
        assert make_backend("groth16").name == "groth16"

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            make_backend("plonk")


class TestVerifyingKeys:
    def test_fingerprint(self):
        a = VerifyingKeys(deposit=b"d", transfer=b"t")
        assert a.fingerprint() == VerifyingKeys(deposit=b"d", transfer=b"t").fingerprint()
        assert a.fingerprint() != VerifyingKeys(deposit=b"t", transfer=b"d").fingerprint()
