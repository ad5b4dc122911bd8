"""
Verifier backends for the Proof Verification Gate.

Two backends are provided:
1. Groth16Verifier - real BN254 pairing check over snarkjs keys/proofs
2. MockVerifier - hash-bound fake proofs for development and testing

A backend turns a verifying-key blob into a loaded key once, then checks
(key, public inputs, proof bytes) triples. Backends may raise on malformed
data; the gate turns that into a rejection.
"""

import hmac
from typing import Any, Sequence

from shielded_pool.crypto import blake2_256, int_to_bytes32
from shielded_pool.crypto.groth16 import (
    parse_proof,
    parse_verifying_key,
    prepare_verifying_key,
    verify_proof,
)
from shielded_pool.utils.logger import get_logger

logger = get_logger("verifier")


# =============================================================================
# Backend Interface
# =============================================================================


class VerifierBackend:
    """Interface every verifier backend implements."""

    name = "abstract"

    def load_key(self, blob: bytes) -> Any:
        """Parse a verifying-key blob. Raises ValueError if malformed."""
        raise NotImplementedError

    def verify(self, key: Any, inputs: Sequence[int], proof: bytes) -> bool:
        """Check a proof against a loaded key and public inputs."""
        raise NotImplementedError


# =============================================================================
# Groth16 (BN254)
# =============================================================================


class Groth16Verifier(VerifierBackend):
    """
    Groth16 verifier over BN254.

    Keys are snarkjs `verification_key.json` blobs; proofs are snarkjs
    `proof.json` blobs (UTF-8 JSON bytes).
    """

    name = "groth16"

    def load_key(self, blob: bytes) -> Any:
        vk = parse_verifying_key(blob)
        logger.debug(f"Loaded Groth16 key with {vk.n_public} public inputs")
        return prepare_verifying_key(vk)

    def verify(self, key: Any, inputs: Sequence[int], proof: bytes) -> bool:
        return verify_proof(key, inputs, parse_proof(proof))


# =============================================================================
# Mock Verifier
# =============================================================================


class MockVerifier(VerifierBackend):
    """
    Simulated verifier for development and testing.

    A mock proof is a hash binding the key blob to the exact public inputs,
    so tampering with any input (or using the wrong key) is still rejected.
    This is NOT a zero-knowledge proof.
    """

    name = "mock"

    def load_key(self, blob: bytes) -> Any:
        if not blob:
            raise ValueError("Empty verifying key")
        return bytes(blob)

    def verify(self, key: Any, inputs: Sequence[int], proof: bytes) -> bool:
        return hmac.compare_digest(bytes(proof), self.prove(key, inputs))

    @staticmethod
    def prove(key: bytes, inputs: Sequence[int]) -> bytes:
        """Produce the proof the mock verifier accepts for these inputs."""
        data = b"mock-proof" + blake2_256(key) + len(inputs).to_bytes(4, "big")
        for value in inputs:
            data += int_to_bytes32(value)
        return blake2_256(data)


BACKENDS = {
    Groth16Verifier.name: Groth16Verifier,
    MockVerifier.name: MockVerifier,
}


def make_backend(name: str) -> VerifierBackend:
    """Create a backend by name ('groth16' or 'mock')."""
    try:
        return BACKENDS[name]()
    except KeyError:
        raise ValueError(f"Unknown verifier backend: {name}") from None
