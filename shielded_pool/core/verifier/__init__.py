"""Public input codec and proof verification gate"""
from shielded_pool.core.verifier.codec import (
    FieldSpec,
    InputLayout,
    PublicInputs,
    DEPOSIT_LAYOUT,
    WITHDRAW_LAYOUT,
    TRANSACT_LAYOUT,
    LAYOUTS,
    decode_public_inputs,
    encode_public_inputs,
)
from shielded_pool.core.verifier.backends import (
    VerifierBackend,
    Groth16Verifier,
    MockVerifier,
    make_backend,
)
from shielded_pool.core.verifier.gate import VerificationGate, VerifyingKeys

__all__ = [
    "FieldSpec",
    "InputLayout",
    "PublicInputs",
    "DEPOSIT_LAYOUT",
    "WITHDRAW_LAYOUT",
    "TRANSACT_LAYOUT",
    "LAYOUTS",
    "decode_public_inputs",
    "encode_public_inputs",
    "VerifierBackend",
    "Groth16Verifier",
    "MockVerifier",
    "make_backend",
    "VerificationGate",
    "VerifyingKeys",
]
