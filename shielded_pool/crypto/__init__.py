"""
Cryptographic primitives for the shielded pool.

This module provides:
- Hashing (BLAKE2b-256) for tree nodes and account binding
- Hex encoding helpers
- BN254 scalar field constant used by the circuits
- Account-id helpers (pool sovereign account, recipient hashing)

Design Notes:
-------------
Tree nodes and recipient hashes use BLAKE2b with a 256-bit digest, the same
hash the host chain uses for its storage keys. Circuit public inputs live in
the BN254 scalar field; the Groth16 pairing check itself is in
`shielded_pool.crypto.groth16`.
"""

from Crypto.Hash import BLAKE2b


# =============================================================================
# Constants
# =============================================================================

# BN254 (alt_bn128) scalar field order
FIELD_PRIME = 21888242871839275222246405745257275088548364400416034343698204186575808495617

# Account ids are 32 bytes (AccountId32)
ACCOUNT_ID_SIZE = 32

# Prefix for module-owned accounts
MODULE_ACCOUNT_PREFIX = b"modl"


# =============================================================================
# Hashing
# =============================================================================


def blake2_256(data: bytes) -> bytes:
    """
    Compute BLAKE2b with a 32-byte digest.

    Used for: Merkle tree nodes, recipient hashes, key fingerprints.
    """
    h = BLAKE2b.new(digest_bits=256)
    h.update(data)
    return h.digest()


# =============================================================================
# Field Elements
# =============================================================================


def int_to_bytes32(val: int) -> bytes:
    """Convert a non-negative integer to 32 big-endian bytes."""
    return val.to_bytes(32, byteorder="big")


def bytes_to_field(data: bytes) -> int:
    """
    Interpret big-endian bytes as a field element.

    Values at or above the field order are reduced modulo FIELD_PRIME.
    """
    return int.from_bytes(data, byteorder="big") % FIELD_PRIME


def is_canonical(data: bytes) -> bool:
    """True if the big-endian value is already below FIELD_PRIME."""
    return int.from_bytes(data, byteorder="big") < FIELD_PRIME


def hash_to_field(data: bytes) -> bytes:
    """
    BLAKE2b-256 of `data` reduced into the scalar field, as 32 bytes.

    Note commitments and nullifiers must be canonical field elements; this
    stands in for a circuit-friendly hash in demos and tests.
    """
    return int_to_bytes32(bytes_to_field(blake2_256(data)))


# =============================================================================
# Accounts
# =============================================================================


def sovereign_account(pallet_id: bytes) -> bytes:
    """
    Derive the pool-owned reserve account from its 8-byte module id.

    account = "modl" || pallet_id || zero padding (32 bytes total)
    """
    if len(pallet_id) != 8:
        raise ValueError(f"pallet_id must be 8 bytes, got {len(pallet_id)}")
    raw = MODULE_ACCOUNT_PREFIX + pallet_id
    return raw + bytes(ACCOUNT_ID_SIZE - len(raw))


def hash_account(account: bytes) -> bytes:
    """
    Hash an account id for binding into a withdrawal proof.

    recipient_hash = BLAKE2b-256(account_id)
    """
    if len(account) != ACCOUNT_ID_SIZE:
        raise ValueError(f"account must be {ACCOUNT_ID_SIZE} bytes, got {len(account)}")
    return blake2_256(account)


# =============================================================================
# Utility Functions
# =============================================================================


def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string with 0x prefix."""
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert hex string (with or without 0x prefix) to bytes."""
    if hex_str.startswith("0x") or hex_str.startswith("0X"):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)


def short_hex(data: bytes, length: int = 10) -> str:
    """Abbreviated hex for log lines."""
    return bytes_to_hex(data)[:length] + "..."
