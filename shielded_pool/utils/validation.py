"""
Input Validation - sanitization of caller-supplied parameters.

Operation parameters arrive from outside the state machine (signed calls,
batch files, the CLI). These validators reject:
- Account ids of the wrong size
- Amounts that do not fit the 16-byte public-input width
- Malformed hex strings in serialized calls
- Oversized proof blobs
"""

from typing import Any, Optional, Tuple

from shielded_pool.crypto import ACCOUNT_ID_SIZE

# =============================================================================
# Constants
# =============================================================================

MAX_PROOF_SIZE = 16 * 1024  # snarkjs proof JSON is well under 1KB
MAX_PUBLIC_INPUTS = 16

# Amounts are u128 on the host chain
MIN_AMOUNT = 0
MAX_AMOUNT = 2**128 - 1


# =============================================================================
# Validation Functions
# =============================================================================


def validate_bytes(
    data: Any,
    name: str,
    expected_length: Optional[int] = None,
    max_length: Optional[int] = None,
) -> Tuple[bool, str]:
    """
    Validate bytes input.

    Args:
        data: Data to validate
        name: Field name for error messages
        expected_length: Exact expected length
        max_length: Maximum allowed length

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(data, (bytes, bytearray)):
        return False, f"{name} must be bytes, got {type(data).__name__}"

    if expected_length is not None and len(data) != expected_length:
        return False, f"{name} must be {expected_length} bytes, got {len(data)}"

    if max_length is not None and len(data) > max_length:
        return False, f"{name} exceeds max length {max_length}, got {len(data)}"

    return True, ""


def validate_account(account: Any, name: str = "account") -> Tuple[bool, str]:
    """Validate a 32-byte account id."""
    return validate_bytes(account, name, expected_length=ACCOUNT_ID_SIZE)


def validate_proof(proof: Any) -> Tuple[bool, str]:
    """Validate a proof blob (size only, contents are the verifier's job)."""
    return validate_bytes(proof, "proof", max_length=MAX_PROOF_SIZE)


def validate_integer(
    value: Any,
    name: str,
    min_val: int = MIN_AMOUNT,
    max_val: int = MAX_AMOUNT,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_amount(amount: Any, name: str = "amount") -> Tuple[bool, str]:
    """Validate a token amount (u128)."""
    return validate_integer(amount, name, MIN_AMOUNT, MAX_AMOUNT)


def validate_hex_string(value: Any, name: str, expected_bytes: Optional[int] = None) -> Tuple[bool, str]:
    """
    Validate a hex string (with or without 0x prefix).

    Args:
        value: Value to validate
        name: Field name
        expected_bytes: Expected byte length when decoded

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, f"{name} must be str, got {type(value).__name__}"

    hex_str = value[2:] if value.startswith("0x") else value

    if len(hex_str) % 2 != 0:
        return False, f"{name} has odd length, invalid hex"

    try:
        bytes.fromhex(hex_str)
    except ValueError:
        return False, f"{name} contains invalid hex characters"

    if expected_bytes is not None:
        actual_bytes = len(hex_str) // 2
        if actual_bytes != expected_bytes:
            return False, f"{name} must be {expected_bytes} bytes, got {actual_bytes}"

    return True, ""


# =============================================================================
# Composite Validators
# =============================================================================


def validate_call_data(data: Any) -> Tuple[bool, str]:
    """Validate a serialized pool call (see `shielded_pool.core.batch`)."""
    if not isinstance(data, dict):
        return False, "Call data must be dict"

    op = data.get("op")
    required = {
        "deposit": ["caller", "proof", "public_inputs", "amount"],
        "withdraw": ["origin", "proof", "public_inputs", "recipient", "amount"],
        "transact": ["origin", "proof", "public_inputs"],
    }.get(op)
    if required is None:
        return False, f"Unknown call op: {op!r}"

    for field in required:
        if field not in data:
            return False, f"Missing required field: {field}"

    for field in ("caller", "origin", "recipient"):
        if field in required:
            valid, err = validate_hex_string(data[field], field, ACCOUNT_ID_SIZE)
            if not valid:
                return False, err

    valid, err = validate_hex_string(data["proof"], "proof")
    if not valid:
        return False, err

    inputs = data["public_inputs"]
    if not isinstance(inputs, list) or len(inputs) > MAX_PUBLIC_INPUTS:
        return False, f"public_inputs must be a list of at most {MAX_PUBLIC_INPUTS} hex strings"
    for i, item in enumerate(inputs):
        valid, err = validate_hex_string(item, f"public_inputs[{i}]")
        if not valid:
            return False, err

    if "amount" in required:
        valid, err = validate_amount(data["amount"])
        if not valid:
            return False, err

    return True, ""


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "validate_bytes",
    "validate_account",
    "validate_proof",
    "validate_integer",
    "validate_amount",
    "validate_hex_string",
    "validate_call_data",
    "MAX_PROOF_SIZE",
    "MAX_PUBLIC_INPUTS",
    "MAX_AMOUNT",
]
