"""
Error taxonomy for shielded pool operations.

Every rejection raised by an operation derives from ShieldedPoolError and
carries a stable `code` (the class name). A rejected operation leaves state
exactly as it was before the call.

ConsistencyFault marks invariant violations elsewhere in the system; those
are not user errors and halt batch processing.
"""


class ShieldedPoolError(Exception):
    """Base exception for shielded pool operations"""

    @property
    def code(self) -> str:
        return type(self).__name__


# =============================================================================
# Operation Errors
# =============================================================================


class AmountZero(ShieldedPoolError):
    """Deposit amount must be greater than zero"""
    pass


class MismatchedPublicAmount(ShieldedPoolError):
    """Amount in the public inputs differs from the amount parameter"""
    pass


class MalformedPublicInputs(ShieldedPoolError):
    """Public inputs have the wrong count or a field has the wrong width"""
    pass


class UnknownMerkleRoot(ShieldedPoolError):
    """Root is not among the recently recorded roots"""
    pass


class NullifierAlreadySpent(ShieldedPoolError):
    """Nullifier has already been recorded"""
    pass


class DuplicateNullifier(ShieldedPoolError):
    """Both nullifiers of a transfer are the same value"""
    pass


class RecipientMismatch(ShieldedPoolError):
    """Hash of the recipient does not match the proof's recipient hash"""
    pass


class InvalidProof(ShieldedPoolError):
    """zk-SNARK proof was rejected by the verifier"""
    pass


class TreeFull(ShieldedPoolError):
    """Commitment tree has no free leaves left"""
    pass


class InsufficientFunds(ShieldedPoolError):
    """Caller's transparent balance cannot cover the deposit"""
    pass


class FeeExceedsAmount(ShieldedPoolError):
    """Withdrawal fee is larger than the withdrawn amount"""
    pass


class InvalidParameter(ShieldedPoolError):
    """A call parameter (account id, amount) is malformed"""
    pass


class BatchTooLarge(ShieldedPoolError):
    """Batch exceeds the configured maximum number of operations"""
    pass


# =============================================================================
# Initialization Errors
# =============================================================================


class VerifyingKeyNotSet(ShieldedPoolError):
    """Operation arrived before the genesis verifying keys were installed"""
    pass


class MalformedVerifyingKey(ShieldedPoolError):
    """Verifying key blob cannot be parsed by the configured backend"""
    pass


class AlreadyInitialized(ShieldedPoolError):
    """Genesis verifying keys have already been installed"""
    pass


class GenesisMismatch(ShieldedPoolError):
    """Persisted state was created with different genesis parameters"""
    pass


# =============================================================================
# Consistency Faults
# =============================================================================


class ConsistencyFault(ShieldedPoolError):
    """An invariant maintained elsewhere in the system does not hold"""
    pass


class InsufficientReserve(ConsistencyFault):
    """Sovereign reserve cannot cover a withdrawal"""
    pass


__all__ = [
    "ShieldedPoolError",
    "AmountZero",
    "MismatchedPublicAmount",
    "MalformedPublicInputs",
    "UnknownMerkleRoot",
    "NullifierAlreadySpent",
    "DuplicateNullifier",
    "RecipientMismatch",
    "InvalidProof",
    "TreeFull",
    "InsufficientFunds",
    "FeeExceedsAmount",
    "InvalidParameter",
    "BatchTooLarge",
    "VerifyingKeyNotSet",
    "MalformedVerifyingKey",
    "AlreadyInitialized",
    "GenesisMismatch",
    "ConsistencyFault",
    "InsufficientReserve",
]
