"""Commitment tree, root history, nullifiers and the pool ledger"""
from shielded_pool.core.state.merkle import (
    CommitmentTree,
    ZERO_HASHES,
    hash_pair,
    reference_root,
    reference_path,
    verify_path,
)
from shielded_pool.core.state.roots import RootHistory
from shielded_pool.core.state.nullifiers import NullifierRegistry
from shielded_pool.core.state.events import (
    Deposited,
    Withdrawn,
    Transacted,
    EventLog,
    event_to_dict,
)
from shielded_pool.core.state.ledger import ShieldedPool, PoolSnapshot

__all__ = [
    "CommitmentTree",
    "ZERO_HASHES",
    "hash_pair",
    "reference_root",
    "reference_path",
    "verify_path",
    "RootHistory",
    "NullifierRegistry",
    "Deposited",
    "Withdrawn",
    "Transacted",
    "EventLog",
    "event_to_dict",
    "ShieldedPool",
    "PoolSnapshot",
]
