"""
Persistent Storage Module.

Provides bucketed key-value persistence for:
- Commitment tree frontier and root history
- Nullifier set
- Genesis metadata and transparent balances
"""

from shielded_pool.core.storage.sqlite_adapter import SQLiteAdapter
from shielded_pool.core.storage.memory_adapter import MemoryAdapter
from shielded_pool.core.storage.state_store import StateStore

__all__ = ["SQLiteAdapter", "MemoryAdapter", "StateStore"]
