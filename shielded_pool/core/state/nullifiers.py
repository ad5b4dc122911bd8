"""
Nullifier Registry - the spent set.

A nullifier is revealed when a note is spent. Recording it makes any second
spend of the same note fail, whichever operation attempts it. Entries are
never removed; an insertion is undone only by rolling back the enclosing
store transaction.
"""

from typing import List

from shielded_pool.core.errors import NullifierAlreadySpent
from shielded_pool.core.storage.state_store import META, NULLIFIERS, StateStore
from shielded_pool.crypto import short_hex

_SPENT = b"\x01"
_COUNT = b"nullifier_count"


class NullifierRegistry:
    """Persistent set of spent nullifiers."""

    def __init__(self, store: StateStore):
        self.store = store

    def is_spent(self, nullifier: bytes) -> bool:
        return self.store.has(NULLIFIERS, bytes(nullifier))

    def mark_spent(self, nullifier: bytes):
        """
        Record a nullifier.

        Raises:
            NullifierAlreadySpent: If it was recorded before
        """
        if self.is_spent(nullifier):
            raise NullifierAlreadySpent(f"Nullifier {short_hex(nullifier)} already spent")
        self.store.put(NULLIFIERS, bytes(nullifier), _SPENT)
        self.store.put_int(META, _COUNT, len(self) + 1)

    def all(self) -> List[bytes]:
        """Every spent nullifier, in byte order."""
        return self.store.iter_keys(NULLIFIERS)

    def __len__(self) -> int:
        return self.store.get_int(META, _COUNT)

    def __contains__(self, nullifier: bytes) -> bool:
        return self.is_spent(nullifier)
