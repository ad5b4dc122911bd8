"""
Root History Window.

A prover builds its proof against the root it saw when it started; by the
time the call lands, other deposits may have grown the tree. The pool
therefore accepts any of the last W distinct roots. Roots older than that
are unknown and the caller must re-prove against a fresher root.

Stored as a ring buffer of W slots plus a root -> slot index so membership
is a single lookup.
"""

from typing import List, Optional

from shielded_pool.core.storage.state_store import ROOTS, StateStore

_CURSOR = b"cursor"
_COUNT = b"count"
_SLOT = b"slot:"
_INDEX = b"root:"


class RootHistory:
    """
    Bounded window of recently valid roots (oldest evicted first).

    Attributes:
        store: Backing state store
        capacity: Window size W
    """

    def __init__(self, store: StateStore, capacity: int):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.store = store
        self.capacity = capacity

    def __len__(self) -> int:
        return self.store.get_int(ROOTS, _COUNT)

    def _slot_key(self, slot: int) -> bytes:
        return _SLOT + slot.to_bytes(4, "big")

    def latest(self) -> Optional[bytes]:
        """Most recently recorded root."""
        if len(self) == 0:
            return None
        cursor = self.store.get_int(ROOTS, _CURSOR)
        return self.store.get(ROOTS, self._slot_key((cursor - 1) % self.capacity))

    def record(self, root: bytes) -> bool:
        """
        Push a root, evicting the oldest once the window is full.

        Returns:
            False if `root` is already the latest entry (nothing recorded)
        """
        if self.latest() == root:
            return False

        cursor = self.store.get_int(ROOTS, _CURSOR)
        slot_key = self._slot_key(cursor)

        evicted = self.store.get(ROOTS, slot_key)
        if evicted is not None and self.store.get_int(ROOTS, _INDEX + evicted, -1) == cursor:
            self.store.delete(ROOTS, _INDEX + evicted)

        self.store.put(ROOTS, slot_key, root)
        self.store.put_int(ROOTS, _INDEX + root, cursor, width=4)
        self.store.put_int(ROOTS, _CURSOR, (cursor + 1) % self.capacity, width=4)
        self.store.put_int(ROOTS, _COUNT, min(len(self) + 1, self.capacity), width=4)
        return True

    def is_valid(self, root: bytes) -> bool:
        return self.store.has(ROOTS, _INDEX + bytes(root))

    def roots(self) -> List[bytes]:
        """Window contents, oldest first."""
        count = len(self)
        cursor = self.store.get_int(ROOTS, _CURSOR)
        start = (cursor - count) % self.capacity
        return [
            self.store.get(ROOTS, self._slot_key((start + i) % self.capacity))
            for i in range(count)
        ]
