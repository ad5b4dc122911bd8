from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from shielded_pool.core.storage.memory_adapter import MemoryAdapter
from shielded_pool.core.storage.sqlite_adapter import SQLiteAdapter
from shielded_pool.utils.logger import get_logger

logger = get_logger("storage.store")

Adapter = Union[SQLiteAdapter, MemoryAdapter]

# Bucket names
META = "meta"
TREE = "tree"
ROOTS = "roots"
NULLIFIERS = "nullifiers"
BALANCES = "balances"


class StateStore:
    """
    Transactional key-value view over a storage adapter.

    Every pool operation runs inside `transaction()`: writes are buffered in
    an overlay that reads see immediately; on normal exit the overlay is
    flushed to the adapter in one atomic batch, on exception it is dropped.
    Nested transactions join the outermost one.
    """

    def __init__(self, adapter: Adapter):
        self.adapter = adapter
        self._overlay: Optional[Dict[Tuple[str, bytes], Optional[bytes]]] = None
        self._depth = 0

        self.commits = 0
        self.rollbacks = 0

    @classmethod
    def open(cls, data_dir: Path, db_name: str = "pool.db") -> "StateStore":
        """Open (or create) a SQLite-backed store."""
        db_path = Path(data_dir) / db_name
        store = cls(SQLiteAdapter(db_path))
        logger.info(f"StateStore opened at {db_path}")
        return store

    @classmethod
    def in_memory(cls) -> "StateStore":
        return cls(MemoryAdapter())

    def close(self):
        self.adapter.close()

    # =========================================================================
    # Transactions
    # =========================================================================

    @property
    def in_transaction(self) -> bool:
        return self._overlay is not None

    @contextmanager
    def transaction(self) -> Iterator["StateStore"]:
        """All-or-nothing scope for a group of writes."""
        if self._overlay is not None:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self._overlay = {}
        try:
            yield self
        except BaseException:
            self._overlay = None
            self.rollbacks += 1
            raise

        writes = [(bucket, key, value) for (bucket, key), value in self._overlay.items()]
        self._overlay = None
        if writes:
            self.adapter.write_batch(writes)
        self.commits += 1

    # =========================================================================
    # Key-Value Access
    # =========================================================================

    def get(self, bucket: str, key: bytes) -> Optional[bytes]:
        if self._overlay is not None and (bucket, key) in self._overlay:
            return self._overlay[(bucket, key)]
        return self.adapter.get(bucket, key)

    def has(self, bucket: str, key: bytes) -> bool:
        return self.get(bucket, key) is not None

    def put(self, bucket: str, key: bytes, value: bytes):
        if self._overlay is not None:
            self._overlay[(bucket, bytes(key))] = bytes(value)
        else:
            self.adapter.put(bucket, key, value)

    def delete(self, bucket: str, key: bytes):
        if self._overlay is not None:
            self._overlay[(bucket, bytes(key))] = None
        else:
            self.adapter.delete(bucket, key)

    def iter_keys(self, bucket: str) -> List[bytes]:
        """All keys of a bucket in byte order, including pending writes."""
        keys = set(self.adapter.keys(bucket))
        if self._overlay is not None:
            for (b, key), value in self._overlay.items():
                if b != bucket:
                    continue
                if value is None:
                    keys.discard(key)
                else:
                    keys.add(key)
        return sorted(keys)

    # =========================================================================
    # Typed Helpers
    # =========================================================================

    def get_int(self, bucket: str, key: bytes, default: int = 0) -> int:
        raw = self.get(bucket, key)
        return int.from_bytes(raw, byteorder="big") if raw is not None else default

    def put_int(self, bucket: str, key: bytes, value: int, width: int = 8):
        self.put(bucket, key, value.to_bytes(width, byteorder="big"))
