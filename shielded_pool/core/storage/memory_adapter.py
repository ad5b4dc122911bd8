import threading
from typing import Dict, Iterable, List, Optional, Tuple

from shielded_pool.core.storage.sqlite_adapter import Write


class MemoryAdapter:
    """In-process key-value backend with the same interface as SQLiteAdapter."""

    def __init__(self):
        self._data: Dict[Tuple[str, bytes], bytes] = {}
        self._lock = threading.Lock()

    def put(self, bucket: str, key: bytes, value: bytes):
        with self._lock:
            self._data[(bucket, bytes(key))] = bytes(value)

    def get(self, bucket: str, key: bytes) -> Optional[bytes]:
        return self._data.get((bucket, bytes(key)))

    def delete(self, bucket: str, key: bytes):
        with self._lock:
            self._data.pop((bucket, bytes(key)), None)

    def keys(self, bucket: str) -> List[bytes]:
        with self._lock:
            return sorted(k for b, k in self._data if b == bucket)

    def write_batch(self, writes: Iterable[Write]):
        with self._lock:
            for bucket, key, value in writes:
                if value is None:
                    self._data.pop((bucket, bytes(key)), None)
                else:
                    self._data[(bucket, bytes(key))] = bytes(value)

    def close(self):
        pass
