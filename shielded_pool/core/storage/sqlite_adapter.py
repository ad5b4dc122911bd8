import sqlite3
import threading
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from shielded_pool.utils.logger import get_logger

logger = get_logger("storage.sqlite")

# (bucket, key, value); value None deletes the key
Write = Tuple[str, bytes, Optional[bytes]]


class SQLiteAdapter:
    """
    SQLite backend for persistent pool state.

    All state lives in a single bucketed key-value table:
    - meta: genesis parameters and verifying keys
    - tree: frontier nodes, cached root, next leaf index
    - roots: root history ring buffer
    - nullifiers: spent set
    - balances: transparent balances (when the built-in module is used)
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._conn_local = threading.local()

        if not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create connection for current thread."""
        if not hasattr(self._conn_local, "conn"):
            self._conn_local.conn = sqlite3.connect(
                self.db_path,
                timeout=30.0,
                check_same_thread=False
            )
            self._conn_local.conn.row_factory = sqlite3.Row
            # WAL lets readers run alongside the single writer
            self._conn_local.conn.execute("PRAGMA journal_mode=WAL;")
            self._conn_local.conn.execute("PRAGMA synchronous=NORMAL;")
        return self._conn_local.conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_conn()
        with conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    bucket TEXT NOT NULL,
                    key BLOB NOT NULL,
                    value BLOB NOT NULL,
                    PRIMARY KEY (bucket, key)
                )
            """)

    # =========================================================================
    # Key-Value Operations
    # =========================================================================

    def put(self, bucket: str, key: bytes, value: bytes):
        """Save a key-value pair."""
        conn = self._get_conn()
        with conn:
            conn.execute(
                "INSERT OR REPLACE INTO kv_store (bucket, key, value) VALUES (?, ?, ?)",
                (bucket, key, value)
            )

    def get(self, bucket: str, key: bytes) -> Optional[bytes]:
        """Get value by key."""
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT value FROM kv_store WHERE bucket = ? AND key = ?", (bucket, key)
        )
        row = cursor.fetchone()
        return bytes(row['value']) if row else None

    def delete(self, bucket: str, key: bytes):
        conn = self._get_conn()
        with conn:
            conn.execute("DELETE FROM kv_store WHERE bucket = ? AND key = ?", (bucket, key))

    def keys(self, bucket: str) -> List[bytes]:
        """All keys of a bucket, in byte order."""
        conn = self._get_conn()
        cursor = conn.execute("SELECT key FROM kv_store WHERE bucket = ? ORDER BY key ASC", (bucket,))
        return [bytes(row['key']) for row in cursor]

    def write_batch(self, writes: Iterable[Write]):
        """
        Atomically apply a set of writes.

        Either every put/delete lands or none does.
        """
        conn = self._get_conn()
        with conn:
            for bucket, key, value in writes:
                if value is None:
                    conn.execute("DELETE FROM kv_store WHERE bucket = ? AND key = ?", (bucket, key))
                else:
                    conn.execute(
                        "INSERT OR REPLACE INTO kv_store (bucket, key, value) VALUES (?, ?, ?)",
                        (bucket, key, value)
                    )

    def close(self):
        """Close this thread's connection."""
        conn = getattr(self._conn_local, "conn", None)
        if conn is not None:
            conn.close()
            del self._conn_local.conn
