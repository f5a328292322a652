# trustledger/storage/sqlite.py
import json
import os
import sqlite3
from pathlib import Path
from typing import Iterator, List, Optional

from trustledger.core.canon import canonical_json_str
from trustledger.core.errors import StorageError, sanitize_exception
from trustledger.core.types import Entry
from . import StorageBackend


class SQLiteStorage(StorageBackend):
    """SQLite persistent storage for ledger entries, keyed by height."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            env_path = os.environ.get("TRUST_LEDGER_DB_PATH")
            db_path = env_path if env_path else Path.cwd() / ".data" / "trust_ledger.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = self.db_path.resolve()

        self._conn: Optional[sqlite3.Connection] = None
        self._connect()

    def _connect(self):
        # the ledger serializes writers itself; readers may come from other threads
        self._conn = sqlite3.connect(str(self.db_path), isolation_level=None, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_schema()

    def _create_schema(self):
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS entries (
                height          INTEGER PRIMARY KEY,
                hash            TEXT    NOT NULL,
                prev_hash       TEXT,
                created_at      TEXT    NOT NULL,
                address         TEXT,
                canonical_json  TEXT    NOT NULL
            )
        """)
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_hash    ON entries(hash)")
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_address ON entries(address)")

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Storage connection is closed")
        return self._conn

    def append(self, entry: Entry) -> None:
        try:
            # append-only: a height that already exists is never overwritten
            self.conn.execute("""
                INSERT OR IGNORE INTO entries
                (height, hash, prev_hash, created_at, address, canonical_json)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                entry.height, entry.hash, entry.prev_hash, entry.created_at,
                entry.address, canonical_json_str(entry.to_dict())
            ))
        except sqlite3.Error as e:
            raise StorageError(sanitize_exception(e)) from e

    def load_last(self) -> Optional[Entry]:
        recent = self.load_recent(1)
        return recent[0] if recent else None

    def load_recent(self, n: int) -> List[Entry]:
        try:
            cursor = self.conn.execute("""
                SELECT canonical_json FROM entries
                ORDER BY height DESC
                LIMIT ?
            """, (max(n, 0),))
            loaded = [Entry.from_dict(json.loads(row[0])) for row in cursor]
        except (sqlite3.Error, ValueError) as e:
            raise StorageError(sanitize_exception(e)) from e
        loaded.reverse()  # latest last
        return loaded

    def iter_entries(self) -> Iterator[Entry]:
        cursor = self.conn.execute("SELECT canonical_json FROM entries ORDER BY height ASC")
        for (cjson,) in cursor:
            yield Entry.from_dict(json.loads(cjson))

    def count(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM entries").fetchone()[0]

    def find_by_hash(self, entry_hash: str) -> Optional[Entry]:
        row = self.conn.execute(
            "SELECT canonical_json FROM entries WHERE hash = ?", (entry_hash,)
        ).fetchone()
        return Entry.from_dict(json.loads(row[0])) if row else None

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None
