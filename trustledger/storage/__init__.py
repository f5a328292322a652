# trustledger/storage/__init__.py
"""
Storage backends that mirror committed ledger entries.

A backend is a secondary sink: the in-memory ledger stays authoritative for
the life of a process, and the backend is read back only to seed the tail
of a restarted process (and for offline audits).
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterator, List, Optional

from trustledger.core.types import Entry


class StorageBackend(ABC):
    """Abstract base for all persistent storage implementations."""

    @abstractmethod
    def append(self, entry: Entry) -> None:
        """Persist one committed entry. Raises StorageError on failure."""

    @abstractmethod
    def load_last(self) -> Optional[Entry]:
        """Return the most recent readable entry, or None when there is no prior state."""

    @abstractmethod
    def load_recent(self, n: int) -> List[Entry]:
        """Return up to `n` of the most recent entries, oldest first."""

    @abstractmethod
    def iter_entries(self) -> Iterator[Entry]:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def create_storage(uri: str) -> StorageBackend:
    if uri.startswith("sqlite://"):
        from .sqlite import SQLiteStorage
        raw_path = uri[len("sqlite://"):]
        return SQLiteStorage(Path(raw_path).resolve())

    elif uri.startswith("jsonl:"):
        from .jsonl import JSONLStorage
        raw_path = uri[len("jsonl:"):]
        return JSONLStorage(Path(raw_path).resolve() if raw_path else None)

    elif uri.startswith("memory:"):
        from .memory import MemoryStorage
        return MemoryStorage()
    else:
        raise ValueError(f"Unsupported storage URI: {uri}")


from .memory import MemoryStorage
from .jsonl import JSONLStorage
from .sqlite import SQLiteStorage

__all__ = ["StorageBackend", "create_storage", "MemoryStorage", "JSONLStorage", "SQLiteStorage"]
