# trustledger/storage/memory.py
from typing import Iterator, List, Optional

from trustledger.core.errors import StorageError
from trustledger.core.types import Entry
from . import StorageBackend


class MemoryStorage(StorageBackend):
    """List-backed storage for tests and demos.

    With `fail_writes=True` every append raises, which is how a deployment
    without writable storage looks to the ledger.
    """

    def __init__(self, fail_writes: bool = False):
        self.entries: List[Entry] = []
        self.fail_writes = fail_writes

    def append(self, entry: Entry) -> None:
        if self.fail_writes:
            raise StorageError("storage is read-only")
        self.entries.append(entry)

    def load_last(self) -> Optional[Entry]:
        return self.entries[-1] if self.entries else None

    def load_recent(self, n: int) -> List[Entry]:
        if n <= 0:
            return []
        return self.entries[-n:]

    def iter_entries(self) -> Iterator[Entry]:
        return iter(list(self.entries))

    def close(self) -> None:
        pass
