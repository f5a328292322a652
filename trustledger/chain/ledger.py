# trustledger/chain/ledger.py
import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping, Optional, Union

from trustledger.core.errors import LedgerError, sanitize_exception
from trustledger.core.hashing import entry_hash
from trustledger.core.types import (
    AppendResult,
    DEFAULT_TIMELINE_SIZE,
    ENTRY_KIND,
    Entry,
    GENESIS_PREV_HASH,
    VoteResult,
)
from trustledger.storage import StorageBackend, create_storage

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(ts: datetime) -> str:
    """ISO 8601 UTC with millis and a Z suffix, e.g. 2026-02-13T12:00:00.000Z"""
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"


def make_ledger_id(ts: datetime, height: int) -> str:
    return f"ledger_{ts.astimezone(timezone.utc).strftime('%Y%m%d%H%M%S')}_{height:06d}"


class TrustLedger:
    """
    Append-only, hash-chained ledger of (address, score, vote result) events.

    The in-memory sequence is the single source of truth for this process.
    An optional storage backend mirrors every committed entry; its failures
    are reported through the `persisted` flag and never undo an append.
    On construction the backend's last entry (if any) seeds the tail, so a
    restarted process continues the same chain instead of a new genesis.
    """

    def __init__(
        self,
        storage: Optional[Union[StorageBackend, str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        timeline_size: int = DEFAULT_TIMELINE_SIZE,
    ):
        if isinstance(storage, str):
            stripped = storage.strip()
            storage = create_storage(stripped) if stripped else None
        self.storage: Optional[StorageBackend] = storage
        self.clock = clock or utc_now
        self.timeline_size = timeline_size

        self._entries: List[Entry] = []
        self._last_created: Optional[datetime] = None
        self._persistence_failures = 0
        self._lock = threading.Lock()

        if self.storage is not None:
            self._seed_from_storage()

    def _seed_from_storage(self) -> None:
        try:
            last = self.storage.load_last()
        except (LedgerError, OSError, ValueError) as e:
            logger.warning("Could not read ledger tail, starting without prior state: %s", sanitize_exception(e))
            return
        if last is None:
            return
        self._entries.append(last)
        try:
            self._last_created = _parse_timestamp(last.created_at)
        except ValueError:
            self._last_created = None
        logger.info("Resumed ledger at height %d (%s)", last.height, last.hash)

    @property
    def height(self) -> int:
        with self._lock:
            return self._entries[-1].height if self._entries else 0

    @property
    def last_hash(self) -> Optional[str]:
        with self._lock:
            return self._entries[-1].hash if self._entries else None

    @property
    def persistence_failures(self) -> int:
        """Number of mirror writes that failed since this ledger was created."""
        return self._persistence_failures

    def append(
        self,
        address: Optional[str],
        score: Union[int, float],
        vote_result: Union[VoteResult, Mapping[str, Any]],
    ) -> Entry:
        """Commit a new entry and return it. Storage problems never make this fail."""
        entry, _, _ = self._commit(address, score, vote_result)
        return entry

    def record(
        self,
        address: Optional[str],
        score: Union[int, float],
        vote_result: Union[VoteResult, Mapping[str, Any]],
    ) -> AppendResult:
        """Append and return the entry with the recent timeline and the mirror status."""
        entry, persisted, timeline = self._commit(address, score, vote_result)
        return AppendResult(entry=entry, timeline=timeline, persisted=persisted)

    def _commit(self, address, score, vote_result):
        # Entry stores a frozen copy, so later edits to the caller's object do not reach it
        payload = vote_result.to_dict() if isinstance(vote_result, VoteResult) else vote_result

        # tail read -> next entry -> commit -> mirror, all under one lock
        with self._lock:
            last = self._entries[-1] if self._entries else None
            height = last.height + 1 if last else 1
            prev_hash = last.hash if last else GENESIS_PREV_HASH

            now = self.clock()
            if self._last_created is not None and now < self._last_created:
                now = self._last_created   # keep createdAt non-decreasing

            unhashed = Entry(
                kind=ENTRY_KIND,
                ledger_id=make_ledger_id(now, height),
                height=height,
                prev_hash=prev_hash,
                address=address,
                score=score,
                vote_result=payload,
                created_at=format_timestamp(now),
            )
            # raises CanonicalEncodingError on malformed input, before anything is committed
            entry = replace(unhashed, hash=entry_hash(unhashed))

            self._entries.append(entry)
            self._last_created = now
            persisted = self._mirror(entry)
            timeline = self._entries[-self.timeline_size:] if self.timeline_size > 0 else []

        return entry, persisted, timeline

    def _mirror(self, entry: Entry) -> bool:
        if self.storage is None:
            return False
        try:
            self.storage.append(entry)
            return True
        except Exception as e:
            self._persistence_failures += 1
            logger.warning("Failed to persist ledger entry %d: %s", entry.height, sanitize_exception(e))
            return False

    def recent_window(self, n: Optional[int] = None) -> List[Entry]:
        """Last `n` committed entries (default: timeline size), oldest first."""
        if n is None:
            n = self.timeline_size
        if n <= 0:
            return []
        with self._lock:
            return self._entries[-n:]

    def get_chain(self) -> List[Entry]:
        """Returns copy of the in-memory chain"""
        with self._lock:
            return self._entries.copy()

    def reset(self) -> None:
        """Drop the in-memory sequence. The storage mirror is left untouched."""
        with self._lock:
            self._entries = []
            self._last_created = None

    def close(self) -> None:
        if self.storage is not None:
            try:
                self.storage.close()
            except (LedgerError, OSError) as e:
                logger.warning("Error closing storage: %s", sanitize_exception(e))
            self.storage = None


def _parse_timestamp(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)
