# trustledger/storage/jsonl.py
"""Append-only JSONL mirror: one canonical JSON entry per line."""

import json
import logging
import os
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional

from trustledger.core.canon import canonical_json_str
from trustledger.core.errors import MalformedEntryError, StorageError, sanitize_exception
from trustledger.core.types import Entry
from . import StorageBackend

logger = logging.getLogger(__name__)

TAIL_READ_CHUNK_SIZE = 4096


def default_jsonl_path() -> Path:
    env_path = os.environ.get("TRUST_LEDGER_PATH")
    return Path(env_path) if env_path else Path.cwd() / ".data" / "trust_ledger.jsonl"


class JSONLStorage(StorageBackend):
    """File-backed storage. Lines are only ever appended, never rewritten."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path is not None else default_jsonl_path()

    def append(self, entry: Entry) -> None:
        line = canonical_json_str(entry.to_dict())
        try:
            # created lazily so read-only deployments only fail here
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8", newline="") as f:
                f.write(line + "\n")
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise StorageError(sanitize_exception(e)) from e

    def load_last(self) -> Optional[Entry]:
        recent = self.load_recent(1)
        return recent[0] if recent else None

    def load_recent(self, n: int) -> List[Entry]:
        if n <= 0 or not self.path.exists():
            return []
        found: List[Entry] = []
        try:
            with self.path.open("rb") as fb:
                for raw in _reverse_lines(fb):
                    entry = _parse_line(raw)
                    if entry is None:
                        continue
                    found.append(entry)
                    if len(found) >= n:
                        break
        except OSError as e:
            logger.warning("Could not read ledger log: %s", sanitize_exception(e))
            return []
        found.reverse()
        return found

    def iter_entries(self) -> Iterator[Entry]:
        if not self.path.exists():
            return
        with self.path.open("rb") as fb:
            for raw in fb:
                entry = _parse_line(raw)
                if entry is not None:
                    yield entry

    def close(self) -> None:
        # every append opens and closes its own handle
        pass


def _reverse_lines(fb: BinaryIO) -> Iterator[bytes]:
    """Yield the lines of a binary file from last to first, reading the tail in chunks."""
    fb.seek(0, os.SEEK_END)
    pos = fb.tell()
    buffer = b""
    while pos > 0:
        read_size = min(TAIL_READ_CHUNK_SIZE, pos)
        pos -= read_size
        fb.seek(pos)
        buffer = fb.read(read_size) + buffer
        lines = buffer.split(b"\n")
        buffer = lines.pop(0)   # possibly partial; completed by the next chunk
        for line in reversed(lines):
            yield line
    yield buffer


def _parse_line(raw: bytes) -> Optional[Entry]:
    line = raw.strip()
    if not line:
        return None
    try:
        data = json.loads(line.decode("utf-8"))
        return Entry.from_dict(data)
    except (UnicodeDecodeError, json.JSONDecodeError, MalformedEntryError) as e:
        logger.warning("Ignoring corrupt ledger record: %s", e)
        return None
