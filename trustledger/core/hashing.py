# trustledger/core/hashing.py
import hashlib
from typing import Any, Mapping, Union

from trustledger.core.canon import canonical_json
from trustledger.core.types import Entry

HASH_PREFIX = "0x"


def sha256_hex(obj: Any) -> str:
    """SHA-256 over the canonical JSON bytes of `obj`, as 0x-prefixed lowercase hex."""
    return HASH_PREFIX + hashlib.sha256(canonical_json(obj)).hexdigest()


def body_of(entry: Union[Entry, Mapping[str, Any]]) -> dict:
    """Strip the `hash` field, leaving exactly what was hashed at append time."""
    if isinstance(entry, Entry):
        return entry.body_dict()
    return {k: v for k, v in entry.items() if k != "hash"}


def entry_hash(entry: Union[Entry, Mapping[str, Any]]) -> str:
    return sha256_hex(body_of(entry))
