# trustledger/core/types.py
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Union

from trustledger.core.errors import MalformedEntryError

ENTRY_KIND = "trust_kernel_v1"   # schema tag; v1 pins prevHash=null at genesis
GENESIS_PREV_HASH = None         # the "no predecessor" value
DEFAULT_TIMELINE_SIZE = 20

# wire name -> attribute name
_ENTRY_FIELDS = {
    "kind": "kind",
    "ledgerId": "ledger_id",
    "height": "height",
    "prevHash": "prev_hash",
    "address": "address",
    "score": "score",
    "voteResult": "vote_result",
    "createdAt": "created_at",
}


@dataclass(frozen=True)
class VoteResult:
    """Outcome of a (simulated) DAO vote, as supplied by the vote simulator."""
    approved: bool
    yes: float
    no: float
    quorum: float
    reference_id: str

    def to_dict(self) -> dict:
        return {
            "approved": self.approved,
            "yes": self.yes,
            "no": self.no,
            "quorum": self.quorum,
            "referenceId": self.reference_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VoteResult":
        return cls(
            approved=bool(data["approved"]),
            yes=data["yes"],
            no=data["no"],
            quorum=data["quorum"],
            reference_id=data["referenceId"],
        )


def _freeze(value: Any) -> Any:
    """Read-only view of a JSON-like value: mappings become proxies, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class Entry:
    """Single committed record in the hash-chained ledger."""
    kind: str
    ledger_id: str                  # ledger_<YYYYMMDDHHMMSS>_<height:06d>
    height: int                     # 1-based, gapless
    prev_hash: Optional[str]        # None only at genesis
    address: Optional[str]
    score: Union[int, float]
    vote_result: Mapping[str, Any]  # opaque payload, hashed but not interpreted
    created_at: str                 # ISO 8601 UTC with millis
    hash: str = ""                  # "0x" + sha256 hex of the canonical body

    def __post_init__(self):
        # the payload is shared with every reader, so it is stored read-only
        object.__setattr__(self, "vote_result", _freeze(self.vote_result))

    def body_dict(self) -> dict:
        """The hashed payload: every wire field except `hash`, as plain dicts and lists."""
        return {
            wire: _thaw(getattr(self, attr))
            for wire, attr in _ENTRY_FIELDS.items()
        }

    def to_dict(self) -> dict:
        d = self.body_dict()
        d["hash"] = self.hash
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Entry":
        if not isinstance(data, Mapping):
            raise MalformedEntryError("Entry must be a JSON object")
        missing = [wire for wire in ("height", "hash") if wire not in data]
        if missing:
            raise MalformedEntryError(f"Entry is missing field(s): {', '.join(missing)}")
        height, entry_hash = data["height"], data["hash"]
        if not isinstance(height, int) or isinstance(height, bool) or height < 1:
            raise MalformedEntryError(f"Entry height must be a positive integer, got {height!r}")
        if not isinstance(entry_hash, str) or not entry_hash:
            raise MalformedEntryError("Entry hash must be a non-empty string")
        return cls(
            kind=data.get("kind", ENTRY_KIND),
            ledger_id=data.get("ledgerId", ""),
            height=height,
            prev_hash=data.get("prevHash"),
            address=data.get("address"),
            score=data.get("score", 0),
            vote_result=data.get("voteResult"),
            created_at=data.get("createdAt", ""),
            hash=entry_hash,
        )


@dataclass
class AppendResult:
    """What a producer gets back from an append: the entry, a recent window, and the mirror status."""
    entry: Entry
    timeline: List[Entry] = field(default_factory=list)
    persisted: bool = False

    def to_dict(self) -> dict:
        return {
            "entry": self.entry.to_dict(),
            "timeline": [e.to_dict() for e in self.timeline],
            "persisted": self.persisted,
        }
