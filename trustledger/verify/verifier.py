# trustledger/verify/verifier.py
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from trustledger.core.errors import LedgerError, MalformedEntryError, sanitize_exception
from trustledger.core.hashing import body_of, sha256_hex
from trustledger.core.types import Entry, GENESIS_PREV_HASH
from trustledger.storage import StorageBackend

REASON_HASH_MISMATCH = "hash mismatch"
REASON_PREDECESSOR_NOT_FOUND = "predecessor not found in provided window"
REASON_PREDECESSOR_HEIGHT = "predecessor height mismatch"
REASON_GENESIS_LINK = "genesis entry must not reference a predecessor"

Candidate = Union[Entry, Mapping[str, Any]]


@dataclass
class VerificationResult:
    """Outcome of checking one entry. Integrity failures are results, not exceptions."""
    valid: bool
    hash_ok: bool
    chain_ok: bool
    reason: Optional[str] = None
    expected_hash: Optional[str] = None

    def __bool__(self):
        return self.valid

    def __str__(self):
        if self.valid:
            return "Entry is valid ✓"
        return f"Entry is NOT valid: {self.reason}"

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "hashOk": self.hash_ok,
            "chainOk": self.chain_ok,
            "reason": self.reason,
            "recomputed": self.expected_hash,
        }


def verify_entry(candidate: Candidate, window: Optional[Sequence[Candidate]] = None) -> VerificationResult:
    """
    Check one entry: recompute its hash, then check that its prevHash points at
    an entry of height-1 inside `window`. Pure; never touches a ledger.
    Raises MalformedEntryError if the candidate has no hash or height.
    """
    claimed_hash, height, prev_hash = _fields(candidate)

    expected = sha256_hex(body_of(candidate))
    hash_ok = expected == claimed_hash
    chain_ok, chain_reason = _check_linkage(height, prev_hash, window or [])

    valid = hash_ok and chain_ok
    if valid:
        reason = None
    elif not hash_ok:
        # a corrupted entry's linkage claim is meaningless, so report the hash first
        reason = REASON_HASH_MISMATCH
    else:
        reason = chain_reason
    return VerificationResult(valid, hash_ok, chain_ok, reason, expected)


def _fields(candidate: Candidate) -> Tuple[str, int, Optional[str]]:
    if isinstance(candidate, Entry):
        claimed, height, prev = candidate.hash, candidate.height, candidate.prev_hash
    elif isinstance(candidate, Mapping):
        claimed, height, prev = candidate.get("hash"), candidate.get("height"), candidate.get("prevHash")
    else:
        raise MalformedEntryError("Entry must be a JSON object")

    if not isinstance(claimed, str) or not claimed:
        raise MalformedEntryError("Entry is missing its hash")
    if not isinstance(height, int) or isinstance(height, bool) or height < 1:
        raise MalformedEntryError("Entry height must be a positive integer")
    return claimed, height, prev


def _check_linkage(height: int, prev_hash: Optional[str], window: Sequence[Candidate]) -> Tuple[bool, Optional[str]]:
    if height == 1:
        if prev_hash == GENESIS_PREV_HASH:
            return True, None
        return False, REASON_GENESIS_LINK

    if not window:
        # nothing to check against: only an entry that claims no predecessor passes
        if prev_hash is None:
            return True, None
        return False, REASON_PREDECESSOR_NOT_FOUND

    for prior in window:
        if _get(prior, "hash") == prev_hash:
            if _get(prior, "height") == height - 1:
                return True, None
            return False, REASON_PREDECESSOR_HEIGHT
    return False, REASON_PREDECESSOR_NOT_FOUND


def _get(item: Candidate, wire_name: str) -> Any:
    if isinstance(item, Entry):
        return getattr(item, wire_name, None)   # "hash" and "height" share wire and attribute names
    if isinstance(item, Mapping):
        return item.get(wire_name)
    return None


@dataclass
class VerificationFailure:
    index: int
    message: str
    category: str = "general"  # "hash", "hash_chain", "height", "storage"


@dataclass
class ChainVerificationResult:
    is_valid: bool
    message: str = ""
    failures: List[VerificationFailure] = field(default_factory=list)
    checked: int = 0

    @property
    def first_failure(self) -> Optional[VerificationFailure]:
        return self.failures[0] if self.failures else None

    def __bool__(self):
        return self.is_valid

    def __str__(self):
        if self.is_valid:
            return "Chain is valid ✓"
        lines = [f"Verification FAILED ({len(self.failures)} issues):"]
        for f in self.failures:
            lines.append(f"  • [{f.index}] {f.category}: {f.message}")
        return "\n".join(lines)


def verify_chain(chain: Sequence[Entry]) -> ChainVerificationResult:
    """
    Audit a contiguous run of entries: every hash recomputes, heights step by one,
    and each prevHash equals the hash before it. The run may start mid-ledger
    (e.g. a resumed process); a run starting at height 1 must begin at genesis.
    """
    if not chain:
        return ChainVerificationResult(True, "Empty chain is valid")

    result = ChainVerificationResult(True, checked=len(chain))
    first_height = chain[0].height

    for i, entry in enumerate(chain):
        if entry.height != first_height + i:
            result.failures.append(VerificationFailure(
                i, f"Height mismatch: expected {first_height + i}, got {entry.height}", "height"))

        if sha256_hex(entry.body_dict()) != entry.hash:
            result.failures.append(VerificationFailure(i, "Stored hash does not match entry body", "hash"))

        if i == 0:
            if entry.height == 1 and entry.prev_hash != GENESIS_PREV_HASH:
                result.failures.append(VerificationFailure(i, REASON_GENESIS_LINK, "hash_chain"))
        elif entry.prev_hash != chain[i - 1].hash:
            result.failures.append(VerificationFailure(
                i, "prevHash does not match previous entry hash", "hash_chain"))

    result.is_valid = not result.failures
    result.message = "Valid chain" if result.is_valid else f"Failed with {len(result.failures)} issues"
    return result


def verify_from_storage(storage: StorageBackend) -> ChainVerificationResult:
    """
    Load every persisted entry and verify the chain.
    Returns result with extra info if load fails.
    """
    try:
        chain = list(storage.iter_entries())
    except (LedgerError, OSError, ValueError) as e:
        return ChainVerificationResult(
            False,
            f"Failed to load ledger from storage: {sanitize_exception(e)}",
            [VerificationFailure(-1, sanitize_exception(e), "storage")]
        )
    return verify_chain(chain)
