# trustledger/__init__.py
"""
Trust Ledger — append-only, hash-chained record of trust score + DAO vote events.
Each entry links to its predecessor by SHA-256 over a canonical JSON body,
so any edit to a committed entry is detectable offline.
"""

from trustledger.core.types import Entry, VoteResult, AppendResult
from trustledger.chain.ledger import TrustLedger
from trustledger.verify.verifier import verify_entry, verify_chain, VerificationResult
from trustledger.service import LedgerService

__version__ = "0.1.0-dev"

__all__ = [
    "Entry",
    "VoteResult",
    "AppendResult",
    "TrustLedger",
    "LedgerService",
    "verify_entry",
    "verify_chain",
    "VerificationResult",
]
