# trustledger/service.py
"""
Request/response boundary for append and verify.

Takes and returns plain JSON-ready dicts (camelCase keys), so any transport
(HTTP handler, CLI, queue consumer) can sit in front of it.
"""

import logging
import math
from numbers import Real
from typing import Any, Mapping

from trustledger.chain.ledger import TrustLedger
from trustledger.core.errors import MalformedEntryError, MalformedInputError
from trustledger.verify.verifier import verify_entry

logger = logging.getLogger(__name__)


class LedgerService:
    def __init__(self, ledger: TrustLedger):
        self.ledger = ledger

    def handle_append(self, request: Mapping[str, Any]) -> dict:
        """{address, score, voteResult} -> {entry, timeline, persisted}"""
        if not isinstance(request, Mapping):
            raise MalformedInputError("Append request must be a JSON object")

        address = request.get("address")
        if address is not None and not isinstance(address, str):
            raise MalformedInputError("address must be a string or null")

        if "score" not in request:
            raise MalformedInputError("score is required")
        score = _coerce_score(request["score"])

        vote_result = request.get("voteResult")
        if not isinstance(vote_result, Mapping):
            raise MalformedInputError("voteResult must be a JSON object")

        result = self.ledger.record(address, score, vote_result)
        if not result.persisted:
            logger.warning("Entry %d committed in memory only", result.entry.height)
        return result.to_dict()

    def handle_verify(self, request: Mapping[str, Any]) -> dict:
        """{entry, window} -> {valid, hashOk, chainOk, reason, recomputed}"""
        if not isinstance(request, Mapping):
            raise MalformedInputError("Verify request must be a JSON object")

        entry = request.get("entry")
        if not isinstance(entry, Mapping) or not entry.get("hash"):
            raise MalformedEntryError("Missing entry/hash")

        window = request.get("window") or []
        if not isinstance(window, list):
            raise MalformedInputError("window must be a list of entries")

        return verify_entry(entry, window).to_dict()


def _coerce_score(value: Any):
    if isinstance(value, bool):
        raise MalformedInputError("score must be a number")
    if isinstance(value, Real):
        number = value
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise MalformedInputError(f"score must be a number, got {value!r}")
    if isinstance(number, float) and not math.isfinite(number):
        raise MalformedInputError("score must be finite")
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number
