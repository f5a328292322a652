# tests/test_service.py
import json

import pytest

from trustledger.chain.ledger import TrustLedger
from trustledger.core.errors import MalformedEntryError, MalformedInputError
from trustledger.integration.collaborators import (
    AddressScorer,
    QuorumVoteSimulator,
    Scorer,
    TrustFlow,
    VoteSimulator,
    fnv1a_32,
)
from trustledger.service import LedgerService
from trustledger.storage import MemoryStorage

VOTE = {"approved": True, "yes": 70, "no": 30, "quorum": 60, "referenceId": "r1"}


@pytest.fixture
def service(clock) -> LedgerService:
    return LedgerService(TrustLedger(storage=MemoryStorage(), clock=clock, timeline_size=2))


def test_append_response_shape(service):
    response = service.handle_append({"address": "0xabc", "score": 75, "voteResult": VOTE})

    assert set(response) == {"entry", "timeline", "persisted"}
    assert response["persisted"] is True
    assert response["entry"]["height"] == 1
    assert response["entry"]["prevHash"] is None
    assert response["timeline"] == [response["entry"]]


def test_append_timeline_is_bounded(service):
    for _ in range(3):
        response = service.handle_append({"address": "0xabc", "score": 75, "voteResult": VOTE})
    assert [e["height"] for e in response["timeline"]] == [2, 3]


def test_append_coerces_numeric_strings(service):
    response = service.handle_append({"address": None, "score": "75", "voteResult": VOTE})
    assert response["entry"]["score"] == 75
    assert response["entry"]["address"] is None


@pytest.mark.parametrize("request_body", [
    {"address": "0xabc", "score": "high", "voteResult": VOTE},
    {"address": "0xabc", "score": True, "voteResult": VOTE},
    {"address": "0xabc", "score": float("nan"), "voteResult": VOTE},
    {"address": "0xabc", "score": 75},
    {"address": "0xabc", "voteResult": VOTE},
    {"address": 42, "score": 75, "voteResult": VOTE},
    ["not", "an", "object"],
])
def test_append_rejects_malformed_requests(service, request_body):
    with pytest.raises(MalformedInputError):
        service.handle_append(request_body)
    assert service.ledger.height == 0


def test_verify_roundtrip_over_json(service):
    first = json.loads(json.dumps(service.handle_append({"address": "0xabc", "score": 75, "voteResult": VOTE})))
    second = json.loads(json.dumps(service.handle_append({"address": "0xabc", "score": 80.5, "voteResult": VOTE})))

    response = service.handle_verify({"entry": second["entry"], "window": [first["entry"]]})
    assert response == {
        "valid": True,
        "hashOk": True,
        "chainOk": True,
        "reason": None,
        "recomputed": second["entry"]["hash"],
    }


def test_verify_reports_missing_predecessor(service):
    service.handle_append({"address": "0xabc", "score": 75, "voteResult": VOTE})
    second = service.handle_append({"address": "0xabc", "score": 80, "voteResult": VOTE})

    response = service.handle_verify({"entry": second["entry"]})
    assert response["valid"] is False
    assert response["chainOk"] is False
    assert response["reason"] == "predecessor not found in provided window"


def test_verify_reports_tampering(service):
    entry = service.handle_append({"address": "0xabc", "score": 75, "voteResult": VOTE})["entry"]
    entry["score"] = 100
    response = service.handle_verify({"entry": entry, "window": []})
    assert response["hashOk"] is False
    assert response["reason"] == "hash mismatch"


def test_verify_rejects_entry_without_hash(service):
    entry = service.handle_append({"address": "0xabc", "score": 75, "voteResult": VOTE})["entry"]
    del entry["hash"]
    with pytest.raises(MalformedEntryError):
        service.handle_verify({"entry": entry})
    with pytest.raises(MalformedEntryError):
        service.handle_verify({})


# ── collaborators ────────────────────────────────────────────────────────

def test_fnv1a_known_value():
    assert fnv1a_32("") == 2166136261
    assert fnv1a_32("a") == 0xE40C292C


def test_address_scorer_is_stable_and_bounded():
    scorer = AddressScorer()
    assert isinstance(scorer, Scorer)
    assert scorer.score("0xabc") == scorer.score("0xabc")
    for address in ["0xabc", "0xdef", "0x" + "f" * 40, None]:
        assert 70 <= scorer.score(address) <= 94


def test_vote_simulator_tracks_score():
    import random
    voter = QuorumVoteSimulator(rng=random.Random(1))
    assert isinstance(voter, VoteSimulator)
    for score in [0, 45, 75, 100]:
        vote = voter.simulate(score)
        assert vote.yes + vote.no == 100
        assert vote.approved == (vote.yes >= 60)
        assert max(30, min(90, score)) - 5 <= vote.yes <= max(30, min(90, score)) + 4
        assert vote.reference_id.startswith("0x") and len(vote.reference_id) == 66


def test_trust_flow_is_reproducible_with_seed(clock):
    first = TrustFlow(TrustLedger(clock=clock), seed=7).run("0xabc")
    second = TrustFlow(TrustLedger(clock=clock), seed=7).run("0xabc")
    assert first.entry.score == second.entry.score
    assert first.entry.vote_result == second.entry.vote_result


def test_trust_flow_with_fixed_collaborators(clock):
    from trustledger.core.types import VoteResult

    class FixedScorer:
        def score(self, address):
            return 75

    class FixedVoter:
        def simulate(self, score):
            return VoteResult(True, 70, 30, 60, "r1")

    result = TrustFlow(TrustLedger(clock=clock), FixedScorer(), FixedVoter()).run("0xabc")
    assert result.entry.score == 75
    assert result.entry.vote_result == VOTE
