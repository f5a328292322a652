# trustledger/integration/collaborators.py
"""
Stand-ins for the services that feed the ledger: a trust scorer and a DAO
vote simulator. Both are seedable so runs can be reproduced; the ledger
itself never calls them.
"""

import random
from typing import Optional, Protocol, runtime_checkable

from trustledger.chain.ledger import TrustLedger
from trustledger.core.types import AppendResult, VoteResult

FNV_OFFSET = 2166136261
FNV_PRIME = 16777619

SCORE_MIN, SCORE_MAX = 70, 94
DEFAULT_QUORUM = 60


@runtime_checkable
class Scorer(Protocol):
    def score(self, address: Optional[str]) -> float:
        """Return a trust score in [0, 100]."""
        ...


@runtime_checkable
class VoteSimulator(Protocol):
    def simulate(self, score: float) -> VoteResult:
        ...


def fnv1a_32(text: str) -> int:
    h = FNV_OFFSET
    for ch in text.encode("utf-8"):
        h ^= ch
        h = (h * FNV_PRIME) & 0xFFFFFFFF
    return h


class AddressScorer:
    """Maps an address to a stable score in [70, 94]; no address means a random one."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def score(self, address: Optional[str]) -> int:
        base = (fnv1a_32(address) % 1000) / 1000 if address else self.rng.random()
        return min(SCORE_MAX, max(SCORE_MIN, int(SCORE_MIN + base * 25)))


class QuorumVoteSimulator:
    """Yes votes track the score (clamped to 30..90) with +/-5 jitter; approved at quorum."""

    def __init__(self, quorum: int = DEFAULT_QUORUM, rng: Optional[random.Random] = None):
        self.quorum = quorum
        self.rng = rng or random.Random()

    def simulate(self, score: float) -> VoteResult:
        base_yes = max(30, min(90, round(score)))
        yes = max(0, min(100, base_yes + self.rng.randint(-5, 4)))
        no = max(0, min(100, 100 - yes))
        return VoteResult(
            approved=yes >= self.quorum,
            yes=yes,
            no=no,
            quorum=self.quorum,
            reference_id="0x" + "".join(self.rng.choice("0123456789abcdef") for _ in range(64)),
        )


class TrustFlow:
    """Score an address, run the vote, and record the outcome on the ledger."""

    def __init__(
        self,
        ledger: TrustLedger,
        scorer: Optional[Scorer] = None,
        voter: Optional[VoteSimulator] = None,
        seed: Optional[int] = None,
    ):
        rng = random.Random(seed)
        self.ledger = ledger
        self.scorer = scorer or AddressScorer(rng)
        self.voter = voter or QuorumVoteSimulator(rng=rng)

    def run(self, address: Optional[str]) -> AppendResult:
        score = self.scorer.score(address)
        vote = self.voter.simulate(score)
        return self.ledger.record(address, score, vote)
