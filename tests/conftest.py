# tests/conftest.py
from datetime import datetime, timedelta, timezone

import pytest

from trustledger.core.types import VoteResult


class SteppingClock:
    """Deterministic clock: returns `start`, then advances by `step` on each call."""

    def __init__(self, start=datetime(2026, 2, 13, 12, 0, 0, tzinfo=timezone.utc), step=timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.now
        self.now = self.now + self.step
        return value


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def vote_a() -> VoteResult:
    return VoteResult(approved=True, yes=70, no=30, quorum=60, reference_id="r1")


@pytest.fixture
def vote_b() -> VoteResult:
    return VoteResult(approved=False, yes=55, no=45, quorum=60, reference_id="r2")
