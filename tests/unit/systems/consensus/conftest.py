"""
Shared fixtures for consensus system tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from concordia.config import ConsensusConfig
from concordia.systems.consensus.service import ConsensusService


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += timedelta(milliseconds=ms)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def service(clock: FakeClock) -> ConsensusService:
    """a (1.0), b (1.5), c (1.0); threshold 0.6, min_agents 2."""
    svc = ConsensusService(
        ConsensusConfig(min_agents=2, consensus_threshold=0.6, vote_deadline_ms=300_000),
        clock=clock,
    )
    svc.register_agent("a", "Alpha", weight=1.0)
    svc.register_agent("b", "Beta", weight=1.5)
    svc.register_agent("c", "Gamma", weight=1.0)
    return svc
