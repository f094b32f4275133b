"""
Concordia — Agent Primitives

A registered participant. Agents are created on registration, mutated only
when a decision is finalized, and never deleted.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from concordia.primitives.common import AgentRole, ConcordiaModel, utc_now

BASELINE_REPUTATION = 100


class Agent(ConcordiaModel):
    id: str
    name: str
    role: AgentRole = AgentRole.MEMBER
    weight: float = Field(default=1.0, gt=0.0, allow_inf_nan=False)
    reputation: int = BASELINE_REPUTATION

    # Decision participation counters
    participated_decisions: int = 0
    agreed_decisions: int = 0
    disagreed_decisions: int = 0

    joined_at: datetime = Field(default_factory=utc_now)

    @property
    def agreement_rate(self) -> float | None:
        """Share of finalized decisions this agent voted yes on. None before any."""
        if self.participated_decisions == 0:
            return None
        return self.agreed_decisions / self.participated_decisions
