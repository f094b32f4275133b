"""
Concordia — Consensus Internal Types

Results produced by the validator, tally engine, and evaluator, plus the
Decision record and the snapshots the service hands back to callers.

Design notes:
- Tally is the yes/no/abstain aggregation the consensus rule runs on.
- VoteCount is the per-option audit breakdown. It is what a Decision
  snapshots at finalization.
- Decision is frozen. It is created once per proposal and never edited.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from concordia.primitives.common import ConcordiaModel, ProposalStatus, utc_now
from concordia.primitives.proposal import Proposal

# ─── Validation ───────────────────────────────────────────────────


class ValidationResult(ConcordiaModel):
    """Result of checking a candidate vote against a proposal's type."""

    valid: bool
    reason: str = ""

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(valid=True)

    @classmethod
    def fail(cls, reason: str) -> ValidationResult:
        return cls(valid=False, reason=reason)


# ─── Tallies ──────────────────────────────────────────────────────


class Tally(ConcordiaModel):
    """Raw and weighted yes/no/abstain counts for one proposal."""

    yes_votes: int = 0
    no_votes: int = 0
    abstain_votes: int = 0
    yes_weight: float = 0.0
    no_weight: float = 0.0
    abstain_weight: float = 0.0

    @property
    def total_weight(self) -> float:
        return self.yes_weight + self.no_weight + self.abstain_weight


class BreakdownEntry(ConcordiaModel):
    """One agent's vote, as listed for audit."""

    agent_id: str
    agent_name: str
    vote: bool | int | str | list[int]
    weight: float


class VoteCount(ConcordiaModel):
    """
    Per-option breakdown of a proposal's votes.

    Keys are ``yes``/``no``/``abstain`` for yes/no proposals and option
    indices (as strings) for the others. A label or boolean submitted to a
    single-choice proposal gets its own key.
    """

    counts: dict[str, int] = Field(default_factory=dict)
    weighted_counts: dict[str, float] = Field(default_factory=dict)
    # Weighted Borda points per option; populated for ranked proposals only
    ranked_scores: dict[str, float] = Field(default_factory=dict)
    breakdown: list[BreakdownEntry] = Field(default_factory=list)


class ConsensusStatus(ConcordiaModel):
    """The outcome of one consensus evaluation."""

    proposal_id: str
    status: ProposalStatus
    total_votes: int
    total_agents: int
    yes_votes: int = 0
    no_votes: int = 0
    abstain_votes: int = 0
    yes_weight: float = 0.0
    no_weight: float = 0.0
    abstain_weight: float = 0.0
    yes_ratio: float = 0.0
    threshold: float
    reached: bool = False
    reason: str = ""


# ─── Decisions ────────────────────────────────────────────────────


class Decision(ConcordiaModel):
    """Immutable snapshot of a proposal's outcome, taken at finalization."""

    model_config = {"populate_by_name": True, "from_attributes": True, "frozen": True}

    id: str
    proposal_id: str
    title: str
    description: str = ""
    outcome: ProposalStatus
    # True when the expired label (a refused late vote) was set before rejection
    expired: bool = False
    results: VoteCount
    participants: list[str] = Field(default_factory=list)
    consensus_ratio: float = 0.0
    decided_at: datetime = Field(default_factory=utc_now)


# ─── Service Snapshots ────────────────────────────────────────────


class VoteReceipt(ConcordiaModel):
    """Returned to a caller whose vote was recorded."""

    agent_id: str
    proposal: Proposal
    consensus: ConsensusStatus
    decision: Decision | None = None


class ConsensusStats(ConcordiaModel):
    total_proposals: int = 0
    accepted: int = 0
    rejected: int = 0
    voting: int = 0
    expired: int = 0
    acceptance_rate: float = 0.0
    total_agents: int = 0
    total_decisions: int = 0


class ConsensusSummary(ConcordiaModel):
    name: str
    stats: ConsensusStats
    recent_decisions: list[Decision] = Field(default_factory=list)
