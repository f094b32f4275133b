"""
Concordia — Consensus Evaluator

Decides when a proposal has reached consensus or failed to, drives its
status transitions, and finalizes the outcome into a Decision.

Evaluation rule, run after every recorded vote:
  1. fewer votes than ``min_agents``  → stay voting ("insufficient_votes")
  2. yes_ratio = weighted yes / number of registered agents
  3. yes_ratio ≥ required consensus    → accepted, finalize
  4. otherwise, deadline has passed    → rejected, finalize
  5. otherwise                         → stay voting

The denominator is the whole registry, so abstaining and not voting both
count against consensus.

Deadlines are evaluated lazily. ``expire_if_due`` closes a proposal whose
deadline has passed, even one that never gathered ``min_agents`` votes,
and is called whenever the service reads or checks a proposal, and by its
sweep.

Finalization runs at most once per proposal. ``proposal.decision_id`` is
the guard: a second call returns the existing Decision and touches no
counters.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import datetime

import structlog

from concordia.config import ConsensusConfig
from concordia.primitives.common import Bucket, ProposalStatus, ProposalType, utc_now
from concordia.primitives.proposal import Proposal
from concordia.systems.consensus.registry import AgentRegistry
from concordia.systems.consensus.tally import bucket, consensus_ratio, count_votes, tally
from concordia.systems.consensus.types import ConsensusStatus, Decision

logger = structlog.get_logger("concordia.systems.consensus.evaluator")

_AGREEMENT_TYPES = (ProposalType.YESNO, ProposalType.SINGLE)


class ConsensusEvaluator:
    """
    Applies the consensus rule to proposals and keeps the decision ledger.

    Decisions are held by id and in a history list ordered by finalization.
    """

    def __init__(
        self,
        config: ConsensusConfig,
        registry: AgentRegistry,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._config = config
        self._registry = registry
        self._clock = clock
        self._decisions: dict[str, Decision] = {}
        self._history: list[Decision] = []
        self._decision_counter = 1
        self._ledger_lock = threading.RLock()
        self._logger = logger.bind(component="consensus_evaluator")

    # ─── Evaluation ─────────────────────────────────────────────────

    def evaluate(self, proposal: Proposal, now: datetime | None = None) -> ConsensusStatus:
        """
        Apply the consensus rule, transitioning and finalizing if it decides.

        A proposal that is already accepted or rejected is reported on but
        never transitioned again.
        """
        now = now or self._clock()
        total_votes = len(proposal.votes)
        total_agents = len(self._registry)

        if proposal.status.is_terminal:
            return self._report(proposal, reason="finalized")

        if total_votes < self._config.min_agents:
            return ConsensusStatus(
                proposal_id=proposal.id,
                status=proposal.status,
                total_votes=total_votes,
                total_agents=total_agents,
                threshold=proposal.required_consensus,
                reason="insufficient_votes",
            )

        status = self._report(proposal, reason="pending")
        was_expired = proposal.status == ProposalStatus.EXPIRED

        if status.reached:
            proposal.status = ProposalStatus.ACCEPTED
            status.reason = "consensus_reached"
            self._logger.info(
                "consensus_reached",
                proposal_id=proposal.id,
                yes_ratio=round(status.yes_ratio, 3),
                threshold=proposal.required_consensus,
            )
            self.finalize(proposal, now=now)
        elif proposal.is_past_deadline(now):
            proposal.status = ProposalStatus.REJECTED
            status.reason = "deadline_passed"
            self._logger.info(
                "consensus_not_reached",
                proposal_id=proposal.id,
                yes_ratio=round(status.yes_ratio, 3),
                threshold=proposal.required_consensus,
            )
            self.finalize(proposal, now=now, expired=was_expired)

        status.status = proposal.status
        return status

    def expire_if_due(self, proposal: Proposal, now: datetime | None = None) -> Decision | None:
        """
        Close a non-terminal proposal whose deadline has passed.

        Runs the normal evaluation first; if that leaves the proposal open
        (too few votes), rejects it anyway. Returns the Decision when this
        call finalized the proposal, otherwise None.
        """
        now = now or self._clock()
        if proposal.status.is_terminal or not proposal.is_past_deadline(now):
            return None

        was_expired = proposal.status == ProposalStatus.EXPIRED
        self.evaluate(proposal, now=now)
        if not proposal.is_finalized:
            proposal.status = ProposalStatus.REJECTED
            self.finalize(proposal, now=now, expired=was_expired)

        self._logger.info(
            "proposal_expired",
            proposal_id=proposal.id,
            outcome=proposal.status.value,
            votes=len(proposal.votes),
        )
        return self.get_decision(proposal.decision_id)

    def _report(self, proposal: Proposal, reason: str) -> ConsensusStatus:
        total_agents = len(self._registry)
        counts = tally(proposal, self._registry)
        yes_ratio = counts.yes_weight / total_agents if counts.total_weight > 0 and total_agents else 0.0

        if proposal.status.is_terminal:
            reached = proposal.status == ProposalStatus.ACCEPTED
        else:
            reached = yes_ratio >= proposal.required_consensus

        return ConsensusStatus(
            proposal_id=proposal.id,
            status=proposal.status,
            total_votes=len(proposal.votes),
            total_agents=total_agents,
            yes_votes=counts.yes_votes,
            no_votes=counts.no_votes,
            abstain_votes=counts.abstain_votes,
            yes_weight=counts.yes_weight,
            no_weight=counts.no_weight,
            abstain_weight=counts.abstain_weight,
            yes_ratio=yes_ratio,
            threshold=proposal.required_consensus,
            reached=reached,
            reason=reason,
        )

    # ─── Finalization ───────────────────────────────────────────────

    def finalize(
        self,
        proposal: Proposal,
        now: datetime | None = None,
        expired: bool = False,
    ) -> Decision:
        """
        Snapshot an accepted or rejected proposal into a Decision.

        Idempotent: once a proposal carries a decision id, the existing
        Decision is returned and agent counters are left alone.

        The decision ledger and agent counters are shared by every
        proposal, so the whole of finalization runs under the ledger lock.
        """
        with self._ledger_lock:
            if proposal.decision_id is not None:
                return self._decisions[proposal.decision_id]

            if not proposal.status.is_terminal:
                raise ValueError(
                    f"Proposal {proposal.id!r} cannot be finalized while {proposal.status.value}"
                )

            decision_id = f"decision_{self._decision_counter}"
            self._decision_counter += 1

            decision = Decision(
                id=decision_id,
                proposal_id=proposal.id,
                title=proposal.title,
                description=proposal.description,
                outcome=proposal.status,
                expired=expired,
                results=count_votes(proposal, self._registry),
                participants=list(proposal.votes.keys()),
                consensus_ratio=consensus_ratio(proposal),
                decided_at=now or self._clock(),
            )

            proposal.decision_id = decision.id
            self._decisions[decision.id] = decision
            self._history.append(decision)

            for agent_id, record in proposal.votes.items():
                agent = self._registry.get(agent_id)
                if agent is None:
                    continue
                agent.participated_decisions += 1
                if proposal.type in _AGREEMENT_TYPES:
                    if bucket(record.vote) == Bucket.YES:
                        agent.agreed_decisions += 1
                    else:
                        agent.disagreed_decisions += 1

        self._logger.info(
            "decision_finalized",
            decision_id=decision.id,
            proposal_id=proposal.id,
            outcome=decision.outcome.value,
            expired=expired,
            participants=len(decision.participants),
        )
        return decision

    # ─── Queries ────────────────────────────────────────────────────

    def get_decision(self, decision_id: str) -> Decision | None:
        with self._ledger_lock:
            return self._decisions.get(decision_id)

    def history(self, limit: int | None = None) -> list[Decision]:
        """Decisions in finalization order, most recent first."""
        with self._ledger_lock:
            items = self._history if limit is None else self._history[-limit:] if limit > 0 else []
            return list(reversed(items))

    @property
    def decision_count(self) -> int:
        with self._ledger_lock:
            return len(self._decisions)
