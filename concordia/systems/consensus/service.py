"""
Concordia — Consensus Service

The single owner of all consensus state: agent registry, proposal store,
evaluator and decision ledger. One instance is built per running system
and every operation goes through it.

The ConsensusService orchestrates four components:
  AgentRegistry       — agent profiles and weights
  validator           — vote shape checks and parsing at the boundary
  ProposalStore       — proposals, votes and comments
  ConsensusEvaluator  — tallying, status transitions, finalization

Operations:
  register_agent()     — add a voting agent
  create_proposal()    — open a proposal for voting
  vote()               — validate, record, re-evaluate, maybe finalize
  check_consensus()    — evaluate a proposal on demand
  count_votes()        — per-option breakdown
  finalize()           — idempotent finalization of a closed proposal
  add_comment()        — append a comment to a proposal
  sweep_expired()      — close every proposal whose deadline has passed

Concurrency: the vote path (read status → validate → record → evaluate →
finalize) holds a per-proposal lock, so two votes can never both see
``voting`` and finalize twice. The decision ledger and agent counters are
shared across proposals and are only written under the evaluator's ledger
lock. Registration and proposal creation hold a service-wide lock.

Everything returned to callers is a deep copy. Mutating it has no effect
on the service.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from typing import Any

import structlog

from concordia.config import ConcordiaConfig, ConsensusConfig
from concordia.primitives.agent import Agent
from concordia.primitives.common import AgentRole, ProposalStatus, ProposalType, utc_now
from concordia.primitives.proposal import Comment, Proposal
from concordia.primitives.vote import VoteRecord
from concordia.systems.consensus.errors import (
    AgentNotFound,
    ExpiredProposal,
    InvalidVoteShape,
    ProposalNotVoting,
)
from concordia.systems.consensus.evaluator import ConsensusEvaluator
from concordia.systems.consensus.registry import AgentRegistry
from concordia.systems.consensus.store import ProposalStore, resolve_status
from concordia.systems.consensus.tally import count_votes
from concordia.systems.consensus.types import (
    ConsensusStats,
    ConsensusStatus,
    ConsensusSummary,
    Decision,
    VoteCount,
    VoteReceipt,
)
from concordia.systems.consensus.validator import parse_vote, resolve_type

logger = structlog.get_logger("concordia.systems.consensus")


class ConsensusService:
    """
    Collective decision-making for a set of registered agents.

    Configuration is captured at construction. Each proposal additionally
    snapshots the consensus threshold when it is created.
    """

    system_id: str = "consensus"

    def __init__(
        self,
        config: ConsensusConfig | None = None,
        name: str = "Concordia",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._config = (config or ConsensusConfig()).model_copy()
        self._name = name
        self._clock = clock
        self._logger = logger.bind(system="consensus")

        self._registry = AgentRegistry()
        self._store = ProposalStore()
        self._evaluator = ConsensusEvaluator(self._config, self._registry, clock=clock)

        self._lock = threading.RLock()
        self._proposal_locks: dict[str, threading.Lock] = {}

    @classmethod
    def from_config(
        cls,
        config: ConcordiaConfig,
        clock: Callable[[], datetime] = utc_now,
    ) -> ConsensusService:
        return cls(config.consensus, name=config.name, clock=clock)

    @property
    def config(self) -> ConsensusConfig:
        return self._config.model_copy()

    def _lock_for(self, proposal_id: str) -> threading.Lock:
        with self._lock:
            lock = self._proposal_locks.get(proposal_id)
            if lock is None:
                lock = self._proposal_locks[proposal_id] = threading.Lock()
            return lock

    # ─── Agents ─────────────────────────────────────────────────────

    def register_agent(
        self,
        agent_id: str,
        name: str,
        role: AgentRole | str = AgentRole.MEMBER,
        weight: float = 1.0,
    ) -> Agent:
        """Register a voting agent. Raises DuplicateAgent if the id is taken."""
        with self._lock:
            agent = self._registry.register(
                agent_id, name, role=role, weight=weight, joined_at=self._clock()
            )
            return agent.model_copy(deep=True)

    def get_agent(self, agent_id: str) -> Agent:
        return self._registry.get_strict(agent_id).model_copy(deep=True)

    def list_agents(self) -> list[Agent]:
        return [agent.model_copy(deep=True) for agent in self._registry]

    # ─── Proposals ──────────────────────────────────────────────────

    def create_proposal(
        self,
        agent_id: str,
        title: str,
        description: str = "",
        options: Sequence[str] = (),
        proposal_type: ProposalType | str = ProposalType.SINGLE,
    ) -> Proposal:
        """
        Open a proposal for voting.

        The deadline and required consensus come from the service config at
        this moment and are fixed for the proposal's lifetime.
        """
        if agent_id not in self._registry:
            raise AgentNotFound(agent_id)
        ptype = resolve_type(proposal_type)

        with self._lock:
            now = self._clock()
            proposal = self._store.create(
                creator=agent_id,
                title=title,
                description=description,
                options=options,
                proposal_type=ptype,
                required_consensus=self._config.consensus_threshold,
                created_at=now,
                deadline=now + timedelta(milliseconds=self._config.vote_deadline_ms),
            )
            return proposal.model_copy(deep=True)

    def get_proposal(self, proposal_id: str, refresh: bool = True) -> Proposal:
        """
        Fetch a proposal snapshot.

        With ``refresh`` (the default) a proposal whose deadline has passed
        is closed first. Pass ``refresh=False`` to see the live status,
        including a pending ``expired`` label.
        """
        proposal = self._store.get_strict(proposal_id)
        with self._lock_for(proposal_id):
            if refresh:
                self._evaluator.expire_if_due(proposal)
            return proposal.model_copy(deep=True)

    def list_proposals(
        self,
        status: ProposalStatus | str | None = None,
        refresh: bool = True,
    ) -> list[Proposal]:
        if status is not None:
            status = resolve_status(status)
        if refresh:
            self.sweep_expired()
        return [p.model_copy(deep=True) for p in self._store.list_proposals(status)]

    def add_comment(self, agent_id: str, proposal_id: str, text: str) -> Comment:
        """Append a comment. Only agent and proposal existence are checked."""
        if agent_id not in self._registry:
            raise AgentNotFound(agent_id)
        proposal = self._store.get_strict(proposal_id)
        with self._lock_for(proposal_id):
            comment = Comment(
                agent_id=agent_id,
                agent_name=self._registry.name_of(agent_id),
                text=text,
                timestamp=self._clock(),
            )
            self._store.add_comment(proposal, comment)
            return comment.model_copy(deep=True)

    # ─── Voting ─────────────────────────────────────────────────────

    def vote(
        self,
        agent_id: str,
        proposal_id: str,
        vote: Any,
        comment: str = "",
    ) -> VoteReceipt:
        """
        Cast or replace an agent's vote and re-evaluate consensus.

        Checks run in order: agent registered, proposal exists, proposal
        still voting, deadline not passed, vote shape valid. Nothing is
        recorded unless all of them pass. A vote arriving after the deadline
        labels the proposal ``expired`` and raises ExpiredProposal.
        """
        if agent_id not in self._registry:
            self._logger.info("vote_rejected", agent_id=agent_id, proposal_id=proposal_id, reason="agent_not_found")
            raise AgentNotFound(agent_id)
        proposal = self._store.get_strict(proposal_id)

        with self._lock_for(proposal_id):
            if proposal.status != ProposalStatus.VOTING:
                raise ProposalNotVoting(proposal_id, proposal.status.value)

            now = self._clock()
            if proposal.is_past_deadline(now):
                proposal.status = ProposalStatus.EXPIRED
                self._logger.info("vote_rejected", agent_id=agent_id, proposal_id=proposal_id, reason="expired")
                raise ExpiredProposal(proposal_id)

            try:
                typed = parse_vote(proposal.type, len(proposal.options), vote)
            except InvalidVoteShape as exc:
                self._logger.info(
                    "vote_rejected",
                    agent_id=agent_id,
                    proposal_id=proposal_id,
                    reason="invalid_vote_shape",
                    detail=exc.reason,
                )
                raise

            self._store.record_vote(
                proposal, agent_id, VoteRecord(vote=typed, comment=comment, timestamp=now)
            )
            status = self._evaluator.evaluate(proposal, now=now)

            decision = None
            if proposal.decision_id is not None:
                decision = self._evaluator.get_decision(proposal.decision_id)

            self._logger.info(
                "vote_accepted",
                agent_id=agent_id,
                proposal_id=proposal_id,
                votes=status.total_votes,
                status=proposal.status.value,
            )
            return VoteReceipt(
                agent_id=agent_id,
                proposal=proposal.model_copy(deep=True),
                consensus=status,
                decision=decision.model_copy(deep=True) if decision else None,
            )

    def check_consensus(self, proposal_id: str) -> ConsensusStatus:
        """Evaluate a proposal now, closing it if its deadline has passed."""
        proposal = self._store.get_strict(proposal_id)
        with self._lock_for(proposal_id):
            self._evaluator.expire_if_due(proposal)
            return self._evaluator.evaluate(proposal)

    def count_votes(self, proposal_id: str) -> VoteCount:
        proposal = self._store.get_strict(proposal_id)
        with self._lock_for(proposal_id):
            return count_votes(proposal, self._registry)

    def finalize(self, proposal_id: str) -> Decision | None:
        """
        Return the proposal's Decision, finalizing it if it is due.

        Safe to call repeatedly: a proposal is finalized once and later calls
        return the same Decision. Returns None while the proposal is still
        open.
        """
        proposal = self._store.get_strict(proposal_id)
        with self._lock_for(proposal_id):
            self._evaluator.expire_if_due(proposal)
            if not proposal.status.is_terminal:
                return None
            return self._evaluator.finalize(proposal).model_copy(deep=True)

    def sweep_expired(self) -> list[Decision]:
        """Close every open proposal whose deadline has passed."""
        closed: list[Decision] = []
        for proposal in self._store.list_proposals():
            if proposal.status.is_terminal:
                continue
            with self._lock_for(proposal.id):
                decision = self._evaluator.expire_if_due(proposal)
            if decision is not None:
                closed.append(decision.model_copy(deep=True))
        if closed:
            self._logger.info("expired_proposals_swept", closed=len(closed))
        return closed

    # ─── History & Stats ────────────────────────────────────────────

    def get_decision(self, decision_id: str) -> Decision | None:
        decision = self._evaluator.get_decision(decision_id)
        return decision.model_copy(deep=True) if decision else None

    def get_decision_history(self, limit: int = 10) -> list[Decision]:
        """The most recent decisions, newest first."""
        return [d.model_copy(deep=True) for d in self._evaluator.history(limit)]

    def get_stats(self) -> ConsensusStats:
        proposals = self._store.list_proposals()
        by_status = {status: 0 for status in ProposalStatus}
        for proposal in proposals:
            by_status[proposal.status] += 1

        total = len(proposals)
        return ConsensusStats(
            total_proposals=total,
            accepted=by_status[ProposalStatus.ACCEPTED],
            rejected=by_status[ProposalStatus.REJECTED],
            voting=by_status[ProposalStatus.VOTING],
            expired=by_status[ProposalStatus.EXPIRED],
            acceptance_rate=by_status[ProposalStatus.ACCEPTED] / total if total else 0.0,
            total_agents=len(self._registry),
            total_decisions=self._evaluator.decision_count,
        )

    def get_summary(self) -> ConsensusSummary:
        return ConsensusSummary(
            name=self._name,
            stats=self.get_stats(),
            recent_decisions=self.get_decision_history(3),
        )
