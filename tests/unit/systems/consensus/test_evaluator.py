"""
Unit tests for the Consensus Evaluator.

Tests the consensus rule, deadline-driven transitions, lazy expiry and the
idempotence of finalization.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from concordia.config import ConsensusConfig
from concordia.primitives.common import ProposalStatus, ProposalType
from concordia.primitives.proposal import Proposal
from concordia.primitives.vote import MultiVote, RankedVote, SingleVote, VoteRecord, YesNoVote
from concordia.systems.consensus.evaluator import ConsensusEvaluator
from concordia.systems.consensus.registry import AgentRegistry
from concordia.systems.consensus.store import ProposalStore


# ─── Fixtures ────────────────────────────────────────────────────


def make_setup(clock, weights=None, **config):
    registry = AgentRegistry()
    for agent_id, weight in (weights or {"a": 1.0, "b": 1.5, "c": 1.0}).items():
        registry.register(agent_id, agent_id.upper(), weight=weight)
    cfg = ConsensusConfig(**{"min_agents": 2, "consensus_threshold": 0.6, **config})
    evaluator = ConsensusEvaluator(cfg, registry, clock=clock)
    return registry, ProposalStore(), evaluator


def make_proposal(store: ProposalStore, clock, proposal_type=ProposalType.YESNO, options=(), threshold=0.6) -> Proposal:
    return store.create(
        creator="a",
        title="Adopt the plan",
        description="",
        options=options,
        proposal_type=proposal_type,
        required_consensus=threshold,
        created_at=clock(),
        deadline=clock() + timedelta(minutes=5),
    )


def cast(store: ProposalStore, proposal: Proposal, agent_id: str, vote, clock) -> None:
    store.record_vote(proposal, agent_id, VoteRecord(vote=vote, timestamp=clock()))


YES = YesNoVote(approve=True)
NO = YesNoVote(approve=False)


# ─── Consensus Rule ──────────────────────────────────────────────


class TestConsensusRule:
    def test_insufficient_votes_does_not_transition(self, clock):
        _, store, evaluator = make_setup(clock)
        proposal = make_proposal(store, clock)
        cast(store, proposal, "b", YES, clock)

        status = evaluator.evaluate(proposal)

        assert status.reason == "insufficient_votes"
        assert status.reached is False
        assert status.total_votes == 1
        assert status.total_agents == 3
        assert proposal.status == ProposalStatus.VOTING
        assert evaluator.decision_count == 0

    def test_ratio_uses_registry_size_as_denominator(self, clock):
        _, store, evaluator = make_setup(clock)
        proposal = make_proposal(store, clock)
        cast(store, proposal, "a", YES, clock)
        cast(store, proposal, "c", NO, clock)

        status = evaluator.evaluate(proposal)

        assert status.yes_ratio == pytest.approx(1.0 / 3.0)
        assert status.reason == "pending"
        assert proposal.status == ProposalStatus.VOTING

    def test_reaching_threshold_accepts_and_finalizes(self, clock):
        _, store, evaluator = make_setup(clock)
        proposal = make_proposal(store, clock)
        cast(store, proposal, "a", YES, clock)
        cast(store, proposal, "b", YES, clock)

        status = evaluator.evaluate(proposal)

        assert status.reached is True
        assert status.reason == "consensus_reached"
        assert status.status == ProposalStatus.ACCEPTED
        assert status.yes_weight == pytest.approx(2.5)
        assert proposal.decision_id == "decision_1"

    def test_exact_threshold_is_enough(self, clock):
        weights = {f"agent{i}": 1.0 for i in range(5)}
        _, store, evaluator = make_setup(clock, weights=weights)
        proposal = make_proposal(store, clock)
        for agent_id in ("agent0", "agent1"):
            cast(store, proposal, agent_id, YES, clock)
            assert evaluator.evaluate(proposal).reached is False

        cast(store, proposal, "agent2", YES, clock)
        status = evaluator.evaluate(proposal)

        assert status.yes_ratio == pytest.approx(0.6)
        assert proposal.status == ProposalStatus.ACCEPTED

    def test_threshold_comes_from_proposal_not_config(self, clock):
        _, store, evaluator = make_setup(clock, consensus_threshold=0.6)
        proposal = make_proposal(store, clock, threshold=0.9)
        cast(store, proposal, "a", YES, clock)
        cast(store, proposal, "b", YES, clock)

        status = evaluator.evaluate(proposal)

        assert status.threshold == 0.9
        assert proposal.status == ProposalStatus.VOTING

    def test_deadline_passed_rejects(self, clock):
        _, store, evaluator = make_setup(clock)
        proposal = make_proposal(store, clock)
        cast(store, proposal, "a", YES, clock)
        cast(store, proposal, "c", NO, clock)
        clock.advance(5 * 60 * 1000 + 1)

        status = evaluator.evaluate(proposal)

        assert status.reason == "deadline_passed"
        assert proposal.status == ProposalStatus.REJECTED
        assert evaluator.decision_count == 1

    def test_single_option_zero_counts_as_yes(self, clock):
        _, store, evaluator = make_setup(clock)
        proposal = make_proposal(store, clock, ProposalType.SINGLE, options=("A", "B", "C"))
        cast(store, proposal, "a", SingleVote(choice=0), clock)
        cast(store, proposal, "b", SingleVote(choice=0), clock)

        assert evaluator.evaluate(proposal).reached is True

    def test_ranked_never_reaches_consensus(self, clock):
        _, store, evaluator = make_setup(clock)
        proposal = make_proposal(store, clock, ProposalType.RANKED, options=("A", "B"))
        for agent_id in ("a", "b", "c"):
            cast(store, proposal, agent_id, RankedVote(ranking=[0, 1]), clock)

        status = evaluator.evaluate(proposal)

        assert status.reached is False
        assert status.yes_ratio == 0.0
        assert proposal.status == ProposalStatus.VOTING

    def test_terminal_proposal_is_reported_not_retransitioned(self, clock):
        _, store, evaluator = make_setup(clock)
        proposal = make_proposal(store, clock)
        cast(store, proposal, "a", YES, clock)
        cast(store, proposal, "b", YES, clock)
        evaluator.evaluate(proposal)
        clock.advance(10 * 60 * 1000)

        status = evaluator.evaluate(proposal)

        assert status.reason == "finalized"
        assert status.status == ProposalStatus.ACCEPTED
        assert evaluator.decision_count == 1


# ─── Lazy Expiry ─────────────────────────────────────────────────


class TestExpireIfDue:
    def test_before_deadline_is_noop(self, clock):
        _, store, evaluator = make_setup(clock)
        proposal = make_proposal(store, clock)
        assert evaluator.expire_if_due(proposal) is None
        assert proposal.status == ProposalStatus.VOTING

    def test_rejects_even_with_insufficient_votes(self, clock):
        _, store, evaluator = make_setup(clock)
        proposal = make_proposal(store, clock)
        cast(store, proposal, "a", YES, clock)
        clock.advance(5 * 60 * 1000 + 1)

        decision = evaluator.expire_if_due(proposal)

        assert decision is not None
        assert decision.outcome == ProposalStatus.REJECTED
        assert decision.expired is False
        assert proposal.status == ProposalStatus.REJECTED

    def test_expired_label_is_carried_into_decision(self, clock):
        _, store, evaluator = make_setup(clock)
        proposal = make_proposal(store, clock)
        clock.advance(5 * 60 * 1000 + 1)
        proposal.status = ProposalStatus.EXPIRED

        decision = evaluator.expire_if_due(proposal)

        assert decision.outcome == ProposalStatus.REJECTED
        assert decision.expired is True

    def test_terminal_proposal_is_left_alone(self, clock):
        _, store, evaluator = make_setup(clock)
        proposal = make_proposal(store, clock)
        cast(store, proposal, "a", YES, clock)
        cast(store, proposal, "b", YES, clock)
        evaluator.evaluate(proposal)
        clock.advance(5 * 60 * 1000 + 1)

        assert evaluator.expire_if_due(proposal) is None
        assert proposal.status == ProposalStatus.ACCEPTED


# ─── Finalization ────────────────────────────────────────────────


class TestFinalize:
    def test_finalize_is_idempotent(self, clock):
        registry, store, evaluator = make_setup(clock)
        proposal = make_proposal(store, clock)
        cast(store, proposal, "a", YES, clock)
        cast(store, proposal, "c", NO, clock)
        cast(store, proposal, "b", YES, clock)
        evaluator.evaluate(proposal)

        first = evaluator.finalize(proposal)
        second = evaluator.finalize(proposal)

        assert first is second
        assert evaluator.decision_count == 1
        assert len(evaluator.history()) == 1
        for agent_id in ("a", "b", "c"):
            assert registry.get(agent_id).participated_decisions == 1

    def test_agreement_counters(self, clock):
        registry, store, evaluator = make_setup(clock)
        proposal = make_proposal(store, clock)
        cast(store, proposal, "a", YES, clock)
        cast(store, proposal, "c", NO, clock)
        cast(store, proposal, "b", YES, clock)
        evaluator.evaluate(proposal)

        assert registry.get("a").agreed_decisions == 1
        assert registry.get("b").agreed_decisions == 1
        assert registry.get("c").disagreed_decisions == 1
        assert registry.get("c").agreed_decisions == 0
        assert registry.get("a").reputation == 100

    def test_multi_voters_get_participation_only(self, clock):
        registry, store, evaluator = make_setup(clock)
        proposal = make_proposal(store, clock, ProposalType.MULTI, options=("A", "B"))
        cast(store, proposal, "a", MultiVote(indices=[0]), clock)
        cast(store, proposal, "b", MultiVote(indices=[0, 1]), clock)
        evaluator.evaluate(proposal)

        assert proposal.status == ProposalStatus.ACCEPTED
        agent = registry.get("a")
        assert agent.participated_decisions == 1
        assert agent.agreed_decisions == agent.disagreed_decisions == 0

    def test_decision_snapshot(self, clock):
        _, store, evaluator = make_setup(clock)
        proposal = make_proposal(store, clock)
        cast(store, proposal, "a", YES, clock)
        cast(store, proposal, "b", YES, clock)
        evaluator.evaluate(proposal)

        decision = evaluator.get_decision(proposal.decision_id)

        assert decision.proposal_id == proposal.id
        assert decision.title == "Adopt the plan"
        assert decision.participants == ["a", "b"]
        assert decision.consensus_ratio == 1.0
        assert decision.results.counts == {"yes": 2, "no": 0, "abstain": 0}
        assert decision.decided_at == clock()
        with pytest.raises(ValidationError):
            decision.outcome = ProposalStatus.REJECTED

    def test_finalize_open_proposal_raises(self, clock):
        _, store, evaluator = make_setup(clock)
        proposal = make_proposal(store, clock)
        with pytest.raises(ValueError, match="cannot be finalized"):
            evaluator.finalize(proposal)

    def test_history_is_newest_first(self, clock):
        _, store, evaluator = make_setup(clock)
        ids = []
        for _ in range(3):
            proposal = make_proposal(store, clock)
            cast(store, proposal, "a", YES, clock)
            cast(store, proposal, "b", YES, clock)
            evaluator.evaluate(proposal)
            ids.append(proposal.decision_id)

        assert [d.id for d in evaluator.history()] == list(reversed(ids))
        assert [d.id for d in evaluator.history(limit=2)] == [ids[2], ids[1]]
        assert evaluator.history(limit=0) == []
