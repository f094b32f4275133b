"""
Unit tests for shared primitives: vote variants, records and statuses.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from concordia.primitives import (
    Agent,
    MultiVote,
    ProposalStatus,
    RankedVote,
    SingleVote,
    VoteRecord,
    YesNoVote,
    vote_value,
)


# ─── Vote Variants ────────────────────────────────────────────────


def test_vote_record_dispatches_on_kind():
    record = VoteRecord.model_validate({"vote": {"kind": "ranked", "ranking": [2, 0]}})
    assert isinstance(record.vote, RankedVote)
    assert record.vote.ranking == [2, 0]


def test_vote_record_rejects_unknown_kind():
    with pytest.raises(ValidationError):
        VoteRecord.model_validate({"vote": {"kind": "approval", "choice": 1}})


def test_single_choice_keeps_sentinel_types():
    assert SingleVote(choice=True).choice is True
    assert SingleVote(choice=1).is_index
    assert not SingleVote(choice=True).is_index
    assert not SingleVote(choice="B").is_index


def test_yesno_is_strict():
    with pytest.raises(ValidationError):
        YesNoVote(approve="yes")


@pytest.mark.parametrize(
    "vote, expected",
    [
        (YesNoVote(approve=True), "yes"),
        (YesNoVote(approve=False), "no"),
        (SingleVote(choice=2), 2),
        (MultiVote(indices=[1, 0]), [1, 0]),
        (RankedVote(ranking=[0]), [0]),
    ],
)
def test_vote_value(vote, expected):
    assert vote_value(vote) == expected


# ─── Agent & Status ───────────────────────────────────────────────


def test_agent_weight_must_be_positive():
    with pytest.raises(ValidationError):
        Agent(id="a", name="A", weight=0)


def test_agreement_rate():
    agent = Agent(id="a", name="A", participated_decisions=4, agreed_decisions=3, disagreed_decisions=1)
    assert agent.agreement_rate == 0.75


def test_terminal_statuses():
    assert ProposalStatus.ACCEPTED.is_terminal
    assert ProposalStatus.REJECTED.is_terminal
    assert not ProposalStatus.VOTING.is_terminal
    assert not ProposalStatus.EXPIRED.is_terminal
