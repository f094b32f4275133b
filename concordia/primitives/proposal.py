"""
Concordia — Proposal Primitives

A proposal is a question put to the registered agents. Its type fixes the
vote encoding; its status follows the lifecycle

    voting → accepted | rejected
    voting → expired → rejected

Proposals are retained for history and never deleted.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from concordia.primitives.common import (
    Identified,
    ProposalStatus,
    ProposalType,
    Timestamped,
    utc_now,
)
from concordia.primitives.vote import VoteRecord


class Comment(Identified):
    agent_id: str
    agent_name: str = "Unknown"
    text: str
    timestamp: datetime = Field(default_factory=utc_now)


class Proposal(Timestamped):
    id: str
    title: str
    description: str = ""
    options: list[str] = Field(default_factory=list)
    type: ProposalType = ProposalType.SINGLE
    creator: str
    status: ProposalStatus = ProposalStatus.VOTING
    deadline: datetime
    # agent_id → VoteRecord; one per agent, last write wins
    votes: dict[str, VoteRecord] = Field(default_factory=dict)
    comments: list[Comment] = Field(default_factory=list)
    # Snapshot of the threshold at creation time
    required_consensus: float = Field(ge=0.0, le=1.0)
    decision_id: str | None = None

    @property
    def is_finalized(self) -> bool:
        return self.decision_id is not None

    def is_past_deadline(self, now: datetime) -> bool:
        return now > self.deadline
