"""
Concordia — Shared Primitives

Every component communicates through these types.
"""

from concordia.primitives.agent import BASELINE_REPUTATION, Agent
from concordia.primitives.common import (
    AgentRole,
    Bucket,
    ConcordiaModel,
    Identified,
    ProposalStatus,
    ProposalType,
    Timestamped,
    new_id,
    utc_now,
)
from concordia.primitives.proposal import Comment, Proposal
from concordia.primitives.vote import (
    MultiVote,
    RankedVote,
    SingleVote,
    Vote,
    VoteRecord,
    YesNoVote,
    vote_value,
)

__all__ = [
    "Agent",
    "AgentRole",
    "BASELINE_REPUTATION",
    "Bucket",
    "Comment",
    "ConcordiaModel",
    "Identified",
    "MultiVote",
    "Proposal",
    "ProposalStatus",
    "ProposalType",
    "RankedVote",
    "SingleVote",
    "Timestamped",
    "Vote",
    "VoteRecord",
    "YesNoVote",
    "new_id",
    "utc_now",
    "vote_value",
]
