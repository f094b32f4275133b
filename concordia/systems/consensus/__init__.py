"""
Concordia — Consensus System

Proposal lifecycle and consensus evaluation: registered agents propose,
cast weighted votes, and the system decides when consensus is reached.
"""

from concordia.systems.consensus.errors import (
    AgentNotFound,
    ConsensusError,
    DuplicateAgent,
    ExpiredProposal,
    InvalidAgent,
    InvalidVoteShape,
    ProposalNotFound,
    ProposalNotVoting,
    UnknownProposalStatus,
    UnknownProposalType,
)
from concordia.systems.consensus.service import ConsensusService

__all__ = [
    "AgentNotFound",
    "ConsensusError",
    "ConsensusService",
    "DuplicateAgent",
    "ExpiredProposal",
    "InvalidAgent",
    "InvalidVoteShape",
    "ProposalNotFound",
    "ProposalNotVoting",
    "UnknownProposalStatus",
    "UnknownProposalType",
]
