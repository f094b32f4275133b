"""
Concordia — Consensus Error Hierarchy

All exceptions raised by the consensus system. Every one is recoverable:
the caller catches it and decides what to do. Nothing is retried
internally, and a raised error never leaves stored state half-written.
The one deliberate exception is ExpiredProposal, which labels the proposal
``expired`` before it is raised.

Each class carries a stable ``code`` for callers that map errors to
responses.
"""

from __future__ import annotations


class ConsensusError(RuntimeError):
    """Base for all consensus system errors."""

    code: str = "consensus_error"


class AgentNotFound(ConsensusError):
    code = "agent_not_found"

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent {agent_id!r} is not registered")
        self.agent_id = agent_id


class DuplicateAgent(ConsensusError):
    code = "duplicate_agent"

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent {agent_id!r} is already registered")
        self.agent_id = agent_id


class InvalidAgent(ConsensusError):
    """Registration parameters were rejected (e.g. a non-positive weight)."""

    code = "invalid_agent"


class ProposalNotFound(ConsensusError):
    code = "proposal_not_found"

    def __init__(self, proposal_id: str) -> None:
        super().__init__(f"Proposal {proposal_id!r} does not exist")
        self.proposal_id = proposal_id


class ProposalNotVoting(ConsensusError):
    code = "proposal_not_voting"

    def __init__(self, proposal_id: str, status: str) -> None:
        super().__init__(f"Proposal {proposal_id!r} is not open for voting (status: {status})")
        self.proposal_id = proposal_id
        self.status = status


class ExpiredProposal(ConsensusError):
    code = "expired_proposal"

    def __init__(self, proposal_id: str) -> None:
        super().__init__(f"Voting on proposal {proposal_id!r} has closed")
        self.proposal_id = proposal_id


class InvalidVoteShape(ConsensusError):
    code = "invalid_vote_shape"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class UnknownProposalType(ConsensusError):
    code = "unknown_proposal_type"

    def __init__(self, proposal_type: object) -> None:
        super().__init__(f"Unknown proposal type: {proposal_type!r}")
        self.proposal_type = proposal_type


class UnknownProposalStatus(ConsensusError):
    code = "unknown_proposal_status"

    def __init__(self, status: object) -> None:
        super().__init__(f"Unknown proposal status: {status!r}")
        self.status = status
