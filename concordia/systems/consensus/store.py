"""
Concordia — Proposal Store

Holds proposals in creation order and assigns their monotonic ids
(``prop_1``, ``prop_2``, ...). Proposals are never deleted, and their
identity, type, options, creator, deadline and required consensus never
change after creation.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

import structlog

from concordia.primitives.common import ProposalStatus, ProposalType
from concordia.primitives.proposal import Comment, Proposal
from concordia.primitives.vote import VoteRecord
from concordia.systems.consensus.errors import ProposalNotFound, UnknownProposalStatus

logger = structlog.get_logger("concordia.systems.consensus.store")


def resolve_status(status: ProposalStatus | str) -> ProposalStatus:
    """Coerce a status filter, raising UnknownProposalStatus if it names no status."""
    try:
        return ProposalStatus(status)
    except ValueError:
        raise UnknownProposalStatus(status) from None


class ProposalStore:
    def __init__(self) -> None:
        self._proposals: dict[str, Proposal] = {}
        self._counter = 1
        self._logger = logger.bind(component="proposal_store")

    def create(
        self,
        creator: str,
        title: str,
        description: str,
        options: Sequence[str],
        proposal_type: ProposalType,
        required_consensus: float,
        created_at: datetime,
        deadline: datetime,
    ) -> Proposal:
        proposal = Proposal(
            id=f"prop_{self._counter}",
            title=title,
            description=description,
            options=list(options),
            type=proposal_type,
            creator=creator,
            created_at=created_at,
            deadline=deadline,
            required_consensus=required_consensus,
        )
        self._counter += 1
        self._proposals[proposal.id] = proposal
        self._logger.info(
            "proposal_created",
            proposal_id=proposal.id,
            creator=creator,
            type=proposal_type.value,
            options=len(proposal.options),
            deadline=deadline.isoformat(),
        )
        return proposal

    def get(self, proposal_id: str) -> Proposal | None:
        return self._proposals.get(proposal_id)

    def get_strict(self, proposal_id: str) -> Proposal:
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise ProposalNotFound(proposal_id)
        return proposal

    def list_proposals(self, status: ProposalStatus | str | None = None) -> list[Proposal]:
        """Proposals in creation order, optionally filtered by status."""
        if status is None:
            return list(self._proposals.values())
        wanted = resolve_status(status)
        return [p for p in self._proposals.values() if p.status == wanted]

    def record_vote(self, proposal: Proposal, agent_id: str, record: VoteRecord) -> None:
        """Store an agent's vote, replacing any earlier vote from the same agent."""
        replaced = agent_id in proposal.votes
        proposal.votes[agent_id] = record
        self._logger.debug(
            "vote_recorded",
            proposal_id=proposal.id,
            agent_id=agent_id,
            kind=record.vote.kind,
            replaced=replaced,
        )

    def add_comment(self, proposal: Proposal, comment: Comment) -> None:
        proposal.comments.append(comment)

    def __contains__(self, proposal_id: object) -> bool:
        return proposal_id in self._proposals

    def __len__(self) -> int:
        return len(self._proposals)
