"""
Concordia — Tally Engine

Aggregates recorded votes into yes/no/abstain buckets and per-option
breakdowns, both raw and weighted.

Bucketing rule:
  yesno / single — yes for "yes", True, or option 0
                   no for "no", False, or option 1
                   abstain for anything else
  multi          — yes if option 0 is among the selections, otherwise no
  ranked         — not bucketed; ranked votes never count towards yes or no

For single-choice proposals with more than two options this treats the
first option as "yes" and the second as "no". Per-option counts from
``count_votes`` report the full picture alongside it.

A vote's weight is the voter's registered weight, or 1.0 when the voter
cannot be found in the registry.
"""

from __future__ import annotations

from concordia.primitives.common import Bucket, ProposalType
from concordia.primitives.proposal import Proposal
from concordia.primitives.vote import MultiVote, RankedVote, SingleVote, YesNoVote, vote_value
from concordia.systems.consensus.registry import AgentRegistry
from concordia.systems.consensus.types import BreakdownEntry, Tally, VoteCount


def bucket(vote: SingleVote | MultiVote | RankedVote | YesNoVote) -> Bucket | None:
    """Classify a vote as yes, no or abstain. None for ranked votes."""
    if isinstance(vote, YesNoVote):
        return Bucket.YES if vote.approve else Bucket.NO

    if isinstance(vote, SingleVote):
        choice = vote.choice
        if choice is True or choice == "yes" or (vote.is_index and choice == 0):
            return Bucket.YES
        if choice is False or choice == "no" or (vote.is_index and choice == 1):
            return Bucket.NO
        return Bucket.ABSTAIN

    if isinstance(vote, MultiVote):
        return Bucket.YES if 0 in vote.indices else Bucket.NO

    return None


def tally(proposal: Proposal, registry: AgentRegistry) -> Tally:
    """Raw and weighted yes/no/abstain counts across a proposal's votes."""
    result = Tally()
    for agent_id, record in proposal.votes.items():
        side = bucket(record.vote)
        if side is None:
            continue
        weight = registry.weight_of(agent_id)
        if side == Bucket.YES:
            result.yes_votes += 1
            result.yes_weight += weight
        elif side == Bucket.NO:
            result.no_votes += 1
            result.no_weight += weight
        else:
            result.abstain_votes += 1
            result.abstain_weight += weight
    return result


def _choice_key(choice: bool | int | str) -> str:
    if isinstance(choice, bool):
        return "true" if choice else "false"
    return str(choice)


def _add(result: VoteCount, key: str, weight: float) -> None:
    result.counts[key] = result.counts.get(key, 0) + 1
    result.weighted_counts[key] = result.weighted_counts.get(key, 0.0) + weight


def _borda(result: VoteCount, ranking: list[int], options_count: int, weight: float) -> None:
    seen: set[int] = set()
    position = 0
    for index in ranking:
        if index in seen:
            continue
        seen.add(index)
        points = options_count - position
        position += 1
        if points <= 0:
            break
        key = str(index)
        result.ranked_scores[key] = result.ranked_scores.get(key, 0.0) + points * weight


def count_votes(proposal: Proposal, registry: AgentRegistry) -> VoteCount:
    """
    Full per-option breakdown of a proposal's votes.

    yesno proposals are keyed yes/no/abstain. Every other type is keyed by
    option index, pre-seeded with zero for each option. Multi-choice votes
    are counted under their first selection; ranked votes under their first
    preference, with a weighted Borda count in ``ranked_scores``.
    """
    result = VoteCount()

    if proposal.type == ProposalType.YESNO:
        for side in Bucket:
            result.counts[side.value] = 0
            result.weighted_counts[side.value] = 0.0
    else:
        for i in range(len(proposal.options)):
            result.counts[str(i)] = 0
            result.weighted_counts[str(i)] = 0.0
        if proposal.type == ProposalType.RANKED:
            result.ranked_scores = {str(i): 0.0 for i in range(len(proposal.options))}

    for agent_id, record in proposal.votes.items():
        vote = record.vote
        weight = registry.weight_of(agent_id)

        if isinstance(vote, YesNoVote):
            _add(result, bucket(vote).value, weight)
        elif isinstance(vote, SingleVote):
            _add(result, _choice_key(vote.choice), weight)
        elif isinstance(vote, MultiVote):
            if vote.indices:
                _add(result, str(vote.indices[0]), weight)
        elif isinstance(vote, RankedVote):
            if vote.ranking:
                _add(result, str(vote.ranking[0]), weight)
            _borda(result, vote.ranking, len(proposal.options), weight)

        result.breakdown.append(
            BreakdownEntry(
                agent_id=agent_id,
                agent_name=registry.name_of(agent_id),
                vote=vote_value(vote),
                weight=weight,
            )
        )

    return result


def consensus_ratio(proposal: Proposal) -> float:
    """
    Unweighted share of cast votes that are yes votes.

    Only yes/no and single-choice votes can agree; multi-choice and ranked
    votes count in the denominator alone.
    """
    if not proposal.votes:
        return 0.0
    yes = sum(
        1
        for record in proposal.votes.values()
        if isinstance(record.vote, (YesNoVote, SingleVote)) and bucket(record.vote) == Bucket.YES
    )
    return yes / len(proposal.votes)
