"""
Concordia — Vote Validator

Pure, stateless checks of a candidate vote against a proposal's type.

Per-type contract:
  single  — an integer option index in [0, options_count), or a non-numeric
            sentinel (a label or a boolean) accepted without bounds checking
  multi   — a list of integer option indices; no bounds or duplicate checks
  ranked  — a list of integer option indices; no further checks
  yesno   — exactly "yes", "no", True or False

``validate_vote`` reports problems as a ValidationResult and only raises for
a proposal type it does not recognise. ``parse_vote`` runs the same checks
and converts the raw value into its typed Vote variant.
"""

from __future__ import annotations

from typing import Any

from concordia.primitives.common import ProposalType
from concordia.primitives.vote import MultiVote, RankedVote, SingleVote, YesNoVote
from concordia.systems.consensus.errors import InvalidVoteShape, UnknownProposalType
from concordia.systems.consensus.types import ValidationResult

TypedVote = SingleVote | MultiVote | RankedVote | YesNoVote

_KIND_FOR_TYPE: dict[ProposalType, type[TypedVote]] = {
    ProposalType.SINGLE: SingleVote,
    ProposalType.MULTI: MultiVote,
    ProposalType.RANKED: RankedVote,
    ProposalType.YESNO: YesNoVote,
}


def resolve_type(proposal_type: ProposalType | str) -> ProposalType:
    """Coerce to ProposalType; raise UnknownProposalType for anything else."""
    try:
        return ProposalType(proposal_type)
    except ValueError:
        raise UnknownProposalType(proposal_type) from None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _as_index(value: Any) -> int | None:
    """An int, or an integral float, as an option index. None otherwise."""
    if _is_int(value):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _check_index_list(value: Any, label: str) -> ValidationResult:
    if not isinstance(value, (list, tuple)):
        return ValidationResult.fail(f"{label} vote requires a list of option indices")
    for item in value:
        if _as_index(item) is None:
            return ValidationResult.fail(f"{label} vote contains a non-integer entry: {item!r}")
    return ValidationResult.ok()


def _validate_raw(proposal_type: ProposalType, options_count: int, vote: Any) -> ValidationResult:
    if proposal_type == ProposalType.SINGLE:
        if isinstance(vote, (bool, str)):
            return ValidationResult.ok()
        if isinstance(vote, (int, float)):
            index = _as_index(vote)
            if index is None:
                return ValidationResult.fail(f"Option index must be an integer, got {vote!r}")
            if not 0 <= index < options_count:
                return ValidationResult.fail(
                    f"Option index {index} out of range (0..{options_count - 1})"
                )
            return ValidationResult.ok()
        return ValidationResult.fail("Single-choice vote must be an option index or label")

    if proposal_type == ProposalType.MULTI:
        return _check_index_list(vote, "Multi-choice")

    if proposal_type == ProposalType.RANKED:
        return _check_index_list(vote, "Ranked")

    # yesno: identity checks so that 1 and 0 are not mistaken for booleans
    if vote is True or vote is False or (isinstance(vote, str) and vote in ("yes", "no")):
        return ValidationResult.ok()
    return ValidationResult.fail('Yes/no vote must be "yes", "no", True or False')


def validate_vote(
    proposal_type: ProposalType | str,
    options_count: int,
    vote: Any,
) -> ValidationResult:
    """
    Check a raw or typed vote against a proposal type.

    Raises UnknownProposalType for an unrecognised type; every other problem
    is reported in the returned ValidationResult.
    """
    ptype = resolve_type(proposal_type)

    if isinstance(vote, (SingleVote, MultiVote, RankedVote, YesNoVote)):
        expected = _KIND_FOR_TYPE[ptype]
        if not isinstance(vote, expected):
            return ValidationResult.fail(
                f"A {vote.kind} vote cannot be cast on a {ptype.value} proposal"
            )
        if isinstance(vote, SingleVote) and vote.is_index:
            return _validate_raw(ptype, options_count, vote.choice)
        return ValidationResult.ok()

    return _validate_raw(ptype, options_count, vote)


def parse_vote(
    proposal_type: ProposalType | str,
    options_count: int,
    vote: Any,
) -> TypedVote:
    """
    Validate a vote and convert it to its typed variant.

    Raises InvalidVoteShape with the validator's reason on failure.
    """
    ptype = resolve_type(proposal_type)
    result = validate_vote(ptype, options_count, vote)
    if not result.valid:
        raise InvalidVoteShape(result.reason)

    if isinstance(vote, (SingleVote, MultiVote, RankedVote, YesNoVote)):
        return vote.model_copy(deep=True)

    if ptype == ProposalType.SINGLE:
        if isinstance(vote, (bool, str)):
            return SingleVote(choice=vote)
        return SingleVote(choice=_as_index(vote))
    if ptype == ProposalType.MULTI:
        return MultiVote(indices=[_as_index(v) for v in vote])
    if ptype == ProposalType.RANKED:
        return RankedVote(ranking=[_as_index(v) for v in vote])
    return YesNoVote(approve=vote is True or vote == "yes")
