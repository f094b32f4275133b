"""
Concordia — Vote Primitives

One vote variant per proposal type, discriminated by ``kind``. Raw caller
input is converted into one of these exactly once, at the service boundary
(see ``concordia.systems.consensus.validator.parse_vote``). Everything
downstream dispatches on the variant rather than on raw literals.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import Field, StrictBool, StrictInt, StrictStr

from concordia.primitives.common import ConcordiaModel, utc_now


class SingleVote(ConcordiaModel):
    """
    A single-choice vote.

    ``choice`` is normally an option index. Labels and booleans are accepted
    as sentinels and are never bounds-checked.
    """

    kind: Literal["single"] = "single"
    choice: StrictBool | StrictInt | StrictStr

    @property
    def is_index(self) -> bool:
        return isinstance(self.choice, int) and not isinstance(self.choice, bool)


class MultiVote(ConcordiaModel):
    """A multi-choice vote: the selected option indices, in submission order."""

    kind: Literal["multi"] = "multi"
    indices: list[StrictInt] = Field(default_factory=list)


class RankedVote(ConcordiaModel):
    """A ranked vote: option indices ordered from most to least preferred."""

    kind: Literal["ranked"] = "ranked"
    ranking: list[StrictInt] = Field(default_factory=list)


class YesNoVote(ConcordiaModel):
    kind: Literal["yesno"] = "yesno"
    approve: StrictBool


Vote = Annotated[
    Union[SingleVote, MultiVote, RankedVote, YesNoVote],
    Field(discriminator="kind"),
]


class VoteRecord(ConcordiaModel):
    """A recorded vote. Replaced wholesale when the same agent votes again."""

    vote: Vote
    comment: str = ""
    timestamp: datetime = Field(default_factory=utc_now)


def vote_value(vote: SingleVote | MultiVote | RankedVote | YesNoVote) -> bool | int | str | list[int]:
    """The plain value carried by a vote, for audit listings."""
    if isinstance(vote, SingleVote):
        return vote.choice
    if isinstance(vote, MultiVote):
        return list(vote.indices)
    if isinstance(vote, RankedVote):
        return list(vote.ranking)
    return "yes" if vote.approve else "no"
