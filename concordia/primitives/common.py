"""
Concordia — Common Primitives

Shared enums, base classes, and utilities used across the consensus system.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone

from pydantic import BaseModel, Field
from ulid import ULID


def new_id() -> str:
    """Generate a new ULID string. Time-sortable, globally unique."""
    return str(ULID())


def utc_now() -> datetime:
    """Current UTC time, timezone-aware."""
    return datetime.now(timezone.utc)


# ─── Enums ────────────────────────────────────────────────────────


class AgentRole(str, enum.Enum):
    MEMBER = "member"
    ADMIN = "admin"
    OBSERVER = "observer"  # Informational only; observers may still vote


class ProposalType(str, enum.Enum):
    SINGLE = "single"
    MULTI = "multi"
    RANKED = "ranked"
    YESNO = "yesno"


class ProposalStatus(str, enum.Enum):
    VOTING = "voting"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"  # Transient: a late vote was refused, rejection pending

    @property
    def is_terminal(self) -> bool:
        return self in (ProposalStatus.ACCEPTED, ProposalStatus.REJECTED)


class Bucket(str, enum.Enum):
    """Outcome bucket a vote falls into for consensus purposes."""

    YES = "yes"
    NO = "no"
    ABSTAIN = "abstain"


# ─── Base Models ──────────────────────────────────────────────────


class ConcordiaModel(BaseModel):
    """Base model for all Concordia primitives."""

    model_config = {"populate_by_name": True, "from_attributes": True}


class Timestamped(ConcordiaModel):
    """Mixin for models with creation timestamps."""

    created_at: datetime = Field(default_factory=utc_now)


class Identified(ConcordiaModel):
    """Mixin for models with ULID IDs."""

    id: str = Field(default_factory=new_id)
