"""
Concordia — Agent Registry

Maps agent ids to their profiles. Agents are only ever added; a profile is
mutated by decision finalization and nothing else.

Lookups on the vote and tally paths must not fail for ids that have gone
stale, so ``get`` returns None and ``weight_of`` falls back to a weight of
1.0. Use ``get_strict`` where a missing agent is a caller error.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from datetime import datetime

import structlog

from concordia.primitives.agent import Agent
from concordia.primitives.common import AgentRole, utc_now
from concordia.systems.consensus.errors import AgentNotFound, DuplicateAgent, InvalidAgent

logger = structlog.get_logger("concordia.systems.consensus.registry")

DEFAULT_WEIGHT = 1.0
UNKNOWN_AGENT_NAME = "Unknown"


def _is_valid_weight(weight: object) -> bool:
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        return False
    return math.isfinite(weight) and weight > 0


class AgentRegistry:
    """Registry of voting agents, keyed by agent id, in registration order."""

    def __init__(self) -> None:
        self._agents: dict[str, Agent] = {}
        self._logger = logger.bind(component="agent_registry")

    def register(
        self,
        agent_id: str,
        name: str,
        role: AgentRole | str = AgentRole.MEMBER,
        weight: float = DEFAULT_WEIGHT,
        joined_at: datetime | None = None,
    ) -> Agent:
        """
        Register a new agent with baseline reputation and zeroed counters.

        Raises DuplicateAgent if the id is taken, InvalidAgent if the role
        is unknown or the weight is not a positive finite number.
        """
        if agent_id in self._agents:
            raise DuplicateAgent(agent_id)
        if not _is_valid_weight(weight):
            raise InvalidAgent(f"Agent {agent_id!r} weight must be a positive finite number, got {weight!r}")
        try:
            role = AgentRole(role)
        except ValueError:
            raise InvalidAgent(f"Agent {agent_id!r} has unknown role {role!r}") from None

        agent = Agent(id=agent_id, name=name, role=role, weight=float(weight), joined_at=joined_at or utc_now())
        self._agents[agent_id] = agent
        self._logger.info(
            "agent_registered",
            agent_id=agent_id,
            name=name,
            role=role.value,
            weight=agent.weight,
        )
        return agent

    def get(self, agent_id: str) -> Agent | None:
        return self._agents.get(agent_id)

    def get_strict(self, agent_id: str) -> Agent:
        agent = self._agents.get(agent_id)
        if agent is None:
            raise AgentNotFound(agent_id)
        return agent

    def weight_of(self, agent_id: str) -> float:
        """Registered weight, or 1.0 for an agent that cannot be found."""
        agent = self._agents.get(agent_id)
        return agent.weight if agent is not None else DEFAULT_WEIGHT

    def name_of(self, agent_id: str) -> str:
        agent = self._agents.get(agent_id)
        return agent.name if agent is not None else UNKNOWN_AGENT_NAME

    def list_agents(self) -> list[Agent]:
        return list(self._agents.values())

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._agents

    def __len__(self) -> int:
        return len(self._agents)

    def __iter__(self) -> Iterator[Agent]:
        return iter(list(self._agents.values()))

    def __repr__(self) -> str:
        return f"<AgentRegistry agents={len(self._agents)}>"
