from typing import Dict, List, Optional, Iterable

from baton.domain.orchestration.subagent.agent import Agent
from baton.exceptions import AgentNotFoundError


class AgentRegistry:
    """Agents available to a Runner, keyed by handle

    The first registered agent is the default entry point. Agents declared as
    handoff targets by object are registered transitively. Registration order
    is preserved.
    """

    def __init__(self, agents: Optional[Iterable[Agent]] = None):
        self._agents: Dict[str, Agent] = {}
        for agent in agents or []:
            self.register(agent)

    def register(self, agent: Agent) -> None:
        pending = [agent]
        while pending:
            current = pending.pop(0)
            existing = self._agents.get(current.handle)
            if existing is current:
                continue
            if existing is not None:
                raise ValueError(f"Duplicate agent handle: {current.handle}")
            self._agents[current.handle] = current
            pending.extend(current.handoff_agents)

    @property
    def default(self) -> Agent:
        if not self._agents:
            raise AgentNotFoundError("No agents registered")
        return next(iter(self._agents.values()))

    def get(self, identifier: Optional[str]) -> Optional[Agent]:
        """Look an agent up by handle, then by display name"""
        if not identifier:
            return None
        agent = self._agents.get(identifier)
        if agent is not None:
            return agent
        for candidate in self._agents.values():
            if candidate.name == identifier:
                return candidate
        return None

    def resolve(self, identifier: str) -> Agent:
        agent = self.get(identifier)
        if agent is None:
            raise AgentNotFoundError(
                f"Unknown agent '{identifier}'. Available: {', '.join(self._agents)}"
            )
        return agent

    def validate_handoffs(self) -> None:
        """Every declared handoff target must resolve"""
        for agent in self._agents.values():
            for handoff in agent.handoff_targets:
                if self.get(handoff.target) is None:
                    raise ValueError(
                        f"Agent '{agent.name}' declares unknown handoff target '{handoff.target}'"
                    )

    def agents(self) -> List[Agent]:
        return list(self._agents.values())

    def __contains__(self, identifier: object) -> bool:
        return isinstance(identifier, str) and self.get(identifier) is not None

    def __len__(self) -> int:
        return len(self._agents)
