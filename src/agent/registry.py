"""
agent.registry - Capability identifier -> agent factory map.
"""

from __future__ import annotations

import logging
from typing import Callable

from domain.exceptions import UnknownAgentError
from domain.ports import AgentPort

logger = logging.getLogger(__name__)

AgentFactory = Callable[[], AgentPort]


class AgentRegistry:
    """Resolve plan `target_agent` strings to agent instances.

    Agents are stateless, so each one is built once and reused.
    """

    def __init__(self):
        self._factories: dict[str, AgentFactory] = {}
        self._instances: dict[str, AgentPort] = {}

    def register(self, name: str, factory: AgentFactory) -> None:
        self._factories[name] = factory
        self._instances.pop(name, None)
        logger.debug("Registered agent: %s", name)

    def names(self) -> list[str]:
        return list(self._factories)

    def __contains__(self, name: str) -> bool:
        return name in self._factories

    def resolve(self, name: str) -> AgentPort:
        """Return the agent for a capability identifier.

        Raises:
            UnknownAgentError: If nothing is registered under name.
        """
        if name not in self._factories:
            raise UnknownAgentError(name)
        agent = self._instances.get(name)
        if agent is None:
            agent = self._factories[name]()
            self._instances[name] = agent
        return agent
