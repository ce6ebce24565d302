"""Agent registry for managing agent types and instances.

This module provides a registry for agent classes, allowing registration and retrieval of agent implementations by
name. The worker builds its statement and category agents through it.
"""

from typing import ClassVar

from finance_tracker.agents.base import BaseAgent
from finance_tracker.core.settings import Settings


class AgentRegistry:
    """Registry for agent classes."""

    _registry: ClassVar[dict[str, type[BaseAgent]]] = {}

    @classmethod
    def register(cls, name: str, agent_cls: type[BaseAgent]) -> None:
        """Register an agent class with a given name."""
        cls._registry[name] = agent_cls

    @classmethod
    def get(cls, name: str) -> type[BaseAgent]:
        """Retrieve an agent class by name."""
        try:
            return cls._registry[name]
        except KeyError:
            msg = f"Unknown agent '{name}', available: {', '.join(sorted(cls._registry))}"
            raise KeyError(msg) from None

    @classmethod
    def create(cls, name: str, llm_client: object, settings: Settings) -> BaseAgent:
        """Instantiate a registered agent."""
        return cls.get(name)(llm_client, settings)

    @classmethod
    def available(cls) -> list[str]:
        """List all available agent names."""
        return list(cls._registry.keys())
