"""Agents package: provides agent registry, base class, and the statement parsing and categorization agents."""

from .base import BaseAgent  # noqa: F401
from .category_agent import CategoryAgent  # noqa: F401
from .registry import AgentRegistry  # noqa: F401
from .statement_agent import StatementAgent  # noqa: F401

AgentRegistry.register(StatementAgent.name, StatementAgent)
AgentRegistry.register(CategoryAgent.name, CategoryAgent)
