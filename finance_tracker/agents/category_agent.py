"""CategoryAgent: assigns polarity and a category to one transaction using an LLM."""

from collections.abc import Sequence
from typing import Any, Protocol

from finance_tracker.agents.base import BaseAgent
from finance_tracker.agents.prompts import CATEGORY_SYSTEM_PROMPT, CATEGORY_USER_PROMPT_TEMPLATE
from finance_tracker.core.defaults import UNCATEGORIZED
from finance_tracker.core.exceptions import LLMError
from finance_tracker.core.models import Categorization, Polarity
from finance_tracker.core.utils import get_logger

logger = get_logger("finance-tracker.agent.category")


class CategoryLike(Protocol):
    """Anything with the category fields the agent reads (ORM row or CategoryOut)."""

    id: int
    name: str
    type: str


def resolve_category(name: str, polarity: Polarity, categories: Sequence[CategoryLike]) -> CategoryLike | None:
    """Find the category whose name matches case-insensitively and whose type equals ``polarity``."""
    wanted = name.strip().casefold()
    for category in categories:
        if category.name.casefold() == wanted and category.type == polarity:
            return category
    return None


def fallback_categorization(amount: float) -> Categorization:
    """Deterministic result used whenever the model cannot be relied on."""
    polarity = Polarity.INCOME if amount >= 0 else Polarity.EXPENSE
    return Categorization(type=polarity, category_id=None, category_name=UNCATEGORIZED)


class CategoryAgent(BaseAgent):
    """Agent that picks income/expense and the best category from the user's list."""

    name = "category"
    schema_name = "transaction_categorization"

    def response_schema(self) -> dict[str, Any]:
        """Strict schema: ``{type, categoryName}``."""
        return {
            "type": "object",
            "properties": {
                "type": {"type": "string", "enum": ["income", "expense"], "description": "Transaction type"},
                "categoryName": {"type": "string", "description": "Category name"},
            },
            "required": ["type", "categoryName"],
            "additionalProperties": False,
        }

    def categorize(
        self, description: str, amount: float, categories: Sequence[CategoryLike], label: str = ""
    ) -> Categorization:
        """Categorize a transaction; never raises."""
        category_list = "\n".join(f"- {c.name} ({c.type})" for c in categories)
        prompt = CATEGORY_USER_PROMPT_TEMPLATE.format(
            description=description, amount=amount, categories=category_list
        )
        try:
            data = self._invoke_llm(CATEGORY_SYSTEM_PROMPT, prompt, label)
            polarity = Polarity(data["type"])
            suggested = str(data["categoryName"]).strip()
        except (LLMError, KeyError, TypeError, ValueError) as exc:
            logger.warning(f"{label}Categorization failed for '{description}', using fallback: {exc}")
            return fallback_categorization(amount)

        match = resolve_category(suggested, polarity, categories)
        if match is None:
            logger.info(f"{label}No category named '{suggested}' ({polarity}), leaving it unresolved")
        return Categorization(
            type=polarity,
            category_id=match.id if match else None,
            category_name=suggested,
        )
