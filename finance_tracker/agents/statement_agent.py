"""StatementAgent: segments a statement transcript into transactions using an LLM.

The agent never raises. API errors, empty or malformed responses all yield an empty list, so an upload whose text
could be extracted still completes (with zero transactions) when the model misbehaves.
"""

from typing import Any

from pydantic import ValidationError

from finance_tracker.agents.base import BaseAgent
from finance_tracker.agents.prompts import (
    ASSET_RULES,
    CREDIT_RULES,
    STATEMENT_SYSTEM_PROMPT,
    STATEMENT_USER_PROMPT_TEMPLATE,
)
from finance_tracker.core.exceptions import LLMError
from finance_tracker.core.models import AccountClass, ParsedTransaction
from finance_tracker.core.utils import get_logger

logger = get_logger("finance-tracker.agent.statement")


class StatementAgent(BaseAgent):
    """Agent that turns raw statement text into ParsedTransaction records."""

    name = "statement"
    schema_name = "statement_transactions"

    def response_schema(self) -> dict[str, Any]:
        """Strict schema: an object with a ``transactions`` array."""
        return {
            "type": "object",
            "properties": {
                "transactions": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "date": {"type": "string", "description": "Date as YYYY-MM-DD"},
                            "description": {"type": "string", "description": "Transaction description"},
                            "amount": {"type": "number", "description": "Transaction amount, always positive"},
                            "type": {"type": "string", "enum": ["income", "expense"]},
                        },
                        "required": ["date", "description", "amount", "type"],
                        "additionalProperties": False,
                    },
                },
            },
            "required": ["transactions"],
            "additionalProperties": False,
        }

    def build_prompt(self, text: str, account_class: AccountClass) -> str:
        """Render the user prompt with the sign convention of the account class."""
        sign_rules = CREDIT_RULES if account_class == AccountClass.CREDIT else ASSET_RULES
        return STATEMENT_USER_PROMPT_TEMPLATE.format(sign_rules=sign_rules, text=text)

    def parse(self, text: str, account_class: AccountClass) -> list[ParsedTransaction]:
        """Return every transaction the model finds in ``text``; an empty list on any failure."""
        if not text.strip():
            logger.warning("Empty transcript, nothing to parse")
            return []
        try:
            data = self._invoke_llm(STATEMENT_SYSTEM_PROMPT, self.build_prompt(text, account_class))
            raw_records = data.get("transactions") or []
        except (LLMError, AttributeError) as exc:
            logger.warning(f"Statement parsing failed, continuing with no transactions: {exc}")
            return []
        if not isinstance(raw_records, list):
            logger.warning(f"Expected a transactions array, got {type(raw_records).__name__}")
            return []

        records: list[ParsedTransaction] = []
        for idx, raw in enumerate(raw_records, start=1):
            try:
                records.append(ParsedTransaction.model_validate(raw))
            except ValidationError as exc:
                logger.warning(f"Skipping malformed transaction #{idx}: {raw!r} ({exc.error_count()} errors)")
        logger.info(f"Parsed {len(records)} transactions ({account_class} statement)")
        return records
