"""Base agent abstraction for the LLM-backed statement agents.

This module defines the abstract base class shared by the statement parser and the categorizer. It owns the single
LLM call shape both of them use: a system + user message list sent with a strict ``json_schema`` response format,
returning one decoded JSON object.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, ClassVar

from finance_tracker.core.exceptions import LLMError
from finance_tracker.core.settings import Settings
from finance_tracker.core.utils import color, get_logger, truncate

logger = get_logger("finance-tracker.agent")


class BaseAgent(ABC):
    """Abstract base class for all agents."""

    name: ClassVar[str]
    schema_name: ClassVar[str]

    def __init__(self, llm_client: object, settings: Settings) -> None:
        """Initialize the agent with an OpenAI-compatible chat client (Groq) and settings."""
        self.llm_client = llm_client
        self.settings = settings

    @abstractmethod
    def response_schema(self) -> dict[str, Any]:
        """JSON schema the model output must conform to."""

    def _invoke_llm(self, system_prompt: str, user_prompt: str, label: str = "") -> Any:
        """Call the model with a strict JSON schema and return the decoded payload.

        Raises LLMError for API failures, empty responses and undecodable JSON.
        """
        yellow = color("yellow")
        green = color("green")
        reset = color("reset")
        logger.info(f"{yellow}{label}AGENT: Calling LLM ({self.schema_name})...{reset}")
        try:
            completion = self.llm_client.chat.completions.create(
                model=self.settings.llm_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.settings.llm_temperature,
                max_completion_tokens=self.settings.llm_max_completion_tokens,
                top_p=self.settings.llm_top_p,
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": self.schema_name, "strict": True, "schema": self.response_schema()},
                },
            )
            content = completion.choices[0].message.content if completion.choices else None
        except Exception as exc:
            msg = f"Groq API call failed: {exc}"
            logger.exception(msg)
            raise LLMError(msg) from exc
        if not content or not isinstance(content, str):
            msg = "No response from LLM"
            raise LLMError(msg)
        logger.info(f"{green}{label}OUTPUT: {truncate(content)}{reset}")
        try:
            return json.loads(content)
        except json.JSONDecodeError as exc:
            msg = f"LLM returned invalid JSON: {exc}"
            raise LLMError(msg) from exc
