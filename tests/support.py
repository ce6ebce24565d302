"""Test doubles for the external services the ingestion pipeline talks to."""

import json
from types import SimpleNamespace
from typing import Any

import requests

from finance_tracker.agents import CategoryAgent, StatementAgent
from finance_tracker.core.exceptions import StorageError
from finance_tracker.core.models import FileKind
from finance_tracker.core.settings import get_settings
from finance_tracker.workers.job_runner import JobRunner

ADMIN_ID = 1
VIEWER_ID = 2
USER_ID = 3
OTHER_ADMIN_ID = 4

STATEMENT_SCHEMA = "statement_transactions"
CATEGORY_SCHEMA = "transaction_categorization"


def auth(user_id: int) -> dict[str, str]:
    """Identity header for a seeded user."""
    return {"X-User-Id": str(user_id)}


def statement_json(*records: dict[str, Any]) -> str:
    """Model output for the statement parser."""
    return json.dumps({"transactions": list(records)})


def category_json(type_: str, name: str) -> str:
    """Model output for the categorizer."""
    return json.dumps({"type": type_, "categoryName": name})


class FakeLLMClient:
    """Stands in for the Groq client; answers per JSON schema name.

    A response may be a string, an exception to raise, or a callable receiving the request kwargs.
    Schemas without a configured response get an empty message.
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses: dict[str, Any] = dict(responses or {})
        self.calls: list[dict[str, Any]] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        response = self.responses.get(kwargs["response_format"]["json_schema"]["name"])
        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(kwargs)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=response))])

    def calls_for(self, schema_name: str) -> list[dict[str, Any]]:
        return [c for c in self.calls if c["response_format"]["json_schema"]["name"] == schema_name]


class FakeBlobStore:
    """In-memory object storage."""

    def __init__(self, fail: bool = False) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.fail = fail

    def put(self, key: str, data: bytes, content_type: str) -> str:
        if self.fail:
            msg = f"Failed to store {key}: bucket unavailable"
            raise StorageError(msg)
        self.objects[key] = (data, content_type)
        return f"https://storage.test/{key}"


class FakeExtractor:
    """Returns a canned transcript, or raises the configured error."""

    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[tuple[str, FileKind]] = []

    def extract(self, address: str, kind: FileKind) -> str:
        self.calls.append((address, kind))
        if self.error is not None:
            raise self.error
        return self.text


class FakeResponse:
    def __init__(self, content: bytes, status_code: int = 200) -> None:
        self.content = content
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            msg = f"{self.status_code} Error"
            raise requests.HTTPError(msg)


class FakeHTTP:
    """Minimal requests.Session replacement serving one payload."""

    def __init__(self, content: bytes = b"blob", status_code: int = 200) -> None:
        self.content = content
        self.status_code = status_code
        self.urls: list[str] = []

    def get(self, url: str, timeout: float | None = None) -> FakeResponse:
        self.urls.append(url)
        return FakeResponse(self.content, self.status_code)


def make_runner(extractor: Any, llm: FakeLLMClient, category_agent: Any = None) -> JobRunner:
    """JobRunner wired with fakes and the real agents."""
    settings = get_settings()
    return JobRunner(
        extractor=extractor,
        statement_agent=StatementAgent(llm, settings),
        category_agent=category_agent or CategoryAgent(llm, settings),
    )
