"""Core package: provides models, database helpers, settings, and shared utilities."""

from .db import DBHelper, get_db  # noqa: F401
from .exceptions import ExtractionError, FinanceTrackerError, LLMError, StorageError  # noqa: F401
from .models import ParsedTransaction, ProcessingStatus  # noqa: F401
from .settings import Settings  # noqa: F401
