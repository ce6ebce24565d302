"""Statement storage: key layout and content types on top of a blob store."""

import mimetypes
import time
from typing import NamedTuple, Protocol

from finance_tracker.core.models import FileKind
from finance_tracker.core.utils import get_logger

logger = get_logger("finance-tracker.storage")

DOCUMENT_CONTENT_TYPE = "application/pdf"
DEFAULT_IMAGE_CONTENT_TYPE = "image/jpeg"


class BlobStore(Protocol):
    """Minimal object-storage capability used by FileService."""

    def put(self, key: str, data: bytes, content_type: str) -> str: ...

class StoredFile(NamedTuple):
    """Where an uploaded statement ended up."""

    key: str
    url: str
    size: int


def build_statement_key(user_id: int, file_name: str, now_ms: int | None = None) -> str:
    """Build the storage key ``{user_id}/statements/{epoch_ms}-{file_name}``."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{user_id}/statements/{now_ms}-{file_name}"


def content_type_for(kind: FileKind, file_name: str) -> str:
    """Return the MIME type to store a statement with."""
    if kind == FileKind.DOCUMENT:
        return DOCUMENT_CONTENT_TYPE
    guessed, _ = mimetypes.guess_type(file_name)
    if guessed and guessed.startswith("image/"):
        return guessed
    return DEFAULT_IMAGE_CONTENT_TYPE


class FileService:
    """Service for storing uploaded statements in a blob store (S3 in production)."""

    def __init__(self, store: BlobStore) -> None:
        """Initialize FileService with a blob store such as S3FileService."""
        self.store = store

    def save_statement(self, user_id: int, file_name: str, kind: FileKind, data: bytes) -> StoredFile:
        """Persist an uploaded statement and return its key, URL and size."""
        key = build_statement_key(user_id, file_name)
        url = self.store.put(key, data, content_type_for(kind, file_name))
        logger.info(f"Stored statement {key} ({len(data)} bytes)")
        return StoredFile(key=key, url=url, size=len(data))
