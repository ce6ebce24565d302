import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_finance_tracker.db")
os.environ.setdefault("GROQ_API_KEY", "test-key")
os.environ.setdefault("INLINE_WORKER", "true")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from finance_tracker.api.dependencies import get_file_service, get_job_runner  # noqa: E402
from finance_tracker.core.db import Base, DBHelper, SessionLocal, engine  # noqa: E402
from finance_tracker.services.file_service import FileService  # noqa: E402
from main import app  # noqa: E402
from tests.support import (  # noqa: E402
    ADMIN_ID,
    OTHER_ADMIN_ID,
    USER_ID,
    VIEWER_ID,
    FakeBlobStore,
    FakeExtractor,
    FakeLLMClient,
    make_runner,
)


def _reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = DBHelper(SessionLocal())
    try:
        db.create_user(id=ADMIN_ID, name="Admin User", email="admin@example.com", role="admin")
        db.create_user(id=VIEWER_ID, name="Viewer User", email="viewer@example.com", role="viewer")
        db.create_user(id=USER_ID, name="Regular User", email="user@example.com", role="user")
        db.create_user(id=OTHER_ADMIN_ID, name="Other Admin", email="other@example.com", role="admin")
    finally:
        db.close()


@pytest.fixture(autouse=True)
def reset_db():
    _reset_db()
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def db():
    helper = DBHelper(SessionLocal())
    yield helper
    helper.close()


@pytest.fixture()
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture()
def extractor() -> FakeExtractor:
    return FakeExtractor(text="2024-01-15 DEPOSIT SALARY 1500.00")


@pytest.fixture()
def llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture()
def client(blob_store: FakeBlobStore, extractor: FakeExtractor, llm: FakeLLMClient) -> TestClient:
    app.dependency_overrides[get_file_service] = lambda: FileService(blob_store)
    app.dependency_overrides[get_job_runner] = lambda: make_runner(extractor, llm)
    return TestClient(app)
