"""FastAPI dependencies for DI (settings, DB, storage, job runner, identity and authorization).

Authorization is declared per route with ``Depends(authorize(Capability.X))``: each capability maps to the set of
roles allowed to use it, and the check runs before the handler body so a forbidden call never touches the database.
"""

from collections.abc import Callable
from enum import StrEnum
from functools import lru_cache

from fastapi import Depends, HTTPException, Request

from finance_tracker.core.db import DBHelper, get_db
from finance_tracker.core.models import Role, UserOut
from finance_tracker.core.settings import Settings, get_settings
from finance_tracker.core.utils import get_logger
from finance_tracker.services.file_service import FileService
from finance_tracker.services.s3_file_service import S3FileService
from finance_tracker.workers.job_runner import JobRunner, build_job_runner

logger = get_logger("finance-tracker.auth")


class Capability(StrEnum):
    """What a route does, as far as authorization is concerned."""

    READ = "read"
    WRITE = "write"
    ADMIN = "admin"


CAPABILITY_ROLES: dict[Capability, frozenset[Role]] = {
    Capability.READ: frozenset({Role.ADMIN, Role.VIEWER, Role.USER}),
    Capability.WRITE: frozenset({Role.ADMIN, Role.USER}),
    Capability.ADMIN: frozenset({Role.ADMIN}),
}


@lru_cache
def get_file_service() -> FileService:
    """Provide the S3-backed FileService (created once per process)."""
    return FileService(S3FileService())


def get_job_runner(settings: Settings = Depends(get_settings)) -> JobRunner:
    """Provide a JobRunner wired to Groq and the text extractor."""
    return build_job_runner(settings)


def get_current_user(
    request: Request,
    settings: Settings = Depends(get_settings),
    db: DBHelper = Depends(get_db),
) -> UserOut:
    """Resolve the caller from the identity header set by the session provider."""
    raw_id = request.headers.get(settings.identity_header)
    if raw_id is None or not raw_id.strip().isdigit():
        raise HTTPException(401, "Not authenticated")
    user = db.get_user(int(raw_id))
    if user is None:
        raise HTTPException(401, "Unknown user")
    return UserOut.model_validate(user)


def authorize(capability: Capability) -> Callable[..., UserOut]:
    """Build a dependency that returns the caller if their role grants ``capability``."""
    allowed = CAPABILITY_ROLES[capability]

    def dependency(user: UserOut = Depends(get_current_user)) -> UserOut:
        if user.role not in allowed:
            logger.warning(f"User {user.id} ({user.role}) denied {capability} access")
            raise HTTPException(403, f"Role '{user.role}' is not allowed to perform {capability} operations")
        return user

    return dependency
