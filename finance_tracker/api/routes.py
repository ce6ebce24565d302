"""FastAPI endpoints for the Finance Tracker API.

This module defines the statement upload and file status routes, the administrative bulk clear, the caller's identity
and preferences, and the health check. It includes the ledger CRUD router and wires together the file service, the
ingestion queue and the job runner.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from finance_tracker.api.dependencies import Capability, authorize, get_file_service, get_job_runner
from finance_tracker.api.ledger_routes import router as ledger_router
from finance_tracker.core.db import DBHelper, get_db
from finance_tracker.core.exceptions import StorageError
from finance_tracker.core.models import (
    FileUpload,
    OperationResult,
    PreferencesOut,
    PreferencesUpdate,
    ProcessingStatus,
    UploadedFileOut,
    UserOut,
)
from finance_tracker.core.settings import Settings, get_settings
from finance_tracker.core.utils import get_logger
from finance_tracker.services.file_service import FileService
from finance_tracker.workers.job_runner import JobRunner

router = APIRouter()
router.include_router(ledger_router)
logger = get_logger("finance-tracker.api")


@router.post(
    "/files",
    status_code=202,
    response_model=UploadedFileOut,
    tags=["files"],
    summary="Upload a bank or credit card statement and start ingestion",
    description=(
        "Upload a PDF statement or a statement screenshot as base64. "
        "The file is stored, a file record is created in `pending` status and an ingestion job is queued. "
        "The job extracts the text, asks the LLM for the transactions, categorizes each one and saves them.\n\n"
        "Poll `GET /files` to follow `processing_status` (`pending` -> `processing` -> `completed` | `failed`).\n\n"
        "**Response:**\n"
        "- 202 Accepted: the pending file record.\n"
        "- 422 Unprocessable Entity: invalid payload (for example `file_data` is not base64).\n"
        "- 500 Internal Server Error: the ingestion job could not be queued; the file is marked `failed`.\n"
        "- 502 Bad Gateway: the statement could not be stored."
    ),
    response_description="Pending file record.",
    responses={
        502: {
            "description": "Object storage failure.",
            "content": {"application/json": {"example": {"detail": "Failed to store statement"}}},
        },
    },
)
def upload_statement(
    payload: FileUpload,
    background_tasks: BackgroundTasks,
    user: UserOut = Depends(authorize(Capability.WRITE)),
    db: DBHelper = Depends(get_db),
    file_service: FileService = Depends(get_file_service),
    runner: JobRunner = Depends(get_job_runner),
    settings: Settings = Depends(get_settings),
) -> UploadedFileOut:
    """Store an uploaded statement and queue its ingestion."""
    logger.info(f"Received upload request: user={user.id} filename={payload.file_name} type={payload.file_type}")
    try:
        stored = file_service.save_statement(user.id, payload.file_name, payload.file_type, payload.content())
    except StorageError as exc:
        raise HTTPException(502, "Failed to store statement") from exc

    record = db.create_uploaded_file(
        user.id,
        file_name=payload.file_name,
        file_type=payload.file_type.value,
        file_url=stored.url,
        file_key=stored.key,
        file_size=stored.size,
    )
    try:
        job = db.create_job(
            file_id=record.id,
            user_id=user.id,
            account_id=payload.account_id,
            credit_card_id=payload.credit_card_id,
            account_class=payload.account_class.value,
        )
    except SQLAlchemyError as exc:
        logger.exception(f"Failed to queue ingestion for file {record.id}")
        db.rollback()
        db.transition_file_status(
            record.id, user.id, ProcessingStatus.FAILED, error_message="Failed to queue statement processing"
        )
        raise HTTPException(500, "Failed to queue statement processing") from exc
    response = UploadedFileOut.model_validate(record)
    if settings.inline_worker:
        background_tasks.add_task(runner.run_job, job.id)
        logger.info(f"Background job started: job_id={job.id} file_id={record.id}")
    else:
        logger.info(f"Job queued for worker: job_id={job.id} file_id={record.id}")
    return response


@router.get(
    "/files",
    response_model=list[UploadedFileOut],
    tags=["files"],
    summary="List uploaded statements and their processing status",
)
def list_files(
    user: UserOut = Depends(authorize(Capability.READ)), db: DBHelper = Depends(get_db)
) -> list[UploadedFileOut]:
    """List the caller's uploaded files, newest first."""
    return [UploadedFileOut.model_validate(f) for f in db.list_uploaded_files(user.id)]


@router.post(
    "/admin/clear-transactions",
    response_model=OperationResult,
    tags=["admin"],
    summary="Delete all of the caller's transactions",
    description="Deletes every transaction owned by the caller, one at a time. Accounts and cards are untouched.",
)
def clear_transactions(
    user: UserOut = Depends(authorize(Capability.ADMIN)), db: DBHelper = Depends(get_db)
) -> OperationResult:
    """Delete all of the caller's transactions (admin only)."""
    deleted = 0
    for tx in db.list_transactions(user.id):
        deleted += db.delete_transaction(tx.id, user.id)
    logger.info(f"User {user.id} cleared {deleted} transactions")
    return OperationResult(message="All transactions have been deleted", deleted=deleted)


@router.get("/auth/me", response_model=UserOut, tags=["auth"], summary="Current user")
def me(user: UserOut = Depends(authorize(Capability.READ))) -> UserOut:
    """Return the caller's identity and role."""
    return user


@router.get("/preferences", response_model=PreferencesOut, tags=["preferences"], summary="Get preferences")
def get_preferences(
    user: UserOut = Depends(authorize(Capability.READ)), db: DBHelper = Depends(get_db)
) -> PreferencesOut:
    """Return the caller's preferences, with defaults when none were saved."""
    prefs = db.get_preferences(user.id)
    return PreferencesOut.model_validate(prefs) if prefs else PreferencesOut()


@router.put("/preferences", response_model=PreferencesOut, tags=["preferences"], summary="Update preferences")
def update_preferences(
    payload: PreferencesUpdate,
    user: UserOut = Depends(authorize(Capability.READ)),
    db: DBHelper = Depends(get_db),
) -> PreferencesOut:
    """Save the caller's theme, currency or language."""
    prefs = db.upsert_preferences(user.id, payload.model_dump(exclude_none=True))
    return PreferencesOut.model_validate(prefs)


@router.get(
    "/health",
    summary="Health check",
    description="Simple health check endpoint. Returns status ok.",
    response_description="Status ok.",
    responses={200: {"description": "API is healthy.", "content": {"application/json": {"example": {"status": "ok"}}}}},
)
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}
