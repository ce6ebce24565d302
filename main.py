"""Main entrypoint and application factory for the Finance Tracker API.

This module initializes the FastAPI application, configures logging, creates the database tables, recovers ingestion
jobs abandoned by a previous process, and exposes the Scalar API reference endpoint for interactive OpenAPI
documentation. It also includes the main entrypoint for running the app with Uvicorn.
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from scalar_fastapi import get_scalar_api_reference
from sqlalchemy.exc import SQLAlchemyError

from finance_tracker.api.routes import router
from finance_tracker.core.db import init_db
from finance_tracker.core.settings import get_settings
from finance_tracker.core.utils import get_logger, setup_logging
from finance_tracker.workers.job_runner import build_job_runner, recover_abandoned_jobs, supervise_ingestion

setup_logging(get_settings().log_dir)
logger = get_logger("finance-tracker")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan event handler to create the tables and supervise ingestion jobs for the life of the process.

    Abandoned jobs are recovered at startup and then periodically. In inline mode, jobs still queued by a previous
    process are resumed.
    """
    _ = app  # Silence unused argument warning
    settings = get_settings()
    try:
        init_db()
    except SQLAlchemyError:
        logger.exception("Failed to create database tables")
        raise
    recovered = recover_abandoned_jobs(settings.stale_job_seconds)
    if recovered:
        logger.warning(f"Marked {recovered} abandoned statements as failed")
    runner = build_job_runner(settings) if settings.inline_worker else None
    supervisor = asyncio.create_task(supervise_ingestion(settings, runner))
    yield
    supervisor.cancel()
    with suppress(asyncio.CancelledError):
        await supervisor


app = FastAPI(
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    title="Finance Tracker API",
    description="""
    The Finance Tracker API manages bank accounts, credit cards, loans, categories and transactions, and turns
    uploaded bank or credit card statements into categorized transactions using OCR and an LLM.

    **Statement ingestion:**
    - `POST /files`: Upload a PDF or image statement (base64). Returns the file record in `pending` status.
    - `GET /files`: Poll the processing status of uploaded statements.

    **Ledger:** `/accounts`, `/credit-cards`, `/categories`, `/transactions`, `/loans`.

    Every request carries the caller's user id in the `X-User-Id` header.
    - `GET /health`: Health check endpoint.
    - `GET /scalar`: Interactive Scalar OpenAPI documentation.
    """,
    version="1.0.0",
)
app.include_router(router)


@app.get("/scalar", include_in_schema=False)
async def scalar_docs() -> HTMLResponse:
    """Return Scalar API reference."""
    return get_scalar_api_reference(openapi_url=app.openapi_url, title=app.title)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("main:app", host=settings.server_host, port=settings.server_port, reload=True)
