"""Background job orchestration for statement ingestion.

An upload enqueues an IngestionJob row. JobRunner claims the job, extracts the statement text, parses it into
transactions, categorizes each one and inserts it, then finalizes the uploaded file as completed or failed. Jobs run
inline on FastAPI background tasks or in a separate polling worker (``python -m finance_tracker.workers.job_runner``).

Every database write is its own single-row statement: transactions inserted before a failure stay in place.
"""

import asyncio
import time
from collections.abc import Callable
from datetime import datetime, time as dtime, timedelta

from groq import Groq
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finance_tracker.agents import AgentRegistry, CategoryAgent, StatementAgent
from finance_tracker.core.db import DBHelper, IngestionJob, SessionLocal, init_db
from finance_tracker.core.models import AccountClass, CategoryOut, FileKind, Polarity, ProcessingStatus
from finance_tracker.core.settings import Settings, get_settings
from finance_tracker.core.utils import get_logger, setup_logging, utcnow
from finance_tracker.services.text_extractor import TextExtractor

logger = get_logger("finance-tracker.worker")

ABANDONED_MESSAGE = "Processing interrupted before completion"


class JobRunner:
    """JobRunner executes ingestion jobs against the database."""

    def __init__(
        self,
        extractor: TextExtractor,
        statement_agent: StatementAgent,
        category_agent: CategoryAgent,
        session_factory: Callable[[], Session] = SessionLocal,
    ) -> None:
        """Initialize JobRunner with its extraction and LLM collaborators."""
        self.extractor = extractor
        self.statement_agent = statement_agent
        self.category_agent = category_agent
        self.session_factory = session_factory

    def run_job(self, job_id: int) -> None:
        """Run one queued ingestion job; a job that is no longer queued is skipped."""
        db = DBHelper(self.session_factory())
        try:
            job = db.claim_job(job_id)
            if job is None:
                logger.warning(f"Job {job_id} is not queued, skipping")
                return
            try:
                self._process(db, job)
            finally:
                db.finish_job(job.id)
        finally:
            db.close()

    def _process(self, db: DBHelper, job: IngestionJob) -> None:
        user_id = job.user_id
        file = db.get_uploaded_file(job.file_id, user_id)
        if file is None:
            logger.error(f"Job {job.id}: file {job.file_id} not found")
            return
        tag = f"[FILE {file.id}]"
        try:
            if not db.transition_file_status(file.id, user_id, ProcessingStatus.PROCESSING):
                logger.warning(f"Job {job.id}: file {file.id} is no longer pending, skipping")
                return
            logger.info(f"{tag} Starting ingestion of {file.file_name} ({file.file_type}, {job.account_class})")
            text = self.extractor.extract(file.file_url, FileKind(file.file_type))
            db.update_uploaded_file(file.id, user_id, extracted_text=text)

            records = self.statement_agent.parse(text, AccountClass(job.account_class))
            categories = [CategoryOut.model_validate(c) for c in db.list_categories_for_user(user_id)]

            created = 0
            for idx, record in enumerate(records, start=1):
                label = f"{tag}[ROW {idx}/{len(records)}] "
                signed_amount = record.amount if record.type == Polarity.INCOME else -record.amount
                result = self.category_agent.categorize(record.description, signed_amount, categories, label)
                db.create_transaction(
                    user_id,
                    account_id=job.account_id,
                    credit_card_id=job.credit_card_id,
                    category_id=result.category_id,
                    type=result.type.value,
                    amount=record.amount,
                    description=record.description,
                    transaction_date=datetime.combine(record.date, dtime.min),
                    file_url=file.file_url,
                    file_key=file.file_key,
                )
                created += 1
                logger.info(f"{label}Saved {result.type} {record.amount} as '{result.category_name}'")

            db.transition_file_status(
                file.id,
                user_id,
                ProcessingStatus.COMPLETED,
                transactions_count=created,
                processed_at=utcnow(),
            )
            logger.info(f"{tag} Completed with {created} transactions")
        except Exception as exc:
            logger.exception(f"{tag} Ingestion failed")
            db.rollback()
            db.transition_file_status(file.id, user_id, ProcessingStatus.FAILED, error_message=str(exc))


def build_job_runner(settings: Settings | None = None) -> JobRunner:
    """Wire a JobRunner with the Groq-backed agents and the real text extractor."""
    settings = settings or get_settings()
    client = Groq(api_key=settings.groq_api_key)
    return JobRunner(
        extractor=TextExtractor(settings),
        statement_agent=AgentRegistry.create(StatementAgent.name, client, settings),
        category_agent=AgentRegistry.create(CategoryAgent.name, client, settings),
    )


def recover_abandoned_jobs(
    stale_after_seconds: int, session_factory: Callable[[], Session] = SessionLocal
) -> int:
    """Close jobs nobody is working on anymore and fail their files; returns how many files were recovered.

    A job counts as abandoned when it has been queued, or running, for longer than ``stale_after_seconds``,
    which happens when the process running it exited mid-flight. Files still pending or processing past the same
    cutoff without any open job (the job was never created, or it finished without settling the file) are failed
    too. Call it periodically: a job interrupted by a restart only becomes stale once the cutoff has passed.
    """
    cutoff = utcnow() - timedelta(seconds=stale_after_seconds)
    db = DBHelper(session_factory())
    try:
        recovered = 0
        for job in db.list_stale_jobs(cutoff):
            logger.warning(f"Recovering abandoned job {job.id} (file {job.file_id}, status {job.status})")
            if db.transition_file_status(
                job.file_id, job.user_id, ProcessingStatus.FAILED, error_message=ABANDONED_MESSAGE
            ):
                recovered += 1
            db.finish_job(job.id)
        for file in db.list_orphaned_files(cutoff):
            logger.warning(f"Failing file {file.id} left {file.processing_status} without an ingestion job")
            if db.transition_file_status(
                file.id, file.user_id, ProcessingStatus.FAILED, error_message=ABANDONED_MESSAGE
            ):
                recovered += 1
        return recovered
    finally:
        db.close()


def resume_queued_jobs(runner: JobRunner, session_factory: Callable[[], Session] = SessionLocal) -> int:
    """Run every job still queued, e.g. inline jobs whose background task died with the previous process."""
    db = DBHelper(session_factory())
    try:
        job_ids = db.list_queued_job_ids()
    finally:
        db.close()
    for job_id in job_ids:
        logger.info(f"Resuming queued job {job_id}")
        runner.run_job(job_id)
    return len(job_ids)


async def supervise_ingestion(
    settings: Settings,
    runner: JobRunner | None = None,
    session_factory: Callable[[], Session] = SessionLocal,
) -> None:
    """Keep inline ingestion healthy for the lifetime of the API process.

    Queued jobs left by a previous process are resumed once when ``runner`` is given, then abandoned jobs and
    orphaned files are recovered every ``recovery_interval_seconds`` until the task is cancelled.
    """
    if runner is not None:
        resumed = await asyncio.to_thread(resume_queued_jobs, runner, session_factory)
        if resumed:
            logger.info(f"Resumed {resumed} queued ingestion jobs")
    while True:
        await asyncio.sleep(settings.recovery_interval_seconds)
        try:
            recovered = await asyncio.to_thread(recover_abandoned_jobs, settings.stale_job_seconds, session_factory)
        except SQLAlchemyError:
            logger.exception("Periodic job recovery failed")
            continue
        if recovered:
            logger.warning(f"Marked {recovered} abandoned statements as failed")


def main() -> None:
    """Poll the ingestion queue forever, recovering abandoned jobs on a timer."""
    settings = get_settings()
    setup_logging(settings.log_dir)
    init_db()
    runner = build_job_runner(settings)
    logger.info("Worker started, waiting for jobs")
    next_recovery = 0.0
    while True:
        if time.monotonic() >= next_recovery:
            recovered = recover_abandoned_jobs(settings.stale_job_seconds)
            if recovered:
                logger.info(f"Recovered {recovered} abandoned statements")
            next_recovery = time.monotonic() + settings.recovery_interval_seconds
        db = DBHelper(SessionLocal())
        try:
            job_id = db.next_queued_job_id()
        finally:
            db.close()
        if job_id is None:
            time.sleep(settings.worker_poll_seconds)
            continue
        runner.run_job(job_id)


if __name__ == "__main__":
    main()
