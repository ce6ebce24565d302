"""DB connection, tables and helpers for the Finance Tracker.

Every owned table carries a ``user_id`` column without a database-level foreign key. Ownership is enforced in
DBHelper, which scopes each query by ``user_id``: acting on another owner's row silently matches zero rows.
"""

from collections.abc import Iterator
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    create_engine,
    delete,
    exists,
    func,
    or_,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from finance_tracker.core.models import JobState, ProcessingStatus, Role
from finance_tracker.core.utils import utcnow

Base = declarative_base()


def _money() -> Column:
    return Column(Numeric(15, 2, asdecimal=False), nullable=False, default=0.0)


class User(Base):
    """A signed-in user; identity comes from the fronting session provider."""

    __tablename__ = "users"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text)
    email = Column(String(320))
    role = Column(String(16), nullable=False, default=Role.USER.value)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class UserPreference(Base):
    """Per-user theme, currency and language."""

    __tablename__ = "user_preferences"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, unique=True)
    theme = Column(String(16), nullable=False, default="system")
    currency = Column(String(3), nullable=False, default="USD")
    language = Column(String(5), nullable=False, default="es")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Account(Base):
    """A bank account."""

    __tablename__ = "accounts"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    bank_name = Column(String(255), nullable=False)
    account_number = Column(String(100))
    account_type = Column(String(16), nullable=False, default="checking")
    balance = _money()
    currency = Column(String(3), nullable=False, default="USD")
    color = Column(String(7), default="#3b82f6")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class CreditCard(Base):
    """A credit card (revolving-credit account)."""

    __tablename__ = "credit_cards"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    bank_name = Column(String(255), nullable=False)
    last_four_digits = Column(String(4))
    credit_limit = _money()
    current_balance = _money()
    available_credit = _money()
    closing_day = Column(Integer, default=1)
    payment_due_day = Column(Integer, default=15)
    currency = Column(String(3), nullable=False, default="USD")
    color = Column(String(7), default="#ef4444")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Category(Base):
    """A transaction category, global when user_id is null."""

    __tablename__ = "categories"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(16), nullable=False)
    color = Column(String(7), default="#6b7280")
    icon = Column(String(50))
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Transaction(Base):
    """A money movement. Amount is stored non-negative; type carries the sign."""

    __tablename__ = "transactions"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    account_id = Column(Integer)
    credit_card_id = Column(Integer)
    category_id = Column(Integer)
    type = Column(String(16), nullable=False)
    amount = Column(Numeric(15, 2, asdecimal=False), nullable=False)
    description = Column(Text, nullable=False)
    transaction_date = Column(DateTime, nullable=False)
    notes = Column(Text)
    is_recurring = Column(Boolean, nullable=False, default=False)
    file_url = Column(Text)
    file_key = Column(Text)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class UploadedFile(Base):
    """An uploaded statement and the status of its ingestion."""

    __tablename__ = "uploaded_files"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    file_type = Column(String(16), nullable=False)
    file_url = Column(Text, nullable=False)
    file_key = Column(Text, nullable=False)
    file_size = Column(Integer)
    processing_status = Column(String(16), nullable=False, default=ProcessingStatus.PENDING.value)
    extracted_text = Column(Text)
    transactions_count = Column(Integer, default=0)
    error_message = Column(Text)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    processed_at = Column(DateTime)


class Loan(Base):
    """A bank loan."""

    __tablename__ = "loans"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    bank_name = Column(String(255), nullable=False)
    loan_name = Column(String(255), nullable=False)
    loan_type = Column(String(16), nullable=False)
    original_amount = _money()
    current_balance = _money()
    interest_rate = Column(Numeric(5, 2, asdecimal=False), nullable=False)
    monthly_payment = _money()
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    color = Column(String(7), default="#8b5cf6")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class IngestionJob(Base):
    """Durable queue entry driving the ingestion of one uploaded file."""

    __tablename__ = "ingestion_jobs"
    id = Column(Integer, primary_key=True, autoincrement=True)
    file_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=False)
    account_id = Column(Integer)
    credit_card_id = Column(Integer)
    account_class = Column(String(16), nullable=False)
    status = Column(String(16), nullable=False, default=JobState.QUEUED.value, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    started_at = Column(DateTime)
    finished_at = Column(DateTime)


# Allowed predecessors of each file status; completed and failed are terminal.
FILE_STATUS_PREDECESSORS: dict[ProcessingStatus, set[ProcessingStatus]] = {
    ProcessingStatus.PROCESSING: {ProcessingStatus.PENDING},
    ProcessingStatus.COMPLETED: {ProcessingStatus.PROCESSING},
    ProcessingStatus.FAILED: {ProcessingStatus.PENDING, ProcessingStatus.PROCESSING},
}


def get_engine() -> Engine:
    """Create a SQLAlchemy engine using the configured database URL."""
    from finance_tracker.core.settings import get_settings

    url = get_settings().database_url
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


engine = get_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine | None = None) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind or engine)


def get_db() -> Iterator["DBHelper"]:
    """Yield a DBHelper bound to a fresh session and close it afterwards."""
    db = DBHelper(SessionLocal())
    try:
        yield db
    finally:
        db.close()


ModelT = TypeVar("ModelT", bound=Base)


class DBHelper:
    """Owner-scoped row helpers for the Finance Tracker using SQLAlchemy.

    Every mutation is a single statement committed on its own.
    """

    def __init__(self, session: Session) -> None:
        """Initialize the DBHelper with a SQLAlchemy session."""
        self.session = session

    # --- generic helpers ---

    def _create(self, model: type[ModelT], **values: Any) -> ModelT:
        row = model(**values)
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def _get(self, model: type[ModelT], row_id: int, user_id: int) -> ModelT | None:
        stmt = select(model).where(model.id == row_id, model.user_id == user_id)
        return self.session.scalars(stmt).first()

    def _list(self, model: type[ModelT], user_id: int, *order_by: Any) -> list[ModelT]:
        stmt = select(model).where(model.user_id == user_id).order_by(*order_by)
        return list(self.session.scalars(stmt))

    def _update(self, model: type[Base], row_id: int, user_id: int, values: dict[str, Any]) -> int:
        if not values:
            return 0
        stmt = update(model).where(model.id == row_id, model.user_id == user_id).values(**values)
        result = self.session.execute(stmt)
        self.session.commit()
        return result.rowcount

    def _delete(self, model: type[Base], row_id: int, user_id: int) -> int:
        stmt = delete(model).where(model.id == row_id, model.user_id == user_id)
        result = self.session.execute(stmt)
        self.session.commit()
        return result.rowcount

    # --- users ---

    def get_user(self, user_id: int) -> User | None:
        """Return a user by id."""
        return self.session.get(User, user_id)

    def create_user(self, **values: Any) -> User:
        """Create a user row."""
        return self._create(User, **values)

    def get_preferences(self, user_id: int) -> UserPreference | None:
        """Return the user's preferences row, if any."""
        stmt = select(UserPreference).where(UserPreference.user_id == user_id)
        return self.session.scalars(stmt).first()

    def upsert_preferences(self, user_id: int, values: dict[str, Any]) -> UserPreference:
        """Create or update the user's preferences row."""
        prefs = self.get_preferences(user_id)
        if prefs is None:
            return self._create(UserPreference, user_id=user_id, **values)
        for key, value in values.items():
            setattr(prefs, key, value)
        self.session.commit()
        self.session.refresh(prefs)
        return prefs

    # --- accounts ---

    def list_accounts(self, user_id: int) -> list[Account]:
        """List the user's accounts, newest first."""
        return self._list(Account, user_id, Account.created_at.desc(), Account.id.desc())

    def create_account(self, user_id: int, **values: Any) -> Account:
        """Create an account owned by the user."""
        return self._create(Account, user_id=user_id, **values)

    def update_account(self, account_id: int, user_id: int, values: dict[str, Any]) -> int:
        """Update one of the user's accounts; returns the matched row count."""
        return self._update(Account, account_id, user_id, values)

    def delete_account(self, account_id: int, user_id: int) -> int:
        """Delete one of the user's accounts; returns the matched row count."""
        return self._delete(Account, account_id, user_id)

    # --- credit cards ---

    def list_credit_cards(self, user_id: int) -> list[CreditCard]:
        """List the user's credit cards, newest first."""
        return self._list(CreditCard, user_id, CreditCard.created_at.desc(), CreditCard.id.desc())

    def create_credit_card(self, user_id: int, **values: Any) -> CreditCard:
        """Create a credit card owned by the user."""
        return self._create(CreditCard, user_id=user_id, **values)

    def get_credit_card(self, card_id: int, user_id: int) -> CreditCard | None:
        """Return one of the user's credit cards."""
        return self._get(CreditCard, card_id, user_id)

    def update_credit_card(self, card_id: int, user_id: int, values: dict[str, Any]) -> int:
        """Update one of the user's credit cards; returns the matched row count."""
        return self._update(CreditCard, card_id, user_id, values)

    def delete_credit_card(self, card_id: int, user_id: int) -> int:
        """Delete one of the user's credit cards; returns the matched row count."""
        return self._delete(CreditCard, card_id, user_id)

    # --- categories ---

    def list_categories_for_user(self, user_id: int) -> list[Category]:
        """List the user's own categories plus the global defaults, by name."""
        stmt = (
            select(Category)
            .where(or_(Category.user_id == user_id, Category.is_default.is_(True)))
            .order_by(Category.name, Category.id)
        )
        return list(self.session.scalars(stmt))

    def list_default_categories(self) -> list[Category]:
        """List the global default categories."""
        stmt = select(Category).where(Category.is_default.is_(True)).order_by(Category.name)
        return list(self.session.scalars(stmt))

    def create_category(self, **values: Any) -> Category:
        """Create a category; pass user_id=None for a global default."""
        return self._create(Category, **values)

    def delete_category(self, category_id: int, user_id: int) -> int:
        """Delete one of the user's own categories; defaults are never matched."""
        return self._delete(Category, category_id, user_id)

    # --- transactions ---

    def _transactions(self, user_id: int, *criteria: Any, limit: int | None = None) -> list[Transaction]:
        stmt = (
            select(Transaction)
            .where(Transaction.user_id == user_id, *criteria)
            .order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
        )
        if limit:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt))

    def list_transactions(self, user_id: int, limit: int | None = None) -> list[Transaction]:
        """List the user's transactions, most recent first."""
        return self._transactions(user_id, limit=limit)

    def list_transactions_by_date_range(self, user_id: int, start: datetime, end: datetime) -> list[Transaction]:
        """List the user's transactions dated within [start, end]."""
        return self._transactions(user_id, Transaction.transaction_date >= start, Transaction.transaction_date <= end)

    def list_transactions_by_account(self, user_id: int, account_id: int) -> list[Transaction]:
        """List the user's transactions linked to an account."""
        return self._transactions(user_id, Transaction.account_id == account_id)

    def list_transactions_by_credit_card(self, user_id: int, card_id: int) -> list[Transaction]:
        """List the user's transactions linked to a credit card."""
        return self._transactions(user_id, Transaction.credit_card_id == card_id)

    def list_transactions_by_category(self, user_id: int, category_id: int) -> list[Transaction]:
        """List the user's transactions in a category."""
        return self._transactions(user_id, Transaction.category_id == category_id)

    def count_transactions_by_file_key(self, user_id: int, file_key: str) -> int:
        """Count the user's transactions that originate from an uploaded file."""
        stmt = select(func.count(Transaction.id)).where(
            Transaction.user_id == user_id, Transaction.file_key == file_key
        )
        return self.session.scalar(stmt) or 0

    def create_transaction(self, user_id: int, **values: Any) -> Transaction:
        """Create a transaction owned by the user."""
        return self._create(Transaction, user_id=user_id, **values)

    def update_transaction(self, transaction_id: int, user_id: int, values: dict[str, Any]) -> int:
        """Update one of the user's transactions; returns the matched row count."""
        return self._update(Transaction, transaction_id, user_id, values)

    def delete_transaction(self, transaction_id: int, user_id: int) -> int:
        """Delete one of the user's transactions; returns the matched row count."""
        return self._delete(Transaction, transaction_id, user_id)

    # --- loans ---

    def list_loans(self, user_id: int) -> list[Loan]:
        """List the user's loans, newest first."""
        return self._list(Loan, user_id, Loan.created_at.desc(), Loan.id.desc())

    def create_loan(self, user_id: int, **values: Any) -> Loan:
        """Create a loan owned by the user."""
        return self._create(Loan, user_id=user_id, **values)

    def delete_loan(self, loan_id: int, user_id: int) -> int:
        """Delete one of the user's loans; returns the matched row count."""
        return self._delete(Loan, loan_id, user_id)

    # --- uploaded files ---

    def create_uploaded_file(self, user_id: int, **values: Any) -> UploadedFile:
        """Create a file record in pending status."""
        values["processing_status"] = ProcessingStatus.PENDING.value
        return self._create(UploadedFile, user_id=user_id, **values)

    def list_uploaded_files(self, user_id: int) -> list[UploadedFile]:
        """List the user's uploaded files, newest first."""
        return self._list(UploadedFile, user_id, UploadedFile.created_at.desc(), UploadedFile.id.desc())

    def get_uploaded_file(self, file_id: int, user_id: int) -> UploadedFile | None:
        """Return one of the user's uploaded files."""
        return self._get(UploadedFile, file_id, user_id)

    def update_uploaded_file(self, file_id: int, user_id: int, **values: Any) -> int:
        """Update non-status fields of a file record."""
        if "processing_status" in values:
            msg = "Use transition_file_status to change processing_status"
            raise ValueError(msg)
        return self._update(UploadedFile, file_id, user_id, values)

    def transition_file_status(self, file_id: int, user_id: int, status: ProcessingStatus, **values: Any) -> bool:
        """Move a file record forward to ``status``; returns False when the transition is not allowed.

        The predecessor check is part of the UPDATE statement, so a status never regresses even under
        concurrent writers.
        """
        allowed = [s.value for s in FILE_STATUS_PREDECESSORS.get(status, set())]
        stmt = (
            update(UploadedFile)
            .where(
                UploadedFile.id == file_id,
                UploadedFile.user_id == user_id,
                UploadedFile.processing_status.in_(allowed),
            )
            .values(processing_status=status.value, **values)
        )
        result = self.session.execute(stmt)
        self.session.commit()
        return result.rowcount == 1

    # --- ingestion jobs ---

    def create_job(self, **values: Any) -> IngestionJob:
        """Enqueue an ingestion job."""
        values["status"] = JobState.QUEUED.value
        return self._create(IngestionJob, **values)

    def get_job(self, job_id: int) -> IngestionJob | None:
        """Return an ingestion job by id."""
        return self.session.get(IngestionJob, job_id)

    def claim_job(self, job_id: int) -> IngestionJob | None:
        """Atomically move a queued job to running; returns None if another worker got it first."""
        stmt = (
            update(IngestionJob)
            .where(IngestionJob.id == job_id, IngestionJob.status == JobState.QUEUED.value)
            .values(status=JobState.RUNNING.value, started_at=utcnow())
        )
        result = self.session.execute(stmt)
        self.session.commit()
        if result.rowcount != 1:
            return None
        job = self.get_job(job_id)
        self.session.refresh(job)
        return job

    def finish_job(self, job_id: int) -> None:
        """Mark an ingestion job as done."""
        stmt = (
            update(IngestionJob)
            .where(IngestionJob.id == job_id)
            .values(status=JobState.DONE.value, finished_at=utcnow())
        )
        self.session.execute(stmt)
        self.session.commit()

    def next_queued_job_id(self) -> int | None:
        """Return the oldest queued job id, if any."""
        stmt = (
            select(IngestionJob.id)
            .where(IngestionJob.status == JobState.QUEUED.value)
            .order_by(IngestionJob.created_at, IngestionJob.id)
            .limit(1)
        )
        return self.session.scalar(stmt)

    def list_stale_jobs(self, cutoff: datetime) -> list[IngestionJob]:
        """Jobs queued or started before ``cutoff`` that never finished."""
        stmt = select(IngestionJob).where(
            or_(
                (IngestionJob.status == JobState.QUEUED.value) & (IngestionJob.created_at < cutoff),
                (IngestionJob.status == JobState.RUNNING.value) & (IngestionJob.started_at < cutoff),
            )
        )
        return list(self.session.scalars(stmt))

    def list_queued_job_ids(self) -> list[int]:
        """Ids of every queued job, oldest first."""
        stmt = (
            select(IngestionJob.id)
            .where(IngestionJob.status == JobState.QUEUED.value)
            .order_by(IngestionJob.created_at, IngestionJob.id)
        )
        return list(self.session.scalars(stmt))

    def list_orphaned_files(self, cutoff: datetime) -> list[UploadedFile]:
        """Files still pending or processing since before ``cutoff`` with no queued or running job behind them."""
        open_job = exists().where(
            IngestionJob.file_id == UploadedFile.id,
            IngestionJob.status.in_([JobState.QUEUED.value, JobState.RUNNING.value]),
        )
        stmt = select(UploadedFile).where(
            UploadedFile.processing_status.in_([ProcessingStatus.PENDING.value, ProcessingStatus.PROCESSING.value]),
            UploadedFile.created_at < cutoff,
            ~open_job,
        )
        return list(self.session.scalars(stmt))

    def rollback(self) -> None:
        """Discard the session's pending state after a failed statement."""
        self.session.rollback()

    def close(self) -> None:
        """Close the SQLAlchemy session."""
        self.session.close()
