"""Pydantic models for the Finance Tracker.

This module defines the enumerations shared by the database layer and the API, the request models validated at the
HTTP boundary, the explicit response models returned for every entity, and the transient models produced by the
statement ingestion pipeline (ParsedTransaction, Categorization).
"""

import base64
import binascii
import datetime as dt
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Role(StrEnum):
    """Role of a signed-in user."""

    USER = "user"
    ADMIN = "admin"
    VIEWER = "viewer"


class Polarity(StrEnum):
    """Income/expense classification of a monetary amount."""

    INCOME = "income"
    EXPENSE = "expense"


class FileKind(StrEnum):
    """Declared media kind of an uploaded statement."""

    DOCUMENT = "document"
    IMAGE = "image"


class AccountClass(StrEnum):
    """Sign convention hint for statement parsing."""

    ASSET = "asset"
    CREDIT = "credit"


class ProcessingStatus(StrEnum):
    """Lifecycle of an uploaded statement: pending -> processing -> completed | failed."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class JobState(StrEnum):
    """Lifecycle of an ingestion queue entry."""

    QUEUED = "queued"
    RUNNING = "running"
    DONE = "done"


class AccountType(StrEnum):
    """Kind of bank account."""

    CHECKING = "checking"
    SAVINGS = "savings"
    INVESTMENT = "investment"


class LoanType(StrEnum):
    """Kind of bank loan."""

    PERSONAL = "personal"
    MORTGAGE = "mortgage"
    AUTO = "auto"
    STUDENT = "student"
    OTHER = "other"


class Theme(StrEnum):
    """UI theme preference."""

    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class ORMModel(BaseModel):
    """Base for response models built from SQLAlchemy rows."""

    model_config = ConfigDict(from_attributes=True)


# --- Pipeline models ---


class ParsedTransaction(BaseModel):
    """One transaction segmented out of a statement transcript by the LLM."""

    date: dt.date
    description: str
    amount: float
    type: Polarity

    @field_validator("amount")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        return abs(value)


class Categorization(BaseModel):
    """Polarity and category assigned to a single transaction."""

    type: Polarity
    category_id: int | None = None
    category_name: str


# --- Users and preferences ---


class UserOut(ORMModel):
    """Identity of the caller."""

    id: int
    name: str | None = None
    email: str | None = None
    role: Role


class PreferencesOut(ORMModel):
    """Per-user UI preferences."""

    theme: Theme = Theme.SYSTEM
    currency: str = "USD"
    language: str = "es"


class PreferencesUpdate(BaseModel):
    """Partial update of the caller's preferences."""

    theme: Theme | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    language: str | None = Field(default=None, max_length=5)


# --- Accounts ---


class AccountCreate(BaseModel):
    """Input for creating a bank account."""

    name: str
    bank_name: str
    account_number: str | None = None
    account_type: AccountType = AccountType.CHECKING
    balance: float
    currency: str = "USD"
    color: str | None = None


class AccountUpdate(BaseModel):
    """Partial update of a bank account."""

    name: str | None = None
    bank_name: str | None = None
    account_number: str | None = None
    account_type: AccountType | None = None
    balance: float | None = None
    currency: str | None = None
    color: str | None = None
    is_active: bool | None = None


class AccountOut(ORMModel):
    """A bank account."""

    id: int
    name: str
    bank_name: str
    account_number: str | None = None
    account_type: AccountType
    balance: float
    currency: str
    color: str | None = None
    is_active: bool
    created_at: dt.datetime
    updated_at: dt.datetime


# --- Credit cards ---


class CreditCardCreate(BaseModel):
    """Input for creating a credit card."""

    name: str
    bank_name: str
    last_four_digits: str | None = Field(default=None, max_length=4)
    credit_limit: float
    current_balance: float
    closing_day: int | None = Field(default=None, ge=1, le=31)
    payment_due_day: int | None = Field(default=None, ge=1, le=31)
    currency: str = "USD"
    color: str | None = None


class CreditCardUpdate(BaseModel):
    """Partial update of a credit card."""

    name: str | None = None
    bank_name: str | None = None
    last_four_digits: str | None = Field(default=None, max_length=4)
    credit_limit: float | None = None
    current_balance: float | None = None
    closing_day: int | None = Field(default=None, ge=1, le=31)
    payment_due_day: int | None = Field(default=None, ge=1, le=31)
    currency: str | None = None
    color: str | None = None
    is_active: bool | None = None


class CreditCardOut(ORMModel):
    """A credit card."""

    id: int
    name: str
    bank_name: str
    last_four_digits: str | None = None
    credit_limit: float
    current_balance: float
    available_credit: float
    closing_day: int | None = None
    payment_due_day: int | None = None
    currency: str
    color: str | None = None
    is_active: bool
    created_at: dt.datetime
    updated_at: dt.datetime


# --- Categories ---


class CategoryCreate(BaseModel):
    """Input for creating a user category."""

    name: str = Field(min_length=1)
    type: Polarity
    color: str | None = None
    icon: str | None = None


class CategoryOut(ORMModel):
    """A category, owned by a user or global (user_id is None)."""

    id: int
    user_id: int | None = None
    name: str
    type: Polarity
    color: str | None = None
    icon: str | None = None
    is_default: bool = False


# --- Transactions ---


class TransactionCreate(BaseModel):
    """Input for manually entering a transaction."""

    account_id: int | None = None
    credit_card_id: int | None = None
    category_id: int | None = None
    type: Polarity
    amount: float = Field(ge=0)
    description: str
    transaction_date: dt.datetime
    notes: str | None = None
    is_recurring: bool = False


class TransactionUpdate(BaseModel):
    """Partial update of a transaction."""

    account_id: int | None = None
    credit_card_id: int | None = None
    category_id: int | None = None
    type: Polarity | None = None
    amount: float | None = Field(default=None, ge=0)
    description: str | None = None
    transaction_date: dt.datetime | None = None
    notes: str | None = None
    is_recurring: bool | None = None


class TransactionOut(ORMModel):
    """A persisted transaction."""

    id: int
    account_id: int | None = None
    credit_card_id: int | None = None
    category_id: int | None = None
    type: Polarity
    amount: float
    description: str
    transaction_date: dt.datetime
    notes: str | None = None
    is_recurring: bool
    file_url: str | None = None
    file_key: str | None = None
    created_at: dt.datetime
    updated_at: dt.datetime


class CategoryTotal(BaseModel):
    """Expense total of one category in the current month."""

    category_id: int
    category_name: str
    category_color: str | None = None
    total: float


class MonthTotals(BaseModel):
    """Income and expense totals of one calendar month."""

    month: str
    income: float
    expenses: float


class TransactionSummary(BaseModel):
    """Dashboard summary of the caller's transactions."""

    total_income: float
    total_expenses: float
    by_category: list[CategoryTotal]
    by_month: list[MonthTotals]


# --- Loans ---


class LoanCreate(BaseModel):
    """Input for registering a bank loan."""

    bank_name: str
    loan_name: str
    loan_type: LoanType
    original_amount: float = Field(ge=0)
    current_balance: float = Field(ge=0)
    interest_rate: float = Field(ge=0)
    monthly_payment: float = Field(ge=0)
    start_date: dt.datetime
    end_date: dt.datetime
    currency: str = "USD"
    color: str | None = None

    @model_validator(mode="after")
    def _check_dates(self) -> "LoanCreate":
        if self.end_date < self.start_date:
            msg = "end_date must not be before start_date"
            raise ValueError(msg)
        return self


class LoanOut(ORMModel):
    """A bank loan."""

    id: int
    bank_name: str
    loan_name: str
    loan_type: LoanType
    original_amount: float
    current_balance: float
    interest_rate: float
    monthly_payment: float
    start_date: dt.datetime
    end_date: dt.datetime
    currency: str
    color: str | None = None
    is_active: bool
    created_at: dt.datetime


# --- Uploaded statements ---


class FileUpload(BaseModel):
    """Statement upload request: base64 payload plus the account it belongs to."""

    file_name: str = Field(min_length=1, max_length=255)
    file_type: FileKind
    file_data: str
    account_id: int | None = None
    credit_card_id: int | None = None
    account_class: AccountClass = AccountClass.ASSET

    @field_validator("file_data")
    @classmethod
    def _valid_base64(cls, value: str) -> str:
        # MIME-style payloads wrap lines
        value = "".join(value.split())
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            msg = "file_data must be base64 encoded"
            raise ValueError(msg) from exc
        return value

    def content(self) -> bytes:
        """Return the decoded file bytes."""
        return base64.b64decode(self.file_data)


class UploadedFileOut(ORMModel):
    """An ingestion job as seen by the client."""

    id: int
    file_name: str
    file_type: FileKind
    file_url: str
    file_key: str
    file_size: int | None = None
    processing_status: ProcessingStatus
    transactions_count: int = 0
    error_message: str | None = None
    created_at: dt.datetime
    processed_at: dt.datetime | None = None


class OperationResult(BaseModel):
    """Acknowledgement of a mutation."""

    success: bool = True
    message: str | None = None
    deleted: int | None = None
