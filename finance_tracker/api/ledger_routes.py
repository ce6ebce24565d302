"""FastAPI endpoints for accounts, credit cards, categories, transactions and loans.

Handlers are thin: validated input goes straight to the owner-scoped DBHelper. Update and delete calls on rows that
belong to someone else match nothing and still answer ``{"success": true}``.
"""

import io
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from finance_tracker.api.dependencies import Capability, authorize
from finance_tracker.core.db import DBHelper, get_db
from finance_tracker.core.defaults import DEFAULT_CATEGORIES
from finance_tracker.core.models import (
    AccountCreate,
    AccountOut,
    AccountUpdate,
    CategoryCreate,
    CategoryOut,
    CreditCardCreate,
    CreditCardOut,
    CreditCardUpdate,
    LoanCreate,
    LoanOut,
    OperationResult,
    Polarity,
    TransactionCreate,
    TransactionOut,
    TransactionSummary,
    TransactionUpdate,
    UserOut,
)
from finance_tracker.core.utils import get_logger
from finance_tracker.services.reporting import build_summary, transactions_to_csv

router = APIRouter()
logger = get_logger("finance-tracker.api")

reader = authorize(Capability.READ)
writer = authorize(Capability.WRITE)
admin = authorize(Capability.ADMIN)


# --- Accounts ---


@router.get("/accounts", response_model=list[AccountOut], tags=["accounts"], summary="List bank accounts")
def list_accounts(user: UserOut = Depends(reader), db: DBHelper = Depends(get_db)) -> list[AccountOut]:
    """List the caller's bank accounts."""
    return [AccountOut.model_validate(a) for a in db.list_accounts(user.id)]


@router.post(
    "/accounts", status_code=201, response_model=AccountOut, tags=["accounts"], summary="Create a bank account"
)
def create_account(
    payload: AccountCreate, user: UserOut = Depends(writer), db: DBHelper = Depends(get_db)
) -> AccountOut:
    """Create a bank account."""
    values = payload.model_dump(exclude_none=True)
    return AccountOut.model_validate(db.create_account(user.id, **values))


@router.patch("/accounts/{account_id}", response_model=OperationResult, tags=["accounts"], summary="Update account")
def update_account(
    account_id: int, payload: AccountUpdate, user: UserOut = Depends(admin), db: DBHelper = Depends(get_db)
) -> OperationResult:
    """Update a bank account (admin only)."""
    db.update_account(account_id, user.id, payload.model_dump(exclude_none=True))
    return OperationResult()


@router.delete("/accounts/{account_id}", response_model=OperationResult, tags=["accounts"], summary="Delete account")
def delete_account(account_id: int, user: UserOut = Depends(admin), db: DBHelper = Depends(get_db)) -> OperationResult:
    """Delete a bank account (admin only). Its transactions are kept."""
    db.delete_account(account_id, user.id)
    return OperationResult()


# --- Credit cards ---


@router.get("/credit-cards", response_model=list[CreditCardOut], tags=["credit-cards"], summary="List credit cards")
def list_credit_cards(user: UserOut = Depends(reader), db: DBHelper = Depends(get_db)) -> list[CreditCardOut]:
    """List the caller's credit cards."""
    return [CreditCardOut.model_validate(c) for c in db.list_credit_cards(user.id)]


@router.post(
    "/credit-cards",
    status_code=201,
    response_model=CreditCardOut,
    tags=["credit-cards"],
    summary="Create a credit card",
)
def create_credit_card(
    payload: CreditCardCreate, user: UserOut = Depends(writer), db: DBHelper = Depends(get_db)
) -> CreditCardOut:
    """Create a credit card; available credit is the limit minus the current balance."""
    values = payload.model_dump(exclude_none=True)
    values["available_credit"] = payload.credit_limit - payload.current_balance
    return CreditCardOut.model_validate(db.create_credit_card(user.id, **values))


@router.patch(
    "/credit-cards/{card_id}", response_model=OperationResult, tags=["credit-cards"], summary="Update credit card"
)
def update_credit_card(
    card_id: int, payload: CreditCardUpdate, user: UserOut = Depends(writer), db: DBHelper = Depends(get_db)
) -> OperationResult:
    """Update a credit card, re-deriving available credit whenever the limit or the balance changes."""
    values = payload.model_dump(exclude_none=True)
    if "credit_limit" in values or "current_balance" in values:
        card = db.get_credit_card(card_id, user.id)
        if card is not None:
            limit = values.get("credit_limit", card.credit_limit)
            balance = values.get("current_balance", card.current_balance)
            values["available_credit"] = float(limit) - float(balance)
    db.update_credit_card(card_id, user.id, values)
    return OperationResult()


@router.delete(
    "/credit-cards/{card_id}", response_model=OperationResult, tags=["credit-cards"], summary="Delete credit card"
)
def delete_credit_card(
    card_id: int, user: UserOut = Depends(writer), db: DBHelper = Depends(get_db)
) -> OperationResult:
    """Delete a credit card."""
    db.delete_credit_card(card_id, user.id)
    return OperationResult()


# --- Categories ---


@router.get("/categories", response_model=list[CategoryOut], tags=["categories"], summary="List categories")
def list_categories(user: UserOut = Depends(reader), db: DBHelper = Depends(get_db)) -> list[CategoryOut]:
    """List the caller's categories plus the global defaults."""
    return [CategoryOut.model_validate(c) for c in db.list_categories_for_user(user.id)]


@router.post(
    "/categories", status_code=201, response_model=CategoryOut, tags=["categories"], summary="Create a category"
)
def create_category(
    payload: CategoryCreate, user: UserOut = Depends(writer), db: DBHelper = Depends(get_db)
) -> CategoryOut:
    """Create a category owned by the caller."""
    category = db.create_category(user_id=user.id, is_default=False, **payload.model_dump(exclude_none=True))
    return CategoryOut.model_validate(category)


@router.post(
    "/categories/defaults",
    response_model=OperationResult,
    tags=["categories"],
    summary="Create the global default categories",
)
def initialize_default_categories(
    user: UserOut = Depends(writer), db: DBHelper = Depends(get_db)
) -> OperationResult:
    """Create the global default categories unless they already exist."""
    if db.list_default_categories():
        return OperationResult(message="Default categories already exist")
    for data in DEFAULT_CATEGORIES:
        db.create_category(user_id=None, is_default=True, **data)
    logger.info(f"User {user.id} initialized {len(DEFAULT_CATEGORIES)} default categories")
    return OperationResult(message="Default categories initialized successfully")


@router.delete(
    "/categories/{category_id}", response_model=OperationResult, tags=["categories"], summary="Delete a category"
)
def delete_category(
    category_id: int, user: UserOut = Depends(writer), db: DBHelper = Depends(get_db)
) -> OperationResult:
    """Delete one of the caller's own categories; global defaults are never deleted."""
    db.delete_category(category_id, user.id)
    return OperationResult()


# --- Transactions ---


@router.get("/transactions", response_model=list[TransactionOut], tags=["transactions"], summary="List transactions")
def list_transactions(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    account_id: int | None = None,
    credit_card_id: int | None = None,
    category_id: int | None = None,
    type: Polarity | None = None,  # noqa: A002
    user: UserOut = Depends(reader),
    db: DBHelper = Depends(get_db),
) -> list[TransactionOut]:
    """List transactions, narrowed by the first matching filter.

    Filters apply in order of precedence: date range (both bounds required), account, credit card, category.
    The ``type`` filter is applied on top of whichever list was selected.
    """
    if start_date and end_date:
        rows = db.list_transactions_by_date_range(user.id, start_date, end_date)
    elif account_id:
        rows = db.list_transactions_by_account(user.id, account_id)
    elif credit_card_id:
        rows = db.list_transactions_by_credit_card(user.id, credit_card_id)
    elif category_id:
        rows = db.list_transactions_by_category(user.id, category_id)
    else:
        rows = db.list_transactions(user.id)
    if type is not None:
        rows = [tx for tx in rows if tx.type == type]
    return [TransactionOut.model_validate(tx) for tx in rows]


@router.get(
    "/transactions/recent", response_model=list[TransactionOut], tags=["transactions"], summary="Recent transactions"
)
def recent_transactions(
    limit: int = Query(default=10, ge=1, le=500),
    user: UserOut = Depends(reader),
    db: DBHelper = Depends(get_db),
) -> list[TransactionOut]:
    """Return the caller's most recent transactions."""
    return [TransactionOut.model_validate(tx) for tx in db.list_transactions(user.id, limit=limit)]


@router.get(
    "/transactions/summary",
    response_model=TransactionSummary,
    tags=["transactions"],
    summary="Dashboard summary",
)
def transactions_summary(user: UserOut = Depends(reader), db: DBHelper = Depends(get_db)) -> TransactionSummary:
    """Current-month totals, expenses per category and six months of income/expense history."""
    return build_summary(db.list_transactions(user.id), db.list_categories_for_user(user.id))


@router.get("/transactions/export", tags=["transactions"], summary="Download transactions as CSV")
def export_transactions(user: UserOut = Depends(reader), db: DBHelper = Depends(get_db)) -> StreamingResponse:
    """Download every transaction of the caller as a CSV file."""
    data = transactions_to_csv(db.list_transactions(user.id), db.list_categories_for_user(user.id))
    return StreamingResponse(
        io.BytesIO(data.encode("utf-8")),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=transactions_{user.id}.csv"},
    )


@router.post(
    "/transactions",
    status_code=201,
    response_model=TransactionOut,
    tags=["transactions"],
    summary="Create a transaction",
)
def create_transaction(
    payload: TransactionCreate, user: UserOut = Depends(writer), db: DBHelper = Depends(get_db)
) -> TransactionOut:
    """Manually enter a transaction."""
    values = payload.model_dump()
    values["type"] = payload.type.value
    return TransactionOut.model_validate(db.create_transaction(user.id, **values))


@router.patch(
    "/transactions/{transaction_id}",
    response_model=OperationResult,
    tags=["transactions"],
    summary="Update a transaction",
)
def update_transaction(
    transaction_id: int,
    payload: TransactionUpdate,
    user: UserOut = Depends(writer),
    db: DBHelper = Depends(get_db),
) -> OperationResult:
    """Update a transaction."""
    db.update_transaction(transaction_id, user.id, payload.model_dump(exclude_none=True))
    return OperationResult()


@router.delete(
    "/transactions/{transaction_id}",
    response_model=OperationResult,
    tags=["transactions"],
    summary="Delete a transaction",
)
def delete_transaction(
    transaction_id: int, user: UserOut = Depends(writer), db: DBHelper = Depends(get_db)
) -> OperationResult:
    """Delete a transaction."""
    db.delete_transaction(transaction_id, user.id)
    return OperationResult()


# --- Loans ---


@router.get("/loans", response_model=list[LoanOut], tags=["loans"], summary="List loans")
def list_loans(user: UserOut = Depends(reader), db: DBHelper = Depends(get_db)) -> list[LoanOut]:
    """List the caller's loans."""
    return [LoanOut.model_validate(loan) for loan in db.list_loans(user.id)]


@router.post("/loans", status_code=201, response_model=LoanOut, tags=["loans"], summary="Register a loan")
def create_loan(payload: LoanCreate, user: UserOut = Depends(writer), db: DBHelper = Depends(get_db)) -> LoanOut:
    """Register a bank loan."""
    return LoanOut.model_validate(db.create_loan(user.id, **payload.model_dump(exclude_none=True)))


@router.delete("/loans/{loan_id}", response_model=OperationResult, tags=["loans"], summary="Delete a loan")
def delete_loan(loan_id: int, user: UserOut = Depends(writer), db: DBHelper = Depends(get_db)) -> OperationResult:
    """Delete a loan."""
    db.delete_loan(loan_id, user.id)
    return OperationResult()
