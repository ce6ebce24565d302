"""Dashboard aggregates and CSV export of transactions, built on pandas."""

from collections.abc import Sequence
from datetime import date

import pandas as pd

from finance_tracker.core.db import Category, Transaction
from finance_tracker.core.models import CategoryTotal, MonthTotals, Polarity, TransactionOut, TransactionSummary

MONTHS_IN_SUMMARY = 6
# es-MX short month names, as the dashboard labels them
MONTH_LABELS = ("ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sept", "oct", "nov", "dic")
EXPORT_COLUMNS = [
    "id",
    "transaction_date",
    "type",
    "amount",
    "description",
    "category",
    "account_id",
    "credit_card_id",
    "notes",
    "is_recurring",
    "file_key",
]


def _frame(transactions: Sequence[Transaction]) -> pd.DataFrame:
    frame = pd.DataFrame(
        [
            {
                "date": tx.transaction_date,
                "type": str(tx.type),
                "amount": float(tx.amount),
                "category_id": tx.category_id,
            }
            for tx in transactions
        ],
        columns=["date", "type", "amount", "category_id"],
    )
    frame["date"] = pd.to_datetime(frame["date"], utc=True).dt.tz_localize(None)
    frame["period"] = frame["date"].dt.to_period("M")
    return frame


def month_label(period: pd.Period) -> str:
    """Label a month the way the dashboard shows it, e.g. ``ene 2024``."""
    return f"{MONTH_LABELS[period.month - 1]} {period.year}"


def _total(frame: pd.DataFrame, polarity: Polarity) -> float:
    return float(frame.loc[frame["type"] == polarity.value, "amount"].sum())


def build_summary(
    transactions: Sequence[Transaction], categories: Sequence[Category], today: date | None = None
) -> TransactionSummary:
    """Current-month totals, current-month expenses per category and the last six months of income/expenses."""
    today = today or date.today()
    current = pd.Period(year=today.year, month=today.month, freq="M")
    frame = _frame(transactions)
    this_month = frame[frame["period"] == current]

    expenses = this_month[this_month["type"] == Polarity.EXPENSE.value]
    per_category = {int(k): float(v) for k, v in expenses.groupby("category_id")["amount"].sum().items()}
    by_category = [
        CategoryTotal(
            category_id=cat.id,
            category_name=cat.name,
            category_color=cat.color,
            total=per_category[cat.id],
        )
        for cat in categories
        if per_category.get(cat.id, 0) > 0
    ]

    by_month = []
    for offset in range(MONTHS_IN_SUMMARY - 1, -1, -1):
        period = current - offset
        rows = frame[frame["period"] == period]
        by_month.append(
            MonthTotals(
                month=month_label(period),
                income=_total(rows, Polarity.INCOME),
                expenses=_total(rows, Polarity.EXPENSE),
            )
        )

    return TransactionSummary(
        total_income=_total(this_month, Polarity.INCOME),
        total_expenses=_total(this_month, Polarity.EXPENSE),
        by_category=by_category,
        by_month=by_month,
    )


def transactions_to_csv(transactions: Sequence[Transaction], categories: Sequence[Category]) -> str:
    """Render transactions as CSV with the category resolved to its name."""
    names = {cat.id: cat.name for cat in categories}
    rows = []
    for tx in transactions:
        record = TransactionOut.model_validate(tx).model_dump(mode="json")
        record["category"] = names.get(tx.category_id, "")
        rows.append(record)
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS).to_csv(index=False)
