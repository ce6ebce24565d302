"""API tests for the ledger: accounts, cards, categories, transactions, loans and the admin bulk clear."""

import csv
import datetime as dt
import io

from fastapi.testclient import TestClient

from finance_tracker.core.db import DBHelper
from finance_tracker.core.defaults import DEFAULT_CATEGORIES
from tests.support import ADMIN_ID, OTHER_ADMIN_ID, USER_ID, VIEWER_ID, auth

ACCOUNT = {"name": "Nómina", "bank_name": "BBVA", "balance": 2500.0}
CARD = {"name": "Oro", "bank_name": "Banamex", "credit_limit": 5000.0, "current_balance": 1000.0}
LOAN = {
    "bank_name": "Santander",
    "loan_name": "Auto",
    "loan_type": "auto",
    "original_amount": 200000,
    "current_balance": 150000,
    "interest_rate": 12.5,
    "monthly_payment": 5000,
    "start_date": "2023-01-01T00:00:00",
    "end_date": "2027-01-01T00:00:00",
}


def _transaction(**overrides: object) -> dict:
    data = {
        "type": "expense",
        "amount": 120.0,
        "description": "UBER TRIP",
        "transaction_date": "2024-02-10T00:00:00",
    }
    data.update(overrides)
    return data


def _post(client: TestClient, path: str, payload: dict, user_id: int = ADMIN_ID) -> dict:
    response = client.post(path, json=payload, headers=auth(user_id))
    if response.status_code != 201:  # noqa: PLR2004
        msg = f"POST {path} failed: {response.status_code} {response.text}"
        raise AssertionError(msg)
    return response.json()


# --- accounts ---


def test_account_lifecycle(client: TestClient) -> None:
    """Create, list, update and delete an account as an admin."""
    account = _post(client, "/accounts", ACCOUNT)
    if (account["account_type"], account["currency"], account["is_active"]) != ("checking", "USD", True):
        msg = f"Unexpected defaults: {account}"
        raise AssertionError(msg)

    response = client.patch(f"/accounts/{account['id']}", json={"balance": 3000.0}, headers=auth(ADMIN_ID))
    if response.json() != {"success": True, "message": None, "deleted": None}:
        msg = f"Unexpected update result: {response.json()}"
        raise AssertionError(msg)
    listed = client.get("/accounts", headers=auth(ADMIN_ID)).json()
    if [a["balance"] for a in listed] != [3000.0]:
        msg = f"Update not applied: {listed}"
        raise AssertionError(msg)

    client.delete(f"/accounts/{account['id']}", headers=auth(ADMIN_ID))
    if client.get("/accounts", headers=auth(ADMIN_ID)).json() != []:
        msg = "Account was not deleted"
        raise AssertionError(msg)


def test_account_update_and_delete_are_admin_only(client: TestClient) -> None:
    """Regular users may create accounts but not change or remove them."""
    account = _post(client, "/accounts", ACCOUNT, user_id=USER_ID)
    for response in (
        client.patch(f"/accounts/{account['id']}", json={"balance": 1.0}, headers=auth(USER_ID)),
        client.delete(f"/accounts/{account['id']}", headers=auth(USER_ID)),
    ):
        if response.status_code != 403:  # noqa: PLR2004
            msg = f"Expected 403, got {response.status_code}"
            raise AssertionError(msg)
    if client.post("/accounts", json=ACCOUNT, headers=auth(VIEWER_ID)).status_code != 403:  # noqa: PLR2004
        msg = "Viewer should not create accounts"
        raise AssertionError(msg)


def test_cross_owner_update_is_a_silent_no_op(client: TestClient) -> None:
    """Another user's row is never touched, yet the call reports success."""
    account = _post(client, "/accounts", ACCOUNT, user_id=ADMIN_ID)
    response = client.patch(f"/accounts/{account['id']}", json={"name": "Hijacked"}, headers=auth(OTHER_ADMIN_ID))
    if response.status_code != 200 or not response.json()["success"]:  # noqa: PLR2004
        msg = f"Expected a successful no-op, got {response.status_code} {response.text}"
        raise AssertionError(msg)
    client.delete(f"/accounts/{account['id']}", headers=auth(OTHER_ADMIN_ID))
    names = [a["name"] for a in client.get("/accounts", headers=auth(ADMIN_ID)).json()]
    if names != ["Nómina"]:
        msg = f"Foreign update leaked through: {names}"
        raise AssertionError(msg)
    if client.get("/accounts", headers=auth(OTHER_ADMIN_ID)).json() != []:
        msg = "Accounts leaked across owners"
        raise AssertionError(msg)


# --- credit cards ---


def test_credit_card_available_credit(client: TestClient) -> None:
    """Available credit is derived on create and re-derived on partial updates."""
    card = _post(client, "/credit-cards", CARD, user_id=USER_ID)
    if card["available_credit"] != 4000.0:  # noqa: PLR2004
        msg = f"Expected 4000 available, got {card['available_credit']}"
        raise AssertionError(msg)

    client.patch(f"/credit-cards/{card['id']}", json={"current_balance": 1500.0}, headers=auth(USER_ID))
    card = client.get("/credit-cards", headers=auth(USER_ID)).json()[0]
    if (card["current_balance"], card["available_credit"]) != (1500.0, 3500.0):
        msg = f"Expected balance 1500 and 3500 available, got {card}"
        raise AssertionError(msg)

    client.patch(f"/credit-cards/{card['id']}", json={"credit_limit": 8000.0}, headers=auth(USER_ID))
    card = client.get("/credit-cards", headers=auth(USER_ID)).json()[0]
    if card["available_credit"] != 6500.0:  # noqa: PLR2004
        msg = f"Expected 6500 available, got {card['available_credit']}"
        raise AssertionError(msg)

    client.patch(f"/credit-cards/{card['id']}", json={"name": "Platino"}, headers=auth(USER_ID))
    card = client.get("/credit-cards", headers=auth(USER_ID)).json()[0]
    if (card["name"], card["available_credit"]) != ("Platino", 6500.0):
        msg = f"Rename changed available credit: {card}"
        raise AssertionError(msg)


def test_credit_card_rejects_invalid_days(client: TestClient) -> None:
    response = client.post("/credit-cards", json={**CARD, "closing_day": 32}, headers=auth(USER_ID))
    if response.status_code != 422:  # noqa: PLR2004
        msg = f"Expected 422, got {response.status_code}"
        raise AssertionError(msg)


# --- categories ---


def test_default_categories_are_idempotent(client: TestClient) -> None:
    """Initializing the defaults twice creates them once."""
    first = client.post("/categories/defaults", headers=auth(USER_ID)).json()
    second = client.post("/categories/defaults", headers=auth(USER_ID)).json()
    if first["message"] != "Default categories initialized successfully":
        msg = f"Unexpected first result: {first}"
        raise AssertionError(msg)
    if second["message"] != "Default categories already exist":
        msg = f"Unexpected second result: {second}"
        raise AssertionError(msg)
    for user_id in (USER_ID, VIEWER_ID):
        listed = client.get("/categories", headers=auth(user_id)).json()
        if len(listed) != len(DEFAULT_CATEGORIES) or not all(c["is_default"] for c in listed):
            msg = f"Defaults should be visible to user {user_id}: {listed}"
            raise AssertionError(msg)


def test_custom_categories_are_private_and_defaults_undeletable(client: TestClient) -> None:
    client.post("/categories/defaults", headers=auth(ADMIN_ID))
    custom = _post(client, "/categories", {"name": "Mascotas", "type": "expense"}, user_id=USER_ID)
    if custom["user_id"] != USER_ID or custom["is_default"]:
        msg = f"Unexpected custom category: {custom}"
        raise AssertionError(msg)
    if "Mascotas" in [c["name"] for c in client.get("/categories", headers=auth(ADMIN_ID)).json()]:
        msg = "Custom category visible to another user"
        raise AssertionError(msg)

    default_id = next(c["id"] for c in client.get("/categories", headers=auth(USER_ID)).json() if c["is_default"])
    client.delete(f"/categories/{default_id}", headers=auth(USER_ID))
    client.delete(f"/categories/{custom['id']}", headers=auth(USER_ID))
    ids = [c["id"] for c in client.get("/categories", headers=auth(USER_ID)).json()]
    if default_id not in ids or custom["id"] in ids:
        msg = f"Expected the default kept and the custom category removed, got {ids}"
        raise AssertionError(msg)


# --- transactions ---


def test_transaction_crud(client: TestClient) -> None:
    tx = _post(client, "/transactions", _transaction(notes="viaje"), user_id=USER_ID)
    if (tx["type"], tx["amount"], tx["is_recurring"], tx["file_key"]) != ("expense", 120.0, False, None):
        msg = f"Unexpected transaction: {tx}"
        raise AssertionError(msg)

    client.patch(f"/transactions/{tx['id']}", json={"amount": 99.5, "notes": None}, headers=auth(USER_ID))
    updated = client.get("/transactions", headers=auth(USER_ID)).json()[0]
    if (updated["amount"], updated["notes"]) != (99.5, "viaje"):
        msg = f"Expected amount updated and notes kept, got {updated}"
        raise AssertionError(msg)

    client.delete(f"/transactions/{tx['id']}", headers=auth(USER_ID))
    if client.get("/transactions", headers=auth(USER_ID)).json() != []:
        msg = "Transaction was not deleted"
        raise AssertionError(msg)


def test_transaction_amount_must_not_be_negative(client: TestClient) -> None:
    for response in (
        client.post("/transactions", json=_transaction(amount=-5), headers=auth(USER_ID)),
        client.patch("/transactions/1", json={"amount": -5}, headers=auth(USER_ID)),
    ):
        if response.status_code != 422:  # noqa: PLR2004
            msg = f"Expected 422, got {response.status_code}"
            raise AssertionError(msg)


def test_transaction_filters(client: TestClient) -> None:
    """Date range wins over account, which wins over card and category; type narrows any of them."""
    account = _post(client, "/accounts", ACCOUNT, user_id=USER_ID)
    card = _post(client, "/credit-cards", CARD, user_id=USER_ID)
    jan = _post(
        client,
        "/transactions",
        _transaction(account_id=account["id"], category_id=7, transaction_date="2024-01-05T00:00:00"),
        user_id=USER_ID,
    )
    feb = _post(
        client,
        "/transactions",
        _transaction(
            type="income", amount=900, account_id=account["id"], transaction_date="2024-02-05T00:00:00"
        ),
        user_id=USER_ID,
    )
    mar = _post(
        client,
        "/transactions",
        _transaction(credit_card_id=card["id"], category_id=7, transaction_date="2024-03-05T00:00:00"),
        user_id=USER_ID,
    )

    def ids(**params: object) -> list[int]:
        return [t["id"] for t in client.get("/transactions", params=params, headers=auth(USER_ID)).json()]

    cases = [
        ({}, [mar["id"], feb["id"], jan["id"]]),
        ({"start_date": "2024-01-01T00:00:00", "end_date": "2024-02-28T00:00:00"}, [feb["id"], jan["id"]]),
        (
            {"start_date": "2024-03-01T00:00:00", "end_date": "2024-03-31T00:00:00", "account_id": account["id"]},
            [mar["id"]],
        ),
        ({"start_date": "2024-03-01T00:00:00", "account_id": account["id"]}, [feb["id"], jan["id"]]),
        ({"account_id": account["id"], "credit_card_id": card["id"]}, [feb["id"], jan["id"]]),
        ({"credit_card_id": card["id"]}, [mar["id"]]),
        ({"category_id": 7}, [mar["id"], jan["id"]]),
        ({"account_id": account["id"], "type": "income"}, [feb["id"]]),
        ({"type": "expense"}, [mar["id"], jan["id"]]),
    ]
    for params, expected in cases:
        actual = ids(**params)
        if actual != expected:
            msg = f"Filter {params}: expected {expected}, got {actual}"
            raise AssertionError(msg)


def test_recent_transactions_limit(client: TestClient) -> None:
    for day in range(1, 6):
        _post(client, "/transactions", _transaction(transaction_date=f"2024-04-0{day}T00:00:00"), user_id=USER_ID)
    recent = client.get("/transactions/recent", params={"limit": 2}, headers=auth(USER_ID)).json()
    if [t["transaction_date"][:10] for t in recent] != ["2024-04-05", "2024-04-04"]:
        msg = f"Unexpected recent transactions: {recent}"
        raise AssertionError(msg)
    response = client.get("/transactions/recent", params={"limit": 0}, headers=auth(USER_ID))
    if response.status_code != 422:  # noqa: PLR2004
        msg = "limit=0 should be rejected"
        raise AssertionError(msg)


def test_transactions_summary_shape(client: TestClient) -> None:
    """The summary covers the current month and a six-month history ending with it."""
    client.post("/categories/defaults", headers=auth(USER_ID))
    food = next(c for c in client.get("/categories", headers=auth(USER_ID)).json() if c["name"] == "Alimentación")
    today = dt.datetime.now().replace(hour=12, minute=0, second=0, microsecond=0).isoformat()
    _post(client, "/transactions", _transaction(amount=80, category_id=food["id"], transaction_date=today), USER_ID)
    _post(client, "/transactions", _transaction(type="income", amount=1000, transaction_date=today), USER_ID)

    summary = client.get("/transactions/summary", headers=auth(USER_ID)).json()
    if (summary["total_income"], summary["total_expenses"]) != (1000.0, 80.0):
        msg = f"Unexpected totals: {summary}"
        raise AssertionError(msg)
    if [(c["category_name"], c["total"]) for c in summary["by_category"]] != [("Alimentación", 80.0)]:
        msg = f"Unexpected per-category totals: {summary['by_category']}"
        raise AssertionError(msg)
    if len(summary["by_month"]) != 6 or summary["by_month"][-1]["income"] != 1000.0:  # noqa: PLR2004
        msg = f"Unexpected monthly history: {summary['by_month']}"
        raise AssertionError(msg)


def test_transactions_export_csv(client: TestClient) -> None:
    category = _post(client, "/categories", {"name": "Mascotas", "type": "expense"}, user_id=USER_ID)
    _post(client, "/transactions", _transaction(description="PETCO", category_id=category["id"]), USER_ID)
    response = client.get("/transactions/export", headers=auth(USER_ID))
    if response.status_code != 200 or not response.headers["content-type"].startswith("text/csv"):  # noqa: PLR2004
        msg = f"Unexpected export response: {response.status_code} {response.headers}"
        raise AssertionError(msg)
    rows = list(csv.DictReader(io.StringIO(response.text)))
    if [(r["description"], r["category"], r["type"]) for r in rows] != [("PETCO", "Mascotas", "expense")]:
        msg = f"Unexpected CSV rows: {rows}"
        raise AssertionError(msg)


# --- admin bulk clear ---


def test_clear_transactions_requires_admin(client: TestClient, db: DBHelper) -> None:
    _post(client, "/transactions", _transaction(), user_id=USER_ID)
    response = client.post("/admin/clear-transactions", headers=auth(USER_ID))
    if response.status_code != 403 or len(db.list_transactions(USER_ID)) != 1:  # noqa: PLR2004
        msg = f"Expected 403 with the row kept, got {response.status_code}"
        raise AssertionError(msg)


def test_clear_transactions_only_touches_the_callers_rows(client: TestClient, db: DBHelper) -> None:
    _post(client, "/accounts", ACCOUNT, user_id=ADMIN_ID)
    _post(client, "/credit-cards", CARD, user_id=ADMIN_ID)
    for _ in range(3):
        _post(client, "/transactions", _transaction(), user_id=ADMIN_ID)
    _post(client, "/transactions", _transaction(), user_id=OTHER_ADMIN_ID)

    result = client.post("/admin/clear-transactions", headers=auth(ADMIN_ID)).json()
    if (result["success"], result["deleted"]) != (True, 3):
        msg = f"Unexpected clear result: {result}"
        raise AssertionError(msg)
    counts = (
        len(db.list_transactions(ADMIN_ID)),
        len(db.list_transactions(OTHER_ADMIN_ID)),
        len(db.list_accounts(ADMIN_ID)),
        len(db.list_credit_cards(ADMIN_ID)),
    )
    if counts != (0, 1, 1, 1):
        msg = f"Expected (0, 1, 1, 1) rows after clearing, got {counts}"
        raise AssertionError(msg)


# --- loans ---


def test_loan_lifecycle(client: TestClient) -> None:
    loan = _post(client, "/loans", LOAN, user_id=USER_ID)
    if (loan["loan_type"], loan["interest_rate"], loan["is_active"]) != ("auto", 12.5, True):
        msg = f"Unexpected loan: {loan}"
        raise AssertionError(msg)
    if client.get("/loans", headers=auth(ADMIN_ID)).json() != []:
        msg = "Loans leaked across owners"
        raise AssertionError(msg)
    client.delete(f"/loans/{loan['id']}", headers=auth(USER_ID))
    if client.get("/loans", headers=auth(USER_ID)).json() != []:
        msg = "Loan was not deleted"
        raise AssertionError(msg)


def test_loan_end_date_must_follow_start(client: TestClient) -> None:
    payload = {**LOAN, "end_date": "2022-01-01T00:00:00"}
    if client.post("/loans", json=payload, headers=auth(USER_ID)).status_code != 422:  # noqa: PLR2004
        msg = "Loan ending before it starts should be rejected"
        raise AssertionError(msg)
