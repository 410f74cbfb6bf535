"""API integration tests for transaction routes, AI entry, summary and export."""

import csv
import io

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import text

from conftest import FakeLLMClient, register

HTTP_200_OK = 200
HTTP_201_CREATED = 201
HTTP_400_BAD_REQUEST = 400
HTTP_404_NOT_FOUND = 404
HTTP_422_UNPROCESSABLE = 422
HTTP_500_INTERNAL_ERROR = 500
HTTP_502_BAD_GATEWAY = 502
HTTP_503_UNAVAILABLE = 503


def _create(client: TestClient, headers: dict, **fields: object) -> dict:
    body = {"type": "expense", "amount": 100, "category": "Groceries"} | fields
    response = client.post("/api/transactions", json=body, headers=headers)
    if response.status_code != HTTP_201_CREATED:
        msg = f"Expected status {HTTP_201_CREATED}, got {response.status_code}: {response.text}"
        raise AssertionError(msg)
    return response.json()["transaction"]


def test_create_then_list_round_trip(client: TestClient, auth_headers: dict) -> None:
    """A created transaction comes back unchanged through the same filters."""
    created = _create(client, auth_headers, amount="250.5", category="Dining", date="2024-03-01", note="momo")
    response = client.get(
        "/api/transactions",
        params={"type": "expense", "category": "din", "startDate": "2024-03-01", "endDate": "2024-03-01"},
        headers=auth_headers,
    )
    if response.status_code != HTTP_200_OK:
        msg = f"Expected status {HTTP_200_OK}, got {response.status_code}"
        raise AssertionError(msg)
    transactions = response.json()["transactions"]
    if len(transactions) != 1 or transactions[0]["_id"] != created["_id"]:
        msg = f"Expected exactly the created transaction, got {transactions}"
        raise AssertionError(msg)
    fetched = transactions[0]
    for key in ("type", "amount", "category", "note"):
        if fetched[key] != created[key]:
            msg = f"Field {key} changed: {created[key]!r} -> {fetched[key]!r}"
            raise AssertionError(msg)
    if fetched["amount"] != 250.5 or not fetched["date"].startswith("2024-03-01"):
        msg = f"Unexpected amount/date: {fetched['amount']} {fetched['date']}"
        raise AssertionError(msg)


def test_create_rejects_missing_and_invalid_amount(client: TestClient, auth_headers: dict) -> None:
    """Missing fields and non-numeric amounts answer 400 with a message."""
    missing = client.post("/api/transactions", json={"type": "expense"}, headers=auth_headers)
    invalid = client.post(
        "/api/transactions", json={"type": "expense", "amount": "abc", "category": "Tea"}, headers=auth_headers
    )
    expected = [
        {"message": "Type, amount, and category are required"},
        {"message": "Amount must be a valid number"},
    ]
    for response, body in zip((missing, invalid), expected, strict=True):
        if response.status_code != HTTP_400_BAD_REQUEST or response.json() != body:
            msg = f"Expected 400 {body}, got {response.status_code} {response.json()}"
            raise AssertionError(msg)


def test_list_is_scoped_to_caller(client: TestClient, auth_headers: dict) -> None:
    """Users never see each other's transactions."""
    _create(client, auth_headers, category="Mine")
    other_headers = register(client, email="bikash@example.com", name="Bikash")
    _create(client, other_headers, category="Theirs")
    response = client.get("/api/transactions", headers=auth_headers)
    categories = [t["category"] for t in response.json()["transactions"]]
    if categories != ["Mine"]:
        msg = f"Expected only the caller's transactions, got {categories}"
        raise AssertionError(msg)


def test_update_ignores_unknown_fields(client: TestClient, auth_headers: dict) -> None:
    """Updates change allowed fields and silently drop the rest."""
    created = _create(client, auth_headers)
    response = client.put(
        f"/api/transactions/{created['_id']}",
        json={"amount": 75, "note": "weekly shop", "user": "someone-else", "colour": "red"},
        headers=auth_headers,
    )
    if response.status_code != HTTP_200_OK:
        msg = f"Expected status {HTTP_200_OK}, got {response.status_code}: {response.text}"
        raise AssertionError(msg)
    updated = response.json()["transaction"]
    if (updated["amount"], updated["note"], updated["user"]) != (75.0, "weekly shop", created["user"]):
        msg = f"Unexpected update: {updated}"
        raise AssertionError(msg)


def test_foreign_id_reads_as_missing(client: TestClient, auth_headers: dict) -> None:
    """Updating or deleting another user's transaction looks exactly like a missing id."""
    other_headers = register(client, email="bikash@example.com", name="Bikash")
    foreign = _create(client, other_headers)
    responses = [
        client.put(f"/api/transactions/{foreign['_id']}", json={"amount": 1}, headers=auth_headers),
        client.put("/api/transactions/missing", json={"amount": 1}, headers=auth_headers),
        client.delete(f"/api/transactions/{foreign['_id']}", headers=auth_headers),
        client.delete("/api/transactions/missing", headers=auth_headers),
    ]
    for response in responses:
        if response.status_code != HTTP_404_NOT_FOUND or response.json() != {"message": "Transaction not found"}:
            msg = f"Expected 404 'Transaction not found', got {response.status_code} {response.json()}"
            raise AssertionError(msg)


def test_delete_removes_transaction(client: TestClient, auth_headers: dict) -> None:
    """Deleting answers with a message and the transaction is gone."""
    created = _create(client, auth_headers)
    response = client.delete(f"/api/transactions/{created['_id']}", headers=auth_headers)
    if response.status_code != HTTP_200_OK or response.json() != {"message": "Transaction removed"}:
        msg = f"Unexpected delete response: {response.status_code} {response.json()}"
        raise AssertionError(msg)
    if client.get("/api/transactions", headers=auth_headers).json()["transactions"]:
        msg = "Expected no transactions after delete"
        raise AssertionError(msg)


def test_ai_entry_uses_user_date(client: TestClient, auth_headers: dict, fake_llm: FakeLLMClient) -> None:
    """The AI route stores the normalized draft, preferring the user's date."""
    fake_llm.reply_with(
        {"type": "expense", "amount": 1200, "category": "Groceries", "date": "2024-02-01", "note": "Bhatbhateni"}
    )
    response = client.post(
        "/api/transactions/ai",
        json={"prompt": "spent 1200 at bhatbhateni", "userDate": "2024-03-01"},
        headers=auth_headers,
    )
    if response.status_code != HTTP_201_CREATED:
        msg = f"Expected status {HTTP_201_CREATED}, got {response.status_code}: {response.text}"
        raise AssertionError(msg)
    transaction = response.json()["transaction"]
    if transaction["date"] != "2024-03-01T00:00:00" or transaction["amount"] != 1200.0:
        msg = f"Unexpected transaction: {transaction}"
        raise AssertionError(msg)


def test_ai_entry_uses_model_date_without_user_date(
    client: TestClient, auth_headers: dict, fake_llm: FakeLLMClient
) -> None:
    """Without a user date the model's day is stored at local midnight."""
    fake_llm.reply_with({"type": "income", "amount": 500, "category": "Gift", "date": "2024-02-01"})
    response = client.post("/api/transactions/ai", json={"prompt": "got 500 from aama"}, headers=auth_headers)
    transaction = response.json()["transaction"]
    if transaction["date"] != "2024-02-01T00:00:00" or transaction["note"] != "got 500 from aama":
        msg = f"Unexpected transaction: {transaction}"
        raise AssertionError(msg)


@pytest.mark.parametrize(
    ("prompt", "reply", "status"),
    [
        ("   ", {"amount": 5}, HTTP_400_BAD_REQUEST),
        ("refund", {"amount": -50, "type": "income"}, HTTP_422_UNPROCESSABLE),
        ("coffee", "no json at all", HTTP_502_BAD_GATEWAY),
    ],
)
def test_ai_entry_failures_store_nothing(
    client: TestClient, auth_headers: dict, fake_llm: FakeLLMClient, prompt: str, reply: object, status: int
) -> None:
    """Each normalizer failure maps to its status and nothing is persisted."""
    fake_llm.reply_with(reply)
    response = client.post("/api/transactions/ai", json={"prompt": prompt}, headers=auth_headers)
    if response.status_code != status or "message" not in response.json():
        msg = f"Expected status {status} with a message, got {response.status_code} {response.text}"
        raise AssertionError(msg)
    if client.get("/api/transactions", headers=auth_headers).json()["transactions"]:
        msg = "Expected nothing to be stored"
        raise AssertionError(msg)


def test_ai_entry_without_model_key(client: TestClient, auth_headers: dict) -> None:
    """Without a configured key only the AI route fails, with a 503."""
    response = client.post("/api/transactions/ai", json={"prompt": "coffee 100"}, headers=auth_headers)
    if response.status_code != HTTP_503_UNAVAILABLE:
        msg = f"Expected status {HTTP_503_UNAVAILABLE}, got {response.status_code}"
        raise AssertionError(msg)


def test_summary_totals(client: TestClient, auth_headers: dict) -> None:
    """The summary adds up income and expenses and ranks categories."""
    _create(client, auth_headers, type="income", amount=50000, category="Salary")
    _create(client, auth_headers, amount=1200, category="Groceries")
    _create(client, auth_headers, amount=800.25, category="Groceries")
    _create(client, auth_headers, amount=15000, category="Rent")
    response = client.get("/api/transactions/summary", headers=auth_headers)
    summary = response.json()["summary"]
    expected_totals = (50000.0, 17000.25, 32999.75, 4)
    if (summary["income"], summary["expenses"], summary["balance"], summary["count"]) != expected_totals:
        msg = f"Unexpected totals: {summary}"
        raise AssertionError(msg)
    expense_categories = [(c["category"], c["total"]) for c in summary["categories"]["expense"]]
    if expense_categories != [("Rent", 15000.0), ("Groceries", 2000.25)]:
        msg = f"Unexpected category ranking: {expense_categories}"
        raise AssertionError(msg)


def test_export_csv(client: TestClient, auth_headers: dict) -> None:
    """The export holds one CSV row per listed transaction."""
    _create(client, auth_headers, amount=10, category="Tea", date="2024-03-01", note="chiya")
    _create(client, auth_headers, type="income", amount=20, category="Gift", date="2024-03-02")
    response = client.get("/api/transactions/export", params={"type": "expense"}, headers=auth_headers)
    if response.status_code != HTTP_200_OK or not response.headers["content-type"].startswith("text/csv"):
        msg = f"Unexpected export response: {response.status_code} {response.headers}"
        raise AssertionError(msg)
    rows = list(csv.DictReader(io.StringIO(response.text)))
    if len(rows) != 1 or rows[0]["date"] != "2024-03-01" or rows[0]["note"] != "chiya":
        msg = f"Unexpected rows: {rows}"
        raise AssertionError(msg)


def test_storage_failures_are_generic_500s(app: FastAPI, client: TestClient, auth_headers: dict) -> None:
    """Database errors answer 500 with a fixed message and no driver detail."""
    with app.state.engine.begin() as conn:
        conn.execute(text("DROP TABLE transactions"))
    listed = client.get("/api/transactions", headers=auth_headers)
    created = client.post(
        "/api/transactions", json={"type": "expense", "amount": 5, "category": "Tea"}, headers=auth_headers
    )
    deleted = client.delete("/api/transactions/some-id", headers=auth_headers)
    expected = [
        (listed, {"message": "Failed to load transactions"}),
        (created, {"message": "Failed to create transaction"}),
        (deleted, {"message": "Failed to delete transaction"}),
    ]
    for response, body in expected:
        if response.status_code != HTTP_500_INTERNAL_ERROR or response.json() != body:
            msg = f"Expected 500 {body}, got {response.status_code} {response.text}"
            raise AssertionError(msg)


def test_category_filter_folds_non_ascii_case(client: TestClient, auth_headers: dict) -> None:
    """The category filter matches regardless of case beyond ASCII."""
    _create(client, auth_headers, category="CAFÉ")
    _create(client, auth_headers, category="Groceries")
    response = client.get("/api/transactions", params={"category": "café"}, headers=auth_headers)
    categories = [t["category"] for t in response.json()["transactions"]]
    if categories != ["CAFÉ"]:
        msg = f"Expected only the cafe transaction, got {categories}"
        raise AssertionError(msg)
