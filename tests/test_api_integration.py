"""
Integration tests for the Ledger Service API
Tests end-to-end workflows using FastAPI TestClient
"""

import io
import json
import logging

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

import ledger_service.config as config_module
from ledger_service.api import create_app, dependencies
from ledger_service.api.dependencies import LedgerSystem
from ledger_service.logging_config import JSONFormatter
from ledger_service.storage import InMemoryStorage


@pytest.fixture
def system():
    """Fresh in-memory ledger system per test"""
    ledger_system = LedgerSystem(InMemoryStorage())
    yield ledger_system
    ledger_system.close()


@pytest.fixture
def client(system):
    """Create a test client bound to the test ledger system"""
    return TestClient(create_app(system))


def create_account(client, name="Alice", initial_balance="100"):
    r = client.post("/accounts", json={"name": name, "initialBalance": initial_balance})
    assert r.status_code == 201
    return r.json()["data"]


class TestHealthEndpoints:

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        data = r.json()
        assert data["status"] == "ok"
        assert "timestamp" in data

    def test_unknown_route(self, client):
        r = client.get("/does-not-exist")
        assert r.status_code == 404
        assert r.json() == {"success": False, "error": "Not found"}


class TestAccountEndpoints:

    def test_create_account(self, client):
        r = client.post("/accounts", json={"name": "Alice", "initialBalance": 250.5})
        assert r.status_code == 201
        body = r.json()
        assert body["success"] is True
        account = body["data"]
        assert account["name"] == "Alice"
        assert Decimal(account["balance"]) == Decimal("250.5")
        assert {"id", "createdAt", "updatedAt"} <= set(account)

    def test_create_account_without_balance(self, client):
        r = client.post("/accounts", json={"name": "Bob"})
        assert r.status_code == 201
        assert Decimal(r.json()["data"]["balance"]) == 0

    def test_create_account_requires_name(self, client):
        r = client.post("/accounts", json={"initialBalance": 10})
        assert r.status_code == 400
        error = r.json()["error"]
        assert error["code"] == "INVALID_REQUEST"
        assert error["message"] == "Name is required"

    def test_create_account_negative_balance(self, client):
        r = client.post("/accounts", json={"name": "Alice", "initialBalance": -5})
        assert r.status_code == 400
        assert r.json()["error"]["code"] == "INVALID_AMOUNT"

    def test_list_accounts_newest_first(self, client):
        first = create_account(client, "First")
        second = create_account(client, "Second")

        r = client.get("/accounts")

        assert r.status_code == 200
        ids = [a["id"] for a in r.json()["data"]]
        assert ids == [second["id"], first["id"]]

    def test_get_account_with_entries(self, client):
        account = create_account(client)
        client.post(f"/accounts/{account['id']}/deposit", json={"amount": "5"})

        r = client.get(f"/accounts/{account['id']}")

        assert r.status_code == 200
        data = r.json()["data"]
        assert Decimal(data["balance"]) == Decimal("105")
        [entry] = data["entries"]
        assert entry["type"] == "CREDIT"
        assert entry["accountId"] == account["id"]
        assert entry["transaction"]["description"] == f"Deposit to {account['id']}"
        assert entry["transaction"]["id"] == entry["transactionId"]

    def test_get_unknown_account_is_404(self, client):
        r = client.get("/accounts/missing")
        assert r.status_code == 404
        body = r.json()
        assert body["success"] is False
        assert body["error"]["code"] == "ACCOUNT_NOT_FOUND"
        assert body["error"]["message"] == "Account not found"


class TestLedgerEndpoints:

    def test_withdraw(self, client):
        account = create_account(client, initial_balance="100")

        r = client.post(f"/accounts/{account['id']}/withdraw", json={"amount": 40})

        assert r.status_code == 200
        data = r.json()["data"]
        assert Decimal(data["account"]["balance"]) == Decimal("60")
        assert data["transaction"]["description"] == f"Withdrawal from {account['id']}"
        assert [e["type"] for e in data["entries"]] == ["DEBIT"]

    def test_withdraw_insufficient_funds(self, client):
        account = create_account(client, initial_balance="10")

        r = client.post(f"/accounts/{account['id']}/withdraw", json={"amount": "10.01"})

        assert r.status_code == 400
        error = r.json()["error"]
        assert error["code"] == "INSUFFICIENT_FUNDS"
        assert error["message"] == "Insufficient funds"
        balance = client.get(f"/accounts/{account['id']}").json()["data"]["balance"]
        assert Decimal(balance) == Decimal("10")

    def test_withdraw_unknown_account_is_400(self, client):
        r = client.post("/accounts/missing/withdraw", json={"amount": 1})
        assert r.status_code == 400
        assert r.json()["error"]["code"] == "ACCOUNT_NOT_FOUND"

    @pytest.mark.parametrize("amount", [0, -1, "-0.5"])
    def test_non_positive_amount(self, client, amount):
        account = create_account(client)
        r = client.post(f"/accounts/{account['id']}/withdraw", json={"amount": amount})
        assert r.status_code == 400
        assert r.json()["error"] == {"code": "INVALID_AMOUNT", "message": "Amount must be positive"}

    @pytest.mark.parametrize("amount", ["1e999999999", "0.000000001"])
    def test_out_of_range_amount(self, client, amount):
        account = create_account(client)
        r = client.post(f"/accounts/{account['id']}/deposit", json={"amount": amount})
        assert r.status_code == 400
        assert r.json()["error"]["code"] == "INVALID_AMOUNT"
        balance = client.get(f"/accounts/{account['id']}").json()["data"]["balance"]
        assert Decimal(balance) == Decimal("100")

    def test_missing_amount(self, client):
        account = create_account(client)
        r = client.post(f"/accounts/{account['id']}/deposit", json={})
        assert r.status_code == 400
        assert r.json()["error"]["code"] == "INVALID_REQUEST"

    def test_malformed_amount(self, client):
        account = create_account(client)
        r = client.post(f"/accounts/{account['id']}/deposit", json={"amount": "abc"})
        assert r.status_code == 400
        error = r.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0]["path"] == "amount"

    def test_deposit(self, client):
        account = create_account(client, initial_balance="0")

        for _ in range(3):
            r = client.post(f"/accounts/{account['id']}/deposit", json={"amount": 0.1})
            assert r.status_code == 200

        assert r.json()["data"]["account"]["balance"] == "0.3"

    def test_transfer(self, client):
        alice = create_account(client, "Alice", "100")
        bob = create_account(client, "Bob", "0")

        r = client.post("/accounts/transfer", json={
            "from": alice["id"], "to": bob["id"], "amount": "25", "description": "Dinner"
        })

        assert r.status_code == 200
        data = r.json()["data"]
        assert data["transaction"]["description"] == "Dinner"
        assert "account" not in data
        debit, credit = data["entries"]
        assert (debit["type"], debit["accountId"]) == ("DEBIT", alice["id"])
        assert (credit["type"], credit["accountId"]) == ("CREDIT", bob["id"])

        balances = {a["id"]: Decimal(a["balance"]) for a in client.get("/accounts").json()["data"]}
        assert balances == {alice["id"]: Decimal("75"), bob["id"]: Decimal("25")}

    def test_transfer_missing_destination(self, client):
        alice = create_account(client, "Alice", "100")
        r = client.post("/accounts/transfer", json={"from": alice["id"], "to": "nope", "amount": 1})
        assert r.status_code == 400
        error = r.json()["error"]
        assert error["code"] == "ACCOUNT_NOT_FOUND"
        assert error["message"] == "Destination account not found"

    def test_transfer_to_same_account(self, client):
        alice = create_account(client, "Alice", "100")
        r = client.post("/accounts/transfer", json={"from": alice["id"], "to": alice["id"], "amount": 1})
        assert r.status_code == 400
        assert r.json()["error"]["code"] == "INVALID_REQUEST"

    def test_transfer_missing_fields(self, client):
        r = client.post("/accounts/transfer", json={"amount": 1})
        assert r.status_code == 400
        assert r.json()["error"]["code"] == "INVALID_REQUEST"


class TestUnexpectedErrors:

    def test_unhandled_error_is_500(self, system, monkeypatch):
        def explode():
            raise RuntimeError("database on fire")

        monkeypatch.setattr(system.accounts, "get_all_accounts", explode)
        client = TestClient(create_app(system), raise_server_exceptions=False)

        r = client.get("/accounts")

        assert r.status_code == 500
        assert r.json() == {"success": False, "error": "Internal server error"}

    def test_missing_configuration_is_hidden_and_logged(self, monkeypatch, tmp_path):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(config_module, "config", None)
        monkeypatch.setattr(dependencies, "ledger_system", None)

        stream = io.StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(JSONFormatter())
        api_logger = logging.getLogger("ledger.api")
        api_logger.addHandler(handler)
        try:
            client = TestClient(create_app(), raise_server_exceptions=False)
            r = client.get("/accounts")
        finally:
            api_logger.removeHandler(handler)

        assert r.status_code == 500
        assert r.json() == {"success": False, "error": "Internal server error"}
        [record] = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert record["level"] == "ERROR"
        assert "ConfigurationError" in record["message"]
        assert "exception" in record
