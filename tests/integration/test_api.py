"""Integration tests for API endpoints"""

import pytest
from fastapi.testclient import TestClient

BASE = "/v1/cooperatives/coop_kaolack"


@pytest.fixture
def transaction_body() -> dict:
    return {
        "kind": "expense",
        "category": "seeds",
        "description": "Millet seed purchase",
        "amount": 45000,
        "date": "2024-03-10",
        "payment_method": "mobile_money",
    }


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "coop-ledger"}


def test_metrics_endpoint(client: TestClient, headers, transaction_body):
    """Test Prometheus metrics endpoint"""
    client.post(f"{BASE}/transactions", json=transaction_body, headers=headers)

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "coop_ledger_transactions_total" in response.text
    assert "http_request_duration_seconds" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"
    assert client.get("/health").headers["X-Request-ID"]


def test_mutation_requires_acting_user(client: TestClient, transaction_body):
    response = client.post(f"{BASE}/transactions", json=transaction_body)
    assert response.status_code == 401


def test_transaction_crud(client: TestClient, headers, transaction_body):
    created = client.post(f"{BASE}/transactions", json=transaction_body, headers=headers)
    assert created.status_code == 201
    data = created.json()
    assert data["id"] == "txn_0001"
    assert data["status"] == "pending"
    assert data["created_by"] == "treasurer_1"

    patched = client.patch(f"{BASE}/transactions/txn_0001", json={"amount": 50000}, headers=headers)
    assert patched.status_code == 200
    assert patched.json()["amount"] == 50000

    completed = client.post(f"{BASE}/transactions/txn_0001/complete", headers=headers)
    assert completed.json()["status"] == "completed"

    deleted = client.delete(f"{BASE}/transactions/txn_0001", headers=headers)
    assert deleted.status_code == 409
    assert deleted.json()["error"] == "invalid_transition"

    cancelled = client.post(f"{BASE}/transactions/txn_0001/cancel", headers=headers)
    assert cancelled.json()["status"] == "cancelled"


def test_delete_pending_transaction(client: TestClient, headers, transaction_body):
    client.post(f"{BASE}/transactions", json=transaction_body, headers=headers)

    assert client.delete(f"{BASE}/transactions/txn_0001", headers=headers).status_code == 204
    missing = client.get(f"{BASE}/transactions/txn_0001")
    assert missing.status_code == 404
    assert missing.json()["error"] == "not_found"


def test_create_transaction_validation_error(client: TestClient, headers, transaction_body):
    transaction_body["amount"] = 0
    transaction_body["description"] = "ab"

    response = client.post(f"{BASE}/transactions", json=transaction_body, headers=headers)

    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "validation_error"
    assert "amount must be a positive integer" in body["errors"]
    assert "description must be at least 3 characters" in body["errors"]


def test_validate_transaction_endpoint(client: TestClient, transaction_body):
    ok = client.post(f"{BASE}/transactions/validate", json=transaction_body | {"status": "pending"})
    assert ok.json() == {"is_valid": True, "errors": []}

    bad = client.post(f"{BASE}/transactions/validate", json={"amount": -1})
    assert bad.json()["is_valid"] is False


def test_list_and_export_transactions(client: TestClient, headers, transaction_body):
    client.post(f"{BASE}/transactions", json=transaction_body, headers=headers)
    client.post(
        f"{BASE}/contributions",
        json={"member_id": "m_awa", "amount": 25000, "payment_method": "cash", "date": "2024-03-02"},
        headers=headers,
    )

    assert len(client.get(f"{BASE}/transactions").json()) == 2
    assert len(client.get(f"{BASE}/transactions", params={"kind": "income"}).json()) == 1

    export = client.get(f"{BASE}/transactions/export.csv")
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    assert export.text.splitlines()[0].startswith("ID,Type,Category")
    assert len(export.text.splitlines()) == 3


def test_budget_tracks_completed_expenses(client: TestClient, headers, transaction_body):
    budget = client.post(
        f"{BASE}/budgets",
        json={
            "category": "seeds",
            "allocated_amount": 40000,
            "period": "monthly",
            "start_date": "2024-03-01",
            "end_date": "2024-03-31",
        },
        headers=headers,
    ).json()
    assert budget["status"] == "active"
    assert budget["remaining"] == 40000

    client.post(f"{BASE}/transactions", json=transaction_body | {"status": "completed"}, headers=headers)

    budget = client.get(f"{BASE}/budgets/{budget['id']}").json()
    assert budget["spent_amount"] == 45000
    assert budget["status"] == "over_budget"
    assert budget["remaining"] == -5000


def test_budget_update_cannot_set_status(client: TestClient, headers):
    budget = client.post(
        f"{BASE}/budgets",
        json={
            "category": "transport",
            "allocated_amount": 40000,
            "period": "monthly",
            "start_date": "2024-03-01",
            "end_date": "2024-03-31",
        },
        headers=headers,
    ).json()

    response = client.patch(f"{BASE}/budgets/{budget['id']}", json={"allocated_amount": 50000}, headers=headers)
    assert response.json()["allocated_amount"] == 50000

    response = client.post(f"{BASE}/budgets/{budget['id']}/expenses", json={"amount": 60000}, headers=headers)
    assert response.status_code in (404, 405)

    client.post(
        f"{BASE}/transactions",
        json={
            "kind": "expense",
            "category": "transport",
            "description": "Truck hire to Kaolack market",
            "amount": 60000,
            "date": "2024-03-12",
            "payment_method": "cash",
            "status": "completed",
        },
        headers=headers,
    )
    spent = client.get(f"{BASE}/budgets/{budget['id']}").json()
    assert spent["spent_amount"] == 60000
    assert spent["status"] == "over_budget"


def test_credit_endpoints(client: TestClient, headers):
    created = client.post(
        f"{BASE}/credits",
        json={
            "member_id": "m_awa",
            "amount": 100000,
            "interest_rate": 0,
            "duration": 10,
            "purpose": "Irrigation pump",
            "application_date": "2024-01-10",
        },
        headers=headers,
    )
    assert created.status_code == 201
    credit = created.json()
    assert len(credit["installments"]) == 10
    assert credit["remaining_balance"] == 100000

    skipped = client.post(f"{BASE}/credits/{credit['id']}/status", json={"status": "disbursed"}, headers=headers)
    assert skipped.status_code == 409

    client.post(f"{BASE}/credits/{credit['id']}/status", json={"status": "approved"}, headers=headers)
    client.post(f"{BASE}/credits/{credit['id']}/status", json={"status": "disbursed"}, headers=headers)
    repaid = client.post(f"{BASE}/credits/{credit['id']}/repayments", json={"installment_index": 0}, headers=headers)
    assert repaid.json()["remaining_balance"] == 90000

    overdue = client.post(f"{BASE}/credits/{credit['id']}/overdue", json={"as_of": "2024-03-20"}, headers=headers)
    assert [i["status"] for i in overdue.json()["installments"][:3]] == ["paid", "overdue", "pending"]

    out_of_range = client.post(f"{BASE}/credits/{credit['id']}/repayments", json={"installment_index": 10}, headers=headers)
    assert out_of_range.status_code == 422

    assert len(client.get(f"{BASE}/credits", params={"member_id": "m_awa"}).json()) == 1


def test_subsidy_disbursement_books_income(client: TestClient, headers):
    subsidy = client.post(
        f"{BASE}/subsidies",
        json={"name": "Drip irrigation grant", "amount": 2500000, "provider": "Ministry of Agriculture"},
        headers=headers,
    ).json()
    assert subsidy["status"] == "applied"

    client.post(f"{BASE}/subsidies/{subsidy['id']}/status", json={"status": "approved"}, headers=headers)
    disbursed = client.post(
        f"{BASE}/subsidies/{subsidy['id']}/status",
        json={"status": "disbursed", "date": "2024-04-02"},
        headers=headers,
    )
    assert disbursed.json()["status"] == "disbursed"

    [entry] = client.get(f"{BASE}/transactions", params={"category": "subsidy"}).json()
    assert entry["kind"] == "income"
    assert entry["status"] == "completed"
    assert entry["amount"] == 2500000
    assert entry["date"] == "2024-04-02"
    assert entry["reference"] == subsidy["id"]


def test_subsidy_rejected_transition_writes_nothing(client: TestClient, headers):
    subsidy = client.post(
        f"{BASE}/subsidies",
        json={"name": "Seed voucher", "amount": 150000, "provider": "FAO"},
        headers=headers,
    ).json()

    response = client.post(f"{BASE}/subsidies/{subsidy['id']}/status", json={"status": "disbursed"}, headers=headers)

    assert response.status_code == 409
    assert client.get(f"{BASE}/transactions").json() == []


def test_reports(client: TestClient, headers):
    client.post(
        f"{BASE}/contributions",
        json={"member_id": "m_awa", "amount": 60000, "payment_method": "cash", "date": "2024-03-02"},
        headers=headers,
    )
    client.post(
        f"{BASE}/supplier-payments",
        json={"supplier_id": "sup_1", "amount": 20000, "payment_method": "cash", "description": "Jute bags", "date": "2024-03-05"},
        headers=headers,
    )

    summary = client.get(f"{BASE}/reports/summary").json()
    assert summary["income"] == 60000
    assert summary["expenses"] == 20000
    assert summary["net"] == 40000

    monthly = client.get(f"{BASE}/reports/monthly/2024/3").json()
    assert monthly["period"] == "2024-03"
    assert monthly["by_category"]["supplier_payment"] == {"income": 0, "expense": 20000}

    assert client.get(f"{BASE}/reports/monthly/2024/13").status_code == 422

    benefits = client.get(f"{BASE}/reports/benefits", params={"total_profit": 9000}).json()
    assert benefits == [{"member_id": "m_awa", "contribution": 60000, "share": 9000}]


def test_cooperatives_are_isolated(client: TestClient, headers, transaction_body):
    client.post(f"{BASE}/transactions", json=transaction_body, headers=headers)

    assert client.get("/v1/cooperatives/coop_thies/transactions").json() == []
    assert client.get("/v1/cooperatives/coop_thies/transactions/txn_0001").status_code == 404
