from datetime import date, timedelta
from decimal import Decimal

RENT_MANUAL = {
    "id": "CSH-1", "date": "2024-01-10", "direction": "expense", "category": "rent",
    "amount": "500.00", "description": "إيجار يناير",
}
RENT_EXPENSE = {
    "id": "EXP-1", "date": "2024-01-10", "category": "إيجار المحل", "amount": "500.00",
    "description": "إيجار يناير", "status": "paid",
}


def put_records(client, headers, collection, records):
    response = client.put(f"/api/v1/records/{collection}", json=records, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def test_root_and_health(client):
    assert "Welcome" in client.get("/").json()["message"]
    assert client.get("/health").json()["status"] == "ok"


def test_missing_tenant_header_is_unauthorized(client):
    response = client.get("/api/v1/ledger")

    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Missing X-Tenant-ID header"


def test_records_round_trip(client, tenant_headers):
    body = put_records(client, tenant_headers, "expenses", [RENT_EXPENSE])
    assert body["success"] is True
    assert body["data"] == {"collection": "expenses", "total": 1}

    response = client.get("/api/v1/records/expenses", headers=tenant_headers)

    assert response.json()["records"] == [RENT_EXPENSE]


def test_unknown_collection_is_not_found(client, tenant_headers):
    response = client.get("/api/v1/records/smart_alerts", headers=tenant_headers)

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_integration_run_fills_the_ledger(client, tenant_headers):
    put_records(client, tenant_headers, "expenses", [RENT_EXPENSE])
    put_records(client, tenant_headers, "sales_invoices", [
        {"id": "S1", "date": "2024-01-05", "total": "900", "status": "paid"},
    ])

    run = client.post("/api/v1/integration/run", headers=tenant_headers).json()
    assert run["success"] is True
    client.post("/api/v1/integration/run", headers=tenant_headers)

    ledger = client.get("/api/v1/ledger", headers=tenant_headers).json()
    assert ledger["count"] == 2
    assert Decimal(ledger["totals"]["net_cash_flow"]) == Decimal("400.00")
    assert ledger["data"][0]["metadata"]["source_system"] == "expenses"

    income = client.get("/api/v1/ledger", params={"direction": "income"}, headers=tenant_headers).json()
    assert [e["reference_id"] for e in income["data"]] == ["S1"]

    summary = client.get(
        "/api/v1/ledger/summary",
        params={"start_date": "2024-01-06", "end_date": "2024-01-31"},
        headers=tenant_headers,
    ).json()
    assert Decimal(summary["total_expenses"]) == Decimal("500.00")
    assert Decimal(summary["total_income"]) == 0


def test_ledger_summary_rejects_inverted_range(client, tenant_headers):
    response = client.get(
        "/api/v1/ledger/summary",
        params={"start_date": "2024-02-01", "end_date": "2024-01-01"},
        headers=tenant_headers,
    )

    assert response.status_code == 400


def test_conflicts_listing_and_keep_system(client, tenant_headers):
    put_records(client, tenant_headers, "cash_register", [RENT_MANUAL])
    put_records(client, tenant_headers, "expenses", [RENT_EXPENSE])
    client.post("/api/v1/integration/run", headers=tenant_headers)

    listing = client.get("/api/v1/conflicts", headers=tenant_headers).json()
    assert listing["total"] == 1
    assert listing["policy"] == "merge"
    assert listing["conflicts"][0]["matches"][0]["reference_id"] == "EXP-1"

    resolved = client.post(
        "/api/v1/conflicts/resolve", json={"policy": "keep_system"}, headers=tenant_headers
    ).json()
    assert resolved["data"]["conflicts_found"] == 1
    assert resolved["data"]["conflicts_remaining"] == 0

    client.post("/api/v1/integration/run", headers=tenant_headers)
    ledger = client.get("/api/v1/ledger", headers=tenant_headers).json()
    assert [e["reference_id"] for e in ledger["data"]] == ["EXP-1"]
    assert client.get("/api/v1/conflicts", headers=tenant_headers).json()["policy"] == "keep_system"


def test_resolve_rejects_unknown_policy(client, tenant_headers):
    response = client.post("/api/v1/conflicts/resolve", json={"policy": "delete_all"}, headers=tenant_headers)

    assert response.status_code == 422


def test_alert_lifecycle(client, tenant_headers):
    overdue = (date.today() - timedelta(days=2)).isoformat()
    put_records(client, tenant_headers, "installments", [
        {"id": "I1", "amount": "100", "status": "pending", "due_date": overdue},
    ])

    scanned = client.post("/api/v1/alerts/scan", headers=tenant_headers).json()
    assert scanned["total"] == 1
    alert_id = scanned["alerts"][0]["id"]
    assert scanned["alerts"][0]["priority"] == "critical"

    read = client.post(f"/api/v1/alerts/{alert_id}/read", headers=tenant_headers).json()
    assert read["read_at"] is not None
    unread = client.get("/api/v1/alerts", params={"unread_only": True}, headers=tenant_headers).json()
    assert unread["total"] == 0

    client.post(f"/api/v1/alerts/{alert_id}/resolve", headers=tenant_headers)
    stats = client.get("/api/v1/alerts/statistics", headers=tenant_headers).json()
    assert stats["total"] == 1
    assert stats["unresolved"] == 0
    assert stats["by_priority"] == {"critical": 1}

    missing = client.post("/api/v1/alerts/nope/read", headers=tenant_headers)
    assert missing.status_code == 404


def test_rollup_endpoints(client, tenant_headers):
    put_records(client, tenant_headers, "customers", [{"id": "C1", "name": "Ali"}])
    put_records(client, tenant_headers, "installments", [
        {"id": "I1", "customer_id": "C1", "amount": "100", "status": "pending", "due_date": "2030-01-01"},
        {"id": "I2", "customer_id": "C1", "amount": "200", "status": "pending", "due_date": "2030-02-01"},
    ])
    put_records(client, tenant_headers, "checks", [
        {"id": "K1", "customer_id": "C1", "amount": "50", "status": "pending", "due_date": "2030-01-01"},
    ])

    customer = client.post("/api/v1/rollups/customers/C1", headers=tenant_headers).json()
    assert Decimal(customer["current_balance"]) == Decimal("350")

    listing = client.get("/api/v1/rollups/customers", headers=tenant_headers).json()
    assert listing["total"] == 1

    supplier = client.post("/api/v1/rollups/suppliers/ghost", headers=tenant_headers).json()
    assert Decimal(supplier["total_purchases"]) == 0
    assert client.get("/api/v1/rollups/suppliers", headers=tenant_headers).json()["total"] == 0


def test_stats_and_report(client, tenant_headers):
    put_records(client, tenant_headers, "customers", [{"id": "C1", "name": "Ali"}])
    client.post("/api/v1/integration/run", headers=tenant_headers)

    stats = client.get("/api/v1/integration/stats", headers=tenant_headers).json()
    assert stats["total_customers"] == 1
    assert stats["last_update"] is not None

    report = client.get(
        "/api/v1/integration/report",
        params={"start_date": "2024-01-01", "end_date": "2024-01-31"},
        headers=tenant_headers,
    ).json()
    assert report["period"] == {"start": "2024-01-01", "end": "2024-01-31"}
    assert report["customers"]["total_customers"] == 1

    bad = client.get(
        "/api/v1/integration/report",
        params={"start_date": "2024-02-01", "end_date": "2024-01-01"},
        headers=tenant_headers,
    )
    assert bad.status_code == 400
