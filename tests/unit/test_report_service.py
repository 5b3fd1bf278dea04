from datetime import date
from decimal import Decimal

import pytest

from cashbook.models.ledger import Direction
from cashbook.schemas.ledger import LedgerEntryCreate
from cashbook.services.report_service import ReportService


@pytest.fixture
def reports(store, storage, settings, clock):
    return ReportService(store, storage, settings, clock)


def seed_sales(storage):
    storage.set("sales_invoices", [
        {"id": "S1", "customer_id": "C1", "customer_name": "Ali", "date": "2024-01-05", "total": "300",
         "items": [{"product_id": "P1", "product_name": "Pen", "quantity": 3, "total": "300"}]},
        {"id": "S2", "customer_id": "C2", "customer_name": "Mona", "date": "2024-01-06", "total": "100",
         "items": [{"product_id": "P2", "product_name": "Ink", "quantity": 1, "total": "100"}]},
        {"id": "S3", "customer_id": "C1", "customer_name": "Ali", "date": "2023-12-01", "total": "999"},
    ])
    storage.set("products", [
        {"id": "P1", "quantity": 10, "min_quantity": 2, "cost": "4"},
        {"id": "P2", "quantity": 1, "min_quantity": 2, "cost": "10"},
    ])


def test_sales_and_inventory_sections(reports, storage):
    seed_sales(storage)

    report = reports.generate_unified_report(date(2024, 1, 1), date(2024, 1, 31))

    assert report.sales.total_revenue == Decimal("400.00")
    assert report.sales.total_invoices == 2
    assert report.sales.average_order_value == Decimal("200.00")
    assert [c.customer_id for c in report.sales.top_customers] == ["C1", "C2"]
    assert report.inventory.total_value == Decimal("50.00")
    assert report.inventory.low_stock_items == 1
    assert report.inventory.total_movements == 4
    assert report.inventory.top_products[0].product_id == "P1"


def test_financial_section_comes_from_the_ledger(reports, store):
    store.append(LedgerEntryCreate(date=date(2024, 1, 5), direction=Direction.income, amount=Decimal("400"),
                                   reference_id="S1", reference_type="sales_system"))
    store.append(LedgerEntryCreate(date=date(2024, 1, 7), direction=Direction.expense, amount=Decimal("100"),
                                   reference_id="E1", reference_type="expense_system"))

    financial = reports.generate_unified_report(date(2024, 1, 1), date(2024, 1, 31)).financial

    assert financial.total_income == Decimal("400.00")
    assert financial.net_profit == Decimal("300.00")
    assert financial.profit_margin == 75.0
    assert financial.cash_flow == Decimal("300.00")


def test_installment_and_check_sections(reports, storage):
    storage.set("installments", [
        {"id": "I1", "amount": "100", "paid_amount": "100", "status": "paid", "due_date": "2024-01-02"},
        {"id": "I2", "amount": "100", "status": "pending", "due_date": "2024-01-10"},
        {"id": "I3", "amount": "100", "status": "pending", "due_date": "2024-01-20"},
    ])
    storage.set("checks", [
        {"id": "K1", "amount": "50", "status": "cleared", "due_date": "2024-01-03"},
        {"id": "K2", "amount": "70", "status": "bounced", "due_date": "2024-01-04"},
        {"id": "K3", "amount": "20", "status": "pending", "due_date": "2024-03-04"},
    ])

    report = reports.generate_unified_report(date(2024, 1, 1), date(2024, 1, 31))

    assert report.installments.total_installments == 3
    assert report.installments.paid_installments == 1
    assert report.installments.overdue_installments == 1
    assert report.installments.remaining_amount == Decimal("200")
    assert report.checks.total_checks == 2
    assert report.checks.bounced_checks == 1
    assert report.checks.total_amount == Decimal("120")


def test_report_rejects_inverted_period(reports):
    with pytest.raises(ValueError):
        reports.generate_unified_report(date(2024, 2, 1), date(2024, 1, 1))


def test_integration_level_components(reports, storage, store):
    assert reports.integration_level() == 0

    storage.set("enhanced_customers", [{"id": "C1", "total_purchases": "10"}, {"id": "C2"}])
    storage.set("sales_invoices", [{"id": "S1", "items": [{"product_id": "P1"}]}])
    storage.set("installments", [{"id": "I1", "customer_id": "C1"}])
    storage.set("checks", [{"id": "K1"}])
    store.append(LedgerEntryCreate(date=date(2024, 1, 5), direction=Direction.income, amount=Decimal("1"),
                                   reference_id="S1", reference_type="sales_system"))

    # 10 (half the customers) + 20 + 20 + 0 + 20
    assert reports.integration_level() == 70


def test_integration_stats(reports, storage):
    storage.set("enhanced_customers", [{"id": "C1"}])
    storage.set("enhanced_suppliers", [{"id": "S1"}, {"id": "S2"}])
    storage.set("last_integration_update", "2024-01-15T09:00:00+00:00")

    stats = reports.integration_stats()

    assert stats.total_customers == 1
    assert stats.total_suppliers == 2
    assert stats.active_alerts == 0
    assert stats.last_update.year == 2024
