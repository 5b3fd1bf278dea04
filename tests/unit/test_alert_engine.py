from datetime import date, timedelta
from decimal import Decimal

import pytest

from cashbook.core.config import Settings
from cashbook.models.ledger import Direction
from cashbook.schemas.alert import AlertPriority, AlertType
from cashbook.schemas.ledger import LedgerEntryCreate
from cashbook.services.alert_engine import AlertEngine
from tests.conftest import FIXED_NOW

TODAY = FIXED_NOW.date()


@pytest.fixture
def engine(store, storage, settings, clock):
    return AlertEngine(store, storage, settings, clock)


def kinds(alerts):
    return sorted(a.kind for a in alerts)


def check(id, days_from_today, status="pending"):
    return {"id": id, "amount": "100", "status": status,
            "due_date": (TODAY + timedelta(days=days_from_today)).isoformat()}


def test_no_data_no_alerts(engine, storage):
    assert engine.scan() == []
    assert storage.get_collection("smart_alerts") == []


def test_check_due_in_three_days_alerts(engine, storage):
    storage.set("checks", [check("K1", 3)])

    alerts = engine.scan()

    assert kinds(alerts) == ["due-checks"]
    assert alerts[0].priority == AlertPriority.medium
    assert alerts[0].type == AlertType.warning


@pytest.mark.parametrize("days", [4, -1])
def test_check_outside_window_does_not_alert(engine, storage, days):
    storage.set("checks", [check("K1", days)])

    assert engine.scan() == []


def test_check_due_today_alerts_but_cleared_does_not(engine, storage):
    storage.set("checks", [check("K1", 0), check("K2", 1, status="cleared")])

    alerts = engine.scan()

    assert kinds(alerts) == ["due-checks"]
    assert "1 check(s)" in alerts[0].message


def test_installment_overdue_by_one_day_is_critical(engine, storage):
    storage.set("installments", [
        {"id": "I1", "amount": "100", "status": "pending", "due_date": (TODAY - timedelta(days=1)).isoformat()},
        {"id": "I2", "amount": "100", "status": "pending", "due_date": TODAY.isoformat()},
        {"id": "I3", "amount": "100", "status": "paid", "due_date": "2023-01-01"},
    ])

    alerts = engine.scan()

    assert kinds(alerts) == ["overdue-installments"]
    assert alerts[0].priority == AlertPriority.critical
    assert alerts[0].type == AlertType.error
    assert alerts[0].action_required is True
    assert alerts[0].message.startswith("1 installment(s)")


def test_low_stock(engine, storage):
    storage.set("products", [
        {"id": "P1", "quantity": 2, "min_quantity": 5},
        {"id": "P2", "quantity": 5, "min_quantity": 5},
        {"id": "P3", "quantity": 50, "min_quantity": 5},
    ])

    alerts = engine.scan()

    assert kinds(alerts) == ["low-stock"]
    assert alerts[0].priority == AlertPriority.high
    assert alerts[0].message.startswith("2 product(s)")


def test_low_stock_can_be_disabled(store, storage, clock):
    storage.set("products", [{"id": "P1", "quantity": 0, "min_quantity": 5}])
    engine = AlertEngine(store, storage, Settings(DATABASE_URL="sqlite://", LOW_STOCK_ENABLED=False), clock)

    assert engine.scan() == []


@pytest.mark.parametrize("count, expected", [(10, []), (11, ["inactive-customers"])])
def test_inactive_customers_threshold(engine, storage, count, expected):
    customers = [{"id": f"C{n}", "name": f"c{n}"} for n in range(count)]
    customers.append({"id": "ACTIVE", "last_purchase_date": (TODAY - timedelta(days=5)).isoformat()})
    storage.set("enhanced_customers", customers)

    assert kinds(engine.scan()) == expected


def test_negative_cash_flow_over_trailing_window(engine, store):
    store.append(LedgerEntryCreate(
        date=TODAY - timedelta(days=3), direction=Direction.expense, amount=Decimal("80"),
        reference_id="EXP-1", reference_type="expense_system",
    ))
    store.append(LedgerEntryCreate(
        date=TODAY - timedelta(days=45), direction=Direction.income, amount=Decimal("1000"),
        reference_id="INV-1", reference_type="sales_system",
    ))

    alerts = engine.scan()

    assert kinds(alerts) == ["negative-cashflow"]
    assert "-80.00" in alerts[0].message


def test_inactive_suppliers(engine, storage):
    storage.set("enhanced_suppliers", [
        {"id": "S1", "last_order_date": (TODAY - timedelta(days=61)).isoformat()},
        {"id": "S2", "last_order_date": (TODAY - timedelta(days=10)).isoformat()},
        {"id": "S3"},
    ])

    alerts = engine.scan()

    assert kinds(alerts) == ["inactive-suppliers"]
    assert alerts[0].message.startswith("1 supplier(s)")


def test_alert_ids_are_unique_and_prefixed_by_kind(engine, storage):
    storage.set("checks", [check("K1", 1)])

    first = engine.scan()[0]
    second = engine.scan()[0]

    assert first.id.startswith("due-checks-")
    assert first.id != second.id
    assert len(engine.history()) == 2


def test_history_is_capped_at_fifty_newest_first(store, storage, settings):
    ticks = iter(range(1000))
    engine = AlertEngine(store, storage, settings, lambda: FIXED_NOW + timedelta(minutes=next(ticks)))
    storage.set("products", [{"id": "P1", "quantity": 0, "min_quantity": 1}])
    storage.set("checks", [check("K1", 1)])

    raised = sum(len(engine.scan()) for _ in range(30))

    history = engine.history()
    assert raised == 60
    assert len(history) == 50
    stamps = [a.created_at for a in history]
    assert stamps == sorted(stamps, reverse=True)
    assert stamps[0] == FIXED_NOW + timedelta(minutes=29)
    assert stamps[-1] == FIXED_NOW + timedelta(minutes=5)


def test_repeat_cooldown_suppresses_same_kind(store, storage, clock):
    storage.set("checks", [check("K1", 1)])
    engine = AlertEngine(
        store, storage, Settings(DATABASE_URL="sqlite://", ALERT_REPEAT_COOLDOWN_MINUTES=60), clock
    )

    assert len(engine.scan()) == 1
    assert engine.scan() == []
    assert len(engine.history()) == 1


def test_mark_read_resolve_and_statistics(engine, storage):
    storage.set("checks", [check("K1", 1)])
    storage.set("products", [{"id": "P1", "quantity": 0, "min_quantity": 1}])
    alerts = engine.scan()
    low_stock = next(a for a in alerts if a.kind == "low-stock")

    assert engine.mark_read(low_stock.id).read_at == FIXED_NOW
    assert engine.resolve_alert(low_stock.id).resolved_at == FIXED_NOW
    assert engine.mark_read("missing") is None

    assert [a.kind for a in engine.unread_alerts()] == ["due-checks"]
    assert [a.kind for a in engine.active_alerts()] == ["due-checks"]

    stats = engine.statistics()
    assert stats.total == 2
    assert stats.unread == 1
    assert stats.unresolved == 1
    assert stats.action_required == 1
    assert stats.by_priority == {"high": 1, "medium": 1}
    assert stats.by_type == {"warning": 2}
    assert stats.by_category == {"inventory": 1, "financial": 1}


def test_scan_never_raises(engine, monkeypatch):
    def boom(now):
        raise RuntimeError("storage unavailable")

    monkeypatch.setattr(engine, "evaluate", boom)

    assert engine.scan() == []
