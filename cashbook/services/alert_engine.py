import uuid
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, List, Optional

from cashbook.core.config import Settings
from cashbook.logger_config import logger
from cashbook.schemas.alert import AlertCategory, AlertPriority, AlertStatistics, AlertType, SmartAlert
from cashbook.schemas.enhanced import EnhancedCustomer, EnhancedSupplier
from cashbook.schemas.records import CheckRecord, InstallmentRecord, ProductRecord
from cashbook.services.ledger_store import LedgerStore
from cashbook.services.storage_service import StorageService

ALERTS_KEY = "smart_alerts"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    # history written by older clients may carry naive timestamps
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class AlertEngine:
    """
    Scans the tenant's subsystem data for conditions that need attention and
    keeps a bounded, newest-first alert history in ``smart_alerts``.
    """

    def __init__(
        self,
        store: LedgerStore,
        storage: StorageService,
        settings: Settings,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.storage = storage
        self.settings = settings
        self.clock = clock or utc_now

    def _alert(self, kind: str, now: datetime, **fields) -> SmartAlert:
        return SmartAlert(id=f"{kind}-{uuid.uuid4().hex[:12]}", kind=kind, created_at=now, **fields)

    # ================= RULES ===================

    def _low_stock(self, now: datetime) -> Optional[SmartAlert]:
        if not self.settings.LOW_STOCK_ENABLED:
            return None
        products, _ = self.storage.load_models("products", ProductRecord)
        low = [p for p in products if p.quantity <= p.min_quantity]
        if not low:
            return None
        return self._alert(
            "low-stock", now,
            type=AlertType.warning,
            category=AlertCategory.inventory,
            title="Low stock",
            message=f"{len(low)} product(s) are at or below their minimum quantity and need restocking",
            priority=AlertPriority.high,
            action_required=True,
            action_url="/inventory/stock",
            action_text="View products",
        )

    def _overdue_installments(self, now: datetime, today: date) -> Optional[SmartAlert]:
        installments, _ = self.storage.load_models("installments", InstallmentRecord)
        overdue = [i for i in installments if i.status == "pending" and i.due_date < today]
        if not overdue:
            return None
        total = sum(
            (i.remaining_amount if i.remaining_amount is not None else i.amount for i in overdue),
            Decimal("0"),
        )
        return self._alert(
            "overdue-installments", now,
            type=AlertType.error,
            category=AlertCategory.financial,
            title="Overdue installments",
            message=f"{len(overdue)} installment(s) are overdue, totalling {total:,.2f}",
            priority=AlertPriority.critical,
            action_required=True,
            action_url="/installments",
            action_text="Follow up installments",
        )

    def _due_checks(self, now: datetime, today: date) -> Optional[SmartAlert]:
        window = self.settings.CHECK_DUE_WINDOW_DAYS
        checks, _ = self.storage.load_models("checks", CheckRecord)
        due = [
            c for c in checks
            if c.status == "pending" and 0 <= (c.due_date - today).days <= window
        ]
        if not due:
            return None
        return self._alert(
            "due-checks", now,
            type=AlertType.warning,
            category=AlertCategory.financial,
            title="Checks due soon",
            message=f"{len(due)} check(s) fall due within {window} day(s)",
            priority=AlertPriority.medium,
            action_required=True,
            action_url="/checks",
            action_text="View checks",
        )

    def _inactive_customers(self, now: datetime, today: date) -> Optional[SmartAlert]:
        days = self.settings.INACTIVE_CUSTOMER_DAYS
        customers, _ = self.storage.load_models("enhanced_customers", EnhancedCustomer)
        inactive = [
            c for c in customers
            if c.last_purchase_date is None or (today - c.last_purchase_date).days > days
        ]
        if len(inactive) <= self.settings.INACTIVE_CUSTOMER_THRESHOLD:
            return None
        return self._alert(
            "inactive-customers", now,
            type=AlertType.info,
            category=AlertCategory.customers,
            title="Inactive customers",
            message=f"{len(inactive)} customer(s) have not purchased in the last {days} days",
            priority=AlertPriority.low,
            action_required=False,
            action_url="/sales/customers",
            action_text="View customers",
        )

    def _negative_cashflow(self, now: datetime, today: date) -> Optional[SmartAlert]:
        days = self.settings.CASH_FLOW_WINDOW_DAYS
        summary = self.store.cash_flow_summary(today - timedelta(days=days), today)
        if summary.net_cash_flow >= 0:
            return None
        return self._alert(
            "negative-cashflow", now,
            type=AlertType.error,
            category=AlertCategory.financial,
            title="Negative cash flow",
            message=f"Net cash flow over the last {days} days is {summary.net_cash_flow:,.2f}",
            priority=AlertPriority.high,
            action_required=True,
            action_url="/cash-register",
            action_text="Review cash flow",
        )

    def _inactive_suppliers(self, now: datetime, today: date) -> Optional[SmartAlert]:
        days = self.settings.INACTIVE_SUPPLIER_DAYS
        suppliers, _ = self.storage.load_models("enhanced_suppliers", EnhancedSupplier)
        stale = [
            s for s in suppliers
            if s.last_order_date is not None and (today - s.last_order_date).days > days
        ]
        if not stale:
            return None
        return self._alert(
            "inactive-suppliers", now,
            type=AlertType.info,
            category=AlertCategory.system,
            title="Inactive suppliers",
            message=f"{len(stale)} supplier(s) have had no purchase order in the last {days} days",
            priority=AlertPriority.low,
            action_required=False,
            action_url="/purchases/suppliers",
            action_text="View suppliers",
        )

    # ================= SCAN ===================

    def evaluate(self, now: datetime) -> List[SmartAlert]:
        """Run every rule against current data without touching the history."""
        today = now.date()
        rules = [
            lambda: self._low_stock(now),
            lambda: self._overdue_installments(now, today),
            lambda: self._due_checks(now, today),
            lambda: self._inactive_customers(now, today),
            lambda: self._negative_cashflow(now, today),
            lambda: self._inactive_suppliers(now, today),
        ]
        return [alert for alert in (rule() for rule in rules) if alert is not None]

    def scan(self) -> List[SmartAlert]:
        try:
            now = self.clock()
            alerts = self._without_recent_repeats(self.evaluate(now), now)
            if alerts:
                self._save(self.history() + alerts)
            logger.info(f"Generated {len(alerts)} smart alert(s) for tenant {self.storage.tenant_id}")
            return alerts
        except Exception:
            logger.exception("Error generating smart alerts")
            return []

    def _without_recent_repeats(self, alerts: List[SmartAlert], now: datetime) -> List[SmartAlert]:
        cooldown = self.settings.ALERT_REPEAT_COOLDOWN_MINUTES
        if cooldown <= 0:
            return alerts
        cutoff = now - timedelta(minutes=cooldown)
        recent_kinds = {
            a.kind for a in self.history()
            if a.resolved_at is None and _as_aware(a.created_at) > cutoff
        }
        return [a for a in alerts if a.kind not in recent_kinds]

    # ================= HISTORY ===================

    def history(self) -> List[SmartAlert]:
        alerts, _ = self.storage.load_models(ALERTS_KEY, SmartAlert)
        return alerts

    def _save(self, alerts: List[SmartAlert]) -> bool:
        newest_first = sorted(alerts, key=lambda a: _as_aware(a.created_at), reverse=True)
        return self.storage.set_collection(ALERTS_KEY, newest_first[: self.settings.ALERT_HISTORY_LIMIT])

    def unread_alerts(self) -> List[SmartAlert]:
        return [a for a in self.history() if a.read_at is None]

    def active_alerts(self) -> List[SmartAlert]:
        return [a for a in self.history() if a.resolved_at is None]

    def _stamp(self, alert_id: str, field: str) -> Optional[SmartAlert]:
        alerts = self.history()
        target = next((a for a in alerts if a.id == alert_id), None)
        if target is None:
            return None
        if getattr(target, field) is None:
            setattr(target, field, self.clock())
            if not self._save(alerts):
                return None
        return target

    def mark_read(self, alert_id: str) -> Optional[SmartAlert]:
        return self._stamp(alert_id, "read_at")

    def resolve_alert(self, alert_id: str) -> Optional[SmartAlert]:
        return self._stamp(alert_id, "resolved_at")

    def statistics(self) -> AlertStatistics:
        alerts = self.history()
        return AlertStatistics(
            total=len(alerts),
            unread=sum(1 for a in alerts if a.read_at is None),
            unresolved=sum(1 for a in alerts if a.resolved_at is None),
            action_required=sum(1 for a in alerts if a.action_required and a.resolved_at is None),
            by_type=dict(Counter(a.type.value for a in alerts)),
            by_priority=dict(Counter(a.priority.value for a in alerts)),
            by_category=dict(Counter(a.category.value for a in alerts)),
        )
