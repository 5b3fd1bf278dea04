from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from cashbook.core.config import Settings
from cashbook.logger_config import logger
from cashbook.schemas.alert import SmartAlert
from cashbook.schemas.enhanced import EnhancedCustomer, EnhancedSupplier
from cashbook.schemas.records import (
    CheckRecord,
    InstallmentRecord,
    ProductRecord,
    SaleInvoiceRecord,
)
from cashbook.schemas.report import (
    ChecksSection,
    CustomersSection,
    FinancialSection,
    InstallmentsSection,
    IntegrationStats,
    InventorySection,
    LoyalCustomer,
    ReportPeriod,
    SalesSection,
    TopCustomer,
    TopProduct,
    UnifiedReport,
)
from cashbook.services.alert_engine import ALERTS_KEY, Clock, utc_now
from cashbook.services.ledger_store import LedgerStore, to_money
from cashbook.services.storage_service import StorageService

LAST_UPDATE_KEY = "last_integration_update"
TOP_N = 5
ZERO = Decimal("0")


def _in_period(value: Optional[date], start: date, end: date) -> bool:
    return value is not None and start <= value <= end


class ReportService:
    """Cross-module report for a period plus the integration health summary."""

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

    # ================= UNIFIED REPORT ===================

    def _sales(self, invoices: List[SaleInvoiceRecord]) -> SalesSection:
        revenue = sum((inv.total for inv in invoices), ZERO)
        by_customer: Dict[Optional[str], TopCustomer] = {}
        for inv in invoices:
            row = by_customer.setdefault(
                inv.customer_id,
                TopCustomer(customer_id=inv.customer_id, customer_name=inv.customer_name),
            )
            row.total_purchases += 1
            row.total_amount += inv.total

        return SalesSection(
            total_revenue=to_money(revenue),
            total_invoices=len(invoices),
            average_order_value=to_money(revenue / len(invoices)) if invoices else Decimal("0.00"),
            top_customers=sorted(by_customer.values(), key=lambda c: c.total_amount, reverse=True)[:TOP_N],
        )

    def _inventory(self, products: List[ProductRecord], invoices: List[SaleInvoiceRecord]) -> InventorySection:
        by_product: Dict[Optional[str], TopProduct] = {}
        movements = ZERO
        for inv in invoices:
            for item in inv.items:
                row = by_product.setdefault(
                    item.product_id,
                    TopProduct(product_id=item.product_id, product_name=item.product_name),
                )
                row.total_sold += item.quantity
                row.total_revenue += item.total
                movements += item.quantity

        return InventorySection(
            total_value=to_money(sum((p.quantity * p.cost for p in products), ZERO)),
            low_stock_items=sum(1 for p in products if p.quantity <= p.min_quantity),
            total_movements=movements,
            top_products=sorted(by_product.values(), key=lambda p: p.total_revenue, reverse=True)[:TOP_N],
        )

    def _financial(self, start: date, end: date) -> FinancialSection:
        summary = self.store.cash_flow_summary(start, end)
        net_profit = summary.total_income - summary.total_expenses
        margin = float(net_profit / summary.total_income * 100) if summary.total_income > 0 else 0.0
        return FinancialSection(
            total_income=summary.total_income,
            total_expenses=summary.total_expenses,
            net_profit=net_profit,
            profit_margin=round(margin, 2),
            cash_flow=summary.net_cash_flow,
        )

    def _customers(self, start: date, end: date, today: date) -> CustomersSection:
        customers, _ = self.storage.load_models("enhanced_customers", EnhancedCustomer)
        active_since = today - timedelta(days=self.settings.INACTIVE_CUSTOMER_DAYS)
        loyal = sorted(customers, key=lambda c: c.loyalty_points, reverse=True)[:TOP_N]
        return CustomersSection(
            total_customers=len(customers),
            active_customers=sum(
                1 for c in customers if c.last_purchase_date and c.last_purchase_date >= active_since
            ),
            new_customers=sum(
                1 for c in customers if c.created_at and _in_period(c.created_at.date(), start, end)
            ),
            top_loyal_customers=[
                LoyalCustomer(
                    customer_id=c.id,
                    customer_name=c.name,
                    loyalty_points=c.loyalty_points,
                    total_purchases=c.total_purchases,
                )
                for c in loyal
            ],
        )

    def _installments(self, installments: List[InstallmentRecord], today: date) -> InstallmentsSection:
        paid = [i for i in installments if i.status == "paid"]
        total_amount = sum((i.amount for i in installments), ZERO)
        paid_amount = sum((i.paid_amount or i.amount for i in paid), ZERO)
        return InstallmentsSection(
            total_installments=len(installments),
            paid_installments=len(paid),
            overdue_installments=sum(
                1 for i in installments if i.status == "pending" and i.due_date < today
            ),
            total_amount=total_amount,
            paid_amount=paid_amount,
            remaining_amount=total_amount - paid_amount,
        )

    def _checks(self, checks: List[CheckRecord]) -> ChecksSection:
        statuses = [c.status for c in checks]
        return ChecksSection(
            total_checks=len(checks),
            cleared_checks=statuses.count("cleared"),
            pending_checks=statuses.count("pending"),
            bounced_checks=statuses.count("bounced"),
            total_amount=sum((c.amount for c in checks), ZERO),
        )

    def generate_unified_report(self, start: date, end: date) -> UnifiedReport:
        """
        Everything that happened between ``start`` and ``end`` (inclusive).

        Sales, installments and checks are filtered to the period by their
        own dates; inventory value and customer totals are current figures.
        """
        if start > end:
            raise ValueError("start date must not be after end date")

        today = self.clock().date()
        invoices, _ = self.storage.load_models("sales_invoices", SaleInvoiceRecord)
        invoices = [inv for inv in invoices if _in_period(inv.date, start, end) and inv.status != "cancelled"]
        products, _ = self.storage.load_models("products", ProductRecord)
        installments, _ = self.storage.load_models("installments", InstallmentRecord)
        installments = [i for i in installments if _in_period(i.due_date, start, end)]
        checks, _ = self.storage.load_models("checks", CheckRecord)
        checks = [c for c in checks if _in_period(c.due_date, start, end)]

        report = UnifiedReport(
            period=ReportPeriod(start=start, end=end),
            sales=self._sales(invoices),
            inventory=self._inventory(products, invoices),
            financial=self._financial(start, end),
            customers=self._customers(start, end, today),
            installments=self._installments(installments, today),
            checks=self._checks(checks),
        )
        logger.info(f"Unified report generated for tenant {self.storage.tenant_id} ({start} to {end})")
        return report

    # ================= INTEGRATION STATS ===================

    def integration_level(self) -> int:
        """
        0-100 score made of five 20-point parts: customers with sales,
        invoices with line items, installments linked to a customer,
        checks linked to a customer, and a non-empty ledger.
        """
        try:
            customers, _ = self.storage.load_models("enhanced_customers", EnhancedCustomer)
            invoices = self.storage.get_collection("sales_invoices")
            installments = self.storage.get_collection("installments")
            checks = self.storage.get_collection("checks")

            def share(hits: int, total: int) -> float:
                return min(20.0, hits / max(total, 1) * 20)

            score = share(sum(1 for c in customers if c.total_purchases > 0), len(customers))
            score += share(sum(1 for inv in invoices if inv.get("items")), len(invoices))
            score += share(sum(1 for i in installments if i.get("customer_id")), len(installments))
            score += share(sum(1 for c in checks if c.get("customer_id")), len(checks))
            score += 20 if self.store.cash_flow_summary().transaction_count > 0 else 0
            return round(score)
        except Exception:
            logger.exception("Error calculating integration level")
            return 0

    def integration_stats(self) -> IntegrationStats:
        customers, _ = self.storage.load_models("enhanced_customers", EnhancedCustomer)
        suppliers, _ = self.storage.load_models("enhanced_suppliers", EnhancedSupplier)
        alerts, _ = self.storage.load_models(ALERTS_KEY, SmartAlert)

        last_update = self.storage.get(LAST_UPDATE_KEY)
        try:
            last_update = datetime.fromisoformat(last_update) if last_update else None
        except (TypeError, ValueError):
            logger.warning(f"Ignoring unreadable last integration update {last_update!r}")
            last_update = None

        return IntegrationStats(
            total_customers=len(customers),
            total_suppliers=len(suppliers),
            active_alerts=sum(1 for a in alerts if a.resolved_at is None),
            last_update=last_update,
            integration_level=self.integration_level(),
        )
