from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime

from cashbook.schemas.conflict import ConflictPolicy

DateType = date


class ReportPeriod(BaseModel):
    start: DateType
    end: DateType


class TopCustomer(BaseModel):
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    total_purchases: int = 0
    total_amount: Decimal = Decimal("0")


class TopProduct(BaseModel):
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    total_sold: Decimal = Decimal("0")
    total_revenue: Decimal = Decimal("0")


class LoyalCustomer(BaseModel):
    customer_id: str
    customer_name: str = ""
    loyalty_points: int = 0
    total_purchases: Decimal = Decimal("0")


class SalesSection(BaseModel):
    total_revenue: Decimal = Decimal("0")
    total_invoices: int = 0
    average_order_value: Decimal = Decimal("0")
    top_customers: List[TopCustomer] = Field(default_factory=list)


class InventorySection(BaseModel):
    total_value: Decimal = Decimal("0")
    low_stock_items: int = 0
    total_movements: Decimal = Decimal("0")
    top_products: List[TopProduct] = Field(default_factory=list)


class FinancialSection(BaseModel):
    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    net_profit: Decimal = Decimal("0")
    profit_margin: float = 0.0
    cash_flow: Decimal = Decimal("0")


class CustomersSection(BaseModel):
    total_customers: int = 0
    active_customers: int = 0
    new_customers: int = 0
    top_loyal_customers: List[LoyalCustomer] = Field(default_factory=list)


class InstallmentsSection(BaseModel):
    total_installments: int = 0
    paid_installments: int = 0
    overdue_installments: int = 0
    total_amount: Decimal = Decimal("0")
    paid_amount: Decimal = Decimal("0")
    remaining_amount: Decimal = Decimal("0")


class ChecksSection(BaseModel):
    total_checks: int = 0
    cleared_checks: int = 0
    pending_checks: int = 0
    bounced_checks: int = 0
    total_amount: Decimal = Decimal("0")


class UnifiedReport(BaseModel):
    period: ReportPeriod
    sales: SalesSection = Field(default_factory=SalesSection)
    inventory: InventorySection = Field(default_factory=InventorySection)
    financial: FinancialSection = Field(default_factory=FinancialSection)
    customers: CustomersSection = Field(default_factory=CustomersSection)
    installments: InstallmentsSection = Field(default_factory=InstallmentsSection)
    checks: ChecksSection = Field(default_factory=ChecksSection)


class IntegrationStats(BaseModel):
    total_customers: int = 0
    total_suppliers: int = 0
    active_alerts: int = 0
    last_update: Optional[datetime] = None
    integration_level: int = 0


class SyncResult(BaseModel):
    reference_type: str
    settled: int = 0
    appended: int = 0
    unsettled: int = 0
    removed: int = 0
    corrected: int = 0
    suppressed: int = 0
    skipped: int = 0


class IntegrationPassResult(BaseModel):
    success: bool = True
    started_at: datetime
    finished_at: Optional[datetime] = None
    sync: List[SyncResult] = Field(default_factory=list)
    conflicts_found: int = 0
    policy: Optional[ConflictPolicy] = None
    policy_applied: bool = False
    customers_recomputed: int = 0
    suppliers_recomputed: int = 0
    alerts_raised: int = 0
    errors: List[str] = Field(default_factory=list)
