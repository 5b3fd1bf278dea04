from decimal import Decimal
from typing import Iterable, List, Optional

from cashbook.core.config import Settings
from cashbook.logger_config import logger
from cashbook.schemas.enhanced import EnhancedCustomer, EnhancedSupplier, RollupResult
from cashbook.schemas.records import (
    CheckRecord,
    CustomerRecord,
    InstallmentRecord,
    PurchaseInvoiceRecord,
    SaleInvoiceRecord,
    SupplierPaymentRecord,
    SupplierRecord,
)
from cashbook.services.storage_service import StorageService

ZERO = Decimal("0")


def _sum(values: Iterable[Decimal]) -> Decimal:
    return sum((Decimal(v) for v in values), ZERO)


# ==================== PURE ROLLUPS ====================

def build_enhanced_customer(
    customer_id: str,
    customer: Optional[CustomerRecord],
    invoices: List[SaleInvoiceRecord],
    installments: List[InstallmentRecord],
    checks: List[CheckRecord],
    default_credit_limit: Decimal = Decimal("10000"),
    loyalty_unit: int = 100,
) -> EnhancedCustomer:
    """Customer projection from its master record and the subsystem records that mention it."""
    own_invoices = [
        inv for inv in invoices
        if inv.customer_id == customer_id and inv.status != "cancelled"
    ]
    own_installments = [inst for inst in installments if inst.customer_id == customer_id]
    own_checks = [check for check in checks if check.customer_id == customer_id]

    total_purchases = _sum(inv.total for inv in own_invoices)
    total_installments = _sum(inst.amount for inst in own_installments)
    pending_installments = _sum(
        inst.remaining_amount if inst.remaining_amount is not None else inst.amount
        for inst in own_installments
        if inst.status == "pending"
    )
    total_checks = _sum(check.amount for check in own_checks)
    pending_checks = _sum(check.amount for check in own_checks if check.status == "pending")

    base = {}
    credit_limit = default_credit_limit
    if customer is not None:
        base = customer.model_dump(include={"name", "email", "phone", "address", "created_at"})
        if customer.credit_limit:
            credit_limit = customer.credit_limit

    return EnhancedCustomer(
        id=customer_id,
        **base,
        total_purchases=total_purchases,
        total_installments=total_installments,
        pending_installments=pending_installments,
        total_checks=total_checks,
        pending_checks=pending_checks,
        last_purchase_date=max((inv.date for inv in own_invoices), default=None),
        credit_limit=credit_limit,
        current_balance=pending_installments + pending_checks,
        loyalty_points=int(total_purchases // loyalty_unit) if total_purchases > 0 else 0,
    )


def build_enhanced_supplier(
    supplier_id: str,
    supplier: Optional[SupplierRecord],
    purchase_invoices: List[PurchaseInvoiceRecord],
    payments: List[SupplierPaymentRecord],
    default_rating: float = 4.0,
) -> EnhancedSupplier:
    """Supplier projection from its master record, purchase invoices and payments."""
    orders = [
        order for order in purchase_invoices
        if order.supplier_id == supplier_id and order.status != "cancelled"
    ]
    own_payments = [p for p in payments if p.supplier_id == supplier_id and p.status == "paid"]

    total_purchases = _sum(order.total for order in orders)
    total_payments = _sum(p.amount for p in own_payments)

    delivered = [o for o in orders if o.status == "received" and o.received_date]
    average_delivery_time = 0
    if delivered:
        total_days = sum((o.received_date - o.date).days for o in delivered)
        average_delivery_time = round(total_days / len(delivered))

    base = {}
    rating = default_rating
    if supplier is not None:
        base = supplier.model_dump(include={"name", "email", "phone", "address", "created_at"})
        if supplier.rating is not None:
            rating = supplier.rating

    return EnhancedSupplier(
        id=supplier_id,
        **base,
        total_purchases=total_purchases,
        total_payments=total_payments,
        pending_payments=max(ZERO, total_purchases - total_payments),
        average_delivery_time=average_delivery_time,
        quality_rating=rating,
        last_order_date=max((o.date for o in orders), default=None),
    )


# ==================== STORAGE-BACKED AGGREGATOR ====================

class RollupAggregator:
    """Recomputes the enhanced customer/supplier projections kept in tenant storage."""

    def __init__(self, storage: StorageService, settings: Settings):
        self.storage = storage
        self.default_credit_limit = Decimal(str(settings.DEFAULT_CREDIT_LIMIT))
        self.default_rating = settings.DEFAULT_SUPPLIER_RATING
        self.loyalty_unit = settings.LOYALTY_POINT_UNIT

    def _customer_inputs(self):
        customers, _ = self.storage.load_models("customers", CustomerRecord)
        invoices, _ = self.storage.load_models("sales_invoices", SaleInvoiceRecord)
        installments, _ = self.storage.load_models("installments", InstallmentRecord)
        checks, _ = self.storage.load_models("checks", CheckRecord)
        return customers, invoices, installments, checks

    def _supplier_inputs(self):
        suppliers, _ = self.storage.load_models("suppliers", SupplierRecord)
        orders, _ = self.storage.load_models("purchase_invoices", PurchaseInvoiceRecord)
        payments, _ = self.storage.load_models("supplier_payments", SupplierPaymentRecord)
        return suppliers, orders, payments

    def _customer(self, customer_id, customer, invoices, installments, checks) -> EnhancedCustomer:
        return build_enhanced_customer(
            customer_id, customer, invoices, installments, checks,
            default_credit_limit=self.default_credit_limit,
            loyalty_unit=self.loyalty_unit,
        )

    def recompute_customer(self, customer_id: str) -> EnhancedCustomer:
        try:
            customers, invoices, installments, checks = self._customer_inputs()
            customer = next((c for c in customers if c.id == customer_id), None)
            if customer is None:
                logger.warning(f"Customer {customer_id} not found; derived fields default to zero")
                return EnhancedCustomer(id=customer_id, credit_limit=self.default_credit_limit)
            enhanced = self._customer(customer_id, customer, invoices, installments, checks)
            self._replace("enhanced_customers", enhanced)
            return enhanced
        except Exception:
            logger.exception(f"Error recomputing customer {customer_id}")
            return EnhancedCustomer(id=customer_id, credit_limit=self.default_credit_limit)

    def recompute_supplier(self, supplier_id: str) -> EnhancedSupplier:
        try:
            suppliers, orders, payments = self._supplier_inputs()
            supplier = next((s for s in suppliers if s.id == supplier_id), None)
            if supplier is None:
                logger.warning(f"Supplier {supplier_id} not found; derived fields default to zero")
                return EnhancedSupplier(id=supplier_id, quality_rating=self.default_rating)
            enhanced = build_enhanced_supplier(supplier_id, supplier, orders, payments, self.default_rating)
            self._replace("enhanced_suppliers", enhanced)
            return enhanced
        except Exception:
            logger.exception(f"Error recomputing supplier {supplier_id}")
            return EnhancedSupplier(id=supplier_id, quality_rating=self.default_rating)

    def recompute_all(self) -> RollupResult:
        result = RollupResult()
        try:
            customers, invoices, installments, checks = self._customer_inputs()
            enhanced_customers = [
                self._customer(c.id, c, invoices, installments, checks) for c in customers
            ]
            if self.storage.set_collection("enhanced_customers", enhanced_customers):
                result.customers = len(enhanced_customers)
            logger.info(f"Updated {result.customers} enhanced customer(s)")
        except Exception:
            logger.exception("Error updating enhanced customers")

        try:
            suppliers, orders, payments = self._supplier_inputs()
            enhanced_suppliers = [
                build_enhanced_supplier(s.id, s, orders, payments, self.default_rating) for s in suppliers
            ]
            if self.storage.set_collection("enhanced_suppliers", enhanced_suppliers):
                result.suppliers = len(enhanced_suppliers)
            logger.info(f"Updated {result.suppliers} enhanced supplier(s)")
        except Exception:
            logger.exception("Error updating enhanced suppliers")

        return result

    def enhanced_customers(self) -> List[EnhancedCustomer]:
        customers, _ = self.storage.load_models("enhanced_customers", EnhancedCustomer)
        return customers

    def enhanced_suppliers(self) -> List[EnhancedSupplier]:
        suppliers, _ = self.storage.load_models("enhanced_suppliers", EnhancedSupplier)
        return suppliers

    def _replace(self, collection: str, projection) -> None:
        records = [r for r in self.storage.get_collection(collection) if r.get("id") != projection.id]
        records.append(projection.model_dump(mode="json"))
        self.storage.set(collection, records)
