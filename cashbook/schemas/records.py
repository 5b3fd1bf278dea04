"""
Subsystem record shapes as they are kept in tenant storage.

Each schema validates one raw JSON record from a storage collection. Fields a
source adapter needs to build a ledger entry (id, amount, date) are required;
everything else is optional so partially filled records from older clients
still load. Unknown keys are kept so records round-trip untouched.
"""

from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime

from cashbook.models.ledger import Direction, PaymentMethod

DateType = date


class SourceRecord(BaseModel):
    id: str = Field(..., min_length=1)

    class Config:
        extra = "allow"
        coerce_numbers_to_str = True


# ==================== LEDGER-PRODUCING RECORDS ====================

class CashRegisterRecord(SourceRecord):
    """Manual cash-register entry; always represents settled cash."""
    date: DateType
    direction: Direction
    category: str = "other"
    amount: Decimal = Field(..., ge=0)
    description: str = ""
    payment_method: PaymentMethod = PaymentMethod.cash
    notes: Optional[str] = None
    created_by: Optional[str] = None


class ExpenseRecord(SourceRecord):
    description: str = ""
    amount: Decimal = Field(..., ge=0)
    category: str = "أخرى"
    date: DateType
    notes: Optional[str] = None
    status: str = "pending"  # paid / pending
    employee_id: Optional[str] = None
    employee_name: Optional[str] = None
    created_by: Optional[str] = None


class SaleItemRecord(BaseModel):
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    quantity: Decimal = Decimal("0")
    total: Decimal = Decimal("0")

    class Config:
        extra = "allow"
        coerce_numbers_to_str = True


class SaleInvoiceRecord(SourceRecord):
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    date: DateType
    total: Decimal = Field(..., ge=0)
    status: str = "paid"  # paid / pending / installment / cancelled
    payment_method: PaymentMethod = PaymentMethod.cash
    items: List[SaleItemRecord] = Field(default_factory=list)


class SupplierPaymentRecord(SourceRecord):
    supplier_id: Optional[str] = None
    supplier_name: Optional[str] = None
    purchase_invoice_id: Optional[str] = None
    amount: Decimal = Field(..., ge=0)
    date: DateType
    payment_method: PaymentMethod = PaymentMethod.cash
    status: str = "paid"
    notes: Optional[str] = None


class InstallmentRecord(SourceRecord):
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    amount: Decimal = Field(..., ge=0)
    paid_amount: Optional[Decimal] = None
    remaining_amount: Optional[Decimal] = None
    due_date: DateType
    status: str = "pending"  # pending / paid / overdue
    invoice_id: Optional[str] = None
    paid_date: Optional[DateType] = None
    payment_method: PaymentMethod = PaymentMethod.cash


class CheckRecord(SourceRecord):
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    amount: Decimal = Field(..., ge=0)
    bank_name: Optional[str] = None
    check_number: Optional[str] = None
    due_date: DateType
    status: str = "pending"  # pending / cleared / bounced
    date_received: Optional[DateType] = None
    cleared_date: Optional[DateType] = None


class PayrollRecord(SourceRecord):
    employee_id: Optional[str] = None
    employee_name: Optional[str] = None
    amount: Decimal = Field(..., ge=0)
    category: str = "salary"
    period: Optional[str] = None
    pay_date: DateType
    status: str = "pending"  # paid / pending
    payment_method: PaymentMethod = PaymentMethod.cash


# ==================== MASTER / REFERENCE RECORDS ====================

class CustomerRecord(SourceRecord):
    name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    credit_limit: Optional[Decimal] = None
    created_at: Optional[datetime] = None


class SupplierRecord(SourceRecord):
    name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    rating: Optional[float] = None
    created_at: Optional[datetime] = None


class PurchaseInvoiceRecord(SourceRecord):
    supplier_id: Optional[str] = None
    supplier_name: Optional[str] = None
    date: DateType
    total: Decimal = Decimal("0")
    status: str = "pending"  # pending / received / cancelled
    received_date: Optional[DateType] = None


class ProductRecord(SourceRecord):
    name: str = ""
    quantity: Decimal = Decimal("0")
    min_quantity: Decimal = Decimal("0")
    cost: Decimal = Decimal("0")
