from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime


class EnhancedCustomer(BaseModel):
    """Customer projection recomputed from sales, installments and checks."""
    id: str
    name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    total_purchases: Decimal = Decimal("0")
    total_installments: Decimal = Decimal("0")
    pending_installments: Decimal = Decimal("0")
    total_checks: Decimal = Decimal("0")
    pending_checks: Decimal = Decimal("0")
    last_purchase_date: Optional[date] = None
    credit_limit: Decimal = Decimal("10000")
    current_balance: Decimal = Decimal("0")
    loyalty_points: int = 0
    created_at: Optional[datetime] = None


class EnhancedSupplier(BaseModel):
    """Supplier projection recomputed from purchase invoices and payments."""
    id: str
    name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    total_purchases: Decimal = Decimal("0")
    total_payments: Decimal = Decimal("0")
    pending_payments: Decimal = Decimal("0")
    average_delivery_time: int = 0
    quality_rating: float = 4.0
    last_order_date: Optional[date] = None
    created_at: Optional[datetime] = None


class EnhancedCustomerListResponse(BaseModel):
    total: int
    customers: List[EnhancedCustomer] = Field(default_factory=list)


class EnhancedSupplierListResponse(BaseModel):
    total: int
    suppliers: List[EnhancedSupplier] = Field(default_factory=list)


class RollupResult(BaseModel):
    customers: int = 0
    suppliers: int = 0
