from decimal import Decimal
from pydantic import AliasChoices, BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import date, datetime

from cashbook.models.ledger import Direction, LedgerCategory, PaymentMethod

# Alias to avoid field name 'date' shadowing type 'date' in annotations (Pydantic v2)
DateType = date


class LedgerEntryCreate(BaseModel):
    """Draft of a ledger entry produced by a source adapter before it is appended."""
    date: DateType
    direction: Direction
    category: LedgerCategory = LedgerCategory.other
    subcategory: Optional[str] = None
    amount: Decimal = Field(..., ge=0)
    description: str = ""
    payment_method: PaymentMethod = PaymentMethod.cash
    reference_id: str = Field(..., min_length=1)
    reference_type: str = Field(..., min_length=1)
    notes: Optional[str] = None
    created_by: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class LedgerEntryResponse(BaseModel):
    id: str
    date: DateType
    direction: Direction
    category: LedgerCategory
    subcategory: Optional[str] = None
    amount: Decimal
    description: str
    payment_method: PaymentMethod
    reference_id: str
    reference_type: str
    notes: Optional[str] = None
    created_by: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias=AliasChoices("meta", "metadata"))
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LedgerFilter(BaseModel):
    direction: Optional[Direction] = None
    category: Optional[LedgerCategory] = None
    reference_type: Optional[str] = None
    start_date: Optional[DateType] = None
    end_date: Optional[DateType] = None
    search: Optional[str] = None


class CashFlowSummary(BaseModel):
    start_date: Optional[DateType] = None
    end_date: Optional[DateType] = None
    total_income: Decimal = Decimal("0.00")
    total_expenses: Decimal = Decimal("0.00")
    net_cash_flow: Decimal = Decimal("0.00")
    transaction_count: int = 0
    by_category: Dict[str, Decimal] = Field(default_factory=dict)


class LedgerListResponse(BaseModel):
    data: List[LedgerEntryResponse]
    count: int
    totals: CashFlowSummary
