import enum
import secrets
import string
from sqlalchemy import JSON, Column, Date, DateTime, Enum, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.sql import func
from cashbook.core.database import Base


def generate_custom_id(prefix: str, length: int = 8) -> str:
    random_part = ''.join(secrets.choice(string.ascii_uppercase)
                          for _ in range(length))
    return f"{prefix}-{random_part}"


class Direction(str, enum.Enum):
    income = "income"
    expense = "expense"


class LedgerCategory(str, enum.Enum):
    sales = "sales"
    purchases = "purchases"
    payroll = "payroll"
    utilities = "utilities"
    rent = "rent"
    marketing = "marketing"
    other = "other"


class PaymentMethod(str, enum.Enum):
    cash = "cash"
    bank = "bank"
    card = "card"
    check = "check"


MANUAL_REFERENCE = "manual"


class LedgerEntry(Base):
    """One recorded cash movement, keyed by the subsystem event that produced it."""
    __tablename__ = "ledger_entries"
    __table_args__ = (
        UniqueConstraint("tenant_id", "reference_id", "reference_type", name="uq_ledger_provenance"),
    )

    id = Column(String(20), primary_key=True, default=lambda: generate_custom_id("TRX"))
    tenant_id = Column(String(64), nullable=False, index=True)

    date = Column(Date, nullable=False)
    direction = Column(Enum(Direction), nullable=False)
    category = Column(Enum(LedgerCategory), nullable=False, default=LedgerCategory.other)
    subcategory = Column(String(100), nullable=True)
    amount = Column(Numeric(15, 2), nullable=False)
    description = Column(Text, nullable=False, default="")
    payment_method = Column(Enum(PaymentMethod), nullable=False, default=PaymentMethod.cash)

    reference_id = Column(String(64), nullable=False)   # EXP-xxx / SINV-xxx / ...
    reference_type = Column(String(40), nullable=False)  # manual / expense_system / ...

    notes = Column(Text, nullable=True)
    created_by = Column(String(100), nullable=True)
    meta = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def provenance(self) -> tuple:
        return (self.reference_id, self.reference_type)

    @property
    def signed_amount(self):
        return self.amount if self.direction == Direction.income else -self.amount

    def __repr__(self):
        return f"<LedgerEntry(id='{self.id}', ref='{self.reference_type}:{self.reference_id}', amount={self.amount})>"


class LedgerRemoval(Base):
    """Audit trail of ledger entries removed by provenance key."""
    __tablename__ = "ledger_removals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    entry_id = Column(String(20), nullable=False)
    reference_id = Column(String(64), nullable=False)
    reference_type = Column(String(40), nullable=False)
    reason = Column(String(50), nullable=False)
    snapshot = Column(JSON, nullable=False)
    removed_at = Column(DateTime(timezone=True), server_default=func.now())
