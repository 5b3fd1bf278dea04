# cashbook/models/__init__.py
from .ledger import LedgerEntry, LedgerRemoval, Direction, LedgerCategory, PaymentMethod
from .storage import TenantRecord
