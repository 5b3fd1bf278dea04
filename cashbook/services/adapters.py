"""
Source adapters: translate settled subsystem records into ledger entries.

Every adapter owns exactly one ``reference_type`` and only ever writes or
removes ledger entries carrying it. Re-running an adapter over the same
records is safe because the ledger refuses a second entry with the same
provenance key.
"""

from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Set, Type

from pydantic import ValidationError

from cashbook.common.exceptions import MalformedRecordError
from cashbook.core.config import Settings
from cashbook.logger_config import logger
from cashbook.models.ledger import MANUAL_REFERENCE, Direction, LedgerCategory, LedgerEntry, PaymentMethod
from cashbook.schemas.ledger import LedgerEntryCreate, LedgerFilter
from cashbook.schemas.records import (
    CashRegisterRecord,
    CheckRecord,
    ExpenseRecord,
    InstallmentRecord,
    PayrollRecord,
    SaleInvoiceRecord,
    SourceRecord,
    SupplierPaymentRecord,
)
from cashbook.schemas.report import SyncResult
from cashbook.services.ledger_store import LedgerStore, to_money

ManualGuard = Callable[[LedgerEntryCreate], bool]

APPENDED = "appended"
EXISTING = "existing"
CORRECTED = "corrected"
SUPPRESSED = "suppressed"
FAILED = "failed"


class SourceAdapter:
    reference_type: str = ""
    collection: str = ""
    source_system: str = ""
    record_model: Type[SourceRecord] = SourceRecord
    direction: Direction = Direction.expense

    def __init__(
        self,
        store: LedgerStore,
        category_map: Optional[Dict[str, str]] = None,
        provenance_tag: Optional[str] = None,
        manual_guard: Optional[ManualGuard] = None,
    ):
        self.store = store
        self.category_map = dict(category_map or {})
        self.provenance_tag = provenance_tag if provenance_tag is not None else f"[{self.reference_type}]"
        self.manual_guard = manual_guard

    # ================= RECORD INTERPRETATION ===================

    def is_settled(self, record) -> bool:
        return getattr(record, "status", None) == "paid"

    def label(self, record) -> str:
        return getattr(record, "category", None) or self.source_system

    def entry_date(self, record):
        return record.date

    def entry_amount(self, record) -> Decimal:
        return record.amount

    def entry_direction(self, record) -> Direction:
        return self.direction

    def entry_payment_method(self, record) -> PaymentMethod:
        return getattr(record, "payment_method", None) or PaymentMethod.cash

    def entry_text(self, record) -> str:
        return getattr(record, "description", "") or ""

    def entry_metadata(self, record) -> dict:
        return {
            "source_system": self.source_system,
            "original_category": self.label(record),
            "auto_synced": True,
        }

    def map_category(self, label: str) -> LedgerCategory:
        mapped = self.category_map.get(label)
        if mapped is None:
            return LedgerCategory.other
        try:
            return LedgerCategory(mapped)
        except ValueError:
            logger.warning(f"{self.reference_type}: category map sends '{label}' to unknown '{mapped}'; using other")
            return LedgerCategory.other

    def describe(self, record) -> str:
        return f"{self.provenance_tag} {self.entry_text(record)}".strip()

    def build_entry(self, record) -> LedgerEntryCreate:
        label = self.label(record)
        return LedgerEntryCreate(
            date=self.entry_date(record),
            direction=self.entry_direction(record),
            category=self.map_category(label),
            subcategory=label,
            amount=self.entry_amount(record),
            description=self.describe(record),
            payment_method=self.entry_payment_method(record),
            reference_id=record.id,
            reference_type=self.reference_type,
            notes=getattr(record, "notes", None),
            created_by=getattr(record, "created_by", None),
            metadata=self.entry_metadata(record),
        )

    def parse(self, raw: dict):
        try:
            return self.record_model.model_validate(raw)
        except ValidationError as e:
            missing = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise MalformedRecordError(self.reference_type, raw.get("id"), f"invalid fields: {missing}") from e

    # ================= LEDGER OPERATIONS ===================

    @staticmethod
    def _matches(entry: LedgerEntry, draft: LedgerEntryCreate) -> bool:
        return (
            to_money(entry.amount) == to_money(draft.amount)
            and entry.date == draft.date
            and entry.direction == draft.direction
        )

    def _settle(self, record) -> str:
        try:
            draft = self.build_entry(record)
        except ValidationError as e:
            raise MalformedRecordError(self.reference_type, record.id, "cannot build ledger entry") from e

        existing = self.store.get_by_provenance(record.id, self.reference_type)
        if existing is not None:
            if self._matches(existing, draft):
                return EXISTING
            # the record was edited while settled: replace its entry
            logger.info(
                f"{self.reference_type}:{record.id} changed "
                f"({existing.amount} on {existing.date} -> {draft.amount} on {draft.date}); re-ledgering"
            )
            if not self.store.remove_by_provenance(record.id, self.reference_type, reason="corrected"):
                return FAILED
            return CORRECTED if self.store.append(draft) is not None else FAILED

        if self.manual_guard is not None and self.manual_guard(draft):
            logger.info(f"{self.reference_type}:{record.id} has a manual equivalent; not synced")
            return SUPPRESSED

        entry = self.store.append(draft)
        if entry is None:
            return EXISTING if self.store.get_by_provenance(record.id, self.reference_type) else FAILED
        return APPENDED

    def on_settled(self, record) -> Optional[LedgerEntry]:
        """Ledger the settled record once; returns the stored entry (None when suppressed or failed)."""
        self._settle(record)
        return self.store.get_by_provenance(record.id, self.reference_type)

    def on_unsettled(self, record) -> bool:
        return self.store.remove_by_provenance(record.id, self.reference_type, reason="unsettled")

    def sync(self, raw_records: Iterable[dict]) -> SyncResult:
        """
        Bring this adapter's ledger entries in line with the current records.

        Malformed records are skipped and logged; their existing ledger entries
        are left alone. Entries whose record disappeared are removed, and
        entries whose record was edited are removed and re-appended.
        """
        result = SyncResult(reference_type=self.reference_type)
        keep_ids: Set[str] = set()

        for raw in raw_records:
            if raw.get("id") is not None:
                keep_ids.add(str(raw.get("id")))
            try:
                record = self.parse(raw)
                outcome = self._settle(record) if self.is_settled(record) else None
            except MalformedRecordError as e:
                logger.warning(str(e))
                result.skipped += 1
                continue

            if outcome is not None:
                result.settled += 1
                if outcome == APPENDED:
                    result.appended += 1
                elif outcome == CORRECTED:
                    result.corrected += 1
                elif outcome == SUPPRESSED:
                    result.suppressed += 1
                elif outcome == FAILED:
                    result.skipped += 1
            elif self.on_unsettled(record):
                result.unsettled += 1

        for entry in self.store.list_all(LedgerFilter(reference_type=self.reference_type)):
            if entry.reference_id not in keep_ids:
                if self.store.remove_by_provenance(entry.reference_id, self.reference_type, reason="orphaned"):
                    result.removed += 1

        logger.debug(
            f"Synced {self.reference_type}: {result.appended} appended, {result.unsettled} unsettled, "
            f"{result.removed} removed, {result.corrected} corrected, "
            f"{result.suppressed} suppressed, {result.skipped} skipped"
        )
        return result


class CashRegisterAdapter(SourceAdapter):
    """Direct cash-register entries; these are the 'manual' side of conflict detection."""
    reference_type = MANUAL_REFERENCE
    collection = "cash_register"
    source_system = "cash_register"
    record_model = CashRegisterRecord

    def is_settled(self, record) -> bool:
        return True

    def entry_direction(self, record) -> Direction:
        return record.direction

    def entry_metadata(self, record) -> dict:
        return {
            "source_system": self.source_system,
            "original_category": record.category,
            "manual_entry": True,
        }


class ExpenseAdapter(SourceAdapter):
    reference_type = "expense_system"
    collection = "expenses"
    source_system = "expenses"
    record_model = ExpenseRecord
    direction = Direction.expense


class SalesAdapter(SourceAdapter):
    reference_type = "sales_system"
    collection = "sales_invoices"
    source_system = "sales"
    record_model = SaleInvoiceRecord
    direction = Direction.income

    def label(self, record) -> str:
        return "sales_invoice"

    def entry_amount(self, record) -> Decimal:
        return record.total

    def entry_text(self, record) -> str:
        customer = f" - {record.customer_name}" if record.customer_name else ""
        return f"Sales invoice {record.id}{customer}"


class PurchaseAdapter(SourceAdapter):
    """Purchases hit the cash position when the supplier is paid, not when invoiced."""
    reference_type = "purchase_system"
    collection = "supplier_payments"
    source_system = "purchases"
    record_model = SupplierPaymentRecord
    direction = Direction.expense

    def label(self, record) -> str:
        return "supplier_payment"

    def entry_text(self, record) -> str:
        parts = [f"Supplier payment {record.id}"]
        if record.supplier_name:
            parts.append(record.supplier_name)
        if record.purchase_invoice_id:
            parts.append(f"invoice {record.purchase_invoice_id}")
        return " - ".join(parts)


class InstallmentAdapter(SourceAdapter):
    reference_type = "installment_system"
    collection = "installments"
    source_system = "installments"
    record_model = InstallmentRecord
    direction = Direction.income

    def label(self, record) -> str:
        return "installment"

    def entry_date(self, record):
        return record.paid_date or record.due_date

    def entry_amount(self, record) -> Decimal:
        return record.paid_amount if record.paid_amount else record.amount

    def entry_text(self, record) -> str:
        customer = f" - {record.customer_name}" if record.customer_name else ""
        return f"Installment {record.id}{customer}"


class CheckAdapter(SourceAdapter):
    reference_type = "check_system"
    collection = "checks"
    source_system = "checks"
    record_model = CheckRecord
    direction = Direction.income

    def is_settled(self, record) -> bool:
        return record.status == "cleared"

    def label(self, record) -> str:
        return "customer_check"

    def entry_date(self, record):
        return record.cleared_date or record.due_date

    def entry_payment_method(self, record) -> PaymentMethod:
        return PaymentMethod.check

    def entry_text(self, record) -> str:
        number = record.check_number or record.id
        customer = f" - {record.customer_name}" if record.customer_name else ""
        return f"Check {number}{customer}"


class PayrollAdapter(SourceAdapter):
    reference_type = "payroll_system"
    collection = "payroll"
    source_system = "payroll"
    record_model = PayrollRecord
    direction = Direction.expense

    def entry_date(self, record):
        return record.pay_date

    def entry_text(self, record) -> str:
        period = f" ({record.period})" if record.period else ""
        return f"Salary {record.employee_name or record.employee_id or record.id}{period}"


ADAPTER_CLASSES: List[Type[SourceAdapter]] = [
    CashRegisterAdapter,
    ExpenseAdapter,
    SalesAdapter,
    PurchaseAdapter,
    InstallmentAdapter,
    CheckAdapter,
    PayrollAdapter,
]


def build_adapters(
    store: LedgerStore,
    settings: Settings,
    manual_guard: Optional[ManualGuard] = None,
) -> List[SourceAdapter]:
    """One adapter per subsystem, configured with its category map and provenance tag."""
    adapters = []
    for adapter_cls in ADAPTER_CLASSES:
        adapters.append(adapter_cls(
            store,
            category_map=settings.category_map_for(adapter_cls.reference_type),
            provenance_tag=settings.provenance_tag_for(adapter_cls.reference_type),
            # manual entries never need guarding against themselves
            manual_guard=None if adapter_cls.reference_type == MANUAL_REFERENCE else manual_guard,
        ))
    return adapters
