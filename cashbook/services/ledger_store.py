from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from cashbook.common.exceptions import ResolutionError
from cashbook.logger_config import logger
from cashbook.models.ledger import Direction, LedgerEntry, LedgerRemoval
from cashbook.schemas.ledger import CashFlowSummary, LedgerEntryCreate, LedgerEntryResponse, LedgerFilter

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT)


class LedgerStore:
    """
    Tenant-scoped ledger of cash movements.

    The (reference_id, reference_type) pair is the idempotency key: appending a
    second entry with the same key is a silent no-op, and removals go through
    the same key only.
    """

    def __init__(self, db: Session, tenant_id: str):
        self.db = db
        self.tenant_id = tenant_id

    def _base_query(self):
        return self.db.query(LedgerEntry).filter(LedgerEntry.tenant_id == self.tenant_id)

    # ================= WRITE ===================

    def append(self, draft: LedgerEntryCreate) -> Optional[LedgerEntry]:
        """Insert a new entry; returns None when the provenance key is already ledgered."""
        if self.get_by_provenance(draft.reference_id, draft.reference_type) is not None:
            logger.debug(f"Ledger already has {draft.reference_type}:{draft.reference_id}; skipping")
            return None

        entry = LedgerEntry(
            tenant_id=self.tenant_id,
            date=draft.date,
            direction=draft.direction,
            category=draft.category,
            subcategory=draft.subcategory,
            amount=to_money(draft.amount),
            description=draft.description,
            payment_method=draft.payment_method,
            reference_id=draft.reference_id,
            reference_type=draft.reference_type,
            notes=draft.notes,
            created_by=draft.created_by,
            meta=draft.metadata,
        )
        self.db.add(entry)
        try:
            self.db.commit()
            self.db.refresh(entry)
            return entry
        except IntegrityError:
            # a concurrent writer inserted the same key between check and insert
            self.db.rollback()
            logger.info(f"Concurrent append of {draft.reference_type}:{draft.reference_id} absorbed")
            return None
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Error appending {draft.reference_type}:{draft.reference_id} to ledger")
            return None

    def remove_by_provenance(self, reference_id: str, reference_type: str, reason: str = "removed") -> bool:
        """Delete the entry with this provenance key; an absent key is a no-op returning False."""
        entry = self.get_by_provenance(reference_id, reference_type)
        if entry is None:
            return False
        self._remove(entry, reason)
        try:
            self.db.commit()
            return True
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Error removing {reference_type}:{reference_id} from ledger")
            return False

    def remove_many(self, keys: Iterable[Tuple[str, str]], reason: str) -> int:
        """
        Remove several entries in one transaction.

        Either every present key is removed or none is; keys that are already
        absent are skipped. Raises ResolutionError after rolling back.
        """
        removed = 0
        try:
            for reference_id, reference_type in keys:
                entry = self.get_by_provenance(reference_id, reference_type)
                if entry is None:
                    continue
                self._remove(entry, reason)
                removed += 1
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Error removing ledger entries; transaction rolled back")
            raise ResolutionError("Failed to remove ledger entries") from e
        return removed

    def _remove(self, entry: LedgerEntry, reason: str) -> None:
        snapshot = LedgerEntryResponse.model_validate(entry).model_dump(mode="json")
        self.db.add(LedgerRemoval(
            tenant_id=self.tenant_id,
            entry_id=entry.id,
            reference_id=entry.reference_id,
            reference_type=entry.reference_type,
            reason=reason,
            snapshot=snapshot,
        ))
        self.db.delete(entry)

    # ================= READ ===================

    def get_by_provenance(self, reference_id: str, reference_type: str) -> Optional[LedgerEntry]:
        return (
            self._base_query()
            .filter(LedgerEntry.reference_id == reference_id, LedgerEntry.reference_type == reference_type)
            .first()
        )

    def _filtered_query(self, filters: Optional[LedgerFilter] = None):
        query = self._base_query()
        if filters is None:
            return query

        if filters.direction:
            query = query.filter(LedgerEntry.direction == filters.direction)
        if filters.category:
            query = query.filter(LedgerEntry.category == filters.category)
        if filters.reference_type:
            query = query.filter(LedgerEntry.reference_type == filters.reference_type)
        if filters.start_date:
            query = query.filter(LedgerEntry.date >= filters.start_date)
        if filters.end_date:
            query = query.filter(LedgerEntry.date <= filters.end_date)
        if filters.search and filters.search.strip():
            term = f"%{filters.search.strip()}%"
            query = query.filter(
                or_(
                    LedgerEntry.description.ilike(term),
                    LedgerEntry.reference_id.ilike(term),
                    LedgerEntry.subcategory.ilike(term),
                )
            )
        return query

    def list_all(self, filters: Optional[LedgerFilter] = None) -> List[LedgerEntry]:
        try:
            return (
                self._filtered_query(filters)
                .order_by(LedgerEntry.date.desc(), LedgerEntry.created_at.desc(), LedgerEntry.id)
                .all()
            )
        except SQLAlchemyError:
            logger.exception("Error while listing ledger entries")
            return []

    def list_page(
        self,
        filters: Optional[LedgerFilter] = None,
        skip: int = 0,
        limit: int = 25,
    ) -> Tuple[List[LedgerEntry], int, CashFlowSummary]:
        try:
            query = self._filtered_query(filters)
            total_count = query.count()
            rows = (
                query
                .order_by(LedgerEntry.date.desc(), LedgerEntry.created_at.desc(), LedgerEntry.id)
                .offset(skip)
                .limit(limit)
                .all()
            )
            return rows, total_count, self._summarize(query)
        except SQLAlchemyError:
            logger.exception("Error while fetching ledger page")
            return [], 0, CashFlowSummary()

    def cash_flow_summary(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> CashFlowSummary:
        """Income, expenses and net cash flow between two dates (inclusive)."""
        try:
            query = self._filtered_query(LedgerFilter(start_date=start_date, end_date=end_date))
            summary = self._summarize(query)
        except SQLAlchemyError:
            logger.exception("Error while computing cash flow summary")
            summary = CashFlowSummary()
        summary.start_date = start_date
        summary.end_date = end_date
        return summary

    def current_balance(self) -> Decimal:
        return self.cash_flow_summary().net_cash_flow

    def _summarize(self, query) -> CashFlowSummary:
        grouped = (
            query.with_entities(
                LedgerEntry.direction,
                LedgerEntry.category,
                func.coalesce(func.sum(LedgerEntry.amount), 0),
                func.count(LedgerEntry.id),
            )
            .group_by(LedgerEntry.direction, LedgerEntry.category)
            .all()
        )

        summary = CashFlowSummary()
        for direction, category, total, count in grouped:
            amount = to_money(total)
            key = f"{direction.value}:{category.value}"
            summary.by_category[key] = summary.by_category.get(key, Decimal("0.00")) + amount
            summary.transaction_count += count
            if direction == Direction.income:
                summary.total_income += amount
            else:
                summary.total_expenses += amount
        summary.net_cash_flow = summary.total_income - summary.total_expenses
        return summary
