from decimal import Decimal
from typing import List, Optional, Tuple

from cashbook.logger_config import logger
from cashbook.models.ledger import MANUAL_REFERENCE, Direction, LedgerEntry
from cashbook.schemas.conflict import ConflictCandidate, ConflictMatch
from cashbook.schemas.ledger import LedgerFilter
from cashbook.services.ledger_store import LedgerStore
from cashbook.services.similarity import SimilarityStrategy, SubstringSimilarity

DEFAULT_EPSILON = Decimal("0.01")

# Only expense entries are compared; income-side duplicates are out of scope.
CHECKED_DIRECTION = Direction.expense


class ConflictDetector:
    """
    Finds manual ledger entries that probably record the same expense as an
    entry written by a subsystem adapter.

    A pair matches when the amounts differ by less than the epsilon AND either
    the dates are equal or the descriptions are similar. Detection never
    touches the ledger.
    """

    def __init__(
        self,
        store: LedgerStore,
        similarity: Optional[SimilarityStrategy] = None,
        epsilon: Decimal = DEFAULT_EPSILON,
    ):
        self.store = store
        self.similarity = similarity or SubstringSimilarity()
        self.epsilon = Decimal(str(epsilon))

    def is_probable_duplicate(self, manual, candidate) -> bool:
        if abs(Decimal(manual.amount) - Decimal(candidate.amount)) >= self.epsilon:
            return False
        if manual.date == candidate.date:
            return True
        return self.similarity.is_similar(manual.description or "", candidate.description or "")

    def _split_entries(self) -> Tuple[List[LedgerEntry], List[LedgerEntry]]:
        entries = self.store.list_all(LedgerFilter(direction=CHECKED_DIRECTION))
        manual = [e for e in entries if e.reference_type == MANUAL_REFERENCE]
        system = [e for e in entries if e.reference_type != MANUAL_REFERENCE]
        return manual, system

    def find_conflicts(self) -> List[ConflictCandidate]:
        try:
            manual_entries, system_entries = self._split_entries()
            conflicts: List[ConflictCandidate] = []

            for manual in manual_entries:
                matches = [
                    ConflictMatch(
                        entry_id=candidate.id,
                        reference_id=candidate.reference_id,
                        reference_type=candidate.reference_type,
                        description=candidate.description,
                        amount=candidate.amount,
                        date=candidate.date,
                    )
                    for candidate in system_entries
                    if self.is_probable_duplicate(manual, candidate)
                ]
                if matches:
                    conflicts.append(ConflictCandidate(
                        manual_entry_id=manual.id,
                        manual_reference_id=manual.reference_id,
                        description=manual.description,
                        amount=manual.amount,
                        date=manual.date,
                        matches=matches,
                    ))

            if conflicts:
                logger.info(f"Detected {len(conflicts)} potential duplicate(s) for tenant {self.store.tenant_id}")
            return conflicts
        except Exception:
            logger.exception("Error getting conflicts")
            return []

    def has_manual_match(self, draft) -> bool:
        """True when a manual expense entry already covers this not-yet-ledgered draft."""
        if draft.direction != CHECKED_DIRECTION or draft.reference_type == MANUAL_REFERENCE:
            return False
        manual_entries, _ = self._split_entries()
        return any(self.is_probable_duplicate(manual, draft) for manual in manual_entries)
