from datetime import datetime, timezone
from typing import Optional

from cashbook.common.exceptions import ResolutionError
from cashbook.logger_config import logger
from cashbook.models.ledger import MANUAL_REFERENCE
from cashbook.schemas.conflict import ConflictPolicy
from cashbook.services.conflict_detector import ConflictDetector
from cashbook.services.ledger_store import LedgerStore
from cashbook.services.storage_service import StorageService

POLICY_KEY = "conflict_policy"
MANUAL_COLLECTION = "cash_register"
DISMISSED_COLLECTION = "deleted_cash_register"


class ConflictResolver:
    """
    Applies a duplicate-handling policy to the conflicts the detector reports.

    keep_system  removes every conflicting manual entry (and retires its
                 cash-register record so the next sync does not bring it back).
    keep_manual  deletes nothing; adapters stop syncing subsystem events that
                 already have a manual equivalent.
    merge        deletes nothing; both entries stay, told apart by their tags.
    """

    def __init__(
        self,
        store: LedgerStore,
        detector: ConflictDetector,
        storage: StorageService,
        default_policy: ConflictPolicy = ConflictPolicy.merge,
    ):
        self.store = store
        self.detector = detector
        self.storage = storage
        self.default_policy = default_policy

    def current_policy(self) -> ConflictPolicy:
        stored = self.storage.get(POLICY_KEY)
        try:
            return ConflictPolicy(stored) if stored else self.default_policy
        except ValueError:
            logger.warning(f"Ignoring unknown stored conflict policy {stored!r}")
            return self.default_policy

    def resolve(self, policy: Optional[ConflictPolicy] = None, remember: bool = True) -> bool:
        """Apply the policy; returns False when the pass could not complete."""
        policy = ConflictPolicy(policy) if policy else self.current_policy()
        try:
            if remember and not self.storage.set(POLICY_KEY, policy.value):
                return False

            if policy == ConflictPolicy.keep_system:
                return self._keep_system()

            # keep_manual is enforced at sync time; merge keeps both entries
            return True
        except ResolutionError:
            return False
        except Exception:
            logger.exception(f"Error auto-resolving conflicts with policy {policy.value}")
            return False

    def _keep_system(self) -> bool:
        conflicts = self.detector.find_conflicts()
        if not conflicts:
            return True

        manual_ids = {conflict.manual_reference_id for conflict in conflicts}
        removed = self.store.remove_many(
            [(reference_id, MANUAL_REFERENCE) for reference_id in sorted(manual_ids)],
            reason="conflict_keep_system",
        )
        logger.info(f"Removed {removed} manual entr(y/ies) duplicated by subsystem records")
        return self._retire_manual_records(manual_ids)

    def _retire_manual_records(self, manual_ids: set) -> bool:
        records = self.storage.get_collection(MANUAL_COLLECTION)
        retired = [r for r in records if str(r.get("id")) in manual_ids]
        if not retired:
            return True

        now = datetime.now(timezone.utc).isoformat()
        dismissed = self.storage.get_collection(DISMISSED_COLLECTION)
        dismissed.extend({**r, "deleted_at": now, "deleted_reason": "conflict_keep_system"} for r in retired)

        remaining = [r for r in records if str(r.get("id")) not in manual_ids]
        return self.storage.set(DISMISSED_COLLECTION, dismissed) and self.storage.set(MANUAL_COLLECTION, remaining)
