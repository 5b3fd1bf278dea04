"""
One integration pass for a tenant: sync -> detect -> resolve -> rollup -> alert -> notify.

Every collaborator is built per tenant by ``build_integration_service``; there
is no shared state between tenants or between passes apart from what is
persisted in the ledger and tenant storage.
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from cashbook.core.config import Settings, settings as default_settings
from cashbook.logger_config import logger
from cashbook.schemas.conflict import ConflictPolicy
from cashbook.schemas.report import IntegrationPassResult
from cashbook.services.adapters import SourceAdapter, build_adapters
from cashbook.services.alert_engine import AlertEngine, Clock, utc_now
from cashbook.services.conflict_detector import ConflictDetector
from cashbook.services.conflict_resolver import ConflictResolver
from cashbook.services.ledger_store import LedgerStore
from cashbook.services.notifier import LoggingNotifier, Notifier
from cashbook.services.report_service import LAST_UPDATE_KEY, ReportService
from cashbook.services.rollup import RollupAggregator
from cashbook.services.similarity import SimilarityStrategy
from cashbook.services.storage_service import StorageService


class IntegrationService:
    def __init__(
        self,
        store: LedgerStore,
        storage: StorageService,
        adapters: List[SourceAdapter],
        detector: ConflictDetector,
        resolver: ConflictResolver,
        rollups: RollupAggregator,
        alerts: AlertEngine,
        reports: ReportService,
        notifier: Notifier,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.storage = storage
        self.adapters = adapters
        self.detector = detector
        self.resolver = resolver
        self.rollups = rollups
        self.alerts = alerts
        self.reports = reports
        self.notifier = notifier
        self.clock = clock

    @property
    def tenant_id(self) -> str:
        return self.storage.tenant_id

    def sync_all(self, result: IntegrationPassResult) -> None:
        for adapter in self.adapters:
            try:
                result.sync.append(adapter.sync(self.storage.get_collection(adapter.collection)))
            except Exception as e:
                logger.exception(f"Error syncing {adapter.reference_type} for tenant {self.tenant_id}")
                result.errors.append(f"sync {adapter.reference_type}: {e}")

    def run_integration_pass(self) -> IntegrationPassResult:
        """Bring ledger, projections and alerts up to date. Never raises."""
        result = IntegrationPassResult(started_at=self.clock())
        raised = []
        try:
            self.sync_all(result)

            conflicts = self.detector.find_conflicts()
            result.conflicts_found = len(conflicts)

            result.policy = self.resolver.current_policy()
            result.policy_applied = self.resolver.resolve(result.policy, remember=False)
            if not result.policy_applied:
                result.errors.append(f"resolve {result.policy.value}: failed")

            rollup = self.rollups.recompute_all()
            result.customers_recomputed = rollup.customers
            result.suppliers_recomputed = rollup.suppliers

            raised = self.alerts.scan()
            result.alerts_raised = len(raised)

            finished = self.clock()
            if not self.storage.set(LAST_UPDATE_KEY, finished.isoformat()):
                result.errors.append("could not record last integration update")
            result.finished_at = finished
        except Exception as e:
            logger.exception(f"Integration pass failed for tenant {self.tenant_id}")
            result.errors.append(str(e))

        result.success = not result.errors
        try:
            self._notify(result, raised)
        except Exception:
            logger.exception("Notifier failed")
        logger.info(
            f"Integration pass for tenant {self.tenant_id}: "
            f"{sum(s.appended for s in result.sync)} appended, "
            f"{sum(s.corrected for s in result.sync)} corrected, "
            f"{sum(s.removed + s.unsettled for s in result.sync)} removed, "
            f"{result.conflicts_found} conflict(s), {result.alerts_raised} alert(s)"
        )
        return result

    def _notify(self, result: IntegrationPassResult, raised) -> None:
        if result.conflicts_found and result.policy == ConflictPolicy.merge:
            self.notifier.notify(
                f"{result.conflicts_found} possible duplicate cash entr(y/ies) need review",
                "warning",
            )
        for alert in raised:
            self.notifier.notify(f"{alert.title}: {alert.message}", alert.type.value)
        for error in result.errors:
            self.notifier.notify(f"Integration pass problem: {error}", "error")


def build_integration_service(
    db: Session,
    tenant_id: str,
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
    notifier: Optional[Notifier] = None,
    similarity: Optional[SimilarityStrategy] = None,
) -> IntegrationService:
    """Wire every engine component for one tenant."""
    settings = settings or default_settings
    clock = clock or utc_now

    store = LedgerStore(db, tenant_id)
    storage = StorageService(db, tenant_id)
    detector = ConflictDetector(store, similarity, Decimal(str(settings.AMOUNT_EPSILON)))
    resolver = ConflictResolver(store, detector, storage, ConflictPolicy(settings.DEFAULT_CONFLICT_POLICY))

    guard = detector.has_manual_match if resolver.current_policy() == ConflictPolicy.keep_manual else None

    return IntegrationService(
        store=store,
        storage=storage,
        adapters=build_adapters(store, settings, manual_guard=guard),
        detector=detector,
        resolver=resolver,
        rollups=RollupAggregator(storage, settings),
        alerts=AlertEngine(store, storage, settings, clock),
        reports=ReportService(store, storage, settings, clock),
        notifier=notifier or LoggingNotifier(),
        clock=clock,
    )
