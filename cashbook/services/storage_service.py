from typing import Any, Iterable, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from cashbook.common.exceptions import UnknownCollectionError
from cashbook.logger_config import logger
from cashbook.models.storage import TenantRecord

ModelT = TypeVar("ModelT", bound=BaseModel)


SOURCE_COLLECTIONS = (
    "customers",
    "suppliers",
    "products",
    "sales_invoices",
    "purchase_invoices",
    "supplier_payments",
    "installments",
    "checks",
    "expenses",
    "payroll",
    "cash_register",
)

DERIVED_COLLECTIONS = (
    "enhanced_customers",
    "enhanced_suppliers",
    "smart_alerts",
)

AUDIT_COLLECTIONS = (
    "deleted_cash_register",
)

SETTING_KEYS = (
    "conflict_policy",
    "last_integration_update",
)


class StorageService:
    """
    Tenant-scoped durable map from a logical collection name to a JSON payload.
    """

    def __init__(self, db: Session, tenant_id: str):
        self.db = db
        self.tenant_id = tenant_id

    def _row(self, key: str) -> Optional[TenantRecord]:
        return (
            self.db.query(TenantRecord)
            .filter(TenantRecord.tenant_id == self.tenant_id, TenantRecord.key == key)
            .first()
        )

    def get(self, key: str, default: Any = None) -> Any:
        try:
            row = self._row(key)
        except SQLAlchemyError:
            logger.exception(f"Error reading '{key}' for tenant {self.tenant_id}")
            return default
        if row is None or row.value is None:
            return default
        return row.value

    def set(self, key: str, value: Any) -> bool:
        try:
            row = self._row(key)
            if row is None:
                row = TenantRecord(tenant_id=self.tenant_id, key=key, value=value)
                self.db.add(row)
            else:
                row.value = value
                # in-place edits of a loaded JSON value are not tracked otherwise
                flag_modified(row, "value")
            self.db.commit()
            return True
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Error writing '{key}' for tenant {self.tenant_id}")
            return False

    # ================= COLLECTION HELPERS ===================

    def get_collection(self, name: str) -> List[dict]:
        """Raw records of a collection; anything that is not a list of dicts reads as empty."""
        value = self.get(name, [])
        if not isinstance(value, list):
            logger.warning(f"Collection '{name}' for tenant {self.tenant_id} is not a list; ignoring")
            return []
        return [item for item in value if isinstance(item, dict)]

    def set_collection(self, name: str, records: Iterable[Any]) -> bool:
        payload = [
            record.model_dump(mode="json") if isinstance(record, BaseModel) else record
            for record in records
        ]
        return self.set(name, payload)

    def load_models(self, name: str, model: Type[ModelT]) -> Tuple[List[ModelT], List[dict]]:
        """Validate every record of a collection; returns (valid models, rejected raw records)."""
        valid: List[ModelT] = []
        rejected: List[dict] = []
        for raw in self.get_collection(name):
            try:
                valid.append(model.model_validate(raw))
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed record {raw.get('id')!r} in '{name}': {e.error_count()} error(s)"
                )
                rejected.append(raw)
        return valid, rejected


def ensure_source_collection(name: str) -> str:
    if name not in SOURCE_COLLECTIONS:
        raise UnknownCollectionError(f"Unknown collection '{name}'")
    return name
