from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func
from cashbook.core.database import Base


class TenantRecord(Base):
    """Key/value document store scoped per tenant (collections of JSON records)."""
    __tablename__ = "tenant_records"
    __table_args__ = (
        UniqueConstraint("tenant_id", "key", name="uq_tenant_record_key"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    key = Column(String(100), nullable=False)
    value = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
