from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from cashbook.core.database import SessionLocal
from cashbook.services.integration import IntegrationService, build_integration_service


def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_tenant(x_tenant_id: Optional[str] = Header(None)) -> str:
    """
    Resolve the tenant every request is scoped to from the X-Tenant-ID header.
    Raises 401 when the header is missing or blank.
    """
    tenant_id = (x_tenant_id or "").strip()
    if not tenant_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Tenant-ID header",
        )
    return tenant_id


def get_integration_service(
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_current_tenant),
) -> IntegrationService:
    return build_integration_service(db, tenant_id)
