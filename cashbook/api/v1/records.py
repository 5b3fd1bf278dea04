from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import Any, Dict, List

from cashbook.common.exceptions import UnknownCollectionError
from cashbook.common.response import SuccessResponse
from cashbook.core.dependencies import get_current_tenant, get_db
from cashbook.logger_config import logger
from cashbook.services.storage_service import StorageService, ensure_source_collection

router = APIRouter()


def _collection_or_404(collection: str) -> str:
    try:
        return ensure_source_collection(collection)
    except UnknownCollectionError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{collection}")
def get_records(
    collection: str,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_current_tenant),
):
    name = _collection_or_404(collection)
    records = StorageService(db, tenant_id).get_collection(name)
    return {"collection": name, "total": len(records), "records": records}


@router.put("/{collection}")
def replace_records(
    collection: str,
    records: List[Dict[str, Any]] = Body(...),
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_current_tenant),
):
    """Replace a whole source collection; the ledger catches up on the next integration pass."""
    name = _collection_or_404(collection)
    if not StorageService(db, tenant_id).set(name, records):
        logger.error(f"Failed to store '{name}' for tenant {tenant_id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to store {name}",
        )
    return SuccessResponse.send(
        data={"collection": name, "total": len(records)},
        message=f"{name} updated",
    )
