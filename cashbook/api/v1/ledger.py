from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Optional

from cashbook.core.dependencies import get_current_tenant, get_db
from cashbook.logger_config import logger
from cashbook.models.ledger import Direction, LedgerCategory
from cashbook.schemas.ledger import CashFlowSummary, LedgerFilter, LedgerListResponse
from cashbook.services.ledger_store import LedgerStore

router = APIRouter()


@router.get("", response_model=LedgerListResponse)
def get_ledger(
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_current_tenant),
    skip: int = Query(0, ge=0),
    limit: int = Query(25, ge=1, le=100),
    direction: Optional[Direction] = Query(None),
    category: Optional[LedgerCategory] = Query(None),
    reference_type: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None),
):
    try:
        filters = LedgerFilter(
            direction=direction,
            category=category,
            reference_type=reference_type,
            start_date=start_date,
            end_date=end_date,
            search=search,
        )
        entries, count, totals = LedgerStore(db, tenant_id).list_page(filters, skip=skip, limit=limit)
        return LedgerListResponse(data=entries, count=count, totals=totals)
    except Exception:
        logger.exception("Error fetching ledger entries")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch ledger entries",
        )


@router.get("/summary", response_model=CashFlowSummary)
def get_cash_flow_summary(
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_current_tenant),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
):
    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must not be after end_date",
        )
    return LedgerStore(db, tenant_id).cash_flow_summary(start_date, end_date)
