from datetime import date, timedelta
from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import Optional

from cashbook.core.dependencies import get_integration_service
from cashbook.logger_config import logger
from cashbook.schemas.report import IntegrationPassResult, IntegrationStats, UnifiedReport
from cashbook.services.integration import IntegrationService

router = APIRouter()


@router.post("/run", response_model=IntegrationPassResult)
def run_integration(service: IntegrationService = Depends(get_integration_service)):
    return service.run_integration_pass()


@router.get("/stats", response_model=IntegrationStats)
def get_integration_stats(service: IntegrationService = Depends(get_integration_service)):
    try:
        return service.reports.integration_stats()
    except Exception:
        logger.exception("Error fetching integration stats")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch integration stats",
        )


@router.get("/report", response_model=UnifiedReport)
def get_unified_report(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    service: IntegrationService = Depends(get_integration_service),
):
    """Defaults to the last 30 days ending today."""
    end = end_date or service.clock().date()
    start = start_date or end - timedelta(days=30)
    try:
        return service.reports.generate_unified_report(start, end)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception:
        logger.exception("Error generating unified report")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate report",
        )
