from fastapi import APIRouter, Depends, HTTPException, status, Query

from cashbook.core.dependencies import get_integration_service
from cashbook.schemas.alert import AlertListResponse, AlertStatistics, SmartAlert
from cashbook.services.integration import IntegrationService

router = APIRouter()


@router.get("", response_model=AlertListResponse)
def list_alerts(
    unread_only: bool = Query(False),
    active_only: bool = Query(False),
    service: IntegrationService = Depends(get_integration_service),
):
    alerts = service.alerts.history()
    if unread_only:
        alerts = [a for a in alerts if a.read_at is None]
    if active_only:
        alerts = [a for a in alerts if a.resolved_at is None]
    return AlertListResponse(total=len(alerts), alerts=alerts)


@router.post("/scan", response_model=AlertListResponse)
def scan_alerts(service: IntegrationService = Depends(get_integration_service)):
    raised = service.alerts.scan()
    return AlertListResponse(total=len(raised), alerts=raised)


@router.get("/statistics", response_model=AlertStatistics)
def get_alert_statistics(service: IntegrationService = Depends(get_integration_service)):
    return service.alerts.statistics()


@router.post("/{alert_id}/read", response_model=SmartAlert)
def mark_alert_read(alert_id: str, service: IntegrationService = Depends(get_integration_service)):
    alert = service.alerts.mark_read(alert_id)
    if alert is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Alert not found")
    return alert


@router.post("/{alert_id}/resolve", response_model=SmartAlert)
def resolve_alert(alert_id: str, service: IntegrationService = Depends(get_integration_service)):
    alert = service.alerts.resolve_alert(alert_id)
    if alert is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Alert not found")
    return alert
