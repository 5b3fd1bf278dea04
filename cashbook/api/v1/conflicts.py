from fastapi import APIRouter, Depends, HTTPException, status

from cashbook.common.response import SuccessResponse
from cashbook.core.dependencies import get_integration_service
from cashbook.logger_config import logger
from cashbook.schemas.conflict import ConflictListResponse, ResolveConflictsRequest
from cashbook.services.integration import IntegrationService

router = APIRouter()


@router.get("", response_model=ConflictListResponse)
def list_conflicts(service: IntegrationService = Depends(get_integration_service)):
    conflicts = service.detector.find_conflicts()
    return ConflictListResponse(
        total=len(conflicts),
        policy=service.resolver.current_policy(),
        conflicts=conflicts,
    )


@router.post("/resolve")
def resolve_conflicts(
    payload: ResolveConflictsRequest,
    service: IntegrationService = Depends(get_integration_service),
):
    """Apply and remember a policy; keep_manual takes effect from the next sync."""
    found = len(service.detector.find_conflicts())
    if not service.resolver.resolve(payload.policy):
        logger.error(f"Conflict resolution with {payload.policy.value} failed for tenant {service.tenant_id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to resolve conflicts",
        )
    remaining = len(service.detector.find_conflicts())
    return SuccessResponse.send(
        data={"policy": payload.policy.value, "conflicts_found": found, "conflicts_remaining": remaining},
        message="Conflict policy applied",
    )
