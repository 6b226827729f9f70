"""
Proactive alert endpoints.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.api.api_v1.deps import get_alert_service
from app.api.schemas.alerts import (
    AcknowledgeRequest,
    AlertListResponse,
    AlertResponse,
    ResolveRequest,
)
from app.models.alerts import AlertStatus
from app.schemas.alerts import SweepResult
from app.services.alert_service import AlertService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/sweep", response_model=SweepResult)
async def run_alert_sweep(service: AlertService = Depends(get_alert_service)):
    """Evaluate every alert rule now."""
    return await service.run_alert_sweep()


@router.get("", response_model=AlertListResponse)
async def list_alerts(
    status: Optional[AlertStatus] = Query(AlertStatus.ACTIVE, description="Filter by alert status"),
    limit: int = Query(100, ge=1, le=500),
    service: AlertService = Depends(get_alert_service),
):
    """List alerts, most severe first."""
    alerts = await service.list_alerts(status=status, limit=limit)
    return AlertListResponse(
        alerts=[AlertResponse.model_validate(alert) for alert in alerts],
        total=len(alerts),
    )


@router.post("/{alert_id}/acknowledge", response_model=AlertResponse)
async def acknowledge_alert(
    alert_id: UUID,
    request: AcknowledgeRequest,
    service: AlertService = Depends(get_alert_service),
):
    alert = await service.acknowledge_alert(alert_id, request.user)
    return AlertResponse.model_validate(alert)


@router.post("/{alert_id}/resolve", response_model=AlertResponse)
async def resolve_alert(
    alert_id: UUID,
    request: Optional[ResolveRequest] = None,
    service: AlertService = Depends(get_alert_service),
):
    request = request or ResolveRequest()
    alert = await service.resolve_alert(alert_id, request.notes)
    return AlertResponse.model_validate(alert)
