"""
Proactive alert API schemas.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.alerts import AlertSeverity, AlertStatus, AlertType


class AlertResponse(BaseModel):
    """Proactive alert."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    alert_type: AlertType
    severity: AlertSeverity
    title: str
    message: str
    entity_type: str
    entity_id: UUID
    entity_reference: Optional[str] = None
    action_required: bool
    suggested_action: Optional[str] = None
    status: AlertStatus
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    resolution_notes: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None


class AlertListResponse(BaseModel):
    """List of alerts."""
    alerts: List[AlertResponse]
    total: int


class AcknowledgeRequest(BaseModel):
    """Operator acknowledging an alert."""
    user: str = Field(..., min_length=1, max_length=255)


class ResolveRequest(BaseModel):
    """Manual alert resolution."""
    notes: Optional[str] = None
