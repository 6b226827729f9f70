"""
Schemas for alert candidates, sweep results and outbound notifications.
"""

from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.alerts import AlertSeverity, AlertType


class AlertCandidate(BaseModel):
    """An alert a rule wants to exist; keyed by (alert_type, entity_id)."""

    alert_type: AlertType
    severity: AlertSeverity
    title: str
    message: str
    entity_type: str
    entity_id: UUID
    entity_reference: Optional[str] = None
    action_required: bool = False
    suggested_action: Optional[str] = None

    @property
    def key(self):
        return (self.alert_type, self.entity_id)


class AlertDetail(BaseModel):
    """Summary of one alert created or resolved during a sweep."""

    id: Optional[UUID] = None
    type: AlertType
    entity: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None
    severity: Optional[AlertSeverity] = None
    suggested_action: Optional[str] = None


class SweepResult(BaseModel):
    """Run-level result of one alert sweep."""

    alerts_created: int = 0
    alerts_resolved: int = 0
    details: Dict[str, List[AlertDetail]] = Field(
        default_factory=lambda: {"created": [], "resolved": []}
    )
    failed_rules: List[str] = Field(default_factory=list)
    notifications_failed: int = 0


class Notification(BaseModel):
    """Payload accepted by the notification dispatcher."""

    type: str = "alert"  # alert, update, reminder, message
    title: str
    message: str
    priority: str = "normal"  # low, normal, high
    alert_id: Optional[UUID] = None
