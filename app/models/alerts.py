"""
Proactive alert model.
"""

import enum

from sqlalchemy import Boolean, Column, DateTime, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import TimestampMixin, UUIDMixin, value_enum
from app.db.session import Base


class AlertType(str, enum.Enum):
    """Fixed set of proactive alert rules."""

    HIGH_SUPPLIER_BALANCE = "high_supplier_balance"
    OVERDUE_TELEX = "overdue_telex"
    PAYMENT_DUE_SOON = "payment_due_soon"
    LOW_MARGIN_SHIPMENT = "low_margin_shipment"
    STALE_SHIPMENT = "stale_shipment"
    MISSING_CLIENT_INVOICE = "missing_client_invoice"


class AlertSeverity(str, enum.Enum):
    """Alert severity levels."""

    INFO = "info"
    WARNING = "warning"
    URGENT = "urgent"
    CRITICAL = "critical"


class AlertStatus(str, enum.Enum):
    """Alert status values."""

    ACTIVE = "active"
    RESOLVED = "resolved"


# Severities forwarded to the notification dispatcher
NOTIFIABLE_SEVERITIES = frozenset(
    {AlertSeverity.WARNING, AlertSeverity.URGENT, AlertSeverity.CRITICAL}
)

# Display order, most severe first
SEVERITY_RANK = {
    AlertSeverity.CRITICAL: 0,
    AlertSeverity.URGENT: 1,
    AlertSeverity.WARNING: 2,
    AlertSeverity.INFO: 3,
}

_ACTIVE_ONLY = text("status = 'active'")


class ProactiveAlert(Base, UUIDMixin, TimestampMixin):
    """A durable record of one open or closed business condition."""

    __tablename__ = "proactive_alerts"

    alert_type = Column(value_enum(AlertType, "proactive_alert_type"), nullable=False, index=True)
    severity = Column(value_enum(AlertSeverity, "proactive_alert_severity"), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)

    # What triggered it
    entity_type = Column(String(30), nullable=False)
    entity_id = Column(UUID(as_uuid=True), nullable=False)
    entity_reference = Column(String(255), nullable=True)

    action_required = Column(Boolean, nullable=False, default=False)
    suggested_action = Column(Text, nullable=True)

    status = Column(
        value_enum(AlertStatus, "proactive_alert_status"),
        nullable=False,
        default=AlertStatus.ACTIVE,
        index=True,
    )
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    resolution_notes = Column(Text, nullable=True)
    acknowledged_at = Column(DateTime(timezone=True), nullable=True)
    acknowledged_by = Column(String(255), nullable=True)

    __table_args__ = (
        # At most one active alert per (alert_type, entity_id)
        Index(
            "uq_proactive_alert_active_key",
            "alert_type",
            "entity_id",
            unique=True,
            postgresql_where=_ACTIVE_ONLY,
            sqlite_where=_ACTIVE_ONLY,
        ),
        Index("idx_proactive_alert_type_entity_status", "alert_type", "entity_type", "status"),
    )

    def __repr__(self):
        return (
            f"<ProactiveAlert(id={self.id}, type={self.alert_type}, "
            f"entity={self.entity_reference}, status={self.status})>"
        )
