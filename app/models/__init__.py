"""
Database models for the logistics automation core.
"""

from .logistics import (
    Client,
    PaymentSchedule,
    PaymentStatus,
    Shipment,
    ShipmentCosts,
    ShipmentStatus,
    Supplier,
    SHIPMENT_COST_FIELDS,
)
from .extraction import ExtractionQueueItem, QueueStatus
from .alerts import (
    AlertSeverity,
    AlertStatus,
    AlertType,
    ProactiveAlert,
    NOTIFIABLE_SEVERITIES,
    SEVERITY_RANK,
)

__all__ = [
    # Business entities
    "Client",
    "PaymentSchedule",
    "PaymentStatus",
    "Shipment",
    "ShipmentCosts",
    "ShipmentStatus",
    "Supplier",
    "SHIPMENT_COST_FIELDS",
    # Extraction queue
    "ExtractionQueueItem",
    "QueueStatus",
    # Proactive alerts
    "AlertSeverity",
    "AlertStatus",
    "AlertType",
    "ProactiveAlert",
    "NOTIFIABLE_SEVERITIES",
    "SEVERITY_RANK",
]
