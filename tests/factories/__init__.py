"""
Test data factories for the logistics automation core.

Factory Boy factories for the business entities, extraction queue items
and AI completion payloads.
"""

from .logistics_factory import (
    ArrivedShipmentFactory,
    ClientFactory,
    PaymentScheduleFactory,
    ShipmentCostsFactory,
    ShipmentFactory,
    SupplierFactory,
)
from .extraction_factory import CompletionPayloadFactory, ExtractionQueueItemFactory, completion_text

__all__ = [
    "ArrivedShipmentFactory",
    "ClientFactory",
    "PaymentScheduleFactory",
    "ShipmentCostsFactory",
    "ShipmentFactory",
    "SupplierFactory",
    "CompletionPayloadFactory",
    "ExtractionQueueItemFactory",
    "completion_text",
]
