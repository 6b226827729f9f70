"""
Data contracts for the transient records passed between automation services.
"""

from .extraction import (
    AutoAction,
    DocumentType,
    ExtractedFields,
    ExtractionResult,
    MatchedEntities,
    ProcessingResult,
)
from .alerts import (
    AlertCandidate,
    AlertDetail,
    Notification,
    SweepResult,
)

__all__ = [
    # Extraction
    "AutoAction",
    "DocumentType",
    "ExtractedFields",
    "ExtractionResult",
    "MatchedEntities",
    "ProcessingResult",
    # Alerts
    "AlertCandidate",
    "AlertDetail",
    "Notification",
    "SweepResult",
]
