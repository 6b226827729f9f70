"""
API schemas for request/response models.
"""

from .common import (
    HealthResponse,
    ErrorResponse,
)
from .documents import (
    ApproveRequest,
    ProcessRequest,
    ProcessTaskResponse,
    QueueItemResponse,
    QueueListResponse,
    RejectRequest,
)
from .alerts import (
    AcknowledgeRequest,
    AlertListResponse,
    AlertResponse,
    ResolveRequest,
)

__all__ = [
    # Common
    "HealthResponse",
    "ErrorResponse",
    # Documents
    "ApproveRequest",
    "ProcessRequest",
    "ProcessTaskResponse",
    "QueueItemResponse",
    "QueueListResponse",
    "RejectRequest",
    # Alerts
    "AcknowledgeRequest",
    "AlertListResponse",
    "AlertResponse",
    "ResolveRequest",
]
