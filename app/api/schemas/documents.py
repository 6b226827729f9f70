"""
Document extraction queue API schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.extraction import QueueStatus


class ProcessRequest(BaseModel):
    """Request to process one queue item."""
    file_path: Optional[str] = Field(None, description="Overrides the stored storage path")
    background: bool = Field(False, description="Enqueue on the worker instead of running inline")


class ProcessTaskResponse(BaseModel):
    """Response for a queued processing request."""
    queue_id: UUID
    task_id: str
    status: str = "queued"


class QueueItemResponse(BaseModel):
    """Extraction queue item."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    storage_path: str
    source_type: str
    status: QueueStatus
    document_type: Optional[str] = None
    confidence_score: Optional[float] = None
    extracted_data: Optional[Dict[str, Any]] = None
    matched_supplier_id: Optional[UUID] = None
    matched_shipment_id: Optional[UUID] = None
    matched_client_id: Optional[UUID] = None
    auto_actions_taken: Optional[List[Dict[str, Any]]] = None
    needs_human_review: bool = False
    error_message: Optional[str] = None
    queued_at: Optional[datetime] = None
    processing_started_at: Optional[datetime] = None
    processing_completed_at: Optional[datetime] = None
    processing_time_ms: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None


class QueueListResponse(BaseModel):
    """List of extraction queue items."""
    items: List[QueueItemResponse]
    total: int


class ApproveRequest(BaseModel):
    """Operator-confirmed cost fields for a reviewed document."""
    shipment_id: UUID
    fields: Dict[str, Any] = Field(default_factory=dict)
    notes: Optional[str] = None


class RejectRequest(BaseModel):
    """Reason for rejecting an extraction."""
    reason: Optional[str] = None
