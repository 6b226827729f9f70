"""
Document extraction queue endpoints.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.api.api_v1.deps import get_extraction_service
from app.api.schemas.documents import (
    ApproveRequest,
    ProcessRequest,
    ProcessTaskResponse,
    QueueItemResponse,
    QueueListResponse,
    RejectRequest,
)
from app.models.extraction import QueueStatus
from app.schemas.extraction import ProcessingResult
from app.services.extraction_service import ExtractionService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/queue/{queue_id}/process")
async def process_queue_item(
    queue_id: UUID,
    request: Optional[ProcessRequest] = None,
    service: ExtractionService = Depends(get_extraction_service),
):
    """Run one queue item through extraction, inline or on the worker."""
    request = request or ProcessRequest()
    if request.background:
        from app.workers.extraction_tasks import process_extraction_task

        task = process_extraction_task.delay(str(queue_id), request.file_path)
        logger.info(f"Queued extraction for {queue_id} (task: {task.id})")
        return ProcessTaskResponse(queue_id=queue_id, task_id=task.id)

    result: ProcessingResult = await service.process_queue_item(queue_id, request.file_path)
    return result


@router.get("/queue", response_model=QueueListResponse)
async def list_queue(
    status: Optional[QueueStatus] = Query(None, description="Filter by queue status"),
    limit: int = Query(50, ge=1, le=500),
    service: ExtractionService = Depends(get_extraction_service),
):
    """List extraction queue items, newest first."""
    items = await service.list_queue(status=status, limit=limit)
    return QueueListResponse(
        items=[QueueItemResponse.model_validate(item) for item in items],
        total=len(items),
    )


@router.post("/queue/{queue_id}/approve", response_model=QueueItemResponse)
async def approve_extraction(
    queue_id: UUID,
    request: ApproveRequest,
    service: ExtractionService = Depends(get_extraction_service),
):
    """Apply reviewed cost fields to a shipment and complete the item."""
    item = await service.approve_extraction(queue_id, request.shipment_id, request.fields, request.notes)
    return QueueItemResponse.model_validate(item)


@router.post("/queue/{queue_id}/reject", response_model=QueueItemResponse)
async def reject_extraction(
    queue_id: UUID,
    request: Optional[RejectRequest] = None,
    service: ExtractionService = Depends(get_extraction_service),
):
    """Reject an extraction without writing anything."""
    request = request or RejectRequest()
    item = await service.reject_extraction(queue_id, request.reason)
    return QueueItemResponse.model_validate(item)
