"""
API tests for the document extraction queue endpoints.
"""

import uuid
from unittest.mock import MagicMock, patch

from app.core.exceptions import ExtractionException, NotFoundException, ValidationException
from app.models.extraction import QueueStatus
from app.schemas.extraction import ExtractionResult, MatchedEntities, ProcessingResult
from tests.factories import ExtractionQueueItemFactory

BASE = "/api/v1/documents"


def _processing_result(queue_id, status="needs_review"):
    return ProcessingResult(
        queue_id=queue_id,
        status=status,
        extraction=ExtractionResult.unparseable("unreadable"),
        matches=MatchedEntities(),
        auto_actions=[],
        needs_review=status == "needs_review",
        processing_time_ms=42,
    )


class TestProcessEndpoint:
    """Test cases for POST /documents/queue/{id}/process."""

    def test_inline_processing(self, client, extraction_service):
        queue_id = uuid.uuid4()
        extraction_service.process_queue_item.return_value = _processing_result(queue_id)

        response = client.post(f"{BASE}/queue/{queue_id}/process")

        assert response.status_code == 200
        body = response.json()
        assert body["queue_id"] == str(queue_id)
        assert body["status"] == "needs_review"
        assert body["extraction"]["document_type"] == "unknown"
        extraction_service.process_queue_item.assert_awaited_once_with(queue_id, None)

    def test_file_path_override(self, client, extraction_service):
        queue_id = uuid.uuid4()
        extraction_service.process_queue_item.return_value = _processing_result(queue_id, "completed")

        response = client.post(f"{BASE}/queue/{queue_id}/process", json={"file_path": "uploads/x.pdf"})

        assert response.status_code == 200
        extraction_service.process_queue_item.assert_awaited_once_with(queue_id, "uploads/x.pdf")

    def test_background_processing_enqueues_task(self, client, extraction_service):
        queue_id = uuid.uuid4()
        task = MagicMock()
        task.delay.return_value = MagicMock(id="task-123")

        with patch("app.workers.extraction_tasks.process_extraction_task", task):
            response = client.post(f"{BASE}/queue/{queue_id}/process", json={"background": True})

        assert response.status_code == 200
        assert response.json() == {"queue_id": str(queue_id), "task_id": "task-123", "status": "queued"}
        task.delay.assert_called_once_with(str(queue_id), None)
        extraction_service.process_queue_item.assert_not_awaited()

    def test_missing_item_is_404(self, client, extraction_service):
        extraction_service.process_queue_item.side_effect = NotFoundException("Queue item not found")

        response = client.post(f"{BASE}/queue/{uuid.uuid4()}/process")

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    def test_processing_failure_is_400(self, client, extraction_service):
        extraction_service.process_queue_item.side_effect = ExtractionException(
            "Failed to process queue item", details={"queue_id": "abc"}
        )

        response = client.post(f"{BASE}/queue/{uuid.uuid4()}/process")

        assert response.status_code == 400
        assert response.json() == {
            "error": "EXTRACTION_ERROR",
            "message": "Failed to process queue item",
            "details": {"queue_id": "abc"},
        }

    def test_unexpected_error_is_500(self, client, extraction_service):
        extraction_service.process_queue_item.side_effect = RuntimeError("boom")

        response = client.post(f"{BASE}/queue/{uuid.uuid4()}/process")

        assert response.status_code == 500
        assert response.json()["error"] == "INTERNAL_SERVER_ERROR"


class TestQueueEndpoints:
    """Test cases for listing and reviewing queue items."""

    def test_list_queue(self, client, extraction_service):
        item = ExtractionQueueItemFactory(status=QueueStatus.NEEDS_REVIEW, needs_human_review=True)
        extraction_service.list_queue.return_value = [item]

        response = client.get(f"{BASE}/queue", params={"status": "needs_review", "limit": 10})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["items"][0]["id"] == str(item.id)
        assert body["items"][0]["status"] == "needs_review"
        extraction_service.list_queue.assert_awaited_once_with(status=QueueStatus.NEEDS_REVIEW, limit=10)

    def test_list_queue_rejects_unknown_status(self, client):
        response = client.get(f"{BASE}/queue", params={"status": "archived"})

        assert response.status_code == 422

    def test_approve(self, client, extraction_service):
        item = ExtractionQueueItemFactory(status=QueueStatus.COMPLETED, review_notes="ok")
        extraction_service.approve_extraction.return_value = item
        shipment_id = uuid.uuid4()

        response = client.post(
            f"{BASE}/queue/{item.id}/approve",
            json={"shipment_id": str(shipment_id), "fields": {"agency_fee": 450}, "notes": "ok"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        extraction_service.approve_extraction.assert_awaited_once_with(
            item.id, shipment_id, {"agency_fee": 450}, "ok"
        )

    def test_approve_unknown_field_is_400(self, client, extraction_service):
        extraction_service.approve_extraction.side_effect = ValidationException(
            "Unknown shipment cost fields: discount", details={"fields": ["discount"]}
        )

        response = client.post(
            f"{BASE}/queue/{uuid.uuid4()}/approve",
            json={"shipment_id": str(uuid.uuid4()), "fields": {"discount": 5}},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_reject_without_body(self, client, extraction_service):
        item = ExtractionQueueItemFactory(status=QueueStatus.REJECTED)
        extraction_service.reject_extraction.return_value = item

        response = client.post(f"{BASE}/queue/{item.id}/reject")

        assert response.status_code == 200
        assert response.json()["status"] == "rejected"
        extraction_service.reject_extraction.assert_awaited_once_with(item.id, None)
