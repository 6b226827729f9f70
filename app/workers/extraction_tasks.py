"""
Celery tasks for document extraction.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from app.services.extraction_service import ExtractionService
from app.services.llm_service import LLMService
from app.services.notification_service import NotificationService
from app.services.storage_service import StorageService
from app.workers.base import DatabaseTask
from app.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, base=DatabaseTask, max_retries=0)
def process_extraction_task(self, queue_id: str, file_path: Optional[str] = None) -> Dict[str, Any]:
    """Process one uploaded document. Never retried; a failed item stays failed."""
    logger.info(f"Processing extraction queue item {queue_id} (task: {self.request.id})")

    async def work(db):
        service = ExtractionService(
            db=db,
            storage=StorageService(),
            llm=LLMService(),
            notifier=NotificationService(),
        )
        result = await service.process_queue_item(UUID(queue_id), file_path)
        return result.model_dump(mode="json")

    return self.run_with_session(work)
