"""
Celery tasks for the scheduled proactive alert sweep.
"""

import logging
from typing import Any, Dict

from app.services.alert_service import AlertService
from app.services.notification_service import NotificationService
from app.workers.base import DatabaseTask
from app.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, base=DatabaseTask, max_retries=0)
def run_alert_sweep_task(self) -> Dict[str, Any]:
    """Run every alert rule once over the current data."""
    logger.info(f"Running alert sweep (task: {self.request.id})")

    async def work(db):
        service = AlertService(db=db, notifier=NotificationService())
        result = await service.run_alert_sweep()
        return result.model_dump(mode="json")

    return self.run_with_session(work)
