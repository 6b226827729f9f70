"""
Celery application configuration for background task processing.
"""

import logging

from celery import Celery
from celery.signals import setup_logging, task_failure, task_postrun, task_prerun
from kombu import Queue

from app.core.config import settings
from app.core.logging import setup_logging as configure_logging

logger = logging.getLogger(__name__)


@setup_logging.connect
def configure_worker_logging(**kwargs):
    """Route worker logging through loguru instead of Celery's default handlers."""
    configure_logging()


# Create Celery app
celery_app = Celery(
    "logistics_automation",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "app.workers.extraction_tasks",
        "app.workers.alert_tasks",
    ]
)

# Celery configuration
celery_app.conf.update(
    # Task configuration
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Worker configuration
    worker_concurrency=settings.WORKER_CONCURRENCY,
    worker_prefetch_multiplier=settings.WORKER_PREFETCH_MULTIPLIER,
    task_soft_time_limit=settings.WORKER_TASK_SOFT_TIME_LIMIT,
    task_time_limit=settings.WORKER_TASK_TIME_LIMIT,
    worker_max_tasks_per_child=1000,  # Restart worker after 1000 tasks

    # Task routing
    task_routes={
        "app.workers.extraction_tasks.process_extraction_task": {"queue": "document_extraction"},
        "app.workers.alert_tasks.run_alert_sweep_task": {"queue": "alerts"},
    },

    # Queue configuration
    task_queues=(
        Queue("document_extraction", routing_key="document_extraction"),
        Queue("alerts", routing_key="alerts"),
        Queue("celery", routing_key="celery"),  # Default queue
    ),

    # Result backend configuration
    result_expires=3600,  # 1 hour

    # Beat scheduler configuration
    beat_schedule={
        "run-alert-sweep": {
            "task": "app.workers.alert_tasks.run_alert_sweep_task",
            "schedule": settings.ALERT_SWEEP_INTERVAL_SECONDS,
        },
    },

    # Failed items stay failed; the caller decides whether to re-run
    task_acks_late=False,
    task_reject_on_worker_lost=False,

    # Monitoring
    worker_send_task_events=True,
    task_send_sent_event=True,
)


@task_prerun.connect
def task_prerun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, **kwds):
    """Handle task pre-run signal."""
    logger.info(f"Task {sender.name} started (ID: {task_id})")


@task_postrun.connect
def task_postrun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, retval=None, state=None, **kwds):
    """Handle task post-run signal."""
    logger.info(f"Task {sender.name} completed (ID: {task_id}, state: {state})")


@task_failure.connect
def task_failure_handler(sender=None, task_id=None, exception=None, traceback=None, einfo=None, **kwds):
    """Handle task failure signal."""
    logger.error(f"Task {sender.name} failed (ID: {task_id}): {exception}")


if __name__ == "__main__":
    celery_app.start()
