"""
Background workers for the logistics automation core.
"""

from .celery_app import celery_app
from .extraction_tasks import process_extraction_task
from .alert_tasks import run_alert_sweep_task

__all__ = [
    "celery_app",
    "process_extraction_task",
    "run_alert_sweep_task",
]
