"""
Dependencies for API endpoints: collaborators and service factories.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.services.alert_service import AlertService
from app.services.extraction_service import ExtractionService
from app.services.llm_service import LLMService
from app.services.notification_service import NotificationService
from app.services.storage_service import StorageService


def get_storage_service() -> StorageService:
    """Object storage configured from settings."""
    return StorageService()


def get_llm_service() -> LLMService:
    """AI completion client configured from settings."""
    return LLMService()


def get_notification_service() -> NotificationService:
    """Notification dispatcher configured from settings."""
    return NotificationService()


def get_extraction_service(
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
    llm: LLMService = Depends(get_llm_service),
    notifier: NotificationService = Depends(get_notification_service),
) -> ExtractionService:
    return ExtractionService(db=db, storage=storage, llm=llm, notifier=notifier)


def get_alert_service(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
) -> AlertService:
    return AlertService(db=db, notifier=notifier)
