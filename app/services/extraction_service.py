"""
Extraction queue processor: one uploaded document end-to-end.

queued -> processing -> completed | needs_review | failed. Operator review
moves needs_review (or failed) items on to completed (approved) or
rejected; any other status is refused.
"""

import logging
import time
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    ExtractionException,
    NotFoundException,
    ValidationException,
)
from app.db.base import utcnow
from app.models.extraction import ExtractionQueueItem, QueueStatus
from app.models.logistics import SHIPMENT_COST_FIELDS, Shipment
from app.schemas.alerts import Notification
from app.schemas.extraction import (
    AutoAction,
    ExtractionResult,
    ProcessingResult,
    parse_decimal,
    parse_text,
)
from app.services.action_applier import ActionApplier, ExtractionThresholds, upsert_shipment_costs
from app.services.entity_matcher import EntityMatcher
from app.services.llm_service import LLMService, parse_extraction_content
from app.services.notification_service import NotificationService
from app.services.storage_service import StorageService

logger = logging.getLogger(__name__)

REVIEWABLE_STATUSES = (QueueStatus.NEEDS_REVIEW, QueueStatus.FAILED)


def _coerce_cost_value(column: str, value: Any) -> Any:
    if column == "source_currency":
        text = parse_text(value)
        return text.upper() if text else None
    return parse_decimal(value)


class ExtractionService:
    """Run queue items through fetch, extraction, matching and auto-actions."""

    def __init__(
        self,
        db: AsyncSession,
        storage: StorageService,
        llm: LLMService,
        notifier: NotificationService,
        thresholds: Optional[ExtractionThresholds] = None,
        text_max_length: Optional[int] = None,
        default_currency: Optional[str] = None,
    ):
        self.db = db
        self.storage = storage
        self.llm = llm
        self.notifier = notifier
        self.thresholds = thresholds or ExtractionThresholds.from_settings()
        self.text_max_length = text_max_length or settings.EXTRACTED_TEXT_MAX_LENGTH
        self.matcher = EntityMatcher(db)
        self.applier = ActionApplier(db, self.thresholds, default_currency)

    async def process_queue_item(self, queue_id: UUID, file_path: Optional[str] = None) -> ProcessingResult:
        """
        Process one queue item.

        Any failure after the item enters ``processing`` leaves it ``failed``
        with the error message stored, then raises ExtractionException.
        Notification failures never change the stored outcome.
        """
        item = await self._get_item(queue_id)
        path = file_path or item.storage_path
        started = time.monotonic()

        item.status = QueueStatus.PROCESSING
        item.processing_started_at = utcnow()
        item.error_message = None
        await self.db.commit()
        logger.info(f"Processing queue item {queue_id}: {path}")

        try:
            content = await self.storage.download(path)
            completion = await self.llm.extract_document(content, path)
            extraction = parse_extraction_content(completion)

            matches = await self.matcher.match(extraction.data)
            needs_review = self.thresholds.needs_review(extraction.confidence)
            auto_actions = await self.applier.apply(
                extraction.document_type, extraction.data, matches, extraction.confidence
            )

            processing_time_ms = int((time.monotonic() - started) * 1000)
            status = QueueStatus.NEEDS_REVIEW if needs_review else QueueStatus.COMPLETED

            item.status = status
            item.extracted_text = extraction.raw_text[: self.text_max_length]
            item.extracted_data = extraction.data.model_dump(mode="json")
            item.confidence_score = extraction.confidence
            item.document_type = extraction.document_type.value
            item.matched_supplier_id = matches.supplier_id
            item.matched_shipment_id = matches.shipment_id
            item.matched_client_id = matches.client_id
            item.needs_human_review = needs_review
            item.auto_actions_taken = [a.model_dump(mode="json") for a in auto_actions]
            item.processing_completed_at = utcnow()
            item.processing_time_ms = processing_time_ms
            await self.db.commit()

        except Exception as e:
            await self._mark_failed(queue_id, e)
            if isinstance(e, ExtractionException):
                raise
            raise ExtractionException(
                f"Failed to process queue item {queue_id}: {e}",
                details={"queue_id": str(queue_id)},
            ) from e

        logger.info(
            f"Queue item {queue_id} {status.value}. Type: {extraction.document_type.value}, "
            f"Confidence: {extraction.confidence}, Actions: {len(auto_actions)}"
        )

        if needs_review:
            await self._notify(self._review_notification(extraction))
        if auto_actions:
            await self._notify(self._auto_processed_notification(extraction, matches.lot_number, auto_actions))

        return ProcessingResult(
            queue_id=queue_id,
            status=status.value,
            extraction=extraction,
            matches=matches,
            auto_actions=auto_actions,
            needs_review=needs_review,
            processing_time_ms=processing_time_ms,
        )

    async def list_queue(self, status: Optional[QueueStatus] = None, limit: int = 50) -> List[ExtractionQueueItem]:
        query = select(ExtractionQueueItem)
        if status is not None:
            query = query.where(ExtractionQueueItem.status == status)
        query = query.order_by(ExtractionQueueItem.created_at.desc()).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def approve_extraction(
        self,
        queue_id: UUID,
        shipment_id: UUID,
        fields: Dict[str, Any],
        notes: Optional[str] = None,
    ) -> ExtractionQueueItem:
        """Apply operator-confirmed cost fields and close the review."""
        unknown = sorted(set(fields) - SHIPMENT_COST_FIELDS)
        if unknown:
            raise ValidationException(
                f"Unknown shipment cost fields: {', '.join(unknown)}",
                details={"fields": unknown},
            )

        item = await self._get_reviewable_item(queue_id)
        shipment = await self.db.get(Shipment, shipment_id)
        if shipment is None:
            raise NotFoundException(f"Shipment {shipment_id} not found")

        fields = {key: _coerce_cost_value(key, value) for key, value in fields.items()}
        invalid = sorted(key for key, value in fields.items() if value is None)
        if invalid:
            raise ValidationException(
                f"Invalid values for shipment cost fields: {', '.join(invalid)}",
                details={"fields": invalid},
            )

        actions = list(item.auto_actions_taken or [])
        if fields:
            await upsert_shipment_costs(self.db, shipment_id, fields)
            action = AutoAction(action="approved_update", shipment_id=shipment_id, fields=fields)
            actions.append(action.model_dump(mode="json"))

        item.status = QueueStatus.COMPLETED
        item.needs_human_review = False
        item.matched_shipment_id = shipment_id
        item.auto_actions_taken = actions
        item.reviewed_at = utcnow()
        item.review_notes = notes
        await self.db.commit()
        await self.db.refresh(item)

        logger.info(f"Queue item {queue_id} approved for shipment {shipment_id}: {sorted(fields)}")
        return item

    async def reject_extraction(self, queue_id: UUID, reason: Optional[str] = None) -> ExtractionQueueItem:
        item = await self._get_reviewable_item(queue_id)
        item.status = QueueStatus.REJECTED
        item.needs_human_review = False
        item.reviewed_at = utcnow()
        item.review_notes = reason
        await self.db.commit()
        await self.db.refresh(item)

        logger.info(f"Queue item {queue_id} rejected: {reason}")
        return item

    async def _get_item(self, queue_id: UUID) -> ExtractionQueueItem:
        item = await self.db.get(ExtractionQueueItem, queue_id)
        if item is None:
            raise NotFoundException(f"Queue item {queue_id} not found")
        return item

    async def _get_reviewable_item(self, queue_id: UUID) -> ExtractionQueueItem:
        item = await self._get_item(queue_id)
        if item.status not in REVIEWABLE_STATUSES:
            raise ValidationException(
                f"Queue item {queue_id} is {item.status.value} and cannot be reviewed",
                details={"queue_id": str(queue_id), "status": item.status.value},
            )
        return item

    async def _mark_failed(self, queue_id: UUID, error: Exception) -> None:
        logger.error(f"Queue item {queue_id} failed: {error}")
        await self.db.rollback()
        item = await self.db.get(ExtractionQueueItem, queue_id, populate_existing=True)
        if item is None:
            return
        item.status = QueueStatus.FAILED
        item.error_message = str(error)
        item.processing_completed_at = utcnow()
        await self.db.commit()

    async def _notify(self, notification: Notification) -> None:
        try:
            await self.notifier.send(notification)
        except Exception as e:
            logger.warning(f"Notification '{notification.title}' failed: {e}")

    @staticmethod
    def _review_notification(extraction: ExtractionResult) -> Notification:
        doc_type = extraction.document_type.value if extraction.document_type else "document"
        message = (
            f"A {doc_type} requires manual review.\n"
            f"Confidence: {extraction.confidence * 100:.0f}%"
        )
        if extraction.data.lot_number:
            message += f"\nLOT: {extraction.data.lot_number}"
        return Notification(type="alert", title="Document Needs Review", message=message)

    @staticmethod
    def _auto_processed_notification(
        extraction: ExtractionResult,
        lot_number: Optional[str],
        actions: List[AutoAction],
    ) -> Notification:
        lines = "\n".join(f"• {action.action}" for action in actions)
        message = (
            f"{extraction.document_type.value} for {lot_number or 'shipment'} "
            f"was automatically processed.\n{lines}"
        )
        return Notification(type="update", title="Document Auto-Processed", message=message)
