"""
Document extraction queue model.
"""

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from app.db.base import TimestampMixin, UUIDMixin, value_enum
from app.db.session import Base


class QueueStatus(str, enum.Enum):
    """Extraction queue item status."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    NEEDS_REVIEW = "needs_review"
    FAILED = "failed"
    REJECTED = "rejected"


class ExtractionQueueItem(Base, UUIDMixin, TimestampMixin):
    """One uploaded document awaiting or having completed extraction."""

    __tablename__ = "document_extraction_queue"

    storage_path = Column(Text, nullable=False)
    source_type = Column(String(30), nullable=False, default="upload")
    status = Column(
        value_enum(QueueStatus, "extraction_queue_status"),
        nullable=False,
        default=QueueStatus.QUEUED,
        index=True,
    )

    # Extraction output
    extracted_text = Column(Text, nullable=True)
    extracted_data = Column(JSON, nullable=True)
    confidence_score = Column(Float, nullable=True)
    document_type = Column(String(50), nullable=True, index=True)

    # Entity resolution
    matched_supplier_id = Column(UUID(as_uuid=True), ForeignKey("suppliers.id"), nullable=True)
    matched_shipment_id = Column(UUID(as_uuid=True), ForeignKey("shipments.id"), nullable=True)
    matched_client_id = Column(UUID(as_uuid=True), ForeignKey("clients.id"), nullable=True)

    # Outcome
    auto_actions_taken = Column(JSON, nullable=True)
    needs_human_review = Column(Boolean, nullable=False, default=False)
    error_message = Column(Text, nullable=True)

    # Timing
    queued_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    processing_started_at = Column(DateTime(timezone=True), nullable=True)
    processing_completed_at = Column(DateTime(timezone=True), nullable=True)
    processing_time_ms = Column(Integer, nullable=True)

    # Manual review
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    review_notes = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_extraction_queue_status_created", "status", "created_at"),
    )

    def __repr__(self):
        return f"<ExtractionQueueItem(id={self.id}, status={self.status}, type={self.document_type})>"
