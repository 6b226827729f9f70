"""
Schemas for document extraction results, entity matches and auto-actions.

The AI completion returns loosely typed JSON. Everything is coerced here,
immediately after parsing, so the rest of the pipeline only sees typed
values: amounts as ``Decimal``, dates as ``date`` and references as
stripped strings. A value that cannot be coerced becomes ``None``.
"""

import enum
import json
import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class DocumentType(str, enum.Enum):
    """Document types the extraction prompt can classify."""

    SUPPLIER_INVOICE = "supplier_invoice"
    PACKING_LIST = "packing_list"
    BILL_OF_LADING = "bill_of_lading"
    CLEARING_AGENT_INVOICE = "clearing_agent_invoice"
    SHIPPING_INVOICE = "shipping_invoice"
    TRANSPORT_INVOICE = "transport_invoice"
    TELEX_RELEASE = "telex_release"
    COMMERCIAL_INVOICE = "commercial_invoice"
    UNKNOWN = "unknown"


_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
)


def parse_decimal(value: Any) -> Optional[Decimal]:
    """Coerce a loosely formatted amount ("$1,250.00", "R 300", 12) to Decimal."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = re.sub(r"[^\d.,\-]", "", value)
        if cleaned.count(",") == 1 and (
            # "1.250,00": comma after the thousands dot
            ("." in cleaned and cleaned.rfind(",") > cleaned.rfind("."))
            # "12,5": lone comma not followed by a thousands group
            or ("." not in cleaned and len(cleaned) - cleaned.rfind(",") - 1 != 3)
        ):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
        if not cleaned or cleaned in {"-", "."}:
            return None
        try:
            amount = Decimal(cleaned)
        except InvalidOperation:
            logger.warning(f"Could not parse amount: {value!r}")
            return None
    else:
        return None
    if not amount.is_finite():
        logger.warning(f"Ignoring non-finite amount: {value!r}")
        return None
    return amount


def parse_date(value: Any) -> Optional[date]:
    """Coerce an extracted date string to a date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            pass
        for fmt in _DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        logger.warning(f"Could not parse date: {value!r}")
    return None


def parse_text(value: Any) -> Optional[str]:
    """Coerce an identifier-like value to a stripped string."""
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


class ExtractedFields(BaseModel):
    """Flat field map extracted from one document."""

    model_config = ConfigDict(extra="allow")

    # Parties and references
    supplier_name: Optional[str] = None
    client_name: Optional[str] = None
    invoice_number: Optional[str] = None
    lot_number: Optional[str] = None
    shipment_reference: Optional[str] = None

    # Dates
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None

    # Totals
    amount: Optional[Decimal] = None
    currency: Optional[str] = None

    # Clearing agent charges
    customs_duty: Optional[Decimal] = None
    customs_vat: Optional[Decimal] = None
    container_landing: Optional[Decimal] = None
    cargo_dues: Optional[Decimal] = None
    agency_fee: Optional[Decimal] = None

    # Shipping line charges
    ocean_freight_usd: Optional[Decimal] = None
    ocean_freight_zar: Optional[Decimal] = None
    roe: Optional[Decimal] = None
    handover_fee: Optional[Decimal] = None
    freight_cost: Optional[Decimal] = None

    # Transport charges
    transport_cost: Optional[Decimal] = None
    gim_surcharge: Optional[Decimal] = None

    # Shipping details
    vessel_name: Optional[str] = None
    bl_number: Optional[str] = None
    eta: Optional[date] = None
    container_number: Optional[str] = None

    items: List[Any] = Field(default_factory=list)

    @field_validator(
        "amount",
        "customs_duty",
        "customs_vat",
        "container_landing",
        "cargo_dues",
        "agency_fee",
        "ocean_freight_usd",
        "ocean_freight_zar",
        "roe",
        "handover_fee",
        "freight_cost",
        "transport_cost",
        "gim_surcharge",
        mode="before",
    )
    @classmethod
    def coerce_amount(cls, v):
        return parse_decimal(v)

    @field_validator("invoice_date", "due_date", "eta", mode="before")
    @classmethod
    def coerce_date(cls, v):
        return parse_date(v)

    @field_validator(
        "supplier_name",
        "client_name",
        "invoice_number",
        "lot_number",
        "shipment_reference",
        "vessel_name",
        "bl_number",
        "container_number",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, v):
        return parse_text(v)

    @field_validator("currency", mode="before")
    @classmethod
    def coerce_currency(cls, v):
        text = parse_text(v)
        return text.upper() if text else None

    @field_validator("items", mode="before")
    @classmethod
    def coerce_items(cls, v):
        return v if isinstance(v, list) else []

    @property
    def shipment_ref(self) -> Optional[str]:
        """LOT number, falling back to any other shipment reference."""
        return self.lot_number or self.shipment_reference


class ExtractionResult(BaseModel):
    """Parsed output of one AI extraction call."""

    document_type: DocumentType = DocumentType.UNKNOWN
    confidence: float = 0.0
    data: ExtractedFields = Field(default_factory=ExtractedFields)
    raw_text: str = ""

    @field_validator("document_type", mode="before")
    @classmethod
    def coerce_document_type(cls, v):
        if isinstance(v, DocumentType):
            return v
        normalized = str(v or "").strip().lower().replace(" ", "_").replace("-", "_")
        try:
            return DocumentType(normalized)
        except ValueError:
            return DocumentType.UNKNOWN

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        try:
            value = float(v)
        except (TypeError, ValueError):
            return 0.0
        if value != value:  # NaN
            return 0.0
        return min(max(value, 0.0), 1.0)

    @field_validator("data", mode="before")
    @classmethod
    def coerce_data(cls, v):
        return v if isinstance(v, (dict, ExtractedFields)) else {}

    @field_validator("raw_text", mode="before")
    @classmethod
    def coerce_raw_text(cls, v):
        if v is None:
            return ""
        return v if isinstance(v, str) else json.dumps(v, default=str)

    @classmethod
    def unparseable(cls, content: str) -> "ExtractionResult":
        """Fallback result for completion text that is not a JSON record."""
        return cls(
            document_type=DocumentType.UNKNOWN,
            confidence=0.0,
            data=ExtractedFields(),
            raw_text=content or "",
        )


class MatchedEntities(BaseModel):
    """Best-effort single-candidate matches for one document."""

    supplier_id: Optional[UUID] = None
    supplier_name: Optional[str] = None
    shipment_id: Optional[UUID] = None
    lot_number: Optional[str] = None
    client_id: Optional[UUID] = None
    client_name: Optional[str] = None


class AutoAction(BaseModel):
    """One write applied automatically, kept for audit and notification."""

    action: str
    shipment_id: UUID
    fields: Dict[str, Any] = Field(default_factory=dict)
    amount: Optional[Decimal] = None
    currency: Optional[str] = None


class ProcessingResult(BaseModel):
    """Outcome of processing one queue item."""

    queue_id: UUID
    status: str
    extraction: ExtractionResult
    matches: MatchedEntities
    auto_actions: List[AutoAction] = Field(default_factory=list)
    needs_review: bool
    processing_time_ms: int
