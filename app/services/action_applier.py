"""
Confidence-gated writes from extracted document fields to shipment records.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.base import utcnow
from app.models.logistics import Shipment, ShipmentCosts
from app.schemas.extraction import AutoAction, DocumentType, ExtractedFields, MatchedEntities

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionThresholds:
    """Confidence cut-offs for automatic writes and forced review."""

    auto_action: float = 0.85
    review: float = 0.5

    @classmethod
    def from_settings(cls) -> "ExtractionThresholds":
        return cls(
            auto_action=settings.AUTO_ACTION_CONFIDENCE_THRESHOLD,
            review=settings.REVIEW_CONFIDENCE_THRESHOLD,
        )

    def needs_review(self, confidence: float) -> bool:
        # Anything under the review floor is also under the auto threshold
        return confidence < self.auto_action

    def allows_writes(self, confidence: float) -> bool:
        return confidence >= self.auto_action


# document type -> (action name, [(ShipmentCosts column, extracted field)])
COST_MAPPINGS: Dict[DocumentType, Tuple[str, List[Tuple[str, str]]]] = {
    DocumentType.CLEARING_AGENT_INVOICE: (
        "update_clearing_costs",
        [
            ("customs_duty", "customs_duty"),
            ("customs_vat", "customs_vat"),
            ("container_landing", "container_landing"),
            ("cargo_dues", "cargo_dues"),
            ("agency_fee", "agency_fee"),
            ("clearing_cost", "amount"),
        ],
    ),
    DocumentType.SHIPPING_INVOICE: (
        "update_freight_costs",
        [
            ("ocean_freight_usd", "ocean_freight_usd"),
            ("ocean_freight_zar", "ocean_freight_zar"),
            ("fx_applied_rate", "roe"),
            ("handover_fee", "handover_fee"),
            ("freight_cost", "amount"),
        ],
    ),
    DocumentType.TRANSPORT_INVOICE: (
        "update_transport_cost",
        [
            ("transport_cost", "transport_cost"),
            ("transport_surcharges", "gim_surcharge"),
            ("transport_total", "amount"),
        ],
    ),
}

SHIPMENT_DETAIL_FIELDS = ("vessel_name", "bl_number", "eta", "container_number")


def _json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


async def upsert_shipment_costs(db: AsyncSession, shipment_id: UUID, values: Dict[str, Any]) -> None:
    """
    Insert or overwrite cost columns for one shipment.

    Keyed on the unique shipment_id so concurrent writers for the same
    shipment end last-write-wins instead of duplicating rows. Columns not in
    ``values`` keep their stored value.
    """
    dialect = postgresql if db.get_bind().dialect.name == "postgresql" else sqlite
    stmt = dialect.insert(ShipmentCosts).values(shipment_id=shipment_id, **values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[ShipmentCosts.shipment_id],
        set_={**{key: stmt.excluded[key] for key in values}, "updated_at": utcnow()},
    )
    await db.execute(stmt)


class ActionApplier:
    """Apply per-document-type writes once confidence and matching allow it."""

    def __init__(
        self,
        db: AsyncSession,
        thresholds: Optional[ExtractionThresholds] = None,
        default_currency: Optional[str] = None,
    ):
        self.db = db
        self.thresholds = thresholds or ExtractionThresholds.from_settings()
        self.default_currency = default_currency or settings.DEFAULT_SOURCE_CURRENCY

    async def apply(
        self,
        document_type: DocumentType,
        fields: ExtractedFields,
        matches: MatchedEntities,
        confidence: float,
    ) -> List[AutoAction]:
        """Write what the document supports and return one action per write."""
        if not self.thresholds.allows_writes(confidence) or matches.shipment_id is None:
            return []

        shipment_id = matches.shipment_id
        actions: List[AutoAction] = []

        if document_type in COST_MAPPINGS:
            action_name, mapping = COST_MAPPINGS[document_type]
            values = {
                column: getattr(fields, source)
                for column, source in mapping
                if getattr(fields, source) is not None
            }
            if values:
                await upsert_shipment_costs(self.db, shipment_id, values)
                actions.append(self._action(action_name, shipment_id, values))

            if document_type == DocumentType.SHIPPING_INVOICE:
                details = {
                    name: getattr(fields, name)
                    for name in SHIPMENT_DETAIL_FIELDS
                    if getattr(fields, name) is not None
                }
                if details:
                    await self._patch_shipment(shipment_id, details)
                    actions.append(self._action("update_shipment_details", shipment_id, details))

        elif document_type == DocumentType.SUPPLIER_INVOICE:
            if fields.amount is not None:
                currency = fields.currency or self.default_currency
                values = {"supplier_cost": fields.amount, "source_currency": currency}
                await upsert_shipment_costs(self.db, shipment_id, values)
                action = self._action("update_supplier_cost", shipment_id, values)
                action.amount = fields.amount
                action.currency = currency
                actions.append(action)

        elif document_type == DocumentType.TELEX_RELEASE:
            values = {"telex_released": True, "telex_released_date": utcnow().date()}
            await self._patch_shipment(shipment_id, values)
            actions.append(self._action("mark_telex_released", shipment_id, values))

        return actions

    async def _patch_shipment(self, shipment_id: UUID, values: Dict[str, Any]) -> None:
        await self.db.execute(
            update(Shipment).where(Shipment.id == shipment_id).values(**values)
        )

    @staticmethod
    def _action(name: str, shipment_id: UUID, values: Dict[str, Any]) -> AutoAction:
        logger.info(f"Auto-action {name} on shipment {shipment_id}: {sorted(values)}")
        return AutoAction(
            action=name,
            shipment_id=shipment_id,
            fields={key: _json_value(value) for key, value in values.items()},
        )
