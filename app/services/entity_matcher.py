"""
Resolve extracted names and references to existing business records.
"""

import logging
import re
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.logistics import Client, Shipment, Supplier
from app.schemas.extraction import ExtractedFields, MatchedEntities

logger = logging.getLogger(__name__)


def clean_name(name: Optional[str]) -> str:
    """Drop punctuation so "WINTEX (PTY) LTD." still matches "WINTEX PTY LTD"."""
    if not name:
        return ""
    return re.sub(r"[^\w\s]", "", name).strip()


def lot_digits(reference: Optional[str]) -> str:
    """Bare LOT number from a reference such as "LOT-881/A"."""
    if not reference:
        return ""
    return re.sub(r"\D", "", reference)


class EntityMatcher:
    """
    Best-effort single-candidate matching by case-insensitive substring.

    The first hit wins; there is no ranking. Two suppliers that both contain
    the cleaned name can mis-match, which is accepted.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def match(self, fields: ExtractedFields) -> MatchedEntities:
        matches = MatchedEntities()

        supplier = await self._find_supplier(fields.supplier_name)
        if supplier is not None:
            matches.supplier_id = supplier.id
            matches.supplier_name = supplier.name

        shipment = await self._find_shipment(fields.shipment_ref)
        if shipment is not None:
            matches.shipment_id = shipment.id
            matches.lot_number = shipment.lot_number
            if shipment.client_id is not None:
                matches.client_id = shipment.client_id

        if matches.client_id is None:
            client = await self._find_client(fields.client_name)
            if client is not None:
                matches.client_id = client.id
                matches.client_name = client.name

        logger.info(
            f"Matched entities - supplier: {matches.supplier_id}, "
            f"shipment: {matches.shipment_id}, client: {matches.client_id}"
        )
        return matches

    async def _find_supplier(self, name: Optional[str]) -> Optional[Supplier]:
        cleaned = clean_name(name)
        if not cleaned:
            return None
        result = await self.db.execute(
            select(Supplier).where(Supplier.name.icontains(cleaned, autoescape=True)).limit(1)
        )
        return result.scalars().first()

    async def _find_shipment(self, reference: Optional[str]) -> Optional[Shipment]:
        number = lot_digits(reference)
        if not number:
            return None
        candidates = [number, f"LOT {number}", f"LOT{number}"]
        result = await self.db.execute(
            select(Shipment)
            .where(or_(*(Shipment.lot_number.icontains(c, autoescape=True) for c in candidates)))
            .limit(1)
        )
        return result.scalars().first()

    async def _find_client(self, name: Optional[str]) -> Optional[Client]:
        cleaned = clean_name(name)
        if not cleaned:
            return None
        result = await self.db.execute(
            select(Client).where(Client.name.icontains(cleaned, autoescape=True)).limit(1)
        )
        return result.scalars().first()
