"""
Unit tests for confidence-gated auto-actions.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.models.logistics import ShipmentCosts
from app.schemas.extraction import DocumentType, ExtractedFields, MatchedEntities
from app.services.action_applier import ActionApplier, ExtractionThresholds, upsert_shipment_costs
from tests.factories import ShipmentCostsFactory, ShipmentFactory


async def _costs(session, shipment_id):
    result = await session.execute(
        select(ShipmentCosts)
        .where(ShipmentCosts.shipment_id == shipment_id)
        .execution_options(populate_existing=True)
    )
    return result.scalars().one_or_none()


@pytest.fixture
async def shipment(async_session):
    shipment = ShipmentFactory(lot_number="LOT 881")
    async_session.add(shipment)
    await async_session.commit()
    return shipment


@pytest.fixture
def applier(async_session, extraction_thresholds):
    return ActionApplier(async_session, extraction_thresholds, default_currency="USD")


@pytest.fixture
def matched(shipment):
    return MatchedEntities(shipment_id=shipment.id, lot_number=shipment.lot_number)


class TestThresholds:
    """Test cases for ExtractionThresholds."""

    @pytest.mark.parametrize(
        "confidence, review, writes",
        [(0.3, True, False), (0.5, True, False), (0.84, True, False), (0.85, False, True), (1.0, False, True)],
    )
    def test_gates(self, extraction_thresholds, confidence, review, writes):
        assert extraction_thresholds.needs_review(confidence) is review
        assert extraction_thresholds.allows_writes(confidence) is writes

    def test_from_settings(self):
        thresholds = ExtractionThresholds.from_settings()

        assert thresholds.auto_action == 0.85
        assert thresholds.review == 0.5


class TestActionApplier:
    """Test cases for ActionApplier."""

    async def test_clearing_invoice_writes_clearing_costs(self, async_session, applier, shipment, matched):
        fields = ExtractedFields(
            customs_duty="1,200.00", customs_vat=300, agency_fee="450", amount="2,150.00"
        )

        actions = await applier.apply(DocumentType.CLEARING_AGENT_INVOICE, fields, matched, 0.92)
        await async_session.commit()

        assert [a.action for a in actions] == ["update_clearing_costs"]
        assert actions[0].fields["clearing_cost"] == "2150.00"
        costs = await _costs(async_session, shipment.id)
        assert costs.customs_duty == Decimal("1200.00")
        assert costs.customs_vat == Decimal("300")
        assert costs.agency_fee == Decimal("450")
        assert costs.clearing_cost == Decimal("2150.00")
        assert costs.container_landing is None

    async def test_shipping_invoice_writes_freight_and_details(self, async_session, applier, shipment, matched):
        fields = ExtractedFields(
            ocean_freight_usd=1800,
            ocean_freight_zar="33,300.00",
            roe="18.5",
            amount=34000,
            vessel_name="MSC Aurora",
            bl_number="MEDU1234567",
            eta="2024-06-02",
        )

        actions = await applier.apply(DocumentType.SHIPPING_INVOICE, fields, matched, 0.9)
        await async_session.commit()

        assert [a.action for a in actions] == ["update_freight_costs", "update_shipment_details"]
        costs = await _costs(async_session, shipment.id)
        assert costs.ocean_freight_usd == Decimal("1800")
        assert costs.fx_applied_rate == Decimal("18.5")
        assert costs.freight_cost == Decimal("34000")

        await async_session.refresh(shipment)
        assert shipment.vessel_name == "MSC Aurora"
        assert shipment.bl_number == "MEDU1234567"
        assert shipment.eta == date(2024, 6, 2)
        assert actions[1].fields["eta"] == "2024-06-02"

    async def test_transport_invoice(self, async_session, applier, shipment, matched):
        fields = ExtractedFields(transport_cost=4200, gim_surcharge=350, amount=4550)

        actions = await applier.apply(DocumentType.TRANSPORT_INVOICE, fields, matched, 0.88)
        await async_session.commit()

        assert [a.action for a in actions] == ["update_transport_cost"]
        costs = await _costs(async_session, shipment.id)
        assert costs.transport_cost == Decimal("4200")
        assert costs.transport_surcharges == Decimal("350")
        assert costs.transport_total == Decimal("4550")

    async def test_supplier_invoice_sets_cost_and_currency(self, async_session, applier, shipment, matched):
        fields = ExtractedFields(amount="4,500.00", currency="eur")

        actions = await applier.apply(DocumentType.SUPPLIER_INVOICE, fields, matched, 0.95)
        await async_session.commit()

        assert len(actions) == 1
        assert actions[0].action == "update_supplier_cost"
        assert actions[0].amount == Decimal("4500.00")
        assert actions[0].currency == "EUR"
        costs = await _costs(async_session, shipment.id)
        assert costs.supplier_cost == Decimal("4500.00")
        assert costs.source_currency == "EUR"

    async def test_supplier_invoice_defaults_currency(self, async_session, applier, shipment, matched):
        actions = await applier.apply(
            DocumentType.SUPPLIER_INVOICE, ExtractedFields(amount=100), matched, 0.95
        )
        await async_session.commit()

        assert actions[0].currency == "USD"
        assert (await _costs(async_session, shipment.id)).source_currency == "USD"

    async def test_supplier_invoice_without_amount_writes_nothing(self, async_session, applier, shipment, matched):
        actions = await applier.apply(DocumentType.SUPPLIER_INVOICE, ExtractedFields(), matched, 0.95)

        assert actions == []
        assert await _costs(async_session, shipment.id) is None

    async def test_telex_release_marks_shipment(self, async_session, applier, shipment, matched):
        actions = await applier.apply(DocumentType.TELEX_RELEASE, ExtractedFields(), matched, 0.95)
        await async_session.commit()

        assert [a.action for a in actions] == ["mark_telex_released"]
        await async_session.refresh(shipment)
        assert shipment.telex_released is True
        assert shipment.telex_released_date == datetime.now(timezone.utc).date()

    @pytest.mark.parametrize(
        "document_type",
        [DocumentType.PACKING_LIST, DocumentType.BILL_OF_LADING, DocumentType.COMMERCIAL_INVOICE, DocumentType.UNKNOWN],
    )
    async def test_informational_documents_write_nothing(self, async_session, applier, shipment, matched, document_type):
        actions = await applier.apply(document_type, ExtractedFields(amount=10), matched, 0.99)

        assert actions == []
        assert await _costs(async_session, shipment.id) is None

    @pytest.mark.parametrize("confidence", [0.3, 0.5, 0.84])
    async def test_low_confidence_writes_nothing(self, async_session, applier, shipment, matched, confidence):
        actions = await applier.apply(DocumentType.TELEX_RELEASE, ExtractedFields(), matched, confidence)

        assert actions == []
        await async_session.refresh(shipment)
        assert shipment.telex_released is False

    async def test_no_shipment_match_writes_nothing(self, async_session, applier, shipment):
        actions = await applier.apply(
            DocumentType.SUPPLIER_INVOICE, ExtractedFields(amount=100), MatchedEntities(), 0.99
        )

        assert actions == []
        assert await _costs(async_session, shipment.id) is None


class TestUpsertShipmentCosts:
    """Test cases for the shipment costs upsert."""

    async def test_repeated_writes_keep_one_row(self, async_session, shipment):
        await upsert_shipment_costs(async_session, shipment.id, {"transport_cost": Decimal("100")})
        await upsert_shipment_costs(async_session, shipment.id, {"transport_cost": Decimal("250")})
        await async_session.commit()

        count = await async_session.scalar(
            select(func.count()).select_from(ShipmentCosts).where(ShipmentCosts.shipment_id == shipment.id)
        )
        assert count == 1
        assert (await _costs(async_session, shipment.id)).transport_cost == Decimal("250")

    async def test_untouched_columns_are_preserved(self, async_session, shipment):
        async_session.add(ShipmentCostsFactory(
            shipment_id=shipment.id,
            client_invoice_zar=Decimal("90000"),
            profit_margin=Decimal("12.5"),
        ))
        await async_session.commit()

        await upsert_shipment_costs(async_session, shipment.id, {"agency_fee": Decimal("450")})
        await async_session.commit()

        costs = await _costs(async_session, shipment.id)
        assert costs.agency_fee == Decimal("450")
        assert costs.client_invoice_zar == Decimal("90000")
        assert costs.profit_margin == Decimal("12.5")
