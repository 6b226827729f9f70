"""
Unit tests for alert sweeps, dedup, auto-resolution and operator actions.
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import NotFoundException, NotificationException, ValidationException
from app.models.alerts import AlertSeverity, AlertStatus, AlertType, ProactiveAlert
from app.models.logistics import ShipmentStatus
from app.services.alert_rules import AlertRule, ResolutionMode, build_default_rules
from app.services.alert_service import AUTO_RESOLUTION_NOTE, MANUAL_RESOLUTION_NOTE, AlertService
from tests.factories import (
    ArrivedShipmentFactory,
    ShipmentCostsFactory,
    ShipmentFactory,
    SupplierFactory,
)


async def _alerts(session, alert_type=None, status=None):
    query = select(ProactiveAlert).execution_options(populate_existing=True)
    if alert_type is not None:
        query = query.where(ProactiveAlert.alert_type == alert_type)
    if status is not None:
        query = query.where(ProactiveAlert.status == status)
    result = await session.execute(query)
    return list(result.scalars().all())


def _alert(**overrides):
    values = dict(
        alert_type=AlertType.HIGH_SUPPLIER_BALANCE,
        severity=AlertSeverity.WARNING,
        title="High Balance: Wintex",
        message="Wintex balance is USD 60,000.00. Consider scheduling payment.",
        entity_type="supplier",
        entity_id=uuid.uuid4(),
        entity_reference="Wintex",
        action_required=True,
        status=AlertStatus.ACTIVE,
    )
    values.update(overrides)
    return ProactiveAlert(**values)


def _broken_query(thresholds, now):
    raise RuntimeError("relation does not exist")


@pytest.fixture
def service(async_session, fake_notifier, alert_thresholds):
    return AlertService(async_session, fake_notifier, alert_thresholds)


class TestAlertSweep:
    """Test cases for AlertService.run_alert_sweep."""

    async def test_empty_dataset(self, service, fake_notifier):
        result = await service.run_alert_sweep()

        assert result.alerts_created == 0
        assert result.alerts_resolved == 0
        assert result.failed_rules == []
        fake_notifier.send.assert_not_awaited()

    async def test_repeated_sweep_is_idempotent(self, async_session, service):
        async_session.add(SupplierFactory(name="Wintex", current_balance=Decimal("120000")))
        async_session.add(ShipmentFactory(lot_number="LOT 400", status=ShipmentStatus.DELIVERED))
        await async_session.commit()

        first = await service.run_alert_sweep()
        second = await service.run_alert_sweep()

        assert first.alerts_created == 2
        assert second.alerts_created == 0
        assert second.alerts_resolved == 0
        assert len(await _alerts(async_session, status=AlertStatus.ACTIVE)) == 2

    async def test_balance_alert_lifecycle(self, async_session, service):
        supplier = SupplierFactory(name="Wintex", current_balance=Decimal("40000"), currency="USD")
        async_session.add(supplier)
        await async_session.commit()

        quiet = await service.run_alert_sweep()
        assert quiet.alerts_created == 0

        supplier.current_balance = Decimal("60000")
        await async_session.commit()
        created = await service.run_alert_sweep()

        assert created.alerts_created == 1
        detail = created.details["created"][0]
        assert detail.type == AlertType.HIGH_SUPPLIER_BALANCE
        assert detail.severity == AlertSeverity.WARNING
        assert detail.entity == "Wintex"

        supplier.current_balance = Decimal("30000")
        await async_session.commit()
        resolved = await service.run_alert_sweep()

        assert resolved.alerts_resolved == 1
        assert resolved.details["resolved"][0].entity == "Wintex"
        [alert] = await _alerts(async_session, AlertType.HIGH_SUPPLIER_BALANCE)
        assert alert.status == AlertStatus.RESOLVED
        assert alert.resolution_notes == AUTO_RESOLUTION_NOTE
        assert alert.resolved_at is not None

        supplier.current_balance = Decimal("75000")
        await async_session.commit()
        reopened = await service.run_alert_sweep()

        assert reopened.alerts_created == 1
        assert len(await _alerts(async_session, AlertType.HIGH_SUPPLIER_BALANCE)) == 2

    async def test_telex_alert_resolves_only_when_released(self, async_session, service):
        shipment = ArrivedShipmentFactory(lot_number="LOT 881", days_ago=5)
        async_session.add(shipment)
        await async_session.commit()
        await service.run_alert_sweep()

        # Leaving the pending statuses is not a fix
        shipment.status = ShipmentStatus.DELIVERED
        await async_session.commit()
        unchanged = await service.run_alert_sweep()

        telex_resolved = [d for d in unchanged.details["resolved"] if d.type == AlertType.OVERDUE_TELEX]
        assert telex_resolved == []
        [alert] = await _alerts(async_session, AlertType.OVERDUE_TELEX)
        assert alert.status == AlertStatus.ACTIVE

        shipment.telex_released = True
        await async_session.commit()
        fixed = await service.run_alert_sweep()

        assert [d.entity for d in fixed.details["resolved"] if d.type == AlertType.OVERDUE_TELEX] == ["LOT 881"]
        [alert] = await _alerts(async_session, AlertType.OVERDUE_TELEX)
        assert alert.status == AlertStatus.RESOLVED

    async def test_missing_invoice_resolves_when_invoiced(self, async_session, service):
        shipment = ShipmentFactory(lot_number="LOT 402", status=ShipmentStatus.DELIVERED)
        async_session.add(shipment)
        await async_session.commit()
        await service.run_alert_sweep()

        async_session.add(ShipmentCostsFactory(shipment_id=shipment.id, client_invoice_zar=Decimal("85000")))
        await async_session.commit()
        result = await service.run_alert_sweep()

        assert [d.type for d in result.details["resolved"]] == [AlertType.MISSING_CLIENT_INVOICE]

    async def test_forwards_warning_and_above_only(self, async_session, service, fake_notifier):
        stale = ShipmentFactory(lot_number="LOT 300", updated_at=datetime.now(timezone.utc) - timedelta(days=10))
        async_session.add_all([
            SupplierFactory(name="Wintex", current_balance=Decimal("60000")),
            stale,
        ])
        await async_session.commit()

        result = await service.run_alert_sweep()

        assert result.alerts_created == 2
        fake_notifier.send.assert_awaited_once()
        notification = fake_notifier.send.await_args.args[0]
        assert notification.title == "High Balance: Wintex"
        assert notification.type == "alert"
        assert notification.priority == "normal"
        assert notification.alert_id == result.details["created"][0].id
        assert notification.message.endswith("\n\nSchedule payment or review outstanding invoices")

    async def test_notification_failures_are_counted(self, async_session, service, fake_notifier):
        async_session.add_all([
            SupplierFactory(name="Wintex", current_balance=Decimal("60000")),
            SupplierFactory(name="Ningbo Steel", current_balance=Decimal("150000")),
        ])
        await async_session.commit()
        fake_notifier.send.side_effect = NotificationException("Notification webhook returned 503")

        result = await service.run_alert_sweep()

        assert result.alerts_created == 2
        assert result.notifications_failed == 2
        assert len(await _alerts(async_session, status=AlertStatus.ACTIVE)) == 2

    async def test_failing_rule_does_not_stop_sweep(self, async_session, fake_notifier, alert_thresholds):
        async_session.add(SupplierFactory(name="Wintex", current_balance=Decimal("60000")))
        await async_session.commit()
        broken = AlertRule(
            AlertType.STALE_SHIPMENT, "shipment", ResolutionMode.WHEN_CLEARED,
            _broken_query, lambda row, t, now: None,
        )
        service = AlertService(
            async_session, fake_notifier, alert_thresholds, rules=[broken, *build_default_rules()]
        )

        result = await service.run_alert_sweep()

        assert result.failed_rules == ["stale_shipment"]
        assert result.alerts_created == 1
        assert result.details["created"][0].type == AlertType.HIGH_SUPPLIER_BALANCE

    async def test_uses_supplied_clock(self, async_session, service):
        shipment = ArrivedShipmentFactory(lot_number="LOT 700", days_ago=1)
        async_session.add(shipment)
        await async_session.commit()

        today = await service.run_alert_sweep()
        next_week = await service.run_alert_sweep(now=datetime.now(timezone.utc) + timedelta(days=7))

        assert [d.type for d in today.details["created"]] == []
        created = {d.type: d for d in next_week.details["created"]}
        assert created[AlertType.OVERDUE_TELEX].severity == AlertSeverity.URGENT


class TestActiveAlertUniqueness:
    """Test cases for the one-active-alert-per-key constraint."""

    async def test_second_active_alert_rejected(self, async_session):
        entity_id = uuid.uuid4()
        async_session.add(_alert(entity_id=entity_id))
        await async_session.commit()

        async_session.add(_alert(entity_id=entity_id))
        with pytest.raises(IntegrityError):
            await async_session.commit()
        await async_session.rollback()

    async def test_resolved_alerts_do_not_block(self, async_session):
        entity_id = uuid.uuid4()
        async_session.add_all([
            _alert(entity_id=entity_id, status=AlertStatus.RESOLVED),
            _alert(entity_id=entity_id, status=AlertStatus.RESOLVED),
            _alert(entity_id=entity_id),
        ])
        await async_session.commit()

        count = await async_session.scalar(select(func.count()).select_from(ProactiveAlert))
        assert count == 3


class TestOperatorActions:
    """Test cases for listing, acknowledging and resolving alerts."""

    async def test_list_orders_by_severity(self, async_session, service):
        async_session.add_all([
            _alert(severity=AlertSeverity.INFO, title="info"),
            _alert(severity=AlertSeverity.CRITICAL, title="critical"),
            _alert(severity=AlertSeverity.WARNING, title="warning"),
            _alert(severity=AlertSeverity.URGENT, title="urgent"),
            _alert(severity=AlertSeverity.URGENT, title="closed", status=AlertStatus.RESOLVED),
        ])
        await async_session.commit()

        active = await service.list_alerts()
        everything = await service.list_alerts(status=None)

        assert [a.title for a in active] == ["critical", "urgent", "warning", "info"]
        assert len(everything) == 5

    async def test_acknowledge(self, async_session, service):
        alert = _alert()
        async_session.add(alert)
        await async_session.commit()

        acknowledged = await service.acknowledge_alert(alert.id, "ops@example.com")

        assert acknowledged.acknowledged_by == "ops@example.com"
        assert acknowledged.acknowledged_at is not None
        assert acknowledged.status == AlertStatus.ACTIVE

    async def test_resolve_manually(self, async_session, service):
        alert = _alert()
        async_session.add(alert)
        await async_session.commit()

        resolved = await service.resolve_alert(alert.id)

        assert resolved.status == AlertStatus.RESOLVED
        assert resolved.resolution_notes == MANUAL_RESOLUTION_NOTE
        with pytest.raises(ValidationException):
            await service.resolve_alert(alert.id, "again")

    async def test_unknown_alert(self, service):
        with pytest.raises(NotFoundException):
            await service.acknowledge_alert(uuid.uuid4(), "ops")
