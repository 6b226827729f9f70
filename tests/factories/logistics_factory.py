"""
Factories for the business entities the automation core reads and patches.
"""

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import factory
from faker import Faker

from app.models.logistics import (
    Client,
    PaymentSchedule,
    PaymentStatus,
    Shipment,
    ShipmentCosts,
    ShipmentStatus,
    Supplier,
)

fake = Faker()


def _utcnow():
    return datetime.now(timezone.utc)


class SupplierFactory(factory.Factory):
    """Factory for generating Supplier model instances."""

    class Meta:
        model = Supplier

    id = factory.LazyFunction(uuid.uuid4)
    name = factory.Faker('company')
    currency = factory.Iterator(['USD', 'EUR', 'CNY'])
    current_balance = Decimal("0.00")

    created_at = factory.LazyFunction(_utcnow)
    updated_at = factory.LazyFunction(_utcnow)


class ClientFactory(factory.Factory):
    """Factory for generating Client model instances."""

    class Meta:
        model = Client

    id = factory.LazyFunction(uuid.uuid4)
    name = factory.Faker('company')
    email = factory.Faker('company_email')

    created_at = factory.LazyFunction(_utcnow)
    updated_at = factory.LazyFunction(_utcnow)


class ShipmentFactory(factory.Factory):
    """Factory for generating Shipment model instances."""

    class Meta:
        model = Shipment

    id = factory.LazyFunction(uuid.uuid4)
    lot_number = factory.Sequence(lambda n: f"LOT {800 + n}")
    supplier_id = None
    client_id = None
    status = ShipmentStatus.IN_TRANSIT
    commodity = factory.Faker('word')

    eta = factory.LazyFunction(lambda: date.today() + timedelta(days=14))
    vessel_name = None
    bl_number = None
    container_number = None

    telex_released = False
    telex_released_date = None

    created_at = factory.LazyFunction(_utcnow)
    updated_at = factory.LazyFunction(_utcnow)


class ArrivedShipmentFactory(ShipmentFactory):
    """Shipment that arrived ``days_ago`` days ago and still awaits its telex."""

    class Params:
        days_ago = 5

    status = ShipmentStatus.ARRIVED
    eta = factory.LazyAttribute(lambda obj: date.today() - timedelta(days=obj.days_ago))


class ShipmentCostsFactory(factory.Factory):
    """Factory for generating ShipmentCosts model instances."""

    class Meta:
        model = ShipmentCosts

    id = factory.LazyFunction(uuid.uuid4)
    shipment_id = None
    supplier_cost = None
    source_currency = None
    client_invoice_zar = None
    profit_margin = None

    created_at = factory.LazyFunction(_utcnow)
    updated_at = factory.LazyFunction(_utcnow)


class PaymentScheduleFactory(factory.Factory):
    """Factory for generating PaymentSchedule model instances."""

    class Meta:
        model = PaymentSchedule

    id = factory.LazyFunction(uuid.uuid4)
    supplier_id = None
    amount_foreign = factory.Faker('pydecimal', left_digits=5, right_digits=2, positive=True)
    currency = 'USD'
    payment_date = factory.LazyFunction(lambda: date.today() + timedelta(days=1))
    status = PaymentStatus.PENDING

    created_at = factory.LazyFunction(_utcnow)
    updated_at = factory.LazyFunction(_utcnow)
