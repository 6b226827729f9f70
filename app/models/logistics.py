"""
Business entities owned by the surrounding operations application.

The automation core only reads these and field-patches shipments and
shipment costs; it never deletes them.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.base import TimestampMixin, UUIDMixin
from app.db.session import Base


class ShipmentStatus:
    """Shipment status values used by the alert rules."""

    PENDING = "pending"
    IN_TRANSIT = "in-transit"
    ARRIVED = "arrived"
    CLEARING = "clearing"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus:
    """Payment schedule status values."""

    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class Supplier(Base, UUIDMixin, TimestampMixin):
    """Supplier ledger header."""

    __tablename__ = "suppliers"

    name = Column(String(255), nullable=False, index=True)
    currency = Column(String(3), nullable=False, default="USD")
    current_balance = Column(Numeric(15, 2), nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("name <> ''", name="check_supplier_name_not_empty"),
    )

    shipments = relationship("Shipment", back_populates="supplier")
    payments = relationship("PaymentSchedule", back_populates="supplier")

    def __repr__(self):
        return f"<Supplier(id={self.id}, name={self.name}, balance={self.current_balance})>"


class Client(Base, UUIDMixin, TimestampMixin):
    """Client (consignee) master data."""

    __tablename__ = "clients"

    name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), nullable=True)

    shipments = relationship("Shipment", back_populates="client")

    def __repr__(self):
        return f"<Client(id={self.id}, name={self.name})>"


class Shipment(Base, UUIDMixin, TimestampMixin):
    """A shipment tracked by its LOT number."""

    __tablename__ = "shipments"

    lot_number = Column(String(50), nullable=False, index=True)
    supplier_id = Column(UUID(as_uuid=True), ForeignKey("suppliers.id"), nullable=True, index=True)
    client_id = Column(UUID(as_uuid=True), ForeignKey("clients.id"), nullable=True, index=True)
    status = Column(String(30), nullable=False, default=ShipmentStatus.PENDING, index=True)
    commodity = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    # Shipping details
    eta = Column(Date, nullable=True)
    vessel_name = Column(String(255), nullable=True)
    bl_number = Column(String(100), nullable=True)
    container_number = Column(String(100), nullable=True)

    # Banking release
    telex_released = Column(Boolean, nullable=False, default=False)
    telex_released_date = Column(Date, nullable=True)

    __table_args__ = (
        Index("idx_shipment_status_telex", "status", "telex_released"),
    )

    supplier = relationship("Supplier", back_populates="shipments")
    client = relationship("Client", back_populates="shipments")
    costs = relationship("ShipmentCosts", back_populates="shipment", uselist=False)

    def __repr__(self):
        return f"<Shipment(id={self.id}, lot_number={self.lot_number}, status={self.status})>"


class ShipmentCosts(Base, UUIDMixin, TimestampMixin):
    """Costing sheet for a shipment; one row per shipment."""

    __tablename__ = "shipment_costs"

    shipment_id = Column(
        UUID(as_uuid=True), ForeignKey("shipments.id"), nullable=False, unique=True, index=True
    )

    # Supplier
    supplier_cost = Column(Numeric(15, 2), nullable=True)
    source_currency = Column(String(3), nullable=True)

    # Clearing agent
    customs_duty = Column(Numeric(15, 2), nullable=True)
    customs_vat = Column(Numeric(15, 2), nullable=True)
    container_landing = Column(Numeric(15, 2), nullable=True)
    cargo_dues = Column(Numeric(15, 2), nullable=True)
    agency_fee = Column(Numeric(15, 2), nullable=True)
    clearing_cost = Column(Numeric(15, 2), nullable=True)

    # Shipping line
    ocean_freight_usd = Column(Numeric(15, 2), nullable=True)
    ocean_freight_zar = Column(Numeric(15, 2), nullable=True)
    fx_applied_rate = Column(Numeric(12, 4), nullable=True)
    handover_fee = Column(Numeric(15, 2), nullable=True)
    freight_cost = Column(Numeric(15, 2), nullable=True)

    # Transport
    transport_cost = Column(Numeric(15, 2), nullable=True)
    transport_surcharges = Column(Numeric(15, 2), nullable=True)
    transport_total = Column(Numeric(15, 2), nullable=True)

    # Revenue side, maintained by the invoicing screens
    client_invoice_zar = Column(Numeric(15, 2), nullable=True)
    profit_margin = Column(Numeric(7, 2), nullable=True)

    shipment = relationship("Shipment", back_populates="costs")

    def __repr__(self):
        return f"<ShipmentCosts(shipment_id={self.shipment_id})>"


class PaymentSchedule(Base, UUIDMixin, TimestampMixin):
    """Scheduled supplier payment."""

    __tablename__ = "payment_schedule"

    supplier_id = Column(UUID(as_uuid=True), ForeignKey("suppliers.id"), nullable=False, index=True)
    amount_foreign = Column(Numeric(15, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    payment_date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING, index=True)

    supplier = relationship("Supplier", back_populates="payments")

    def __repr__(self):
        return f"<PaymentSchedule(id={self.id}, supplier_id={self.supplier_id}, date={self.payment_date})>"


# Columns on ShipmentCosts that document automation and manual review may write
SHIPMENT_COST_FIELDS = frozenset(
    column.name
    for column in ShipmentCosts.__table__.columns
    if column.name not in {"id", "shipment_id", "created_at", "updated_at"}
)
