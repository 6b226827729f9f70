"""Create business entities, extraction queue and proactive alert tables

Revision ID: 001_create_automation_core_tables
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_create_automation_core_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _base_columns():
    return [
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Create automation core tables."""

    # Create suppliers table
    op.create_table('suppliers',
        *_base_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('current_balance', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.CheckConstraint("name <> ''", name='check_supplier_name_not_empty'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_suppliers_name'), 'suppliers', ['name'], unique=False)

    # Create clients table
    op.create_table('clients',
        *_base_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_clients_name'), 'clients', ['name'], unique=False)

    # Create shipments table
    op.create_table('shipments',
        *_base_columns(),
        sa.Column('lot_number', sa.String(length=50), nullable=False),
        sa.Column('supplier_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('client_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('status', sa.String(length=30), nullable=False),
        sa.Column('commodity', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('eta', sa.Date(), nullable=True),
        sa.Column('vessel_name', sa.String(length=255), nullable=True),
        sa.Column('bl_number', sa.String(length=100), nullable=True),
        sa.Column('container_number', sa.String(length=100), nullable=True),
        sa.Column('telex_released', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('telex_released_date', sa.Date(), nullable=True),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_shipments_lot_number'), 'shipments', ['lot_number'], unique=False)
    op.create_index(op.f('ix_shipments_supplier_id'), 'shipments', ['supplier_id'], unique=False)
    op.create_index(op.f('ix_shipments_client_id'), 'shipments', ['client_id'], unique=False)
    op.create_index(op.f('ix_shipments_status'), 'shipments', ['status'], unique=False)
    op.create_index('idx_shipment_status_telex', 'shipments', ['status', 'telex_released'], unique=False)

    # Create shipment_costs table
    op.create_table('shipment_costs',
        *_base_columns(),
        sa.Column('shipment_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('supplier_cost', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('source_currency', sa.String(length=3), nullable=True),
        sa.Column('customs_duty', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('customs_vat', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('container_landing', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('cargo_dues', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('agency_fee', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('clearing_cost', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('ocean_freight_usd', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('ocean_freight_zar', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('fx_applied_rate', sa.Numeric(precision=12, scale=4), nullable=True),
        sa.Column('handover_fee', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('freight_cost', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('transport_cost', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('transport_surcharges', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('transport_total', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('client_invoice_zar', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('profit_margin', sa.Numeric(precision=7, scale=2), nullable=True),
        sa.ForeignKeyConstraint(['shipment_id'], ['shipments.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_shipment_costs_shipment_id'), 'shipment_costs', ['shipment_id'], unique=True)

    # Create payment_schedule table
    op.create_table('payment_schedule',
        *_base_columns(),
        sa.Column('supplier_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('amount_foreign', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_payment_schedule_supplier_id'), 'payment_schedule', ['supplier_id'], unique=False)
    op.create_index(op.f('ix_payment_schedule_payment_date'), 'payment_schedule', ['payment_date'], unique=False)
    op.create_index(op.f('ix_payment_schedule_status'), 'payment_schedule', ['status'], unique=False)

    # Create document_extraction_queue table
    op.create_table('document_extraction_queue',
        *_base_columns(),
        sa.Column('storage_path', sa.Text(), nullable=False),
        sa.Column('source_type', sa.String(length=30), nullable=False),
        sa.Column('status', sa.Enum('queued', 'processing', 'completed', 'needs_review', 'failed', 'rejected', name='extraction_queue_status'), nullable=False),
        sa.Column('extracted_text', sa.Text(), nullable=True),
        sa.Column('extracted_data', sa.JSON(), nullable=True),
        sa.Column('confidence_score', sa.Float(), nullable=True),
        sa.Column('document_type', sa.String(length=50), nullable=True),
        sa.Column('matched_supplier_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('matched_shipment_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('matched_client_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('auto_actions_taken', sa.JSON(), nullable=True),
        sa.Column('needs_human_review', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('queued_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('processing_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processing_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processing_time_ms', sa.Integer(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('review_notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['matched_supplier_id'], ['suppliers.id']),
        sa.ForeignKeyConstraint(['matched_shipment_id'], ['shipments.id']),
        sa.ForeignKeyConstraint(['matched_client_id'], ['clients.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_document_extraction_queue_status'), 'document_extraction_queue', ['status'], unique=False)
    op.create_index(op.f('ix_document_extraction_queue_document_type'), 'document_extraction_queue', ['document_type'], unique=False)
    op.create_index('idx_extraction_queue_status_created', 'document_extraction_queue', ['status', 'created_at'], unique=False)

    # Create proactive_alerts table
    op.create_table('proactive_alerts',
        *_base_columns(),
        sa.Column('alert_type', sa.Enum('high_supplier_balance', 'overdue_telex', 'payment_due_soon', 'low_margin_shipment', 'stale_shipment', 'missing_client_invoice', name='proactive_alert_type'), nullable=False),
        sa.Column('severity', sa.Enum('info', 'warning', 'urgent', 'critical', name='proactive_alert_severity'), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('entity_type', sa.String(length=30), nullable=False),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('entity_reference', sa.String(length=255), nullable=True),
        sa.Column('action_required', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('suggested_action', sa.Text(), nullable=True),
        sa.Column('status', sa.Enum('active', 'resolved', name='proactive_alert_status'), nullable=False),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolution_notes', sa.Text(), nullable=True),
        sa.Column('acknowledged_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('acknowledged_by', sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_proactive_alerts_alert_type'), 'proactive_alerts', ['alert_type'], unique=False)
    op.create_index(op.f('ix_proactive_alerts_status'), 'proactive_alerts', ['status'], unique=False)
    op.create_index('idx_proactive_alert_type_entity_status', 'proactive_alerts', ['alert_type', 'entity_type', 'status'], unique=False)
    # At most one active alert per (alert_type, entity_id)
    op.create_index(
        'uq_proactive_alert_active_key', 'proactive_alerts', ['alert_type', 'entity_id'],
        unique=True, postgresql_where=sa.text("status = 'active'"),
    )


def downgrade() -> None:
    """Drop automation core tables."""

    op.drop_index('uq_proactive_alert_active_key', table_name='proactive_alerts')
    op.drop_index('idx_proactive_alert_type_entity_status', table_name='proactive_alerts')
    op.drop_index(op.f('ix_proactive_alerts_status'), table_name='proactive_alerts')
    op.drop_index(op.f('ix_proactive_alerts_alert_type'), table_name='proactive_alerts')
    op.drop_table('proactive_alerts')

    op.drop_index('idx_extraction_queue_status_created', table_name='document_extraction_queue')
    op.drop_index(op.f('ix_document_extraction_queue_document_type'), table_name='document_extraction_queue')
    op.drop_index(op.f('ix_document_extraction_queue_status'), table_name='document_extraction_queue')
    op.drop_table('document_extraction_queue')

    op.drop_table('payment_schedule')
    op.drop_table('shipment_costs')
    op.drop_table('shipments')
    op.drop_table('clients')
    op.drop_table('suppliers')

    # Drop enums
    sa.Enum(name='proactive_alert_status').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='proactive_alert_severity').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='proactive_alert_type').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='extraction_queue_status').drop(op.get_bind(), checkfirst=True)
