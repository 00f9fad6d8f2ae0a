"""create order, settings, counter and queue tables

Revision ID: 5c3e1a7d92b4
Revises:
Create Date: 2026-10-17 09:12:41.208114

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5c3e1a7d92b4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

def upgrade() -> None:
    op.create_table(
        'order',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(), nullable=False),
        sa.Column('idempotency_key', sa.String(), nullable=True),
        sa.Column('customer_name', sa.String(), nullable=False),
        sa.Column('payment_method', sa.String(), nullable=False),
        sa.Column('delivery_type', sa.String(), nullable=False),
        sa.Column('source', sa.String(), nullable=False),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('items', sa.JSON(), nullable=True),
        sa.Column('tax', sa.JSON(), nullable=True),
        sa.Column('subtotal', sa.Float(), nullable=False),
        sa.Column('discount', sa.Float(), nullable=False),
        sa.Column('tax_total', sa.Float(), nullable=False),
        sa.Column('total', sa.Float(), nullable=False),
        sa.Column('status', sa.String(), server_default='pending', nullable=False),
        sa.Column('is_paid', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('organization_id', 'order_number'),
        sa.UniqueConstraint('organization_id', 'idempotency_key'),
    )
    op.create_index('ix_order_organization_id', 'order', ['organization_id'])
    op.create_index('ix_order_idempotency_key', 'order', ['idempotency_key'])
    op.create_index('ix_order_status', 'order', ['status'])

    op.create_table(
        'organization_settings',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('sync_mode', sa.String(), server_default='auto', nullable=False),
        sa.Column('order_number_format', sa.String(), server_default='ORD-{seq}', nullable=False),
        sa.Column('taxes', sa.JSON(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_organization_settings_organization_id', 'organization_settings', ['organization_id'], unique=True)

    op.create_table(
        'counter',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.UniqueConstraint('organization_id', 'name'),
    )
    op.create_index('ix_counter_organization_id', 'counter', ['organization_id'])

    op.create_table(
        'order_queue_state',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('queued_orders', sa.JSON(), nullable=True),
        sa.Column('failed_orders', sa.JSON(), nullable=True),
        sa.Column('processed_orders', sa.JSON(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

def downgrade() -> None:
    op.drop_table('order_queue_state')
    op.drop_index('ix_counter_organization_id', table_name='counter')
    op.drop_table('counter')
    op.drop_index('ix_organization_settings_organization_id', table_name='organization_settings')
    op.drop_table('organization_settings')
    op.drop_index('ix_order_status', table_name='order')
    op.drop_index('ix_order_idempotency_key', table_name='order')
    op.drop_index('ix_order_organization_id', table_name='order')
    op.drop_table('order')
