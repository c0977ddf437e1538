"""create delivery zones, time slots and orders

Revision ID: create_fulfillment_tables
Revises:
Create Date: 2026-10-12
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = 'create_fulfillment_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'delivery_zones',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('center_latitude', sa.Float(), nullable=False),
        sa.Column('center_longitude', sa.Float(), nullable=False),
        sa.Column('radius_km', sa.Float(), server_default='0', nullable=False),
        sa.Column('base_fee', sa.DECIMAL(10, 2), server_default='0', nullable=False),
        sa.Column('min_order_amount', sa.DECIMAL(10, 2), server_default='0', nullable=False),
        sa.Column('max_delivery_time', sa.Integer(), server_default='0', nullable=False),
        sa.Column('per_km_surcharge', sa.DECIMAL(10, 2), nullable=True),
        sa.Column('operating_hours', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('priority', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('radius_km >= 0', name='ck_delivery_zones_radius_non_negative'),
        sa.CheckConstraint('base_fee >= 0', name='ck_delivery_zones_fee_non_negative'),
        sa.CheckConstraint('min_order_amount >= 0', name='ck_delivery_zones_min_order_non_negative'),
    )
    op.create_index('ix_delivery_zones_active', 'delivery_zones', ['is_active'])
    op.create_index('ix_delivery_zones_active_priority', 'delivery_zones', ['is_active', 'priority'])

    op.create_table(
        'delivery_time_slots',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('zone_id', sa.Integer(), sa.ForeignKey('delivery_zones.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), server_default='0', nullable=False),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('end_time', sa.String(5), nullable=False),
        sa.Column('max_orders', sa.Integer(), server_default='10', nullable=False),
        sa.Column('current_orders', sa.Integer(), server_default='0', nullable=False),
        sa.Column('is_available', sa.Boolean(), server_default='true', nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('current_orders >= 0', name='ck_delivery_time_slots_booked_non_negative'),
        sa.CheckConstraint('current_orders <= max_orders', name='ck_delivery_time_slots_within_capacity'),
    )
    op.create_index('ix_delivery_time_slots_zone_position', 'delivery_time_slots', ['zone_id', 'position'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('order_type', sa.String(20), nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('payment_method', sa.String(20), nullable=False),
        sa.Column('payment_status', sa.String(20), nullable=False),
        sa.Column('subtotal', sa.DECIMAL(10, 2), server_default='0', nullable=False),
        sa.Column('delivery_charge', sa.DECIMAL(10, 2), server_default='0', nullable=False),
        sa.Column('tax', sa.DECIMAL(10, 2), server_default='0', nullable=False),
        sa.Column('discount', sa.DECIMAL(10, 2), server_default='0', nullable=False),
        sa.Column('final_price', sa.DECIMAL(10, 2), server_default='0', nullable=False),
        sa.Column('is_out_of_zone', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('delivery_street', sa.Text(), nullable=True),
        sa.Column('delivery_city', sa.String(255), nullable=True),
        sa.Column('delivery_postal_code', sa.String(20), nullable=True),
        sa.Column('delivery_latitude', sa.Float(), nullable=True),
        sa.Column('delivery_longitude', sa.Float(), nullable=True),
        sa.Column('delivery_instructions', sa.Text(), nullable=True),
        sa.Column('delivery_zone_id', sa.Integer(), sa.ForeignKey('delivery_zones.id'), nullable=True),
        sa.Column(
            'delivery_slot_id', sa.Integer(),
            sa.ForeignKey('delivery_time_slots.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('estimated_delivery_time', sa.DateTime(), nullable=True),
        sa.Column('actual_delivery_time', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])
    op.create_index('ix_orders_user_status', 'orders', ['user_id', 'status'])
    op.create_index('ix_orders_user_created', 'orders', ['user_id', 'created_at'])
    op.create_index('ix_orders_zone_id', 'orders', ['delivery_zone_id'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), server_default='0', nullable=False),
        sa.Column('product_id', sa.String(64), nullable=False),
        sa.Column('product_name', sa.String(255), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('size', sa.String(10), server_default='medium', nullable=False),
        sa.Column('toppings', sa.JSON(), nullable=True),
        sa.Column('special_instructions', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])


def downgrade() -> None:
    op.drop_index('ix_order_items_order_id', 'order_items')
    op.drop_table('order_items')
    for index in (
        'ix_orders_zone_id', 'ix_orders_user_created', 'ix_orders_user_status',
        'ix_orders_created_at', 'ix_orders_status', 'ix_orders_user_id',
    ):
        op.drop_index(index, 'orders')
    op.drop_table('orders')
    op.drop_index('ix_delivery_time_slots_zone_position', 'delivery_time_slots')
    op.drop_table('delivery_time_slots')
    op.drop_index('ix_delivery_zones_active_priority', 'delivery_zones')
    op.drop_index('ix_delivery_zones_active', 'delivery_zones')
    op.drop_table('delivery_zones')
