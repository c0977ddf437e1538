"""add restaurant locations and their delivery zone links

Revision ID: add_restaurant_locations
Revises: create_fulfillment_tables
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = 'add_restaurant_locations'
down_revision: Union[str, None] = 'create_fulfillment_tables'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'restaurant_locations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('branch_name', sa.String(255), nullable=False),
        sa.Column('address', sa.String(500), nullable=False),
        sa.Column('city', sa.String(100), nullable=False),
        sa.Column('district', sa.String(100), nullable=False),
        sa.Column('province', sa.String(100), nullable=False),
        sa.Column('country', sa.String(100), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('contact_number', sa.String(50), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('operating_hours', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_restaurant_locations_active', 'restaurant_locations', ['is_active'])

    op.create_table(
        'restaurant_delivery_zones',
        sa.Column('restaurant_id', sa.Integer(), nullable=False),
        sa.Column('zone_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurant_locations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['zone_id'], ['delivery_zones.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('restaurant_id', 'zone_id'),
    )


def downgrade() -> None:
    op.drop_table('restaurant_delivery_zones')
    op.drop_index('ix_restaurant_locations_active', 'restaurant_locations')
    op.drop_table('restaurant_locations')
