"""Create accounts, merchants, routes, devices and fare_rules tables

Revision ID: 20261019_000001
Revises: None
Create Date: 2026-10-19

Reference data and wallets for QR fare payments.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create wallet and merchant reference tables."""
    op.create_table(
        'users',
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('phone_number', sa.String(20), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('balance', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='KES'),
        sa.Column('pin_hash', sa.String(255), nullable=False),
        sa.Column(
            'status',
            sa.Enum('active', 'suspended', 'closed', name='account_status', create_constraint=True),
            nullable=False,
            server_default='active',
        ),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('user_id'),
        sa.UniqueConstraint('phone_number', name='uq_users_phone_number'),
        sa.CheckConstraint('balance >= 0', name='ck_users_balance_non_negative'),
    )
    op.create_index('ix_users_phone_number', 'users', ['phone_number'])

    op.create_table(
        'merchants',
        sa.Column('merchant_id', sa.String(36), nullable=False),
        sa.Column(
            'merchant_type',
            sa.Enum('transport', 'shop', name='merchant_type', create_constraint=True),
            nullable=False,
        ),
        sa.Column('business_name', sa.String(255), nullable=False),
        sa.Column('matatu_plate', sa.String(20), nullable=True),
        sa.Column('sacco_name', sa.String(255), nullable=True),
        sa.Column('commission_rate', sa.Numeric(precision=5, scale=4), nullable=False, server_default='0'),
        sa.Column(
            'status',
            sa.Enum('active', 'suspended', name='merchant_status', create_constraint=True),
            nullable=False,
            server_default='active',
        ),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('merchant_id'),
        sa.CheckConstraint(
            'commission_rate >= 0 AND commission_rate < 1',
            name='ck_merchants_commission_rate_range',
        ),
    )

    op.create_table(
        'routes',
        sa.Column('route_id', sa.String(36), nullable=False),
        sa.Column('route_number', sa.String(20), nullable=False),
        sa.Column('route_name', sa.String(255), nullable=False),
        sa.Column('stops', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('route_id'),
    )

    op.create_table(
        'devices',
        sa.Column('device_id', sa.String(36), nullable=False),
        sa.Column('device_token', sa.String(255), nullable=False),
        sa.Column('device_name', sa.String(100), nullable=True),
        sa.Column('merchant_id', sa.String(36), nullable=False),
        sa.Column('route_id', sa.String(36), nullable=True),
        sa.Column(
            'status',
            sa.Enum('active', 'revoked', name='device_status', create_constraint=True),
            nullable=False,
            server_default='active',
        ),
        sa.Column('last_gps_latitude', sa.Float(), nullable=True),
        sa.Column('last_gps_longitude', sa.Float(), nullable=True),
        sa.Column('last_gps_updated_at', sa.DateTime(), nullable=True),
        sa.Column('gps_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('device_id'),
        sa.ForeignKeyConstraint(
            ['merchant_id'],
            ['merchants.merchant_id'],
            name='fk_devices_merchant_id',
            ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['route_id'],
            ['routes.route_id'],
            name='fk_devices_route_id',
            ondelete='SET NULL',
        ),
        sa.UniqueConstraint('device_token', name='uq_devices_device_token'),
    )
    op.create_index('ix_devices_device_token', 'devices', ['device_token'])
    op.create_index('ix_devices_merchant_id', 'devices', ['merchant_id'])

    op.create_table(
        'fare_rules',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('route_id', sa.String(36), nullable=False),
        sa.Column('origin_stop_id', sa.String(50), nullable=False),
        sa.Column('destination_stop_id', sa.String(50), nullable=False),
        sa.Column('fare_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('effective_from', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('effective_until', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(
            ['route_id'],
            ['routes.route_id'],
            name='fk_fare_rules_route_id',
            ondelete='CASCADE',
        ),
    )
    op.create_index('ix_fare_rules_route_id', 'fare_rules', ['route_id'])
    op.create_index('ix_fare_rules_origin_stop_id', 'fare_rules', ['origin_stop_id'])


def downgrade() -> None:
    """Drop wallet and merchant reference tables."""
    op.drop_index('ix_fare_rules_origin_stop_id', table_name='fare_rules')
    op.drop_index('ix_fare_rules_route_id', table_name='fare_rules')
    op.drop_table('fare_rules')
    op.drop_index('ix_devices_merchant_id', table_name='devices')
    op.drop_index('ix_devices_device_token', table_name='devices')
    op.drop_table('devices')
    op.drop_table('routes')
    op.drop_table('merchants')
    op.drop_index('ix_users_phone_number', table_name='users')
    op.drop_table('users')
