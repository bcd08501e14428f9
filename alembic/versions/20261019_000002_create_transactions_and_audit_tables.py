"""Create transactions, fraud_alerts and notifications tables

Revision ID: 20261019_000002
Revises: 20261019_000001
Create Date: 2026-10-19

Append-only audit trail of payments. reference_code is unique so concurrent
retries of one payment cannot both commit.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261019_000002"
down_revision: Union[str, None] = "20261019_000001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "transactions",
        sa.Column("transaction_id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("merchant_id", sa.String(36), nullable=False),
        sa.Column("device_id", sa.String(36), nullable=False),
        sa.Column("route_id", sa.String(36), nullable=True),
        sa.Column("transaction_type", sa.String(20), nullable=False, server_default="payment"),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="KES"),
        sa.Column("merchant_commission", sa.Numeric(12, 2), nullable=False),
        sa.Column("net_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "status",
            sa.Enum("success", "failed", name="transaction_status", create_constraint=True),
            nullable=False,
        ),
        sa.Column("reference_code", sa.String(100), nullable=False),
        sa.Column("origin_stop", sa.String(50), nullable=True),
        sa.Column("destination_stop", sa.String(50), nullable=True),
        sa.Column("gps_boarding_latitude", sa.Float(), nullable=True),
        sa.Column("gps_boarding_longitude", sa.Float(), nullable=True),
        sa.Column("auto_detected_origin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("nearest_stop_distance_meters", sa.Integer(), nullable=True),
        sa.Column("user_balance_before", sa.Numeric(12, 2), nullable=False),
        sa.Column("user_balance_after", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("transaction_id"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.user_id"], name="fk_transactions_user_id", ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(
            ["merchant_id"], ["merchants.merchant_id"], name="fk_transactions_merchant_id", ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(["device_id"], ["devices.device_id"], name="fk_transactions_device_id"),
        sa.ForeignKeyConstraint(["route_id"], ["routes.route_id"], name="fk_transactions_route_id"),
        sa.UniqueConstraint("reference_code", name="uq_transactions_reference_code"),
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"])
    op.create_index("ix_transactions_merchant_id", "transactions", ["merchant_id"])
    op.create_index("ix_transactions_created_at", "transactions", ["created_at"])

    op.create_table(
        "fraud_alerts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("transaction_id", sa.String(36), nullable=True),
        sa.Column("alert_type", sa.String(50), nullable=False),
        sa.Column("risk_score", sa.Integer(), nullable=False),
        sa.Column("alert_level", sa.String(20), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.user_id"], name="fk_fraud_alerts_user_id", ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(
            ["transaction_id"], ["transactions.transaction_id"], name="fk_fraud_alerts_transaction_id"
        ),
    )
    op.create_index("ix_fraud_alerts_user_id", "fraud_alerts", ["user_id"])
    op.create_index("ix_fraud_alerts_alert_level", "fraud_alerts", ["alert_level"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column("merchant_id", sa.String(36), nullable=True),
        sa.Column("transaction_id", sa.String(36), nullable=True),
        sa.Column("notification_type", sa.String(10), nullable=False),
        sa.Column("recipient", sa.String(255), nullable=False),
        sa.Column("message", sa.String(500), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="queued"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], name="fk_notifications_user_id"),
        sa.ForeignKeyConstraint(
            ["merchant_id"], ["merchants.merchant_id"], name="fk_notifications_merchant_id"
        ),
        sa.ForeignKeyConstraint(
            ["transaction_id"], ["transactions.transaction_id"], name="fk_notifications_transaction_id"
        ),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_merchant_id", "notifications", ["merchant_id"])


def downgrade() -> None:
    op.drop_index("ix_notifications_merchant_id", table_name="notifications")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_fraud_alerts_alert_level", table_name="fraud_alerts")
    op.drop_index("ix_fraud_alerts_user_id", table_name="fraud_alerts")
    op.drop_table("fraud_alerts")
    op.drop_index("ix_transactions_created_at", table_name="transactions")
    op.drop_index("ix_transactions_merchant_id", table_name="transactions")
    op.drop_index("ix_transactions_user_id", table_name="transactions")
    op.drop_table("transactions")
