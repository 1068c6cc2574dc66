"""Introduce the points ledger, rewards and vouchers.

Revision ID: 20261008_points_ledger
Revises: 20261001_initial
Create Date: 2026-10-08 12:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "20261008_points_ledger"
down_revision = "20261001_initial"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "user_points",
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_redeemed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_earned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "points_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=True),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("order_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "order_id", "type", name="uq_points_transactions_order"),
    )
    op.create_index("ix_points_transactions_user_id", "points_transactions", ["user_id"])
    op.create_index("ix_points_transactions_order_id", "points_transactions", ["order_id"])

    op.create_table(
        "rewards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("points_required", sa.Integer(), nullable=False, server_default="50"),
        sa.Column("discount_amount", sa.Numeric(10, 2), nullable=False, server_default="5.00"),
        sa.Column("discount_type", sa.String(length=32), nullable=False, server_default="fixed"),
        sa.Column("min_order_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("voucher_validity_days", sa.Integer(), nullable=True),
        sa.Column("max_uses_per_user", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("usage_instructions", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "user_vouchers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reward_id", sa.Integer(), sa.ForeignKey("rewards.id", ondelete="SET NULL"), nullable=True),
        sa.Column("voucher_code", sa.String(length=32), nullable=False),
        sa.Column("discount_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("discount_type", sa.String(length=32), nullable=False, server_default="fixed"),
        sa.Column("min_order_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("points_used", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("applied_to_order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=True),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("title", sa.String(length=150), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_user_vouchers_user_id", "user_vouchers", ["user_id"])
    op.create_index("ix_user_vouchers_voucher_code", "user_vouchers", ["voucher_code"], unique=True)
    op.create_index("ix_user_vouchers_status", "user_vouchers", ["status"])

    op.execute(
        """
        INSERT INTO user_points (user_id, points, total_earned, total_redeemed)
        SELECT id, 0, 0, 0
        FROM users
        """
    )


def downgrade():
    op.drop_index("ix_user_vouchers_status", table_name="user_vouchers")
    op.drop_index("ix_user_vouchers_voucher_code", table_name="user_vouchers")
    op.drop_index("ix_user_vouchers_user_id", table_name="user_vouchers")
    op.drop_table("user_vouchers")
    op.drop_table("rewards")
    op.drop_index("ix_points_transactions_order_id", table_name="points_transactions")
    op.drop_index("ix_points_transactions_user_id", table_name="points_transactions")
    op.drop_table("points_transactions")
    op.drop_table("user_points")
