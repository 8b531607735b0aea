"""create core tables

Revision ID: 0001
Revises: None
Create Date: 2026-06-02

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("password_hash", sa.String(length=256), nullable=False),
        sa.Column(
            "tier",
            sa.String(length=16),
            nullable=False,
            server_default="free",
        ),
        sa.Column(
            "is_admin",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column("admin_roles", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column(
            "disabled",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column("stripe_customer_id", sa.String(length=64), nullable=True),
        sa.Column("stripe_subscription_id", sa.String(length=64), nullable=True),
        sa.Column("subscription_status", sa.String(length=32), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("username", name="ux_users_username"),
        sa.UniqueConstraint("email", name="ux_users_email"),
    )

    op.create_table(
        "stock_alerts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("symbol", sa.String(length=16), nullable=False),
        sa.Column("company_name", sa.String(length=255), nullable=False),
        sa.Column("current_price", sa.Float(), nullable=False),
        sa.Column("buy_zone_min", sa.Float(), nullable=False),
        sa.Column("buy_zone_max", sa.Float(), nullable=False),
        sa.Column("target1", sa.Float(), nullable=False),
        sa.Column("target2", sa.Float(), nullable=False),
        sa.Column("target3", sa.Float(), nullable=False),
        sa.Column("technical_reasons", sa.JSON(), nullable=False),
        sa.Column("chart_image_url", sa.String(length=512), nullable=True),
        sa.Column(
            "status",
            sa.String(length=16),
            nullable=False,
            server_default="active",
        ),
        sa.Column("max_price", sa.Float(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "status IN ('active', 'closed', 'cancelled')",
            name="ck_stock_alerts_status",
        ),
    )
    op.create_index("ix_stock_alerts_symbol", "stock_alerts", ["symbol"])
    op.create_index("ix_stock_alerts_status", "stock_alerts", ["status"])

    op.create_table(
        "technical_reasons",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=64), nullable=False, unique=True),
    )

    op.create_table(
        "portfolio_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("stock_alert_id", sa.Integer(), nullable=False),
        sa.Column("bought_price", sa.Float(), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column(
            "notify_target1",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("1"),
        ),
        sa.Column(
            "notify_target2",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("1"),
        ),
        sa.Column(
            "notify_target3",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("1"),
        ),
        sa.Column("custom_target_percent", sa.Float(), nullable=True),
        sa.Column(
            "sold",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column("sold_price", sa.Float(), nullable=True),
        sa.Column("sold_at", sa.DateTime(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_portfolio_items_user_id", "portfolio_items", ["user_id"])
    op.create_index(
        "ix_portfolio_items_stock_alert_id",
        "portfolio_items",
        ["stock_alert_id"],
    )

    op.create_table(
        "system_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("level", sa.String(length=16), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("message", sa.String(length=255), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("correlation_id", sa.String(length=64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_system_events_category", "system_events", ["category"])


def downgrade() -> None:
    op.drop_index("ix_system_events_category", table_name="system_events")
    op.drop_table("system_events")
    op.drop_index("ix_portfolio_items_stock_alert_id", table_name="portfolio_items")
    op.drop_index("ix_portfolio_items_user_id", table_name="portfolio_items")
    op.drop_table("portfolio_items")
    op.drop_table("technical_reasons")
    op.drop_index("ix_stock_alerts_status", table_name="stock_alerts")
    op.drop_index("ix_stock_alerts_symbol", table_name="stock_alerts")
    op.drop_table("stock_alerts")
    op.drop_table("users")
