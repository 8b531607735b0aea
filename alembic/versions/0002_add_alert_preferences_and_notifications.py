"""add alert preferences, trigger ledger and notifications

Revision ID: 0002
Revises: 0001
Create Date: 2026-06-09

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "alert_preferences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "stock_alert_id",
            sa.Integer(),
            sa.ForeignKey("stock_alerts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "target_one",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("1"),
        ),
        sa.Column(
            "target_two",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("1"),
        ),
        sa.Column(
            "target_three",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("1"),
        ),
        sa.Column("percent_change", sa.Float(), nullable=True),
        sa.Column("custom_target_price", sa.Float(), nullable=True),
        sa.Column(
            "notify_web",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("1"),
        ),
        sa.Column(
            "notify_email",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column(
            "notify_sms",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("0"),
        ),
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
        sa.UniqueConstraint(
            "user_id",
            "stock_alert_id",
            name="ux_alert_preferences_user_stock",
        ),
    )
    op.create_index(
        "ix_alert_preferences_stock_alert_id",
        "alert_preferences",
        ["stock_alert_id"],
    )

    op.create_table(
        "alert_trigger_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "stock_alert_id",
            sa.Integer(),
            sa.ForeignKey("stock_alerts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("trigger_type", sa.String(length=16), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "user_id",
            "stock_alert_id",
            "trigger_type",
            name="ux_alert_trigger_events_user_stock_type",
        ),
    )

    op.create_table(
        "user_notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("link_url", sa.String(length=512), nullable=True),
        sa.Column("related_id", sa.Integer(), nullable=True),
        sa.Column("icon", sa.String(length=32), nullable=True),
        sa.Column(
            "important",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column(
            "read",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_user_notifications_user_read",
        "user_notifications",
        ["user_id", "read"],
    )


def downgrade() -> None:
    op.drop_index("ix_user_notifications_user_read", table_name="user_notifications")
    op.drop_table("user_notifications")
    op.drop_table("alert_trigger_events")
    op.drop_index(
        "ix_alert_preferences_stock_alert_id",
        table_name="alert_preferences",
    )
    op.drop_table("alert_preferences")
