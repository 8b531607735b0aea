"""add education, achievements and coaching

Revision ID: 0003
Revises: 0002
Create Date: 2026-06-20

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0003"
down_revision = "0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "education_content",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column(
            "category",
            sa.String(length=64),
            nullable=False,
            server_default="general",
        ),
        sa.Column("content_url", sa.String(length=512), nullable=False),
        sa.Column(
            "image_url",
            sa.String(length=512),
            nullable=False,
            server_default="",
        ),
        sa.Column(
            "tier",
            sa.String(length=16),
            nullable=False,
            server_default="free",
        ),
        sa.Column(
            "level",
            sa.String(length=16),
            nullable=False,
            server_default="beginner",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "tier IN ('free', 'paid', 'premium')",
            name="ck_education_content_tier",
        ),
    )
    op.create_index("ix_education_content_tier", "education_content", ["tier"])

    op.create_table(
        "education_progress",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "content_id",
            sa.Integer(),
            sa.ForeignKey("education_content.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "completed",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column(
            "percent_complete",
            sa.Float(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "last_accessed_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "user_id",
            "content_id",
            name="ux_education_progress_user_content",
        ),
    )

    op.create_table(
        "user_achievements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("badge_name", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column(
            "earned_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "user_id",
            "badge_name",
            name="ux_user_achievements_user_badge",
        ),
    )

    op.create_table(
        "success_cards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("stock_alert_id", sa.Integer(), nullable=False),
        sa.Column(
            "percent_gained",
            sa.Float(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column(
            "days_to_target",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column("target_hit", sa.Integer(), nullable=False),
        sa.Column(
            "image_url",
            sa.String(length=512),
            nullable=False,
            server_default="",
        ),
        sa.Column(
            "shared",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column("shared_platform", sa.String(length=32), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "coaching_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column(
            "duration_minutes",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("60"),
        ),
        sa.Column(
            "status",
            sa.String(length=16),
            nullable=False,
            server_default="scheduled",
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "status IN ('scheduled', 'completed', 'cancelled')",
            name="ck_coaching_sessions_status",
        ),
    )
    op.create_index("ix_coaching_sessions_user_id", "coaching_sessions", ["user_id"])

    op.create_table(
        "group_coaching_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("coach", sa.String(length=128), nullable=False),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column(
            "participants",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column("max_participants", sa.Integer(), nullable=False),
        sa.Column(
            "price",
            sa.Float(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column(
            "description",
            sa.Text(),
            nullable=False,
            server_default="",
        ),
        sa.Column("zoom_link", sa.String(length=512), nullable=True),
        sa.Column(
            "status",
            sa.String(length=16),
            nullable=False,
            server_default="scheduled",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "group_session_registrations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "session_id",
            sa.Integer(),
            sa.ForeignKey("group_coaching_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "payment_status",
            sa.String(length=16),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("payment_intent_id", sa.String(length=64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "user_id",
            "session_id",
            name="ux_group_session_registrations_user_session",
        ),
    )


def downgrade() -> None:
    op.drop_table("group_session_registrations")
    op.drop_table("group_coaching_sessions")
    op.drop_index("ix_coaching_sessions_user_id", table_name="coaching_sessions")
    op.drop_table("coaching_sessions")
    op.drop_table("success_cards")
    op.drop_table("user_achievements")
    op.drop_table("education_progress")
    op.drop_index("ix_education_content_tier", table_name="education_content")
    op.drop_table("education_content")
