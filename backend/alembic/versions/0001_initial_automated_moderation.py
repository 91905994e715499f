"""Initial automated moderation schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

Creates:
- users
- base content tables: articles, videos, courses, live_events, podcasts, books
- interaction tables: comments, ratings
- automated_moderation_signals (one row per content target)
- content_moderation_events
- admin_audit_logs

Enum columns are stored as strings; the Python Enum classes handle validation.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BASE_CONTENT_TABLES = (
    "articles",
    "videos",
    "courses",
    "live_events",
    "podcasts",
    "books",
)


def upgrade() -> None:
    """Create automated moderation schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    for table_name in BASE_CONTENT_TABLES:
        op.create_table(
            table_name,
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("creator_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("content", sa.Text(), nullable=True),
            sa.Column("status", sa.String(20), nullable=False),
            sa.Column("moderation_status", sa.String(20), nullable=False),
            sa.Column("hidden_at", sa.DateTime(), nullable=True),
            sa.Column("published_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["creator_id"], ["users.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(f"ix_{table_name}_id", table_name, ["id"])
        op.create_index(
            f"ix_{table_name}_creator_created",
            table_name,
            ["creator_id", "created_at"],
        )

    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("target_type", sa.String(20), nullable=False),
        sa.Column("target_id", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("moderation_status", sa.String(20), nullable=False),
        sa.Column("hidden_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_comments_id", "comments", ["id"])
    op.create_index("ix_comments_user_created", "comments", ["user_id", "created_at"])
    op.create_index("ix_comments_target", "comments", ["target_type", "target_id"])

    op.create_table(
        "ratings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("target_type", sa.String(20), nullable=False),
        sa.Column("target_id", sa.Integer(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("review", sa.Text(), nullable=True),
        sa.Column("moderation_status", sa.String(20), nullable=False),
        sa.Column("hidden_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ratings_id", "ratings", ["id"])
    op.create_index("ix_ratings_user_created", "ratings", ["user_id", "created_at"])
    op.create_index("ix_ratings_target", "ratings", ["target_type", "target_id"])

    op.create_table(
        "automated_moderation_signals",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("content_type", sa.String(20), nullable=False),
        sa.Column("content_id", sa.Integer(), nullable=False),
        sa.Column("actor_user_id", sa.Integer(), nullable=True),
        sa.Column("owner_user_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("trigger_source", sa.String(20), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("recommended_action", sa.String(20), nullable=False),
        sa.Column("triggered_rules", sa.JSON(), nullable=False),
        sa.Column("text_signals", sa.JSON(), nullable=False),
        sa.Column("activity_signals", sa.JSON(), nullable=False),
        sa.Column("automation_enabled", sa.Boolean(), nullable=True),
        sa.Column("automation_eligible", sa.Boolean(), nullable=True),
        sa.Column("automation_blocked_reason", sa.String(120), nullable=True),
        sa.Column("automation_attempted", sa.Boolean(), nullable=True),
        sa.Column("automation_executed", sa.Boolean(), nullable=True),
        sa.Column("automation_action", sa.String(20), nullable=True),
        sa.Column("automation_last_outcome", sa.String(20), nullable=True),
        sa.Column("automation_last_error", sa.String(500), nullable=True),
        sa.Column("automation_last_attempt_at", sa.DateTime(), nullable=True),
        sa.Column("first_detected_at", sa.DateTime(), nullable=True),
        sa.Column("last_detected_at", sa.DateTime(), nullable=True),
        sa.Column("last_evaluated_at", sa.DateTime(), nullable=False),
        sa.Column("resolved_by", sa.Integer(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
        sa.Column(
            "resolution_action",
            sa.String(20),
            nullable=True,
            comment="hide, unhide, restrict or cleared",
        ),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["owner_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["resolved_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "content_type", "content_id", name="uq_automated_signal_target"
        ),
    )
    op.create_index(
        "ix_automated_moderation_signals_id", "automated_moderation_signals", ["id"]
    )
    op.create_index(
        "ix_automated_signals_status_severity",
        "automated_moderation_signals",
        ["status", "severity", "last_detected_at"],
    )
    op.create_index(
        "ix_automated_signals_actor_status",
        "automated_moderation_signals",
        ["actor_user_id", "status"],
    )
    op.create_index(
        "ix_automated_signals_owner_status",
        "automated_moderation_signals",
        ["owner_user_id", "status"],
    )

    op.create_table(
        "content_moderation_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("content_type", sa.String(20), nullable=False),
        sa.Column("content_id", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("from_status", sa.String(20), nullable=False),
        sa.Column("to_status", sa.String(20), nullable=False),
        sa.Column("reason", sa.String(500), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["actor_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_content_moderation_events_id", "content_moderation_events", ["id"]
    )
    op.create_index(
        "ix_content_moderation_events_target",
        "content_moderation_events",
        ["content_type", "content_id", "created_at"],
    )
    op.create_index(
        "ix_content_moderation_events_actor",
        "content_moderation_events",
        ["actor_id", "created_at"],
    )

    op.create_table(
        "admin_audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("actor_role", sa.String(30), nullable=False),
        sa.Column("action", sa.String(120), nullable=False),
        sa.Column("scope", sa.String(120), nullable=True),
        sa.Column("resource_type", sa.String(50), nullable=False),
        sa.Column("resource_id", sa.String(120), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("request_id", sa.String(64), nullable=True),
        sa.Column("method", sa.String(10), nullable=False),
        sa.Column("path", sa.String(255), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=False),
        sa.Column("outcome", sa.String(20), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["actor_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_admin_audit_logs_id", "admin_audit_logs", ["id"])
    op.create_index(
        "ix_admin_audit_logs_created_at", "admin_audit_logs", ["created_at"]
    )
    op.create_index(
        "ix_admin_audit_actor_created", "admin_audit_logs", ["actor_id", "created_at"]
    )
    op.create_index(
        "ix_admin_audit_action_created", "admin_audit_logs", ["action", "created_at"]
    )
    op.create_index(
        "ix_admin_audit_resource", "admin_audit_logs", ["resource_type", "resource_id"]
    )


def downgrade() -> None:
    """Drop automated moderation schema."""
    op.drop_table("admin_audit_logs")
    op.drop_table("content_moderation_events")
    op.drop_table("automated_moderation_signals")
    op.drop_table("ratings")
    op.drop_table("comments")
    for table_name in reversed(BASE_CONTENT_TABLES):
        op.drop_table(table_name)
    op.drop_table("users")
