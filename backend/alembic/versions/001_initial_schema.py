"""Initial schema: users, seniors, care circle, family codes and alerts.

Revision ID: 001
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACCESS_LEVELS = ("minimal", "standard", "full")
ALERT_SEVERITIES = ("low", "medium", "high", "critical")
ALERT_STATUSES = ("new", "acknowledged", "in_progress", "resolved", "false_positive")


def _str_enum(values, name):
    return sa.Enum(*values, name=name, native_enum=False, length=20)


def upgrade() -> None:
    """Create all tables."""

    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ── seniors ───────────────────────────────────────────────────────
    op.create_table(
        "seniors",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ── family_members ────────────────────────────────────────────────
    op.create_table(
        "family_members",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("senior_id", sa.Uuid(), sa.ForeignKey("seniors.id"), nullable=False),
        sa.Column("relationship", sa.String(50), nullable=False),
        sa.Column("is_primary_contact", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("access_level", _str_enum(ACCESS_LEVELS, "accesslevel"), nullable=False, server_default="standard"),
        sa.Column("notification_preferences", postgresql.JSONB(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "senior_id", name="uq_family_members_user_senior"),
    )
    op.create_index("ix_family_members_user_id", "family_members", ["user_id"])
    op.create_index("ix_family_members_senior_id", "family_members", ["senior_id"])
    # At most one primary contact per senior
    op.create_index(
        "uq_family_members_primary_contact",
        "family_members",
        ["senior_id"],
        unique=True,
        postgresql_where=sa.text("is_primary_contact"),
    )

    # ── membership_audit_log ──────────────────────────────────────────
    op.create_table(
        "membership_audit_log",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("membership_id", sa.Uuid(), nullable=False),
        sa.Column("senior_id", sa.Uuid(), sa.ForeignKey("seniors.id"), nullable=False),
        sa.Column("actor_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("old_value", sa.String(100), nullable=True),
        sa.Column("new_value", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_membership_audit_log_membership_id", "membership_audit_log", ["membership_id"])
    op.create_index("ix_membership_audit_log_senior_id", "membership_audit_log", ["senior_id"])

    # ── family_codes ──────────────────────────────────────────────────
    op.create_table(
        "family_codes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("code", sa.String(16), unique=True, nullable=False),
        sa.Column("senior_id", sa.Uuid(), sa.ForeignKey("seniors.id"), nullable=False),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("max_uses", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("current_uses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "current_uses >= 0 AND current_uses <= max_uses",
            name="ck_family_codes_uses_in_range",
        ),
    )
    op.create_index("ix_family_codes_senior_id", "family_codes", ["senior_id"])

    # ── family_code_usages ────────────────────────────────────────────
    op.create_table(
        "family_code_usages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code_id", sa.Uuid(), sa.ForeignKey("family_codes.id"), nullable=False),
        sa.Column("redeemed_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("relationship", sa.String(50), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_family_code_usages_code_id", "family_code_usages", ["code_id"])

    # ── alerts ────────────────────────────────────────────────────────
    op.create_table(
        "alerts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("senior_id", sa.Uuid(), sa.ForeignKey("seniors.id"), nullable=False),
        sa.Column("call_id", sa.Uuid(), nullable=True),
        sa.Column("alert_type", sa.String(50), nullable=False),
        sa.Column("severity", _str_enum(ALERT_SEVERITIES, "alertseverity"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("detected_indicators", postgresql.JSONB(), nullable=True),
        sa.Column("confidence_score", sa.Float(), nullable=True),
        sa.Column("status", _str_enum(ALERT_STATUSES, "alertstatus"), nullable=False, server_default="new"),
        sa.Column("acknowledged_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("acknowledged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_alerts_senior_id", "alerts", ["senior_id"])
    op.create_index("ix_alerts_senior_status", "alerts", ["senior_id", "status"])

    # ── alert_events ──────────────────────────────────────────────────
    op.create_table(
        "alert_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("alert_id", sa.Uuid(), sa.ForeignKey("alerts.id"), nullable=False),
        sa.Column("from_status", _str_enum(ALERT_STATUSES, "alertstatus"), nullable=False),
        sa.Column("to_status", _str_enum(ALERT_STATUSES, "alertstatus"), nullable=False),
        sa.Column("actor_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_alert_events_alert_id", "alert_events", ["alert_id"])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table("alert_events")
    op.drop_table("alerts")
    op.drop_table("family_code_usages")
    op.drop_table("family_codes")
    op.drop_table("membership_audit_log")
    op.drop_table("family_members")
    op.drop_table("seniors")
    op.drop_table("users")
