"""Complaint portal baseline: users, complaints and their child tables.

Revision ID: 0001_complaint_portal_baseline
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

from app.db.types import JSONType, SequenceKey

# revision identifiers, used by Alembic
revision = "0001_complaint_portal_baseline"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(*, updated: bool = True) -> list[sa.Column]:
    cols = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        )
    ]
    if updated:
        cols.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                server_default=sa.func.now(),
                nullable=False,
            )
        )
    return cols


def upgrade() -> None:
    # ==========================================================================
    # Users
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("token_version", sa.Integer(), server_default=sa.text("1"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_role_active", "users", ["role", "is_active"])

    # ==========================================================================
    # Complaints
    # ==========================================================================
    op.create_table(
        "complaints",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "student_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="SET NULL", name="fk_complaints_student_id_users"),
            nullable=True,
        ),
        sa.Column("is_anonymous", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("is_draft", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(30), nullable=False),
        sa.Column("priority", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column(
            "assigned_to",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="SET NULL", name="fk_complaints_assigned_to_users"),
            nullable=True,
        ),
        sa.Column(
            "opened_by",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="SET NULL", name="fk_complaints_opened_by_users"),
            nullable=True,
        ),
        sa.Column("escalation_level", sa.Integer(), server_default=sa.text("0"), nullable=False),
        *_timestamps(),
        sa.Column("opened_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("escalated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_complaints"),
        sa.CheckConstraint(
            "escalation_level >= 0",
            name="ck_complaints_escalation_level_non_negative",
        ),
    )
    op.create_index("ix_complaints_status_created", "complaints", ["status", "created_at"])
    op.create_index("ix_complaints_student", "complaints", ["student_id", "created_at"])
    op.create_index("ix_complaints_assigned_to", "complaints", ["assigned_to"])
    op.create_index(
        "ix_complaints_escalation_scan", "complaints", ["category", "priority", "status"]
    )

    op.create_table(
        "complaint_tags",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "complaint_id",
            sa.Uuid(),
            sa.ForeignKey(
                "complaints.id",
                ondelete="CASCADE",
                name="fk_complaint_tags_complaint_id_complaints",
            ),
            nullable=False,
        ),
        sa.Column("tag_name", sa.String(50), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id", name="pk_complaint_tags"),
        sa.UniqueConstraint(
            "complaint_id", "tag_name", name="uq_complaint_tags_complaint_tag"
        ),
    )

    op.create_table(
        "complaint_comments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "complaint_id",
            sa.Uuid(),
            sa.ForeignKey(
                "complaints.id",
                ondelete="CASCADE",
                name="fk_complaint_comments_complaint_id_complaints",
            ),
            nullable=False,
        ),
        sa.Column(
            "author_id",
            sa.Uuid(),
            sa.ForeignKey(
                "users.id", ondelete="CASCADE", name="fk_complaint_comments_author_id_users"
            ),
            nullable=False,
        ),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("is_internal", sa.Boolean(), server_default=sa.false(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_complaint_comments"),
    )
    op.create_index(
        "ix_complaint_comments_complaint_created",
        "complaint_comments",
        ["complaint_id", "created_at"],
    )

    op.create_table(
        "complaint_feedback",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "complaint_id",
            sa.Uuid(),
            sa.ForeignKey(
                "complaints.id",
                ondelete="CASCADE",
                name="fk_complaint_feedback_complaint_id_complaints",
            ),
            nullable=False,
        ),
        sa.Column(
            "lecturer_id",
            sa.Uuid(),
            sa.ForeignKey(
                "users.id", ondelete="SET NULL", name="fk_complaint_feedback_lecturer_id_users"
            ),
            nullable=True,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_complaint_feedback"),
    )
    op.create_index(
        "ix_complaint_feedback_complaint_created",
        "complaint_feedback",
        ["complaint_id", "created_at"],
    )

    op.create_table(
        "complaint_ratings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "complaint_id",
            sa.Uuid(),
            sa.ForeignKey(
                "complaints.id",
                ondelete="CASCADE",
                name="fk_complaint_ratings_complaint_id_complaints",
            ),
            nullable=False,
        ),
        sa.Column(
            "student_id",
            sa.Uuid(),
            sa.ForeignKey(
                "users.id", ondelete="CASCADE", name="fk_complaint_ratings_student_id_users"
            ),
            nullable=False,
        ),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("feedback_text", sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id", name="pk_complaint_ratings"),
        sa.UniqueConstraint(
            "complaint_id", "student_id", name="uq_complaint_ratings_complaint_student"
        ),
        sa.CheckConstraint(
            "rating >= 1 AND rating <= 5", name="ck_complaint_ratings_rating_range"
        ),
    )

    # ==========================================================================
    # Append-only history
    # ==========================================================================
    op.create_table(
        "complaint_history",
        sa.Column("id", SequenceKey, autoincrement=True, nullable=False),
        sa.Column(
            "complaint_id",
            sa.Uuid(),
            sa.ForeignKey(
                "complaints.id",
                ondelete="CASCADE",
                name="fk_complaint_history_complaint_id_complaints",
            ),
            nullable=False,
        ),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("old_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column(
            "performed_by",
            sa.Uuid(),
            sa.ForeignKey(
                "users.id", ondelete="SET NULL", name="fk_complaint_history_performed_by_users"
            ),
            nullable=True,
        ),
        sa.Column("details", JSONType, nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id", name="pk_complaint_history"),
    )
    op.create_index(
        "ix_complaint_history_timeline",
        "complaint_history",
        ["complaint_id", "created_at", "id"],
    )
    op.create_index(
        "ix_complaint_history_action", "complaint_history", ["complaint_id", "action"]
    )

    # ==========================================================================
    # Escalation rules
    # ==========================================================================
    op.create_table(
        "escalation_rules",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("category", sa.String(30), nullable=False),
        sa.Column("priority", sa.String(20), nullable=False),
        sa.Column("hours_threshold", sa.Integer(), nullable=False),
        sa.Column(
            "escalate_to",
            sa.Uuid(),
            sa.ForeignKey(
                "users.id", ondelete="CASCADE", name="fk_escalation_rules_escalate_to_users"
            ),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column(
            "created_by",
            sa.Uuid(),
            sa.ForeignKey(
                "users.id", ondelete="SET NULL", name="fk_escalation_rules_created_by_users"
            ),
            nullable=True,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_escalation_rules"),
        sa.CheckConstraint(
            "hours_threshold >= 1 AND hours_threshold <= 8760",
            name="ck_escalation_rules_hours_threshold_range",
        ),
    )
    # One active rule per (category, priority)
    op.create_index(
        "uq_escalation_rules_active_pair",
        "escalation_rules",
        ["category", "priority"],
        unique=True,
        postgresql_where=sa.text("is_active"),
        sqlite_where=sa.text("is_active = 1"),
    )

    # ==========================================================================
    # Notifications
    # ==========================================================================
    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_notifications_user_id_users"),
            nullable=False,
        ),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column(
            "complaint_id",
            sa.Uuid(),
            sa.ForeignKey(
                "complaints.id",
                ondelete="CASCADE",
                name="fk_notifications_complaint_id_complaints",
            ),
            nullable=True,
        ),
        sa.Column("dedupe_key", sa.String(255), nullable=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id", name="pk_notifications"),
    )
    op.create_index(
        "ix_notifications_user_unread", "notifications", ["user_id", "read_at", "created_at"]
    )
    op.create_index("ix_notifications_dedupe", "notifications", ["dedupe_key", "created_at"])

    # History rows are append-only at the database level too
    if op.get_bind().dialect.name == "postgresql":
        op.execute(
            """
            CREATE OR REPLACE FUNCTION complaint_history_immutable() RETURNS trigger AS $$
            BEGIN
                RAISE EXCEPTION 'complaint_history rows are append-only';
            END;
            $$ LANGUAGE plpgsql
            """
        )
        op.execute(
            """
            CREATE TRIGGER complaint_history_no_update
            BEFORE UPDATE ON complaint_history
            FOR EACH ROW EXECUTE FUNCTION complaint_history_immutable()
            """
        )
        op.execute(
            """
            CREATE TRIGGER complaint_history_no_delete
            BEFORE DELETE ON complaint_history
            FOR EACH ROW EXECUTE FUNCTION complaint_history_immutable()
            """
        )
        op.execute(
            """
            CREATE TRIGGER complaint_history_no_truncate
            BEFORE TRUNCATE ON complaint_history
            FOR EACH STATEMENT EXECUTE FUNCTION complaint_history_immutable()
            """
        )


def downgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP TRIGGER IF EXISTS complaint_history_no_truncate ON complaint_history")
        op.execute("DROP TRIGGER IF EXISTS complaint_history_no_delete ON complaint_history")
        op.execute("DROP TRIGGER IF EXISTS complaint_history_no_update ON complaint_history")
        op.execute("DROP FUNCTION IF EXISTS complaint_history_immutable()")

    op.drop_table("notifications")
    op.drop_index("uq_escalation_rules_active_pair", table_name="escalation_rules")
    op.drop_table("escalation_rules")
    op.drop_table("complaint_history")
    op.drop_table("complaint_ratings")
    op.drop_table("complaint_feedback")
    op.drop_table("complaint_comments")
    op.drop_table("complaint_tags")
    op.drop_table("complaints")
    op.drop_table("users")
