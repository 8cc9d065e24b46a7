"""Initial schema: users, events, registrations with indexes and constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users table (rows provisioned by the identity service)
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("name", sa.String(100), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'student'")),
        sa.Column("college", sa.String(100), nullable=True),
        sa.Column("student_id", sa.String(50), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("major", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("student_id", name="uq_users_student_id"),
        sa.CheckConstraint("role IN ('student', 'organizer', 'reviewer', 'admin')", name="check_user_role"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    # Events table
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("cover", sa.String(500), nullable=False, server_default=sa.text("''")),
        sa.Column("place", sa.String(255), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("limit", sa.Integer(), nullable=False),
        sa.Column("status", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("review_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        # Comma-joined lists; parsed by campus_events.db.types.DelimitedList
        sa.Column("allowed_colleges", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("allowed_grades", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("creator_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("reviewer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("review_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('"limit" > 0', name="check_event_limit_positive"),
        sa.CheckConstraint("status IN (0, 1)", name="check_event_status"),
        sa.CheckConstraint(
            "review_status IN ('pending', 'approved', 'rejected')",
            name="check_event_review_status",
        ),
        sa.CheckConstraint(
            "(reviewer_id IS NULL) = (review_time IS NULL)",
            name="check_event_review_stamp",
        ),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_creator_id", "events", ["creator_id"])
    # Public listing: WHERE review_status = 'approved' ORDER BY start_time
    op.create_index("ix_events_review_start", "events", ["review_status", "start_time"])

    # Registrations table
    op.create_table(
        "registrations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "event_id",
            sa.Integer(),
            sa.ForeignKey("events.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("remark", sa.String(500), nullable=False, server_default=sa.text("''")),
        sa.Column("status", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("status IN (0, 1, 2)", name="check_registration_status"),
    )
    op.create_index("ix_registrations_id", "registrations", ["id"])
    op.create_index("ix_registrations_user_id", "registrations", ["user_id"])
    # Active count taken under the capacity claim
    op.create_index("ix_registrations_event_status", "registrations", ["event_id", "status"])
    # ONE ACTIVE REGISTRATION PER USER PER EVENT.
    # Cancelled rows are excluded so a user can register again after cancelling.
    op.create_index(
        "uq_registrations_active_user_event",
        "registrations",
        ["user_id", "event_id"],
        unique=True,
        postgresql_where=sa.text("status IN (0, 1)"),
        sqlite_where=sa.text("status IN (0, 1)"),
    )


def downgrade() -> None:
    op.drop_table("registrations")
    op.drop_table("events")
    op.drop_table("users")
