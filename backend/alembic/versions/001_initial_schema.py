"""Initial schema: departments, events, receipts, passes, slots, admins.

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
    # Departments table
    op.create_table(
        "departments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.UniqueConstraint("name", name="uq_departments_name"),
    )

    # Events table, keyed by the catalog's own id
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.id"), nullable=True),
        sa.Column("event_type", sa.String(20), nullable=False),
        sa.Column("cost", sa.Numeric(10, 2), nullable=True),
        sa.Column("registrations", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("registrations >= 0", name="check_event_registrations_non_negative"),
        sa.CheckConstraint(
            "event_type IN ('technical', 'non-technical', 'workshop')",
            name="check_event_type",
        ),
    )
    # Scoping checks and scan filtering look events up by department
    op.create_index("ix_events_department_id", "events", ["department_id"])

    # Receipts table
    op.create_table(
        "receipts",
        sa.Column("payment_id", sa.String(100), primary_key=True),
        sa.Column("method", sa.String(20), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("paid_on", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # Passes table
    op.create_table(
        "passes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_email", sa.String(255), nullable=False),
        sa.Column("payment_id", sa.String(100), sa.ForeignKey("receipts.payment_id"), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("verified_by", sa.String(255), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("issued", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("payment_id", name="uq_passes_payment_id"),
    )
    op.create_index("ix_passes_user_email", "passes", ["user_email"])

    # Slots table
    # (pass_id, slot_no) and (pass_id, event_id) are the backstop for racing
    # writers; slot_no 1..4 caps a pass at four slots.
    op.create_table(
        "slots",
        sa.Column("pass_id", sa.Uuid(), sa.ForeignKey("passes.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("slot_no", sa.Integer(), primary_key=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("attended", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("pass_id", "event_id", name="uq_slot_pass_event"),
        sa.CheckConstraint("slot_no BETWEEN 1 AND 4", name="check_slot_no_range"),
    )
    # Reconciliation counts slots per event
    op.create_index("ix_slots_event_id", "slots", ["event_id"])

    # Admins table
    op.create_table(
        "admins",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'volunteer'")),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "role IN ('volunteer', 'event_admin', 'dept_admin', 'super_admin')",
            name="check_admin_role",
        ),
    )
    op.create_index("ix_admins_email", "admins", ["email"], unique=True)


def downgrade() -> None:
    op.drop_table("admins")
    op.drop_table("slots")
    op.drop_table("passes")
    op.drop_table("receipts")
    op.drop_table("events")
    op.drop_table("departments")
