"""reception tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "managers",
        sa.Column("full_name", sa.Text(), nullable=False),
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("position", sa.Text()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "recurring_templates",
        sa.Column("manager_id", sa.Integer(), sa.ForeignKey("managers.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "cadence",
            sa.Enum("nth_weekday_of_month", "weekly", "daily", "custom", name="recurrence_cadence"),
            nullable=False,
        ),
        sa.Column("start_time", sa.Text(), nullable=False),
        sa.Column("end_time", sa.Text(), nullable=False),
        sa.Column("slot_duration_minutes", sa.Integer(), nullable=False, server_default=sa.text("10")),
        sa.Column("months_ahead", sa.Integer(), nullable=False, server_default=sa.text("3")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("weekday", sa.Integer()),
        sa.Column("week_number", sa.Integer()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_recurring_templates_manager_id", "recurring_templates", ["manager_id"])

    op.create_table(
        "reception_slots",
        sa.Column("manager_id", sa.Integer(), sa.ForeignKey("managers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_booked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "template_id",
            sa.Integer(),
            sa.ForeignKey("recurring_templates.id", ondelete="SET NULL"),
        ),
        sa.Column("booked_by", sa.Text()),
        sa.Column("booked_email", sa.Text()),
        sa.Column("notes", sa.Text()),
        sa.Column("booked_at", sa.DateTime()),
        sa.UniqueConstraint("manager_id", "date", "start_time", name="uq_reception_slots_manager_start"),
    )
    op.create_index("ix_reception_slots_manager_id", "reception_slots", ["manager_id"])
    op.create_index("ix_reception_slots_date", "reception_slots", ["date"])


def downgrade():
    op.drop_index("ix_reception_slots_date", table_name="reception_slots")
    op.drop_index("ix_reception_slots_manager_id", table_name="reception_slots")
    op.drop_table("reception_slots")
    op.drop_index("ix_recurring_templates_manager_id", table_name="recurring_templates")
    op.drop_table("recurring_templates")
    op.drop_table("managers")
