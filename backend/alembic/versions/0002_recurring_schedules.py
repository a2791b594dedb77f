"""recurring weekly schedules

Revision ID: 0002_recurring_schedules
Revises: 0001_initial
Create Date: 2026-10-18 12:00:00

"""
from alembic import op
import sqlalchemy as sa

revision = "0002_recurring_schedules"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("provider_settings") as batch_op:
        batch_op.add_column(sa.Column("weeks_to_maintain", sa.Integer()))

    op.create_table(
        "recurring_schedules",
        sa.Column("provider_id", sa.Text(), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_hour", sa.Integer(), nullable=False),
        sa.Column("end_hour", sa.Integer(), nullable=False),
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.UniqueConstraint("provider_id", "day_of_week", "start_hour"),
    )
    op.create_index("ix_recurring_provider", "recurring_schedules", ["provider_id"])


def downgrade() -> None:
    op.drop_index("ix_recurring_provider", table_name="recurring_schedules")
    op.drop_table("recurring_schedules")
    with op.batch_alter_table("provider_settings") as batch_op:
        batch_op.drop_column("weeks_to_maintain")
