"""initial schema — users, budgets, sensor readings, settings

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SENSOR_TABLES = ("sensor_data", "sensor_data2")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("auth_id", sa.String(128), nullable=False, unique=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("name", sa.String(128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "budgets",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("amount", sa.Float, nullable=False),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("last_alert_sent", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_budgets_amount_positive"),
        sa.CheckConstraint(
            "start_date IS NULL OR end_date IS NULL OR start_date <= end_date",
            name="ck_budgets_window_order",
        ),
    )

    for table in SENSOR_TABLES:
        op.create_table(
            table,
            sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
            sa.Column("date", sa.DateTime, nullable=False),
            sa.Column("voltage", sa.Float, server_default=sa.text("0.0")),
            sa.Column("ampere", sa.Float, server_default=sa.text("0.0")),
            sa.Column("power", sa.Float, server_default=sa.text("0.0")),
            sa.Column("energy", sa.Float, server_default=sa.text("0.0")),
            sa.Column("pf", sa.Float, server_default=sa.text("0.0")),
            sa.Column("price", sa.Float, server_default=sa.text("0.0")),
        )
        op.create_index(f"ix_{table}_date", table, ["date"])

    op.create_table(
        "settings",
        sa.Column("key", sa.String(64), primary_key=True),
        sa.Column("value", sa.Text, server_default=""),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("settings")
    for table in reversed(SENSOR_TABLES):
        op.drop_index(f"ix_{table}_date", table_name=table)
        op.drop_table(table)
    op.drop_table("budgets")
    op.drop_table("users")
