"""Initial schema: key-value storage for collections and the event log.

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ACTION_TYPES = (
    "seed_stock",
    "add_item",
    "edit_item",
    "delete_item",
    "set_price",
    "set_manual_quantity",
    "complete_purchase",
    "complete_checked",
    "clear_history",
    "import_snapshot",
)


def upgrade() -> None:
    # One row per persisted collection (stock, history), value is the whole list
    op.create_table(
        "storage_entries",
        sa.Column("key", sa.String(length=100), nullable=False),
        sa.Column("value", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )

    op.create_table(
        "event_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("action_type", sa.Enum(*ACTION_TYPES, name="actiontype"), nullable=False),
        sa.Column("input_summary", sa.Text(), nullable=False),
        sa.Column("output_summary", sa.Text(), nullable=False),
        sa.Column("related_ids", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("event_log")
    op.drop_table("storage_entries")
    sa.Enum(name="actiontype").drop(op.get_bind(), checkfirst=True)
