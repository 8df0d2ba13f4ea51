"""add calculation cache and override columns to quotes

Revision ID: 9a3f6b2c7e10
Revises: 5c1e0a7d2b41
Create Date: 2026-09-16 14:22:51.604377

Quotes tables created before the pricing engine have no override or cached
breakdown columns. Adds missing columns idempotently.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '9a3f6b2c7e10'
down_revision: Union[str, None] = '5c1e0a7d2b41'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

QUOTE_COLUMNS = [
    ("override_subtotal", sa.Numeric(12, 2)),
    ("override_total", sa.Numeric(12, 2)),
    ("override_delivery_cost", sa.Numeric(12, 2)),
    ("override_templating_cost", sa.Numeric(12, 2)),
    ("override_reason", sa.Text()),
    ("calculation_breakdown", sa.JSON()),
    ("calculated_total", sa.Numeric(12, 2)),
    ("calculated_at", sa.DateTime()),
]


def _column_exists(table_name, column_name):
    """Check if a column already exists in the table."""
    bind = op.get_bind()
    insp = inspect(bind)
    columns = [c["name"] for c in insp.get_columns(table_name)]
    return column_name in columns


def _table_exists(table_name):
    """Check if a table exists."""
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def upgrade() -> None:
    if _table_exists("quotes"):
        for col_name, col_type in QUOTE_COLUMNS:
            if not _column_exists("quotes", col_name):
                op.add_column("quotes", sa.Column(col_name, col_type, nullable=True))


def downgrade() -> None:
    if _table_exists("quotes"):
        with op.batch_alter_table("quotes") as batch_op:
            for col_name, _ in reversed(QUOTE_COLUMNS):
                if _column_exists("quotes", col_name):
                    batch_op.drop_column(col_name)
