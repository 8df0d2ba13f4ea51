"""baseline schema

Revision ID: 5c1e0a7d2b41
Revises:
Create Date: 2026-09-02 10:41:07.118204

Tables are created by Base.metadata.create_all() on startup. This revision
marks that starting point so existing databases can be stamped.
"""
from typing import Sequence, Union


# revision identifiers, used by Alembic.
revision: str = '5c1e0a7d2b41'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    pass


def downgrade() -> None:
    pass
