"""009: seed system accounts

Revision ID: 009
Revises: 008
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op

revision: str = "009"
down_revision: Union[str, None] = "008"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Receives admin_commission of every purchase (src/cm_account/domain/constants.py)
    op.execute("""
        INSERT INTO accounts (user_id, balance, version)
        VALUES ('PLATFORM_FEE', 0, 0)
        ON CONFLICT (user_id) DO NOTHING;
    """)


def downgrade() -> None:
    op.execute("DELETE FROM accounts WHERE user_id = 'PLATFORM_FEE';")
