"""007: create notifications

Revision ID: 007
Revises: 006
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE notifications (
            id          BIGSERIAL       PRIMARY KEY,
            user_id     VARCHAR(64)     NOT NULL,
            type        VARCHAR(16)     NOT NULL,
            title       VARCHAR(200)    NOT NULL,
            message     VARCHAR(1000)   NOT NULL,
            related_id  VARCHAR(64),
            is_read     BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_notifications_type CHECK (
                type IN ('purchase', 'sale', 'payment', 'system')
            )
        );
    """)
    op.execute("CREATE INDEX idx_notifications_user ON notifications (user_id, id DESC);")
    op.execute(
        "CREATE INDEX idx_notifications_unread ON notifications (user_id) WHERE NOT is_read;"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notifications CASCADE;")
