"""012: create comments

Revision ID: 012
Revises: 011
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op

revision: str = "012"
down_revision: Union[str, None] = "011"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE comments (
            id          BIGSERIAL       PRIMARY KEY,
            listing_id  VARCHAR(64)     NOT NULL,
            user_id     VARCHAR(64)     NOT NULL,
            parent_id   BIGINT,
            content     VARCHAR(2000)   NOT NULL,
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_comments_content_not_blank CHECK (length(btrim(content)) > 0)
        );
    """)
    op.execute(
        "CREATE INDEX idx_comments_listing_time ON comments (listing_id, created_at DESC) "
        "WHERE parent_id IS NULL;"
    )
    op.execute("CREATE INDEX idx_comments_parent ON comments (parent_id, created_at);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS comments CASCADE;")
