"""010: create reviews

Revision ID: 010
Revises: 009
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op

revision: str = "010"
down_revision: Union[str, None] = "009"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE reviews (
            id          BIGSERIAL       PRIMARY KEY,
            listing_id  VARCHAR(64)     NOT NULL,
            buyer_id    VARCHAR(64)     NOT NULL,
            rating      SMALLINT        NOT NULL,
            comment     VARCHAR(2000)   NOT NULL DEFAULT '',
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_reviews_listing_buyer UNIQUE (listing_id, buyer_id),
            CONSTRAINT ck_reviews_rating CHECK (rating BETWEEN 1 AND 5)
        );
    """)
    op.execute("CREATE INDEX idx_reviews_listing_time ON reviews (listing_id, created_at DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS reviews CASCADE;")
