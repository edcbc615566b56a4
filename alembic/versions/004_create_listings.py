"""004: create listings

Revision ID: 004
Revises: 003
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE listings (
            id              VARCHAR(64)     PRIMARY KEY,
            seller_id       VARCHAR(64)     NOT NULL,
            title           VARCHAR(200)    NOT NULL,
            description     TEXT            NOT NULL,
            category        VARCHAR(64)     NOT NULL,
            tags            TEXT[]          NOT NULL DEFAULT '{}',
            price           BIGINT          NOT NULL,
            source_link     VARCHAR(1000)   NOT NULL,
            thumbnail_url   VARCHAR(1000)   NOT NULL DEFAULT '',
            demo_url        VARCHAR(1000),
            purchase_count  INT             NOT NULL DEFAULT 0,
            view_count      INT             NOT NULL DEFAULT 0,
            rating_sum      INT             NOT NULL DEFAULT 0,
            total_ratings   INT             NOT NULL DEFAULT 0,
            is_active       BOOLEAN         NOT NULL DEFAULT TRUE,
            is_admin_post   BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_listings_price_gte_0      CHECK (price >= 0),
            CONSTRAINT ck_listings_counters_gte_0   CHECK (
                purchase_count >= 0 AND view_count >= 0
                AND rating_sum >= 0 AND total_ratings >= 0
            )
        );
    """)
    op.execute("CREATE INDEX idx_listings_active_time ON listings (is_active, created_at DESC);")
    op.execute("CREATE INDEX idx_listings_seller ON listings (seller_id, created_at DESC);")
    op.execute("CREATE INDEX idx_listings_category ON listings (category) WHERE is_active;")
    op.execute("CREATE INDEX idx_listings_tags ON listings USING GIN (tags);")
    op.execute("""
        CREATE TRIGGER trg_listings_updated_at
            BEFORE UPDATE ON listings
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON TABLE listings IS 'Mã nguồn đang bán — giá đơn vị: xu';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS listings CASCADE;")
