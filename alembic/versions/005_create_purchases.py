"""005: create purchases

Revision ID: 005
Revises: 004
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE purchases (
            id                  VARCHAR(64) PRIMARY KEY,
            buyer_id            VARCHAR(64) NOT NULL,
            listing_id          VARCHAR(64) NOT NULL,
            seller_id           VARCHAR(64) NOT NULL,
            amount              BIGINT      NOT NULL,
            seller_earnings     BIGINT      NOT NULL,
            admin_commission    BIGINT      NOT NULL,
            access_expires_at   TIMESTAMPTZ,
            created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_purchases_amount_gte_0 CHECK (amount >= 0),
            CONSTRAINT ck_purchases_split_exact CHECK (
                seller_earnings >= 0 AND admin_commission >= 0
                AND seller_earnings + admin_commission = amount
            ),
            CONSTRAINT ck_purchases_not_self CHECK (buyer_id <> seller_id)
        );
    """)
    op.execute(
        "CREATE INDEX idx_purchases_buyer_listing ON purchases (buyer_id, listing_id, created_at DESC);"
    )
    op.execute("CREATE INDEX idx_purchases_buyer_time ON purchases (buyer_id, created_at DESC);")
    op.execute("CREATE INDEX idx_purchases_seller_time ON purchases (seller_id, created_at DESC);")
    op.execute("CREATE INDEX idx_purchases_listing ON purchases (listing_id);")
    op.execute("COMMENT ON TABLE purchases IS 'Giao dịch mua — Append-Only, không sửa/xóa';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS purchases CASCADE;")
