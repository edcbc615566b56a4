"""006: create payment requests

Revision ID: 006
Revises: 005
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE payment_requests (
            id                  VARCHAR(64)     PRIMARY KEY,
            user_id             VARCHAR(64)     NOT NULL,
            type                VARCHAR(16)     NOT NULL,
            amount              BIGINT          NOT NULL,
            status              VARCHAR(16)     NOT NULL DEFAULT 'pending',
            bank_account_name   VARCHAR(128),
            bank_account_number VARCHAR(32),
            bank_name           VARCHAR(128),
            note                VARCHAR(500),
            admin_note          VARCHAR(500),
            processed_by        VARCHAR(64),
            processed_at        TIMESTAMPTZ,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_payment_type      CHECK (type IN ('deposit', 'withdrawal')),
            CONSTRAINT ck_payment_status    CHECK (status IN ('pending', 'approved', 'rejected')),
            CONSTRAINT ck_payment_amount_gt_0 CHECK (amount > 0),
            CONSTRAINT ck_payment_processed CHECK (
                (status = 'pending') = (processed_at IS NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_payments_user_time ON payment_requests (user_id, created_at DESC);")
    op.execute(
        "CREATE INDEX idx_payments_pending ON payment_requests (type, created_at) "
        "WHERE status = 'pending';"
    )
    op.execute("""
        CREATE TRIGGER trg_payment_requests_updated_at
            BEFORE UPDATE ON payment_requests
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON TABLE payment_requests IS 'Yêu cầu nạp/rút — pending chỉ chuyển trạng thái một lần';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS payment_requests CASCADE;")
