"""011: create categories

Revision ID: 011
Revises: 010
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op

revision: str = "011"
down_revision: Union[str, None] = "010"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE categories (
            id              BIGSERIAL       PRIMARY KEY,
            name            VARCHAR(64)     NOT NULL,
            slug            VARCHAR(64)     NOT NULL,
            description     VARCHAR(500)    NOT NULL,
            icon            VARCHAR(16)     NOT NULL,
            is_active       BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_categories_slug   UNIQUE (slug),
            CONSTRAINT ck_categories_slug   CHECK (slug ~ '^[a-z0-9]+(-[a-z0-9]+)*$')
        );
    """)
    op.execute("CREATE UNIQUE INDEX uq_categories_name_ci ON categories (lower(name));")
    op.execute("""
        CREATE TRIGGER trg_categories_updated_at
            BEFORE UPDATE ON categories
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    # Starter catalogue; listings.category holds the slug
    op.execute("""
        INSERT INTO categories (name, slug, description, icon) VALUES
            ('Web',      'web',     'Website và ứng dụng web',          '🌐'),
            ('Mobile',   'mobile',  'Ứng dụng di động',                  '📱'),
            ('Desktop',  'desktop', 'Phần mềm máy tính',                 '💻'),
            ('Game',     'game',    'Trò chơi',                          '🎮'),
            ('Công cụ',  'tools',   'Script và công cụ tiện ích',        '🔧'),
            ('AI',       'ai',      'Trí tuệ nhân tạo và học máy',       '🤖')
        ON CONFLICT DO NOTHING;
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS categories CASCADE;")
