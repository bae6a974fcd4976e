"""002: create users table

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE users (
            user_id                  VARCHAR(50)     PRIMARY KEY,
            email                    VARCHAR(255)    NOT NULL,
            phone                    VARCHAR(20),
            timezone                 VARCHAR(50)     NOT NULL DEFAULT 'UTC',
            language                 VARCHAR(10)     NOT NULL DEFAULT 'en',
            notification_enabled     BOOLEAN         NOT NULL DEFAULT TRUE,
            marketing                BOOLEAN         NOT NULL DEFAULT FALSE,
            transactional            BOOLEAN         NOT NULL DEFAULT TRUE,
            reminders                BOOLEAN         NOT NULL DEFAULT TRUE,
            digest_enabled           BOOLEAN         NOT NULL DEFAULT FALSE,
            digest_frequency         VARCHAR(20)     NOT NULL DEFAULT 'daily',
            digest_time              VARCHAR(5)      NOT NULL DEFAULT '09:00',
            last_notification_email  TIMESTAMPTZ,
            last_notification_push   TIMESTAMPTZ,
            last_notification_id     VARCHAR(100),
            created_at               TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at               TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_email UNIQUE (email)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON TABLE users IS 'Per-user notification preferences';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
