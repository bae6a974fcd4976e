"""003: create user_channels table

Revision ID: 003
Revises: 002
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE user_channels (
            id                    UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id               VARCHAR(50)     NOT NULL
                                  REFERENCES users (user_id) ON DELETE CASCADE,
            channel_type          VARCHAR(20)     NOT NULL,
            enabled               BOOLEAN         NOT NULL DEFAULT TRUE,
            verified              BOOLEAN         DEFAULT FALSE,
            frequency             VARCHAR(20),
            quiet_hours_enabled   BOOLEAN         DEFAULT FALSE,
            quiet_hours_start     VARCHAR(5),
            quiet_hours_end       VARCHAR(5),
            quiet_hours_timezone  VARCHAR(50),
            created_at            TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at            TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_user_channels_type CHECK (channel_type IN ('email', 'push')),
            CONSTRAINT ck_user_channels_frequency
                CHECK (frequency IS NULL OR frequency IN ('immediate', 'batched', 'digest'))
        );
    """)
    op.execute("CREATE INDEX idx_user_channels_user_id ON user_channels (user_id);")
    op.execute("""
        CREATE TRIGGER trg_user_channels_updated_at
            BEFORE UPDATE ON user_channels
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_channels CASCADE;")
