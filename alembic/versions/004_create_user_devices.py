"""004: create user_devices table

Revision ID: 004
Revises: 003
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE user_devices (
            device_id    VARCHAR(50)     PRIMARY KEY,
            channel_id   UUID            NOT NULL
                         REFERENCES user_channels (id) ON DELETE CASCADE,
            platform     VARCHAR(20)     NOT NULL,
            token        TEXT            NOT NULL,
            last_seen    TIMESTAMPTZ,
            active       BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at   TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at   TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_user_devices_platform CHECK (platform IN ('ios', 'android', 'web'))
        );
    """)
    op.execute("CREATE INDEX idx_user_devices_channel_id ON user_devices (channel_id);")
    op.execute("""
        CREATE TRIGGER trg_user_devices_updated_at
            BEFORE UPDATE ON user_devices
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_devices CASCADE;")
