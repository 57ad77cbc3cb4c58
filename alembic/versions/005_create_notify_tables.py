"""005: create system_logs and notifications

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
        CREATE TABLE system_logs (
            id             BIGSERIAL     PRIMARY KEY,
            operator_id    VARCHAR(64)   NOT NULL,
            operator_name  VARCHAR(100)  NOT NULL,
            module         VARCHAR(30)   NOT NULL,
            action         VARCHAR(50)   NOT NULL,
            details        VARCHAR(1000) NOT NULL,
            created_at     TIMESTAMPTZ   NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_system_logs_module_time ON system_logs (module, created_at);")

    op.execute("""
        CREATE TABLE notifications (
            id          BIGSERIAL     PRIMARY KEY,
            target      VARCHAR(64)   NOT NULL,
            title       VARCHAR(200)  NOT NULL,
            content     VARCHAR(1000) NOT NULL,
            category    VARCHAR(20)   NOT NULL,
            is_read     BOOLEAN       NOT NULL DEFAULT FALSE,
            created_at  TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_notifications_category CHECK (category IN ('ORDER', 'SYSTEM', 'FINANCE'))
        );
    """)
    op.execute("CREATE INDEX idx_notifications_target_time ON notifications (target, created_at);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notifications CASCADE;")
    op.execute("DROP TABLE IF EXISTS system_logs CASCADE;")
