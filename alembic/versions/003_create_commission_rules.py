"""003: create commission_rules

Revision ID: 003
Revises: 002
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE commission_rules (
            id          BIGSERIAL    PRIMARY KEY,
            city_code   VARCHAR(32)  NOT NULL DEFAULT 'ALL',
            order_type  VARCHAR(64)  NOT NULL DEFAULT 'ALL',
            category    VARCHAR(64)  NOT NULL DEFAULT 'ALL',
            rule_type   VARCHAR(16)  NOT NULL,
            rule_value  BIGINT       NOT NULL,
            is_active   BOOLEAN      NOT NULL DEFAULT TRUE,
            created_at  TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_rules_type          CHECK (rule_type IN ('PERCENTAGE', 'FIXED')),
            CONSTRAINT ck_rules_value_gte_0   CHECK (rule_value >= 0)
        );
    """)
    op.execute("COMMENT ON COLUMN commission_rules.rule_value IS 'PERCENTAGE: basis points; FIXED: cents';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS commission_rules CASCADE;")
