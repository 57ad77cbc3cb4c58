"""002: create accounts and flow_records

Revision ID: 002
Revises: 001
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE accounts (
            account_id          VARCHAR(64) PRIMARY KEY,
            available_balance   BIGINT      NOT NULL DEFAULT 0,
            frozen_balance      BIGINT      NOT NULL DEFAULT 0,
            status              VARCHAR(16) NOT NULL DEFAULT 'ACTIVE',
            version             BIGINT      NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_accounts_available_gte_0  CHECK (available_balance >= 0),
            CONSTRAINT ck_accounts_frozen_gte_0     CHECK (frozen_balance >= 0),
            CONSTRAINT ck_accounts_status           CHECK (status IN ('ACTIVE', 'HALTED'))
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_accounts_updated_at
            BEFORE UPDATE ON accounts
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON TABLE accounts IS 'Partner wallets: available + frozen, all amounts in cents';")

    op.execute("""
        CREATE TABLE flow_records (
            id              VARCHAR(32)   PRIMARY KEY,
            account_id      VARCHAR(64)   NOT NULL,
            amount          BIGINT        NOT NULL,
            direction       VARCHAR(10)   NOT NULL,
            category        VARCHAR(20)   NOT NULL,
            balance_after   BIGINT        NOT NULL,
            description     VARCHAR(500)  NOT NULL,
            order_id        VARCHAR(32),
            order_no        VARCHAR(32),
            proof_url       VARCHAR(1000),
            created_at      TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_flow_direction CHECK (direction IN ('INCOME', 'EXPENSE')),
            CONSTRAINT ck_flow_category  CHECK (
                category IN ('GRAB', 'SETTLEMENT', 'WITHDRAWAL', 'TOPUP', 'REFUND')
            ),
            CONSTRAINT ck_flow_sign CHECK (
                (direction = 'INCOME' AND amount > 0) OR (direction = 'EXPENSE' AND amount < 0)
            )
        );
    """)
    op.execute("CREATE INDEX idx_flow_account_id ON flow_records (account_id, id);")
    op.execute("CREATE INDEX idx_flow_order ON flow_records (order_id);")
    op.execute("COMMENT ON TABLE flow_records IS 'Append-only; replaying an account reproduces available_balance';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS flow_records CASCADE;")
    op.execute("DROP TABLE IF EXISTS accounts CASCADE;")
