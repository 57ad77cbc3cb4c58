"""006: create topup_requests and withdrawal_requests

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


def _request_table(name: str, prefix: str) -> str:
    return f"""
        CREATE TABLE {name} (
            id             VARCHAR(32)   PRIMARY KEY,
            account_id     VARCHAR(64)   NOT NULL,
            amount         BIGINT        NOT NULL,
            status         VARCHAR(16)   NOT NULL DEFAULT 'PENDING',
            proof_url      VARCHAR(1000),
            remark         VARCHAR(500),
            reject_reason  VARCHAR(500),
            audit_user     VARCHAR(64),
            audit_time     TIMESTAMPTZ,
            created_at     TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_{prefix}_amount_gt_0 CHECK (amount > 0),
            CONSTRAINT ck_{prefix}_status CHECK (status IN ('PENDING', 'APPROVED', 'REJECTED'))
        );
    """


def upgrade() -> None:
    op.execute(_request_table("topup_requests", "topup"))
    op.execute("CREATE INDEX idx_topup_account ON topup_requests (account_id, id);")
    op.execute("CREATE INDEX idx_topup_status ON topup_requests (status);")
    op.execute(_request_table("withdrawal_requests", "withdrawal"))
    op.execute("CREATE INDEX idx_withdrawal_account ON withdrawal_requests (account_id, id);")
    op.execute("CREATE INDEX idx_withdrawal_status ON withdrawal_requests (status);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS withdrawal_requests CASCADE;")
    op.execute("DROP TABLE IF EXISTS topup_requests CASCADE;")
