"""007: seed commission rules

Revision ID: 007
Revises: 006
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Platform-wide 10%, plus a fixed 200.00 fee for on-site service orders in Shanghai
    op.execute("""
        INSERT INTO commission_rules (city_code, order_type, category, rule_type, rule_value)
        VALUES
            ('ALL', 'ALL',     'ALL', 'PERCENTAGE', 1000),
            ('SH',  '上门服务', 'ALL', 'FIXED',   20000);
    """)


def downgrade() -> None:
    op.execute("DELETE FROM commission_rules;")
