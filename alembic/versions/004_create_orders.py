"""004: create orders and order_transitions

Revision ID: 004
Revises: 003
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE orders (
            id                  VARCHAR(32)   PRIMARY KEY,
            order_no            VARCHAR(32)   NOT NULL,
            city_code           VARCHAR(32)   NOT NULL,
            order_type          VARCHAR(64)   NOT NULL,
            title               VARCHAR(100)  NOT NULL,
            customer_name       VARCHAR(100)  NOT NULL,
            customer_phone      VARCHAR(32)   NOT NULL,
            customer_address    VARCHAR(500)  NOT NULL DEFAULT '',
            customer_source     VARCHAR(64)   NOT NULL DEFAULT '',
            description         VARCHAR(2000) NOT NULL,
            chat_attachments    JSON          NOT NULL DEFAULT '[]',
            publish_price       BIGINT        NOT NULL,
            platform_fee        BIGINT        NOT NULL,
            grab_price          BIGINT        NOT NULL,
            commission_rule_id  BIGINT,
            publisher_id        VARCHAR(64)   NOT NULL,
            grabber_id          VARCHAR(64),
            status              VARCHAR(16)   NOT NULL DEFAULT 'PUBLISHED',
            exception_reason    VARCHAR(1000),
            exception_proofs    JSON          NOT NULL DEFAULT '[]',
            exception_time      TIMESTAMPTZ,
            appeal_reason       VARCHAR(1000),
            appeal_time         TIMESTAMPTZ,
            grab_time           TIMESTAMPTZ,
            finish_time         TIMESTAMPTZ,
            settled_at          TIMESTAMPTZ,
            cancelled_at        TIMESTAMPTZ,
            version             BIGINT        NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_orders_order_no           UNIQUE (order_no),
            CONSTRAINT ck_orders_publish_price_gt_0 CHECK (publish_price > 0),
            CONSTRAINT ck_orders_platform_fee_gte_0 CHECK (platform_fee >= 0),
            CONSTRAINT ck_orders_grab_price         CHECK (grab_price = publish_price + platform_fee),
            CONSTRAINT ck_orders_status CHECK (status IN (
                'PUBLISHED', 'PROCESSING', 'COMPLETED', 'EXCEPTION',
                'MEDIATING', 'SETTLED', 'CANCELLED'
            ))
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("CREATE INDEX idx_orders_status_finish ON orders (status, finish_time);")
    op.execute("CREATE INDEX idx_orders_publisher ON orders (publisher_id, id);")
    op.execute("CREATE INDEX idx_orders_grabber ON orders (grabber_id, id);")
    op.execute("CREATE INDEX idx_orders_customer_phone ON orders (customer_phone);")

    op.execute("""
        CREATE TABLE order_transitions (
            id           BIGSERIAL     PRIMARY KEY,
            order_id     VARCHAR(32)   NOT NULL REFERENCES orders (id),
            from_status  VARCHAR(16),
            to_status    VARCHAR(16)   NOT NULL,
            event        VARCHAR(32)   NOT NULL,
            actor_id     VARCHAR(64)   NOT NULL,
            detail       VARCHAR(1000) NOT NULL DEFAULT '',
            created_at   TIMESTAMPTZ   NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_order_transitions_order ON order_transitions (order_id, id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS order_transitions CASCADE;")
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")
