"""SQLAlchemy ORM models for pe_order.

These map to tables created by Alembic migrations (PostgreSQL) and are also
used with `Base.metadata.create_all` for the SQLite test database.
DO NOT add/remove columns here without a corresponding migration.
"""

from datetime import datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.pe_common.database import Base

_BigIntPK = BigInteger().with_variant(Integer, "sqlite")


class OrderORM(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("publish_price > 0", name="ck_orders_publish_price_gt_0"),
        CheckConstraint("platform_fee >= 0", name="ck_orders_platform_fee_gte_0"),
        CheckConstraint(
            "grab_price = publish_price + platform_fee", name="ck_orders_grab_price"
        ),
        CheckConstraint(
            "status IN ('PUBLISHED', 'PROCESSING', 'COMPLETED', 'EXCEPTION', "
            "'MEDIATING', 'SETTLED', 'CANCELLED')",
            name="ck_orders_status",
        ),
        Index("idx_orders_status_finish", "status", "finish_time"),
        Index("idx_orders_publisher", "publisher_id", "id"),
        Index("idx_orders_grabber", "grabber_id", "id"),
        Index("idx_orders_customer_phone", "customer_phone"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    order_no: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    city_code: Mapped[str] = mapped_column(String(32), nullable=False)
    order_type: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(100), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(32), nullable=False)
    customer_address: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    customer_source: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    description: Mapped[str] = mapped_column(String(2000), nullable=False)
    chat_attachments: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    publish_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    platform_fee: Mapped[int] = mapped_column(BigInteger, nullable=False)
    grab_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    commission_rule_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    publisher_id: Mapped[str] = mapped_column(String(64), nullable=False)
    grabber_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PUBLISHED")
    exception_reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    exception_proofs: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    exception_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    appeal_reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    appeal_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    grab_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    finish_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    settled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    version: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class OrderTransitionORM(Base):
    __tablename__ = "order_transitions"
    __table_args__ = (Index("idx_order_transitions_order", "order_id", "id"),)

    id: Mapped[int] = mapped_column(_BigIntPK, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(String(32), nullable=False)
    from_status: Mapped[str | None] = mapped_column(String(16), nullable=True)
    to_status: Mapped[str] = mapped_column(String(16), nullable=False)
    event: Mapped[str] = mapped_column(String(32), nullable=False)
    actor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    detail: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    # NOTE: No updated_at, order_transitions is append-only
