"""SQLAlchemy ORM models for pe_ledger.

These map to tables created by Alembic migrations (PostgreSQL) and are also
used with `Base.metadata.create_all` for the SQLite test database.
DO NOT add/remove columns here without a corresponding migration.
"""

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.pe_common.database import Base


class AccountORM(Base):
    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("available_balance >= 0", name="ck_accounts_available_gte_0"),
        CheckConstraint("frozen_balance >= 0", name="ck_accounts_frozen_gte_0"),
    )

    account_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    available_balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    frozen_balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="ACTIVE")
    version: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class FlowRecordORM(Base):
    __tablename__ = "flow_records"
    __table_args__ = (
        Index("idx_flow_account_id", "account_id", "id"),
        Index("idx_flow_order", "order_id"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    account_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    direction: Mapped[str] = mapped_column(String(10), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    balance_after: Mapped[int] = mapped_column(BigInteger, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    order_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    order_no: Mapped[str | None] = mapped_column(String(32), nullable=True)
    proof_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    # NOTE: No updated_at, flow_records is append-only
