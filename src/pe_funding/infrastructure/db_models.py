"""SQLAlchemy ORM models for pe_funding.

DO NOT add/remove columns here without a corresponding migration.
"""

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.pe_common.database import Base


class TopUpRequestORM(Base):
    __tablename__ = "topup_requests"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_topup_amount_gt_0"),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')", name="ck_topup_status"
        ),
        Index("idx_topup_account", "account_id", "id"),
        Index("idx_topup_status", "status"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    account_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING")
    proof_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    remark: Mapped[str | None] = mapped_column(String(500), nullable=True)
    reject_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    audit_user: Mapped[str | None] = mapped_column(String(64), nullable=True)
    audit_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class WithdrawalRequestORM(Base):
    __tablename__ = "withdrawal_requests"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_withdrawal_amount_gt_0"),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')", name="ck_withdrawal_status"
        ),
        Index("idx_withdrawal_account", "account_id", "id"),
        Index("idx_withdrawal_status", "status"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    account_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING")
    proof_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    remark: Mapped[str | None] = mapped_column(String(500), nullable=True)
    reject_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    audit_user: Mapped[str | None] = mapped_column(String(64), nullable=True)
    audit_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
