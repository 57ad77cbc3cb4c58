"""SQLAlchemy ORM model for commission rules (read-only to the engine)."""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, CheckConstraint, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.pe_common.database import Base


class CommissionRuleORM(Base):
    __tablename__ = "commission_rules"
    __table_args__ = (
        CheckConstraint("rule_type IN ('PERCENTAGE', 'FIXED')", name="ck_rules_type"),
        CheckConstraint("rule_value >= 0", name="ck_rules_value_gte_0"),
    )

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    city_code: Mapped[str] = mapped_column(String(32), nullable=False, default="ALL")
    order_type: Mapped[str] = mapped_column(String(64), nullable=False, default="ALL")
    category: Mapped[str] = mapped_column(String(64), nullable=False, default="ALL")
    rule_type: Mapped[str] = mapped_column(String(16), nullable=False)
    rule_value: Mapped[int] = mapped_column(BigInteger, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
