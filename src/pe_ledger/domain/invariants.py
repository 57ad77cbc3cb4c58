# src/pe_ledger/domain/invariants.py
"""Ledger reconciliation checks. Each returns a list of violation strings.

INV-NN:  available_balance >= 0 and frozen_balance >= 0
INV-FLOW: sum(flow_records.amount) == available_balance
INV-ESC: frozen_balance == escrowed publish prices + pending withdrawal holds
INV-G:   sum(available + frozen) + platform revenue
         == sum(TOPUP flows) - sum(approved withdrawals)
"""
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_ACCOUNT_SQL = text("""
    SELECT available_balance, frozen_balance
    FROM accounts
    WHERE account_id = :account_id
""")
_FLOW_SUM_SQL = text("""
    SELECT COALESCE(SUM(amount), 0)
    FROM flow_records
    WHERE account_id = :account_id
""")
_ESCROWED_SQL = text("""
    SELECT COALESCE(SUM(publish_price), 0)
    FROM orders
    WHERE publisher_id = :account_id
      AND status IN ('PROCESSING', 'COMPLETED', 'EXCEPTION', 'MEDIATING')
""")
_PENDING_WITHDRAWALS_SQL = text("""
    SELECT COALESCE(SUM(amount), 0)
    FROM withdrawal_requests
    WHERE account_id = :account_id AND status = 'PENDING'
""")
_TOTAL_BALANCE_SQL = text(
    "SELECT COALESCE(SUM(available_balance + frozen_balance), 0) FROM accounts"
)
_PLATFORM_REVENUE_SQL = text("""
    SELECT COALESCE(SUM(platform_fee), 0)
    FROM orders
    WHERE grabber_id IS NOT NULL AND status <> 'CANCELLED'
""")
_TOPUPS_SQL = text(
    "SELECT COALESCE(SUM(amount), 0) FROM flow_records WHERE category = 'TOPUP'"
)
_APPROVED_WITHDRAWALS_SQL = text(
    "SELECT COALESCE(SUM(amount), 0) FROM withdrawal_requests WHERE status = 'APPROVED'"
)


async def verify_account_invariants(db: AsyncSession, account_id: str) -> list[str]:
    """Check INV-NN, INV-FLOW and INV-ESC for one account."""
    violations: list[str] = []
    row = (await db.execute(_ACCOUNT_SQL, {"account_id": account_id})).fetchone()
    if row is None:
        return violations
    available, frozen = row.available_balance, row.frozen_balance

    if available < 0 or frozen < 0:
        violations.append(
            f"INV-NN violated: account={account_id} available={available} frozen={frozen}"
        )

    flow_sum = (await db.execute(_FLOW_SUM_SQL, {"account_id": account_id})).scalar_one()
    if flow_sum != available:
        violations.append(
            f"INV-FLOW violated: account={account_id} flows sum to {flow_sum} "
            f"!= available={available}"
        )

    escrowed = (await db.execute(_ESCROWED_SQL, {"account_id": account_id})).scalar_one()
    holds = (
        await db.execute(_PENDING_WITHDRAWALS_SQL, {"account_id": account_id})
    ).scalar_one()
    if escrowed + holds != frozen:
        violations.append(
            f"INV-ESC violated: account={account_id} escrowed({escrowed}) + "
            f"withdrawal_holds({holds}) = {escrowed + holds} != frozen={frozen}"
        )

    for msg in violations:
        logger.error(msg)
    if not violations:
        logger.debug(
            "Account invariants OK: account=%s available=%d frozen=%d",
            account_id,
            available,
            frozen,
        )
    return violations


async def verify_global_conservation(db: AsyncSession) -> list[str]:
    """Check INV-G: money only enters via top-ups and leaves via withdrawals."""
    violations: list[str] = []
    balances = (await db.execute(_TOTAL_BALANCE_SQL)).scalar_one()
    revenue = (await db.execute(_PLATFORM_REVENUE_SQL)).scalar_one()
    topups = (await db.execute(_TOPUPS_SQL)).scalar_one()
    withdrawn = (await db.execute(_APPROVED_WITHDRAWALS_SQL)).scalar_one()

    if balances + revenue != topups - withdrawn:
        msg = (
            f"INV-G violated: balances({balances}) + platform_revenue({revenue}) "
            f"= {balances + revenue} != topups({topups}) - withdrawals({withdrawn}) "
            f"= {topups - withdrawn}"
        )
        violations.append(msg)
        logger.error(msg)
    return violations
