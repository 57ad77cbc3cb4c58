"""Alembic environment for the partner escrow schema.

Migrations are hand-written raw SQL (PostgreSQL). The ORM metadata is
attached only so `alembic check` can report drift between the migrations
and the `*/infrastructure/db_models.py` tables.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from config.settings import settings
from src.pe_commission.infrastructure import db_models as _commission_tables  # noqa: F401
from src.pe_common.database import Base
from src.pe_funding.infrastructure import db_models as _funding_tables  # noqa: F401
from src.pe_ledger.infrastructure import db_models as _ledger_tables  # noqa: F401
from src.pe_notify.infrastructure import db_models as _notify_tables  # noqa: F401
from src.pe_order.infrastructure import db_models as _order_tables  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit the SQL script without a live connection."""
    context.configure(
        url=settings.DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_server_default=False,
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = create_async_engine(settings.DATABASE_URL)
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
