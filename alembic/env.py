"""
Alembic environment.

Runs migrations over the async engine using the application's settings and
model metadata. Every model module is imported so autogenerate sees the
full schema.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from vulcan.core.config import settings
from vulcan.core.database import Base
from vulcan.modules.applications import models as _applications  # noqa: F401
from vulcan.modules.audit import models as _audit  # noqa: F401
from vulcan.modules.email_templates import models as _email_templates  # noqa: F401
from vulcan.modules.feature_flags import models as _feature_flags  # noqa: F401
from vulcan.modules.guardians import models as _guardians  # noqa: F401
from vulcan.modules.notifications import models as _notifications  # noqa: F401
from vulcan.modules.rejection_reasons import models as _rejection_reasons  # noqa: F401
from vulcan.modules.users import models as _users  # noqa: F401
from vulcan.modules.vouchers import models as _vouchers  # noqa: F401

config = context.config
config.set_main_option("sqlalchemy.url", settings.database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
