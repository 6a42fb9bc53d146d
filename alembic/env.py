"""
Alembic environment for the PropDesk database.

Runs against the synchronous URL from settings; the async engine is only
used by the API process.
"""
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from propdesk.core.config import settings
from propdesk.core.database import Base

# Register every table on Base.metadata for autogenerate
import propdesk.models.event  # noqa: F401
import propdesk.models.maintenance  # noqa: F401
import propdesk.models.message  # noqa: F401
import propdesk.models.property  # noqa: F401
import propdesk.models.tenant  # noqa: F401
import propdesk.models.user  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

DATABASE_URL = settings.database_url_sync


def run_migrations_offline() -> None:
    """Emit SQL to the script output without connecting."""
    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = DATABASE_URL

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
