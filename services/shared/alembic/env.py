"""Alembic environment for the gateway schema.

Migrations run with a synchronous driver: the async driver in the
configured URL is swapped for its blocking counterpart.
"""

from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import create_engine, pool
from sqlalchemy.engine import URL, make_url

from audiobook_shared.config import get_settings
from audiobook_shared.db.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

SYNC_DRIVERS = {
    "sqlite+aiosqlite": "sqlite",
    "mysql+aiomysql": "mysql+pymysql",
}


def migration_url() -> URL:
    """Explicit ``sqlalchemy.url`` if given, else the admin database URL."""
    raw = config.get_main_option("sqlalchemy.url") or get_settings().database.effective_admin_url
    url = make_url(raw)
    return url.set(drivername=SYNC_DRIVERS.get(url.drivername, url.drivername))


def context_options(url: URL) -> dict[str, Any]:
    return {
        "target_metadata": Base.metadata,
        "compare_type": True,
        "compare_server_default": True,
        # SQLite cannot ALTER constraints in place; batch mode recreates the table
        "render_as_batch": url.get_backend_name() == "sqlite",
    }


def run_offline() -> None:
    """Emit SQL to stdout instead of executing it."""
    url = migration_url()
    context.configure(
        url=url.render_as_string(hide_password=False),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **context_options(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    url = migration_url()
    engine = create_engine(url, poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, **context_options(url))
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
