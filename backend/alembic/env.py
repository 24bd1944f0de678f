"""
Alembic environment for the PairMatch schema.

The database URL always comes from pairmatch Settings (DATABASE_DSN or
POSTGRES_*), never from alembic.ini.
"""
import sys
from logging.config import fileConfig
from pathlib import Path

# Make the backend directory importable before loading pairmatch modules
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from alembic import context
from sqlalchemy import create_engine, make_url, pool

import pairmatch.models  # noqa: F401  registers every table on Base.metadata
from pairmatch.core.config import get_settings
from pairmatch.core.database import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
database_url = make_url(get_settings().database_url)
sys.stderr.write(f"Alembic will use database URL: {database_url.render_as_string(hide_password=True)}\n")


def _configure(**kwargs) -> None:
    # SQLite cannot ALTER most constraints in place; batch mode recreates tables
    context.configure(
        target_metadata=target_metadata,
        render_as_batch=database_url.get_backend_name() == "sqlite",
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL to stdout without a database connection."""
    _configure(
        url=database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(database_url, poolclass=pool.NullPool)
    with engine.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
