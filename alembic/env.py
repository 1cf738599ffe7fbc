import sys
from pathlib import Path

from dotenv import load_dotenv

# .env.local for running on the host, .env for Docker
env_local_path = Path(__file__).parent.parent / ".env.local"
if env_local_path.exists():
    load_dotenv(dotenv_path=env_local_path)
else:
    load_dotenv()

sys.path.append(str(Path(__file__).parent.parent))

from product_visuals.db.models import Base

import os
import asyncio
from logging.config import fileConfig

from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _async_url(url: str) -> str:
    """asyncpg DSNs (postgresql://) need the SQLAlchemy async driver prefix."""
    for prefix in ("postgresql://", "postgres://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix):]
    return url


def _database_url() -> str:
    db_url = os.getenv("DB__PG_LINK") or config.get_main_option("sqlalchemy.url")
    if not db_url:
        raise ValueError(
            "Database URL not found. Set DB__PG_LINK or configure sqlalchemy.url in alembic.ini"
        )
    return db_url


def run_migrations_offline() -> None:
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations(connectable) -> None:
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


def run_migrations_online() -> None:
    connectable = create_async_engine(_async_url(_database_url()))
    asyncio.run(run_async_migrations(connectable))


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
