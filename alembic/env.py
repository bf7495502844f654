"""Alembic environment for recruitguard.

The database URL comes from `sqlalchemy.url` (set by `init_db()`) or `DATABASE_URL`.
"""
from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context
import os

from recruitguard.database.database import Base
from recruitguard.database import models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

DEFAULT_URL = "sqlite:///./recruitguard.db"


def run_migrations_offline():
    url = config.get_main_option("sqlalchemy.url") or os.getenv("DATABASE_URL", DEFAULT_URL)
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    configuration = config.get_section(config.config_ini_section) or {}
    if not configuration.get("sqlalchemy.url"):
        configuration["sqlalchemy.url"] = os.getenv("DATABASE_URL", DEFAULT_URL)
    connectable = engine_from_config(configuration, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
