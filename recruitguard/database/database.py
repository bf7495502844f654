"""Database connection and session management for recruitguard.

This module supports both:
- Local SQLite (default for dev)
- PostgreSQL (hosted backend in production) via `DATABASE_URL`
"""

import os
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from dotenv import load_dotenv

load_dotenv()

# Database URL - SQLite by default (local dev)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./recruitguard.db")

# Tables that carry soft-delete markers. Order matters only for readability.
SOFT_DELETE_TABLES = ("candidates", "jobs", "feedbacks")

# Marker columns added after the first schema revision (name -> SQL type).
SOFT_DELETE_MARKER_COLUMNS = {
    "deleted_at": "DATETIME",
    "deleted_by": "VARCHAR",
    "deleted_reason": "VARCHAR",
    "deletion_type": "VARCHAR",
}

# Candidate contact columns and the erasure timestamp (name -> SQL type).
CANDIDATE_ERASURE_COLUMNS = {
    "phone": "VARCHAR",
    "linkedin_url": "VARCHAR",
    "resume_url": "VARCHAR",
    "erased_at": "DATETIME",
}


def _is_sqlite_url(database_url: str) -> bool:
    return "sqlite" in (database_url or "")


def get_engine_kwargs(database_url: str) -> dict:
    """Return deterministic create_engine kwargs for a DB URL.

    This is separated to allow deterministic unit testing without connecting.
    """
    engine_kwargs: dict = {
        "echo": os.getenv("DEBUG", "False").lower() == "true",
        # Helps avoid stale DB connections against the hosted backend.
        "pool_pre_ping": True,
    }

    if _is_sqlite_url(database_url):
        # SQLite-specific setting required for FastAPI concurrency in a single process.
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        return engine_kwargs

    # Postgres / other DBs: keep pooling conservative.
    engine_kwargs["pool_size"] = int(os.getenv("DB_POOL_SIZE", "5"))
    engine_kwargs["max_overflow"] = int(os.getenv("DB_MAX_OVERFLOW", "5"))
    engine_kwargs["pool_timeout"] = int(os.getenv("DB_POOL_TIMEOUT_SEC", "30"))
    return engine_kwargs


def build_engine(database_url: str) -> Engine:
    return create_engine(database_url, **get_engine_kwargs(database_url))


# Create engine (module-level singleton)
engine = build_engine(DATABASE_URL)


@event.listens_for(Engine, "connect")
def set_sqlite_pragmas(dbapi_conn, connection_record):
    """Enable foreign keys (share-link and feedback cascades depend on them) and WAL on SQLite."""
    if _is_sqlite_url(DATABASE_URL):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for declarative models
Base = declarative_base()


def _sqlite_table_has_column(dbapi_conn, table_name: str, column_name: str) -> bool:
    cursor = dbapi_conn.cursor()
    try:
        cursor.execute(f"PRAGMA table_info({table_name})")
        cols = [row[1] for row in cursor.fetchall()]  # row[1] is column name
        return column_name in cols
    finally:
        cursor.close()


def ensure_legacy_schema_compat(*, engine_override: Engine = None, database_url_override: str = None) -> None:
    """Ensure legacy SQLite DB files are compatible with the current schema.

    Databases created before soft deletes existed only have `deleted_at` (or nothing)
    on the resource tables. SQLite `create_all()` does not alter existing tables, so
    the missing marker columns (and the candidate erasure columns) are patched in place.
    """
    database_url = database_url_override or DATABASE_URL
    if not _is_sqlite_url(database_url):
        return

    use_engine = engine_override or engine

    # Use raw DB-API connection for PRAGMA and ALTER TABLE
    dbapi_conn = use_engine.raw_connection()
    try:
        for table_name in SOFT_DELETE_TABLES:
            if not _sqlite_table_has_column(dbapi_conn, table_name, "id"):
                continue
            cursor = dbapi_conn.cursor()
            try:
                columns = dict(SOFT_DELETE_MARKER_COLUMNS)
                if table_name == "candidates":
                    columns.update(CANDIDATE_ERASURE_COLUMNS)
                for column_name, column_type in columns.items():
                    if not _sqlite_table_has_column(dbapi_conn, table_name, column_name):
                        cursor.execute(f"ALTER TABLE {table_name} ADD COLUMN {column_name} {column_type}")
                cursor.execute(
                    f"CREATE INDEX IF NOT EXISTS ix_{table_name}_deleted_at ON {table_name} (deleted_at)"
                )
                dbapi_conn.commit()
            finally:
                cursor.close()
    finally:
        dbapi_conn.close()


def get_db() -> Session:
    """Get database session (dependency for FastAPI)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Initialize database schema.

    - SQLite (default dev): use `create_all()` and apply minimal legacy patches.
    - PostgreSQL: prefer Alembic migrations for deterministic schema.
      Enable by setting `RUN_MIGRATIONS=true` in the environment.
    """
    # Register every table on Base.metadata before create_all().
    from recruitguard.database import models  # noqa: F401

    run_migrations = os.getenv("RUN_MIGRATIONS", "False").lower() == "true"
    if run_migrations and not _is_sqlite_url(DATABASE_URL):
        from alembic import command
        from alembic.config import Config

        alembic_cfg = Config(os.getenv("ALEMBIC_INI", "alembic.ini"))
        # Ensure Alembic uses the same runtime DB URL.
        alembic_cfg.set_main_option("sqlalchemy.url", DATABASE_URL)
        command.upgrade(alembic_cfg, "head")
        return

    # Default behavior: create schema directly.
    Base.metadata.create_all(bind=engine)
    ensure_legacy_schema_compat()

    # Minimal, idempotent Postgres compatibility patch for deployments that skip Alembic.
    if not _is_sqlite_url(DATABASE_URL):
        with engine.begin() as conn:
            for table_name in SOFT_DELETE_TABLES:
                for column_name, column_type in SOFT_DELETE_MARKER_COLUMNS.items():
                    pg_type = "TIMESTAMP" if column_type == "DATETIME" else column_type
                    conn.execute(
                        text(
                            f"ALTER TABLE {table_name} "
                            f"ADD COLUMN IF NOT EXISTS {column_name} {pg_type}"
                        )
                    )
