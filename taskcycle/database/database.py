"""Database connection and session management for taskcycle.

SQLite is the default for local runs and tests; PostgreSQL is used in production via
`DATABASE_URL`. Schema changes on PostgreSQL go through Alembic so the partial unique
index on unread notifications is created the same way everywhere.
"""

import logging
import os
from typing import Optional

from alembic.config import Config
from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./taskcycle.db")


def _is_sqlite_url(database_url: str) -> bool:
    return "sqlite" in (database_url or "")


def _is_memory_database(engine: Engine) -> bool:
    return engine.url.database in (None, "", ":memory:")


def get_engine_kwargs(database_url: str) -> dict:
    """Return create_engine kwargs for a DB URL without connecting."""
    engine_kwargs: dict = {
        "echo": os.getenv("DEBUG", "False").lower() == "true",
        "pool_pre_ping": True,
    }

    if _is_sqlite_url(database_url):
        # Sessions are handed across FastAPI's worker threads.
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        return engine_kwargs

    engine_kwargs["pool_size"] = int(os.getenv("DB_POOL_SIZE", "5"))
    engine_kwargs["max_overflow"] = int(os.getenv("DB_MAX_OVERFLOW", "5"))
    engine_kwargs["pool_timeout"] = int(os.getenv("DB_POOL_TIMEOUT_SEC", "30"))
    return engine_kwargs


def build_engine(database_url: str, **overrides) -> Engine:
    """Create an engine for `database_url`.

    SQLite engines get foreign keys enforced on every connection, so subtask cascades
    and notification task references behave as on PostgreSQL. File databases also
    switch to WAL. `overrides` are passed to create_engine (tests pass a StaticPool).
    """
    engine = create_engine(database_url, **{**get_engine_kwargs(database_url), **overrides})
    if engine.dialect.name == "sqlite":
        use_wal = not _is_memory_database(engine)

        @event.listens_for(engine, "connect")
        def set_sqlite_pragmas(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if use_wal:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Session:
    """Get database session (dependency for FastAPI)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def alembic_config(database_url: str = DATABASE_URL) -> Config:
    """Alembic config pointed at the runtime database rather than alembic.ini's default."""
    cfg = Config(os.getenv("ALEMBIC_INI", "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


def init_db(bind: Optional[Engine] = None):
    """Create the tasks, subtasks and notifications schema.

    PostgreSQL with `RUN_MIGRATIONS=true` runs `alembic upgrade head`; everything else
    uses `create_all()` on `bind` (the module engine by default).
    """
    from taskcycle.database import models  # noqa: F401

    bind = bind or engine
    run_migrations = os.getenv("RUN_MIGRATIONS", "False").lower() == "true"
    if run_migrations and bind.dialect.name != "sqlite":
        from alembic import command

        logger.info("Applying Alembic migrations")
        command.upgrade(alembic_config(bind.url.render_as_string(hide_password=False)), "head")
        return

    Base.metadata.create_all(bind=bind)
