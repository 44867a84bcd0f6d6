"""
Database configuration and session management.

Provides:
- Database engine creation with proper configuration
- SessionLocal factory for creating database sessions
- get_db() dependency for FastAPI request-scoped sessions
- get_db_context() for cron jobs and background notification delivery
- Connection health check
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.config import get_settings

logger = logging.getLogger(__name__)


def configure_sqlite(engine: Engine) -> Engine:
    """
    Enable foreign keys and real SAVEPOINT support on a SQLite engine.

    pysqlite defers BEGIN until the first DML statement, so a SAVEPOINT issued
    after only SELECTs would run outside any transaction and commit on
    release. Autocommit at the driver level plus an explicit BEGIN per
    transaction restores the usual semantics.
    """

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def begin_transaction(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


settings = get_settings()

if settings.is_production:
    settings.validate_production_config()

if "sqlite" in settings.database_url.lower():
    in_memory = settings.database_url.rstrip("/").endswith(("sqlite:", ":memory:"))
    engine = configure_sqlite(create_engine(
        settings.database_url,
        connect_args={"check_same_thread": False},  # FastAPI runs sync endpoints in a threadpool
        # One shared connection keeps an in-memory database alive; files get a pool
        poolclass=StaticPool if in_memory else None,
        echo=settings.log_level == "DEBUG",
    ))

else:
    engine = create_engine(
        settings.database_url,
        pool_size=5,
        pool_recycle=3600,
        pool_pre_ping=True,
        echo=settings.log_level == "DEBUG",
    )


SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for request-scoped database sessions.

    Commits when the request handler returns, rolls back on any exception.
    Background tasks (notifications) run after this commit.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside FastAPI.

    Usage for scripts and background work:
        with get_db_context() as db:
            webhooks = db.scalars(select(Webhook)).all()

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_connection(session: Session) -> bool:
    """
    Test database connection.

    Returns:
        bool: True if connection successful, False otherwise
    """
    try:
        session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
