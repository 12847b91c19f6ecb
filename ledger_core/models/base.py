"""
Database engine, session management, and base model.

This module is the foundation for all database operations.
Every model inherits from Base. Every request gets a session
from get_db(). Multi-row writes go through atomic().
"""

import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Session

from ledger_core.config import get_settings
from ledger_core.exceptions import PersistenceError

logger = logging.getLogger(__name__)

settings = get_settings()


def engine_options(database_url: str, statement_timeout_ms: int) -> dict:
    """
    Driver-specific connection arguments.

    PostgreSQL enforces the statement deadline server-side. SQLite has
    no statement timeout, so the deadline bounds how long a writer
    waits for the database lock instead.
    """
    if database_url.startswith("postgresql"):
        return {
            "connect_args": {
                "options": f"-c statement_timeout={statement_timeout_ms}",
            },
        }
    if database_url.startswith("sqlite"):
        return {
            "connect_args": {
                "check_same_thread": False,
                "timeout": statement_timeout_ms / 1000,
            },
        }
    return {}


# Execution option read by the SQLite begin hook. atomic() sets it on
# the connection it opens so write units hold the lock from the start.
WRITE_LOCK_OPTION = "sqlite_write_lock"


def enable_sqlite_transactions(engine: Engine) -> None:
    """
    Let SQLAlchemy, not pysqlite, emit BEGIN.

    pysqlite defers BEGIN until the first DML statement, which breaks
    SAVEPOINT and lets two writers read the same counter value before
    either holds a lock. Connections opened by atomic() begin with
    BEGIN IMMEDIATE and take the write lock up front. Every other
    transaction is a plain BEGIN, so readers never block writers.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin(conn):
        if conn.get_execution_options().get(WRITE_LOCK_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def build_engine(database_url: str, statement_timeout_ms: int) -> Engine:
    # pool_pre_ping tests connections before use so a restarted
    # database does not surface as a failed posting.
    new_engine = create_engine(
        database_url,
        pool_pre_ping=True,
        **engine_options(database_url, statement_timeout_ms),
    )
    if database_url.startswith("sqlite"):
        enable_sqlite_transactions(new_engine)
    return new_engine


# --- Engine ---
engine = build_engine(settings.DATABASE_URL, settings.STATEMENT_TIMEOUT_MS)

# --- Session Factory ---
# autocommit=False: the service layer decides when a unit of work
# is committed. autoflush=False: SQL is only sent on explicit flush
# or commit.
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


# --- Base Model Class ---
class Base(DeclarativeBase):
    pass


@contextmanager
def atomic(db: Session, operation: str):
    """
    Run a block of writes as one all-or-nothing unit.

    Commits when the block finishes. Any exception rolls the whole
    transaction back. Database errors are re-raised as
    PersistenceError so callers never see raw driver text.

    A fresh transaction is opened with the write-lock option. When the
    session already has one open, the block joins it.
    """
    try:
        if not db.in_transaction():
            db.connection(execution_options={WRITE_LOCK_OPTION: True})
        yield
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "transaction_failed",
            extra={"operation": operation, "error": str(exc)},
        )
        raise PersistenceError(operation) from exc
    except Exception:
        db.rollback()
        raise


# --- Dependency for FastAPI ---
def get_db():
    """
    Provide a database session for a single request.

    The try/finally pattern ensures the session is always
    closed, preventing connection leaks.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
