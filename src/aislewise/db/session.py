"""Database engine and session management for Aislewise."""
from contextlib import contextmanager
from typing import Generator, Optional
import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


def configure_sqlite_engine(engine: Engine) -> Engine:
    """Configure SQLite connections for foreign keys and transactional DDL.

    pysqlite only opens transactions before DML by default, which leaves DDL
    in autocommit mode. Its implicit BEGIN is turned off and SQLAlchemy
    emits BEGIN itself, so migrations can be rolled back as a unit.
    """

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        """Configure SQLite connection."""
        if isinstance(dbapi_connection, sqlite3.Connection):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def make_engine(url: str, *, echo: bool = False, in_memory: bool = False) -> Engine:
    """Create a configured SQLite engine.

    Args:
        url: SQLAlchemy database URL
        echo: Whether to log SQL statements
        in_memory: Share a single connection so the memory database
            lives as long as the engine

    Returns:
        Engine: The configured engine
    """
    kwargs = {}
    if in_memory:
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    engine = create_engine(url, echo=echo, **kwargs)
    return configure_sqlite_engine(engine)


def make_session_factory(engine: Engine) -> sessionmaker:
    """Create the session factory used by every service."""
    return sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
    )


class TransactionManager:
    """Manages database transactions with error handling."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @contextmanager
    def transaction(self, *, auto_commit: bool = True) -> Generator[Session, None, None]:
        """
        Context manager for database transactions.

        Args:
            auto_commit: Whether to automatically commit on success

        Yields:
            Session: A session bound to a fresh transaction

        Raises:
            Exception: Any exception that occurs during the transaction
        """
        session = self.session_factory()
        try:
            yield session
            if auto_commit:
                session.commit()
            else:
                session.rollback()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def read(self) -> Generator[Session, None, None]:
        """Open a session for reads only.

        The session is closed without a rollback so loaded rows stay usable
        after the block.
        """
        session = self.session_factory()
        try:
            yield session
        finally:
            session.close()


def engine_url_for(path: Optional[str]) -> str:
    """Build a SQLite URL for a file path, or the memory database for None."""
    if path is None:
        return "sqlite://"
    return f"sqlite:///{path}"
