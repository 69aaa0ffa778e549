# backend/database.py
"""
Database setup and session management for the camera store.
Uses SQLAlchemy 2.0 over a single-file SQLite database.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Union

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


def _set_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    """Performance pragmas, safe for a single writer with many readers."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL;")
    cursor.execute("PRAGMA synchronous=NORMAL;")
    cursor.execute("PRAGMA foreign_keys=ON;")
    cursor.close()


def create_store_engine(db_path: Union[str, Path], echo: bool = False) -> Engine:
    """
    Create an engine for the store file, creating the parent directory.

    check_same_thread=False because the scheduler may touch the store from
    worker threads; writes are serialized by the RecordStore.
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
        echo=echo,
        pool_pre_ping=True,  # Verify connections before using
    )
    event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to the given engine."""
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


def init_db(engine: Engine) -> None:
    """
    Initialize the database by creating all tables.
    Idempotent: safe to run on every startup.
    """
    # Import all models to ensure they're registered with Base
    from models import orm  # noqa: F401

    Base.metadata.create_all(bind=engine)


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.
    Commits on success, rolls back on exceptions.

    Usage:
        with session_scope(factory) as db:
            db.query(Model).all()
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
