"""
Database Connection and Session Management

SQLAlchemy database connection, session management, and schema creation
for the exam store with SQLite support.
"""

from pathlib import Path
from typing import Optional, Generator
from contextlib import contextmanager
from sqlalchemy import create_engine, Engine, text, inspect
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .config import get_config
from .exceptions import DatabaseError, ExamGraderException
from ..utils.logging import get_logger

logger = get_logger(__name__)

# SQLAlchemy declarative base for ORM models
Base = declarative_base()

# Global engine and session factory
_engine: Optional[Engine] = None
SessionFactory: Optional[sessionmaker] = None

REQUIRED_TABLES = ['exams', 'manual_grades']


def get_engine() -> Engine:
    """Get or create the SQLAlchemy engine."""
    global _engine

    if _engine is None:
        config = get_config()
        logger.info(f"Creating database engine with URL: {config.database.url}")

        try:
            if config.database.url.startswith('sqlite:'):
                _engine = _create_sqlite_engine(config)
            else:
                _engine = _create_generic_engine(config)
        except Exception as e:
            raise DatabaseError(
                f"Failed to create database engine: {str(e)}",
                operation="create_engine",
                url=config.database.url
            ) from e

    return _engine


def _create_sqlite_engine(config) -> Engine:
    """Create a SQLAlchemy engine for SQLite databases."""
    url = config.database.url
    if url.startswith('sqlite:///') and ':memory:' not in url:
        # Make sure the database directory exists
        Path(url[len('sqlite:///'):]).parent.mkdir(parents=True, exist_ok=True)

    return create_engine(
        url,
        echo=config.database.echo,
        poolclass=StaticPool,
        connect_args={
            'check_same_thread': False,  # Allow SQLite to be used across threads
            'timeout': 20,
        }
    )


def _create_generic_engine(config) -> Engine:
    """Create a SQLAlchemy engine for generic databases (PostgreSQL, etc.)."""
    return create_engine(
        config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
    )


def get_session_factory() -> sessionmaker:
    """Get or create the SQLAlchemy session factory."""
    global SessionFactory

    if SessionFactory is None:
        SessionFactory = sessionmaker(bind=get_engine())

    return SessionFactory


def create_tables() -> None:
    """Create all database tables."""
    try:
        engine = get_engine()

        # Import models to register them with Base metadata
        from ..storage import models  # noqa: F401

        Base.metadata.create_all(engine)

        tables = inspect(engine).get_table_names()
        missing_tables = [t for t in REQUIRED_TABLES if t not in tables]
        if missing_tables:
            raise DatabaseError(f"Failed to create required tables: {missing_tables}")

        logger.info(f"All required tables created successfully: {REQUIRED_TABLES}")

    except DatabaseError:
        raise
    except Exception as e:
        raise DatabaseError(
            f"Failed to create database tables: {str(e)}",
            operation="create_tables"
        ) from e


def drop_tables() -> None:
    """Drop all database tables (useful for testing)."""
    try:
        from ..storage import models  # noqa: F401

        Base.metadata.drop_all(get_engine())
    except Exception as e:
        raise DatabaseError(
            f"Failed to drop database tables: {str(e)}",
            operation="drop_tables"
        ) from e


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for database sessions with automatic cleanup.

    Engine errors raised inside the block propagate unchanged; anything else
    coming out of the database driver is wrapped in DatabaseError.
    """
    session = get_session_factory()()

    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        if isinstance(e, ExamGraderException):
            raise
        raise DatabaseError(
            f"Database session error: {str(e)}",
            operation="session_transaction"
        ) from e
    finally:
        session.close()


def init_database() -> None:
    """Initialize the database with tables."""
    create_tables()


def reset_database() -> None:
    """Reset the database by dropping and recreating all tables."""
    drop_tables()
    create_tables()


def check_database_connection() -> bool:
    """Check if database connection is working."""
    try:
        with get_engine().connect() as conn:
            row = conn.execute(text("SELECT 1")).fetchone()
            return row is not None and row[0] == 1
    except Exception as e:
        raise DatabaseError(
            f"Database connection check failed: {str(e)}",
            operation="connection_check"
        ) from e


def close_connections() -> None:
    """Close all database connections (useful for testing and cleanup)."""
    global _engine, SessionFactory

    if _engine:
        _engine.dispose()
        _engine = None

    SessionFactory = None
