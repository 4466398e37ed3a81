"""
Database connection management and ORM session factory.
Supports dialect abstraction for SQLite and PostgreSQL.
When DATABASE_URL is empty the application runs without a database.
"""
from typing import Any, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.config import settings
from app.core.logger import logger

Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """Creates an engine with the dialect-specific tuning the service relies on."""
    is_sqlite = database_url.startswith("sqlite")
    db_engine = create_engine(
        database_url,
        # SQLite specific: check_same_thread=False is required for FastAPI's concurrent execution model
        connect_args={"check_same_thread": False} if is_sqlite else {}
    )

    # Enable Write-Ahead Logging (WAL) for SQLite to handle concurrency better
    if is_sqlite and ":memory:" not in database_url:
        @event.listens_for(db_engine, "connect")
        def set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

    return db_engine


engine: Optional[Engine] = build_engine(settings.DATABASE_URL) if settings.DATABASE_URL else None

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Idempotent initialization of database schema artifacts."""
    if engine is None:
        logger.info("DATABASE_URL not set, simulation history kept in memory")
        return
    # Registers the history table on Base.metadata
    import app.consorcio.models  # noqa: F401

    logger.info("Creating database tables")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")
