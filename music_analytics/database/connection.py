"""
Database Connection Management

SQLAlchemy 2.0 engine for the source database and a read-only snapshot
transaction used by the snapshot loader.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

import structlog
from sqlalchemy import Connection, Engine, create_engine, make_url, text

from music_analytics.config import get_settings

logger = structlog.get_logger(__name__)

# Global engine
_engine: Optional[Engine] = None


def init_database(url: Optional[str] = None) -> Engine:
    """
    Initialize the database engine.

    Args:
        url: SQLAlchemy URL, defaults to the configured ``DB_URL``

    Returns:
        Engine: The initialized database engine
    """
    global _engine

    settings = get_settings()
    target = make_url(url or settings.database.url)

    if _engine is not None:
        if _engine.url == target:
            return _engine
        logger.warning(
            "Database URL changed, replacing engine",
            previous=_engine.url.render_as_string(hide_password=True),
            current=target.render_as_string(hide_password=True),
        )
        close_database()

    _engine = create_engine(
        target,
        echo=settings.database.echo,
        pool_pre_ping=True,
    )

    try:
        with _engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info(
            "Database connection established",
            dialect=_engine.dialect.name,
            database=_engine.url.database,
        )
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        _engine.dispose()
        _engine = None
        raise

    return _engine


def close_database() -> None:
    """Dispose of the engine and its connection pool."""
    global _engine

    if _engine is not None:
        _engine.dispose()
        _engine = None
        logger.info("Database connection pool closed")


def get_engine() -> Engine:
    """
    Get the database engine.

    Raises:
        RuntimeError: If database is not initialized
    """
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _engine


def snapshot_isolation_level(engine: Engine) -> str:
    """Isolation level giving a consistent read of every table in one transaction."""
    if engine.dialect.name == "sqlite":
        # pysqlite only offers SERIALIZABLE / READ UNCOMMITTED / AUTOCOMMIT
        return "SERIALIZABLE"
    return get_settings().database.isolation_level


@contextmanager
def snapshot_transaction(engine: Optional[Engine] = None) -> Iterator[Connection]:
    """
    Open a read-only transaction for loading a snapshot.

    All reads issued on the yielded connection see the same database state,
    so invoice totals stay consistent with invoice lines. The transaction is
    always rolled back; nothing is ever written.

    Example:
        with snapshot_transaction() as conn:
            rows = conn.execute(select(Invoice)).all()
    """
    engine = engine or get_engine()
    isolation_level = snapshot_isolation_level(engine)

    with engine.connect() as conn:
        conn = conn.execution_options(isolation_level=isolation_level)
        trans = conn.begin()
        if engine.dialect.name == "sqlite":
            # pysqlite only emits BEGIN ahead of DML; SELECTs would autocommit
            conn.exec_driver_sql("BEGIN")
        logger.debug("Snapshot transaction opened", isolation_level=isolation_level)
        try:
            yield conn
        finally:
            trans.rollback()
            logger.debug("Snapshot transaction closed")
