"""Database setup and session management."""

import logging
from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def _enable_sqlite_savepoints(engine) -> None:
    """Let SQLAlchemy own BEGIN so SAVEPOINTs work on pysqlite.

    The stdlib driver defers BEGIN on its own and silently breaks
    ``Session.begin_nested()``; taking over transaction control restores
    the nested unit of work the ledger services rely on. It also turns on
    foreign key enforcement so lot rows cascade with their holding.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, connection_record):
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def configure_engine(engine):
    """Apply dialect-specific setup to a freshly created engine."""
    if engine.dialect.name == "sqlite":
        _enable_sqlite_savepoints(engine)
    return engine


@lru_cache
def get_engine():
    """Get or create the database engine (cached)."""
    connect_args = {}
    database_url = settings.DATABASE_URL

    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_engine(
        database_url,
        connect_args=connect_args,
        echo=False,
    )
    logger.info("Database engine created (%s)", engine.dialect.name)
    return configure_engine(engine)


def get_session_local():
    """Get a sessionmaker bound to the engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def get_db():
    """Dependency that provides a database session.

    Transaction conventions:
    - Default: services ``flush()``, API layer ``commit()``
    - Ledger mutations (apply/reverse/repair) run inside
      ``Session.begin_nested()`` so Account, Holding and HoldingLot writes
      for one transaction land together or not at all
    - ``StatementImportService.process_import()`` commits its own status
      transitions so a failed run is still recorded as ``failed``
    """
    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
