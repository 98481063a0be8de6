"""
Database configuration
SQLAlchemy setup for PostgreSQL in production and SQLite locally
"""

from contextlib import contextmanager
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Generator, Iterator
import logging

from admissions.config import settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # Sessions are used from FastAPI's threadpool
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_pre_ping": True,  # Check connections before handing them out
        "pool_recycle": 3600,
    }


# SQLAlchemy engine
engine = create_engine(
    settings.sqlalchemy_database_url,
    echo=False,
    **_engine_options(settings.sqlalchemy_database_url)
)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Declarative base for every model
Base = declarative_base()


@event.listens_for(engine, "connect")
def receive_connect(dbapi_conn, connection_record):
    """Runs whenever a new DBAPI connection is established"""
    logger.debug("New database connection established")
    if engine.dialect.name == "sqlite":
        # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest correctly
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@event.listens_for(engine, "begin")
def receive_begin(conn):
    if conn.dialect.name == "sqlite":
        conn.exec_driver_sql("BEGIN")


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency
    Opens one session per request and closes it when the request ends

    Usage:
        @router.get("/example")
        def example(db: Session = Depends(get_db)):
            # use db here
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Runs a block of writes as one atomic unit.

    Commits when the block finishes and rolls everything back if it raises.

    Usage:
        with unit_of_work(self.db):
            self.db.add(application)
            self.audit.record(...)
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def init_db():
    """
    Creates every table that does not exist yet
    """
    logger.info("Initializing database...")

    # Import every model so the metadata knows about them
    from admissions import models  # noqa: F401

    Base.metadata.create_all(bind=engine)

    logger.info("✅ Database initialized")


def check_db_connection() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"❌ Database connection failed: {e}")
        return False


def drop_all_tables():
    """
    CAREFUL: drops every table
    Development and testing only
    """
    if settings.environment == "production":
        raise RuntimeError("Refusing to drop tables in production")

    logger.warning("⚠️  Dropping all tables...")
    Base.metadata.drop_all(bind=engine)
