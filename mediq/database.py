# mediq/database.py
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

# Session factory, bound to an engine by init_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False)

# Base class for models
Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_engine(database_url: str, **engine_kwargs) -> Engine:
    """Create the engine for `database_url` and bind the session factory to it."""
    if database_url.startswith("sqlite"):
        engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        engine_kwargs.setdefault("pool_pre_ping", True)

    engine = create_engine(database_url, echo=False, **engine_kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    SessionLocal.configure(bind=engine)
    return engine


# Dependency to get database session
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(engine: Engine):
    """Create all database tables - models must be imported first"""
    # Import models to register them with Base.metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")


def drop_tables(engine: Engine):
    """Drop all database tables"""
    Base.metadata.drop_all(bind=engine)
    logger.info("Database tables dropped")
