"""
SQLAlchemy base and engine helpers for the recipe store schema.

Runtime reads and writes go through Supabase/PostgREST; this module only
describes the relations and can create them on a database reached directly
through DATABASE_URL (postgresql+psycopg2://... in production).
"""
import logging
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from pantrychef.config.settings import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(database_url: Optional[str] = None) -> Engine:
    """Build an engine for `database_url` (defaults to settings.database_url)."""
    url = database_url or settings.database_url
    if not url:
        raise RuntimeError("DATABASE_URL is not configured")
    engine = create_engine(url, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def init_db(engine: Engine) -> None:
    """Create every recipe relation that does not exist yet."""
    # registers the model classes on Base.metadata
    import pantrychef.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Recipe schema ensured on %s", engine.url.render_as_string(hide_password=True))
