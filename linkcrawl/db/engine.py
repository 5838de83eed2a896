import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from linkcrawl import config
from linkcrawl.db.models import Base

logger = logging.getLogger(__name__)

# Simple cache to avoid creating multiple Engine objects in the same process.
_ENGINE: Optional[Engine] = None


def make_engine(database_url: Optional[str] = None) -> Engine:
    """Create or return a cached SQLAlchemy Engine for `database_url`.

    Caches a single Engine instance per process; every worker shares its
    connection pool through the storage sink.
    """
    global _ENGINE
    database_url = database_url or config.DATABASE_URL
    if not database_url:
        raise RuntimeError("DATABASE_URL not set")
    if _ENGINE is None:
        _ENGINE = create_engine(database_url, pool_pre_ping=True)
    return _ENGINE


def init_orm(engine: Engine) -> None:
    """Create the `urls` table if it does not exist yet."""
    Base.metadata.create_all(engine)
    logger.info("Database schema initialized")
