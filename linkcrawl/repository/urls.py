import logging
from typing import List, Optional, Sequence

from sqlalchemy import func, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from linkcrawl.db.models import Url as DBUrl
from linkcrawl.domain import UrlRecord
from linkcrawl.exceptions import StorageError

logger = logging.getLogger(__name__)


class UrlsRepository:
    """Storage sink for crawled and pending URLs.

    Requires an explicit `session_factory` (callable returning a `Session`).
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    @staticmethod
    def _sanitize_text(val: str) -> str:
        """Postgres TEXT columns cannot contain NULs; strip them before persisting."""
        return val.replace("\x00", "")

    def get_session(self) -> Session:
        return self.session_factory()

    def persist(self, records: Sequence[UrlRecord]) -> int:
        """Insert every record in one transaction and return the row count.

        Either the whole batch is committed or none of it is. An empty batch
        is a no-op and does not open a session.
        """
        if not records:
            return 0
        rows = [
            {"url": self._sanitize_text(r.url), "visited": bool(r.visited)}
            for r in records
        ]
        logger.debug("Inserting %d URLs into DB.", len(rows))
        try:
            with self.get_session() as session:
                with session.begin():
                    session.execute(insert(DBUrl), rows)
        except SQLAlchemyError as e:
            raise StorageError(e, rows=len(rows)) from e
        logger.debug("URL insert transaction completed successfully.")
        return len(rows)

    def count_urls(self, visited: Optional[bool] = None) -> int:
        with self.get_session() as session:
            q = select(func.count()).select_from(DBUrl)
            if visited is not None:
                q = q.where(DBUrl.visited == visited)
            return session.execute(q).scalar_one()

    def fetch_urls(self, visited: Optional[bool] = None, limit: Optional[int] = None) -> List[UrlRecord]:
        with self.get_session() as session:
            q = select(DBUrl).order_by(DBUrl.id)
            if visited is not None:
                q = q.where(DBUrl.visited == visited)
            if limit:
                q = q.limit(limit)
            rows = session.execute(q).scalars().all()
            return [UrlRecord(url=row.url, visited=row.visited) for row in rows]
