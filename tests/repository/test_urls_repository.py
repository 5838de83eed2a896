from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from linkcrawl.db.models import Base
from linkcrawl.domain import UrlRecord
from linkcrawl.exceptions import StorageError
from linkcrawl.repository.urls import UrlsRepository


def _repo(create_tables=True):
    engine = create_engine("sqlite:///:memory:", future=True)
    if create_tables:
        Base.metadata.create_all(engine)
    session_factory = sessionmaker(bind=engine, future=True)
    return UrlsRepository(session_factory)


def test_persist_inserts_every_record():
    repo = _repo()
    records = [
        UrlRecord("https://a.test/", True),
        UrlRecord("https://b.test/", False),
        UrlRecord("https://b.test/", False),
    ]

    assert repo.persist(records) == 3

    assert repo.fetch_urls() == records
    assert repo.count_urls() == 3


def test_persist_empty_batch_does_not_open_a_session():
    session_factory = MagicMock()
    repo = UrlsRepository(session_factory)

    assert repo.persist([]) == 0

    session_factory.assert_not_called()


def test_filters_by_visited_flag():
    repo = _repo()
    repo.persist([
        UrlRecord("https://a.test/", True),
        UrlRecord("https://b.test/", False),
        UrlRecord("https://c.test/", False),
    ])

    assert repo.count_urls(visited=True) == 1
    assert repo.count_urls(visited=False) == 2
    assert [r.url for r in repo.fetch_urls(visited=False)] == ["https://b.test/", "https://c.test/"]
    assert repo.fetch_urls(visited=False, limit=1) == [UrlRecord("https://b.test/", False)]


def test_nul_bytes_are_stripped():
    repo = _repo()
    repo.persist([UrlRecord("https://a.test/\x00x", False)])

    assert repo.fetch_urls()[0].url == "https://a.test/x"


def test_database_failure_is_wrapped():
    repo = _repo(create_tables=False)

    with pytest.raises(StorageError) as excinfo:
        repo.persist([UrlRecord("https://a.test/", True), UrlRecord("https://b.test/", False)])

    assert excinfo.value.rows == 2
    assert isinstance(excinfo.value.original, OperationalError)


def test_failed_batch_is_rolled_back():
    session = MagicMock()
    session.__enter__.return_value = session
    session.execute.side_effect = OperationalError("INSERT", {}, Exception("disk full"))
    repo = UrlsRepository(lambda: session)

    with pytest.raises(StorageError):
        repo.persist([UrlRecord("https://a.test/", True)])

    # The exception propagated through the transaction block, which rolls back.
    exc_type = session.begin.return_value.__exit__.call_args[0][0]
    assert exc_type is OperationalError
