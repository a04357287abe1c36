"""Shared test fixtures for Lyricast test suite."""

import pytest

from lyricast.config import ServerConfig
from lyricast.server.app import create_app
from lyricast.server.candidates import CandidateStore
from lyricast.server.database import Database
from lyricast.server.resolver import CandidateResolver
from lyricast.server.store import SQLiteStore
from lyricast.server.youtube_search import Empty, SearchProvider


class FakeProvider(SearchProvider):
    """Search provider that answers from a query -> result dict."""

    name = "fake"

    def __init__(self, results=None, default=None):
        self.results = dict(results or {})
        self.default = default if default is not None else Empty()
        self.queries = []

    def search(self, query):
        self.queries.append(query)
        return self.results.get(query, self.default)


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def db(tmp_path):
    """Create a fresh test database."""
    return Database(str(tmp_path / "test.db"))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(db, clock):
    """SQLite-backed store with a controllable clock."""
    return SQLiteStore(db, clock=clock)


@pytest.fixture
def candidates(store):
    return CandidateStore(store)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def resolver(candidates, provider):
    return CandidateResolver(candidates, provider)


@pytest.fixture
def app(tmp_path, store, provider):
    """Create a Flask test app backed by the test store and fake provider."""
    config = ServerConfig(
        data_dir=str(tmp_path / "data"),
        db_file=str(tmp_path / "test.db"),
    )
    app = create_app(config, store=store, provider=provider)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Create a Flask test client."""
    return app.test_client()
