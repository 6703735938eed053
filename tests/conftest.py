import pytest

from case_fetcher import create_app
from case_fetcher.database import QueryLog, init_db

from .fakes import SpyResolver


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "queries.db")
    init_db(path)
    return path


@pytest.fixture
def query_log(db_path):
    return QueryLog(db_path)


@pytest.fixture
def app(db_path):
    app = create_app({
        "TESTING": True,
        "DATABASE": db_path,
        "RESOLVER": "exact",
        "MIN_LATENCY": 0,
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def spy_resolver():
    return SpyResolver()


@pytest.fixture
def make_client(db_path):
    def _make(resolver, **config):
        settings = {"TESTING": True, "DATABASE": db_path, "MIN_LATENCY": 0}
        settings.update(config)
        return create_app(settings, resolver=resolver).test_client()
    return _make
