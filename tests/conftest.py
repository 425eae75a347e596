import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from polaris.db.context import RepositoryContext
from polaris.db.models import Base
from polaris.utils.settings import refresh_settings_cache

from tests.fixtures.models import make_user
from tests.fixtures.repositories import PostRepository, UserRepository

_SETTINGS_ENV = (
    "POLARIS_DEFAULT_PER_PAGE",
    "POLARIS_CASE_INSENSITIVE_LIKE",
    "POLARIS_SQL_ECHO",
    "POLARIS_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    for var in _SETTINGS_ENV:
        monkeypatch.delenv(var, raising=False)
    refresh_settings_cache()
    yield
    refresh_settings_cache()


@pytest.fixture(scope="module")
def engine():
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def context(db):
    return RepositoryContext(session=db)


@pytest.fixture
def users(context):
    return UserRepository(context)


@pytest.fixture
def posts(context):
    return PostRepository(context)


@pytest.fixture
def people(db):
    """Seven users of mixed ages, inserted out of name order."""
    rows = [
        ("Mallory", 41), ("alice", 17), ("Carol", 35), ("Bob", 19),
        ("Eve", 12), ("Dave", 18), ("Trent", 64),
    ]
    return [make_user(db, name, age=age) for name, age in rows]
