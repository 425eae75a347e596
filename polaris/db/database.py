"""
Database engine and session management.

Builds the SQLAlchemy engine from environment configuration with an
in-memory SQLite fallback under pytest, and exposes generator dependencies
yielding sessions and repository contexts. The engine is built on first use
so importing the package never opens a connection.
"""
import os
import sys
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from polaris.db.context import RepositoryContext
from polaris.utils.settings import get_settings

SQLITE_MEMORY_URL = "sqlite+pysqlite:///:memory:"


def _is_pytest_runtime() -> bool:
    """Best-effort detection that we're executing under pytest.

    ``PYTEST_CURRENT_TEST`` is only set while an individual test is running,
    so also look for the pytest package in ``sys.modules``. ``PYTEST_RUNNING=1``
    forces the answer.
    """
    if os.getenv("PYTEST_RUNNING") == "1":
        return True
    if "PYTEST_CURRENT_TEST" in os.environ:
        return True
    return "pytest" in sys.modules


def get_database_url() -> str:
    """Resolve the database URL from the environment.

    ``POLARIS_TEST_DB`` wins, then ``DATABASE_URL``, then the ``POSTGRES_*``
    components. Under pytest with nothing configured, in-memory SQLite is used.
    """
    explicit_test_db = os.getenv("POLARIS_TEST_DB")
    if explicit_test_db:
        return explicit_test_db

    if os.getenv("DATABASE_URL"):
        return os.getenv("DATABASE_URL")

    components = {
        "POSTGRES_USER": os.getenv("POSTGRES_USER"),
        "POSTGRES_PASSWORD": os.getenv("POSTGRES_PASSWORD"),
        "POSTGRES_HOST": os.getenv("POSTGRES_HOST"),
        "POSTGRES_PORT": os.getenv("POSTGRES_PORT"),
        "POSTGRES_DB": os.getenv("POSTGRES_DB"),
    }
    missing = [name for name, value in components.items() if not value]
    if not missing:
        return (
            f"postgresql://{components['POSTGRES_USER']}:{components['POSTGRES_PASSWORD']}"
            f"@{components['POSTGRES_HOST']}:{components['POSTGRES_PORT']}/{components['POSTGRES_DB']}"
        )

    if _is_pytest_runtime():
        return SQLITE_MEMORY_URL
    raise ValueError(f"Missing required database environment variables: {', '.join(missing)}")


def _engine_kwargs(url: str) -> dict:
    kwargs = {"echo": get_settings().sql_echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url:
            # Keep one connection so the schema survives across sessions
            kwargs["poolclass"] = StaticPool
    return kwargs


def build_engine(url: Optional[str] = None) -> Engine:
    resolved = url or get_database_url()
    return create_engine(resolved, **_engine_kwargs(resolved))


_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _session_factory


def reset_engine() -> None:
    """Dispose the default engine so the next call rebuilds it from the environment."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


def SessionLocal():
    """Open a new session on the default engine."""
    return get_session_factory()()


def get_db():
    """Dependency to get a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_repository_context(**context_kwargs):
    """Yield a RepositoryContext bound to a fresh session, closing it afterwards.

    Extra keyword arguments are passed to ``RepositoryContext`` (``registry``,
    ``resolver``, ``page_resolver``).
    """
    db = SessionLocal()
    try:
        yield RepositoryContext(session=db, **context_kwargs)
    finally:
        db.close()
