"""Shared fixtures for crud unit tests"""

import pytest
from sqlalchemy import create_engine
from sqlmodel import SQLModel, Session

from mdconf.crud.store import SqlContentStore
from mdconf.crud.tables import StoredPage  # noqa: F401  registers the tables


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine with all tables created."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Fresh session per test; changes are not committed."""
    with Session(engine) as s:
        yield s


@pytest.fixture(name="store")
def store_fixture(session):
    return SqlContentStore(session, "DOCS", max_versions=3)


@pytest.fixture(name="page")
def page_fixture(store):
    """A minimal top-level page at version 1."""
    return store.create_page("Home", "h1. Home\n")
