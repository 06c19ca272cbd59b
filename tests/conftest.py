"""Shared fixtures: a file-backed SQLite directory seeded per test."""

from datetime import datetime, timedelta

import pytest

from remonta.search.repository import SqlAlchemyContractorRepository
from remonta.web.database import ContractorProfile, create_db_engine, create_session_factory, init_db

BASE_TIME = datetime(2025, 1, 1, 9, 0, 0)


@pytest.fixture
def session_factory(tmp_path):
    """Session factory over a fresh SQLite file (shared across threads)."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'directory.db'}")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def repository(session_factory):
    return SqlAlchemyContractorRepository(session_factory)


@pytest.fixture
def add_contractor(session_factory):
    """
    Insert a contractor. ``age`` orders rows: higher means created earlier,
    so the default newest-first order is ascending ``age``.
    """
    counter = {"n": 0}

    def _add(age=None, **fields):
        counter["n"] += 1
        n = counter["n"]
        fields.setdefault("first_name", f"Worker{n}")
        fields.setdefault("last_name", "Test")
        fields.setdefault("email", f"worker{n}@example.com")
        created_at = BASE_TIME - timedelta(hours=age if age is not None else n)
        profile = ContractorProfile(created_at=created_at, **fields)
        with session_factory() as session:
            session.add(profile)
            session.commit()
            return profile.id

    return _add

