import os
from collections.abc import Generator

# Configure before anything under dbadmin reads settings
os.environ.setdefault("PROFILE_DATABASE_URI", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-dbadmin-tests")
os.environ.setdefault("RESTORE_POOLS_ON_STARTUP", "false")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, select  # noqa: E402

from dbadmin.api.deps import get_history, get_registry  # noqa: E402
from dbadmin.core.db import engine, init_db  # noqa: E402
from dbadmin.core.query_history import QueryHistory  # noqa: E402
from dbadmin.main import app  # noqa: E402
from dbadmin.models import ConnectionProfile  # noqa: E402
from tests.utils.registry import FakeRegistry  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _profile_tables() -> None:
    init_db()


@pytest.fixture(autouse=True)
def _clean_profiles() -> Generator[None, None, None]:
    yield
    with Session(engine) as session:
        for profile in session.exec(select(ConnectionProfile)).all():
            session.delete(profile)
        session.commit()


@pytest.fixture
def db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def history() -> QueryHistory:
    return QueryHistory(limit=10)


@pytest.fixture
def client(
    registry: FakeRegistry, history: QueryHistory
) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_history] = lambda: history
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
