"""Pytest configuration and shared fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from accessmatrix.core.matrix import PermissionMatrixService
from accessmatrix.core.membership import RoleManager
from accessmatrix.core.rbac import default_catalog
from accessmatrix.db.base import Base
from accessmatrix.store import InMemoryPolicyStore, RetryStrategy
from accessmatrix.store.sql import SqlPolicyStore

from tests.factories import HOUSEHOLD_ID, create_household


@pytest.fixture
def sql_session_factory():
    """Session factory over a private in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def memory_store():
    return InMemoryPolicyStore()


@pytest.fixture
def sql_store(sql_session_factory):
    return SqlPolicyStore(sql_session_factory)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Every store backend; tests using this run once per backend."""
    if request.param == "memory":
        return InMemoryPolicyStore()
    return SqlPolicyStore(request.getfixturevalue("sql_session_factory"))


@pytest.fixture
def no_wait_retry():
    """Retry strategy that never sleeps."""
    return RetryStrategy(max_attempts=3, base_delay=0.0, jitter=False, sleep=lambda _: None)


@pytest.fixture
def household(store):
    """A household with one super_admin, two admins and two members."""
    return create_household(store, HOUSEHOLD_ID)


@pytest.fixture
def matrix_service(store, household, no_wait_retry):
    return PermissionMatrixService(store, default_catalog(), no_wait_retry)


@pytest.fixture
def role_manager(store, household, no_wait_retry):
    return RoleManager(store, no_wait_retry)


@pytest.fixture
def api_store():
    store = InMemoryPolicyStore()
    create_household(store, HOUSEHOLD_ID)
    return store


@pytest.fixture
def client(api_store):
    """TestClient wired to an in-memory store."""
    from accessmatrix.api.deps import get_retry_strategy, get_store
    from accessmatrix.api.main import app

    app.dependency_overrides[get_store] = lambda: api_store
    app.dependency_overrides[get_retry_strategy] = lambda: RetryStrategy(
        max_attempts=1, sleep=lambda _: None
    )
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
