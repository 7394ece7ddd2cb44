import os

# Must be set before ijf_bracket.database is imported: the app must never touch its own database
os.environ.setdefault("STORE_BACKEND", "memory")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel, create_engine  # noqa: E402

from ijf_bracket.database import get_store  # noqa: E402
from ijf_bracket.main import app  # noqa: E402
from ijf_bracket.services.bracket_repository import BracketRepository  # noqa: E402
from ijf_bracket.services.progression_engine import ProgressionEngine  # noqa: E402
from ijf_bracket.store import SqlDocumentStore  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so every Session shares one database
# 2. check_same_thread=False required for TestClient/threaded access
# 3. A fresh engine per test: no document leaks from one test into another
# 4. App dependency get_store overridden to use the test store (see client)


@pytest.fixture(name="db_engine")
def db_engine_fixture():
    from ijf_bracket.models.document import Document  # noqa: F401

    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="store")
def store_fixture(db_engine):
    return SqlDocumentStore(db_engine)


@pytest.fixture(name="repository")
def repository_fixture(store):
    return BracketRepository(store)


@pytest.fixture(name="progression")
def progression_fixture(repository):
    return ProgressionEngine(repository)


@pytest.fixture(name="client")
def client_fixture(store):
    """Test client whose routes all see the per-test store.

    Override is set BEFORE TestClient() and cleared only after it exits.
    """
    app.dependency_overrides[get_store] = lambda: store

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
