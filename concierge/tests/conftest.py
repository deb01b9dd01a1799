import os
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure tests use an in-memory SQLite DB and never touch real blob storage
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("ASSESSMENT_DELAY_SECONDS", "0")

# Ensure the project root is on sys.path so `import concierge` works when running
# pytest from the repository root.
ROOT_DIR = Path(__file__).resolve().parents[2]  # repository root
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from concierge.app import app
from concierge.auth.deps import get_current_user
from concierge.db.session import Base, get_db
from concierge.models.user import User
from concierge.services.storage import BlobStorage, BlobStorageError, get_blob_storage
import concierge.utils.retry as retry_mod


# In-memory SQLite shared across connections
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Code paths that import SessionLocal/engine directly use the test engine
import concierge.db.session as session_mod
session_mod.engine = engine
session_mod.SessionLocal = TestingSessionLocal
import concierge.models as models_mod
models_mod.engine = engine

MEMBER = SimpleNamespace(id="user-1", email="member@example.com", role="member")
OTHER_MEMBER = SimpleNamespace(id="user-2", email="other@example.com", role="member")
PROVIDER = SimpleNamespace(id="provider-1", email="provider@example.com", role="provider")


class MemoryBlobStorage(BlobStorage):
    """Keeps uploads in a dict; payloads listed in ``fail_data`` are rejected."""

    def __init__(self):
        self.blobs = {}
        self.fail_data = set()

    def upload(self, path, data, content_type):
        if data in self.fail_data:
            raise BlobStorageError(f"rejected {path}")
        self.blobs[path] = (data, content_type)
        return f"memory://{path}"


@pytest.fixture(autouse=True)
def create_schema():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    for u in (MEMBER, OTHER_MEMBER, PROVIDER):
        db.add(User(id=u.id, email=u.email, role=u.role))
    db.commit()
    db.close()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    monkeypatch.setattr(retry_mod, "RETRY_BASE_DELAY", 0.0)


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    # ensure limiter state fresh each test
    if hasattr(app.state, "limiter") and hasattr(app.state.limiter, "reset"):
        app.state.limiter.reset()
    yield


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage():
    return MemoryBlobStorage()


def _override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def login():
    """Switch the authenticated principal for route tests."""

    def _login(user):
        app.dependency_overrides[get_current_user] = lambda: user
        return user

    return _login


@pytest.fixture
def client(storage, login):
    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_blob_storage] = lambda: storage
    login(MEMBER)
    yield TestClient(app)
    app.dependency_overrides.clear()
