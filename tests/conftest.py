"""Test fixtures for the app, its database and storage."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

TESTS_ROOT = Path(__file__).parent
TEST_DB_PATH = Path("test_app.db")
TEST_MEDIA_DIR = Path(tempfile.mkdtemp(prefix="quill-media-"))

# Configure the app *before* importing quill modules: settings are read once.
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["MEDIA_DIR"] = str(TEST_MEDIA_DIR)
os.environ["POST_BACKEND"] = "sqlalchemy"
os.environ["STORAGE_BACKEND"] = "local"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from quill.database import (  # noqa: E402
    Base,
    build_engine,
    build_session_factory,
    init_database,
)
from quill.main import app  # noqa: E402
from quill.models.post import BlogPost  # noqa: E402
from quill.security.csrf import CSRF_COOKIE_NAME, _sign  # noqa: E402

TESTING_SESSION_FACTORY: sessionmaker | None = None


def make_csrf_token(nonce: str = "test-nonce") -> str:
    """A token that passes signature checks, for cookie + form field."""
    return f"{nonce}.{_sign(nonce)}"


@pytest.fixture(scope="session")
def client():
    global TESTING_SESSION_FACTORY
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()

    engine = build_engine(f"sqlite:///{TEST_DB_PATH}")
    init_database(engine)
    TESTING_SESSION_FACTORY = build_session_factory(engine)

    with TestClient(app) as test_client:
        yield test_client

    engine.dispose()
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()


@pytest.fixture
def db_session(client):
    if TESTING_SESSION_FACTORY is None:
        raise RuntimeError("Session factory not initialized")
    session = TESTING_SESSION_FACTORY()
    try:
        yield session
    finally:
        # Ensure database state is isolated between tests
        session.rollback()
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
        session.close()


@pytest.fixture
def csrf_token() -> str:
    return make_csrf_token()


@pytest.fixture
def csrf_client(client, csrf_token):
    """Test client carrying a valid CSRF cookie."""
    client.cookies.delete(CSRF_COOKIE_NAME)
    client.cookies.set(CSRF_COOKIE_NAME, csrf_token)
    yield client
    client.cookies.delete(CSRF_COOKIE_NAME)


@pytest.fixture
def media_dir() -> Path:
    return TEST_MEDIA_DIR


@pytest.fixture
def seed_post(db_session):
    """Factory inserting a post and returning it."""

    def _seed(**overrides) -> BlogPost:
        defaults = dict(
            title="Test Post",
            content="First paragraph.\nSecond paragraph.",
            excerpt=None,
            slug="test-post",
            status="published",
        )
        defaults.update(overrides)
        post = BlogPost(**defaults)
        db_session.add(post)
        db_session.commit()
        db_session.refresh(post)
        return post

    return _seed
