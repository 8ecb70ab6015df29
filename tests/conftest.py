import io

import pytest
from fastapi import UploadFile
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from recipebox.context import AppContext
from recipebox.db import Base
from recipebox.main import create_app
from recipebox.services.credentials import CredentialStore
from recipebox.services.recipes import RecipeRepository
from recipebox.settings import Settings

# --- Test Database Setup ---

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture
def engine():
    """Fresh in-memory database per test, shared across connections via StaticPool."""
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=SQLALCHEMY_DATABASE_URL,
        session_key="test-session-key",
        upload_root=str(tmp_path / "uploads"),
        bcrypt_rounds=4,
        max_upload_bytes=1024,
    )


@pytest.fixture
def context(settings, engine):
    ctx = AppContext.from_settings(settings, engine=engine)
    ctx.uploads.storage.ensure_root()
    return ctx


@pytest.fixture
def db_session(context):
    """Direct database session for setup and assertions."""
    session = context.session_factory()
    yield session
    session.close()


@pytest.fixture
def credentials(db_session, settings):
    return CredentialStore(db_session, rounds=settings.bcrypt_rounds)


@pytest.fixture
def repo(db_session, context):
    return RecipeRepository(db_session, context.uploads)


@pytest.fixture
def app(settings, engine):
    return create_app(settings, engine=engine)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_client(app):
    """Extra clients with their own cookie jars, for multi-user scenarios."""
    clients = []

    def _make():
        c = TestClient(app)
        c.__enter__()
        clients.append(c)
        return c

    yield _make
    for c in clients:
        c.__exit__(None, None, None)


@pytest.fixture
def make_upload():
    def _make(filename="tea.png", data=b"\x89PNG fake image bytes"):
        return UploadFile(file=io.BytesIO(data), filename=filename, size=len(data))
    return _make


@pytest.fixture
def login_as():
    """Sign up (if needed) and log in through the HTTP routes."""
    def _login(client, username, password):
        client.post("/signup", data={"username": username, "password": password})
        response = client.post(
            "/login",
            data={"username": username, "password": password},
            follow_redirects=False,
        )
        assert response.status_code == 303
        return response
    return _login
