"""Shared fixtures: isolated settings, in-memory database, vault, signer, client."""

import base64
import os
import tempfile

# Setup environment before streamgate.config is imported
_DATA_DIR = tempfile.mkdtemp()
os.environ["STREAMGATE_DATA_DIR"] = _DATA_DIR
os.environ["STREAMGATE_DB_PATH"] = os.path.join(_DATA_DIR, "test.db")
os.environ["STREAMGATE_JWT_SECRET"] = "test-signing-secret-with-enough-entropy-0123456789"
os.environ["STREAMGATE_ADMIN_API_KEY"] = "test-admin-key"
os.environ["STREAMGATE_VAULT_KEY"] = base64.b64encode(bytes(range(32))).decode()
os.environ["STREAMGATE_UPSTREAM_BASE_URL"] = ""
os.environ["STREAMGATE_PLAYBACK_BASE_URL"] = "https://gate.example.com"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import streamgate.models  # noqa: F401
from streamgate.config import settings
from streamgate.database import enable_foreign_keys
from streamgate.utils.security import TokenSigner
from streamgate.utils.vault import CredentialVault

ADMIN_HEADERS = {"X-Admin-Key": "test-admin-key"}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", enable_foreign_keys)
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def vault():
    return CredentialVault.from_settings(settings)


@pytest.fixture
def signer():
    return TokenSigner.from_settings(settings)


@pytest.fixture
def client(engine):
    from streamgate.database import get_session
    from streamgate.main import app

    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return dict(ADMIN_HEADERS)
