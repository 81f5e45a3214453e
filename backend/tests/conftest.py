"""Shared test fixtures for backend tests."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from app.api.deps import get_image_resolver
from app.core.config import settings
from app.core.database import get_session
from app.services.llm import get_llm_provider
from helpers import TEST_JWT_SECRET, FakeImageResolver, FakeLLM, test_engine


def get_test_session():
    with Session(test_engine) as session:
        yield session


@pytest.fixture(autouse=True)
def setup_test_db():
    """Create all tables before each test, drop after."""
    import app.models.conversation  # noqa: F401 - register models
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(autouse=True)
def jwt_secret():
    with patch.object(settings, "auth_jwt_secret", TEST_JWT_SECRET):
        yield


@pytest.fixture
def session():
    with Session(test_engine) as s:
        yield s


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def fake_images():
    return FakeImageResolver()


@pytest.fixture
def client(fake_llm, fake_images):
    """FastAPI TestClient with all external deps patched."""
    with patch("app.core.database.engine", test_engine):
        from app.main import app

        app.dependency_overrides[get_session] = get_test_session
        app.dependency_overrides[get_llm_provider] = lambda: fake_llm
        app.dependency_overrides[get_image_resolver] = lambda: fake_images

        with TestClient(app) as c:
            yield c

        app.dependency_overrides.clear()
