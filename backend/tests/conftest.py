"""
Fixtures partagees : base SQLite en memoire et client FastAPI avec overrides.
"""
import os

# Les Settings sont lus a l'import des modules peakplay
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BADGE_EVALUATION_MODE", "inline")
os.environ.setdefault("CACHE_BACKEND", "memory")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import peakplay.domain.entities  # noqa: F401
from peakplay.core.cache import get_badge_cache, get_media_url_cache
from peakplay.core.database import get_session


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def _reset_caches():
    get_badge_cache().clear()
    get_media_url_cache().clear()
    yield


@pytest.fixture(name="app")
def app_fixture(session: Session):
    from peakplay.main import app
    from peakplay.api.routers import limiter

    app.dependency_overrides[get_session] = lambda: session
    limiter.enabled = False
    yield app
    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture(name="client")
def client_fixture(app):
    return TestClient(app)
