"""
Test configuration and fixtures for the Shortlink Live API.
This centralizes all test setup, making individual tests clean.
"""

import os

# Settings are read at import time, so configure the environment first
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BASE_URL", "http://sho.rt")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from main import app
from shortlink_app.cache.strategies import InMemoryCache
from shortlink_app.database.connection import Base, get_db
from shortlink_app.dependencies import get_broadcaster, get_cache
from shortlink_app.live.broadcaster import ClickBroadcaster
from shortlink_app.models.user import User
from shortlink_app.services.code_allocator import ShortCodeAllocator
from shortlink_app.services.short_code_strategies import RandomShortCodeStrategy, ShortCodeStrategy
from shortlink_app.services.url_service import URLService

# Test database configuration
SQLALCHEMY_DATABASE_URL = os.environ["DATABASE_URL"]
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": 30},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class SequenceStrategy(ShortCodeStrategy):
    """Hands out a fixed list of candidates, repeating the last one"""

    def __init__(self, codes):
        self.codes = list(codes)
        self.calls = 0

    def generate(self) -> str:
        code = self.codes[min(self.calls, len(self.codes) - 1)]
        self.calls += 1
        return code


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    This ensures tests are isolated and don't affect each other.
    """
    # Create tables
    Base.metadata.create_all(bind=engine)
    
    # Create session
    db = TestingSessionLocal()
    
    try:
        yield db
    finally:
        # Cleanup
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def broadcaster():
    return ClickBroadcaster()


@pytest.fixture(scope="function")
def client(db_session, cache, broadcaster):
    """
    Create a test client with database, cache and broadcaster overridden.
    This is the main fixture that tests will use.
    """
    def override_get_db():
        yield db_session
    
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    
    with TestClient(app) as test_client:
        yield test_client
    
    # Clean up overrides
    app.dependency_overrides.clear()


@pytest.fixture
def owner(db_session):
    """A user row for service-level tests"""
    user = User(email="owner@example.com", password="not-a-real-hash")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def url_service(db_session, cache):
    allocator = ShortCodeAllocator(RandomShortCodeStrategy(length=6), max_attempts=5)
    return URLService(db=db_session, allocator=allocator, cache=cache)


def signup(client: TestClient, email: str = "alice@example.com", password: str = "password123") -> dict:
    response = client.post("/api/auth/signup", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice(client):
    return signup(client)


@pytest.fixture
def alice_headers(alice):
    return bearer(alice["accessToken"])
