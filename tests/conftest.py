"""
Shared test configuration and fixtures.

The application reads its configuration at import time, so the environment
is pointed at an in-memory SQLite database before anything from ``newshub``
is imported. Every test starts from freshly created tables.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SESSION_CLEANUP_INTERVAL_SECONDS"] = "0"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["APP_ENV"] = "development"
os.environ["COOKIE_SECURE"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from newshub.db.session import Base, SessionLocal, create_db, engine
from newshub.main import app
from newshub.models.article import Article, ArticleStatus
from newshub.services import auth as auth_service

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "adminpass"


@pytest.fixture(autouse=True)
def _fresh_tables():
    create_db()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_user(db):
    return auth_service.create_admin_user(db, ADMIN_USERNAME, "admin@newshub.com", ADMIN_PASSWORD)


@pytest.fixture
def auth_headers(client, admin_user):
    resp = client.post("/auth/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200, resp.text
    # requests in tests authenticate with the header only
    client.cookies.clear()
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
def clock(monkeypatch):
    """Controllable clock for the auth service.

    ``clock.advance(hours=25)`` moves every expiry check forward.
    """

    class Clock:
        def __init__(self):
            self.now = datetime(2024, 1, 1, 12, 0, 0)

        def __call__(self):
            return self.now

        def advance(self, **kwargs):
            self.now = self.now + timedelta(**kwargs)

    c = Clock()
    monkeypatch.setattr(auth_service, "utcnow", c)
    return c


@pytest.fixture
def make_article(db):
    """Insert an article row directly; keyword arguments override defaults."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        n = counter["n"]
        values = dict(
            title=f"Article {n}",
            slug=f"article-{n}",
            summary=f"Summary {n}",
            content=f"Body of article {n}",
            images=[],
            categories=["general"],
            tags=[],
            language="en",
            source_name="Test Source",
            source_url="https://source.example.com",
            status=ArticleStatus.published,
            published_at=datetime(2024, 1, 1) + timedelta(hours=n),
            canonical_url=f"https://source.example.com/{n}",
            word_count=4,
            reading_time=1,
            view_count=0,
            hash=f"hash-{n}",
            is_manual=False,
        )
        values.update(overrides)
        article = Article(**values)
        db.add(article)
        db.commit()
        db.refresh(article)
        return article

    return _make
