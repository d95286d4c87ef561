"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("MAIL_SUPPRESS_SEND", "true")

from unittest.mock import AsyncMock, patch  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.config import get_settings  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services import avatar as avatar_module  # noqa: E402
from app.services.assets import LocalAssetStore  # noqa: E402
from app.services.avatar import AvatarService  # noqa: E402
from app.services.password import get_password_hasher  # noqa: E402


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="avatars")
def avatars_fixture(tmp_path):
    """Point the avatar service at a temporary asset store."""
    store = LocalAssetStore(tmp_path / "media", "/media")
    service = AvatarService(store, tmp_dir=tmp_path / "staging", max_bytes=256 * 1024)
    avatar_module._avatar_service = service
    yield service
    avatar_module._avatar_service = None


@pytest.fixture(name="outbox")
def outbox_fixture():
    """Replace the SMTP transport; the mock records (recipient, subject, html)."""
    with patch("app.services.mail.MailService.send", new_callable=AsyncMock) as send:
        yield send


@pytest.fixture(name="client")
def client_fixture(db_session: Session, avatars: AvatarService, outbox: AsyncMock):
    """Create a test client with overridden DB dependency and disabled rate limiting."""
    from app.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session):
    """Create a test user and return its details plus a session token."""
    from app.services.jwt import get_jwt_service

    user = User(
        name="Test User",
        email="test@example.com",
        password_hash=get_password_hasher().hash("password123"),
        avatar_url=get_settings().DEFAULT_AVATAR_URL,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)

    return {
        "user_id": user.id,
        "email": user.email,
        "name": user.name,
        "password": "password123",
        "token": get_jwt_service().create_token(user.id),
    }


@pytest.fixture(name="auth_headers")
def auth_headers_fixture(test_user: dict) -> dict:
    return {"Authorization": f"Bearer {test_user['token']}"}
