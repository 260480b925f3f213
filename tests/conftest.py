import os

# Must be set before portal.core.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DEBUG", "false")
os.environ["BCRYPT_ROUNDS"] = "4"

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from portal import models  # noqa: F401
from portal.api.dependencies import get_file_service
from portal.core.security import hash_password
from portal.db.base import Base
from portal.db.session import get_db
from portal.main import app
from portal.models.user import User
from portal.services.file_service import FileService

TEST_PASSWORD = "Abcd123!"


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def make_user(db):
    """Insert a user directly, bypassing registration."""

    def _make_user(email="user@example.com", password=TEST_PASSWORD, **fields) -> User:
        user = User(email=email, password_hash=hash_password(password), **fields)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def minio_client():
    return MagicMock()


@pytest.fixture
def client(session_factory, minio_client):
    """TestClient wired to the in-memory database and a mocked MinIO client."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def override_get_file_service(db: Session = Depends(get_db)) -> FileService:
        return FileService(db, client=minio_client)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_file_service] = override_get_file_service
    yield TestClient(app)
    app.dependency_overrides.clear()
