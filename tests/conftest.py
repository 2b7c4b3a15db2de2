import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel
from sqlmodel.pool import StaticPool

from app.main import app
from app.core.security import create_access_token
from app.db.base import *  # noqa
from app.db.session import create_db_engine, get_session
from app.models.asset import Asset
from app.models.deletion_request import DeletionRequest
from app.models.user import User


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory database shared by every session of a test."""
    engine = create_db_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    """Create a test database session."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Create a test client with database session dependency override."""
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def _create_user(session: Session, username: str, is_admin: bool = False) -> User:
    user = User(username=username, email=f"{username}@example.com", is_admin=is_admin)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(name="owner")
def owner_fixture(session: Session):
    """User who owns the test asset."""
    return _create_user(session, "owner")


@pytest.fixture(name="other_user")
def other_user_fixture(session: Session):
    """Regular user with no assets."""
    return _create_user(session, "bystander")


@pytest.fixture(name="admin")
def admin_fixture(session: Session):
    """Admin user."""
    return _create_user(session, "admin", is_admin=True)


@pytest.fixture(name="asset")
def asset_fixture(session: Session, owner: User):
    """An asset created by `owner`."""
    asset = Asset(name="Dell Latitude 7440", cost=1299.99, created_by=owner.id)
    session.add(asset)
    session.commit()
    session.refresh(asset)
    return asset


@pytest.fixture(name="pending_request")
def pending_request_fixture(session: Session, asset: Asset, owner: User):
    """A pending deletion request for `asset` inserted directly."""
    deletion_request = DeletionRequest(
        asset_id=asset.id,
        asset_name=asset.name,
        asset_cost=asset.cost,
        requested_by=owner.id,
        requester_email=owner.email,
        justification="Screen is cracked beyond repair",
    )
    session.add(deletion_request)
    session.commit()
    session.refresh(deletion_request)
    return deletion_request


def auth_headers_for(user: User) -> dict:
    """Bearer headers for a user."""
    token = create_access_token(data={"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(name="owner_headers")
def owner_headers_fixture(owner: User):
    return auth_headers_for(owner)


@pytest.fixture(name="admin_headers")
def admin_headers_fixture(admin: User):
    return auth_headers_for(admin)


@pytest.fixture(name="other_headers")
def other_headers_fixture(other_user: User):
    return auth_headers_for(other_user)
