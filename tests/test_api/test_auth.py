import jwt
from datetime import datetime, timedelta
from fastapi.testclient import TestClient
from sqlmodel import Session
from app.core.config import settings
from app.core.security import create_access_token
from app.models.user import User


def test_get_current_user(client: TestClient, owner: User, owner_headers: dict):
    """Test getting current user profile."""
    response = client.get("/api/v1/auth/me", headers=owner_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == owner.id
    assert data["username"] == "owner"
    assert data["is_admin"] is False


def test_get_current_user_without_token(client: TestClient):
    """Test accessing protected endpoint without token."""
    response = client.get("/api/v1/auth/me")

    assert response.status_code == 401


def test_get_current_user_invalid_token(client: TestClient):
    """Test accessing protected endpoint with invalid token."""
    response = client.get(
        "/api/v1/auth/me",
        headers={"Authorization": "Bearer invalid_token"}
    )

    assert response.status_code == 401


def test_get_current_user_expired_token(client: TestClient, owner: User):
    """Test accessing protected endpoint with expired token."""
    expired_token = jwt.encode(
        {"sub": str(owner.id), "exp": datetime.utcnow() - timedelta(minutes=1)},
        settings.secret_key,
        algorithm=settings.algorithm
    )

    response = client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {expired_token}"}
    )

    assert response.status_code == 401


def test_token_for_unknown_user(client: TestClient):
    token = create_access_token(data={"sub": "987654"})

    response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_inactive_user_is_rejected(client: TestClient, session: Session, owner: User, owner_headers: dict):
    owner.is_active = False
    session.add(owner)
    session.commit()

    response = client.get("/api/v1/auth/me", headers=owner_headers)

    assert response.status_code == 401


def test_health(client: TestClient):
    assert client.get("/health").status_code == 200
