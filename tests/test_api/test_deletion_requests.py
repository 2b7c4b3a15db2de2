import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from app.models.asset import Asset
from app.models.audit_log import AuditLog
from app.models.deletion_request import DeletionRequest
from app.models.user import User

BASE = "/api/v1/deletion-requests"


def _submit(client: TestClient, headers: dict, asset_id: int, justification: str = "No longer needed"):
    return client.post(f"{BASE}/", json={"asset_id": asset_id, "justification": justification}, headers=headers)


def test_submit_deletion_request(client: TestClient, asset: Asset, owner: User, owner_headers: dict):
    """Test submitting a deletion request for an owned asset."""
    response = _submit(client, owner_headers, asset.id)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["error"] is None
    data = body["data"]
    assert data["status"] == "pending"
    assert data["asset_id"] == asset.id
    assert data["asset_name"] == "Dell Latitude 7440"
    assert data["requested_by"] == owner.id
    assert data["justification"] == "No longer needed"


def test_second_submit_conflicts(client: TestClient, asset: Asset, owner_headers: dict):
    """Test that only one pending request per asset is accepted."""
    assert _submit(client, owner_headers, asset.id).status_code == 201

    response = _submit(client, owner_headers, asset.id, "Asking again, still not needed")

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["data"] is None
    assert body["error"]["code"] == "CONFLICT"


def test_submit_short_justification(client: TestClient, asset: Asset, owner_headers: dict):
    response = _submit(client, owner_headers, asset.id, "too short")

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["field"] == "justification"


def test_submit_for_someone_elses_asset(client: TestClient, asset: Asset, other_headers: dict):
    response = _submit(client, other_headers, asset.id)

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


def test_submit_for_missing_asset(client: TestClient, owner_headers: dict):
    response = _submit(client, owner_headers, 424242)

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_submit_without_token(client: TestClient, asset: Asset):
    response = client.post(f"{BASE}/", json={"asset_id": asset.id, "justification": "No longer needed"})

    assert response.status_code == 401


def test_reject_then_cancel(
    client: TestClient,
    session: Session,
    pending_request: DeletionRequest,
    asset: Asset,
    owner_headers: dict,
    admin_headers: dict
):
    """A rejected request keeps the asset and can no longer be cancelled."""
    response = client.post(
        f"{BASE}/{pending_request.id}/reject",
        json={"comment": "Still in use"},
        headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "data": None, "error": None}

    session.expire_all()
    assert session.get(Asset, asset.id) is not None
    rejected = session.get(DeletionRequest, pending_request.id)
    assert rejected.status == "rejected"
    assert rejected.review_comment == "Still in use"

    response = client.post(f"{BASE}/{pending_request.id}/cancel", headers=owner_headers)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_reject_by_non_admin(client: TestClient, pending_request: DeletionRequest, owner_headers: dict):
    response = client.post(
        f"{BASE}/{pending_request.id}/reject",
        json={"comment": "Still in use"},
        headers=owner_headers
    )

    assert response.status_code == 403


def test_reject_with_blank_comment(client: TestClient, pending_request: DeletionRequest, admin_headers: dict):
    response = client.post(
        f"{BASE}/{pending_request.id}/reject",
        json={"comment": "  "},
        headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["error"]["field"] == "review_comment"


def test_approve_deletes_asset(
    client: TestClient,
    session: Session,
    pending_request: DeletionRequest,
    asset: Asset,
    admin_headers: dict
):
    """Approval deletes the asset and lowers the pending count."""
    asset_id = asset.id
    before = client.get(f"{BASE}/stats", headers=admin_headers).json()["data"]["pending_count"]

    response = client.post(
        f"{BASE}/{pending_request.id}/approve",
        json={"comment": "ok"},
        headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["success"] is True

    session.expire_all()
    assert session.get(Asset, asset_id) is None
    approved = session.get(DeletionRequest, pending_request.id)
    assert approved.status == "approved"
    assert approved.asset_id is None
    assert approved.asset_name == "Dell Latitude 7440"

    stats = client.get(f"{BASE}/stats", headers=admin_headers).json()["data"]
    assert stats["pending_count"] == before - 1
    assert stats["approved_last_30_days"] == 1


def test_approve_without_body(
    client: TestClient, session: Session, pending_request: DeletionRequest, admin_headers: dict
):
    response = client.post(f"{BASE}/{pending_request.id}/approve", headers=admin_headers)

    assert response.status_code == 200
    session.expire_all()
    assert session.get(DeletionRequest, pending_request.id).review_comment is None


def test_approve_twice(client: TestClient, pending_request: DeletionRequest, admin_headers: dict):
    url = f"{BASE}/{pending_request.id}/approve"
    assert client.post(url, json={"comment": "ok"}, headers=admin_headers).status_code == 200

    response = client.post(url, json={"comment": "ok"}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_approve_missing_request(client: TestClient, admin: User, admin_headers: dict):
    response = client.post(f"{BASE}/999/approve", json={"comment": "ok"}, headers=admin_headers)

    assert response.status_code == 404


def test_cancel_own_request(client: TestClient, pending_request: DeletionRequest, owner_headers: dict):
    response = client.post(f"{BASE}/{pending_request.id}/cancel", headers=owner_headers)

    assert response.status_code == 200
    mine = client.get(f"{BASE}/mine", headers=owner_headers).json()["data"]
    assert [(r["id"], r["status"]) for r in mine] == [(pending_request.id, "cancelled")]


def test_list_requests_as_admin(
    client: TestClient, pending_request: DeletionRequest, admin_headers: dict
):
    response = client.get(f"{BASE}/", params={"status": "pending", "page_size": 5}, headers=admin_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 1
    assert data["page"] == 1
    assert data["page_size"] == 5
    assert data["total_pages"] == 1
    assert data["items"][0]["id"] == pending_request.id


@pytest.mark.parametrize("path", ["/", "/stats", "/pending-count"])
def test_admin_views_refuse_regular_users(client: TestClient, owner_headers: dict, path: str):
    response = client.get(f"{BASE}{path}", headers=owner_headers)

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


def test_pending_count(client: TestClient, pending_request: DeletionRequest, admin_headers: dict):
    response = client.get(f"{BASE}/pending-count", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["data"] == 1


def test_request_for_asset(
    client: TestClient,
    pending_request: DeletionRequest,
    asset: Asset,
    owner_headers: dict,
    other_headers: dict
):
    response = client.get(f"{BASE}/asset/{asset.id}", headers=owner_headers)
    assert response.status_code == 200
    assert response.json()["data"]["id"] == pending_request.id

    response = client.get(f"{BASE}/asset/{asset.id}", headers=other_headers)
    assert response.status_code == 403


def test_request_for_asset_without_history(client: TestClient, asset: Asset, owner_headers: dict):
    response = client.get(f"{BASE}/asset/{asset.id}", headers=owner_headers)

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": None, "error": None}


def test_direct_asset_deletion(
    client: TestClient,
    session: Session,
    pending_request: DeletionRequest,
    asset: Asset,
    owner_headers: dict,
    admin_headers: dict
):
    """Only admins may delete directly; a pending request is auto-approved."""
    asset_id = asset.id
    assert client.delete(f"/api/v1/assets/{asset_id}", headers=owner_headers).status_code == 403

    response = client.delete(f"/api/v1/assets/{asset_id}", headers=admin_headers)
    assert response.status_code == 200

    session.expire_all()
    assert session.get(Asset, asset_id) is None
    assert session.get(DeletionRequest, pending_request.id).status == "approved"

    assert client.delete(f"/api/v1/assets/{asset_id}", headers=admin_headers).status_code == 404


def test_audit_history(
    client: TestClient,
    session: Session,
    asset: Asset,
    owner_headers: dict,
    admin_headers: dict,
    other_headers: dict
):
    request_id = _submit(client, owner_headers, asset.id).json()["data"]["id"]
    client.post(f"{BASE}/{request_id}/reject", json={"comment": "Still in use"}, headers=admin_headers)

    response = client.get(f"/api/v1/audit-logs/deletion_request/{request_id}", headers=admin_headers)

    assert response.status_code == 200
    actions = [entry["action"] for entry in response.json()["data"]]
    assert actions == ["deletion_request_rejected", "deletion_request_submitted"]
    assert len(session.exec(select(AuditLog)).all()) == 2

    forbidden = client.get(f"/api/v1/audit-logs/deletion_request/{request_id}", headers=other_headers)
    assert forbidden.status_code == 403
