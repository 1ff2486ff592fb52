"""
HTTP-level tests: route guard, error mapping and the request lifecycle
through FastAPI's TestClient.

The app runs its real lifespan against a file-backed SQLite database seeded
by init_db (one user per role, see gatepass.db.init_db.SEED_USERS).
"""
from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from gatepass.identity import issue_token
from gatepass.main import create_app
from gatepass.models.security import User
from gatepass.settings import Settings

CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "security_config.yaml"


@pytest.fixture
def app(tmp_path):
    settings = Settings(
        db_url=f"sqlite:///{tmp_path / 'api.db'}",
        security_config_path=str(CONFIG_PATH),
        jwt_secret="api-test-secret-" + "x" * 24,
        directory_base_url=None,
    )
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth(app, client):
    def headers(service_no: str) -> dict[str, str]:
        token = issue_token(app.state.identity_config, service_no)
        return {"Authorization": f"Bearer {token}"}

    return headers


def _create(client, auth, service_no="US001", **overrides):
    body = {
        "items": [
            {"serial_no": "SN-1", "item_model": "Dell 5420", "item_category": "Laptop", "is_returnable": True},
            {"serial_no": "SN-2", "item_model": "Dock", "item_category": "Accessory"},
        ],
        "out_location": "Head Office",
        "in_location": "Regional Office Kandy",
        "executive_officer_service_no": "EX001",
    }
    body.update(overrides)
    resp = client.post("/requests", json=body, headers=auth(service_no))
    assert resp.status_code == 201, resp.text
    return resp.json()


def _transition(client, auth, service_no, ref, action, stage, **extra):
    body = {"action": action, "stage": stage, **extra}
    return client.post(f"/requests/{ref}/transitions", json=body, headers=auth(service_no))


# ---- authentication -------------------------------------------------------------


def test_health_is_public(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_missing_token_is_401(client):
    assert client.get("/me").status_code == 401


def test_malformed_header_is_400(client):
    assert client.get("/me", headers={"Authorization": "Token abc"}).status_code == 400


def test_invalid_token_is_401(client):
    assert client.get("/me", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401


def test_unknown_user_is_401(client, auth):
    assert client.get("/me", headers=auth("ZZ999")).status_code == 401


def test_unrecognized_stored_role_is_401(app, client, auth):
    with app.state.session_factory() as db:
        db.add(User(service_no="JN001", name="Janitor", email="jn001@example.com", role="Janitor"))
        db.commit()
    assert client.get("/me", headers=auth("JN001")).status_code == 401


def test_legacy_stored_role_is_normalized(app, client, auth):
    with app.state.session_factory() as db:
        db.add(User(service_no="RO101", name="Old Verifier", email="ro101@example.com", role="RO1"))
        db.commit()
    resp = client.get("/me", headers=auth("RO101"))
    assert resp.status_code == 200
    assert resp.json()["role"] == "Security Officer"


# ---- me / menu ------------------------------------------------------------------


def test_me(client, auth):
    resp = client.get("/me", headers=auth("PL001"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["user"]["service_no"] == "PL001"
    assert body["role"] == "Pleader"
    assert body["role_display_name"] == "Patrol Leader"
    assert "dispatch" in body["permitted_actions"]


def test_menu(client, auth):
    resp = client.get("/me/menu", headers=auth("EX001"))
    assert resp.status_code == 200
    body = resp.json()
    assert [e["title"] for e in body["entries"]] == ["New Request", "My Requests", "Executive Approve", "Receive"]
    assert "receiver_contact" in body["receiver_fields"]["non_slt"]
    assert body["receiver_fields"]["slt"] == ["receiver_available", "receiver_service_no"]


# ---- lifecycle ------------------------------------------------------------------


def test_end_to_end_flow(client, auth):
    created = _create(client, auth)
    ref = created["reference_number"]
    assert ref.startswith("REQ-")
    assert created["status"]["code"] == 1
    assert set(created["controls"]) == {"cancel", "reassign-executive", "edit-items"}

    resp = _transition(client, auth, "EX001", ref, "approve", "executive", comment="approved", expected_status=1)
    assert resp.status_code == 200
    assert resp.json()["status"] == {
        "code": 4,
        "stage": "Verify",
        "outcome": "Pending",
        "category": "Pending",
        "text": "Verify Pending",
    }
    assert _transition(client, auth, "SO001", ref, "approve", "verify").json()["status"]["code"] == 7
    assert _transition(client, auth, "DP001", ref, "approve", "dispatch").json()["status"]["code"] == 10

    resp = client.post(
        f"/requests/{ref}/returns",
        json={"serial_numbers": ["SN-1", "SN-2"], "remarks": "back in store"},
        headers=auth("US001"),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["marked"] == 1
    assert body["items"][0]["return_status"] == "returned"

    assert _transition(client, auth, "US001", ref, "approve", "receive").json()["status"]["code"] == 11

    detail = client.get(f"/requests/{ref}", headers=auth("US001")).json()
    assert detail["status"]["text"] == "Receive Approved"
    assert detail["items"][1]["return_status"] == "not-applicable"

    history = client.get(f"/requests/{ref}/history", headers=auth("US001")).json()
    assert [(h["before"], h["after"]) for h in history] == [(1, 2), (2, 4), (4, 5), (5, 7), (7, 8), (8, 10), (10, 11)]
    assert history[0]["comment"] == "approved"


def test_wrong_stage_role_is_403(client, auth):
    ref = _create(client, auth)["reference_number"]
    resp = _transition(client, auth, "US001", ref, "approve", "executive")
    assert resp.status_code == 403
    assert resp.json()["code"] == "FORBIDDEN"


def test_stale_transition_is_409(client, auth):
    ref = _create(client, auth)["reference_number"]
    assert _transition(client, auth, "EX001", ref, "approve", "executive", expected_status=1).status_code == 200
    resp = _transition(client, auth, "SA001", ref, "approve", "executive", expected_status=1)
    assert resp.status_code == 409
    assert resp.json()["code"] == "INVALID_TRANSITION"


def test_replayed_admin_approval_is_409(client, auth):
    ref = _create(client, auth, executive_officer_service_no=None)["reference_number"]
    assert _transition(client, auth, "SA001", ref, "approve", "executive").status_code == 200

    resp = _transition(client, auth, "SA001", ref, "approve", "executive")
    assert resp.status_code == 409
    assert resp.json()["code"] == "INVALID_TRANSITION"
    detail = client.get(f"/requests/{ref}", headers=auth("US001")).json()
    assert detail["status"]["code"] == 4


def test_unknown_stage_is_422(client, auth):
    ref = _create(client, auth)["reference_number"]
    assert _transition(client, auth, "EX001", ref, "approve", "nowhere").status_code == 422


def test_stranger_cannot_read_request(client, auth):
    ref = _create(client, auth)["reference_number"]
    for path in (f"/requests/{ref}", f"/requests/{ref}/history", f"/requests/{ref}/returns"):
        assert client.get(path, headers=auth("US002")).status_code == 403, path
        assert client.get(path, headers=auth("EX001")).status_code == 200, path


def test_returns_before_receive_is_409(client, auth):
    ref = _create(client, auth)["reference_number"]
    resp = client.post(f"/requests/{ref}/returns", json={"serial_numbers": ["SN-1"]}, headers=auth("US001"))
    assert resp.status_code == 409
    assert resp.json()["code"] == "INVALID_STATE"


def test_unknown_reference_is_404(client, auth):
    assert client.get("/requests/REQ-404", headers=auth("US001")).status_code == 404
    assert _transition(client, auth, "EX001", "REQ-404", "approve", "executive").status_code == 404


def test_invalid_create_is_422(client, auth):
    resp = client.post(
        "/requests",
        json={
            "items": [{"serial_no": "SN-1"}, {"serial_no": "SN-1"}],
            "out_location": "A",
            "in_location": "B",
        },
        headers=auth("US001"),
    )
    assert resp.status_code == 422
    assert resp.json()["code"] == "INVALID_REQUEST"


def test_cancel_hides_request(client, auth):
    ref = _create(client, auth)["reference_number"]
    resp = client.post(f"/requests/{ref}/cancel", headers=auth("US001"))
    assert resp.status_code == 200
    assert resp.json()["status"]["code"] == 13

    assert client.get("/requests/mine", headers=auth("US001")).json() == []
    hidden = client.get("/requests/mine", params={"include_hidden": "true"}, headers=auth("US001")).json()
    assert [r["reference_number"] for r in hidden] == [ref]
    assert _transition(client, auth, "EX001", ref, "approve", "executive").status_code == 409


def test_cancel_by_stranger_is_403(client, auth):
    ref = _create(client, auth)["reference_number"]
    assert client.post(f"/requests/{ref}/cancel", headers=auth("US002")).status_code == 403


def test_edit_item_and_reassign(client, auth):
    ref = _create(client, auth)["reference_number"]
    resp = client.patch(f"/requests/{ref}/items/SN-2", json={"description": "with cable"}, headers=auth("US001"))
    assert resp.status_code == 200
    assert resp.json()["items"][1]["description"] == "with cable"

    resp = client.put(f"/requests/{ref}/executive-officer", json={"service_no": "SA001"}, headers=auth("US001"))
    assert resp.status_code == 200
    assert resp.json()["executive_officer_service_no"] == "SA001"
    assert _transition(client, auth, "EX001", ref, "approve", "executive").status_code == 403
    assert _transition(client, auth, "SA001", ref, "approve", "executive").status_code == 200


def test_queues(client, auth):
    ref = _create(client, auth)["reference_number"]
    resp = client.get("/queues/executive", headers=auth("EX001"))
    assert resp.status_code == 200
    assert [r["reference_number"] for r in resp.json()] == [ref]
    assert client.get("/queues/executive", headers=auth("US001")).status_code == 403
    assert client.get("/queues/nowhere", headers=auth("EX001")).status_code == 422


def test_verify_queue_is_branch_scoped(client, auth):
    head_office = _create(client, auth)["reference_number"]
    elsewhere = _create(client, auth, out_location="Regional Office Galle")["reference_number"]
    for ref in (head_office, elsewhere):
        assert _transition(client, auth, "EX001", ref, "approve", "executive").status_code == 200

    resp = client.get("/queues/verify", headers=auth("SO001"))
    assert [r["reference_number"] for r in resp.json()] == [head_office]
    assert _transition(client, auth, "SO001", elsewhere, "approve", "verify").status_code == 403
    assert len(client.get("/queues/verify", headers=auth("AD001")).json()) == 2


# ---- admin ----------------------------------------------------------------------


def test_admin_users_super_admin_only(client, auth):
    resp = client.get("/admin/users", headers=auth("SA001"))
    assert resp.status_code == 200
    assert len(resp.json()) == 8
    assert client.get("/admin/users", headers=auth("AD001")).status_code == 403
    assert client.get("/admin/users", headers=auth("US001")).status_code == 403
