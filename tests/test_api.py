import pytest
from fastapi.testclient import TestClient

from legalletter.main import create_app

PW = "Secret123"


@pytest.fixture
def client(svc):
    return TestClient(create_app(services=svc))

def _signup(client, email="john@example.com", name="John Doe", **extra):
    return client.post("/auth/signup", json={"email": email, "password": PW, "full_name": name, **extra})


def test_signup_signin_me(client):
    r = _signup(client)
    assert r.status_code == 201
    body = r.json()
    assert body["ok"] is True
    assert "password_hash" not in body["data"]

    assert client.get("/auth/me").json()["data"]["email"] == "john@example.com"
    assert client.post("/auth/signout").status_code == 200
    assert client.get("/auth/me").json()["data"] is None

    r = client.post("/auth/signin", json={"email": "john@example.com", "password": PW})
    assert r.status_code == 200

def test_error_status_mapping(client, fields):
    _signup(client)
    dup = _signup(client)
    assert dup.status_code == 409
    assert dup.json()["ok"] is False
    assert dup.json()["error"]["code"] == "USER_EXISTS"

    bad = _signup(client, email="not-an-email")
    assert bad.status_code == 400
    assert bad.json()["error"]["code"] == "INVALID_FORMAT"

    assert client.post("/letters", json=fields()).status_code == 402
    assert client.post("/subscriptions", json={"plan": "lifetime"}).status_code == 400
    assert client.get("/letters/nope").status_code == 404
    assert client.get("/admin/metrics").status_code == 403

    client.post("/auth/signout")
    r = client.get("/letters")
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "NOT_AUTHENTICATED"

def test_wrong_password_is_401(client):
    _signup(client)
    client.post("/auth/signout")
    r = client.post("/auth/signin", json={"email": "john@example.com", "password": "Wrong1234"})
    assert r.status_code == 401

def test_checkout_and_letter_flow(client, svc, jane, scheduler, fields, cfg):
    _signup(client)
    check = client.post("/subscriptions/coupons/check", json={"code": "jane20"}).json()["data"]
    assert check == {"valid": True, "code": "JANE20", "discount": 20}

    r = client.post("/subscriptions", json={"plan": "annual4", "coupon_code": "JANE20"})
    assert r.status_code == 201
    assert r.json()["data"]["price"] == pytest.approx(239.2)

    r = client.post("/letters", json=fields())
    assert r.status_code == 202
    letter_id = r.json()["data"]["id"]
    assert r.json()["data"]["status"] == "pending"

    scheduler.advance(cfg.LETTER_PROCESSING_SECONDS)
    items = client.get("/letters").json()["data"]["items"]
    assert [(i["id"], i["status"]) for i in items] == [(letter_id, "completed")]

    r = client.post(f"/letters/{letter_id}/download")
    assert r.status_code == 200
    assert r.json()["data"]["filename"] == f"legal-letter-{letter_id[:8]}.txt"

    active = client.get("/subscriptions/active").json()["data"]
    assert active["letters_used"] == 1 and active["letters_remaining"] == 3

    assert client.delete(f"/letters/{letter_id}").status_code == 204
    assert client.get("/letters").json()["data"]["items"] == []

def test_employee_dashboard(client, jane, svc):
    client.post("/auth/signin", json={"email": "employee@legalletter.ai", "password": PW})
    r = client.get("/employees/me")
    assert r.status_code == 200
    assert r.json()["data"]["coupon_code"] == "JANE20"

def test_admin_endpoints(client, svc, cfg, customer):
    _signup(client, email="root@legalletter.ai", name="Root User", role="admin", admin_secret=cfg.ADMIN_SECRET)
    report = client.get("/admin/metrics").json()["data"]
    assert report["status"] == "healthy"
    assert report["metrics"]["total_users"] == 1 and report["metrics"]["total_admins"] == 1

    r = client.post(f"/admin/users/{customer.id}/active", json={"active": False})
    assert r.json()["data"]["is_active"] is False

    acts = client.get("/admin/activities", params={"limit": 2}).json()["data"]
    assert [a["action"] for a in acts] == ["USER_STATUS_CHANGED", "USER_SIGNUP"]

    export = client.get("/admin/export").json()["data"]
    assert all("password_hash" not in u for u in export["users"])

def test_admin_metrics_degrade_on_read_failure(client, svc, cfg, monkeypatch):
    _signup(client, email="root@legalletter.ai", name="Root User", role="admin", admin_secret=cfg.ADMIN_SECRET)
    def boom(*a, **kw):
        raise RuntimeError("letters unreadable")
    monkeypatch.setattr(svc.letters, "list_all_letters", boom)
    r = client.get("/admin/metrics")
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "degraded"
    assert r.json()["data"]["metrics"]["total_letters"] == 0
