import pytest

from comedor import create_app

from conftest import ADMIN, PASSWORD, _seed, login_as


@pytest.fixture
def strict_app(clock):
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test",
            "document_backend": "memory",
            "strict_csrf": True,
            "CLOCK": clock,
        }
    )
    with app.app_context():
        _seed(app)
    return app


def test_missing_token_is_rejected(strict_app):
    c = strict_app.test_client()
    login_as(c, ADMIN)
    r = c.post("/api/admin/branches", json={"name": "Centro"})
    assert r.status_code == 403
    assert r.mimetype == "application/problem+json"
    assert r.get_json()["detail"] == "csrf_missing"


def test_wrong_token_is_invalid(strict_app):
    c = strict_app.test_client()
    login_as(c, ADMIN)
    c.get("/auth/csrf")
    r = c.post("/api/admin/branches", json={"name": "Centro"}, headers={"X-CSRF-Token": "nope"})
    assert r.status_code == 403
    assert r.get_json()["detail"] == "csrf_invalid"


def test_issued_token_is_accepted(strict_app):
    c = strict_app.test_client()
    login_as(c, ADMIN)
    r = c.get("/auth/csrf")
    assert "csrf_token=" in r.headers["Set-Cookie"]
    token = r.get_json()["csrf_token"]
    r = c.post("/api/admin/branches", json={"name": "Centro"}, headers={"X-CSRF-Token": token})
    assert r.status_code == 201


def test_login_and_safe_methods_are_exempt(strict_app):
    c = strict_app.test_client()
    r = c.post("/auth/login", json={"email": ADMIN["email"], "password": PASSWORD})
    assert r.status_code == 200
    assert c.get("/api/admin/branches").status_code == 200


def test_not_enforced_by_default(admin_client):
    assert admin_client.post("/api/admin/branches", json={"name": "Centro"}).status_code == 201
