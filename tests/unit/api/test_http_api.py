"""
Name: HTTP API Tests (TestClient, in-memory stores)

Responsibilities:
  - Signup -> token (HTTP Basic) -> scoped reads
  - Error mapping: 400 with field list, 401, 403, 404
  - Request id propagation

Notes:
  - APP_ENV=test (set in conftest) selects in-memory stores and keys
  - reset_container() gives every test a fresh in-memory database
"""

import base64

import pytest
from fastapi.testclient import TestClient

from saas_starter.api.main import create_app
from saas_starter.api.routers import auth as auth_routes
from saas_starter.container import reset_container
from saas_starter.crosscutting.config import Settings

from factories import PASSWORD, signup_payload

pytestmark = pytest.mark.unit


@pytest.fixture
def client():
    reset_container()
    with TestClient(create_app()) as test_client:
        yield test_client
    reset_container()


def _basic(email: str, password: str = PASSWORD) -> dict:
    raw = base64.b64encode(f"{email}:{password}".encode()).decode()
    return {"Authorization": f"Basic {raw}"}


def _signup(client, tag: str) -> dict:
    res = client.post("/v1/signup", json=signup_payload(tag))
    assert res.status_code == 201, res.text
    return res.json()


def _token(client, email: str, **params) -> str:
    res = client.post("/v1/oauth/token", headers=_basic(email), params=params)
    assert res.status_code == 200, res.text
    return res.json()["token"]


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_health(client):
    res = client.get("/v1/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_signup_response_hides_password_fields(client):
    body = _signup(client, "Acme")

    assert body["account"]["signup_user_id"] == body["user"]["id"]
    assert body["account"]["status"] == "active"
    assert "password_hash" not in body["user"]
    assert "password_salt" not in body["user"]


def test_signup_validation_lists_fields(client):
    payload = signup_payload("Acme")
    payload["user"]["password_confirm"] = "nope"
    payload["user"]["email"] = "broken"

    res = client.post("/v1/signup", json=payload)

    assert res.status_code == 400
    body = res.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert {e["name"] for e in body["errors"]} == {"user.email", "user.password_confirm"}


def test_duplicate_signup_is_400_with_both_fields(client):
    _signup(client, "Acme")
    res = client.post("/v1/signup", json=signup_payload("Acme"))

    assert res.status_code == 400
    assert {e["name"] for e in res.json()["errors"]} == {"user.email", "account.name"}


def test_token_then_scoped_reads(client):
    first = _signup(client, "First")
    second = _signup(client, "Second")
    token = _token(client, first["user"]["email"])

    own = client.get(f"/v1/accounts/{first['account']['id']}", headers=_bearer(token))
    assert own.status_code == 200
    assert own.json()["name"] == "First Inc"

    foreign = client.get(f"/v1/accounts/{second['account']['id']}", headers=_bearer(token))
    assert foreign.status_code == 404

    listed = client.get("/v1/accounts", headers=_bearer(token))
    assert [a["id"] for a in listed.json()] == [first["account"]["id"]]


def test_bad_credentials_are_401(client):
    _signup(client, "Acme")

    res = client.post("/v1/oauth/token", headers=_basic("acme@x.test", "wrong"))
    assert res.status_code == 401

    res = client.post("/v1/oauth/token")
    assert res.status_code == 401


def test_missing_or_bad_bearer_is_401(client):
    assert client.get("/v1/accounts").status_code == 401
    res = client.get("/v1/accounts", headers=_bearer("not.a.token"))
    assert res.status_code == 401
    assert res.headers["WWW-Authenticate"] == "Bearer"


def test_malformed_id_is_400(client):
    acme = _signup(client, "Acme")
    token = _token(client, acme["user"]["email"])

    res = client.get("/v1/accounts/not-a-uuid", headers=_bearer(token))
    assert res.status_code == 400
    assert res.json()["code"] == "INVALID_ID"


def test_user_scope_cannot_update_account(client):
    acme = _signup(client, "Acme")
    token = _token(client, acme["user"]["email"], scope="user")

    res = client.patch(
        "/v1/accounts",
        json={"id": acme["account"]["id"], "name": "Renamed"},
        headers=_bearer(token),
    )
    assert res.status_code == 403


def test_admin_updates_account_and_creates_project(client):
    acme = _signup(client, "Acme")
    token = _token(client, acme["user"]["email"])

    res = client.patch(
        "/v1/accounts",
        json={"id": acme["account"]["id"], "city": "Juneau"},
        headers=_bearer(token),
    )
    assert res.status_code == 204

    res = client.post(
        "/v1/projects",
        json={"account_id": acme["account"]["id"], "name": "Apollo"},
        headers=_bearer(token),
    )
    assert res.status_code == 201
    assert res.json()["status"] == "active"

    projects = client.get("/v1/projects", headers=_bearer(token)).json()
    assert [p["name"] for p in projects] == ["Apollo"]


def test_invalid_order_is_400(client):
    acme = _signup(client, "Acme")
    token = _token(client, acme["user"]["email"])

    res = client.get("/v1/projects", params={"order": "password_hash"}, headers=_bearer(token))
    assert res.status_code == 400
    assert res.json()["errors"][0]["name"] == "order"


def test_password_reset_round_trip(client):
    _signup(client, "Acme")

    res = client.post("/v1/users/password-reset", json={"email": "acme@x.test"})
    assert res.status_code == 202
    reset_hash = res.json()["reset_hash"]

    res = client.post(
        f"/v1/users/password-reset/{reset_hash}",
        json={"password": "n3w!Secret", "password_confirm": "n3w!Secret"},
    )
    assert res.status_code == 200

    assert client.post("/v1/oauth/token", headers=_basic("acme@x.test")).status_code == 401
    res = client.post("/v1/oauth/token", headers=_basic("acme@x.test", "n3w!Secret"))
    assert res.status_code == 200


def test_unknown_email_reset_looks_the_same(client):
    res = client.post("/v1/users/password-reset", json={"email": "ghost@x.test"})
    assert res.status_code == 202
    assert res.json() == {"status": "ok", "reset_hash": None}


def test_invite_and_switch_account(client):
    acme = _signup(client, "Acme")
    other = _signup(client, "Other")
    other_token = _token(client, other["user"]["email"])

    res = client.post(
        "/v1/users/invite",
        json={
            "account_id": other["account"]["id"],
            "emails": [acme["user"]["email"]],
            "roles": ["user"],
        },
        headers=_bearer(other_token),
    )
    assert res.status_code == 201
    invite_hash = res.json()[0]["invite_hash"]

    res = client.post(
        f"/v1/users/invite/{invite_hash}",
        json={"name": "Acme Owner", "password": PASSWORD, "password_confirm": PASSWORD},
    )
    assert res.status_code == 200
    assert res.json()["membership"]["status"] == "active"

    token = _token(client, acme["user"]["email"], account_id=acme["account"]["id"])
    res = client.patch(
        f"/v1/users/switch-account/{other['account']['id']}", headers=_bearer(token)
    )
    assert res.status_code == 200

    switched = res.json()["token"]
    listed = client.get("/v1/projects", headers=_bearer(switched))
    assert listed.status_code == 200


def test_request_id_is_echoed(client):
    res = client.get("/v1/health", headers={"X-Request-Id": "3f1c1d9e-8e0a-4b8f-9b5e-7c2d1a0b6c4d"})
    assert res.headers["X-Request-Id"] == "3f1c1d9e-8e0a-4b8f-9b5e-7c2d1a0b6c4d"


def test_invite_hash_is_not_echoed_in_production(client, monkeypatch):
    acme = _signup(client, "Acme")
    token = _token(client, acme["user"]["email"])
    monkeypatch.setattr(
        auth_routes, "get_settings", lambda: Settings(_env_file=None, app_env="production")
    )

    res = client.post(
        "/v1/users/invite",
        json={"account_id": acme["account"]["id"], "emails": ["new@x.test"], "roles": ["user"]},
        headers=_bearer(token),
    )

    assert res.status_code == 201
    assert res.json()[0]["email"] == "new@x.test"
    assert res.json()[0]["invite_hash"] is None


def test_virtual_login_and_logout(client):
    acme = _signup(client, "Acme")
    admin_token = _token(client, acme["user"]["email"])
    res = client.post(
        "/v1/users/invite",
        json={"account_id": acme["account"]["id"], "emails": ["crew@x.test"], "roles": ["user"]},
        headers=_bearer(admin_token),
    )
    accepted = client.post(
        f"/v1/users/invite/{res.json()[0]['invite_hash']}",
        json={"name": "Crew", "password": PASSWORD, "password_confirm": PASSWORD},
    ).json()

    res = client.post(
        "/v1/users/virtual-login",
        json={"user_id": accepted["user"]["id"], "account_id": acme["account"]["id"]},
        headers=_bearer(admin_token),
    )
    assert res.status_code == 200
    crew_token = res.json()["token"]

    rename = {"id": acme["account"]["id"], "name": "Renamed"}
    assert client.patch("/v1/accounts", json=rename, headers=_bearer(crew_token)).status_code == 403

    res = client.post("/v1/users/virtual-logout", headers=_bearer(crew_token))
    assert res.status_code == 200
    back = res.json()["token"]
    assert client.patch("/v1/accounts", json=rename, headers=_bearer(back)).status_code == 204

    res = client.post("/v1/users/virtual-logout", headers=_bearer(back))
    assert res.status_code == 403
