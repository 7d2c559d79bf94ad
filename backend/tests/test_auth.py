from datetime import timedelta

import auth
import schemas
from conftest import create_user, headers_for


def _register(client, email="u1@example.com", currency="USD"):
    return client.post("/register", json={
        "email": email,
        "password": "pass",
        "full_name": "U1",
        "default_currency": currency
    })


def test_register_and_login(client):
    response = _register(client, currency="EUR")
    assert response.status_code == 200
    assert response.json()["token_type"] == "bearer"

    token = client.post("/token", data={"username": "u1@example.com", "password": "pass"}).json()["access_token"]
    me = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "u1@example.com"
    assert me.json()["default_currency"] == "EUR"


def test_register_duplicate_email(client):
    _register(client)
    response = _register(client)
    assert response.status_code == 400


def test_register_unsupported_currency(client):
    response = _register(client, currency="XYZ")
    assert response.status_code == 422


def test_login_wrong_password(client):
    _register(client)
    response = client.post("/token", data={"username": "u1@example.com", "password": "nope"})
    assert response.status_code == 401


def test_expired_token_rejected(client, test_user):
    token = auth.create_access_token({"sub": test_user.email}, expires_delta=timedelta(minutes=-1))
    response = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_inactive_user_rejected(client, db_session):
    user = create_user(db_session, "gone@example.com", "Gone")
    user.is_active = False
    db_session.commit()

    response = client.get("/users/me", headers=headers_for(user))
    assert response.status_code == 401


def test_decode_access_token():
    token = auth.create_access_token({"sub": "a@example.com"})
    assert auth.decode_access_token(token) == "a@example.com"
    assert auth.decode_access_token("not-a-token") is None


def test_update_currency(client, auth_headers):
    response = client.put("/users/me/currency", headers=auth_headers, json={"default_currency": "JPY"})
    assert response.status_code == 200
    assert response.json()["default_currency"] == "JPY"


def test_response_models_read_orm_rows(test_user):
    for model in (schemas.User, schemas.Expense, schemas.Settlement, schemas.Group, schemas.GroupMember, schemas.Activity):
        assert model.model_config.get("from_attributes") is True

    user = schemas.User.model_validate(test_user)
    assert user.email == test_user.email
    assert user.default_currency == "USD"
