from datetime import date

from conftest import create_user, headers_for


def _friend(client, headers, friend_id):
    friends = client.get("/friends", headers=headers).json()
    return next((f for f in friends if f["friend_id"] == friend_id), None)


def _expense(payer, participants, amount, split_type="EQUAL"):
    return {
        "description": "Dinner",
        "amount": amount,
        "currency": "USD",
        "date": str(date.today()),
        "payer_id": payer.id,
        "split_type": split_type,
        "splits": [{"user_id": p.id} for p in participants]
    }


def test_add_friend_creates_pending_request(client, auth_headers, other_headers, test_user, other_user):
    response = client.post("/friends", headers=auth_headers, json={"email": other_user.email})
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "pending"
    assert data["balance"] == 0

    mirrored = _friend(client, other_headers, test_user.id)
    assert mirrored["status"] == "pending"


def test_add_unknown_friend(client, auth_headers):
    response = client.post("/friends", headers=auth_headers, json={"email": "nobody@example.com"})
    assert response.status_code == 404


def test_add_self_as_friend(client, auth_headers, test_user):
    response = client.post("/friends", headers=auth_headers, json={"email": test_user.email})
    assert response.status_code == 409


def test_accept_twice_is_invalid_state(client, linked_friends, other_headers):
    test_user, _ = linked_friends
    response = client.post(f"/friends/{test_user.id}/accept", headers=other_headers)
    assert response.status_code == 409


def test_pending_friend_reports_zero_balance(client, auth_headers, test_user, other_user):
    client.post("/friends", headers=auth_headers, json={"email": other_user.email})
    response = client.post("/expenses", headers=auth_headers, json=_expense(test_user, [test_user, other_user], 3000))
    assert response.status_code == 200

    assert _friend(client, auth_headers, other_user.id)["balance"] == 0


def test_linking_surfaces_existing_balance(client, auth_headers, other_headers, test_user, other_user):
    client.post("/friends", headers=auth_headers, json={"email": other_user.email})
    client.post("/expenses", headers=auth_headers, json=_expense(test_user, [test_user, other_user], 3000))

    client.post(f"/friends/{test_user.id}/accept", headers=other_headers)

    assert _friend(client, auth_headers, other_user.id)["balance"] == 1500
    assert _friend(client, other_headers, test_user.id)["balance"] == -1500


def test_remove_and_relink_scenario(client, linked_friends, auth_headers, other_headers):
    test_user, other_user = linked_friends

    # A pays 30.00 split evenly with B
    response = client.post("/expenses", headers=auth_headers, json=_expense(test_user, [test_user, other_user], 3000))
    assert response.json()["balance_status"] == "fresh"
    friend = _friend(client, auth_headers, other_user.id)
    assert friend["balance"] == 1500
    assert friend["formatted_balance"] == "$15.00"

    # B settles 10.00 to A
    response = client.post("/settlements", headers=other_headers, json={
        "payee_id": test_user.id, "amount": 1000, "currency": "USD", "date": str(date.today())
    })
    assert response.status_code == 200
    assert _friend(client, auth_headers, other_user.id)["balance"] == 500

    # A removes the friendship
    response = client.delete(f"/friends/{other_user.id}", headers=auth_headers)
    assert response.status_code == 200
    friend = _friend(client, auth_headers, other_user.id)
    assert friend["status"] == "removed"
    assert friend["balance"] == 0

    # Re-linking restores the computed balance
    client.post("/friends", headers=auth_headers, json={"email": other_user.email})
    assert _friend(client, auth_headers, other_user.id)["balance"] == 0
    client.post(f"/friends/{test_user.id}/accept", headers=other_headers)
    assert _friend(client, auth_headers, other_user.id)["balance"] == 500


def test_update_balance_is_overwritten_by_recompute(client, linked_friends, auth_headers):
    test_user, other_user = linked_friends
    client.post("/expenses", headers=auth_headers, json=_expense(test_user, [test_user, other_user], 3000))

    response = client.put(f"/friends/{other_user.id}/balance", headers=auth_headers, json={"balance": 4242})
    assert response.status_code == 200
    assert response.json()["balance"] == 4242

    response = client.post("/friends/refresh", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["balance_status"] == "fresh"
    assert _friend(client, auth_headers, other_user.id)["balance"] == 1500


def test_update_balance_on_pending_rejected(client, auth_headers, other_user):
    client.post("/friends", headers=auth_headers, json={"email": other_user.email})
    response = client.put(f"/friends/{other_user.id}/balance", headers=auth_headers, json={"balance": 10})
    assert response.status_code == 409


def test_update_balance_unknown_friend(client, auth_headers):
    response = client.put("/friends/999/balance", headers=auth_headers, json={"balance": 10})
    assert response.status_code == 404


def test_friends_requires_auth(client):
    assert client.get("/friends").status_code == 401


def test_friend_balances_use_each_owners_currency(client, db_session):
    yen_user = create_user(db_session, "yen@example.com", "Yen", currency="JPY")
    other = create_user(db_session, "yen-friend@example.com", "Friend", currency="JPY")
    client.post("/friends", headers=headers_for(yen_user), json={"email": other.email})
    client.post(f"/friends/{yen_user.id}/accept", headers=headers_for(other))

    payload = _expense(yen_user, [yen_user, other], 1001)
    payload["currency"] = "JPY"
    client.post("/expenses", headers=headers_for(yen_user), json=payload)

    friend = _friend(client, headers_for(yen_user), other.id)
    # 1001 split two ways: the payer absorbs the residual yen
    assert friend["balance"] == 500
    assert friend["currency"] == "JPY"
    assert friend["formatted_balance"] == "¥500"


def test_refresh_reports_currency_mismatch(client, linked_friends, auth_headers):
    test_user, other_user = linked_friends
    client.post("/expenses", headers=auth_headers, json=_expense(test_user, [test_user, other_user], 3000))

    response = client.put("/users/me/currency", headers=auth_headers, json={"default_currency": "EUR"})
    assert response.status_code == 200

    response = client.post("/friends/refresh", headers=auth_headers)
    assert response.status_code == 422
    assert "record_id" in response.json()
    # Last known balance is still served
    assert _friend(client, auth_headers, other_user.id)["balance"] == 1500
