from datetime import date

from conftest import create_user, headers_for, link_users


def _settlement(payee, amount, **extra):
    payload = {"payee_id": payee.id, "amount": amount, "currency": "USD", "date": str(date.today())}
    payload.update(extra)
    return payload


def test_settlement_changes_both_sides(client, linked_friends, auth_headers, other_headers):
    test_user, other_user = linked_friends

    response = client.post("/settlements", headers=auth_headers, json=_settlement(other_user, 700))
    assert response.status_code == 200
    data = response.json()
    assert data["settlement"]["payer_id"] == test_user.id
    assert data["balance_status"] == "fresh"

    mine = client.get("/balances", headers=auth_headers).json()
    theirs = client.get("/balances", headers=other_headers).json()
    assert mine["balances"][0]["amount"] == 700
    assert theirs["balances"][0]["amount"] == -700


def test_settlement_leaves_other_pairs_untouched(client, linked_friends, auth_headers, db_session):
    test_user, other_user = linked_friends
    third = create_user(db_session, "third@example.com", "Third")
    client.post("/friends", headers=auth_headers, json={"email": third.email})
    client.post(f"/friends/{test_user.id}/accept", headers=headers_for(third))

    client.post("/settlements", headers=auth_headers, json=_settlement(other_user, 700))

    balances = {b["user_id"]: b["amount"] for b in client.get("/balances", headers=auth_headers).json()["balances"]}
    assert balances == {other_user.id: 700}


def test_settlement_on_behalf_requires_participation(client, auth_headers, db_session, test_user, other_user):
    third = create_user(db_session, "third@example.com", "Third")
    response = client.post("/settlements", headers=auth_headers, json=_settlement(third, 100, payer_id=other_user.id))
    assert response.status_code == 403


def test_settlement_recorded_by_payee(client, linked_friends, auth_headers):
    test_user, other_user = linked_friends
    response = client.post("/settlements", headers=auth_headers, json=_settlement(test_user, 300, payer_id=other_user.id))
    assert response.status_code == 200
    assert response.json()["settlement"]["payer_id"] == other_user.id

    friends = client.get("/friends", headers=auth_headers).json()
    assert friends[0]["balance"] == -300


def test_settle_with_self_rejected(client, auth_headers, test_user):
    response = client.post("/settlements", headers=auth_headers, json=_settlement(test_user, 100))
    assert response.status_code == 400


def test_non_positive_settlement_rejected(client, auth_headers, other_user):
    response = client.post("/settlements", headers=auth_headers, json=_settlement(other_user, 0))
    assert response.status_code == 422


def test_settlement_with_unknown_user(client, auth_headers):
    response = client.post("/settlements", headers=auth_headers, json={
        "payee_id": 999, "amount": 100, "currency": "USD", "date": str(date.today())
    })
    assert response.status_code == 404


def test_list_settlements(client, linked_friends, auth_headers, other_headers):
    test_user, other_user = linked_friends
    client.post("/settlements", headers=auth_headers, json=_settlement(other_user, 100))
    client.post("/settlements", headers=other_headers, json=_settlement(test_user, 50))

    settlements = client.get("/settlements", headers=auth_headers).json()
    assert [s["amount"] for s in settlements] == [100, 50]


def test_balances_summary_total(client, linked_friends, auth_headers):
    test_user, other_user = linked_friends
    client.post("/expenses", headers=auth_headers, json={
        "description": "Tickets",
        "amount": 4000,
        "currency": "USD",
        "date": str(date.today()),
        "payer_id": test_user.id,
        "split_type": "SHARES",
        "splits": [{"user_id": test_user.id, "shares": 1}, {"user_id": other_user.id, "shares": 3}]
    })
    summary = client.get("/balances", headers=auth_headers).json()
    assert summary["total"] == 3000
    assert summary["currency"] == "USD"


def test_settlement_without_currency_uses_callers_currency(client, db_session):
    alice = create_user(db_session, "alice@example.com", "Alice", currency="EUR")
    bob = create_user(db_session, "bob@example.com", "Bob", currency="EUR")
    link_users(client, alice, bob)

    payload = _settlement(bob, 1200)
    del payload["currency"]
    response = client.post("/settlements", headers=headers_for(alice), json=payload)
    assert response.status_code == 200
    assert response.json()["settlement"]["currency"] == "EUR"
    assert response.json()["balance_status"] == "fresh"

    friends = client.get("/friends", headers=headers_for(bob)).json()
    assert friends[0]["balance"] == -1200
    assert friends[0]["formatted_balance"] == "-€12.00"
