from datetime import date


def test_activity_feed_records_ledger_changes(client, linked_friends, auth_headers, other_headers):
    test_user, other_user = linked_friends

    response = client.post("/expenses", headers=auth_headers, json={
        "description": "Pizza",
        "amount": 2400,
        "currency": "USD",
        "date": str(date.today()),
        "payer_id": test_user.id,
        "split_type": "EQUAL",
        "splits": [{"user_id": test_user.id}, {"user_id": other_user.id}]
    })
    expense_id = response.json()["expense"]["id"]
    client.post("/settlements", headers=other_headers, json={
        "payee_id": test_user.id, "amount": 1200, "currency": "USD", "date": str(date.today())
    })
    client.delete(f"/expenses/{expense_id}", headers=auth_headers)

    feed = client.get("/activity", headers=auth_headers).json()
    types = [a["type"] for a in feed]
    assert types == ["expense_deleted", "settlement", "expense_added", "friend_linked", "friend_requested"]
    assert feed[2]["description"] == 'added "Pizza" ($24.00)'
    assert feed[1]["description"] == "settled up with Test User"

    # The other participant sees the same ledger changes
    other_types = [a["type"] for a in client.get("/activity", headers=other_headers).json()]
    assert other_types[:3] == ["expense_deleted", "settlement", "expense_added"]


def test_activity_limit(client, linked_friends, auth_headers):
    feed = client.get("/activity?limit=1", headers=auth_headers).json()
    assert len(feed) == 1
