# tests/test_orders.py


def test_public_lookup(client, place_order):
    placed = place_order()
    r = client.get(f"/api/orders/{placed['orderNumber']}")
    assert r.status_code == 200, r.text
    order = r.json()
    assert order["status"] == "PENDING"
    assert order["orderType"] == "STANDARD"
    assert order["totalPrice"] == 11.0
    assert order["contact"]["email"] == "buyer@example.com"
    assert order["event"] is None
    assert [it["productId"] for it in order["items"]] == [1, 2]


def test_unknown_order_is_404(client):
    assert client.get("/api/orders/nope").status_code == 404
    assert client.patch("/api/orders/nope/cancel").status_code == 404


def test_cancel_order(client, place_order):
    number = place_order()["orderNumber"]
    r = client.patch(f"/api/orders/{number}/cancel", json={"actor": "buyer@example.com"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["message"] == "Order canceled successfully"
    assert body["order"]["status"] == "CANCELED"
    assert {it["status"] for it in body["order"]["items"]} == {"CANCELED"}

    r = client.patch(f"/api/orders/{number}/cancel")
    assert r.status_code == 400


def test_cancel_with_stale_version(client, place_order):
    number = place_order()["orderNumber"]
    r = client.patch(f"/api/orders/{number}/cancel", json={"expectedVersion": 5})
    assert r.status_code == 409


def test_transition_flow(client, place_order):
    number = place_order()["orderNumber"]
    r = client.post(f"/api/orders/{number}/transition", json={"status": "ONWAY", "expectedVersion": 0})
    assert r.status_code == 200, r.text
    assert r.json()["order"]["status"] == "ONWAY"
    assert r.json()["order"]["version"] == 1

    r = client.post(f"/api/orders/{number}/transition", json={"status": "PENDING"})
    assert r.status_code == 400

    r = client.post(f"/api/orders/{number}/transition", json={"status": "COMPLETED"})
    assert r.json()["order"]["status"] == "COMPLETED"

    r = client.post(f"/api/orders/{number}/transition", json={"status": "CANCELED"})
    assert r.status_code == 400


def test_transition_to_canceled_cancels_items(client, place_order):
    number = place_order()["orderNumber"]
    r = client.post(f"/api/orders/{number}/transition", json={"status": "canceled"})
    assert r.status_code == 200, r.text
    assert r.json()["order"]["items"][0]["status"] == "CANCELED"


def test_cancel_single_item(client, place_order):
    number = place_order()["orderNumber"]
    r = client.patch(f"/api/orders/{number}/items/1/cancel", json={"expectedVersion": 0})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["message"] == "Product from order canceled successfully"
    assert body["newTotalPrice"] == 6.0
    assert body["order"]["status"] == "PENDING"

    order = client.get(f"/api/orders/{number}").json()
    assert order["totalPrice"] == 6.0
    assert [it["status"] for it in order["items"]] == ["CANCELED", "ACTIVE"]
    assert order["version"] == 1


def test_cancel_single_item_errors(client, place_order):
    number = place_order()["orderNumber"]
    assert client.patch(f"/api/orders/{number}/items/99/cancel").status_code == 404
    assert client.patch(f"/api/orders/{number}/items/1/cancel", json={"expectedVersion": 3}).status_code == 409
    assert client.patch(f"/api/orders/{number}/items/1/cancel").status_code == 200
    assert client.patch(f"/api/orders/{number}/items/1/cancel").status_code == 400
    assert client.patch(f"/api/orders/nope/items/1/cancel").status_code == 404
