"""End-to-end checks through the HTTP blueprints."""


def test_health(client):
    assert client.get("/").get_json()["ok"] is True


def test_register_and_login(client):
    resp = client.post("/auth/register", json={"email": "owner@example.com", "password": "secret123", "name": "Owner"})
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["status"] is True
    assert body["data"]["user"]["role"] == "admin"

    resp = client.post("/auth/register", json={"email": "owner@example.com", "password": "secret123", "name": "Again"})
    assert resp.status_code == 409
    assert resp.get_json()["status"] is False

    resp = client.post("/auth/login", json={"email": "owner@example.com", "password": "wrong-pass"})
    assert resp.status_code == 401

    resp = client.post("/auth/login", json={"email": "owner@example.com", "password": "secret123"})
    token = resp.get_json()["data"]["token"]
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.get_json()["data"]["email"] == "owner@example.com"


def test_cart_requires_token(client):
    assert client.get("/cart").status_code == 401


def test_product_writes_need_admin(client, alice_headers, admin_headers):
    payload = {"name": "Lamp", "price": "19.90", "category": "Home"}

    assert client.post("/products", json=payload, headers=alice_headers).status_code == 403

    resp = client.post("/products", json=payload, headers=admin_headers)
    assert resp.status_code == 201
    product_id = resp.get_json()["data"]["id"]

    resp = client.patch(f"/products/{product_id}", json={"price": "17.00"}, headers=admin_headers)
    assert resp.get_json()["data"]["price"] == 17.0
    assert client.get("/products", query_string={"category": "home"}).get_json()["data"][0]["name"] == "Lamp"


def test_checkout_flow(client, alice_headers, products, gateway, post_event):
    resp = client.post("/cart/items", json={"product_id": products["a"].id, "quantity": 2}, headers=alice_headers)
    assert resp.status_code == 201
    client.post("/cart/items", json={"product_id": products["b"].id}, headers=alice_headers)

    resp = client.post("/orders", json={"delivery_address": "1 Main Street"}, headers=alice_headers)
    assert resp.status_code == 201
    order = resp.get_json()["data"]
    assert order["total_amount"] == 25.0
    assert client.get("/cart", headers=alice_headers).get_json()["data"]["items"] == []

    resp = client.post(
        "/payments/stripe/make-payment",
        json={"order_id": order["id"], "amount": 25.00, "currency": "usd"},
        headers=alice_headers,
    )
    assert resp.status_code == 201
    payment = resp.get_json()["data"]
    assert payment["client_secret"]
    assert payment["transaction_id"] == gateway.created[0]["intent_id"]

    post_event("payment_intent.succeeded", payment["transaction_id"])

    got = client.get(f"/payments/{payment['payment_id']}", headers=alice_headers).get_json()["data"]
    assert got["status"] == "success"
    got = client.get(f"/orders/{order['id']}", headers=alice_headers).get_json()["data"]
    assert got["status"] == "confirmed"


def test_checkout_errors(client, alice_headers, products):
    resp = client.post("/orders", json={"delivery_address": "1 Main Street"}, headers=alice_headers)
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Cart is empty"

    resp = client.post("/payments/stripe/make-payment", json={"amount": 1}, headers=alice_headers)
    assert resp.status_code == 400

    resp = client.post("/payments/stripe/make-payment", json={"order_id": 999, "amount": 1}, headers=alice_headers)
    assert resp.status_code == 404


def test_amount_mismatch_over_http(client, alice, order, headers_for):
    resp = client.post(
        "/payments/stripe/make-payment",
        json={"order_id": order["id"], "amount": 24.50},
        headers=headers_for(alice),
    )
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Payment amount does not match order total"


def test_already_paid_over_http(client, alice, order, post_event, headers_for):
    headers = headers_for(alice)
    first = client.post("/payments", json={"order_id": order["id"]}, headers=headers).get_json()["data"]
    post_event("payment_intent.succeeded", first["transaction_id"])

    resp = client.post("/payments", json={"order_id": order["id"]}, headers=headers)
    assert resp.status_code == 409


def test_order_status_admin_only(client, alice, order, admin_headers, headers_for):
    resp = client.patch(f"/orders/{order['id']}/status", json={"status": "shipped"}, headers=headers_for(alice))
    assert resp.status_code == 403

    resp = client.patch(f"/orders/{order['id']}/status", json={"status": "shipped"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "shipped"


def test_stripe_callback_and_config(client):
    resp = client.get("/payments/stripe/callback", query_string={"payment_intent": "pi_1", "redirect_status": "succeeded"})
    assert resp.get_json()["data"] == {"status": "succeeded", "payment_intent": "pi_1"}

    assert client.get("/payments/stripe/callback").get_json()["data"]["status"] == "unknown"
    assert client.get("/payments/stripe/config").get_json()["data"]["publishable_key"] == "pk_test_dummy"
