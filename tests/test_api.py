"""
HTTP API tests using FastAPI's TestClient.
"""

import threading

import pytest
from fastapi.testclient import TestClient

from orderdesk.core.config import Settings
from orderdesk.core.exceptions import PersistenceError
from orderdesk.dependencies import build_services
from orderdesk.main import create_app

from tests.conftest import make_order_input


def place(client, **overrides) -> dict:
    response = client.post("/api/orders", json=make_order_input(**overrides))
    assert response.status_code == 201, response.text
    return response.json()["order"]


# ============================================================================
# Root & health
# ============================================================================


def test_root(client):
    body = client.get("/").json()

    assert body["version"] == "1.0.0"
    assert body["health"] == "/health"


def test_health(client):
    body = client.get("/health").json()

    assert body["status"] == "operational"
    assert body["storage"] == "healthy"
    assert body["pushService"] == "healthy"
    assert body["realtimeConnections"] == 0


# ============================================================================
# Orders
# ============================================================================


def test_place_order(client):
    response = client.post("/api/orders", json={
        "customer": {"name": "A", "phone": "1", "address": "X"},
        "items": [{"price": 100}, {"price": 50}],
    })

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["orderId"] == body["order"]["id"]
    order = body["order"]
    assert order["subtotal"] == 150
    assert order["deliveryFee"] == 15
    assert order["total"] == 165
    assert order["status"] == "received"
    assert order["paymentMethod"] == "COD"
    assert order["createdAt"]
    assert order["updatedAt"]


@pytest.mark.parametrize("body", [
    {"items": [{"price": 1}]},
    make_order_input(customer={"name": "A", "phone": "1"}),
    make_order_input(items=[]),
    [1, 2, 3],
])
def test_place_order_rejects_bad_input(client, body):
    response = client.post("/api/orders", json=body)

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["error"] == "Validation Error"
    assert client.get("/api/orders").json() == []


def test_place_order_rejects_malformed_json(client):
    response = client.post(
        "/api/orders",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400


def test_list_orders_in_placement_order(client):
    first = place(client)
    second = place(client, customer={"name": "B", "phone": "2", "address": "Y"})

    orders = client.get("/api/orders").json()

    assert [o["id"] for o in orders] == [first["id"], second["id"]]


def test_list_orders_by_status(client):
    first = place(client)
    place(client)
    client.put(f"/api/orders/{first['id']}/status", json={"status": "preparing"})

    orders = client.get("/api/orders", params={"status": "preparing"}).json()

    assert [o["id"] for o in orders] == [first["id"]]
    assert client.get("/api/orders", params={"status": "lost"}).status_code == 400


def test_get_order(client):
    order = place(client)

    assert client.get(f"/api/orders/{order['id']}").json() == order

    response = client.get("/api/orders/ORD-404")
    assert response.status_code == 404
    assert response.json()["error"] == "Not Found"


def test_update_status(client):
    order = place(client)

    response = client.put(f"/api/orders/{order['id']}/status", json={"status": "preparing"})

    assert response.status_code == 200
    assert response.json()["status"] == "preparing"
    assert response.json()["updatedAt"] >= order["updatedAt"]
    assert client.get(f"/api/orders/{order['id']}").json()["status"] == "preparing"


def test_update_status_errors(client):
    order = place(client)

    invalid = client.put(f"/api/orders/{order['id']}/status", json={"status": "shipped"})
    backwards = client.put(f"/api/orders/{order['id']}/status", json={"status": "delivered"})
    missing = client.put("/api/orders/ORD-404/status", json={"status": "preparing"})
    no_body = client.put(f"/api/orders/{order['id']}/status", json={})

    assert invalid.status_code == 400
    assert invalid.json()["error"] == "Invalid Status"
    assert backwards.status_code == 400
    assert backwards.json()["error"] == "Invalid Transition"
    assert missing.status_code == 404
    assert no_body.status_code == 400
    assert client.get(f"/api/orders/{order['id']}").json()["status"] == "received"


def test_stats(client):
    a = place(client)
    b = place(client)
    place(client)
    client.put(f"/api/orders/{a['id']}/status", json={"status": "preparing"})
    client.put(f"/api/orders/{a['id']}/status", json={"status": "delivered"})
    client.put(f"/api/orders/{b['id']}/status", json={"status": "preparing"})

    assert client.get("/api/stats").json() == {"totalOrders": 3, "activeOrders": 2}


# ============================================================================
# Staff login
# ============================================================================


def test_login(client):
    response = client.post("/api/staff/login", json={"staffId": "staff", "password": "password"})

    assert response.status_code == 200
    body = response.json()
    assert body["staff"] == {"id": "staff", "name": "Admin Staff", "role": "Manager"}
    assert body["pushPublicKey"] == "mock-vapid-public-key"


@pytest.mark.parametrize("credentials", [
    {"staffId": "staff", "password": "nope"},
    {"staffId": "ghost", "password": "password"},
])
def test_login_failure(client, credentials):
    response = client.post("/api/staff/login", json=credentials)

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid staff ID or password"


def test_login_requires_both_fields(client):
    assert client.post("/api/staff/login", json={"staffId": "staff"}).status_code == 400


# ============================================================================
# Push subscriptions
# ============================================================================


SUBSCRIPTION = {
    "endpoint": "https://push.example/abc",
    "keys": {"p256dh": "key", "auth": "secret"},
}


def test_subscribe_is_idempotent(client, services):
    first = client.post("/api/subscribe", json=SUBSCRIPTION)
    second = client.post("/api/subscribe", json=SUBSCRIPTION)

    assert first.status_code == 201
    assert first.json()["created"] is True
    assert second.status_code == 201
    assert second.json()["created"] is False
    assert len(client.portal.call(services.subscriptions.all)) == 1


def test_subscribe_requires_endpoint(client):
    assert client.post("/api/subscribe", json={"keys": {}}).status_code == 400
    assert client.post("/api/subscribe", json={"endpoint": ""}).status_code == 400


def test_unsubscribe(client):
    client.post("/api/subscribe", json=SUBSCRIPTION)

    removed = client.request("DELETE", "/api/subscribe", json={"endpoint": SUBSCRIPTION["endpoint"]})
    again = client.request("DELETE", "/api/subscribe", json={"endpoint": SUBSCRIPTION["endpoint"]})

    assert removed.json()["removed"] is True
    assert again.json()["removed"] is False


def test_public_key(client):
    assert client.get("/api/push/public-key").json() == {"publicKey": "mock-vapid-public-key"}


def test_new_order_pushes_to_subscribers(client, push_service, flush):
    client.post("/api/subscribe", json=SUBSCRIPTION)
    client.post("/api/subscribe", json={"endpoint": "https://push.example/other"})

    order = place(client)
    flush()

    assert sorted(endpoint for endpoint, _ in push_service.sent) == [
        "https://push.example/abc",
        "https://push.example/other",
    ]
    _, payload = push_service.sent[0]
    assert payload["title"] == f"New Order: {order['id']}"
    assert payload["body"] == "Customer: A, Items: 2 | Address: X, Phone: 1"


def test_order_succeeds_when_push_fails(client, push_service, flush):
    push_service.failure_rate = 1.0
    client.post("/api/subscribe", json=SUBSCRIPTION)

    response = client.post("/api/orders", json=make_order_input())
    flush()

    assert response.status_code == 201
    assert push_service.sent == []


def test_status_update_sends_no_push(client, push_service, flush):
    client.post("/api/subscribe", json=SUBSCRIPTION)
    order = place(client)
    flush()
    push_service.sent.clear()

    client.put(f"/api/orders/{order['id']}/status", json={"status": "preparing"})
    flush()

    assert push_service.sent == []


# ============================================================================
# Error handling
# ============================================================================


def test_storage_failure_is_a_500(services, monkeypatch):
    async def broken(collection):
        raise PersistenceError("disk on fire")

    monkeypatch.setattr(services.storage, "read", broken)
    app = create_app(services=services)

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/orders")

    assert response.status_code == 500
    assert response.json()["error"] == "Persistence Error"
    assert response.json()["detail"] == "An unexpected error occurred"


def test_unexpected_error_is_a_500(services, monkeypatch):
    async def broken():
        raise RuntimeError("boom")

    monkeypatch.setattr(services.manager, "stats", broken)
    app = create_app(services=services)

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/stats")

    assert response.status_code == 500
    assert response.json()["error"] == "Internal Server Error"
    assert "boom" not in response.text


# ============================================================================
# Regressions
# ============================================================================


@pytest.mark.parametrize("price", [b"1e309", b"-1e309"])
def test_non_finite_price_is_rejected(client, price):
    body = b'{"customer": {"name": "A", "phone": "1", "address": "X"}, "items": [{"price": ' + price + b"}]}"
    response = client.post("/api/orders", content=body, headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["error"] == "Validation Error"
    assert client.get("/api/orders").json() == []


def test_login_verifies_off_the_event_loop(client, services, monkeypatch):
    loop_thread = client.portal.call(threading.get_ident)
    seen = []
    authenticate = services.staff.authenticate

    def recording_authenticate(staff_id, password):
        seen.append(threading.get_ident())
        return authenticate(staff_id, password)

    monkeypatch.setattr(services.staff, "authenticate", recording_authenticate)

    response = client.post("/api/staff/login", json={"staffId": "staff", "password": "password"})

    assert response.status_code == 200
    assert len(seen) == 1
    assert seen[0] != loop_thread


def test_production_app_serves_the_vapid_key(fast_hasher):
    settings = Settings(
        _env_file=None,
        env_mode="production",
        vapid_public_key="real-public-key",
        vapid_private_key="real-private-key",
    )
    app = create_app(services=build_services(settings, password_hasher=fast_hasher))

    with TestClient(app) as client:
        assert client.get("/api/push/public-key").json() == {"publicKey": "real-public-key"}
        login = client.post("/api/staff/login", json={"staffId": "staff", "password": "password"})

    assert login.json()["pushPublicKey"] == "real-public-key"
