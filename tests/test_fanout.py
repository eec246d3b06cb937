"""
Tests for NotificationFanout and the WebSocket ConnectionManager.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any

import pytest
import pytest_asyncio

from orderdesk.models import Customer, Order, OrderItem, OrderStatus, PushSubscription
from orderdesk.realtime import ConnectionManager
from orderdesk.services.fanout import build_push_payload
from orderdesk.services.push import PushResult


def make_order(order_id: str = "ORD-1") -> Order:
    now = datetime.now(timezone.utc)
    return Order(
        id=order_id,
        customer=Customer(name="A", phone="1", address="X"),
        items=[OrderItem(name="Burger", price=100), OrderItem(name="Fries", price=50)],
        payment_method="COD",
        subtotal=150,
        delivery_fee=15,
        total=165,
        status=OrderStatus.RECEIVED,
        created_at=now,
        updated_at=now,
    )


@pytest_asyncio.fixture
async def running(fanout):
    await fanout.realtime_dispatcher.start()
    await fanout.push_dispatcher.start()
    yield fanout
    await fanout.realtime_dispatcher.stop()
    await fanout.push_dispatcher.stop()


def test_push_payload_shape():
    payload = build_push_payload(make_order("ORD-42"), "http://staff.example")

    assert payload == {
        "title": "New Order: ORD-42",
        "body": "Customer: A, Items: 2 | Address: X, Phone: 1",
        "url": "http://staff.example",
    }


@pytest.mark.asyncio
async def test_new_order_reaches_channel_and_every_subscriber(running, channel, registry, push_service):
    for i in range(3):
        await registry.add(PushSubscription(endpoint=f"https://push.example/{i}"))

    running.broadcast_new_order(make_order())
    await running.flush()

    assert [event for event, _ in channel.events] == ["newOrder"]
    assert channel.events[0][1]["customer"]["name"] == "A"
    assert channel.events[0][1]["deliveryFee"] == 15
    assert sorted(endpoint for endpoint, _ in push_service.sent) == [
        "https://push.example/0",
        "https://push.example/1",
        "https://push.example/2",
    ]
    assert all(p["title"] == "New Order: ORD-1" for _, p in push_service.sent)


@pytest.mark.asyncio
async def test_new_order_without_subscribers(running, channel, push_service):
    running.broadcast_new_order(make_order())
    await running.flush()

    assert len(channel.events) == 1
    assert push_service.sent == []


@pytest.mark.asyncio
async def test_one_failing_subscriber_does_not_block_others(running, registry, push_service):
    await registry.add(PushSubscription(endpoint="https://push.example/bad"))
    await registry.add(PushSubscription(endpoint="https://push.example/good"))

    original = push_service.deliver

    def flaky(subscription, payload):
        if subscription.endpoint.endswith("bad"):
            raise ConnectionError("push service unreachable")
        return original(subscription, payload)

    push_service.deliver = flaky
    running.broadcast_new_order(make_order())
    await running.flush()

    assert [endpoint for endpoint, _ in push_service.sent] == ["https://push.example/good"]
    assert running.push_dispatcher.failed == 1


@pytest.mark.asyncio
async def test_expired_endpoint_is_pruned(running, registry, push_service):
    await registry.add(PushSubscription(endpoint="https://push.example/gone"))
    await registry.add(PushSubscription(endpoint="https://push.example/live"))
    push_service.expired_endpoints.add("https://push.example/gone")

    running.broadcast_new_order(make_order())
    await running.flush()

    assert [s.endpoint for s in await registry.all()] == ["https://push.example/live"]


@pytest.mark.asyncio
async def test_status_update_only_hits_channel(running, channel, registry, push_service):
    await registry.add(PushSubscription(endpoint="https://push.example/1"))

    running.broadcast_status_update(make_order())
    await running.flush()

    assert [event for event, _ in channel.events] == ["orderUpdated"]
    assert push_service.sent == []


@pytest.mark.asyncio
async def test_deliver_reports_failure_without_raising(fanout, registry, push_service):
    sub = PushSubscription(endpoint="https://push.example/1")
    await registry.add(sub)
    push_service.failure_rate = 1.0

    result = await fanout.deliver(sub, {"title": "t"})

    assert isinstance(result, PushResult)
    assert result.success is False
    assert len(await registry.all()) == 1


# ============================================================================
# ConnectionManager
# ============================================================================


class FakeSocket:
    def __init__(self, fail: bool = False, hang: bool = False):
        self.fail = fail
        self.hang = hang
        self.accepted = False
        self.messages: list[Any] = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.hang:
            await asyncio.sleep(10)
        if self.fail:
            raise RuntimeError("socket closed")
        self.messages.append(data)


@pytest.mark.asyncio
async def test_broadcast_isolates_broken_clients():
    manager = ConnectionManager(send_timeout=0.05)
    good, broken, stuck = FakeSocket(), FakeSocket(fail=True), FakeSocket(hang=True)
    for ws in (good, broken, stuck):
        await manager.connect(ws)

    delivered = await manager.broadcast("newOrder", {"id": "ORD-1"})

    assert delivered == 1
    assert good.messages == [{"event": "newOrder", "data": {"id": "ORD-1"}}]
    assert manager.connection_count == 1


@pytest.mark.asyncio
async def test_broadcast_with_no_clients():
    assert await ConnectionManager().broadcast("newOrder", {}) == 0


@pytest.mark.asyncio
async def test_disconnect_is_idempotent():
    manager = ConnectionManager()
    ws = FakeSocket()
    await manager.connect(ws)

    manager.disconnect(ws)
    manager.disconnect(ws)

    assert manager.connection_count == 0
    assert await manager.send(ws, "newOrder", {}) is False


@pytest.mark.asyncio
async def test_connect_sends_snapshot_before_concurrent_broadcasts():
    manager = ConnectionManager()
    ws = FakeSocket()
    broadcasts = []

    async def snapshot():
        broadcasts.append(asyncio.create_task(manager.broadcast("newOrder", {"id": "ORD-2"})))
        await asyncio.sleep(0.01)
        return "existingOrders", [{"id": "ORD-1"}]

    assert await manager.connect(ws, snapshot=snapshot) is True
    await asyncio.gather(*broadcasts)

    assert [m["event"] for m in ws.messages] == ["existingOrders", "newOrder"]


@pytest.mark.asyncio
async def test_connect_drops_client_when_snapshot_cannot_be_sent():
    manager = ConnectionManager()

    async def snapshot():
        return "existingOrders", []

    assert await manager.connect(FakeSocket(fail=True), snapshot=snapshot) is False
    assert manager.connection_count == 0


# ============================================================================
# Celery hand-off
# ============================================================================


class RecordingTask:
    def __init__(self):
        self.calls = []

    def delay(self, *args):
        self.calls.append(args)


@pytest.mark.asyncio
async def test_celery_mode_queues_one_task_per_subscription(monkeypatch, fanout, channel, registry, push_service):
    task = RecordingTask()
    monkeypatch.setattr("orderdesk.tasks.deliver_push_notification", task)
    fanout.use_celery = True
    await registry.add(PushSubscription(endpoint="https://push.example/1", keys={"p256dh": "k", "auth": "a"}))
    await registry.add(PushSubscription(endpoint="https://push.example/2", expiration_time=1700000000000))

    await fanout.realtime_dispatcher.start()
    await fanout.push_dispatcher.start()
    try:
        fanout.broadcast_new_order(make_order("ORD-7"))
        await fanout.flush()
    finally:
        await fanout.realtime_dispatcher.stop()
        await fanout.push_dispatcher.stop()

    payload = build_push_payload(make_order("ORD-7"), "http://staff.example")
    assert sorted(task.calls, key=lambda call: call[0]["endpoint"]) == [
        (
            {"endpoint": "https://push.example/1", "keys": {"p256dh": "k", "auth": "a"}, "expirationTime": None},
            payload,
        ),
        (
            {"endpoint": "https://push.example/2", "keys": None, "expirationTime": 1700000000000},
            payload,
        ),
    ]
    assert push_service.sent == []
    assert [event for event, _ in channel.events] == ["newOrder"]
