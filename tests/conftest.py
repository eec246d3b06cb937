"""
Shared test fixtures.
"""

from typing import Any

import pytest
from argon2 import PasswordHasher
from fastapi.testclient import TestClient

from orderdesk.core.config import Settings
from orderdesk.dependencies import build_services
from orderdesk.main import create_app
from orderdesk.realtime import BaseRealtimeChannel
from orderdesk.services import (
    NotificationDispatcher,
    NotificationFanout,
    OrderLifecycleManager,
    OrderStore,
    SubscriptionRegistry,
)
from orderdesk.services.push import MockPushService
from orderdesk.storage import MemoryStorage


class RecordingChannel(BaseRealtimeChannel):
    """Real-time channel that remembers what was broadcast."""

    def __init__(self):
        self.events: list[tuple[str, Any]] = []

    @property
    def connection_count(self) -> int:
        return 0

    async def broadcast(self, event: str, data: Any) -> int:
        self.events.append((event, data))
        return 1


def make_order_input(**overrides) -> dict[str, Any]:
    data = {
        "customer": {"name": "A", "phone": "1", "address": "X"},
        "items": [{"name": "Burger", "price": 100}, {"name": "Fries", "price": 50}],
    }
    data.update(overrides)
    return data


# ============================================================================
# Settings & building blocks
# ============================================================================


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        env_mode="development",
        storage_backend="memory",
        data_directory=str(tmp_path / "data"),
        delivery_fee=15.0,
        staff_id="staff",
        staff_password="password",
        notification_workers=2,
        notification_timeout=2.0,
    )


@pytest.fixture
def fast_hasher() -> PasswordHasher:
    """Argon2 with minimal cost so tests stay quick."""
    return PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def push_service() -> MockPushService:
    return MockPushService()


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def store(storage) -> OrderStore:
    return OrderStore(storage)


@pytest.fixture
def registry(storage) -> SubscriptionRegistry:
    return SubscriptionRegistry(storage)


@pytest.fixture
def fanout(channel, registry, push_service) -> NotificationFanout:
    return NotificationFanout(
        channel=channel,
        registry=registry,
        push_service=push_service,
        realtime_dispatcher=NotificationDispatcher(name="realtime", workers=1, job_timeout=2.0),
        push_dispatcher=NotificationDispatcher(name="push", workers=2, job_timeout=2.0),
        click_url="http://staff.example",
    )


@pytest.fixture
def manager(store, fanout) -> OrderLifecycleManager:
    return OrderLifecycleManager(store=store, fanout=fanout, delivery_fee=15.0)


# ============================================================================
# Application
# ============================================================================


@pytest.fixture
def services(settings, push_service, fast_hasher):
    return build_services(settings, push_service=push_service, password_hasher=fast_hasher)


@pytest.fixture
def app(services):
    return create_app(services=services)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def flush(client, services):
    """Block until every queued notification has been delivered."""
    def _flush():
        client.portal.call(services.fanout.flush)
    return _flush
