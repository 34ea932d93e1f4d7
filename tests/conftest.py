import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["KV_BACKEND"] = "memory"

import pytest
from httpx import ASGITransport, AsyncClient

from factories import YieldingKeyValueStore

from orderflow.api.deps import get_kv_store
from orderflow.database import create_engine_for, create_session_factory, init_db
from orderflow.main import app
from orderflow.models.user import UserProfile, UserRole
from orderflow.services.eta_service import ETACalculator
from orderflow.services.kv_store import InMemoryKeyValueStore, SqlKeyValueStore
from orderflow.services.order_service import OrderService
from orderflow.services.otp_service import OTPService


@pytest.fixture()
def store():
    return InMemoryKeyValueStore()


@pytest.fixture()
def yielding_store():
    return YieldingKeyValueStore()


@pytest.fixture()
async def sql_store(tmp_path):
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'kv.db'}")
    await init_db(engine)
    yield SqlKeyValueStore(create_session_factory(engine))
    await engine.dispose()


@pytest.fixture()
def otp_service(store):
    return OTPService(store, otp_length=6, max_attempts=5)


@pytest.fixture()
def order_service(store, otp_service):
    return OrderService(store, otp_service=otp_service, eta_calculator=ETACalculator())


@pytest.fixture()
def purchaser():
    return UserProfile(id="purchaser-1", email="p1@example.com", name="Priya", role=UserRole.PURCHASER)


@pytest.fixture()
def other_purchaser():
    return UserProfile(id="purchaser-2", email="p2@example.com", name="Omar", role=UserRole.PURCHASER)


@pytest.fixture()
def agent_a():
    return UserProfile(id="agent-a", role=UserRole.FULFILLMENT)


@pytest.fixture()
def agent_b():
    return UserProfile(id="agent-b", role=UserRole.FULFILLMENT)


@pytest.fixture()
def operator():
    return UserProfile(id="operator-1", role=UserRole.OPERATOR)


@pytest.fixture()
async def client(store):
    app.dependency_overrides[get_kv_store] = lambda: store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
