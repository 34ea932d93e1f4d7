import httpx
import pytest
from factories import make_order

from orderflow.clients.order_client import DualModeOrderStore, RemoteOrderStore
from orderflow.api.deps import get_kv_store
from orderflow.core.exceptions import ConflictError, ForbiddenError, InvalidStateError
from orderflow.core.security import create_access_token
from orderflow.main import app
from orderflow.models.order import OrderStatus


def token_for(actor):
    return create_access_token(actor.id, actor.role.value)


def unreachable(request):
    raise httpx.ConnectError("connection refused", request=request)


def respond_with(status_code, body):
    def handler(request):
        return httpx.Response(status_code, json=body)
    return handler


@pytest.fixture()
def remote(store):
    app.dependency_overrides[get_kv_store] = lambda: store
    yield RemoteOrderStore(
        token_provider=token_for,
        base_url="http://test/api/v1",
        transport=httpx.ASGITransport(app=app),
    )
    app.dependency_overrides.clear()


def offline_remote(handler=unreachable):
    return RemoteOrderStore(
        token_provider=token_for,
        base_url="http://remote/api/v1",
        transport=httpx.MockTransport(handler),
    )


class TestRemoteOrderStore:
    async def test_full_lifecycle(self, remote, purchaser, agent_a):
        order, otp = await remote.create_order(purchaser, make_order())
        assert order.total == 110.0
        assert order.otp_code == otp

        listed = await remote.list_all_orders(agent_a)
        assert [o.id for o in listed] == [order.id]
        assert listed[0].otp_code is None

        claimed = await remote.claim_order(agent_a, order.id)
        assert claimed.assigned_agent_id == agent_a.id

        delivered = await remote.complete_order(agent_a, order.id, otp)
        assert delivered.status == OrderStatus.DELIVERED

        mine = await remote.list_orders(purchaser)
        assert mine[0].status == OrderStatus.DELIVERED

    async def test_error_codes_become_exceptions(self, remote, purchaser, agent_a, agent_b, operator):
        order, _ = await remote.create_order(purchaser, make_order())
        await remote.claim_order(agent_a, order.id)

        with pytest.raises(ConflictError):
            await remote.claim_order(agent_b, order.id)
        with pytest.raises(InvalidStateError):
            await remote.cancel_order(operator, order.id, "too late")
        with pytest.raises(ForbiddenError):
            await remote.list_all_orders(purchaser)


class TestDualModeOrderStore:
    async def test_uses_remote_when_reachable(self, remote, store, purchaser):
        dual = DualModeOrderStore(remote)

        order, _ = await dual.create_order(purchaser, make_order())

        assert await store.get(order.id) is not None
        assert dual.using_fallback is False
        assert await dual.local.list_orders(purchaser) == []

    async def test_falls_back_when_unreachable(self, purchaser, agent_a):
        dual = DualModeOrderStore(offline_remote())

        order, otp = await dual.create_order(purchaser, make_order())
        assert dual.using_fallback is True

        # The local fallback enforces the same rules
        claimed = await dual.claim_order(agent_a, order.id)
        assert claimed.status == OrderStatus.ON_THE_WAY
        delivered = await dual.complete_order(agent_a, order.id, otp)
        assert delivered.status == OrderStatus.DELIVERED

    async def test_falls_back_when_remote_store_down(self, purchaser):
        handler = respond_with(503, {"error": "Storage backend unavailable", "code": "SERVICE_UNAVAILABLE"})
        dual = DualModeOrderStore(offline_remote(handler))

        order, _ = await dual.create_order(purchaser, make_order())

        assert dual.using_fallback is True
        assert [o.id for o in await dual.local.list_orders(purchaser)] == [order.id]

    async def test_domain_errors_are_not_retried_locally(self, purchaser):
        handler = respond_with(403, {"error": "Forbidden - purchaser access required", "code": "FORBIDDEN"})
        dual = DualModeOrderStore(offline_remote(handler))

        with pytest.raises(ForbiddenError, match="purchaser access required"):
            await dual.create_order(purchaser, make_order())
        assert dual.using_fallback is False
        assert await dual.local.list_orders(purchaser) == []

    async def test_recovers_when_remote_returns(self, remote, purchaser):
        dual = DualModeOrderStore(offline_remote())
        await dual.list_orders(purchaser)
        assert dual.using_fallback is True

        dual.remote = remote
        await dual.list_orders(purchaser)
        assert dual.using_fallback is False
