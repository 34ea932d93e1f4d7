"""
Order API clients.

RemoteOrderStore speaks to a running orderflow service over HTTP.
DualModeOrderStore prefers the remote service and falls back to a local
OrderService over an in-memory store when the remote one cannot be reached.

Usage:
    store = DualModeOrderStore(RemoteOrderStore(token_provider=lookup_token))

    order, otp = await store.create_order(user, OrderCreate(...))
    await store.claim_order(agent, order.id)
"""

from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

import httpx

from orderflow.config import settings
from orderflow.core.exceptions import StoreUnavailableError, error_from_code
from orderflow.models.order import OrderStatus, order_key
from orderflow.models.user import UserProfile
from orderflow.schemas.order import OrderCreate, OrderOut
from orderflow.services.kv_store import InMemoryKeyValueStore
from orderflow.services.order_service import OrderService
from orderflow.services.order_store import OrderStore

logger = logging.getLogger(__name__)


class RemoteOrderStore(OrderStore):
    """
    OrderStore backed by the HTTP API.

    Error bodies ({"error", "code"}) are turned back into the same domain
    exceptions the server raised. Network failures propagate as
    httpx.TransportError.
    """

    def __init__(
        self,
        token_provider: Callable[[UserProfile], str],
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token_provider = token_provider
        self.base_url = (base_url or settings.REMOTE_API_URL).rstrip("/")
        self.timeout = timeout or settings.REMOTE_TIMEOUT_SECONDS
        self.transport = transport

    async def _request(
        self,
        actor: UserProfile,
        method: str,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Make an authenticated request as the given actor."""
        headers = {
            "Authorization": f"Bearer {self.token_provider(actor)}",
            "Content-Type": "application/json",
        }
        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.request(method, url, headers=headers, json=data)

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            logger.warning(f"Order API error {response.status_code} on {method} {endpoint}: {body.get('code')}")
            raise error_from_code(body.get("code"), body.get("error") or response.text or None)

        return response.json() if response.content else {}

    @staticmethod
    def _path(order_id: str) -> str:
        return f"/orders/{order_key(order_id)}"

    async def create_order(self, actor: UserProfile, data: OrderCreate) -> Tuple[OrderOut, str]:
        body = await self._request(
            actor, "POST", "/orders",
            data=data.model_dump(by_alias=True, exclude_none=True),
        )
        return OrderOut.model_validate(body["order"]), body["otp"]

    async def list_orders(self, actor: UserProfile) -> List[OrderOut]:
        body = await self._request(actor, "GET", "/orders")
        return [OrderOut.model_validate(o) for o in body["orders"]]

    async def list_all_orders(self, actor: UserProfile) -> List[OrderOut]:
        body = await self._request(actor, "GET", "/orders/all")
        return [OrderOut.model_validate(o) for o in body["orders"]]

    async def claim_order(self, actor: UserProfile, order_id: str) -> OrderOut:
        body = await self._request(
            actor, "PUT", self._path(order_id),
            data={"status": OrderStatus.ON_THE_WAY.value},
        )
        return OrderOut.model_validate(body["order"])

    async def complete_order(self, actor: UserProfile, order_id: str, otp: str) -> OrderOut:
        body = await self._request(
            actor, "POST", f"{self._path(order_id)}/verify-otp",
            data={"otp": otp},
        )
        return OrderOut.model_validate(body["order"])

    async def cancel_order(self, actor: UserProfile, order_id: str, reason: str) -> OrderOut:
        body = await self._request(
            actor, "PUT", self._path(order_id),
            data={"status": OrderStatus.CANCELLED.value, "cancellationReason": reason},
        )
        return OrderOut.model_validate(body["order"])


class DualModeOrderStore(OrderStore):
    """
    Try the remote store first; on a transport failure or an unavailable
    remote backend, serve the call from the local OrderService.

    Domain errors from the remote (Forbidden, Conflict, ...) are final and
    are not retried locally.
    """

    def __init__(self, remote: OrderStore, local: Optional[OrderStore] = None):
        self.remote = remote
        self.local = local or OrderService(InMemoryKeyValueStore())
        self.using_fallback = False

    async def _call(self, operation: str, *args):
        try:
            result = await getattr(self.remote, operation)(*args)
        except (httpx.TransportError, StoreUnavailableError) as e:
            logger.warning(f"Remote order store unavailable for {operation} ({e}), using local fallback")
            self.using_fallback = True
            return await getattr(self.local, operation)(*args)

        if self.using_fallback:
            logger.info("Remote order store reachable again")
            self.using_fallback = False
        return result

    async def create_order(self, actor: UserProfile, data: OrderCreate) -> Tuple[OrderOut, str]:
        return await self._call("create_order", actor, data)

    async def list_orders(self, actor: UserProfile) -> List[OrderOut]:
        return await self._call("list_orders", actor)

    async def list_all_orders(self, actor: UserProfile) -> List[OrderOut]:
        return await self._call("list_all_orders", actor)

    async def claim_order(self, actor: UserProfile, order_id: str) -> OrderOut:
        return await self._call("claim_order", actor, order_id)

    async def complete_order(self, actor: UserProfile, order_id: str, otp: str) -> OrderOut:
        return await self._call("complete_order", actor, order_id, otp)

    async def cancel_order(self, actor: UserProfile, order_id: str, reason: str) -> OrderOut:
        return await self._call("cancel_order", actor, order_id, reason)
