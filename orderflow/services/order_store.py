"""
OrderStore capability interface.

Implemented by the server-side OrderService (over any key-value backend)
and by the remote HTTP client. The dual-mode client picks one of them per
call depending on whether the remote service is reachable, so business
rules live in exactly one implementation.
"""

from abc import ABC, abstractmethod
from typing import List, Tuple

from orderflow.core.exceptions import InvalidStateError, ValidationFailedError
from orderflow.models.order import OrderStatus
from orderflow.models.user import UserProfile
from orderflow.schemas.order import OrderCreate, OrderOut, OrderStatusUpdate


class OrderStore(ABC):
    """Create / list / claim / complete / cancel orders on behalf of an actor."""

    @abstractmethod
    async def create_order(self, actor: UserProfile, data: OrderCreate) -> Tuple[OrderOut, str]:
        """Place an order. Returns the order view and the hand-off OTP."""
        pass

    @abstractmethod
    async def list_orders(self, actor: UserProfile) -> List[OrderOut]:
        """Orders placed by the actor."""
        pass

    @abstractmethod
    async def list_all_orders(self, actor: UserProfile) -> List[OrderOut]:
        """Every order; fulfillment and operator roles only."""
        pass

    @abstractmethod
    async def claim_order(self, actor: UserProfile, order_id: str) -> OrderOut:
        pass

    @abstractmethod
    async def complete_order(self, actor: UserProfile, order_id: str, otp: str) -> OrderOut:
        pass

    @abstractmethod
    async def cancel_order(self, actor: UserProfile, order_id: str, reason: str) -> OrderOut:
        pass

    async def update_order_status(
        self,
        actor: UserProfile,
        order_id: str,
        data: OrderStatusUpdate,
    ) -> OrderOut:
        """
        Apply a generic status update by dispatching to the matching transition.

        Delivery can only happen through OTP verification.
        """
        try:
            target = OrderStatus(data.status)
        except ValueError:
            raise ValidationFailedError(f"Unknown order status '{data.status}'")

        if target == OrderStatus.ON_THE_WAY:
            return await self.claim_order(actor, order_id)
        if target == OrderStatus.CANCELLED:
            return await self.cancel_order(actor, order_id, data.cancellation_reason or "")
        if target == OrderStatus.DELIVERED:
            raise InvalidStateError("Orders are marked delivered only through OTP verification")
        raise ValidationFailedError(f"Orders cannot be moved back to '{target.value}'")
