from typing import List, Optional, Tuple
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
import logging

from orderflow.core.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationFailedError,
)
from orderflow.core.permissions import require_permission
from orderflow.models.order import (
    ORDER_PREFIX,
    DeliveryLocation,
    LineItem,
    Order,
    OrderStatus,
    new_order_id,
    order_key,
)
from orderflow.models.user import UserProfile, UserRole
from orderflow.schemas.order import OrderCreate, OrderOut
from orderflow.services.eta_service import ETACalculator
from orderflow.services.kv_store import KeyValueStore
from orderflow.services.order_state_machine import get_transition_action, validate_transition
from orderflow.services.order_store import OrderStore
from orderflow.services.otp_service import OTPService

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def order_view(order: Order, viewer: UserProfile) -> OrderOut:
    """The OTP is shown only to the purchaser who placed the order."""
    if viewer.role == UserRole.PURCHASER and viewer.id == order.purchaser_id:
        return OrderOut.model_validate(order.to_store())
    return OrderOut.model_validate(order.without_otp())


class OrderService(OrderStore):
    """Service for placing orders and driving them through their lifecycle."""

    def __init__(
        self,
        store: KeyValueStore,
        otp_service: Optional[OTPService] = None,
        eta_calculator: Optional[ETACalculator] = None,
    ):
        self.store = store
        self.otp_service = otp_service or OTPService(store)
        self.eta_calculator = eta_calculator or ETACalculator()

    # ==================== LOOKUPS ====================

    async def get_order(self, order_id: str) -> Order:
        data = await self.store.get(order_key(order_id))
        if data is None:
            raise NotFoundError("Order not found")
        return Order.from_store(data)

    async def get_all_orders(self) -> List[Order]:
        """Full prefix scan, newest first. O(n) in the number of orders."""
        orders = [Order.from_store(d) for d in await self.store.scan_by_prefix(ORDER_PREFIX)]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders

    async def list_orders(self, actor: UserProfile) -> List[OrderOut]:
        require_permission(actor, "orders:view_own")
        orders = await self.get_all_orders()
        return [order_view(o, actor) for o in orders if o.purchaser_id == actor.id]

    async def list_all_orders(self, actor: UserProfile) -> List[OrderOut]:
        require_permission(actor, "orders:view_all")
        return [order_view(o, actor) for o in await self.get_all_orders()]

    # ==================== CREATION ====================

    def _build_line_items(self, data: OrderCreate) -> Tuple[List[LineItem], Decimal]:
        if not data.line_items:
            raise ValidationFailedError("Order must contain at least one line item")

        line_items = []
        total = Decimal("0.00")
        for position, item in enumerate(data.line_items, start=1):
            if not item.product_id:
                raise ValidationFailedError(f"Line item {position} has no product id")
            if item.quantity <= 0:
                raise ValidationFailedError(f"Line item {position} quantity must be greater than 0")
            if item.unit_price < 0:
                raise ValidationFailedError(f"Line item {position} price cannot be negative")

            unit_price = to_money(item.unit_price)
            total += unit_price * item.quantity
            line_items.append(LineItem(
                product_id=item.product_id,
                name=item.name,
                unit_price_snapshot=float(unit_price),
                quantity=item.quantity,
            ))
        return line_items, total.quantize(CENT)

    @staticmethod
    def _validate_location(data: OrderCreate) -> DeliveryLocation:
        location = data.delivery_location
        if not -90 <= location.latitude <= 90:
            raise ValidationFailedError("Delivery latitude must be between -90 and 90")
        if not -180 <= location.longitude <= 180:
            raise ValidationFailedError("Delivery longitude must be between -180 and 180")
        return DeliveryLocation(
            latitude=location.latitude,
            longitude=location.longitude,
            free_text_address=location.free_text_address,
        )

    async def create_order(self, actor: UserProfile, data: OrderCreate) -> Tuple[OrderOut, str]:
        """
        Create a pending order.

        The total is recomputed from the snapshot prices. A client-supplied
        total that disagrees is rejected rather than silently corrected.
        """
        require_permission(actor, "orders:create")

        line_items, total = self._build_line_items(data)
        if data.total is not None and to_money(data.total) != total:
            raise ValidationFailedError(
                f"Order total mismatch: items sum to {total}, client sent {to_money(data.total)}"
            )
        location = self._validate_location(data)

        otp_code = self.otp_service.issue()
        order = Order(
            id=new_order_id(),
            purchaser_id=actor.id,
            line_items=line_items,
            total=float(total),
            status=OrderStatus.PENDING,
            delivery_location=location,
            delivery_eta_minutes=self.eta_calculator.estimate_minutes(
                location.latitude, location.longitude
            ),
            otp_code=otp_code,
        )
        await self.store.set(order.id, order.to_store())

        logger.info(
            f"Order {order.id} created by {actor.id}: "
            f"{len(line_items)} items, total={total}, eta={order.delivery_eta_minutes}min"
        )
        return order_view(order, actor), otp_code

    # ==================== TRANSITIONS ====================

    async def _transition(self, order: Order, target: OrderStatus, **changes) -> Optional[Order]:
        """
        Conditionally write the next state.

        The write only lands if the stored status is still the one we read,
        so there is no gap between the check and the write.
        """
        validate_transition(order.status, target)
        updated = order.model_copy(update={"status": target, **changes})
        won = await self.store.compare_and_set(
            order.id,
            {"status": order.status.value},
            updated.to_store(),
        )
        if not won:
            return None
        logger.info(f"Order {order.id}: {get_transition_action(order.status, target)} ({order.status.value} -> {target.value})")
        return updated

    async def claim_order(self, actor: UserProfile, order_id: str) -> OrderOut:
        """
        Assign a pending order to the calling agent.

        Exactly one of several racing agents wins; the others get a
        ConflictError. Claiming a delivered or cancelled order is an
        InvalidStateError.
        """
        require_permission(actor, "orders:claim")

        order = await self.get_order(order_id)
        if order.status == OrderStatus.ON_THE_WAY:
            raise ConflictError(f"Order already claimed by agent {order.assigned_agent_id}")

        claimed = await self._transition(order, OrderStatus.ON_THE_WAY, assigned_agent_id=actor.id)
        if claimed is None:
            current = await self.get_order(order_id)
            if current.status == OrderStatus.ON_THE_WAY:
                logger.info(f"Claim conflict on {order.id}: agent {actor.id} lost to {current.assigned_agent_id}")
                raise ConflictError(f"Order already claimed by agent {current.assigned_agent_id}")
            validate_transition(current.status, OrderStatus.ON_THE_WAY)
            raise ConflictError()

        return order_view(claimed, actor)

    async def complete_order(self, actor: UserProfile, order_id: str, otp: str) -> OrderOut:
        """Confirm hand-off with the purchaser's OTP."""
        require_permission(actor, "orders:deliver")
        delivered = await self.otp_service.verify(order_id, otp)
        return order_view(delivered, actor)

    async def cancel_order(self, actor: UserProfile, order_id: str, reason: str) -> OrderOut:
        """Cancel a pending order with a recorded reason."""
        require_permission(actor, "orders:cancel")

        reason = (reason or "").strip()
        if not reason:
            raise ValidationFailedError("A cancellation reason is required")

        order = await self.get_order(order_id)
        cancelled = await self._transition(
            order,
            OrderStatus.CANCELLED,
            cancellation_reason=reason,
            cancelled_at=datetime.now(timezone.utc),
        )
        if cancelled is None:
            # Status moved under us (claimed meanwhile); report against the new state
            current = await self.get_order(order_id)
            validate_transition(current.status, OrderStatus.CANCELLED)
            raise ConflictError("Order changed while cancelling, retry")

        return order_view(cancelled, actor)
