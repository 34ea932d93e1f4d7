import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import Field

from orderflow.models.base import StoredRecord


ORDER_PREFIX = "order:"


class OrderStatus(str, Enum):
    """Order status enumeration."""
    PENDING = "pending"          # Placed, waiting for an agent
    ON_THE_WAY = "on_the_way"    # Claimed by an agent, out for delivery
    DELIVERED = "delivered"      # Hand-off confirmed with the OTP
    CANCELLED = "cancelled"      # Aborted by an operator


def new_order_id() -> str:
    return f"{ORDER_PREFIX}{uuid.uuid4().hex}"


def order_key(order_id: str) -> str:
    """Accept either the full key ("order:abc") or the bare suffix ("abc")."""
    if order_id.startswith(ORDER_PREFIX):
        return order_id
    return f"{ORDER_PREFIX}{order_id}"


class LineItem(StoredRecord):
    """A product line with its price frozen at order time."""
    product_id: str
    name: Optional[str] = None
    unit_price_snapshot: float
    quantity: int


class DeliveryLocation(StoredRecord):
    latitude: float
    longitude: float
    free_text_address: str = ""


class Order(StoredRecord):
    """
    Order document stored at key == id.

    deliveryEtaMinutes and otpCode are fixed at creation. assignedAgentId is
    present only once the order is on_the_way or delivered.
    """
    id: str
    purchaser_id: str
    line_items: List[LineItem]
    total: float
    status: OrderStatus = OrderStatus.PENDING
    delivery_location: DeliveryLocation
    delivery_eta_minutes: int
    otp_code: str
    otp_attempts: int = 0
    assigned_agent_id: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    def without_otp(self) -> dict:
        """Stored document minus the OTP, for roles that must never see it."""
        data = self.to_store()
        data.pop("otpCode", None)
        data.pop("otpAttempts", None)
        return data
