from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, Field

from orderflow.models.order import DeliveryLocation, LineItem, OrderStatus
from orderflow.schemas.base import BaseCreateSchema, BaseResponseSchema, BaseUpdateSchema


class OrderItemCreate(BaseCreateSchema):
    """A cart line. unit_price becomes the order's price snapshot."""
    product_id: str = Field(
        ...,
        validation_alias=AliasChoices("productId", "product_id", "id"),
    )
    name: Optional[str] = None
    unit_price: float = Field(
        ...,
        allow_inf_nan=False,
        validation_alias=AliasChoices("unitPriceSnapshot", "unitPrice", "unit_price", "price"),
    )
    quantity: int


class DeliveryLocationInput(BaseCreateSchema):
    latitude: float = Field(..., allow_inf_nan=False, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(..., allow_inf_nan=False, validation_alias=AliasChoices("longitude", "lng"))
    free_text_address: str = Field(
        "",
        validation_alias=AliasChoices("freeTextAddress", "free_text_address", "address"),
    )


class OrderCreate(BaseCreateSchema):
    line_items: List[OrderItemCreate] = Field(
        ...,
        validation_alias=AliasChoices("lineItems", "line_items", "items"),
    )
    delivery_location: DeliveryLocationInput = Field(
        ...,
        validation_alias=AliasChoices("deliveryLocation", "delivery_location"),
    )
    # Client's own sum; checked against the server-side total, never trusted
    total: Optional[float] = Field(None, allow_inf_nan=False)


class OrderStatusUpdate(BaseUpdateSchema):
    status: str
    cancellation_reason: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("cancellationReason", "cancellation_reason", "reason"),
    )


class OtpVerifyRequest(BaseCreateSchema):
    otp: str = Field(..., validation_alias=AliasChoices("otp", "otpCode", "otp_code"))


class OrderOut(BaseResponseSchema):
    """Order as shown to a caller. otp_code is present only for its purchaser."""
    id: str
    purchaser_id: str
    line_items: List[LineItem]
    total: float
    status: OrderStatus
    delivery_location: DeliveryLocation
    delivery_eta_minutes: int
    otp_code: Optional[str] = None
    assigned_agent_id: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class OrderCreateResponse(BaseResponseSchema):
    order: OrderOut
    otp: str


class OrderResponse(BaseResponseSchema):
    order: OrderOut
    message: Optional[str] = None


class OrderListResponse(BaseResponseSchema):
    orders: List[OrderOut]
