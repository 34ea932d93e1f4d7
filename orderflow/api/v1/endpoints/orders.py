from fastapi import APIRouter, Depends, status

from orderflow.api.deps import CurrentUser, Orders, require_roles
from orderflow.models.user import UserRole
from orderflow.schemas.order import (
    OrderCreate,
    OrderCreateResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    OtpVerifyRequest,
)


router = APIRouter(tags=["Orders"])


@router.post(
    "",
    response_model=OrderCreateResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Place an order",
)
async def create_order(
    data: OrderCreate,
    current_user: CurrentUser,
    orders: Orders,
):
    """
    Place a pending order from a cart.

    The total is recomputed from the line items and the delivery ETA is
    fixed now. The hand-off OTP is returned to the purchaser only here and
    on their own order listings.
    """
    order, otp = await orders.create_order(current_user, data)
    return OrderCreateResponse(order=order, otp=otp)


@router.get(
    "",
    response_model=OrderListResponse,
    response_model_exclude_none=True,
    summary="List my orders",
)
async def list_my_orders(
    current_user: CurrentUser,
    orders: Orders,
):
    return OrderListResponse(orders=await orders.list_orders(current_user))


@router.get(
    "/all",
    response_model=OrderListResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_roles(UserRole.FULFILLMENT, UserRole.OPERATOR))],
    summary="List every order",
)
async def list_all_orders(
    current_user: CurrentUser,
    orders: Orders,
):
    """All orders, newest first. OTP codes are never included."""
    return OrderListResponse(orders=await orders.list_all_orders(current_user))


@router.put(
    "/{order_id}",
    response_model=OrderResponse,
    response_model_exclude_none=True,
    summary="Claim or cancel an order",
)
async def update_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    current_user: CurrentUser,
    orders: Orders,
):
    """
    Move an order to a new status.

    - `on_the_way`: a fulfillment agent claims a pending order
    - `cancelled`: an operator cancels a pending order with a reason

    Delivery is only possible through OTP verification.
    """
    order = await orders.update_order_status(current_user, order_id, data)
    return OrderResponse(order=order)


@router.post(
    "/{order_id}/verify-otp",
    response_model=OrderResponse,
    response_model_exclude_none=True,
    summary="Confirm delivery with the purchaser's OTP",
)
async def verify_otp(
    order_id: str,
    data: OtpVerifyRequest,
    current_user: CurrentUser,
    orders: Orders,
):
    order = await orders.complete_order(current_user, order_id, data.otp)
    return OrderResponse(order=order, message="Order delivered successfully")
