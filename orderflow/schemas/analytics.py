from typing import Dict

from orderflow.schemas.base import BaseResponseSchema


class AnalyticsSummary(BaseResponseSchema):
    total_orders: int
    total_revenue: float
    average_order_value: float
    orders_by_status: Dict[str, int]
    pending_orders: int
    on_the_way_orders: int
    delivered_orders: int
    cancelled_orders: int
    total_customers: int


class AnalyticsResponse(BaseResponseSchema):
    analytics: AnalyticsSummary
