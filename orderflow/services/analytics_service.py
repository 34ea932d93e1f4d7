"""
Analytics over the persisted orders.

Recomputed from a full scan on every request. Operator-only and low
frequency; an indexed store could instead maintain these counters on each
transition as long as they stay eventually consistent with the orders.
"""

import logging
from decimal import Decimal
from typing import Dict

from orderflow.core.permissions import require_permission
from orderflow.models.order import ORDER_PREFIX, Order, OrderStatus
from orderflow.models.user import USER_PREFIX, UserProfile, UserRole
from orderflow.schemas.analytics import AnalyticsSummary
from orderflow.services.kv_store import KeyValueStore
from orderflow.services.order_service import to_money

logger = logging.getLogger(__name__)


class AnalyticsService:
    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get_summary(self, actor: UserProfile) -> AnalyticsSummary:
        require_permission(actor, "analytics:view")

        orders = [Order.from_store(d) for d in await self.store.scan_by_prefix(ORDER_PREFIX)]
        users = await self.store.scan_by_prefix(USER_PREFIX)

        by_status: Dict[str, int] = {status.value: 0 for status in OrderStatus}
        revenue = Decimal("0.00")
        for order in orders:
            by_status[order.status.value] += 1
            revenue += to_money(order.total)

        total_orders = len(orders)
        average = (revenue / total_orders) if total_orders else Decimal("0")

        return AnalyticsSummary(
            total_orders=total_orders,
            total_revenue=float(revenue),
            average_order_value=float(to_money(average)),
            orders_by_status=by_status,
            pending_orders=by_status[OrderStatus.PENDING.value],
            on_the_way_orders=by_status[OrderStatus.ON_THE_WAY.value],
            delivered_orders=by_status[OrderStatus.DELIVERED.value],
            cancelled_orders=by_status[OrderStatus.CANCELLED.value],
            total_customers=sum(1 for u in users if u.get("role") == UserRole.PURCHASER.value),
        )
