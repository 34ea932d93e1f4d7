from typing import List
import logging

from orderflow.core.exceptions import ForbiddenError, NotFoundError
from orderflow.core.permissions import require_permission
from orderflow.models.feedback import (
    BUG_PREFIX,
    BugReport,
    Feedback,
    new_bug_id,
    new_feedback_id,
)
from orderflow.models.order import Order, order_key
from orderflow.models.user import UserProfile
from orderflow.schemas.feedback import BugCreate, FeedbackCreate
from orderflow.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


class FeedbackService:
    """Order ratings from purchasers and bug reports from any user."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def submit_feedback(self, actor: UserProfile, data: FeedbackCreate) -> Feedback:
        """
        Record a rating for one of the actor's own orders.

        Raises:
            NotFoundError: order does not exist
            ForbiddenError: order belongs to another purchaser
        """
        require_permission(actor, "feedback:create")

        key = order_key(data.order_id)
        stored = await self.store.get(key)
        if stored is None:
            raise NotFoundError("Order not found")
        order = Order.from_store(stored)
        if order.purchaser_id != actor.id:
            raise ForbiddenError("Feedback can only be left on your own orders")

        feedback = Feedback(
            id=new_feedback_id(),
            order_id=order.id,
            user_id=actor.id,
            rating=data.rating,
            comment=data.comment,
        )
        await self.store.set(feedback.id, feedback.to_store())
        logger.info(f"Feedback {feedback.id} on {order.id}: rating={feedback.rating}")
        return feedback

    async def report_bug(self, actor: UserProfile, data: BugCreate) -> BugReport:
        bug = BugReport(
            id=new_bug_id(),
            user_id=actor.id,
            title=data.title,
            description=data.description,
            priority=data.priority,
        )
        await self.store.set(bug.id, bug.to_store())
        logger.info(f"Bug {bug.id} reported by {actor.id} ({bug.priority.value})")
        return bug

    async def list_bugs(self, actor: UserProfile) -> List[BugReport]:
        require_permission(actor, "bugs:view")
        bugs = [BugReport.from_store(d) for d in await self.store.scan_by_prefix(BUG_PREFIX)]
        bugs.sort(key=lambda b: b.created_at, reverse=True)
        return bugs
