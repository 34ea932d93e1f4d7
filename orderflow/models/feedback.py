import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import Field

from orderflow.models.base import StoredRecord


FEEDBACK_PREFIX = "feedback:"
BUG_PREFIX = "bug:"


def new_feedback_id() -> str:
    return f"{FEEDBACK_PREFIX}{uuid.uuid4().hex}"


def new_bug_id() -> str:
    return f"{BUG_PREFIX}{uuid.uuid4().hex}"


class BugPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BugStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


class Feedback(StoredRecord):
    """Purchaser rating of one of their orders."""
    id: str
    order_id: str
    user_id: str
    rating: int
    comment: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class BugReport(StoredRecord):
    id: str
    user_id: str
    title: str
    description: str = ""
    priority: BugPriority = BugPriority.MEDIUM
    status: BugStatus = BugStatus.OPEN
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
