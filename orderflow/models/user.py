from datetime import datetime, timezone
from enum import Enum

from pydantic import Field

from orderflow.models.base import StoredRecord


USER_PREFIX = "user:"


class UserRole(str, Enum):
    """Roles are fixed when the profile is first recorded."""
    PURCHASER = "purchaser"
    FULFILLMENT = "fulfillment"
    OPERATOR = "operator"


def user_key(user_id: str) -> str:
    return f"{USER_PREFIX}{user_id}"


class UserProfile(StoredRecord):
    id: str
    email: str = ""
    name: str = ""
    role: UserRole
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def has_role(self, *roles: UserRole) -> bool:
        return self.role in roles
