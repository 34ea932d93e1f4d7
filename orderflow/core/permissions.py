from typing import Dict, List

from orderflow.core.exceptions import ForbiddenError
from orderflow.models.user import UserProfile, UserRole


# Which roles may perform which action. Services check these themselves so
# the local fallback store enforces the same rules as the server.
ROLE_PERMISSIONS: Dict[str, List[UserRole]] = {
    "orders:create": [UserRole.PURCHASER],
    "orders:view_own": [UserRole.PURCHASER],
    "orders:view_all": [UserRole.FULFILLMENT, UserRole.OPERATOR],
    "orders:claim": [UserRole.FULFILLMENT],
    "orders:deliver": [UserRole.FULFILLMENT],
    "orders:cancel": [UserRole.OPERATOR],
    "products:manage": [UserRole.OPERATOR],
    "feedback:create": [UserRole.PURCHASER],
    "bugs:view": [UserRole.OPERATOR],
    "analytics:view": [UserRole.OPERATOR],
}


def has_permission(user: UserProfile, permission: str) -> bool:
    """Unknown permission codes are denied."""
    return user.role in ROLE_PERMISSIONS.get(permission, [])


def require_permission(user: UserProfile, permission: str) -> None:
    """Raise ForbiddenError unless the user's role grants permission."""
    if not has_permission(user, permission):
        allowed = " or ".join(r.value for r in ROLE_PERMISSIONS.get(permission, []))
        raise ForbiddenError(f"Forbidden - {allowed or 'no'} access required")
