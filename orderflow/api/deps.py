from typing import Annotated, Optional
import logging

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from orderflow.core.exceptions import ForbiddenError, UnauthorizedError
from orderflow.core.security import verify_access_token
from orderflow.models.user import UserProfile, UserRole
from orderflow.services.analytics_service import AnalyticsService
from orderflow.services.feedback_service import FeedbackService
from orderflow.services.kv_store import KeyValueStore, get_store
from orderflow.services.order_service import OrderService
from orderflow.services.product_service import ProductService
from orderflow.services.user_service import UserService


logger = logging.getLogger(__name__)

# HTTP Bearer security scheme; a missing header is reported as our own 401
security = HTTPBearer(auto_error=False)


def get_kv_store() -> KeyValueStore:
    """Dependency returning the configured key-value store."""
    return get_store()


Store = Annotated[KeyValueStore, Depends(get_kv_store)]


async def get_current_user(
    store: Store,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> UserProfile:
    """
    Dependency to get the current authenticated user.

    Validates the bearer token and returns the stored profile, recording it
    from the token claims the first time the user is seen.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Unauthorized - missing bearer token")

    claims = verify_access_token(credentials.credentials)
    if claims is None:
        logger.warning("Token verification failed - invalid or expired token")
        raise UnauthorizedError("Unauthorized - invalid or expired token")

    try:
        role = UserRole(claims.get("role", ""))
    except ValueError:
        logger.warning(f"Token for {claims['sub']} carries unknown role {claims.get('role')!r}")
        raise UnauthorizedError("Unauthorized - token has no valid role")

    return await UserService(store).ensure_profile(
        user_id=claims["sub"],
        role=role,
        email=claims.get("email", ""),
        name=claims.get("name", ""),
    )


CurrentUser = Annotated[UserProfile, Depends(get_current_user)]


def require_roles(*roles: UserRole):
    """
    Dependency factory to require one of the given roles.

    Usage:
        @router.get("/all", dependencies=[Depends(require_roles(UserRole.OPERATOR))])
        async def operator_endpoint():
            ...
    """
    async def role_dependency(user: CurrentUser) -> UserProfile:
        if not user.has_role(*roles):
            allowed = " or ".join(r.value for r in roles)
            raise ForbiddenError(f"Forbidden - {allowed} access required")
        return user

    return role_dependency


def get_order_service(store: Store) -> OrderService:
    return OrderService(store)


def get_analytics_service(store: Store) -> AnalyticsService:
    return AnalyticsService(store)


def get_product_service(store: Store) -> ProductService:
    return ProductService(store)


def get_feedback_service(store: Store) -> FeedbackService:
    return FeedbackService(store)


def get_user_service(store: Store) -> UserService:
    return UserService(store)


# Type aliases for cleaner endpoint signatures
Orders = Annotated[OrderService, Depends(get_order_service)]
Analytics = Annotated[AnalyticsService, Depends(get_analytics_service)]
Products = Annotated[ProductService, Depends(get_product_service)]
Feedbacks = Annotated[FeedbackService, Depends(get_feedback_service)]
Users = Annotated[UserService, Depends(get_user_service)]
