from fastapi import APIRouter

from orderflow.api.v1.endpoints import (
    # Orders & hand-off
    orders,
    analytics,
    # Catalogue
    products,
    # Users
    profile,
    feedback,
)
from orderflow.config import settings


# Create main API router
api_router = APIRouter(prefix=settings.API_PREFIX)

# ==================== Orders ====================
api_router.include_router(
    orders.router,
    prefix="/orders",
    tags=["Orders"]
)

api_router.include_router(
    analytics.router,
    prefix="/analytics",
    tags=["Analytics"]
)

# ==================== Catalogue ====================
api_router.include_router(
    products.router,
    prefix="/products",
    tags=["Products"]
)

# ==================== Users ====================
api_router.include_router(
    profile.router,
    prefix="/profile",
    tags=["Profile"]
)

# Feedback and bug reports share a router; paths carry their own prefix
api_router.include_router(feedback.router)
