from fastapi import APIRouter, Depends

from orderflow.api.deps import Analytics, CurrentUser, require_roles
from orderflow.models.user import UserRole
from orderflow.schemas.analytics import AnalyticsResponse


router = APIRouter(tags=["Analytics"])


@router.get(
    "",
    response_model=AnalyticsResponse,
    dependencies=[Depends(require_roles(UserRole.OPERATOR))],
    summary="Order rollups",
)
async def get_analytics(
    current_user: CurrentUser,
    analytics: Analytics,
):
    """Recomputed from a full order scan on every call."""
    return AnalyticsResponse(analytics=await analytics.get_summary(current_user))
