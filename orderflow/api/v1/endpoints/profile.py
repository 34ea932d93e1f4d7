from fastapi import APIRouter

from orderflow.api.deps import CurrentUser, Users
from orderflow.schemas.user import ProfileOut, ProfileResponse, ProfileUpdate


router = APIRouter(tags=["Profile"])


@router.get("", response_model=ProfileResponse)
async def get_profile(current_user: CurrentUser):
    return ProfileResponse(profile=ProfileOut.model_validate(current_user.to_store()))


@router.put("", response_model=ProfileResponse)
async def update_profile(
    data: ProfileUpdate,
    current_user: CurrentUser,
    users: Users,
):
    """Change the display name. The role cannot be changed here."""
    profile = await users.update_profile(current_user, data)
    return ProfileResponse(profile=ProfileOut.model_validate(profile.to_store()))
