from datetime import datetime

from pydantic import Field

from orderflow.models.user import UserRole
from orderflow.schemas.base import BaseResponseSchema, BaseUpdateSchema


class ProfileUpdate(BaseUpdateSchema):
    """Only the display name can be changed. Role and email come from signup."""
    name: str = Field(..., min_length=1, max_length=200)


class ProfileOut(BaseResponseSchema):
    id: str
    email: str = ""
    name: str = ""
    role: UserRole
    created_at: datetime


class ProfileResponse(BaseResponseSchema):
    profile: ProfileOut
