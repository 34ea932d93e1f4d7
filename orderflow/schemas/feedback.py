from datetime import datetime
from typing import List

from pydantic import AliasChoices, Field

from orderflow.models.feedback import BugPriority, BugStatus
from orderflow.schemas.base import BaseCreateSchema, BaseResponseSchema


class FeedbackCreate(BaseCreateSchema):
    order_id: str = Field(..., validation_alias=AliasChoices("orderId", "order_id"))
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field("", max_length=2000)


class FeedbackOut(BaseResponseSchema):
    id: str
    order_id: str
    user_id: str
    rating: int
    comment: str = ""
    created_at: datetime


class FeedbackResponse(BaseResponseSchema):
    feedback: FeedbackOut


class BugCreate(BaseCreateSchema):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=5000)
    priority: BugPriority = BugPriority.MEDIUM


class BugOut(BaseResponseSchema):
    id: str
    user_id: str
    title: str
    description: str = ""
    priority: BugPriority
    status: BugStatus
    created_at: datetime


class BugResponse(BaseResponseSchema):
    bug: BugOut


class BugListResponse(BaseResponseSchema):
    bugs: List[BugOut]
