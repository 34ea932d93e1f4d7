from fastapi import APIRouter, status

from orderflow.api.deps import CurrentUser, Feedbacks
from orderflow.schemas.feedback import (
    BugCreate,
    BugListResponse,
    BugOut,
    BugResponse,
    FeedbackCreate,
    FeedbackOut,
    FeedbackResponse,
)


router = APIRouter(tags=["Feedback"])


@router.post(
    "/feedback",
    response_model=FeedbackResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_feedback(
    data: FeedbackCreate,
    current_user: CurrentUser,
    feedback: Feedbacks,
):
    """Rate one of your own orders (1-5)."""
    record = await feedback.submit_feedback(current_user, data)
    return FeedbackResponse(feedback=FeedbackOut.model_validate(record.to_store()))


@router.post(
    "/bugs",
    response_model=BugResponse,
    status_code=status.HTTP_201_CREATED,
)
async def report_bug(
    data: BugCreate,
    current_user: CurrentUser,
    feedback: Feedbacks,
):
    bug = await feedback.report_bug(current_user, data)
    return BugResponse(bug=BugOut.model_validate(bug.to_store()))


@router.get("/bugs", response_model=BugListResponse)
async def list_bugs(
    current_user: CurrentUser,
    feedback: Feedbacks,
):
    bugs = await feedback.list_bugs(current_user)
    return BugListResponse(bugs=[BugOut.model_validate(b.to_store()) for b in bugs])
