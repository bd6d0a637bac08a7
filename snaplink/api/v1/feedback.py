from fastapi import APIRouter, Depends, status

from snaplink.dependencies import get_feedback_service, get_owner_id
from snaplink.schemas.link import FeedbackCreate, FeedbackResponse
from snaplink.services.feedback_service import FeedbackService

router = APIRouter(prefix="/feedback", tags=["feedback"])


@router.post("", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    payload: FeedbackCreate,
    owner_id: int = Depends(get_owner_id),
    service: FeedbackService = Depends(get_feedback_service),
):
    """One feedback entry per owner per week"""
    return await service.submit(owner_id, payload.message)
