from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

import models
from database import get_session
from core import dependencies
from crud import demo_crud, feedback_crud, lead_crud
from schemas import feedback_schemas

router = APIRouter(
    prefix="/api/feedback",
    tags=["Feedback"],
)


@router.post("", response_model=feedback_schemas.FeedbackRead, status_code=status.HTTP_201_CREATED)
async def create_feedback(
    feedback_in: feedback_schemas.FeedbackCreate,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.get_current_active_user),
):
    """
    Records a demo rating. Without a lead_id the caller's own lead (matched
    by email) is used, and created if it does not exist yet.
    """
    if demo_crud.get_demo(db, feedback_in.demo_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Demo not found")
    if feedback_in.lead_id is not None and lead_crud.get_lead(db, feedback_in.lead_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lead not found")
    return feedback_crud.create_feedback(db, feedback_in, current_user)
