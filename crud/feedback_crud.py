from typing import Optional
from sqlmodel import Session
import logging

import models
from crud import lead_crud
from schemas import feedback_schemas

logger = logging.getLogger(__name__)


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None

def find_or_create_lead_for(
    db: Session, user: models.User, company: Optional[str] = None, budget_range: Optional[str] = None
) -> models.Lead:
    """The caller's lead, matched by email; created from their account when missing."""
    lead = lead_crud.get_lead_by_email(db, user.email)
    if lead is not None:
        return lead

    lead = models.Lead(
        name=user.name,
        email=user.email,
        company=_blank_to_none(company) or user.company,
        revenue_range=budget_range or None,
    )
    db.add(lead)
    db.commit()
    db.refresh(lead)
    logger.info(f"Auto-lead {lead.id} created for user {user.id} ({user.email})")
    return lead

def create_feedback(
    db: Session, feedback_in: feedback_schemas.FeedbackCreate, user: models.User
) -> models.Feedback:
    lead_id = feedback_in.lead_id
    if lead_id is None:
        lead_id = find_or_create_lead_for(db, user, feedback_in.company, feedback_in.budget_range).id

    db_feedback = models.Feedback(
        demo_id=feedback_in.demo_id,
        user_id=user.id,
        lead_id=lead_id,
        attended_by_user_id=feedback_in.attended_by_user_id,
        system_rating=feedback_in.system_rating,
        promoter_rating=feedback_in.promoter_rating,
        nps_score=feedback_in.nps_score,
        interest_level=feedback_in.interest_level or None,
        purchase_stage=feedback_in.purchase_stage or None,
        budget_range=feedback_in.budget_range or None,
        decision_timeframe=feedback_in.decision_timeframe or None,
        key_features=feedback_in.key_features or None,
        pain_points=_blank_to_none(feedback_in.pain_points),
        use_case=_blank_to_none(feedback_in.use_case),
        comments=_blank_to_none(feedback_in.comments),
    )
    db.add(db_feedback)
    db.commit()
    db.refresh(db_feedback)
    return db_feedback
