from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional


class FeedbackCreate(BaseModel):
    demo_id: int
    system_rating: int = Field(..., ge=1, le=5)
    lead_id: Optional[int] = None
    attended_by_user_id: Optional[int] = None
    promoter_rating: Optional[int] = Field(default=None, ge=1, le=5)
    nps_score: Optional[int] = Field(default=None, ge=0, le=10)
    # Used only when a lead has to be created for the caller.
    company: Optional[str] = Field(default=None, max_length=255)
    interest_level: Optional[str] = Field(default=None, max_length=50)
    purchase_stage: Optional[str] = Field(default=None, max_length=50)
    budget_range: Optional[str] = Field(default=None, max_length=50)
    decision_timeframe: Optional[str] = Field(default=None, max_length=50)
    key_features: Optional[List[str]] = None
    pain_points: Optional[str] = None
    use_case: Optional[str] = None
    comments: Optional[str] = None


class FeedbackRead(BaseModel):
    id: int
    lead_id: Optional[int] = None
    user_id: Optional[int] = None
    demo_id: int
    attended_by_user_id: Optional[int] = None
    system_rating: Optional[int] = None
    promoter_rating: Optional[int] = None
    nps_score: Optional[int] = None
    interest_level: Optional[str] = None
    purchase_stage: Optional[str] = None
    budget_range: Optional[str] = None
    decision_timeframe: Optional[str] = None
    key_features: Optional[List[str]] = None
    pain_points: Optional[str] = None
    use_case: Optional[str] = None
    comments: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class LeadFeedbackRead(FeedbackRead):
    demo_title: Optional[str] = None
    product_name: Optional[str] = None
