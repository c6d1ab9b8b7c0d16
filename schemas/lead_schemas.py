from datetime import datetime
from pydantic import BaseModel, EmailStr, Field
from typing import Optional

from models import UserRole


class LeadCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    company: Optional[str] = Field(default=None, max_length=255)
    revenue_range: Optional[str] = Field(default=None, max_length=50)
    employee_count: Optional[int] = Field(default=None, gt=0)
    location: Optional[str] = Field(default=None, max_length=255)
    shared_by_user_id: Optional[int] = Field(default=None, gt=0)


class SharedBy(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole


class LatestDemo(BaseModel):
    id: int
    title: str
    product_id: int
    product_name: Optional[str] = None
    product_logo: Optional[str] = None


class LeadRead(BaseModel):
    id: int
    name: str
    email: str
    company: Optional[str] = None
    revenue_range: Optional[str] = None
    employee_count: Optional[int] = None
    location: Optional[str] = None
    shared_by_user_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LeadDetail(LeadRead):
    """A lead as listed for staff, with its feedback roll-up."""
    shared_by: Optional[SharedBy] = None
    latest_demo: Optional[LatestDemo] = None
    demos_accessed: int = 0
    avg_rating: Optional[float] = None
