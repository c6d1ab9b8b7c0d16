from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    logo: Optional[str] = None
    corporate_color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)

class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    logo: Optional[str] = None
    corporate_color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)

class ProductRead(BaseModel):
    id: int
    name: str
    logo: Optional[str] = None
    corporate_color: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
