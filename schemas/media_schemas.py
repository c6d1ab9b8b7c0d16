from datetime import datetime
from pydantic import BaseModel, Field, model_validator
from typing import Optional

from models import MediaType


class MediaCreate(BaseModel):
    type: MediaType
    # Externally hosted media only; uploads take their url from the stored file.
    url: Optional[str] = Field(default=None, min_length=1)
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    # Key returned by POST /api/upload.
    storage_key: Optional[str] = Field(default=None, min_length=1, max_length=512)

    @model_validator(mode="after")
    def check_source(self) -> "MediaCreate":
        if not self.url and not self.storage_key:
            raise ValueError("url or storage_key is required")
        return self

class MediaUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None

class MediaRead(BaseModel):
    id: int
    demo_id: int
    type: MediaType
    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    uploaded_by_user_id: Optional[int] = None
    file_size: Optional[int] = None
    storage_key: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
