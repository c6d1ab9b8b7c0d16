from datetime import datetime
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional

from core.sanitize import is_valid_url, normalize_url
from models import DemoStatus
from schemas.product_schemas import ProductRead

MAX_HTML_LENGTH = 100_000


class Credentials(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


class DemoFields(BaseModel):
    """Field rules shared by create and update."""
    subtitle: Optional[str] = Field(default=None, max_length=500)
    url: Optional[str] = None
    html_content: Optional[str] = Field(default=None, max_length=MAX_HTML_LENGTH)
    video_preview: Optional[str] = None
    instructions: Optional[str] = None
    instructions_es: Optional[str] = Field(default=None, max_length=2000)
    instructions_en: Optional[str] = Field(default=None, max_length=2000)
    credentials: Optional[Credentials] = None

    @field_validator("url", mode="before")
    @classmethod
    def normalize_demo_url(cls, value):
        if value is None or not isinstance(value, str):
            return value
        return normalize_url(value)

    @field_validator("url")
    @classmethod
    def check_demo_url(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_valid_url(value):
            raise ValueError("Must be a valid http(s) URL")
        return value


class DemoCreate(DemoFields):
    product_id: int = Field(..., gt=0)
    title: str = Field(..., min_length=1, max_length=255)
    has_responsive: bool = False
    requires_credentials: bool = False
    status: DemoStatus = DemoStatus.inactive

    @model_validator(mode="after")
    def require_url_or_html(self):
        if not _has_text(self.url) and not _has_text(self.html_content):
            raise ValueError("Either url or html_content must be provided")
        return self


class DemoUpdate(DemoFields):
    product_id: Optional[int] = Field(default=None, gt=0)
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    has_responsive: Optional[bool] = None
    requires_credentials: Optional[bool] = None
    status: Optional[DemoStatus] = None

    @model_validator(mode="after")
    def keep_some_content(self):
        # Only enforced when the client touches both fields in one request.
        sent = self.model_fields_set
        if "url" in sent and "html_content" in sent:
            if not _has_text(self.url) and not _has_text(self.html_content):
                raise ValueError("When updating url and html_content, at least one must have content")
        return self


class DemoRead(BaseModel):
    id: int
    product_id: int
    title: str
    subtitle: Optional[str] = None
    url: Optional[str] = None
    html_content: Optional[str] = None
    video_preview: Optional[str] = None
    instructions: Optional[str] = None
    instructions_es: Optional[str] = None
    instructions_en: Optional[str] = None
    has_responsive: bool = False
    requires_credentials: bool = False
    status: DemoStatus
    created_at: datetime
    updated_at: datetime
    product: Optional[ProductRead] = None
    credentials: Optional[Credentials] = None

    class Config:
        from_attributes = True
