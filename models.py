from enum import Enum
from typing import List, Optional
from datetime import datetime, timezone
from sqlalchemy import BigInteger, DateTime, Text
from sqlalchemy.types import TypeDecorator
from sqlmodel import SQLModel, Field, JSON, Column


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC timestamps on every backend.

    Naive values are taken to be UTC on the way in. SQLite keeps no offset, so
    values read back without one get UTC attached.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


# --- Enums ---
# Member names equal their values, so SQLAlchemy stores the same string either way.

class UserRole(str, Enum):
    admin = "admin"
    sales = "sales"
    buyer = "buyer"

class DemoStatus(str, Enum):
    active = "active"
    inactive = "inactive"

class MediaType(str, Enum):
    image = "image"
    video = "video"


# --- Users ---
class User(SQLModel, table=True):
    __tablename__ = "users"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    email: str = Field(max_length=255, unique=True, index=True)
    hashed_password: str = Field(nullable=False)
    role: UserRole = Field(default=UserRole.sales, index=True)
    profile_picture: Optional[str] = Field(default=None, sa_column=Column(Text))
    company: Optional[str] = Field(default=None, max_length=255)
    # Who created this account (admin or sales).
    created_by_user_id: Optional[int] = Field(default=None, foreign_key="users.id", nullable=True)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


# --- Catalog ---
class Product(SQLModel, table=True):
    __tablename__ = "products"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    logo: Optional[str] = Field(default=None, sa_column=Column(Text))
    corporate_color: Optional[str] = Field(default=None, max_length=7)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


class Demo(SQLModel, table=True):
    __tablename__ = "demos"
    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    title: str = Field(max_length=255)
    subtitle: Optional[str] = Field(default=None, sa_column=Column(Text))
    url: Optional[str] = Field(default=None, sa_column=Column(Text))
    html_content: Optional[str] = Field(default=None, sa_column=Column(Text))
    video_preview: Optional[str] = Field(default=None, sa_column=Column(Text))
    instructions: Optional[str] = Field(default=None, sa_column=Column(Text))
    instructions_es: Optional[str] = Field(default=None, sa_column=Column(Text))
    instructions_en: Optional[str] = Field(default=None, sa_column=Column(Text))
    # "iv:tag:ciphertext", see core.encryption
    credentials_encrypted: Optional[str] = Field(default=None, sa_column=Column(Text))
    has_responsive: bool = Field(default=False)
    requires_credentials: bool = Field(default=False)
    status: DemoStatus = Field(default=DemoStatus.inactive, index=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


class DemoMedia(SQLModel, table=True):
    __tablename__ = "demo_media"
    id: Optional[int] = Field(default=None, primary_key=True)
    demo_id: int = Field(foreign_key="demos.id", index=True)
    type: MediaType
    url: str = Field(sa_column=Column(Text, nullable=False))
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    uploaded_by_user_id: Optional[int] = Field(default=None, foreign_key="users.id", nullable=True)
    file_size: Optional[int] = Field(default=None, sa_column=Column(BigInteger))
    # Key of the StoredFile backing this item; None for externally hosted media.
    storage_key: Optional[str] = Field(default=None, max_length=512, index=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


class StoredFile(SQLModel, table=True):
    """A file written by POST /api/upload and charged to its owner's quota."""
    __tablename__ = "stored_files"
    id: Optional[int] = Field(default=None, primary_key=True)
    storage_key: str = Field(max_length=512, unique=True, index=True)
    owner_user_id: Optional[int] = Field(default=None, foreign_key="users.id", nullable=True, index=True)
    type: MediaType
    url: str = Field(sa_column=Column(Text, nullable=False))
    file_size: int = Field(sa_column=Column(BigInteger, nullable=False))
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


class DemoAssignment(SQLModel, table=True):
    """Which demos a buyer may access."""
    __tablename__ = "demo_assignments"
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    demo_id: int = Field(foreign_key="demos.id", index=True)
    assigned_by_user_id: Optional[int] = Field(default=None, foreign_key="users.id", nullable=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


# --- Leads & Feedback ---
class Lead(SQLModel, table=True):
    __tablename__ = "leads"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    email: str = Field(max_length=255, index=True)
    company: Optional[str] = Field(default=None, max_length=255)
    revenue_range: Optional[str] = Field(default=None, max_length=50)
    employee_count: Optional[int] = None
    location: Optional[str] = Field(default=None, max_length=255)
    shared_by_user_id: Optional[int] = Field(default=None, foreign_key="users.id", nullable=True, index=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)


class Feedback(SQLModel, table=True):
    __tablename__ = "feedback"
    id: Optional[int] = Field(default=None, primary_key=True)
    lead_id: Optional[int] = Field(default=None, foreign_key="leads.id", nullable=True, index=True)
    user_id: Optional[int] = Field(default=None, foreign_key="users.id", nullable=True)
    demo_id: int = Field(foreign_key="demos.id", index=True)
    attended_by_user_id: Optional[int] = Field(default=None, foreign_key="users.id", nullable=True)
    system_rating: Optional[int] = None  # 1-5
    promoter_rating: Optional[int] = None  # 1-5
    nps_score: Optional[int] = None  # 0-10
    interest_level: Optional[str] = Field(default=None, max_length=50)
    purchase_stage: Optional[str] = Field(default=None, max_length=50)
    budget_range: Optional[str] = Field(default=None, max_length=50)
    decision_timeframe: Optional[str] = Field(default=None, max_length=50)
    key_features: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    pain_points: Optional[str] = Field(default=None, sa_column=Column(Text))
    use_case: Optional[str] = Field(default=None, sa_column=Column(Text))
    comments: Optional[str] = Field(default=None, sa_column=Column(Text))
    timestamp: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)


# --- Storage quota ---
class StorageUsage(SQLModel, table=True):
    __tablename__ = "storage_usage"
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    total_bytes: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))
    limit_bytes: int = Field(default=25 * 1024 ** 3, sa_column=Column(BigInteger, nullable=False, default=25 * 1024 ** 3))
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
