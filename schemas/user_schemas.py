from datetime import datetime
from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional

from models import UserRole

# --- Token Schemas ---
class Token(BaseModel):
    access_token: str
    token_type: str

class TokenData(BaseModel):
    email: Optional[str] = None
    role: Optional[UserRole] = None

# --- User Schemas ---
class UserBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr

class UserCreate(UserBase):
    password: str = Field(..., min_length=6, max_length=100)
    role: UserRole = UserRole.buyer
    company: Optional[str] = Field(default=None, max_length=255)

class UserRead(BaseModel):
    id: int
    name: str
    # Plain str on the way out: stored addresses were validated on the way in.
    email: str
    role: UserRole
    company: Optional[str] = None
    profile_picture: Optional[str] = None
    is_active: bool = True
    created_by_user_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

# --- Profile ---
class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    company: Optional[str] = Field(default=None, max_length=255)
    profile_picture: Optional[str] = None

class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=100)

# --- Demo assignments ---
class DemoAssignmentUpdate(BaseModel):
    demo_ids: List[int] = Field(default_factory=list)

class AssignedDemo(BaseModel):
    id: int
    title: str

    class Config:
        from_attributes = True


if __name__ == '__main__':
    print("--- User Schema Examples ---")
    user_c = UserCreate(name="Ana Buyer", email="ana@example.com", password="secret1")
    print(f"UserCreate valid: {user_c.model_dump_json(indent=2)}")
    try:
        UserCreate(name="", email="not-an-email", password="123")
    except Exception as e:
        print(f"Error in UserCreate (expected for invalid): {e}")
    print("\n--- End of User Schema Examples ---")
