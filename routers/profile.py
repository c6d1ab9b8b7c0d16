from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

import models
from database import get_session
from core import dependencies, security
from crud import user_crud
from schemas import user_schemas

router = APIRouter(
    prefix="/api/profile",
    tags=["Profile"],
)


@router.patch("", response_model=user_schemas.UserRead)
async def update_profile(
    profile_in: user_schemas.ProfileUpdate,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.get_current_active_user),
):
    if profile_in.name is not None and not profile_in.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name cannot be empty")
    return user_crud.update_profile(
        db,
        current_user,
        name=profile_in.name,
        company=profile_in.company,
        profile_picture=profile_in.profile_picture,
    )


@router.post("/change-password")
async def change_password(
    password_in: user_schemas.PasswordChange,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.get_current_active_user),
):
    if not security.verify_password(password_in.current_password, current_user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Current password is incorrect")
    if password_in.current_password == password_in.new_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="New password must be different from the current one",
        )
    user_crud.set_password(db, current_user, password_in.new_password)
    return {"message": "Password updated"}
