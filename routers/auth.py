from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session
from typing import Dict
import logging

import models
from database import get_session
from core import dependencies, rate_limit, security
from crud import user_crud
from schemas import user_schemas

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
)


@router.post("/token", response_model=user_schemas.Token)
@rate_limit.login_limit
async def login_for_access_token(
    request: Request,
    response: Response,
    db: Session = Depends(get_session),
    form_data: OAuth2PasswordRequestForm = Depends()
) -> Dict[str, str]:
    """
    Exchanges email and password for a bearer token.
    The OAuth2 form's `username` field carries the email. Accounts are created
    by admins only, so there is no registration counterpart.
    """
    user = user_crud.get_user_by_email(db, email=form_data.username)
    if user is None or not security.verify_password(form_data.password, user.hashed_password):
        logger.info(f"Failed login for '{form_data.username}'")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")

    role = models.UserRole(user.role).value
    return {
        "access_token": security.create_access_token(data={"sub": user.email, "role": role}),
        "token_type": "bearer",
    }


@router.get("/users/me", response_model=user_schemas.UserRead)
async def read_users_me(
    current_user: models.User = Depends(dependencies.get_current_active_user)
) -> models.User:
    return current_user
