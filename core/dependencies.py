from fastapi import Depends, HTTPException, Request, status
from jose import JWTError
from sqlmodel import Session
import logging

import models
from database import get_session
from core import security
from core.permissions import has_permission
from crud import user_crud
from models import UserRole

logger = logging.getLogger(__name__)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    request: Request,
    db: Session = Depends(get_session),
    token: str = Depends(security.oauth2_scheme)
) -> models.User:
    """
    Resolves the bearer token to a stored account.
    Bad signatures, expired tokens and accounts deleted since login all answer 401.
    """
    try:
        email = security.decode_token_for_email(token)
    except JWTError as e:
        logger.debug(f"Rejected bearer token: {e}")
        raise _unauthorized()

    user = user_crud.get_user_by_email(db, email=email)
    if user is None:
        logger.warning(f"Token subject '{email}' has no account.")
        raise _unauthorized()
    # Per-account rate limits key on this.
    request.state.user_id = user.id
    return user


async def get_current_active_user(
    current_user: models.User = Depends(get_current_user)
) -> models.User:
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    return current_user


def require_roles(*roles: UserRole):
    """
    Builds a dependency that admits active users whose role satisfies one of
    `roles` under the admin > sales > buyer hierarchy.

        @router.get("/leads")
        async def list_leads(user: models.User = Depends(require_roles(UserRole.sales))): ...
    """
    async def dependency(
        current_user: models.User = Depends(get_current_active_user)
    ) -> models.User:
        if not has_permission(current_user, roles):
            logger.info(f"User {current_user.email} ({current_user.role}) denied; requires one of {[r.value for r in roles]}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="The user doesn't have enough privileges"
            )
        return current_user

    return dependency


require_admin = require_roles(UserRole.admin)
require_staff = require_roles(UserRole.sales)
