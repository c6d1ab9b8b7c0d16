"""
Role checks shared by every router.

The hierarchy is admin > sales > buyer: an admin satisfies any requirement,
sales satisfies sales and buyer requirements, a buyer only buyer requirements.
"""
from typing import Iterable, Optional, Union

import models
from models import UserRole

RoleSpec = Union[UserRole, str, Iterable[Union[UserRole, str]]]


def _as_roles(required: RoleSpec) -> set:
    if isinstance(required, (UserRole, str)):
        required = [required]
    return {UserRole(r) for r in required}


def has_permission(user: Optional[models.User], required: RoleSpec) -> bool:
    if user is None or user.role is None:
        return False

    roles = _as_roles(required)
    role = UserRole(user.role)

    if role == UserRole.admin:
        return True
    if role == UserRole.sales:
        return UserRole.sales in roles or UserRole.buyer in roles
    if role == UserRole.buyer:
        return UserRole.buyer in roles
    return False


def is_staff(user: Optional[models.User]) -> bool:
    """Admins and salespeople."""
    return user is not None and UserRole(user.role) in (UserRole.admin, UserRole.sales)


def can_manage_users(user: Optional[models.User]) -> bool:
    return is_staff(user)


def can_assign_demos(user: Optional[models.User]) -> bool:
    return is_staff(user)
