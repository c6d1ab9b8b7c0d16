from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlmodel import Session
from typing import List
import logging

import models
from database import get_session
from core import dependencies, webhooks
from crud import demo_crud, user_crud
from models import UserRole
from schemas import user_schemas

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/users",
    tags=["Users"],
)


@router.get("", response_model=List[user_schemas.UserRead])
async def list_users(
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_staff),
):
    return user_crud.list_users(db, viewer=current_user)


@router.post("", response_model=user_schemas.UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_in: user_schemas.UserCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_staff),
):
    """
    Admins may create any role; salespeople only buyers.
    """
    if UserRole(current_user.role) == UserRole.sales and user_in.role != UserRole.buyer:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Sales users can only create buyer accounts",
        )
    if user_crud.get_user_by_email(db, email=user_in.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered.")

    new_user = user_crud.create_user(
        db,
        name=user_in.name,
        email=user_in.email,
        password=user_in.password,
        role=user_in.role,
        company=user_in.company,
        created_by_user_id=current_user.id,
    )
    webhooks.queue_webhook(
        background_tasks,
        webhooks.USER_CREATED,
        {"id": new_user.id, "name": new_user.name, "email": new_user.email,
         "role": UserRole(new_user.role).value, "created_by": current_user.id},
        user=current_user,
    )
    return new_user


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_admin),
):
    if user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")
    user = user_crud.get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    user_crud.delete_user(db, user)
    return {"message": "User deleted"}


@router.get("/{user_id}/demos", response_model=List[user_schemas.AssignedDemo])
async def get_user_demos(
    user_id: int,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_staff),
):
    if user_crud.get_user(db, user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user_crud.get_assigned_demos(db, user_id)


@router.post("/{user_id}/demos", response_model=List[user_schemas.AssignedDemo])
async def assign_user_demos(
    user_id: int,
    assignment_in: user_schemas.DemoAssignmentUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_staff),
):
    """
    Replaces the set of demos assigned to the user.
    """
    user = user_crud.get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    requested = set(assignment_in.demo_ids)
    demos = {d.id: d for d in demo_crud.get_demos_by_ids(db, requested)}
    unknown = sorted(requested - demos.keys())
    if unknown:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown demo ids: {unknown}")

    assigned = user_crud.set_assigned_demos(db, user_id, assignment_in.demo_ids, assigned_by_user_id=current_user.id)
    for demo_id in assigned:
        webhooks.queue_webhook(
            background_tasks,
            webhooks.DEMO_ASSIGNED,
            {"demo_id": demo_id, "demo_title": demos[demo_id].title, "user_id": user.id,
             "user_email": user.email, "assigned_by": current_user.id},
            user=current_user,
        )
    return user_crud.get_assigned_demos(db, user_id)
