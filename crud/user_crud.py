from typing import List, Optional, Sequence
from sqlmodel import Session, select
import logging

import models
from models import UserRole, utc_now
from core.security import get_password_hash # For hashing password before saving

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: int) -> Optional[models.User]:
    return db.get(models.User, user_id)

def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    """
    Fetches a user by their email from the database.
    """
    if not email:
        return None
    statement = select(models.User).where(models.User.email == email.strip().lower())
    return db.exec(statement).first()

def get_admin(db: Session) -> Optional[models.User]:
    statement = select(models.User).where(models.User.role == UserRole.admin)
    return db.exec(statement).first()

def create_user(
    db: Session,
    name: str,
    email: str,
    password: str,
    role: UserRole = UserRole.buyer,
    company: Optional[str] = None,
    created_by_user_id: Optional[int] = None,
) -> models.User:
    """
    Creates a new user in the database. Emails are stored lower-cased.
    """
    db_user = models.User(
        name=name.strip(),
        email=email.strip().lower(),
        hashed_password=get_password_hash(password),
        role=role,
        company=company,
        created_by_user_id=created_by_user_id,
        is_active=True,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user) # To get the ID and any other DB-generated fields
    logger.info(f"Created {UserRole(db_user.role).value} user {db_user.email} (id={db_user.id})")
    return db_user

def list_users(db: Session, viewer: models.User) -> Sequence[models.User]:
    """
    Admins see everybody. Salespeople see themselves plus the users they
    assigned demos to.
    """
    statement = select(models.User).order_by(models.User.id)
    if UserRole(viewer.role) != UserRole.admin:
        assigned_ids = select(models.DemoAssignment.user_id).where(
            models.DemoAssignment.assigned_by_user_id == viewer.id
        )
        statement = statement.where(
            (models.User.id == viewer.id) | (models.User.id.in_(assigned_ids))
        )
    return db.exec(statement).all()

def delete_user(db: Session, user: models.User) -> None:
    """
    Deletes a user together with their assignments, feedback and storage row.
    Leads they shared and other back-references are kept with the link cleared.
    """
    user_id = user.id

    for assignment in db.exec(select(models.DemoAssignment).where(models.DemoAssignment.user_id == user_id)).all():
        db.delete(assignment)
    for fb in db.exec(select(models.Feedback).where(models.Feedback.user_id == user_id)).all():
        db.delete(fb)
    for usage in db.exec(select(models.StorageUsage).where(models.StorageUsage.user_id == user_id)).all():
        db.delete(usage)

    for lead in db.exec(select(models.Lead).where(models.Lead.shared_by_user_id == user_id)).all():
        lead.shared_by_user_id = None
        db.add(lead)
    for assignment in db.exec(select(models.DemoAssignment).where(models.DemoAssignment.assigned_by_user_id == user_id)).all():
        assignment.assigned_by_user_id = None
        db.add(assignment)
    for fb in db.exec(select(models.Feedback).where(models.Feedback.attended_by_user_id == user_id)).all():
        fb.attended_by_user_id = None
        db.add(fb)
    for media in db.exec(select(models.DemoMedia).where(models.DemoMedia.uploaded_by_user_id == user_id)).all():
        media.uploaded_by_user_id = None
        db.add(media)
    for stored in db.exec(select(models.StoredFile).where(models.StoredFile.owner_user_id == user_id)).all():
        stored.owner_user_id = None
        db.add(stored)
    for created in db.exec(select(models.User).where(models.User.created_by_user_id == user_id)).all():
        created.created_by_user_id = None
        db.add(created)

    db.delete(user)
    db.commit()
    logger.info(f"Deleted user id={user_id}")

def get_assigned_demos(db: Session, user_id: int) -> Sequence[models.Demo]:
    statement = (
        select(models.Demo)
        .join(models.DemoAssignment, models.DemoAssignment.demo_id == models.Demo.id)
        .where(models.DemoAssignment.user_id == user_id)
        .order_by(models.Demo.id)
    )
    return db.exec(statement).all()

def set_assigned_demos(
    db: Session, user_id: int, demo_ids: List[int], assigned_by_user_id: Optional[int]
) -> List[int]:
    """
    Replaces the user's assignments with `demo_ids` (duplicates ignored).
    Returns the de-duplicated ids, in request order.
    """
    wanted = list(dict.fromkeys(demo_ids))
    existing = db.exec(select(models.DemoAssignment).where(models.DemoAssignment.user_id == user_id)).all()
    previous = {a.demo_id for a in existing}

    for assignment in existing:
        db.delete(assignment)
    for demo_id in wanted:
        db.add(models.DemoAssignment(user_id=user_id, demo_id=demo_id, assigned_by_user_id=assigned_by_user_id))
    db.commit()

    logger.info(f"User {user_id} assignments: {sorted(previous)} -> {wanted}")
    return wanted

def update_profile(
    db: Session,
    user: models.User,
    name: Optional[str] = None,
    company: Optional[str] = None,
    profile_picture: Optional[str] = None,
) -> models.User:
    if name is not None:
        user.name = name.strip()
    if company is not None:
        user.company = company.strip() or None
    if profile_picture is not None:
        user.profile_picture = profile_picture or None
    user.updated_at = utc_now()
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

def set_password(db: Session, user: models.User, new_password: str) -> None:
    user.hashed_password = get_password_hash(new_password)
    user.updated_at = utc_now()
    db.add(user)
    db.commit()
