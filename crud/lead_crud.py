import csv
import io
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional, Sequence
from sqlalchemy import or_
from sqlmodel import Session, select
import logging

import models
from models import UserRole
from schemas import lead_schemas

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "ID", "Name", "Email", "Company", "Revenue Range", "Employee Count",
    "Location", "Shared By", "Demos Accessed", "Created At",
]


def get_lead(db: Session, lead_id: int) -> Optional[models.Lead]:
    return db.get(models.Lead, lead_id)

def get_lead_by_email(db: Session, email: str) -> Optional[models.Lead]:
    statement = select(models.Lead).where(models.Lead.email == email.strip().lower()).order_by(models.Lead.id)
    return db.exec(statement).first()

def create_lead(db: Session, lead_in: lead_schemas.LeadCreate) -> models.Lead:
    data = lead_in.model_dump()
    data["email"] = data["email"].strip().lower()
    db_lead = models.Lead(**data)
    db.add(db_lead)
    db.commit()
    db.refresh(db_lead)
    logger.info(f"Captured lead {db_lead.id} ({db_lead.email})")
    return db_lead

def delete_lead(db: Session, lead: models.Lead) -> None:
    """Deletes the lead; its feedback stays, detached from it."""
    lead_id = lead.id
    for fb in db.exec(select(models.Feedback).where(models.Feedback.lead_id == lead_id)).all():
        fb.lead_id = None
        db.add(fb)
    db.delete(lead)
    db.commit()
    logger.info(f"Deleted lead {lead_id}")

def query_leads(
    db: Session,
    viewer: models.User,
    search: Optional[str] = None,
    demo_id: Optional[int] = None,
    shared_by_user_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> Sequence[models.Lead]:
    """
    Leads visible to `viewer`, newest first. Salespeople only see leads they
    shared. `date_to` is inclusive of the whole day.
    """
    statement = select(models.Lead)

    if UserRole(viewer.role) == UserRole.sales:
        statement = statement.where(models.Lead.shared_by_user_id == viewer.id)

    if search and search.strip():
        pattern = f"%{search.strip()}%"
        statement = statement.where(or_(
            models.Lead.name.ilike(pattern),
            models.Lead.email.ilike(pattern),
            models.Lead.company.ilike(pattern),
            models.Lead.location.ilike(pattern),
        ))

    if demo_id is not None:
        lead_ids = select(models.Feedback.lead_id).where(
            models.Feedback.demo_id == demo_id, models.Feedback.lead_id.is_not(None)
        )
        statement = statement.where(models.Lead.id.in_(lead_ids))

    if shared_by_user_id is not None:
        statement = statement.where(models.Lead.shared_by_user_id == shared_by_user_id)

    if date_from is not None:
        statement = statement.where(models.Lead.created_at >= datetime.combine(date_from, time.min, tzinfo=timezone.utc))
    if date_to is not None:
        statement = statement.where(models.Lead.created_at < datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=timezone.utc))

    statement = statement.order_by(models.Lead.created_at.desc(), models.Lead.id.desc())
    return db.exec(statement).all()

def with_details(db: Session, leads: Sequence[models.Lead]) -> List[lead_schemas.LeadDetail]:
    """Adds sharer, latest demo, distinct demos accessed and average rating."""
    if not leads:
        return []
    lead_ids = [lead.id for lead in leads]

    rows = db.exec(
        select(models.Feedback, models.Demo, models.Product)
        .join(models.Demo, models.Demo.id == models.Feedback.demo_id)
        .join(models.Product, models.Product.id == models.Demo.product_id, isouter=True)
        .where(models.Feedback.lead_id.in_(lead_ids))
        .order_by(models.Feedback.timestamp.desc(), models.Feedback.id.desc())
    ).all()

    latest: Dict[int, lead_schemas.LatestDemo] = {}
    demos_seen: Dict[int, set] = defaultdict(set)
    ratings: Dict[int, List[int]] = defaultdict(list)
    for fb, demo, product in rows:
        if fb.lead_id not in latest:
            latest[fb.lead_id] = lead_schemas.LatestDemo(
                id=demo.id,
                title=demo.title,
                product_id=demo.product_id,
                product_name=product.name if product else None,
                product_logo=product.logo if product else None,
            )
        demos_seen[fb.lead_id].add(fb.demo_id)
        if fb.system_rating is not None:
            ratings[fb.lead_id].append(fb.system_rating)

    sharer_ids = {lead.shared_by_user_id for lead in leads if lead.shared_by_user_id}
    sharers = {
        u.id: u for u in db.exec(select(models.User).where(models.User.id.in_(sharer_ids))).all()
    } if sharer_ids else {}

    details = []
    for lead in leads:
        sharer = sharers.get(lead.shared_by_user_id)
        lead_ratings = ratings.get(lead.id)
        details.append(lead_schemas.LeadDetail(
            **lead.model_dump(),
            shared_by=lead_schemas.SharedBy(id=sharer.id, name=sharer.name, email=sharer.email, role=sharer.role) if sharer else None,
            latest_demo=latest.get(lead.id),
            demos_accessed=len(demos_seen.get(lead.id, ())),
            avg_rating=round(sum(lead_ratings) / len(lead_ratings), 2) if lead_ratings else None,
        ))
    return details

_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")

def _cell(value: Optional[str]) -> str:
    """Neutralizes spreadsheet formulas in user-supplied text."""
    if not value:
        return ""
    return f"'{value}" if value.startswith(_FORMULA_PREFIXES) else value

def to_csv(leads: Sequence[lead_schemas.LeadDetail]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL)
    writer.writerow(CSV_HEADERS)
    for lead in leads:
        writer.writerow([
            lead.id,
            _cell(lead.name),
            _cell(lead.email),
            _cell(lead.company),
            _cell(lead.revenue_range),
            lead.employee_count if lead.employee_count is not None else "",
            _cell(lead.location),
            _cell(lead.shared_by.name) if lead.shared_by else "",
            lead.demos_accessed,
            lead.created_at.date().isoformat(),
        ])
    return buffer.getvalue()

def get_lead_feedback(db: Session, lead_id: int) -> list:
    """Feedback left for a lead, newest first, with demo and product names."""
    rows = db.exec(
        select(models.Feedback, models.Demo, models.Product)
        .join(models.Demo, models.Demo.id == models.Feedback.demo_id, isouter=True)
        .join(models.Product, models.Product.id == models.Demo.product_id, isouter=True)
        .where(models.Feedback.lead_id == lead_id)
        .order_by(models.Feedback.timestamp.desc(), models.Feedback.id.desc())
    ).all()
    return [
        {
            **fb.model_dump(),
            "demo_title": demo.title if demo else None,
            "product_name": product.name if product else None,
        }
        for fb, demo, product in rows
    ]
