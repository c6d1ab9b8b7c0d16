"""
Aggregate queries behind the dashboard, stats and analytics endpoints.

Date buckets use the SQL DATE() function, which SQLite and PostgreSQL both
provide.
"""
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from sqlalchemy import func
from sqlmodel import Session, select

import models
from models import DemoStatus, UserRole, utc_now

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _value(v: Any) -> Any:
    return v.value if isinstance(v, Enum) else v

def _count(db: Session, model, *conditions) -> int:
    statement = select(func.count()).select_from(model)
    if conditions:
        statement = statement.where(*conditions)
    return db.exec(statement).one()

def _per_day(db: Session, column, since: datetime, *conditions) -> List[Dict[str, Any]]:
    day = func.date(column)
    statement = select(day, func.count()).where(column >= since, *conditions).group_by(day).order_by(day)
    return [{"date": str(d), "count": c} for d, c in db.exec(statement).all()]

def _grouped(db: Session, column) -> List[Dict[str, Any]]:
    rows = db.exec(select(column, func.count()).group_by(column).order_by(column)).all()
    return rows

def _trend(current: float, previous: float) -> float:
    if previous > 0:
        return round((current - previous) / previous * 100, 1)
    return 100.0 if current > 0 else 0.0

def _avg(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _demo_assignment_ranking(db: Session, limit: int):
    assignment_count = func.count(models.DemoAssignment.id)
    statement = (
        select(models.Demo.id, models.Demo.title, models.Product.name, models.Product.logo, assignment_count)
        .select_from(models.Demo)
        .join(models.DemoAssignment, models.DemoAssignment.demo_id == models.Demo.id, isouter=True)
        .join(models.Product, models.Product.id == models.Demo.product_id, isouter=True)
        .group_by(models.Demo.id, models.Demo.title, models.Product.name, models.Product.logo)
        .order_by(assignment_count.desc(), models.Demo.id)
        .limit(limit)
    )
    return [
        {"demo_id": d_id, "demo_title": title, "product_name": p_name, "product_logo": p_logo, "assignment_count": n}
        for d_id, title, p_name, p_logo, n in db.exec(statement).all()
    ]

def _top_rated_demo(db: Session) -> Optional[Dict[str, Any]]:
    avg_rating = func.avg(models.Feedback.system_rating)
    statement = (
        select(models.Demo.id, models.Demo.title, models.Product.name, models.Product.logo,
               avg_rating, func.count(models.Feedback.id))
        .select_from(models.Demo)
        .join(models.Feedback, models.Feedback.demo_id == models.Demo.id)
        .join(models.Product, models.Product.id == models.Demo.product_id, isouter=True)
        .where(models.Feedback.system_rating.is_not(None))
        .group_by(models.Demo.id, models.Demo.title, models.Product.name, models.Product.logo)
        .order_by(avg_rating.desc(), models.Demo.id)
        .limit(1)
    )
    row = db.exec(statement).first()
    if row is None:
        return None
    d_id, title, p_name, p_logo, avg, n = row
    return {"demo_id": d_id, "demo_title": title, "product_name": p_name, "product_logo": p_logo,
            "avg_rating": round(float(avg), 2), "feedback_count": n}

def _activity_rows(db: Session, timestamp_col, id_col, user_col, since: datetime):
    statement = (
        select(models.User.id, models.User.name, models.User.email, models.User.role,
               func.max(timestamp_col), func.count(id_col))
        .select_from(models.User)
        .join(user_col.class_, user_col == models.User.id)
        .where(timestamp_col >= since)
        .group_by(models.User.id, models.User.name, models.User.email, models.User.role)
    )
    return db.exec(statement).all()

def _user_activity(db: Session, since: datetime) -> List[Dict[str, Any]]:
    """Feedback given and demos received per user, merged."""
    merged: Dict[int, Dict[str, Any]] = {}
    sources = [
        (models.Feedback.timestamp, models.Feedback.id, models.Feedback.user_id),
        (models.DemoAssignment.created_at, models.DemoAssignment.id, models.DemoAssignment.user_id),
    ]
    for timestamp_col, id_col, user_col in sources:
        for u_id, name, email, role, last, n in _activity_rows(db, timestamp_col, id_col, user_col, since):
            entry = merged.get(u_id)
            if entry is None:
                merged[u_id] = {"user_id": u_id, "user_name": name, "user_email": email,
                                "user_role": _value(role), "last_activity": last, "activity_count": n}
            else:
                entry["activity_count"] += n
                if last and (entry["last_activity"] is None or last > entry["last_activity"]):
                    entry["last_activity"] = last
    return sorted(merged.values(), key=lambda e: e["last_activity"] or _EPOCH, reverse=True)[:50]

def _top_active_leads(db: Session, sales_user_id: Optional[int]) -> List[Dict[str, Any]]:
    feedback_count = func.count(models.Feedback.id)
    statement = (
        select(models.Lead.id, models.Lead.name, models.Lead.email, models.Lead.company,
               feedback_count, func.avg(models.Feedback.system_rating))
        .select_from(models.Lead)
        .join(models.Feedback, models.Feedback.lead_id == models.Lead.id)
    )
    if sales_user_id is not None:
        statement = statement.where(models.Lead.shared_by_user_id == sales_user_id)
    statement = (
        statement
        .group_by(models.Lead.id, models.Lead.name, models.Lead.email, models.Lead.company)
        .order_by(feedback_count.desc(), models.Lead.id)
        .limit(5)
    )
    return [
        {"lead_id": l_id, "lead_name": name, "lead_email": email, "lead_company": company,
         "feedback_count": n, "avg_rating": round(float(avg), 2) if avg is not None else None}
        for l_id, name, email, company, n, avg in db.exec(statement).all()
    ]


def dashboard(db: Session, viewer: models.User) -> Dict[str, Any]:
    """KPIs for the staff home page. Salespeople get lead and feedback figures for their own leads."""
    sales_id = viewer.id if UserRole(viewer.role) == UserRole.sales else None
    now = utc_now()
    thirty_days_ago = now - timedelta(days=30)
    seven_days_ago = now - timedelta(days=7)

    lead_scope = [models.Lead.shared_by_user_id == sales_id] if sales_id is not None else []
    feedback_scope = [models.Feedback.attended_by_user_id == sales_id] if sales_id is not None else []

    avg_system = db.exec(
        select(func.avg(models.Feedback.system_rating)).where(models.Feedback.system_rating.is_not(None), *feedback_scope)
    ).one()

    top_requested = _demo_assignment_ranking(db, limit=1)

    return {
        "kpis": {
            "total_demos": _count(db, models.Demo),
            "active_demos": _count(db, models.Demo, models.Demo.status == DemoStatus.active),
            "total_leads": _count(db, models.Lead, *lead_scope),
            "total_users": _count(db, models.User),
            "avg_system_rating": f"{float(avg_system or 0):.1f}",
            "total_feedbacks": _count(db, models.Feedback, *feedback_scope),
        },
        "top_requested_demo": top_requested[0] if top_requested else None,
        "top_rated_demo": _top_rated_demo(db),
        "demos_over_time": _per_day(db, models.Demo.created_at, thirty_days_ago),
        "leads_over_time": _per_day(db, models.Lead.created_at, thirty_days_ago, *lead_scope),
        "user_activity": _user_activity(db, seven_days_ago),
        "demos_by_status": [{"status": _value(s), "count": n} for s, n in _grouped(db, models.Demo.status)],
        "top_active_leads": _top_active_leads(db, sales_id),
    }


def stats(db: Session) -> Dict[str, Any]:
    """Headline figures with a last-30-days vs previous-30-days trend (percent)."""
    now = utc_now()
    d30 = now - timedelta(days=30)
    d60 = now - timedelta(days=60)

    active = models.Demo.status == DemoStatus.active
    demos_recent = _count(db, models.Demo, active, models.Demo.created_at >= d30)
    demos_previous = _count(db, models.Demo, active, models.Demo.created_at >= d60, models.Demo.created_at < d30)

    total_leads = _count(db, models.Lead)
    leads_recent = _count(db, models.Lead, models.Lead.created_at >= d30)
    leads_previous = _count(db, models.Lead, models.Lead.created_at >= d60, models.Lead.created_at < d30)

    def converted(*conditions) -> int:
        statement = (
            select(func.count(func.distinct(models.Lead.id)))
            .select_from(models.Lead)
            .join(models.Feedback, models.Feedback.lead_id == models.Lead.id)
        )
        if conditions:
            statement = statement.where(*conditions)
        return db.exec(statement).one()

    def rate(part: int, whole: int) -> float:
        return part / whole * 100 if whole > 0 else 0.0

    conversion = rate(converted(), total_leads)
    conversion_recent = rate(converted(models.Lead.created_at >= d30), leads_recent)
    conversion_previous = rate(
        converted(models.Lead.created_at >= d60, models.Lead.created_at < d30), leads_previous
    )

    # Missing ratings count as zero, as in the original dashboard figures.
    feedback = db.exec(
        select(models.Feedback.system_rating, models.Feedback.promoter_rating, models.Feedback.timestamp)
    ).all()
    system = _avg([s or 0 for s, _, _ in feedback])
    promoter = _avg([p or 0 for _, p, _ in feedback])
    recent = _avg([((s or 0) + (p or 0)) / 2 for s, p, t in feedback if t and t >= d30])
    previous = _avg([((s or 0) + (p or 0)) / 2 for s, p, t in feedback if t and d60 <= t < d30])

    return {
        "demos": {"active": _count(db, models.Demo, active), "trend": _trend(demos_recent, demos_previous)},
        "leads": {"total": total_leads, "trend": _trend(leads_recent, leads_previous)},
        "conversion": {"rate": round(conversion, 1), "trend": _trend(conversion_recent, conversion_previous)},
        "ratings": {
            "system": round(system, 2),
            "promoter": round(promoter, 2),
            "average": round((system + promoter) / 2, 2),
            "trend": _trend(recent, previous),
        },
    }


def analytics(db: Session) -> Dict[str, Any]:
    """Admin-wide breakdowns."""
    thirty_days_ago = utc_now() - timedelta(days=30)

    avg_system, avg_promoter = db.exec(
        select(func.avg(models.Feedback.system_rating), func.avg(models.Feedback.promoter_rating))
    ).one()

    demo_count = func.count(models.Demo.id)
    by_product = db.exec(
        select(models.Product.name, models.Product.corporate_color, demo_count)
        .select_from(models.Product)
        .join(models.Demo, models.Demo.product_id == models.Product.id, isouter=True)
        .group_by(models.Product.id, models.Product.name, models.Product.corporate_color)
        .order_by(demo_count.desc(), models.Product.name)
    ).all()

    return {
        "users_by_role": [{"role": _value(r), "count": n} for r, n in _grouped(db, models.User.role)],
        "demos_by_status": [{"status": _value(s), "count": n} for s, n in _grouped(db, models.Demo.status)],
        "total_leads": _count(db, models.Lead),
        "total_demos": _count(db, models.Demo),
        "total_users": _count(db, models.User),
        "avg_ratings": {
            "system": f"{float(avg_system or 0):.1f}",
            "promoter": f"{float(avg_promoter or 0):.1f}",
        },
        "top_demos": [
            {k: v for k, v in d.items() if k != "product_logo"} for d in _demo_assignment_ranking(db, limit=5)
        ],
        "demos_over_time": _per_day(db, models.Demo.created_at, thirty_days_ago),
        "leads_over_time": _per_day(db, models.Lead.created_at, thirty_days_ago),
        "demos_by_product": [
            {"product_name": name, "product_color": color, "count": n} for name, color, n in by_product
        ],
    }
