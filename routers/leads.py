from datetime import date
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response, status
from sqlmodel import Session
from typing import List, Optional
import logging

import models
from database import get_session
from core import dependencies, rate_limit, webhooks
from crud import lead_crud, user_crud
from models import UserRole, utc_now
from schemas import feedback_schemas, lead_schemas

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/leads",
    tags=["Leads"],
)


class LeadFilters:
    """Query parameters shared by the list and the CSV export."""
    def __init__(
        self,
        search: Optional[str] = None,
        demo_id: Optional[int] = None,
        shared_by_user_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ):
        self.search = search
        self.demo_id = demo_id
        self.shared_by_user_id = shared_by_user_id
        self.date_from = date_from
        self.date_to = date_to


def _filtered(db: Session, viewer: models.User, filters: LeadFilters) -> List[lead_schemas.LeadDetail]:
    leads = lead_crud.query_leads(
        db,
        viewer,
        search=filters.search,
        demo_id=filters.demo_id,
        shared_by_user_id=filters.shared_by_user_id,
        date_from=filters.date_from,
        date_to=filters.date_to,
    )
    return lead_crud.with_details(db, leads)


@router.get("", response_model=List[lead_schemas.LeadDetail])
async def list_leads(
    filters: LeadFilters = Depends(),
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_staff),
):
    return _filtered(db, current_user, filters)


@router.get("/export")
async def export_leads(
    filters: LeadFilters = Depends(),
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_staff),
):
    """The same list as GET /api/leads, as a CSV attachment."""
    content = lead_crud.to_csv(_filtered(db, current_user, filters))
    filename = f"leads-{utc_now().date().isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "",
    response_model=lead_schemas.LeadRead,
    status_code=status.HTTP_201_CREATED,
)
@rate_limit.leads_limit
async def create_lead(
    request: Request,
    response: Response,
    lead_in: lead_schemas.LeadCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_session),
):
    """Public lead capture form."""
    sharer = None
    if lead_in.shared_by_user_id is not None:
        sharer = user_crud.get_user(db, lead_in.shared_by_user_id)
        if sharer is None:
            logger.warning(f"Lead form referenced unknown user {lead_in.shared_by_user_id}; storing without sharer")
            lead_in = lead_in.model_copy(update={"shared_by_user_id": None})

    lead = lead_crud.create_lead(db, lead_in)
    webhooks.queue_webhook(
        background_tasks,
        webhooks.LEAD_CREATED,
        {
            "lead": lead_schemas.LeadRead.model_validate(lead).model_dump(exclude={"shared_by_user_id"}),
            "shared_by": {"id": sharer.id, "name": sharer.name, "email": sharer.email,
                          "role": UserRole(sharer.role).value} if sharer else None,
        },
    )
    return lead


@router.delete("/{lead_id}")
async def delete_lead(
    lead_id: int,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_admin),
):
    lead = lead_crud.get_lead(db, lead_id)
    if lead is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lead not found")
    lead_crud.delete_lead(db, lead)
    return {"message": "Lead deleted"}


@router.get("/{lead_id}/feedback", response_model=List[feedback_schemas.LeadFeedbackRead])
async def get_lead_feedback(
    lead_id: int,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_staff),
):
    lead = lead_crud.get_lead(db, lead_id)
    if lead is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lead not found")
    if UserRole(current_user.role) == UserRole.sales and lead.shared_by_user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not have access to this lead")
    return lead_crud.get_lead_feedback(db, lead_id)
