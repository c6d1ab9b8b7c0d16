from datetime import datetime, timezone
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
import logging

import models
from database import get_session
from core import dependencies
from crud import analytics_crud

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["Dashboard"],
)


@router.get("/dashboard")
async def get_dashboard(
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_staff),
):
    return analytics_crud.dashboard(db, viewer=current_user)


@router.get("/dashboard/stats")
async def get_dashboard_stats(
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_staff),
):
    return analytics_crud.stats(db)


@router.get("/analytics")
async def get_analytics(
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_admin),
):
    return analytics_crud.analytics(db)


@router.get("/health")
async def health_check(db: Session = Depends(get_session)):
    """Liveness check for containers and monitoring. Touches the database."""
    body = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "demo-hub",
        "database": "connected",
    }
    try:
        db.exec(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        body.update(status="unhealthy", database="disconnected", error="Database connection failed")
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
    return body
