from pathlib import Path

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlmodel import Session

from database import get_session
from crud import demo_crud, media_crud
from models import DemoStatus

# --- Configuration ---
router = APIRouter(
    tags=["UI"],
)

# templates/ sits next to main.py, one level above this package.
templates_path = Path(__file__).parent.parent / "templates"
templates = Jinja2Templates(directory=str(templates_path))


def _error_page(request: Request, status_code: int, message: str) -> HTMLResponse:
    return templates.TemplateResponse(
        request, "error.html", {"status_code": status_code, "message": message}, status_code=status_code
    )


@router.get("/demo/{demo_id}/public", response_class=HTMLResponse)
async def public_demo_page(
    request: Request,
    demo_id: int,
    db: Session = Depends(get_session),
):
    """
    The page behind a shared demo link. No login required; inactive demos are
    not shown.
    """
    demo = demo_crud.get_demo(db, demo_id)
    if demo is None:
        return _error_page(request, status.HTTP_404_NOT_FOUND, "This demo does not exist.")
    if DemoStatus(demo.status) != DemoStatus.active:
        return _error_page(request, status.HTTP_403_FORBIDDEN, "This demo is not available right now.")

    return templates.TemplateResponse(
        request,
        "public_demo.html",
        {
            "demo": demo_crud.to_read(db, demo),
            "media": media_crud.list_media(db, demo_id),
        },
    )
