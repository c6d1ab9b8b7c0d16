from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError
from pathlib import Path
import logging

from database import create_db_and_tables, get_session # Use get_session for startup data population
from core import demo_data, encryption, rate_limit
from core.config import IS_PRODUCTION, UPLOAD_DIR, UPLOAD_URL_PREFIX
from routers import auth as auth_router
from routers import dashboard as dashboard_router
from routers import demos as demos_router
from routers import feedback as feedback_router
from routers import leads as leads_router
from routers import products as products_router
from routers import profile as profile_router
from routers import storage as storage_router
from routers import ui as ui_router
from routers import users as users_router

# Configure basic logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# --- Application Setup ---
app = FastAPI(title="Demo Hub", version="0.1.0")
app.state.limiter = rate_limit.limiter
app.add_exception_handler(RateLimitExceeded, rate_limit.rate_limit_exceeded_handler)

BASE_DIR = Path(__file__).resolve().parent

# --- Static Files ---
static_files_path = BASE_DIR / "static"
if not static_files_path.exists():
    static_files_path.mkdir(parents=True, exist_ok=True)
app.mount("/static", StaticFiles(directory=static_files_path), name="static")

# Uploaded demo media, written by core.storage.
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
app.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=UPLOAD_DIR), name="uploads")


# --- Error Handlers ---
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": [str(part) for part in e.get("loc", ())], "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]
    first = errors[0] if errors else {"loc": [], "msg": "Invalid request"}
    field = ".".join(p for p in first["loc"] if p not in ("body", "query", "path", "form"))
    detail = f"{field}: {first['msg']}" if field else first["msg"]
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail, "errors": errors})


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "The request conflicts with existing data"},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    detail = "Internal server error" if IS_PRODUCTION else f"Internal server error: {exc}"
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": detail})


# --- Event Handlers (e.g., Startup) ---
@app.on_event("startup")
async def startup_event():
    """
    Actions to perform on application startup.
    - Fail fast when credentials cannot be encrypted.
    - Create database and tables.
    - Make sure an admin account exists.
    """
    encryption.get_encryption_key()

    logger.info("Application startup: Initializing database...")
    create_db_and_tables()

    # Depends() is not available in startup events; drive the session generator by hand.
    session_generator = get_session()
    db_session_for_startup = next(session_generator)
    try:
        admin = demo_data.ensure_admin_user(db_session_for_startup)
        logger.info(f"Admin account ready: {admin.email}")
    except Exception as e:
        logger.error(f"Error while seeding the admin account: {e}", exc_info=True)
        db_session_for_startup.rollback()
    finally:
        session_generator.close()


# --- Routers ---
app.include_router(auth_router.router)
app.include_router(users_router.router)
app.include_router(products_router.router)
app.include_router(demos_router.router)
app.include_router(leads_router.router)
app.include_router(feedback_router.router)
app.include_router(profile_router.router)
app.include_router(storage_router.router)
app.include_router(dashboard_router.router)
app.include_router(ui_router.router)


@app.get("/", include_in_schema=False)
async def read_root():
    return RedirectResponse(url="/docs")


# --- Uvicorn Runner (for local development) ---
if __name__ == "__main__":
    import uvicorn
    logger.info("Starting Uvicorn server for local development...")
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
