"""Villa Onboarding - FastAPI application."""
# Load .env before any app code that might read config
from dotenv import load_dotenv
from pathlib import Path
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.database import Base, SessionLocal, engine
# Import models so Base.metadata has all tables before create_all (schema source of truth)
from app.models import (  # noqa: F401
    User, Villa, Owner, ContractualDetails, BankDetails, OTACredentials, Staff,
    FacilityChecklist, Document, Photo, OnboardingProgress, StepFieldProgress, ActivityLog,
)
from app.routers import auth, villas, onboarding, users, documents, dashboard, villa_records

settings = get_settings()
log = logging.getLogger("uvicorn.error")
app = FastAPI(title=settings.app_name, debug=settings.debug)

_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(villas.router)
app.include_router(onboarding.router)
app.include_router(users.router)
app.include_router(documents.router)
app.include_router(dashboard.router)
app.include_router(villa_records.router)

scheduler = None


def _create_tables_and_seed() -> None:
    from app.seed import seed_admin_user
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_admin_user(db)
    finally:
        db.close()


@app.on_event("startup")
def startup():
    global scheduler
    if settings.sharepoint_configured:
        log.info("[SharePoint] Configured (site=%s)", settings.sharepoint_site_id or settings.sharepoint_site_hostname)
    else:
        log.info("[SharePoint] Not configured - uploads are held as pending until SHAREPOINT_* settings are set")
    if not settings.clerk_configured:
        log.info("[Clerk] Not configured - admin user list uses local users")
    if not settings.encryption_key.strip():
        log.warning("ENCRYPTION_KEY is not set - bank details and OTA credentials cannot be saved")
    try:
        _create_tables_and_seed()
    except Exception as e:
        log.warning("Database startup failed (tables/seed skipped). Check DATABASE_URL and network. Error: %s", e)

    if settings.sharepoint_sync_enabled and settings.sharepoint_configured:
        from apscheduler.schedulers.background import BackgroundScheduler
        from app.services.media import run_pending_sync_job
        scheduler = BackgroundScheduler()
        scheduler.add_job(
            run_pending_sync_job,
            "interval",
            minutes=settings.sharepoint_sync_interval_minutes,
            id="sharepoint_pending_sync",
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()


@app.on_event("shutdown")
def shutdown():
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)


@app.get("/")
def root():
    return {"app": settings.app_name, "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/api/config")
def client_config():
    """Public settings for browser clients; never includes secrets."""
    return {
        "api_url": settings.api_url,
        "websocket_url": settings.websocket_url,
        "sharepoint_enabled": settings.sharepoint_configured,
        "user_directory_enabled": settings.clerk_configured,
    }


@app.post("/db-setup")
def db_setup():
    """Dev/demo only: create tables and seed the admin if DB is now available."""
    from fastapi.responses import JSONResponse
    try:
        _create_tables_and_seed()
        return {"status": "ok", "message": "Tables created and admin seeded."}
    except Exception as e:
        log.exception("db-setup failed")
        return JSONResponse(
            status_code=500,
            content={"status": "error", "message": str(e)},
        )
