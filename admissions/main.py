"""
Admissions Portal
admissions/main.py

Only contains:
- FastAPI setup
- Error handlers
- Router registration
- Health check
"""

from pathlib import Path
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from admissions import __version__
from admissions.config import settings, print_settings_summary
from admissions.core.exceptions import AdmissionsError
from admissions.core.log_config import configure_logging
from admissions.database import SessionLocal, check_db_connection, init_db
from admissions.schemas.common import error_response

logger = logging.getLogger(__name__)


# ============================================================================
# STARTUP
# ============================================================================

def seed_defaults():
    """Creates the fixed roles and, when a password is configured, the bootstrap admin"""
    from admissions.services.accounts import ensure_admin, seed_roles

    db = SessionLocal()
    try:
        created = seed_roles(db)
        if created:
            logger.info(f"✅ Seeded {created} roles")
        if settings.admin_password:
            ensure_admin(db, settings.admin_email, settings.admin_password)
        else:
            logger.warning("⚠️ ADMIN_PASSWORD not set - bootstrap admin not created")
    finally:
        db.close()


def startup():
    configure_logging()
    print_settings_summary()
    Path(settings.upload_dir, "applications").mkdir(parents=True, exist_ok=True)
    init_db()
    seed_defaults()


startup()

# ============================================================================
# FASTAPI APP
# ============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Admissions portal for refugee and host-community applicants",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(AdmissionsError)
async def admissions_error_handler(request: Request, exc: AdmissionsError):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.message, exc.details),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in err["loc"][1:]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=422, content=error_response("Validation failed", errors))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}")
    message = str(exc) if settings.debug else "Server error"
    return JSONResponse(status_code=500, content=error_response(message))


# ============================================================================
# ROUTERS
# ============================================================================

from admissions.api import (  # noqa: E402
    admin_router,
    applications_router,
    auth_router,
    documents_router,
    notifications_router,
)

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(applications_router, prefix="/api", tags=["Applications"])
app.include_router(documents_router, prefix="/api", tags=["Documents"])
app.include_router(admin_router, prefix="/api", tags=["Admin"])
app.include_router(notifications_router, prefix="/api", tags=["Notifications"])

# ============================================================================
# HEALTH CHECK
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check for the load balancer and monitoring"""
    database_ok = check_db_connection()
    return {
        "status": "ok" if database_ok else "error",
        "message": f"{settings.app_name} is running",
        "version": __version__,
        "database": "connected" if database_ok else "disconnected",
    }


# ============================================================================
# ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "admissions.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
    )
