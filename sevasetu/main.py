"""
SevaSetu - FastAPI Application Entry Point

Civic complaint tracking from citizen report to verified repair.

DESIGN PRINCIPLES:
- One lifecycle state machine owns every status change
- Field work is gated by a geofence check and before/after evidence
- Automated verification is advisory; a supervisor makes the final call
- Community feedback only on completed work
"""

import logging
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sevasetu.core.exceptions import DomainError, GeofenceFailed, InvalidTransition, MissingEvidence
from sevasetu.core.settings import settings
from sevasetu.routes import community, complaints, health, officer, supervisor, verification
from sevasetu.services.container import get_container
from sevasetu.services.demo_data import seed_demo_complaints
from sevasetu.utils.logger import configure_logging

logger = logging.getLogger(__name__)


# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Civic complaint lifecycle engine: field repair, automated verification, supervisor review",
    debug=settings.DEBUG
)


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    """Map business-rule violations to their HTTP status. Nothing was written."""
    content = {"detail": exc.message, "error": exc.code, "retryable": exc.retryable}
    if isinstance(exc, GeofenceFailed):
        content["distanceMeters"] = exc.distance_meters
        content["toleranceMeters"] = exc.tolerance_meters
    elif isinstance(exc, MissingEvidence):
        content["missing"] = exc.missing
    elif isinstance(exc, InvalidTransition):
        content["currentStatus"] = exc.current
        content["allowedEvents"] = exc.allowed

    logger.info(f"{request.method} {request.url.path} rejected: {exc.code} - {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=content)


# Anything that is not a DomainError is a bug: log the traceback, answer 500
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"🔥 Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "error": type(exc).__name__, "retryable": False},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed payloads never reach the services."""
    errors = exc.errors()
    logger.warning(f"⚠️ Invalid payload on {request.method} {request.url.path}: {len(errors)} error(s)")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(errors), "error": "ValidationError", "retryable": False},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Application lifecycle events
@app.on_event("startup")
async def startup_event():
    """
    Initialize services on application startup.
    Currently: logging, demo data, verification workers
    """
    configure_logging()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    container = get_container()

    if settings.SEED_DEMO_DATA:
        inserted = seed_demo_complaints(container.store, container.clock.now())
        logger.info(f"[STARTUP] Seeded {inserted} demo complaint(s)")

    # Nothing may stay parked in Pending Verification across restarts
    container.verification_engine.recover_pending()

    if settings.VERIFICATION_AUTOSTART:
        container.verification_engine.start()


@app.on_event("shutdown")
async def shutdown_event():
    """
    Cleanup on application shutdown.
    """
    logger.info(f"Shutting down {settings.APP_NAME}")
    get_container().verification_engine.stop()


# Include routers
app.include_router(health.router)
app.include_router(complaints.router)
app.include_router(officer.router)
app.include_router(verification.router)
app.include_router(supervisor.router)
app.include_router(community.router)


@app.get("/")
async def root():
    """Service banner with links to the docs and the health probe."""
    engine = get_container().verification_engine
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "verificationQueueDepth": engine.queue_depth,
        "links": {"docs": "/docs", "health": "/health"},
    }
