"""
FastAPI application for the Co-Parent Scheduler.

This is the main entry point for the HTTP API, providing:
- Blocked period, event and weekly proposal endpoints
- Scheduled trigger (cron) endpoints
- Notification webhook registration
- Health and status endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.background import BackgroundTask

from src.api.activity_routes import router as activity_router
from src.api.blocked_routes import router as blocked_router
from src.api.calendar_routes import router as calendar_router
from src.api.cron_routes import router as cron_router
from src.api.dependencies import init_notifier
from src.api.event_routes import router as event_router
from src.api.middleware import RequestLoggingMiddleware
from src.api.models import HealthResponse
from src.api.proposal_routes import router as proposal_router
from src.api.webhook_routes import router as webhook_router
from src.config import get_settings
from src.database import check_connection, get_db
from src.services.exceptions import ScheduleConflictError, SchedulerError

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


# =============================================================================
# Application Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Startup
    logger.info("Starting Co-Parent Scheduler API")
    init_notifier(settings)
    if not settings.cron_enabled:
        logger.warning("CRON_SECRET is not set; cron endpoints will reject every call")
    logger.info("Co-Parent Scheduler API started")

    yield

    # Shutdown
    logger.info("Shutting down Co-Parent Scheduler API")


# =============================================================================
# FastAPI Application
# =============================================================================


app = FastAPI(
    title="Co-Parent Scheduler API",
    description="""
# Co-Parent Scheduler API

Shared custody calendar for two co-parents.

## Core Workflows

### Availability
- **POST /blocked-periods** - Block days you cannot have the child
- Events on blocked days are rejected with **409** and the blocking
  parent is notified

### Weekly Proposal
1. Every week the scheduler calls **/cron/weekly-proposal**
2. Each eligible family gets a 7-day proposal for next week, built from
   both parents' blocked days
3. Both parents call **POST /proposals/current/approve**
4. The second approval writes the week onto the calendar

## Authentication

Requests carry the member id in the `X-User-ID` header (set by the auth
gateway). Cron endpoints take `Authorization: Bearer <CRON_SECRET>` or
`?secret=<CRON_SECRET>`.

## Error Handling

All errors use the same body: `error_type`, `message`, `retryable`.

- **400** - Invalid request (bad date, invalid period)
- **401** - Not authenticated
- **403** - Not a family member, or plan limit
- **404** - Resource not found
- **409** - Date blocked for the assigned parent
- **500** - Server error
    """,
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(blocked_router)
app.include_router(event_router)
app.include_router(calendar_router)
app.include_router(proposal_router)
app.include_router(cron_router)
app.include_router(activity_router)
app.include_router(webhook_router)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(SchedulerError)
async def scheduler_exception_handler(request: Request, exc: SchedulerError):
    """
    Map domain errors to their status code.

    A conflict rejection still notifies the blocking parent; that delivery
    runs after the 409 has been sent.
    """
    if exc.status_code >= 500:
        logger.error(f"{exc.error_type}: {exc.message}", exc_info=exc.original_error)
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.error_type}")

    background = None
    notifier = getattr(request.state, "notifier", None)
    if isinstance(exc, ScheduleConflictError) and notifier is not None and notifier.pending:
        background = BackgroundTask(notifier.deliver_pending)

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_type": exc.error_type,
            "message": exc.message,
            "retryable": exc.retryable,
        },
        background=background,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and parameters are client errors (400)."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg', 'Invalid request')}" if location else "Invalid request"
    return JSONResponse(
        status_code=400,
        content={
            "error_type": "validation_error",
            "message": message,
            "retryable": False,
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with consistent format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_type": "http_error",
            "message": exc.detail,
            "retryable": exc.status_code >= 500,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error_type": "internal_error",
            "message": "An unexpected error occurred",
            "retryable": True,
        },
    )


# =============================================================================
# Health & Status Endpoints
# =============================================================================


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    tags=["System"],
)
def health_check(db: Session = Depends(get_db)) -> HealthResponse:
    """
    Check API health status.

    Returns:
        Health status including database connectivity
    """
    database_connected = check_connection(db)
    return HealthResponse(
        status="healthy" if database_connected else "unhealthy",
        version=VERSION,
        database_connected=database_connected,
    )


# =============================================================================
# Run with Uvicorn
# =============================================================================


def run_server(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """Run the API server with Uvicorn."""
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    settings = get_settings()
    run_server(host=settings.api_host, port=settings.api_port, reload=settings.api_reload)
