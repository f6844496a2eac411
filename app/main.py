"""FastAPI application entry point."""
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.core.config import settings
from app.core.structured_logging import build_log_context
from app.db.session import engine
from app.services.complaint_errors import ComplaintServiceError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,  # 10% of requests for performance monitoring
        send_default_pii=False,  # Student identities must never leave the service
    )
    logger.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.core.rate_limit import limiter

# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Complaint Portal API",
    description="University complaint intake, lifecycle and audit API",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    expose_headers=["X-Request-ID", "Content-Disposition"],
)


# ============================================================================
# Request logging
# ============================================================================

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Stamp X-Request-ID and emit one structured log line per request."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = round((time.perf_counter() - started) * 1000, 1)

    route = request.scope.get("route")
    context = build_log_context(
        request_id=request_id,
        route=getattr(route, "path", None),
        method=request.method,
    )
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms}ms)",
        extra=context,
    )
    response.headers["X-Request-ID"] = request_id
    return response


# ============================================================================
# Domain errors
# ============================================================================

ERROR_STATUS_CODES: dict[str, int] = {
    "ComplaintNotFound": 404,
    "PermissionDenied": 403,
    "NotOwner": 403,
    "NotAuthor": 403,
    "ReopenNotAllowed": 403,
    "AlreadyRated": 409,
    "StaleComplaint": 409,
    "InvalidTransition": 409,
    "RatingNotAllowed": 409,
    "DraftRequired": 409,
    "InvalidRatingValue": 422,
    "JustificationRequired": 422,
    "UnknownAssignee": 422,
    "InvalidEscalationRule": 422,
    "InvalidTags": 422,
    "InvalidInput": 422,
}


@app.exception_handler(ComplaintServiceError)
async def complaint_error_handler(request: Request, exc: ComplaintServiceError):
    """Render a rejected operation as {kind, field, detail}."""
    status_code = ERROR_STATUS_CODES.get(exc.kind, 400)
    logger.info(
        f"Rejected {request.method} {request.url.path}: {exc.kind} ({exc.field})"
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# ============================================================================
# Routers
# ============================================================================

from app.routers import (
    auth,
    comments,
    complaints,
    escalation_rules,
    feedback,
    internal,
    notifications,
    ratings,
)

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(complaints.router, prefix="/complaints", tags=["complaints"])

# Mixed paths: /complaints/{id}/... and /comments/{id}
app.include_router(comments.router, tags=["comments"])
app.include_router(ratings.router, tags=["ratings"])
app.include_router(feedback.router, tags=["feedback"])

app.include_router(
    escalation_rules.router, prefix="/escalation-rules", tags=["escalation-rules"]
)
app.include_router(notifications.router, prefix="/notifications", tags=["notifications"])

# Internal scheduled endpoints (cron jobs)
app.include_router(internal.router)


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
