# app/main.py
from __future__ import annotations

# Load .env early so os.getenv works everywhere
from dotenv import load_dotenv
load_dotenv()

import secrets
import time

import sqlalchemy as sa
from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import DomainError, ErrorSeverity, error_aggregator, log_error
from app.core.logging import setup_logging, LoggingMiddleware, get_logger
from app.db.session import get_session

# Routers
from app.api.routes.appointments import router as appointments_router
from app.api.routes.daily_logs import router as daily_logs_router

setup_logging(
    debug=settings.is_development,
    max_log_length=settings.MAX_LOG_LENGTH,
    level=settings.LOG_LEVEL,
)
logger = get_logger(__name__)

app = FastAPI(title="Coachdesk", description="Booking eligibility and daily compliance ledger")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------- Health / readiness (public) --------
@app.get("/healthz", include_in_schema=False)
async def healthz():
    return {"ok": True}

@app.get("/readyz", include_in_schema=False)
async def readyz(db: AsyncSession = Depends(get_session)):
    await db.execute(sa.text("SELECT 1"))
    return {"db": "ok"}

@app.get("/metrics", include_in_schema=False)
async def metrics():
    return {
        "status": "healthy",
        "errors": error_aggregator.get_error_summary(),
        "timestamp": time.time(),
    }

# -------- Error translation --------
def _endpoint(request: Request) -> str:
    """Route template (e.g. /appointments/{appointment_id}) so ids don't fan out error fingerprints."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"

@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    # Policy rejections: user-actionable, each with its own message
    log_error(exc, {"endpoint": _endpoint(request), "code": exc.code}, ErrorSeverity.LOW)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)

@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    log_error(exc, {"endpoint": _endpoint(request)}, ErrorSeverity.HIGH)
    return JSONResponse(
        {"error": "store_unavailable", "message": "The service is temporarily unavailable. Please try again."},
        status_code=503,
    )

# -------- Global security gate (single place) --------
PUBLIC_EXACT = {
    "/healthz",
    "/readyz",
    "/metrics",
    "/favicon.ico",
}

def _is_public(path: str) -> bool:
    return path in PUBLIC_EXACT

@app.middleware("http")
async def lock_all(request: Request, call_next):
    path = request.url.path
    if request.method == "OPTIONS" or _is_public(path):
        return await call_next(request)

    expected = settings.COACHDESK_API_KEY or ""
    api_key = request.headers.get("X-API-Key", "")
    if not expected or not secrets.compare_digest(api_key, expected):
        log_error(Exception("API key validation failed"),
                  {"endpoint": "api_key_gate", "path": path[:100], "has_key": bool(api_key)},
                  ErrorSeverity.MEDIUM)
        return JSONResponse({"detail": "Invalid or missing API key"}, status_code=401)

    return await call_next(request)

# Registered last so it wraps the security gate and sees every request
app.middleware("http")(LoggingMiddleware(
    log_requests=settings.LOG_REQUESTS,
    log_responses=settings.LOG_RESPONSES,
    slow_threshold=settings.SLOW_REQUEST_THRESHOLD,
))

# -------- Include routers --------
app.include_router(appointments_router)
app.include_router(daily_logs_router)

@app.on_event("startup")
async def startup_event():
    logger.info("application_startup", env=settings.APP_ENV, default_timezone=settings.DEFAULT_TIMEZONE)
