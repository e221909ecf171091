"""
Competitor Lemonade API

FastAPI application that:
1. Accepts competitor lists and runs the analysis pipeline
2. Serves report history and the tracked-competitor watch-list
3. Exposes usage, suggestion and social sentiment endpoints

Run locally:
    uvicorn api.main:app --reload
"""

import logging
import os
import sys
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lemonade import __version__
from lemonade.analysis.summarizer import ReportGenerationError
from lemonade.config import get_settings
from lemonade.database import init_db, check_db_connection
from lemonade.pipeline import InvalidAnalysisRequest
from lemonade.quota import QuotaExceededError

from api import analyze, competitors, reports, users

# Configure logging to stdout (hosting platforms treat stderr as errors)
logging.basicConfig(
    level=getattr(logging, get_settings().LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
    force=True,
)
logger = logging.getLogger(__name__)

# Quiet down chatty loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

app = FastAPI(
    title="Competitor Lemonade",
    description="Competitive intelligence reports from public signals and Claude AI",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(analyze.router)
app.include_router(reports.router)
app.include_router(competitors.router)
app.include_router(users.router)


# ============================================================================
# STARTUP - Initialize Database
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Initialize database on startup."""
    logger.info("Initializing database...")
    try:
        init_db()
        if check_db_connection():
            logger.info("Database connection verified")
        else:
            logger.warning("Database connection check failed - continuing anyway")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")


# ============================================================================
# ERROR MAPPING
# ============================================================================

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        f"{'.'.join(str(part) for part in err.get('loc', []) if part != 'body')}: {err.get('msg')}"
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"message": "Invalid request", "errors": errors})


@app.exception_handler(InvalidAnalysisRequest)
async def invalid_analysis_handler(request: Request, exc: InvalidAnalysisRequest):
    return JSONResponse(status_code=400, content={"message": str(exc), "errors": exc.errors})


@app.exception_handler(QuotaExceededError)
async def quota_exceeded_handler(request: Request, exc: QuotaExceededError):
    is_guest = exc.decision.is_guest
    return JSONResponse(
        status_code=429,
        content={
            "message": str(exc),
            "limit": exc.limit,
            "current": exc.current,
            "isLoggedIn": not is_guest,
            "requiresSignup": is_guest,
        },
    )


@app.exception_handler(ReportGenerationError)
async def report_generation_handler(request: Request, exc: ReportGenerationError):
    return JSONResponse(
        status_code=502,
        content={"message": "Failed to generate report", "error": str(exc)},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# ============================================================================
# HEALTH
# ============================================================================

@app.get("/")
async def root():
    """Liveness probe."""
    return {"status": "ok", "service": "Competitor Lemonade"}


@app.get("/api/health")
async def health_check():
    """Service and database status."""
    db_ok = check_db_connection()
    return {
        "status": "healthy" if db_ok else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "database": "connected" if db_ok else "disconnected",
    }
