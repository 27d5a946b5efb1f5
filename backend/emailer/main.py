"""
Emailer Backend API
FastAPI application for composing emails and browsing sent-email history.
"""

import logging
import os
from datetime import datetime, timezone
from typing import List

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from emailer.db import get_supabase_admin
from emailer.models.email import HealthStatus
from emailer.routers import emails

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

app = FastAPI(
    title="Emailer API",
    description="Compose emails with attachments and browse sent-email history",
    version=VERSION,
)


def get_cors_origins() -> List[str]:
    """
    Build the list of allowed CORS origins.

    Always includes http://localhost:3000 (compose form dev server).

    Additional origins are read from the CORS_ORIGINS environment variable
    as a comma-separated list, e.g.:
        CORS_ORIGINS=https://mail.example.com,https://preview.example.com

    Duplicates are removed while preserving order.
    """
    always_included = ["http://localhost:3000"]

    extra_origins: List[str] = []
    cors_env = os.getenv("CORS_ORIGINS", "").strip()
    if cors_env:
        extra_origins = [o.strip() for o in cors_env.split(",") if o.strip()]

    seen: set = set()
    origins: List[str] = []
    for origin in always_included + extra_origins:
        if origin not in seen:
            seen.add(origin)
            origins.append(origin)

    return origins


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(emails.router, prefix="/api/emails", tags=["emails"])


@app.on_event("startup")
async def log_startup_url() -> None:
    """Log where the API is reachable. HOST_PORT reflects Docker port mapping."""
    host_port = os.getenv("HOST_PORT", "8000")
    logger.info("Emailer API running at http://localhost:%s", host_port)


@app.get("/")
async def root():
    return {"message": "Emailer API", "version": VERSION}


@app.get("/health", response_model=HealthStatus)
async def health():
    return HealthStatus(status="ok", timestamp=datetime.now(timezone.utc).isoformat())


@app.get("/health/db")
async def health_db():
    """
    Test the Supabase database connection.

    Selects a single id from the emails table. Returns 503 on failure.
    """
    client = get_supabase_admin()
    if client is None:
        raise HTTPException(
            status_code=503,
            detail="Database client unavailable: SUPABASE_SERVICE_KEY is not configured",
        )

    try:
        client.table("emails").select("id").limit(1).execute()
        return {"status": "ok", "database": "reachable"}
    except Exception as exc:
        logger.error(f"Database health check failed: {exc}")
        raise HTTPException(
            status_code=503,
            detail=f"Database connection failed: {str(exc)}",
        )
