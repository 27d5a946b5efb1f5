"""
Database client configuration.
Uses Supabase (PostgreSQL) for the emails and attachments tables.

The client is created lazily on first use and handed to route handlers
through the ``get_db`` dependency, so importing the app never requires a
configured database and tests can swap the client out with
``app.dependency_overrides``.
"""

import logging
import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from fastapi import HTTPException
from supabase import Client, create_client

load_dotenv()

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_supabase_admin() -> Optional[Client]:
    """
    Build the service-role Supabase client from the environment.

    Returns None when SUPABASE_URL or SUPABASE_SERVICE_KEY is missing so
    callers can degrade gracefully (the health check reports 503).
    """
    url = os.getenv("SUPABASE_URL")
    service_key = os.getenv("SUPABASE_SERVICE_KEY")

    if not url or not service_key:
        logger.warning("SUPABASE_URL / SUPABASE_SERVICE_KEY not set; database client unavailable")
        return None

    return create_client(url, service_key)


def get_db() -> Client:
    """
    FastAPI dependency that yields the storage client for a request.

    Raises:
        HTTPException: 503 if the database client is not configured
    """
    client = get_supabase_admin()
    if client is None:
        raise HTTPException(
            status_code=503,
            detail="Database client unavailable: SUPABASE_URL and SUPABASE_SERVICE_KEY must be set",
        )
    return client
