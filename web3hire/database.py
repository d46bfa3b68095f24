"""Database utilities for Supabase integration."""

from typing import Annotated

import httpx
from fastapi import Depends
from postgrest.exceptions import APIError

from supabase import Client, create_client

from .config import Settings, get_settings
from .errors import ConflictError, UpstreamFailureError
from .logging_config import get_logger

logger = get_logger("web3hire.database")

_supabase_client: Client | None = None


def get_supabase_client(settings: Settings | None = None) -> Client:
    """Get cached Supabase client."""
    global _supabase_client
    if _supabase_client is None:
        if settings is None:
            settings = get_settings()
        # Prefer new secret key, fall back to legacy service_role_key
        api_key = settings.supabase_secret_key or settings.supabase_service_role_key
        if not api_key:
            raise ValueError("Either SUPABASE_SECRET_KEY or SUPABASE_SERVICE_ROLE_KEY must be set")
        _supabase_client = create_client(settings.supabase_url, api_key)
    return _supabase_client


def get_db(settings: Annotated[Settings, Depends(get_settings)]) -> Client:
    """FastAPI dependency for Supabase client."""
    return get_supabase_client(settings)


# Type alias for dependency injection
Database = Annotated[Client, Depends(get_db)]


# =============================================================================
# Table Names
# =============================================================================

USERS_TABLE = "users"
TASKS_TABLE = "tasks"
JOBS_TABLE = "jobs"

# Postgres error code for unique_violation
UNIQUE_VIOLATION = "23505"


def execute(query, action: str):
    """Execute a PostgREST query, translating failures into the error taxonomy.

    Unique-constraint violations become ConflictError; every other database
    or transport failure becomes UpstreamFailureError.
    """
    try:
        return query.execute()
    except APIError as e:
        if e.code == UNIQUE_VIOLATION:
            raise ConflictError(f"Duplicate record while trying to {action}") from e
        logger.error(f"Database error | action={action} | code={e.code} | {e.message}")
        raise UpstreamFailureError(f"Database error while trying to {action}") from e
    except httpx.HTTPError as e:
        logger.error(f"Database unreachable | action={action} | {e}")
        raise UpstreamFailureError(f"Database unavailable while trying to {action}") from e
