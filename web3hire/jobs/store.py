"""
Jobs storage layer.

Provides persistence for job postings using the Supabase backend.
"""

import re
from typing import Any, Optional, Protocol

from supabase import Client

from ..database import JOBS_TABLE, execute
from ..logging_config import get_logger
from ..utils import utc_now
from .models import Job, JobStatus

logger = get_logger("web3hire.jobs.store")

# Characters with meaning inside a PostgREST or_() filter
_FILTER_SPECIALS = re.compile(r"[,()%*\\]")


class JobStore(Protocol):
    """Protocol for job persistence backends."""

    async def insert(self, data: dict[str, Any]) -> Job:
        """Persist a new job posting and return it."""
        ...

    async def get(self, job_id: str) -> Optional[Job]:
        """Get a job by ID."""
        ...

    async def list_jobs(
        self,
        status: Optional[str] = None,
        employer_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Job]:
        """List jobs, newest first."""
        ...

    async def search(self, query: str, limit: int = 50) -> list[Job]:
        """Case-insensitive match on title or description."""
        ...

    async def update_if(
        self,
        job_id: str,
        expected_version: int,
        changes: dict[str, Any],
        expected_status: Optional[str] = None,
    ) -> Optional[Job]:
        """Apply ``changes`` only if version (and status) still match."""
        ...


class SupabaseJobStore:
    """Job store backed by the Supabase ``jobs`` table."""

    def __init__(self, db: Client):
        self.db = db

    async def insert(self, data: dict[str, Any]) -> Job:
        now = utc_now().isoformat()
        row = {
            **data,
            "status": JobStatus.OPEN.value,
            "applicants": [],
            "version": 1,
            "created_at": now,
            "updated_at": now,
        }
        row.pop("id", None)
        result = execute(self.db.table(JOBS_TABLE).insert(row), "create job")
        return Job.from_dict(result.data[0])

    async def get(self, job_id: str) -> Optional[Job]:
        result = execute(self.db.table(JOBS_TABLE).select("*").eq("id", job_id), "load job")
        return Job.from_dict(result.data[0]) if result.data else None

    async def list_jobs(
        self,
        status: Optional[str] = None,
        employer_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Job]:
        query = self.db.table(JOBS_TABLE).select("*")
        if status:
            query = query.eq("status", status)
        if employer_id:
            query = query.eq("employer_id", employer_id)
        query = query.order("created_at", desc=True).range(offset, offset + limit - 1)
        result = execute(query, "list jobs")
        return [Job.from_dict(row) for row in result.data or []]

    async def search(self, query: str, limit: int = 50) -> list[Job]:
        term = _FILTER_SPECIALS.sub(" ", query).strip()
        if not term:
            return []
        pattern = f"%{term}%"
        result = execute(
            self.db.table(JOBS_TABLE)
            .select("*")
            .or_(f"title.ilike.{pattern},description.ilike.{pattern}")
            .order("created_at", desc=True)
            .limit(limit),
            "search jobs",
        )
        return [Job.from_dict(row) for row in result.data or []]

    async def update_if(
        self,
        job_id: str,
        expected_version: int,
        changes: dict[str, Any],
        expected_status: Optional[str] = None,
    ) -> Optional[Job]:
        update_data = {
            **changes,
            "version": expected_version + 1,
            "updated_at": utc_now().isoformat(),
        }
        query = (
            self.db.table(JOBS_TABLE)
            .update(update_data)
            .eq("id", job_id)
            .eq("version", expected_version)
        )
        if expected_status is not None:
            query = query.eq("status", expected_status)
        result = execute(query, "update job")

        if result.data:
            return Job.from_dict(result.data[0])

        logger.warning(
            f"Conditional update matched nothing on job {job_id}: "
            f"expected version {expected_version}, status {expected_status or '*'}"
        )
        return None
