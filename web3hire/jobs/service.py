"""
Job board service.

Jobs are simpler than tasks: employers post them, candidates apply, and the
owner closes them. Writes use the same version-keyed conditional update as
the task ledger.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..auth import AuthContext, require
from ..cache import JOBS_PREFIX, TTLCache, make_key
from ..errors import ConflictError, ForbiddenError, InvalidStateError, NotFoundError
from ..identity.models import Role, User
from ..identity.store import IdentityStore
from ..logging_config import get_logger
from .models import JOB_NULLABLE_FIELDS, JOB_PATCH_FIELDS, EmploymentType, Job, JobStatus
from .store import JobStore

logger = get_logger("web3hire.jobs.service")

JOB_CREATOR_ROLES = (Role.EMPLOYER, Role.ADMIN)


@dataclass
class JobView:
    """A job with employer and applicants resolved."""

    job: Job
    employer: Optional[User]
    applicants: list[User]


def _clean(data: dict[str, Any]) -> dict[str, Any]:
    fields = {}
    for key, value in data.items():
        if key not in JOB_PATCH_FIELDS:
            continue
        if value is None and key not in JOB_NULLABLE_FIELDS:
            continue
        if isinstance(value, EmploymentType):
            value = value.value
        if key == "skills_required" and value is not None:
            value = [s.strip() for s in value if s and s.strip()]
        fields[key] = value
    return fields


class JobBoard:
    """Job posting operations."""

    def __init__(self, store: JobStore, identities: IdentityStore, cache: Optional[TTLCache] = None):
        self.store = store
        self.identities = identities
        self.cache = cache

    async def get_job(self, job_id: str) -> JobView:
        job = await self._load(job_id)
        return (await self._project([job]))[0]

    async def list_jobs(
        self,
        status: Optional[str] = None,
        employer_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[JobView]:
        key = make_key(JOBS_PREFIX, status=status, employer=employer_id, limit=limit, offset=offset)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        jobs = await self.store.list_jobs(status=status, employer_id=employer_id, limit=limit, offset=offset)
        views = await self._project(jobs)
        if self.cache is not None:
            self.cache.set(key, views)
        return views

    async def search_jobs(self, query: str, limit: int = 50) -> list[JobView]:
        jobs = await self.store.search(query, limit=limit)
        return await self._project(jobs)

    async def create_job(self, auth: AuthContext, data: dict[str, Any]) -> JobView:
        require(auth, "Only employers can create jobs", roles=JOB_CREATOR_ROLES)

        fields = _clean(data)
        fields["employer_id"] = auth.user_id
        job = await self.store.insert(fields)
        self._invalidate()
        logger.info(f"Job created | id={job.id} | employer={auth.user_id}")
        return (await self._project([job]))[0]

    async def update_job(self, auth: AuthContext, job_id: str, patch: dict[str, Any]) -> JobView:
        job = await self._load(job_id)
        require(auth, "Not authorized to update this job", owner_id=job.employer_id)

        changes = _clean(patch)
        if not changes:
            return (await self._project([job]))[0]

        updated = await self._guarded_update(job, changes, check=lambda j: None)
        logger.info(f"Job updated | id={job_id} | fields={sorted(changes)}")
        return (await self._project([updated]))[0]

    async def close_job(self, auth: AuthContext, job_id: str) -> JobView:
        job = await self._load(job_id)
        require(auth, "Not authorized to close this job", owner_id=job.employer_id)

        def check(j: Job) -> None:
            if j.status == JobStatus.CLOSED.value:
                raise InvalidStateError("This job is already closed")

        check(job)
        updated = await self._guarded_update(job, {"status": JobStatus.CLOSED.value}, check=check)
        logger.info(f"Job closed | id={job_id} | by={auth.user_id}")
        return (await self._project([updated]))[0]

    async def apply_to_job(self, auth: AuthContext, job_id: str) -> JobView:
        """Add the calling candidate to a job's applicants.

        Raises:
            ForbiddenError: Caller is not a Candidate.
            NotFoundError: Job does not exist.
            InvalidStateError: Job is not Open.
            ConflictError: Caller already applied, or a concurrent write won.
        """
        if auth.role != Role.CANDIDATE.value:
            raise ForbiddenError("Only candidates can apply to jobs")

        job = await self._load(job_id)

        def check(j: Job) -> None:
            if j.status != JobStatus.OPEN.value:
                raise InvalidStateError("This job is not accepting applications")
            if auth.user_id in j.applicants:
                raise ConflictError("You have already applied to this job")

        check(job)
        updated = await self._guarded_update(
            job,
            {"applicants": list(job.applicants) + [auth.user_id]},
            check=check,
            expected_status=JobStatus.OPEN.value,
        )
        logger.info(f"Application recorded | job={job_id} | applicant={auth.user_id}")
        return (await self._project([updated]))[0]

    async def _load(self, job_id: str) -> Job:
        job = await self.store.get(job_id)
        if job is None:
            raise NotFoundError("Job not found")
        return job

    async def _guarded_update(
        self,
        job: Job,
        changes: dict[str, Any],
        check: Callable[[Job], None],
        expected_status: Optional[str] = None,
    ) -> Job:
        updated = await self.store.update_if(
            job.id, job.version, changes, expected_status=expected_status
        )
        if updated is not None:
            self._invalidate()
            return updated

        current = await self.store.get(job.id)
        if current is None:
            raise NotFoundError("Job not found")
        check(current)
        raise ConflictError("Job was modified by another request. Please refresh and try again.")

    def _invalidate(self) -> None:
        if self.cache is not None:
            self.cache.clear_prefix(JOBS_PREFIX)

    async def _project(self, jobs: list[Job]) -> list[JobView]:
        user_ids: set[str] = set()
        for job in jobs:
            user_ids.add(job.employer_id)
            user_ids.update(job.applicants)
        users = await self.identities.get_many(user_ids)
        return [
            JobView(
                job=job,
                employer=users.get(job.employer_id),
                applicants=[users[uid] for uid in job.applicants if uid in users],
            )
            for job in jobs
        ]
