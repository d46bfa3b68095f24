"""Job board routes."""

from fastapi import APIRouter, Query, Request, status

from ..auth import CurrentUser
from ..dependencies import Board
from ..jobs.models import JobStatus
from ..logging_config import get_logger
from ..models import JobCreate, JobListResponse, JobResponse, JobUpdate, to_job_response
from ..rate_limit import BID_LIMIT, READ_LIMIT, WRITE_LIMIT, limiter

logger = get_logger("web3hire.routes.jobs")
router = APIRouter(prefix="/api/v1/jobs", tags=["jobs"])


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
async def create_job(
    request: Request,
    body: JobCreate,
    auth: CurrentUser,
    board: Board,
):
    """Post a job. Only Employers and Admins can post."""
    logger.info(f"POST /jobs | employer={auth.user_id} | title={body.title[:50]}")
    return to_job_response(await board.create_job(auth, body.model_dump()))


@router.get("", response_model=JobListResponse)
@limiter.limit(READ_LIMIT)
async def list_jobs(
    request: Request,
    board: Board,
    status_filter: JobStatus | None = Query(None, alias="status"),
    employer_id: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """List jobs, newest first. Filter by employer to get one employer's postings."""
    status_value = status_filter.value if status_filter else None
    logger.info(f"GET /jobs | status={status_value} | employer={employer_id}")
    views = await board.list_jobs(
        status=status_value, employer_id=employer_id, limit=limit, offset=offset
    )
    return JobListResponse(jobs=[to_job_response(v) for v in views], limit=limit, offset=offset)


@router.get("/search", response_model=list[JobResponse])
@limiter.limit(READ_LIMIT)
async def search_jobs(
    request: Request,
    board: Board,
    q: str = Query(..., min_length=1, max_length=100),
    limit: int = Query(50, ge=1, le=100),
):
    """Case-insensitive search over job titles and descriptions."""
    logger.info(f"GET /jobs/search | q={q[:50]}")
    return [to_job_response(v) for v in await board.search_jobs(q, limit=limit)]


@router.get("/{job_id}", response_model=JobResponse)
@limiter.limit(READ_LIMIT)
async def get_job(
    request: Request,
    job_id: str,
    board: Board,
):
    """Get a job with its employer and applicants."""
    logger.info(f"GET /jobs/{job_id}")
    return to_job_response(await board.get_job(job_id))


@router.patch("/{job_id}", response_model=JobResponse)
@limiter.limit(WRITE_LIMIT)
async def update_job(
    request: Request,
    job_id: str,
    body: JobUpdate,
    auth: CurrentUser,
    board: Board,
):
    """Update a job posting (owner or Admin)."""
    patch = body.model_dump(exclude_unset=True)
    logger.info(f"PATCH /jobs/{job_id} | user={auth.user_id} | fields={sorted(patch)}")
    return to_job_response(await board.update_job(auth, job_id, patch))


@router.post("/{job_id}/close", response_model=JobResponse)
@limiter.limit(WRITE_LIMIT)
async def close_job(
    request: Request,
    job_id: str,
    auth: CurrentUser,
    board: Board,
):
    """Close a job to new applications (owner or Admin)."""
    logger.info(f"POST /jobs/{job_id}/close | user={auth.user_id}")
    return to_job_response(await board.close_job(auth, job_id))


@router.post("/{job_id}/apply", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(BID_LIMIT)
async def apply_to_job(
    request: Request,
    job_id: str,
    auth: CurrentUser,
    board: Board,
):
    """Apply to an Open job. Candidates only, once per job."""
    logger.info(f"POST /jobs/{job_id}/apply | applicant={auth.user_id}")
    return to_job_response(await board.apply_to_job(auth, job_id))
