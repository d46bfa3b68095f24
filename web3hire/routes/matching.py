"""Candidate/job matching routes."""

from fastapi import APIRouter, Query, Request

from ..auth import CurrentUser
from ..dependencies import Matcher
from ..logging_config import get_logger
from ..models import (
    CandidateMatchResponse,
    JobMatchResponse,
    to_candidate_match_response,
    to_job_match_response,
)
from ..rate_limit import READ_LIMIT, limiter

logger = get_logger("web3hire.routes.matching")
router = APIRouter(prefix="/api/v1/matching", tags=["matching"])


@router.get("/jobs/{job_id}/candidates", response_model=list[CandidateMatchResponse])
@limiter.limit(READ_LIMIT)
async def match_candidates(
    request: Request,
    job_id: str,
    auth: CurrentUser,
    matcher: Matcher,
    limit: int = Query(20, ge=1, le=100),
):
    """Rank every candidate for a job, best match first; returns the top ``limit``."""
    logger.info(f"GET /matching/jobs/{job_id}/candidates | user={auth.user_id}")
    matches = await matcher.match_candidates_for_job(job_id)
    return [to_candidate_match_response(m) for m in matches[:limit]]


@router.get("/candidates/{candidate_id}/jobs", response_model=list[JobMatchResponse])
@limiter.limit(READ_LIMIT)
async def match_jobs(
    request: Request,
    candidate_id: str,
    auth: CurrentUser,
    matcher: Matcher,
    limit: int = Query(20, ge=1, le=100),
):
    """Rank every open job for a candidate. Only the candidate or an Admin may ask."""
    logger.info(f"GET /matching/candidates/{candidate_id}/jobs | user={auth.user_id}")
    matches = await matcher.match_jobs_for_candidate(auth, candidate_id)
    return [to_job_match_response(m) for m in matches[:limit]]
