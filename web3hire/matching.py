"""Candidate/job matching.

A plain weighted sum over profile signals, clamped to 0-100. Results are
sorted by score, highest first; ties keep the store's order.
"""

import math
from dataclasses import dataclass
from typing import Optional

from .auth import AuthContext, require
from .errors import NotFoundError
from .identity.models import Role, User
from .identity.store import IdentityStore
from .jobs.models import Job, JobStatus
from .jobs.store import JobStore
from .logging_config import get_logger

logger = get_logger("web3hire.matching")

MAX_SCORE = 100
CANDIDATE_SKILL_WEIGHT = 50
RESUME_BONUS = 20
PROFILE_FIELD_BONUS = 10
MIN_BIO_LENGTH = 50
JOB_SKILL_WEIGHT = 60
JOB_TYPE_BONUS = 20
REMOTE_BONUS = 20
PAGE_SIZE = 500


@dataclass
class CandidateMatch:
    candidate: User
    score: int
    reasons: list[str]


@dataclass
class JobMatch:
    job: Job
    score: int
    reasons: list[str]


def _skills_overlap(wanted: list[str], offered: list[str]) -> list[str]:
    """Entries of ``wanted`` that some ``offered`` skill contains or is contained by."""
    offered_lower = [s.lower() for s in offered]
    return [
        skill
        for skill in wanted
        if any(skill.lower() in o or o in skill.lower() for o in offered_lower)
    ]


def _clamp(score: int) -> int:
    return max(0, min(MAX_SCORE, score))


def _skill_points(matched: int, required: int, weight: int) -> int:
    """Share of ``weight`` earned, rounded half up."""
    return min(weight, math.floor(matched / required * weight + 0.5))


def score_candidate(job: Job, candidate: User) -> CandidateMatch:
    """Score how well a candidate fits a job."""
    score = 0
    reasons = []

    if candidate.skills and job.skills_required:
        matching = _skills_overlap(candidate.skills, job.skills_required)
        score += _skill_points(len(matching), len(job.skills_required), CANDIDATE_SKILL_WEIGHT)
        if matching:
            reasons.append(f"Has {len(matching)} relevant skills")

    if candidate.resume_ipfs_hash:
        score += RESUME_BONUS
        reasons.append("Provided a resume")

    completeness = 0
    if candidate.name:
        completeness += PROFILE_FIELD_BONUS
    if candidate.bio and len(candidate.bio) > MIN_BIO_LENGTH:
        completeness += PROFILE_FIELD_BONUS
    if any(candidate.social_links.values()):
        completeness += PROFILE_FIELD_BONUS
    score += completeness
    if completeness:
        reasons.append("Profile is complete")

    return CandidateMatch(candidate=candidate, score=_clamp(score), reasons=reasons)


def score_job(candidate: User, job: Job) -> JobMatch:
    """Score how well a job fits a candidate."""
    score = 0
    reasons = []

    if candidate.skills and job.skills_required:
        matching = _skills_overlap(job.skills_required, candidate.skills)
        score += _skill_points(len(matching), len(job.skills_required), JOB_SKILL_WEIGHT)
        if matching:
            reasons.append("Skills match the job requirements")

    preferences = candidate.preferences or {}
    if preferences.get("job_type") and preferences["job_type"] == job.employment_type:
        score += JOB_TYPE_BONUS
        reasons.append("Employment type matches preference")

    remote: Optional[bool] = preferences.get("remote")
    if remote is not None and remote == job.remote:
        score += REMOTE_BONUS
        reasons.append("Remote option matches preference")

    return JobMatch(job=job, score=_clamp(score), reasons=reasons)


class MatchingService:
    """Ranks candidates for jobs and jobs for candidates.

    Every candidate (or every open job) is scored; the stores are read in
    pages of ``page_size`` until a short page comes back.
    """

    def __init__(self, identities: IdentityStore, jobs: JobStore, page_size: int = PAGE_SIZE):
        self.identities = identities
        self.jobs = jobs
        self.page_size = page_size

    async def match_candidates_for_job(self, job_id: str) -> list[CandidateMatch]:
        job = await self.jobs.get(job_id)
        if job is None:
            raise NotFoundError(f"Job with ID {job_id} not found")

        matches = []
        offset = 0
        while True:
            batch = await self.identities.list_users(
                role=Role.CANDIDATE.value, limit=self.page_size, offset=offset
            )
            matches.extend(score_candidate(job, c) for c in batch)
            if len(batch) < self.page_size:
                break
            offset += self.page_size

        matches.sort(key=lambda m: m.score, reverse=True)
        logger.info(f"Matched candidates | job={job_id} | scored={len(matches)}")
        return matches

    async def match_jobs_for_candidate(self, auth: AuthContext, candidate_id: str) -> list[JobMatch]:
        require(auth, "Not authorized to view these matches", owner_id=candidate_id)

        candidate = await self.identities.get_by_id(candidate_id)
        if candidate is None:
            raise NotFoundError(f"Candidate with ID {candidate_id} not found")

        matches = []
        offset = 0
        while True:
            batch = await self.jobs.list_jobs(
                status=JobStatus.OPEN.value, limit=self.page_size, offset=offset
            )
            matches.extend(score_job(candidate, j) for j in batch)
            if len(batch) < self.page_size:
                break
            offset += self.page_size

        matches.sort(key=lambda m: m.score, reverse=True)
        logger.info(f"Matched jobs | candidate={candidate_id} | scored={len(matches)}")
        return matches
