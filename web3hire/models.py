"""Pydantic models for API requests and responses."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .identity.challenge import VerificationResult
from .identity.models import User
from .jobs.models import EmploymentType, JobStatus
from .jobs.service import JobView
from .matching import CandidateMatch, JobMatch
from .tasks.models import RewardToken, TaskStatus
from .tasks.workflow import TaskView

WALLET_PATTERN = r"^0x[a-fA-F0-9]{40}$"

# =============================================================================
# Auth Models
# =============================================================================


class NonceRequest(BaseModel):
    """Request a challenge message for a wallet."""
    wallet_address: str = Field(..., pattern=WALLET_PATTERN)


class NonceResponse(BaseModel):
    """Challenge message the wallet must sign."""
    message: str


class VerifyRequest(BaseModel):
    """Signed challenge submitted for verification."""
    wallet_address: str = Field(..., pattern=WALLET_PATTERN)
    signature: str = Field(..., min_length=1)


# =============================================================================
# User Models
# =============================================================================


class SocialLinks(BaseModel):
    github: str | None = None
    twitter: str | None = None
    linkedin: str | None = None
    website: str | None = None


class Preferences(BaseModel):
    """Job preferences used by matching."""
    remote: bool | None = None
    job_type: EmploymentType | None = None


class UserResponse(BaseModel):
    """Public user record. The nonce is never exposed."""
    id: str
    wallet_address: str | None = None
    role: str
    name: str | None = None
    email: str | None = None
    skills: list[str] = []
    bio: str | None = None
    profile_image: str | None = None
    resume_ipfs_hash: str | None = None
    social_links: dict[str, str | None] = {}
    preferences: dict[str, Any] = {}
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserUpdate(BaseModel):
    """Profile changes. Role, wallet and nonce are not patchable."""
    name: str | None = Field(None, max_length=100)
    email: str | None = None
    skills: list[str] | None = None
    bio: str | None = Field(None, max_length=2000)
    profile_image: str | None = None
    resume_ipfs_hash: str | None = None
    social_links: SocialLinks | None = None
    preferences: Preferences | None = None

    @field_validator("skills")
    @classmethod
    def validate_skills(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        return [s.strip() for s in v if s.strip()]


class AuthResponse(BaseModel):
    """Session token plus the authenticated user."""
    token: str
    token_type: str = "bearer"
    user: UserResponse


# =============================================================================
# Task Models
# =============================================================================


class TaskCreate(BaseModel):
    """Request to create a task."""
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    reward: float = Field(..., ge=0)
    reward_token: RewardToken = RewardToken.USDT
    deadline: datetime | None = None


class TaskUpdate(BaseModel):
    """Patch for a task's descriptive fields."""
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1)
    reward: float | None = Field(None, ge=0)
    reward_token: RewardToken | None = None
    deadline: datetime | None = None

    @field_validator("title", "description", "reward", "reward_token")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class BidCreate(BaseModel):
    """Request to bid on a task."""
    proposal: str = Field(..., min_length=1)
    bid_amount: float | None = Field(None, ge=0)


class AwardRequest(BaseModel):
    """Request to award a task to one of its bidders."""
    bidder_id: str = Field(..., min_length=1)


class DeliverableCreate(BaseModel):
    """Request to submit a deliverable."""
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    file_url: str | None = None


class BidResponse(BaseModel):
    user_id: str
    user: UserResponse | None = None
    proposal: str
    bid_amount: float | None = None
    bid_date: datetime


class DeliverableResponse(BaseModel):
    title: str
    description: str | None = None
    file_url: str | None = None
    submitted_at: datetime


class TaskResponse(BaseModel):
    """Task with employer, bidders and winner resolved."""
    id: str
    employer_id: str
    employer: UserResponse | None = None
    title: str
    description: str
    reward: float
    reward_token: RewardToken
    deadline: datetime | None = None
    status: TaskStatus
    bidders: list[BidResponse]
    winner: UserResponse | None = None
    deliverables: list[DeliverableResponse]
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TaskListResponse(BaseModel):
    tasks: list[TaskResponse]
    limit: int
    offset: int


# =============================================================================
# Job Models
# =============================================================================


class JobCreate(BaseModel):
    """Request to post a job."""
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    salary: str = Field(..., min_length=1)
    skills_required: list[str] = Field(default_factory=list)
    remote: bool = False
    location: str | None = None
    company_name: str | None = None
    company_logo: str | None = None
    employment_type: EmploymentType = EmploymentType.FULL_TIME


class JobUpdate(BaseModel):
    """Patch for a job posting."""
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1)
    salary: str | None = None
    skills_required: list[str] | None = None
    remote: bool | None = None
    location: str | None = None
    company_name: str | None = None
    company_logo: str | None = None
    employment_type: EmploymentType | None = None

    @field_validator(
        "title", "description", "salary", "skills_required", "remote", "employment_type"
    )
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class JobResponse(BaseModel):
    """Job with employer and applicants resolved."""
    id: str
    employer_id: str
    employer: UserResponse | None = None
    title: str
    description: str
    salary: str
    skills_required: list[str]
    remote: bool
    location: str | None = None
    company_name: str | None = None
    company_logo: str | None = None
    employment_type: str
    status: JobStatus
    applicants: list[UserResponse]
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class JobListResponse(BaseModel):
    jobs: list[JobResponse]
    limit: int
    offset: int


# =============================================================================
# Matching Models
# =============================================================================


class CandidateMatchResponse(BaseModel):
    candidate: UserResponse
    score: int = Field(..., ge=0, le=100)
    reasons: list[str]


class JobMatchResponse(BaseModel):
    job_id: str
    title: str
    company_name: str | None = None
    employment_type: str
    remote: bool
    score: int = Field(..., ge=0, le=100)
    reasons: list[str]


# =============================================================================
# Converters
# =============================================================================


def to_user_response(user: User | None) -> UserResponse | None:
    """Convert a User to its public response model."""
    if user is None:
        return None
    return UserResponse(**user.to_dict())


def to_auth_response(result: VerificationResult) -> AuthResponse:
    return AuthResponse(token=result.token, user=to_user_response(result.user))


def to_task_response(view: TaskView) -> TaskResponse:
    """Convert a projected task to its response model."""
    task = view.task
    return TaskResponse(
        id=task.id,
        employer_id=task.employer_id,
        employer=to_user_response(view.employer),
        title=task.title,
        description=task.description,
        reward=task.reward,
        reward_token=task.reward_token,
        deadline=task.deadline,
        status=task.status,
        bidders=[
            BidResponse(
                user_id=b.bid.user_id,
                user=to_user_response(b.user),
                proposal=b.bid.proposal,
                bid_amount=b.bid.bid_amount,
                bid_date=b.bid.bid_date,
            )
            for b in view.bidders
        ],
        winner=to_user_response(view.winner),
        deliverables=[
            DeliverableResponse(
                title=d.title,
                description=d.description,
                file_url=d.file_url,
                submitted_at=d.submitted_at,
            )
            for d in task.deliverables
        ],
        version=task.version,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


def to_job_response(view: JobView) -> JobResponse:
    """Convert a projected job to its response model."""
    job = view.job
    return JobResponse(
        id=job.id,
        employer_id=job.employer_id,
        employer=to_user_response(view.employer),
        title=job.title,
        description=job.description,
        salary=job.salary,
        skills_required=job.skills_required,
        remote=job.remote,
        location=job.location,
        company_name=job.company_name,
        company_logo=job.company_logo,
        employment_type=job.employment_type,
        status=job.status,
        applicants=[to_user_response(u) for u in view.applicants],
        version=job.version,
        created_at=job.created_at,
        updated_at=job.updated_at,
    )


def to_candidate_match_response(match: CandidateMatch) -> CandidateMatchResponse:
    return CandidateMatchResponse(
        candidate=to_user_response(match.candidate),
        score=match.score,
        reasons=match.reasons,
    )


def to_job_match_response(match: JobMatch) -> JobMatchResponse:
    return JobMatchResponse(
        job_id=match.job.id,
        title=match.job.title,
        company_name=match.job.company_name,
        employment_type=match.job.employment_type,
        remote=match.job.remote,
        score=match.score,
        reasons=match.reasons,
    )
