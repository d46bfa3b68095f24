"""Job posting data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..utils import parse_datetime


class JobStatus(str, Enum):
    """Job posting status."""

    OPEN = "Open"
    CLOSED = "Closed"
    FILLED = "Filled"
    DRAFT = "Draft"


class EmploymentType(str, Enum):
    FULL_TIME = "Full-time"
    PART_TIME = "Part-time"
    CONTRACT = "Contract"
    FREELANCE = "Freelance"
    INTERNSHIP = "Internship"


# Fields an owner may change with update_job
JOB_PATCH_FIELDS = (
    "title",
    "description",
    "skills_required",
    "salary",
    "remote",
    "location",
    "company_name",
    "company_logo",
    "employment_type",
)

# Patch fields that may be explicitly cleared with null
JOB_NULLABLE_FIELDS = ("location", "company_name", "company_logo")


@dataclass
class Job:
    """A job posting candidates can apply to."""

    id: str
    employer_id: str
    title: str
    description: str
    salary: str
    skills_required: list[str] = field(default_factory=list)
    remote: bool = False
    location: Optional[str] = None
    company_name: Optional[str] = None
    company_logo: Optional[str] = None
    employment_type: str = EmploymentType.FULL_TIME.value
    status: str = JobStatus.OPEN.value
    applicants: list[str] = field(default_factory=list)
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if isinstance(self.status, JobStatus):
            self.status = self.status.value
        if isinstance(self.employment_type, EmploymentType):
            self.employment_type = self.employment_type.value
        valid_statuses = {s.value for s in JobStatus}
        if self.status not in valid_statuses:
            raise ValueError(f"Invalid status: {self.status}. Must be one of {valid_statuses}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "employer_id": self.employer_id,
            "title": self.title,
            "description": self.description,
            "salary": self.salary,
            "skills_required": list(self.skills_required),
            "remote": self.remote,
            "location": self.location,
            "company_name": self.company_name,
            "company_logo": self.company_logo,
            "employment_type": self.employment_type,
            "status": self.status,
            "applicants": list(self.applicants),
            "version": self.version,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Job":
        return cls(
            id=data["id"],
            employer_id=data["employer_id"],
            title=data["title"],
            description=data["description"],
            salary=data.get("salary") or "",
            skills_required=data.get("skills_required") or [],
            remote=bool(data.get("remote")),
            location=data.get("location"),
            company_name=data.get("company_name"),
            company_logo=data.get("company_logo"),
            employment_type=data.get("employment_type") or EmploymentType.FULL_TIME.value,
            status=data.get("status") or JobStatus.OPEN.value,
            applicants=data.get("applicants") or [],
            version=int(data.get("version") or 1),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
        )
