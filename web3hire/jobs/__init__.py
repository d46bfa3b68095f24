"""Job board subsystem.

Models:
- Job: A job posting
- JobStatus, EmploymentType

Storage:
- JobStore, SupabaseJobStore

Service:
- JobBoard: create, update, close, apply, list, search
"""

from web3hire.jobs.models import EmploymentType, Job, JobStatus
from web3hire.jobs.service import JobBoard, JobView
from web3hire.jobs.store import JobStore, SupabaseJobStore

__all__ = [
    "Job",
    "JobStatus",
    "EmploymentType",
    "JobStore",
    "SupabaseJobStore",
    "JobBoard",
    "JobView",
]
