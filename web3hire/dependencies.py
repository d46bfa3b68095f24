"""FastAPI dependencies that assemble services per request.

Stores wrap the shared Supabase client; services are cheap to build, so each
request gets its own. Tests swap these out with ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends

from .cache import get_listing_cache
from .config import Settings, get_settings
from .database import Database
from .identity.challenge import ChallengeAuthenticator
from .identity.store import IdentityStore, SupabaseIdentityStore
from .jobs.service import JobBoard
from .jobs.store import JobStore, SupabaseJobStore
from .matching import MatchingService
from .tasks.ledger import SupabaseTaskLedger, TaskLedger
from .tasks.workflow import TaskWorkflow


def get_identity_store(db: Database) -> IdentityStore:
    return SupabaseIdentityStore(db)


def get_task_ledger(db: Database) -> TaskLedger:
    return SupabaseTaskLedger(db)


def get_job_store(db: Database) -> JobStore:
    return SupabaseJobStore(db)


Identities = Annotated[IdentityStore, Depends(get_identity_store)]


def get_authenticator(
    identities: Identities,
    settings: Annotated[Settings, Depends(get_settings)],
) -> ChallengeAuthenticator:
    return ChallengeAuthenticator(identities, settings)


def get_task_workflow(
    ledger: Annotated[TaskLedger, Depends(get_task_ledger)],
    identities: Identities,
) -> TaskWorkflow:
    return TaskWorkflow(ledger, identities, cache=get_listing_cache())


def get_job_board(
    store: Annotated[JobStore, Depends(get_job_store)],
    identities: Identities,
) -> JobBoard:
    return JobBoard(store, identities, cache=get_listing_cache())


def get_matching_service(
    store: Annotated[JobStore, Depends(get_job_store)],
    identities: Identities,
) -> MatchingService:
    return MatchingService(identities, store)


# Type aliases for dependency injection
Authenticator = Annotated[ChallengeAuthenticator, Depends(get_authenticator)]
Workflow = Annotated[TaskWorkflow, Depends(get_task_workflow)]
Board = Annotated[JobBoard, Depends(get_job_board)]
Matcher = Annotated[MatchingService, Depends(get_matching_service)]
