"""Task routes: CRUD plus the bidding, award and delivery workflow."""

from fastapi import APIRouter, Query, Request, status

from ..auth import CurrentUser
from ..dependencies import Workflow
from ..logging_config import get_logger
from ..models import (
    AwardRequest,
    BidCreate,
    DeliverableCreate,
    TaskCreate,
    TaskListResponse,
    TaskResponse,
    TaskUpdate,
    to_task_response,
)
from ..rate_limit import BID_LIMIT, READ_LIMIT, WRITE_LIMIT, limiter
from ..tasks.models import TaskStatus

logger = get_logger("web3hire.routes.tasks")
router = APIRouter(prefix="/api/v1/tasks", tags=["tasks"])


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
async def create_task(
    request: Request,
    body: TaskCreate,
    auth: CurrentUser,
    workflow: Workflow,
):
    """
    Create a task.

    Only Employers and Admins can create tasks. Tasks start Open with no
    bidders, no winner and no deliverables.
    """
    logger.info(f"POST /tasks | employer={auth.user_id} | title={body.title[:50]}")
    view = await workflow.create_task(auth, body.model_dump())
    return to_task_response(view)


@router.get("", response_model=TaskListResponse)
@limiter.limit(READ_LIMIT)
async def list_tasks(
    request: Request,
    workflow: Workflow,
    status_filter: TaskStatus | None = Query(None, alias="status"),
    employer_id: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """List tasks, newest first."""
    status_value = status_filter.value if status_filter else None
    logger.info(f"GET /tasks | status={status_value} | employer={employer_id}")
    views = await workflow.list_tasks(
        status=status_value, employer_id=employer_id, limit=limit, offset=offset
    )
    return TaskListResponse(tasks=[to_task_response(v) for v in views], limit=limit, offset=offset)


@router.get("/{task_id}", response_model=TaskResponse)
@limiter.limit(READ_LIMIT)
async def get_task(
    request: Request,
    task_id: str,
    workflow: Workflow,
):
    """Get a task with its employer, bidders and winner."""
    logger.info(f"GET /tasks/{task_id}")
    return to_task_response(await workflow.get_task(task_id))


@router.patch("/{task_id}", response_model=TaskResponse)
@limiter.limit(WRITE_LIMIT)
async def update_task(
    request: Request,
    task_id: str,
    body: TaskUpdate,
    auth: CurrentUser,
    workflow: Workflow,
):
    """Update a task's title, description, reward or deadline (owner or Admin)."""
    patch = body.model_dump(exclude_unset=True)
    logger.info(f"PATCH /tasks/{task_id} | user={auth.user_id} | fields={sorted(patch)}")
    return to_task_response(await workflow.update_task(auth, task_id, patch))


@router.post("/{task_id}/cancel", response_model=TaskResponse)
@limiter.limit(WRITE_LIMIT)
async def cancel_task(
    request: Request,
    task_id: str,
    auth: CurrentUser,
    workflow: Workflow,
):
    """Cancel an Open task (owner or Admin)."""
    logger.info(f"POST /tasks/{task_id}/cancel | user={auth.user_id}")
    return to_task_response(await workflow.cancel_task(auth, task_id))


@router.post("/{task_id}/bids", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(BID_LIMIT)
async def bid_on_task(
    request: Request,
    task_id: str,
    body: BidCreate,
    auth: CurrentUser,
    workflow: Workflow,
):
    """
    Bid on an Open task.

    Each user can bid once per task. Concurrent bids never overwrite each
    other: a bid that loses a race is rejected with 409 and can be retried.
    """
    logger.info(f"POST /tasks/{task_id}/bids | bidder={auth.user_id}")
    view = await workflow.bid_on_task(auth, task_id, body.proposal, body.bid_amount)
    return to_task_response(view)


@router.post("/{task_id}/award", response_model=TaskResponse)
@limiter.limit(WRITE_LIMIT)
async def award_task(
    request: Request,
    task_id: str,
    body: AwardRequest,
    auth: CurrentUser,
    workflow: Workflow,
):
    """Award an Open task to one of its bidders (owner or Admin)."""
    logger.info(f"POST /tasks/{task_id}/award | user={auth.user_id} | bidder={body.bidder_id}")
    return to_task_response(await workflow.award_task(auth, task_id, body.bidder_id))


@router.post(
    "/{task_id}/deliverables", response_model=TaskResponse, status_code=status.HTTP_201_CREATED
)
@limiter.limit(WRITE_LIMIT)
async def submit_deliverable(
    request: Request,
    task_id: str,
    body: DeliverableCreate,
    auth: CurrentUser,
    workflow: Workflow,
):
    """Submit a deliverable. Only the winner can, and only while InProgress."""
    logger.info(f"POST /tasks/{task_id}/deliverables | user={auth.user_id}")
    view = await workflow.submit_deliverable(auth, task_id, body.model_dump())
    return to_task_response(view)


@router.post("/{task_id}/complete", response_model=TaskResponse)
@limiter.limit(WRITE_LIMIT)
async def complete_task(
    request: Request,
    task_id: str,
    auth: CurrentUser,
    workflow: Workflow,
):
    """Mark an InProgress task as Completed (owner or Admin)."""
    logger.info(f"POST /tasks/{task_id}/complete | user={auth.user_id}")
    return to_task_response(await workflow.complete_task(auth, task_id))
