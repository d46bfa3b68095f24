"""
Task bidding, award and delivery workflow.

Each mutation follows the same shape: load the task, check role and status
preconditions, then write with a single conditional update keyed on the
version that was read. If the write matches nothing, the task is re-read and
the preconditions re-checked so the caller sees the real reason; if they still
hold, another request got there first and the caller gets a Conflict.

Results are returned as :class:`TaskView` projections with the employer,
bidders and winner resolved to full user records.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from ..auth import AuthContext, require
from ..cache import TASKS_PREFIX, TTLCache, make_key
from ..errors import ConflictError, ForbiddenError, InvalidStateError, NotFoundError
from ..identity.models import Role, User
from ..identity.store import IdentityStore
from ..logging_config import get_logger
from ..utils import utc_now
from .ledger import TaskLedger
from .models import (
    TASK_NULLABLE_FIELDS,
    TASK_PATCH_FIELDS,
    Bid,
    Deliverable,
    RewardToken,
    Task,
    TaskStatus,
)

logger = get_logger("web3hire.tasks.workflow")

TASK_CREATOR_ROLES = (Role.EMPLOYER, Role.ADMIN)


@dataclass
class BidView:
    """A bid with its bidder resolved."""

    bid: Bid
    user: Optional[User]


@dataclass
class TaskView:
    """A task with its user references resolved."""

    task: Task
    employer: Optional[User]
    bidders: list[BidView]
    winner: Optional[User]


def _serialize_changes(changes: dict[str, Any]) -> dict[str, Any]:
    serialized = {}
    for key, value in changes.items():
        if key not in TASK_PATCH_FIELDS:
            continue
        if value is None and key not in TASK_NULLABLE_FIELDS:
            continue
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, RewardToken):
            value = value.value
        serialized[key] = value
    return serialized


class TaskWorkflow:
    """Task operations on top of a ledger and an identity store."""

    def __init__(
        self,
        ledger: TaskLedger,
        identities: IdentityStore,
        cache: Optional[TTLCache] = None,
    ):
        self.ledger = ledger
        self.identities = identities
        self.cache = cache

    # === Reads ===

    async def get_task(self, task_id: str) -> TaskView:
        task = await self._load(task_id)
        return (await self._project([task]))[0]

    async def list_tasks(
        self,
        status: Optional[str] = None,
        employer_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[TaskView]:
        key = make_key(TASKS_PREFIX, status=status, employer=employer_id, limit=limit, offset=offset)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        tasks = await self.ledger.list_tasks(
            status=status, employer_id=employer_id, limit=limit, offset=offset
        )
        views = await self._project(tasks)
        if self.cache is not None:
            self.cache.set(key, views)
        return views

    # === Owner operations ===

    async def create_task(self, auth: AuthContext, data: dict[str, Any]) -> TaskView:
        """Create an Open task owned by the caller.

        Raises:
            ForbiddenError: Caller is neither Employer nor Admin.
        """
        require(auth, "Only employers can create tasks", roles=TASK_CREATOR_ROLES)

        fields = _serialize_changes(data)
        if float(fields.get("reward") or 0) < 0:
            raise ValueError("Reward must not be negative")
        fields["employer_id"] = auth.user_id

        task = await self.ledger.insert(fields)
        self._invalidate()
        logger.info(f"Task created | id={task.id} | employer={auth.user_id}")
        return (await self._project([task]))[0]

    async def update_task(self, auth: AuthContext, task_id: str, patch: dict[str, Any]) -> TaskView:
        """Patch descriptive fields of a task.

        Raises:
            NotFoundError: Task does not exist.
            ForbiddenError: Caller is not the owner or an Admin.
        """
        task = await self._load(task_id)
        require(auth, "Not authorized to update this task", owner_id=task.employer_id)

        changes = _serialize_changes(patch)
        if not changes:
            return (await self._project([task]))[0]

        updated = await self._guarded_update(task, changes, check=lambda t: None)
        logger.info(f"Task updated | id={task_id} | fields={sorted(changes)}")
        return (await self._project([updated]))[0]

    async def cancel_task(self, auth: AuthContext, task_id: str) -> TaskView:
        """Cancel an Open task.

        Raises:
            NotFoundError: Task does not exist.
            ForbiddenError: Caller is not the owner or an Admin.
            InvalidStateError: Task is not Open.
        """
        task = await self._load(task_id)
        require(auth, "Not authorized to cancel this task", owner_id=task.employer_id)

        def check(t: Task) -> None:
            if not t.can_transition_to(TaskStatus.CANCELLED):
                raise InvalidStateError(f"Cannot cancel task in status: {t.status}")

        check(task)
        updated = await self._guarded_update(
            task,
            {"status": TaskStatus.CANCELLED.value},
            check=check,
            expected_status=TaskStatus.OPEN.value,
        )
        logger.info(f"Task cancelled | id={task_id} | by={auth.user_id}")
        return (await self._project([updated]))[0]

    async def award_task(self, auth: AuthContext, task_id: str, bidder_id: str) -> TaskView:
        """Pick a winner among the bidders and start the work.

        Raises:
            NotFoundError: Task missing, or ``bidder_id`` has not bid.
            ForbiddenError: Caller is not the owner or an Admin.
            InvalidStateError: Task is not Open.
        """
        task = await self._load(task_id)
        require(auth, "Not authorized to award this task", owner_id=task.employer_id)

        def check(t: Task) -> None:
            if t.status != TaskStatus.OPEN.value:
                raise InvalidStateError("This task cannot be awarded")
            if not t.has_bid_from(bidder_id):
                raise NotFoundError("Selected bidder has not bid on this task")

        check(task)
        if await self.identities.get_by_id(bidder_id) is None:
            raise NotFoundError("Winner not found")

        updated = await self._guarded_update(
            task,
            {"winner": bidder_id, "status": TaskStatus.IN_PROGRESS.value},
            check=check,
            expected_status=TaskStatus.OPEN.value,
        )
        logger.info(f"Task awarded | id={task_id} | winner={bidder_id}")
        return (await self._project([updated]))[0]

    async def complete_task(self, auth: AuthContext, task_id: str) -> TaskView:
        """Mark an in-progress task as completed.

        Raises:
            NotFoundError: Task does not exist.
            ForbiddenError: Caller is not the owner or an Admin.
            InvalidStateError: Task is not InProgress.
        """
        task = await self._load(task_id)
        require(auth, "Not authorized to complete this task", owner_id=task.employer_id)

        def check(t: Task) -> None:
            if not t.can_transition_to(TaskStatus.COMPLETED):
                raise InvalidStateError(f"Cannot complete task in status: {t.status}")

        check(task)
        updated = await self._guarded_update(
            task,
            {"status": TaskStatus.COMPLETED.value},
            check=check,
            expected_status=TaskStatus.IN_PROGRESS.value,
        )
        logger.info(f"Task completed | id={task_id} | by={auth.user_id}")
        return (await self._project([updated]))[0]

    # === Worker operations ===

    async def bid_on_task(
        self,
        auth: AuthContext,
        task_id: str,
        proposal: str,
        bid_amount: Optional[float] = None,
    ) -> TaskView:
        """Append the caller's bid to an Open task.

        Raises:
            NotFoundError: Task does not exist.
            InvalidStateError: Task is not Open.
            ConflictError: Caller already bid, or a concurrent write won.
        """
        task = await self._load(task_id)

        def check(t: Task) -> None:
            if t.status != TaskStatus.OPEN.value:
                raise InvalidStateError("This task is not open for bidding")
            if t.has_bid_from(auth.user_id):
                raise ConflictError("You have already bid on this task")

        check(task)
        bid = Bid(user_id=auth.user_id, proposal=proposal, bid_amount=bid_amount, bid_date=utc_now())
        bidders = [b.to_dict() for b in task.bidders] + [bid.to_dict()]

        updated = await self._guarded_update(
            task,
            {"bidders": bidders},
            check=check,
            expected_status=TaskStatus.OPEN.value,
        )
        logger.info(f"Bid placed | task={task_id} | bidder={auth.user_id} | total={len(bidders)}")
        return (await self._project([updated]))[0]

    async def submit_deliverable(
        self, auth: AuthContext, task_id: str, payload: dict[str, Any]
    ) -> TaskView:
        """Append a deliverable; only the winner may, only while InProgress.

        Raises:
            NotFoundError: Task does not exist.
            ForbiddenError: Caller is not the winner.
            InvalidStateError: Task is not InProgress.
        """
        task = await self._load(task_id)

        def check(t: Task) -> None:
            if t.winner is None or t.winner != auth.user_id:
                raise ForbiddenError("Only the winner can submit deliverables")
            if t.status != TaskStatus.IN_PROGRESS.value:
                raise InvalidStateError("This task is not in progress")

        check(task)
        deliverable = Deliverable(
            title=payload["title"],
            description=payload.get("description"),
            file_url=payload.get("file_url"),
            submitted_at=utc_now(),
        )
        deliverables = [d.to_dict() for d in task.deliverables] + [deliverable.to_dict()]

        updated = await self._guarded_update(
            task,
            {"deliverables": deliverables},
            check=check,
            expected_status=TaskStatus.IN_PROGRESS.value,
        )
        logger.info(f"Deliverable submitted | task={task_id} | by={auth.user_id}")
        return (await self._project([updated]))[0]

    # === Internals ===

    async def _load(self, task_id: str) -> Task:
        task = await self.ledger.get(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    async def _guarded_update(
        self,
        task: Task,
        changes: dict[str, Any],
        check: Callable[[Task], None],
        expected_status: Optional[str] = None,
    ) -> Task:
        updated = await self.ledger.update_if(
            task.id, task.version, changes, expected_status=expected_status
        )
        if updated is not None:
            self._invalidate()
            return updated

        # Nothing matched: report the real reason from the current row
        current = await self.ledger.get(task.id)
        if current is None:
            raise NotFoundError("Task not found")
        check(current)
        raise ConflictError("Task was modified by another request. Please refresh and try again.")

    def _invalidate(self) -> None:
        if self.cache is not None:
            self.cache.clear_prefix(TASKS_PREFIX)

    async def _project(self, tasks: list[Task]) -> list[TaskView]:
        user_ids: set[str] = set()
        for task in tasks:
            user_ids.add(task.employer_id)
            user_ids.update(b.user_id for b in task.bidders)
            if task.winner:
                user_ids.add(task.winner)

        users = await self.identities.get_many(user_ids)
        return [
            TaskView(
                task=task,
                employer=users.get(task.employer_id),
                bidders=[BidView(bid=b, user=users.get(b.user_id)) for b in task.bidders],
                winner=users.get(task.winner) if task.winner else None,
            )
            for task in tasks
        ]
