"""
Task ledger storage.

Every guarded mutation goes through :meth:`TaskLedger.update_if`, a single
conditional UPDATE keyed on the task's current ``version`` (and optionally its
``status``). A write that matches no row lost a race or failed a precondition;
callers re-read to find out which.
"""

from typing import Any, Optional, Protocol

from supabase import Client

from ..database import TASKS_TABLE, execute
from ..logging_config import get_logger
from ..utils import utc_now
from .models import Task, TaskStatus

logger = get_logger("web3hire.tasks.ledger")


class TaskLedger(Protocol):
    """Protocol for task persistence backends."""

    async def insert(self, data: dict[str, Any]) -> Task:
        """Persist a new task row and return it."""
        ...

    async def get(self, task_id: str) -> Optional[Task]:
        """Get a task by ID."""
        ...

    async def list_tasks(
        self,
        status: Optional[str] = None,
        employer_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Task]:
        """List tasks, newest first."""
        ...

    async def update_if(
        self,
        task_id: str,
        expected_version: int,
        changes: dict[str, Any],
        expected_status: Optional[str] = None,
    ) -> Optional[Task]:
        """Apply ``changes`` only if version (and status) still match.

        Bumps ``version`` on success. Returns the updated task, or None when
        nothing matched.
        """
        ...


class SupabaseTaskLedger:
    """Task ledger backed by the Supabase ``tasks`` table."""

    def __init__(self, db: Client):
        self.db = db

    async def insert(self, data: dict[str, Any]) -> Task:
        now = utc_now().isoformat()
        row = {
            **data,
            "status": TaskStatus.OPEN.value,
            "bidders": [],
            "winner": None,
            "deliverables": [],
            "version": 1,
            "created_at": now,
            "updated_at": now,
        }
        row.pop("id", None)
        result = execute(self.db.table(TASKS_TABLE).insert(row), "create task")
        return Task.from_dict(result.data[0])

    async def get(self, task_id: str) -> Optional[Task]:
        result = execute(
            self.db.table(TASKS_TABLE).select("*").eq("id", task_id),
            "load task",
        )
        return Task.from_dict(result.data[0]) if result.data else None

    async def list_tasks(
        self,
        status: Optional[str] = None,
        employer_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Task]:
        query = self.db.table(TASKS_TABLE).select("*")
        if status:
            query = query.eq("status", status)
        if employer_id:
            query = query.eq("employer_id", employer_id)
        query = query.order("created_at", desc=True).range(offset, offset + limit - 1)
        result = execute(query, "list tasks")
        return [Task.from_dict(row) for row in result.data or []]

    async def update_if(
        self,
        task_id: str,
        expected_version: int,
        changes: dict[str, Any],
        expected_status: Optional[str] = None,
    ) -> Optional[Task]:
        update_data = {
            **changes,
            "version": expected_version + 1,
            "updated_at": utc_now().isoformat(),
        }

        # Atomic update: only succeeds if nobody else wrote since we read
        query = (
            self.db.table(TASKS_TABLE)
            .update(update_data)
            .eq("id", task_id)
            .eq("version", expected_version)
        )
        if expected_status is not None:
            query = query.eq("status", expected_status)
        result = execute(query, "update task")

        if result.data:
            return Task.from_dict(result.data[0])

        logger.warning(
            f"Conditional update matched nothing on task {task_id}: "
            f"expected version {expected_version}, status {expected_status or '*'}"
        )
        return None
