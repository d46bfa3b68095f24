"""Task ledger and the bidding/award/delivery workflow.

Models:
- Task: A biddable unit of paid work
- Bid, Deliverable: Append-only entries on a task
- TaskStatus: Task lifecycle status

Storage:
- TaskLedger: Protocol with a conditional (compare-and-swap) update
- SupabaseTaskLedger: Supabase-backed implementation

Workflow:
- TaskWorkflow: create, update, cancel, bid, award, deliver, complete
"""

from web3hire.tasks.ledger import SupabaseTaskLedger, TaskLedger
from web3hire.tasks.models import (
    VALID_TASK_TRANSITIONS,
    Bid,
    Deliverable,
    RewardToken,
    Task,
    TaskStatus,
)
from web3hire.tasks.workflow import BidView, TaskView, TaskWorkflow

__all__ = [
    # Models
    "Task",
    "Bid",
    "Deliverable",
    "TaskStatus",
    "RewardToken",
    "VALID_TASK_TRANSITIONS",
    # Storage
    "TaskLedger",
    "SupabaseTaskLedger",
    # Workflow
    "TaskWorkflow",
    "TaskView",
    "BidView",
]
