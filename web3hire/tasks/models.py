"""
Task data models.

Tasks follow a small state machine:

    Open ──award──▶ InProgress ──complete──▶ Completed
      │
      └──cancel──▶ Cancelled
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..utils import parse_datetime


class TaskStatus(str, Enum):
    """Task lifecycle status."""

    OPEN = "Open"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class RewardToken(str, Enum):
    """Token a task reward is paid in."""

    USDT = "USDT"
    ETH = "ETH"
    MATIC = "MATIC"


VALID_TASK_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.OPEN: {TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED},
    TaskStatus.IN_PROGRESS: {TaskStatus.COMPLETED},
    TaskStatus.COMPLETED: set(),
    TaskStatus.CANCELLED: set(),
}

# Fields an owner may change with update_task
TASK_PATCH_FIELDS = ("title", "description", "reward", "reward_token", "deadline")

# Patch fields that may be explicitly cleared with null
TASK_NULLABLE_FIELDS = ("deadline",)


@dataclass
class Bid:
    """One bidder's entry on a task."""

    user_id: str
    proposal: str
    bid_date: datetime
    bid_amount: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "proposal": self.proposal,
            "bid_amount": self.bid_amount,
            "bid_date": self.bid_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Bid":
        return cls(
            user_id=data["user_id"],
            proposal=data.get("proposal") or "",
            bid_amount=data.get("bid_amount"),
            bid_date=parse_datetime(data["bid_date"]),
        )


@dataclass
class Deliverable:
    """Work submitted by a task's winner."""

    title: str
    submitted_at: datetime
    description: Optional[str] = None
    file_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "file_url": self.file_url,
            "submitted_at": self.submitted_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Deliverable":
        return cls(
            title=data["title"],
            description=data.get("description"),
            file_url=data.get("file_url"),
            submitted_at=parse_datetime(data["submitted_at"]),
        )


@dataclass
class Task:
    """A biddable unit of paid work."""

    id: str
    employer_id: str
    title: str
    description: str
    reward: float
    reward_token: str = RewardToken.USDT.value
    deadline: Optional[datetime] = None
    status: str = TaskStatus.OPEN.value
    bidders: list[Bid] = field(default_factory=list)
    winner: Optional[str] = None
    deliverables: list[Deliverable] = field(default_factory=list)
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.reward < 0:
            raise ValueError("Reward must not be negative")
        if isinstance(self.status, TaskStatus):
            self.status = self.status.value
        if isinstance(self.reward_token, RewardToken):
            self.reward_token = self.reward_token.value
        valid_statuses = {s.value for s in TaskStatus}
        if self.status not in valid_statuses:
            raise ValueError(f"Invalid status: {self.status}. Must be one of {valid_statuses}")

    def has_bid_from(self, user_id: str) -> bool:
        return any(b.user_id == user_id for b in self.bidders)

    def can_transition_to(self, new_status: TaskStatus) -> bool:
        return new_status in VALID_TASK_TRANSITIONS[TaskStatus(self.status)]

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted row shape."""
        return {
            "id": self.id,
            "employer_id": self.employer_id,
            "title": self.title,
            "description": self.description,
            "reward": self.reward,
            "reward_token": self.reward_token,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "status": self.status,
            "bidders": [b.to_dict() for b in self.bidders],
            "winner": self.winner,
            "deliverables": [d.to_dict() for d in self.deliverables],
            "version": self.version,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        return cls(
            id=data["id"],
            employer_id=data["employer_id"],
            title=data["title"],
            description=data["description"],
            reward=float(data.get("reward") or 0),
            reward_token=data.get("reward_token") or RewardToken.USDT.value,
            deadline=parse_datetime(data.get("deadline")),
            status=data.get("status") or TaskStatus.OPEN.value,
            bidders=[Bid.from_dict(b) for b in data.get("bidders") or []],
            winner=data.get("winner"),
            deliverables=[Deliverable.from_dict(d) for d in data.get("deliverables") or []],
            version=int(data.get("version") or 1),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
        )
