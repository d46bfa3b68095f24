"""Pytest configuration and fixtures."""

import copy
import itertools
import os
import secrets
from typing import Any, Callable, Iterable, Optional

import pytest

# Generate a unique test secret for this test run to prevent token forgery
_TEST_JWT_SECRET = f"test-only-{secrets.token_urlsafe(32)}"

os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("JWT_SECRET_KEY", _TEST_JWT_SECRET)

from eth_account import Account  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from web3hire.auth import AuthContext, create_access_token  # noqa: E402
from web3hire.cache import get_listing_cache  # noqa: E402
from web3hire.config import get_settings  # noqa: E402
from web3hire.dependencies import (  # noqa: E402
    get_identity_store,
    get_job_store,
    get_task_ledger,
)
from web3hire.errors import ConflictError  # noqa: E402
from web3hire.identity.models import PROFILE_FIELDS, Role, User  # noqa: E402
from web3hire.jobs.models import Job, JobStatus  # noqa: E402
from web3hire.main import app  # noqa: E402
from web3hire.rate_limit import limiter  # noqa: E402
from web3hire.tasks.models import Task, TaskStatus  # noqa: E402
from web3hire.utils import utc_now  # noqa: E402

_ids = itertools.count(1)


def _next_id(prefix: str) -> str:
    return f"{prefix}_{next(_ids):06d}"


# =============================================================================
# In-memory stores
# =============================================================================


class InMemoryIdentityStore:
    """In-memory identity store for testing."""

    def __init__(self):
        self.users: dict[str, User] = {}

    def add(self, role: str = Role.CANDIDATE.value, wallet_address: Optional[str] = None, **fields) -> User:
        """Seed a user synchronously."""
        user = User(
            id=_next_id("usr"),
            role=role,
            wallet_address=wallet_address,
            created_at=utc_now(),
            updated_at=utc_now(),
            **fields,
        )
        self.users[user.id] = user
        return copy.deepcopy(user)

    async def get_by_id(self, user_id: str) -> Optional[User]:
        user = self.users.get(user_id)
        return copy.deepcopy(user) if user else None

    async def get_by_wallet(self, wallet_address: str) -> Optional[User]:
        for user in self.users.values():
            if user.wallet_address == wallet_address.lower():
                return copy.deepcopy(user)
        return None

    async def get_many(self, user_ids: Iterable[str]) -> dict[str, User]:
        return {uid: copy.deepcopy(self.users[uid]) for uid in user_ids if uid in self.users}

    async def list_users(
        self, role: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> list[User]:
        result = [u for u in self.users.values() if role is None or u.role == role]
        return copy.deepcopy(result[offset:offset + limit])

    async def create(self, wallet_address: str, role: str, name: str, nonce: str) -> User:
        if await self.get_by_wallet(wallet_address) is not None:
            raise ConflictError("Duplicate record while trying to create user")
        return self.add(role=role, wallet_address=wallet_address, name=name, nonce=nonce)

    async def set_nonce(self, user_id: str, nonce: str) -> bool:
        user = self.users.get(user_id)
        if user is None:
            return False
        user.nonce = nonce
        return True

    async def rotate_nonce(self, user_id: str, expected_nonce: str, new_nonce: str) -> bool:
        user = self.users.get(user_id)
        if user is None or user.nonce != expected_nonce:
            return False
        user.nonce = new_nonce
        return True

    async def update_profile(self, user_id: str, changes: dict[str, Any]) -> Optional[User]:
        user = self.users.get(user_id)
        if user is None:
            return None
        for key, value in changes.items():
            if key in PROFILE_FIELDS:
                setattr(user, key, value)
        user.updated_at = utc_now()
        return copy.deepcopy(user)


class _ConditionalRows:
    """Rows keyed by id with a version/status conditional update."""

    def __init__(self):
        self.rows: dict[str, dict[str, Any]] = {}
        # Called with the row id right before a conditional update is evaluated
        self.before_update: Optional[Callable[[str], None]] = None

    def bump(self, row_id: str, **changes) -> None:
        """Simulate a concurrent writer."""
        row = self.rows[row_id]
        row.update(changes)
        row["version"] += 1

    def _update_if(
        self,
        row_id: str,
        expected_version: int,
        changes: dict[str, Any],
        expected_status: Optional[str],
    ) -> Optional[dict[str, Any]]:
        if self.before_update is not None:
            hook, self.before_update = self.before_update, None
            hook(row_id)
        row = self.rows.get(row_id)
        if row is None or row["version"] != expected_version:
            return None
        if expected_status is not None and row["status"] != expected_status:
            return None
        row.update(copy.deepcopy(changes))
        row["version"] = expected_version + 1
        row["updated_at"] = utc_now().isoformat()
        return copy.deepcopy(row)


class InMemoryTaskLedger(_ConditionalRows):
    """In-memory task ledger for testing."""

    async def insert(self, data: dict[str, Any]) -> Task:
        now = utc_now().isoformat()
        row = {
            **data,
            "id": _next_id("task"),
            "status": TaskStatus.OPEN.value,
            "bidders": [],
            "winner": None,
            "deliverables": [],
            "version": 1,
            "created_at": now,
            "updated_at": now,
        }
        self.rows[row["id"]] = row
        return Task.from_dict(copy.deepcopy(row))

    async def get(self, task_id: str) -> Optional[Task]:
        row = self.rows.get(task_id)
        return Task.from_dict(copy.deepcopy(row)) if row else None

    async def list_tasks(
        self,
        status: Optional[str] = None,
        employer_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Task]:
        rows = list(self.rows.values())
        if status:
            rows = [r for r in rows if r["status"] == status]
        if employer_id:
            rows = [r for r in rows if r["employer_id"] == employer_id]
        return [Task.from_dict(copy.deepcopy(r)) for r in rows[offset:offset + limit]]

    async def update_if(
        self,
        task_id: str,
        expected_version: int,
        changes: dict[str, Any],
        expected_status: Optional[str] = None,
    ) -> Optional[Task]:
        row = self._update_if(task_id, expected_version, changes, expected_status)
        return Task.from_dict(row) if row else None


class InMemoryJobStore(_ConditionalRows):
    """In-memory job store for testing."""

    async def insert(self, data: dict[str, Any]) -> Job:
        now = utc_now().isoformat()
        row = {
            **data,
            "id": _next_id("job"),
            "status": JobStatus.OPEN.value,
            "applicants": [],
            "version": 1,
            "created_at": now,
            "updated_at": now,
        }
        self.rows[row["id"]] = row
        return Job.from_dict(copy.deepcopy(row))

    async def get(self, job_id: str) -> Optional[Job]:
        row = self.rows.get(job_id)
        return Job.from_dict(copy.deepcopy(row)) if row else None

    async def list_jobs(
        self,
        status: Optional[str] = None,
        employer_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Job]:
        rows = list(self.rows.values())
        if status:
            rows = [r for r in rows if r["status"] == status]
        if employer_id:
            rows = [r for r in rows if r["employer_id"] == employer_id]
        return [Job.from_dict(copy.deepcopy(r)) for r in rows[offset:offset + limit]]

    async def search(self, query: str, limit: int = 50) -> list[Job]:
        term = query.lower().strip()
        rows = [
            r
            for r in self.rows.values()
            if term in r["title"].lower() or term in r["description"].lower()
        ]
        return [Job.from_dict(copy.deepcopy(r)) for r in rows[:limit]]

    async def update_if(
        self,
        job_id: str,
        expected_version: int,
        changes: dict[str, Any],
        expected_status: Optional[str] = None,
    ) -> Optional[Job]:
        row = self._update_if(job_id, expected_version, changes, expected_status)
        return Job.from_dict(row) if row else None


# =============================================================================
# Helpers
# =============================================================================


def auth_for(user: User) -> AuthContext:
    """Build the caller context a session token for ``user`` would decode to."""
    return AuthContext(
        user_id=user.id,
        role=user.role,
        wallet_address=user.wallet_address,
        email=user.email,
    )


def headers_for(user: User) -> dict[str, str]:
    """Authorization headers carrying a real session token for ``user``."""
    token = create_access_token(user, get_settings())
    return {"Authorization": f"Bearer {token}"}


def new_wallet():
    """A fresh local account that can sign challenges."""
    return Account.create()


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def identities():
    return InMemoryIdentityStore()


@pytest.fixture
def ledger():
    return InMemoryTaskLedger()


@pytest.fixture
def job_store():
    return InMemoryJobStore()


@pytest.fixture
def employer(identities):
    return identities.add(role=Role.EMPLOYER.value, name="Acme Hiring")


@pytest.fixture
def candidate(identities):
    return identities.add(role=Role.CANDIDATE.value, name="Alice")


@pytest.fixture
def other_candidate(identities):
    return identities.add(role=Role.CANDIDATE.value, name="Bob")


@pytest.fixture
def admin(identities):
    return identities.add(role=Role.ADMIN.value, name="Root")


@pytest.fixture
def client(identities, ledger, job_store):
    """Test client wired to in-memory stores."""
    app.dependency_overrides[get_identity_store] = lambda: identities
    app.dependency_overrides[get_task_ledger] = lambda: ledger
    app.dependency_overrides[get_job_store] = lambda: job_store
    get_listing_cache().clear()
    limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()
    get_listing_cache().clear()
