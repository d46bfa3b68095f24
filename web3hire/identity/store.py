"""
Identity storage layer.

Users are persisted in Supabase; the wallet address column carries a unique
constraint so at most one user exists per wallet.
"""

from typing import Any, Iterable, Optional, Protocol

from supabase import Client

from ..database import USERS_TABLE, execute
from ..logging_config import get_logger
from ..utils import utc_now
from .models import PROFILE_FIELDS, User

logger = get_logger("web3hire.identity.store")


class IdentityStore(Protocol):
    """Protocol for user persistence backends."""

    async def get_by_id(self, user_id: str) -> Optional[User]:
        """Get a user by ID."""
        ...

    async def get_by_wallet(self, wallet_address: str) -> Optional[User]:
        """Get a user by normalized wallet address."""
        ...

    async def get_many(self, user_ids: Iterable[str]) -> dict[str, User]:
        """Get several users at once, keyed by ID. Missing IDs are absent."""
        ...

    async def list_users(
        self, role: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> list[User]:
        """List users, newest first."""
        ...

    async def create(self, wallet_address: str, role: str, name: str, nonce: str) -> User:
        """Create a user. Raises ConflictError if the wallet is taken."""
        ...

    async def set_nonce(self, user_id: str, nonce: str) -> bool:
        """Overwrite the user's nonce unconditionally."""
        ...

    async def rotate_nonce(self, user_id: str, expected_nonce: str, new_nonce: str) -> bool:
        """Replace the nonce only if it still equals ``expected_nonce``."""
        ...

    async def update_profile(self, user_id: str, changes: dict[str, Any]) -> Optional[User]:
        """Apply profile field changes. Returns the updated user."""
        ...


class SupabaseIdentityStore:
    """Identity store backed by the Supabase ``users`` table."""

    def __init__(self, db: Client):
        self.db = db

    async def get_by_id(self, user_id: str) -> Optional[User]:
        result = execute(
            self.db.table(USERS_TABLE).select("*").eq("id", user_id),
            "load user",
        )
        return User.from_dict(result.data[0]) if result.data else None

    async def get_by_wallet(self, wallet_address: str) -> Optional[User]:
        result = execute(
            self.db.table(USERS_TABLE).select("*").eq("wallet_address", wallet_address.lower()),
            "load user by wallet",
        )
        return User.from_dict(result.data[0]) if result.data else None

    async def get_many(self, user_ids: Iterable[str]) -> dict[str, User]:
        ids = sorted({uid for uid in user_ids if uid})
        if not ids:
            return {}
        result = execute(
            self.db.table(USERS_TABLE).select("*").in_("id", ids),
            "load users",
        )
        return {row["id"]: User.from_dict(row) for row in result.data or []}

    async def list_users(
        self, role: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> list[User]:
        query = self.db.table(USERS_TABLE).select("*")
        if role:
            query = query.eq("role", role)
        query = query.order("created_at", desc=True).range(offset, offset + limit - 1)
        result = execute(query, "list users")
        return [User.from_dict(row) for row in result.data or []]

    async def create(self, wallet_address: str, role: str, name: str, nonce: str) -> User:
        now = utc_now().isoformat()
        data = {
            "wallet_address": wallet_address.lower(),
            "role": role,
            "name": name,
            "nonce": nonce,
            "skills": [],
            "social_links": {},
            "preferences": {},
            "created_at": now,
            "updated_at": now,
        }
        result = execute(self.db.table(USERS_TABLE).insert(data), "create user")
        return User.from_dict(result.data[0])

    async def set_nonce(self, user_id: str, nonce: str) -> bool:
        result = execute(
            self.db.table(USERS_TABLE)
            .update({"nonce": nonce, "updated_at": utc_now().isoformat()})
            .eq("id", user_id),
            "store nonce",
        )
        return bool(result.data)

    async def rotate_nonce(self, user_id: str, expected_nonce: str, new_nonce: str) -> bool:
        # Only one verifier can consume a given nonce
        result = execute(
            self.db.table(USERS_TABLE)
            .update({"nonce": new_nonce, "updated_at": utc_now().isoformat()})
            .eq("id", user_id)
            .eq("nonce", expected_nonce),
            "rotate nonce",
        )
        if not result.data:
            logger.warning(f"Nonce already consumed | user={user_id}")
            return False
        return True

    async def update_profile(self, user_id: str, changes: dict[str, Any]) -> Optional[User]:
        update_data = {k: v for k, v in changes.items() if k in PROFILE_FIELDS}
        if not update_data:
            return await self.get_by_id(user_id)
        update_data["updated_at"] = utc_now().isoformat()
        result = execute(
            self.db.table(USERS_TABLE).update(update_data).eq("id", user_id),
            "update user",
        )
        return User.from_dict(result.data[0]) if result.data else None
