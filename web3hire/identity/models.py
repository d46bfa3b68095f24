"""Identity data models."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..utils import parse_datetime

WALLET_ADDRESS_PATTERN = re.compile(r"^0x[a-f0-9]{40}$")

# Profile fields a user may change about themselves
PROFILE_FIELDS = (
    "name",
    "email",
    "skills",
    "bio",
    "profile_image",
    "resume_ipfs_hash",
    "social_links",
    "preferences",
)


class Role(str, Enum):
    """Marketplace role carried in the session token."""

    EMPLOYER = "Employer"
    CANDIDATE = "Candidate"
    ADMIN = "Admin"


def normalize_wallet_address(address: str) -> str:
    """Lowercase and validate an EVM address.

    Raises:
        ValueError: If the address is not 0x followed by 40 hex chars.
    """
    normalized = (address or "").strip().lower()
    if not WALLET_ADDRESS_PATTERN.match(normalized):
        raise ValueError(f"Invalid wallet address: {address!r}")
    return normalized


@dataclass
class User:
    """A marketplace participant, keyed externally by wallet address."""

    id: str
    role: str
    wallet_address: Optional[str] = None
    nonce: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    skills: list[str] = field(default_factory=list)
    bio: Optional[str] = None
    profile_image: Optional[str] = None
    resume_ipfs_hash: Optional[str] = None
    social_links: dict[str, Optional[str]] = field(default_factory=dict)
    preferences: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        valid_roles = {r.value for r in Role}
        if isinstance(self.role, Role):
            self.role = self.role.value
        if self.role not in valid_roles:
            raise ValueError(f"Invalid role: {self.role}. Must be one of {valid_roles}")
        if self.wallet_address:
            self.wallet_address = self.wallet_address.lower()

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    def to_dict(self, include_nonce: bool = False) -> dict[str, Any]:
        """Convert to a JSON-friendly dict. The nonce is omitted unless asked for."""
        data = {
            "id": self.id,
            "wallet_address": self.wallet_address,
            "role": self.role,
            "name": self.name,
            "email": self.email,
            "skills": list(self.skills),
            "bio": self.bio,
            "profile_image": self.profile_image,
            "resume_ipfs_hash": self.resume_ipfs_hash,
            "social_links": dict(self.social_links),
            "preferences": dict(self.preferences),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_nonce:
            data["nonce"] = self.nonce
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        """Build a User from a database row."""
        return cls(
            id=data["id"],
            role=data["role"],
            wallet_address=data.get("wallet_address"),
            nonce=data.get("nonce"),
            name=data.get("name"),
            email=data.get("email"),
            skills=data.get("skills") or [],
            bio=data.get("bio"),
            profile_image=data.get("profile_image"),
            resume_ipfs_hash=data.get("resume_ipfs_hash"),
            social_links=data.get("social_links") or {},
            preferences=data.get("preferences") or {},
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
        )

