"""Authentication utilities for the web3hire backend."""

from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, Iterable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .config import Settings, get_settings
from .errors import ForbiddenError, UnauthenticatedError
from .identity.models import Role, User

# Missing credentials are reported through UnauthenticatedError, not FastAPI's 403
security = HTTPBearer(auto_error=False)

# Claims every session token must carry
REQUIRED_CLAIMS = ("id", "role")


def create_access_token(
    user: User,
    settings: Settings,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed session token for a user."""
    now = datetime.now(timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.jwt_expire_minutes)

    to_encode = {
        "sub": user.id,
        "id": user.id,
        "wallet_address": user.wallet_address,
        "email": user.email,
        "role": user.role,
        "exp": expire,
        "iat": now,
        "type": "access",
    }
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> dict[str, Any]:
    """Decode and validate a session token.

    Raises:
        UnauthenticatedError: If the signature, expiry or claims are invalid.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise UnauthenticatedError("Invalid or expired token")

    if payload.get("type") != "access" or any(not payload.get(c) for c in REQUIRED_CLAIMS):
        raise UnauthenticatedError("Invalid token payload")
    return payload


class AuthContext:
    """Caller identity decoded from a session token.

    Reflects the claims at issuance time; role changes made later are not
    visible until a new token is issued.
    """

    def __init__(
        self,
        user_id: str,
        role: str,
        wallet_address: str | None = None,
        email: str | None = None,
    ):
        self.user_id = user_id
        self.role = role
        self.wallet_address = wallet_address
        self.email = email

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "AuthContext":
        return cls(
            user_id=claims["id"],
            role=claims["role"],
            wallet_address=claims.get("wallet_address"),
            email=claims.get("email"),
        )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


def authorize(
    auth: AuthContext,
    owner_id: str | None = None,
    roles: Iterable[Role | str] | None = None,
) -> bool:
    """Decide whether a caller may act, without touching any store.

    Admins always pass. Otherwise the caller must hold one of ``roles`` (when
    given) and be ``owner_id`` (when given).
    """
    if auth.is_admin:
        return True
    if roles is not None:
        allowed = {r.value if isinstance(r, Role) else r for r in roles}
        if auth.role not in allowed:
            return False
    if owner_id is not None and auth.user_id != owner_id:
        return False
    return True


def require(
    auth: AuthContext,
    message: str,
    owner_id: str | None = None,
    roles: Iterable[Role | str] | None = None,
) -> None:
    """Raise ForbiddenError unless :func:`authorize` allows the caller."""
    if not authorize(auth, owner_id=owner_id, roles=roles):
        raise ForbiddenError(message)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthContext:
    """Get the caller's identity from the bearer token."""
    if not credentials or not credentials.credentials:
        raise UnauthenticatedError("Authentication token must be provided")

    payload = decode_token(credentials.credentials, settings)
    return AuthContext.from_claims(payload)


# Type alias for dependency injection
CurrentUser = Annotated[AuthContext, Depends(get_current_user)]
