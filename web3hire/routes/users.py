"""User profile routes."""

from typing import Literal

from fastapi import APIRouter, Path, Query, Request

from ..auth import CurrentUser
from ..dependencies import Identities
from ..errors import NotFoundError
from ..identity.models import normalize_wallet_address
from ..logging_config import get_logger
from ..models import WALLET_PATTERN, UserResponse, UserUpdate, to_user_response
from ..rate_limit import READ_LIMIT, WRITE_LIMIT, limiter

logger = get_logger("web3hire.routes.users")
router = APIRouter(prefix="/api/v1/users", tags=["users"])

RoleFilter = Literal["Employer", "Candidate", "Admin"]


@router.get("/me", response_model=UserResponse)
@limiter.limit(READ_LIMIT)
async def get_my_profile(
    request: Request,
    auth: CurrentUser,
    identities: Identities,
):
    """Get the caller's own profile."""
    logger.info(f"GET /users/me | user={auth.user_id}")
    user = await identities.get_by_id(auth.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return to_user_response(user)


@router.patch("/me", response_model=UserResponse)
@limiter.limit(WRITE_LIMIT)
async def update_my_profile(
    request: Request,
    body: UserUpdate,
    auth: CurrentUser,
    identities: Identities,
):
    """
    Update the caller's profile.

    Only profile fields can change; role, wallet address and nonce are not
    writable through this endpoint.
    """
    changes = body.model_dump(mode="json", exclude_unset=True)
    logger.info(f"PATCH /users/me | user={auth.user_id} | fields={sorted(changes)}")

    user = await identities.update_profile(auth.user_id, changes)
    if user is None:
        raise NotFoundError("User not found")
    return to_user_response(user)


@router.get("", response_model=list[UserResponse])
@limiter.limit(READ_LIMIT)
async def list_users(
    request: Request,
    auth: CurrentUser,
    identities: Identities,
    role: RoleFilter | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """List users, optionally filtered by role."""
    logger.info(f"GET /users | user={auth.user_id} | role={role}")
    users = await identities.list_users(role=role, limit=limit, offset=offset)
    return [to_user_response(u) for u in users]


@router.get("/{wallet_address}", response_model=UserResponse)
@limiter.limit(READ_LIMIT)
async def get_user_by_wallet(
    request: Request,
    auth: CurrentUser,
    identities: Identities,
    wallet_address: str = Path(..., pattern=WALLET_PATTERN),
):
    """Look up a user by wallet address."""
    wallet = normalize_wallet_address(wallet_address)
    logger.info(f"GET /users/{wallet} | user={auth.user_id}")

    user = await identities.get_by_wallet(wallet)
    if user is None:
        raise NotFoundError("User not found")
    return to_user_response(user)
