"""Wallet authentication routes."""

from fastapi import APIRouter, Request

from ..auth import CurrentUser
from ..dependencies import Authenticator, Identities
from ..errors import NotFoundError
from ..logging_config import get_logger
from ..models import (
    AuthResponse,
    NonceRequest,
    NonceResponse,
    UserResponse,
    VerifyRequest,
    to_auth_response,
    to_user_response,
)
from ..rate_limit import AUTH_LIMIT, READ_LIMIT, limiter

logger = get_logger("web3hire.routes.auth")
router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/nonce", response_model=NonceResponse)
@limiter.limit(AUTH_LIMIT)
async def request_nonce(
    request: Request,
    body: NonceRequest,
    authenticator: Authenticator,
):
    """
    Issue a challenge message for a wallet.

    Creates a Candidate account on first contact. Requesting a new challenge
    invalidates any earlier one that has not been signed yet.
    """
    logger.info(f"POST /auth/nonce | wallet={body.wallet_address.lower()}")
    message = await authenticator.issue_challenge(body.wallet_address)
    return NonceResponse(message=message)


@router.post("/verify", response_model=AuthResponse)
@limiter.limit(AUTH_LIMIT)
async def verify_signature(
    request: Request,
    body: VerifyRequest,
    authenticator: Authenticator,
):
    """Verify a signed challenge and return a session token."""
    logger.info(f"POST /auth/verify | wallet={body.wallet_address.lower()}")
    result = await authenticator.verify(body.wallet_address, body.signature)
    return to_auth_response(result)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(AUTH_LIMIT)
async def login(
    request: Request,
    body: VerifyRequest,
    authenticator: Authenticator,
):
    """Sign in with a signed challenge. Same contract as ``/auth/verify``."""
    logger.info(f"POST /auth/login | wallet={body.wallet_address.lower()}")
    result = await authenticator.verify(body.wallet_address, body.signature)
    return to_auth_response(result)


@router.get("/me", response_model=UserResponse)
@limiter.limit(READ_LIMIT)
async def get_me(
    request: Request,
    auth: CurrentUser,
    identities: Identities,
):
    """Get the account behind the current session token."""
    logger.info(f"GET /auth/me | user={auth.user_id}")
    user = await identities.get_by_id(auth.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return to_user_response(user)
