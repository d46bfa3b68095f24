"""Error taxonomy shared by the authenticator, the workflows and the API.

Every failure surfaced to a caller carries a stable ``kind`` and the HTTP
status the API maps it to.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse


class MarketplaceError(Exception):
    """Base for all web3hire errors."""

    kind = "Error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(MarketplaceError):
    """Referenced user, task or job does not exist."""

    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND


class UnauthenticatedError(MarketplaceError):
    """Missing, malformed or expired session token."""

    kind = "Unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidSignatureError(UnauthenticatedError):
    """Signature does not recover to the claimed wallet address."""


class ForbiddenError(MarketplaceError):
    """Caller lacks the role or ownership required."""

    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidStateError(MarketplaceError):
    """Entity status disallows the operation."""

    kind = "InvalidState"
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(MarketplaceError):
    """Uniqueness violation or concurrent modification."""

    kind = "Conflict"
    status_code = status.HTTP_409_CONFLICT


class UpstreamFailureError(MarketplaceError):
    """Persistence layer or crypto primitive failed unexpectedly."""

    kind = "UpstreamFailure"
    status_code = status.HTTP_502_BAD_GATEWAY


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    """Render a MarketplaceError as ``{"detail", "kind"}``."""
    headers = None
    if isinstance(exc, UnauthenticatedError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind},
        headers=headers,
    )
