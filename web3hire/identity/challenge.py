"""
Wallet challenge-response authentication.

A client proves control of a wallet by signing a server-issued message that
embeds a single-use nonce:

1. ``issue_challenge`` stores a fresh nonce on the user (creating the user on
   first contact) and returns the message to sign.
2. ``verify`` rebuilds the message from the stored nonce, recovers the signer
   with EIP-191 personal-message recovery, rotates the nonce so the signature
   cannot be replayed, and mints a session token.
3. ``verify_token`` decodes a session token without touching the store.
"""

import secrets
from dataclasses import dataclass
from typing import Any

from eth_account import Account
from eth_account.messages import encode_defunct

from ..auth import create_access_token, decode_token
from ..config import Settings
from ..errors import ConflictError, InvalidSignatureError, NotFoundError, UpstreamFailureError
from ..logging_config import get_logger, log_auth_event
from .models import Role, User, normalize_wallet_address
from .store import IdentityStore

logger = get_logger("web3hire.identity.challenge")

CHALLENGE_TEMPLATE = "Please sign this message to verify your wallet ownership: {nonce}"


def generate_nonce() -> str:
    """Generate a 128-bit random nonce as hex."""
    return secrets.token_hex(16)


def build_challenge_message(nonce: str) -> str:
    """Render the exact message a wallet must sign for ``nonce``."""
    return CHALLENGE_TEMPLATE.format(nonce=nonce)


def default_display_name(wallet_address: str) -> str:
    """Placeholder name for a wallet seen for the first time."""
    return f"User-{wallet_address[:6]}"


def recover_signer(message: str, signature: str) -> str:
    """Recover the lowercase address that signed ``message``.

    Raises:
        InvalidSignatureError: If the signature is malformed or unrecoverable.
    """
    try:
        address = Account.recover_message(encode_defunct(text=message), signature=signature)
    except Exception as e:
        # eth_account raises a mix of ValueError, BadSignature and binascii errors
        raise InvalidSignatureError("Invalid signature") from e
    return address.lower()


@dataclass
class VerificationResult:
    """Session token plus the authenticated user."""

    token: str
    user: User


class ChallengeAuthenticator:
    """Issues wallet challenges, verifies signatures, mints session tokens."""

    def __init__(self, store: IdentityStore, settings: Settings):
        self.store = store
        self.settings = settings

    async def issue_challenge(self, wallet_address: str) -> str:
        """Issue a fresh challenge for a wallet, creating the user if needed.

        Reissuing overwrites the previous nonce, invalidating any challenge
        that was handed out but not yet signed.
        """
        wallet = normalize_wallet_address(wallet_address)
        nonce = generate_nonce()

        user = await self.store.get_by_wallet(wallet)
        if user is None:
            try:
                user = await self.store.create(
                    wallet_address=wallet,
                    role=Role.CANDIDATE.value,
                    name=default_display_name(wallet),
                    nonce=nonce,
                )
                logger.info(f"Created new user | wallet={wallet} | id={user.id}")
                log_auth_event("challenge", wallet, True, "new user")
                return build_challenge_message(nonce)
            except ConflictError:
                # Lost a creation race against a concurrent request for this wallet
                user = await self.store.get_by_wallet(wallet)
                if user is None:
                    raise UpstreamFailureError("User vanished after unique-constraint conflict")

        if not await self.store.set_nonce(user.id, nonce):
            raise NotFoundError("User not found")

        log_auth_event("challenge", wallet, True)
        return build_challenge_message(nonce)

    async def verify(self, wallet_address: str, signature: str) -> VerificationResult:
        """Verify a signed challenge and issue a session token.

        Raises:
            NotFoundError: No user holds this wallet.
            InvalidSignatureError: Signature is malformed, signed by another
                wallet, or its nonce was consumed concurrently.
        """
        wallet = normalize_wallet_address(wallet_address)

        user = await self.store.get_by_wallet(wallet)
        if user is None:
            log_auth_event("verify", wallet, False, "unknown wallet")
            raise NotFoundError("User not found")
        if not user.nonce:
            log_auth_event("verify", wallet, False, "no outstanding challenge")
            raise InvalidSignatureError("No challenge issued for this wallet")

        message = build_challenge_message(user.nonce)
        try:
            recovered = recover_signer(message, signature)
        except InvalidSignatureError:
            log_auth_event("verify", wallet, False, "unrecoverable signature")
            raise

        if recovered != wallet:
            log_auth_event("verify", wallet, False, f"recovered={recovered}")
            raise InvalidSignatureError("Invalid signature")

        if not await self.store.rotate_nonce(user.id, user.nonce, generate_nonce()):
            log_auth_event("verify", wallet, False, "nonce already used")
            raise InvalidSignatureError("Challenge already used")

        token = create_access_token(user, self.settings)
        log_auth_event("verify", wallet, True, f"user={user.id}")

        refreshed = await self.store.get_by_id(user.id)
        return VerificationResult(token=token, user=refreshed or user)

    def verify_token(self, token: str) -> dict[str, Any]:
        """Validate a session token's signature and expiry, returning its claims."""
        return decode_token(token, self.settings)
