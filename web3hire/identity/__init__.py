"""Identity subsystem: users, wallet addresses and rotating nonces.

Models:
- User: A marketplace participant
- Role: Employer, Candidate or Admin

Storage:
- IdentityStore: Protocol for user persistence
- SupabaseIdentityStore: Supabase-backed implementation

The challenge-response authenticator lives in ``web3hire.identity.challenge``.
"""

from web3hire.identity.models import Role, User, normalize_wallet_address
from web3hire.identity.store import IdentityStore, SupabaseIdentityStore

__all__ = [
    "Role",
    "User",
    "normalize_wallet_address",
    "IdentityStore",
    "SupabaseIdentityStore",
]
