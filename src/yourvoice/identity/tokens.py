"""Session token generation and hashing."""

import hashlib
import secrets

from src.yourvoice.config import settings

# 32 random bytes -> 64 hex characters
SESSION_TOKEN_BYTES = 32


def generate_session_token() -> str:
    """
    Generate a fresh session token from a cryptographically secure source.

    Returns:
        64-character lowercase hex string

    Example:
        >>> token = generate_session_token()
        >>> len(token)
        64
    """
    return secrets.token_hex(SESSION_TOKEN_BYTES)


def hash_session_token(token: str) -> str:
    """Return the sha256 hex digest of a session token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def stored_token_value(token: str) -> str:
    """
    Map a client-held token to the value kept in the ``session_token`` column.

    With ``session_token_hashing`` enabled only the digest ever reaches the
    row-store, so a leaked table does not leak usable credentials.
    """
    if settings.session_token_hashing:
        return hash_session_token(token)
    return token
