"""Lightweight identity/session core: email-captured profiles and client-held session tokens."""

from src.yourvoice.identity.capture import (
    CaptureOutcome,
    EmailCaptureForm,
    capture_prompt,
    submit_email_capture,
)
from src.yourvoice.identity.dependencies import get_identity_manager, set_identity_manager
from src.yourvoice.identity.exceptions import (
    IdentityError,
    IdentityInProgressError,
    SessionExpiredError,
)
from src.yourvoice.identity.manager import IdentityManager, normalize_email
from src.yourvoice.identity.models import IdentifyResult, UserProfile, UserRole
from src.yourvoice.identity.storage import FileTokenStore, MemoryTokenStore, TokenStore
from src.yourvoice.identity.tokens import generate_session_token, hash_session_token

__all__ = [
    "CaptureOutcome",
    "EmailCaptureForm",
    "capture_prompt",
    "submit_email_capture",
    "get_identity_manager",
    "set_identity_manager",
    "IdentityError",
    "IdentityInProgressError",
    "SessionExpiredError",
    "IdentityManager",
    "normalize_email",
    "IdentifyResult",
    "UserProfile",
    "UserRole",
    "FileTokenStore",
    "MemoryTokenStore",
    "TokenStore",
    "generate_session_token",
    "hash_session_token",
]
