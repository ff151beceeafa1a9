"""Data models for the identity core."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class UserRole(str, Enum):
    """Authorization tier of a profile."""

    USER = "user"
    CORE_TEAM = "core_team"
    ADMIN = "admin"


class UserProfile(BaseModel):
    """
    Row of the ``user_profiles`` table.

    The email is the lookup key and is never shown publicly; ``unique_id`` is the
    public handle. ``session_token`` holds the single active credential (or its
    digest when token hashing is enabled) and is kept out of ``repr``.

    Example:
        >>> profile = UserProfile(
        ...     id="6f1c...",
        ...     email="sam@example.com",
        ...     display_name="Sam",
        ...     is_anonymous=False,
        ... )
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    email: str
    display_name: str | None = None
    unique_id: str | None = None
    is_anonymous: bool = True
    role: UserRole = UserRole.USER
    is_blocked: bool = False
    session_token: str | None = Field(default=None, repr=False)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class IdentifyResult(BaseModel):
    """Outcome of an identify() call."""

    success: bool
    profile: UserProfile | None = None
    error: str | None = None
