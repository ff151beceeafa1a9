"""Email capture flow that precedes identify(): form validation and user-facing messages."""

import logging
import re

from pydantic import BaseModel, Field, ValidationError, field_validator

from src.yourvoice.identity.manager import IdentityManager
from src.yourvoice.identity.models import UserProfile

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DISPLAY_NAME_MAX_LENGTH = 50
DEFAULT_ACTION_DESCRIPTION = "interact with this post"

EMAIL_REQUIRED = "Email is required"
EMAIL_INVALID = "Please enter a valid email address"
SAVE_FAILED = "Failed to save your info. Please try again."


class EmailCaptureForm(BaseModel):
    """Validated input of the email capture prompt."""

    email: str
    display_name: str | None = Field(default=None, max_length=DISPLAY_NAME_MAX_LENGTH)
    is_anonymous: bool = True

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError(EMAIL_REQUIRED)
        if not EMAIL_PATTERN.match(value):
            raise ValueError(EMAIL_INVALID)
        return value

    @field_validator("display_name", mode="before")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class CaptureOutcome(BaseModel):
    """Result shown by the capture prompt after a submit."""

    success: bool
    message: str
    profile: UserProfile | None = None


def capture_prompt(action_description: str = DEFAULT_ACTION_DESCRIPTION) -> str:
    """Description line of the capture prompt."""
    return f"To {action_description}, we just need your email. No password required!"


def _first_error(error: ValidationError) -> str:
    for detail in error.errors():
        field = detail["loc"][0] if detail["loc"] else None
        if field == "email":
            ctx_error = detail.get("ctx", {}).get("error")
            return str(ctx_error) if ctx_error else EMAIL_INVALID
        if field == "display_name":
            return f"Display name must be at most {DISPLAY_NAME_MAX_LENGTH} characters"
    return SAVE_FAILED


async def submit_email_capture(
    manager: IdentityManager,
    email: str,
    display_name: str | None = None,
    is_anonymous: bool = True,
    action_description: str = DEFAULT_ACTION_DESCRIPTION,
) -> CaptureOutcome:
    """
    Validate the capture form and identify the user.

    Validation failures never reach the backend. On success the identity gate
    is closed and any action waiting on identification has run.

    Args:
        manager: Root identity manager
        email: Raw email as typed
        display_name: Optional display name as typed
        is_anonymous: "Show me as Anonymous on public posts" choice
        action_description: What the user was trying to do, for the success message

    Returns:
        CaptureOutcome with the message to show inline or as a toast

    Example:
        >>> outcome = await submit_email_capture(identity, "sam@example.com", "Sam")
        >>> outcome.message
        "You're all set! You can now interact with this post."
    """
    try:
        form = EmailCaptureForm(email=email, display_name=display_name, is_anonymous=is_anonymous)
    except ValidationError as e:
        message = _first_error(e)
        logger.info(f"Email capture rejected: {message}")
        return CaptureOutcome(success=False, message=message)

    result = await manager.identify(form.email, form.display_name, form.is_anonymous)

    if result.success:
        return CaptureOutcome(
            success=True,
            message=f"You're all set! You can now {action_description}.",
            profile=result.profile,
        )

    return CaptureOutcome(success=False, message=result.error or SAVE_FAILED)
