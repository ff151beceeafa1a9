"""PostHog analytics service for identity event tracking."""

import posthog

from src.yourvoice.config import settings


class PostHogService:
    """Service for tracking analytics events via PostHog."""

    def __init__(self) -> None:
        """Initialize PostHog service."""
        if settings.posthog_api_key:
            posthog.api_key = settings.posthog_api_key
            posthog.host = settings.posthog_host

    def capture(self, distinct_id: str, event: str, properties: dict | None = None) -> None:
        """
        Track an event.

        Args:
            distinct_id: Profile id, or "anonymous" before identification
            event: Event name (e.g., "identity_identified")
            properties: Optional event properties

        Example:
            >>> service = PostHogService()
            >>> service.capture("profile-123", "identity_identified", {"is_new": True})
        """
        if not settings.posthog_api_key:
            return

        posthog.capture(distinct_id=distinct_id, event=event, properties=properties or {})

    def identify(self, distinct_id: str, properties: dict | None = None) -> None:
        """
        Attach person properties to an identified profile.

        Only non-identifying traits are sent; the email never leaves the client.

        Args:
            distinct_id: Profile id
            properties: Person properties (role, anonymity choice, ...)

        Example:
            >>> service = PostHogService()
            >>> service.identify("profile-123", {"role": "user", "is_anonymous": True})
        """
        if not settings.posthog_api_key:
            return

        posthog.identify(distinct_id=distinct_id, properties=properties or {})
