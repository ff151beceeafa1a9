"""Shared services module for external integrations."""

from src.yourvoice.services.analytics.posthog import PostHogService

__all__ = [
    "PostHogService",
]
