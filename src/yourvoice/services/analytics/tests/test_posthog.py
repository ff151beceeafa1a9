"""Tests for the PostHog analytics service."""

from unittest.mock import patch

import pytest

from src.yourvoice.config import settings
from src.yourvoice.services.analytics.posthog import PostHogService


@patch("src.yourvoice.services.analytics.posthog.posthog")
def test_capture_is_noop_without_api_key(mock_posthog, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that nothing is sent when PostHog is not configured."""
    monkeypatch.setattr(settings, "posthog_api_key", None)

    PostHogService().capture("profile-1", "identity_identified")

    mock_posthog.capture.assert_not_called()


@patch("src.yourvoice.services.analytics.posthog.posthog")
def test_capture_sends_event(mock_posthog, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that events are forwarded when an API key is set."""
    monkeypatch.setattr(settings, "posthog_api_key", "phc_test")

    PostHogService().capture("profile-1", "identity_identified", {"is_new": True})

    assert mock_posthog.api_key == "phc_test"
    mock_posthog.capture.assert_called_once_with(
        distinct_id="profile-1", event="identity_identified", properties={"is_new": True}
    )


@patch("src.yourvoice.services.analytics.posthog.posthog")
def test_identify_sends_person_properties(mock_posthog, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that person properties are forwarded for an identified profile."""
    monkeypatch.setattr(settings, "posthog_api_key", "phc_test")

    PostHogService().identify("profile-1", {"role": "user", "is_anonymous": True})

    mock_posthog.identify.assert_called_once_with(
        distinct_id="profile-1", properties={"role": "user", "is_anonymous": True}
    )


@patch("src.yourvoice.services.analytics.posthog.posthog")
def test_identify_is_noop_without_api_key(mock_posthog, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that nothing is sent when PostHog is not configured."""
    monkeypatch.setattr(settings, "posthog_api_key", None)

    PostHogService().identify("profile-1", {"role": "user"})

    mock_posthog.identify.assert_not_called()
