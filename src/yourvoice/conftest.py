"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from src.yourvoice.config import settings


@pytest.fixture(autouse=True)
def isolated_session_store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Point the default file token store at a per-test temp file.

    Keeps tests from reading or writing a real session in the working directory.

    Returns:
        Path of the session file used by default-constructed managers
    """
    path = tmp_path / "session.json"
    monkeypatch.setattr(settings, "session_store_path", str(path))
    return path
