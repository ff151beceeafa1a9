"""Persistent client-side storage for the session token."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class TokenStore(Protocol):
    """Key/value slot holding the current session token as plain text."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryTokenStore:
    """Process-local token store. Nothing survives a restart."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class FileTokenStore:
    """
    Token store backed by a small JSON file of key -> value pairs.

    Writes go to a temp file in the same directory and are moved into place,
    so a crash mid-write never leaves a truncated file behind. A missing or
    unreadable file reads as empty.

    Attributes:
        path: Location of the JSON file

    Example:
        >>> store = FileTokenStore(Path(".yourvoice/session.json"))
        >>> store.set("dynamic_edu_session_token", token)
        >>> store.get("dynamic_edu_session_token")
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._atomic_write(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._atomic_write(data)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(
                f"Unreadable token store at {self.path}, treating as empty: {e}",
                extra={"error_type": "token_store_unreadable"},
            )
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Token store at {self.path} is not a JSON object, ignoring")
            return {}

        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _atomic_write(self, data: dict[str, str]) -> None:
        """Write JSON file atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w", dir=self.path.parent, delete=False, encoding="utf-8"
        ) as tf:
            json.dump(data, tf, indent=2)
            temp_path = Path(tf.name)

        try:
            os.replace(temp_path, self.path)
        except OSError:
            if temp_path.exists():
                temp_path.unlink()
            raise
