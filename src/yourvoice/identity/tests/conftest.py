"""Shared fixtures for identity tests."""

import asyncio
from datetime import UTC, datetime
from typing import Any
from unittest.mock import Mock
from uuid import uuid4

import pytest

from src.yourvoice.identity.manager import IdentityManager
from src.yourvoice.identity.storage import MemoryTokenStore
from src.yourvoice.services.database import ConflictError

TOKEN_KEY = "dynamic_edu_session_token"


class FakeProfileTable:
    """
    In-memory stand-in for the user_profiles table.

    Mirrors the async SupabaseQueryBuilder methods the identity core uses and
    enforces a unique email the way the real table does. Every call yields to
    the event loop once so concurrent callers interleave.
    """

    def __init__(self) -> None:
        self.rows: dict[str, dict[str, Any]] = {}
        self.calls: list[str] = []
        self.fail_with: Exception | None = None

    def add(self, **fields: Any) -> dict[str, Any]:
        now = datetime.now(UTC).isoformat()
        row = {
            "id": str(uuid4()),
            "email": "sam@example.com",
            "display_name": None,
            "unique_id": None,
            "is_anonymous": True,
            "role": "user",
            "is_blocked": False,
            "session_token": None,
            "created_at": now,
            "updated_at": now,
        }
        row.update(fields)
        self.rows[row["id"]] = row
        return row

    async def _enter(self, name: str) -> None:
        self.calls.append(name)
        await asyncio.sleep(0)
        if self.fail_with is not None:
            raise self.fail_with

    async def get_by_field(
        self, table: str, field: str, value: Any, columns: str = "*"
    ) -> dict[str, Any] | None:
        await self._enter("select")
        for row in self.rows.values():
            if row.get(field) == value:
                return dict(row)
        return None

    async def insert_record(self, table: str, data: dict[str, Any]) -> dict[str, Any] | None:
        await self._enter("insert")
        if any(row["email"] == data["email"] for row in self.rows.values()):
            raise ConflictError(table, "duplicate key value violates unique constraint")
        return dict(self.add(**data))

    async def update_record(
        self, table: str, record_id: str, data: dict[str, Any]
    ) -> dict[str, Any] | None:
        await self._enter("update")
        row = self.rows.get(str(record_id))
        if row is None:
            return None
        row.update(data)
        return dict(row)

    async def update_by_filter(
        self, table: str, filters: dict[str, Any], data: dict[str, Any]
    ) -> list[dict[str, Any]]:
        await self._enter("update")
        updated = []
        for row in self.rows.values():
            if all(row.get(field) == value for field, value in filters.items()):
                row.update(data)
                updated.append(dict(row))
        return updated

    def by_email(self, email: str) -> list[dict[str, Any]]:
        return [row for row in self.rows.values() if row["email"] == email]


@pytest.fixture
def fake_db() -> FakeProfileTable:
    """Empty in-memory profile table."""
    return FakeProfileTable()


@pytest.fixture
def token_store() -> MemoryTokenStore:
    """Empty local token slot."""
    return MemoryTokenStore()


@pytest.fixture
def analytics() -> Mock:
    """Mock analytics service."""
    return Mock()


@pytest.fixture
def manager(
    fake_db: FakeProfileTable, token_store: MemoryTokenStore, analytics: Mock
) -> IdentityManager:
    """Identity manager wired to the fake table (not yet rehydrated)."""
    return IdentityManager(db=fake_db, store=token_store, analytics=analytics, token_key=TOKEN_KEY)
