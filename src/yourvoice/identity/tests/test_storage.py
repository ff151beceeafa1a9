"""Tests for local token storage."""

import json
from pathlib import Path

from src.yourvoice.identity.storage import FileTokenStore, MemoryTokenStore

KEY = "dynamic_edu_session_token"


class TestMemoryTokenStore:
    """Tests for the in-process store."""

    def test_set_get_remove(self) -> None:
        """Test the basic slot lifecycle."""
        store = MemoryTokenStore()

        assert store.get(KEY) is None
        store.set(KEY, "token")
        assert store.get(KEY) == "token"
        store.remove(KEY)
        assert store.get(KEY) is None

    def test_remove_missing_key_is_noop(self) -> None:
        """Test removing an empty slot."""
        MemoryTokenStore().remove(KEY)


class TestFileTokenStore:
    """Tests for the JSON-file store."""

    def test_value_survives_new_instance(self, tmp_path: Path) -> None:
        """Test that a token written by one instance is read by the next (reload)."""
        path = tmp_path / "nested" / "session.json"
        FileTokenStore(path).set(KEY, "token")

        assert FileTokenStore(path).get(KEY) == "token"
        assert json.loads(path.read_text(encoding="utf-8")) == {KEY: "token"}

    def test_remove_keeps_other_keys(self, tmp_path: Path) -> None:
        """Test that removing the token leaves unrelated keys alone."""
        path = tmp_path / "session.json"
        store = FileTokenStore(path)
        store.set(KEY, "token")
        store.set("theme", "dark")

        store.remove(KEY)

        assert store.get(KEY) is None
        assert store.get("theme") == "dark"

    def test_missing_file_reads_empty(self, tmp_path: Path) -> None:
        """Test reading before anything was written."""
        assert FileTokenStore(tmp_path / "absent.json").get(KEY) is None

    def test_corrupt_file_reads_empty(self, tmp_path: Path) -> None:
        """Test that an unreadable file is treated as an empty slot."""
        path = tmp_path / "session.json"
        path.write_text("{not json", encoding="utf-8")

        store = FileTokenStore(path)

        assert store.get(KEY) is None
        store.set(KEY, "token")
        assert store.get(KEY) == "token"

    def test_non_object_file_reads_empty(self, tmp_path: Path) -> None:
        """Test that a JSON list is ignored."""
        path = tmp_path / "session.json"
        path.write_text("[1, 2]", encoding="utf-8")

        assert FileTokenStore(path).get(KEY) is None

    def test_no_temp_files_left_behind(self, tmp_path: Path) -> None:
        """Test that atomic writes clean up after themselves."""
        store = FileTokenStore(tmp_path / "session.json")
        store.set(KEY, "one")
        store.set(KEY, "two")

        assert [p.name for p in tmp_path.iterdir()] == ["session.json"]
