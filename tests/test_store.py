"""
Tests for the session state stores.

Verifies:
- Records overwrite by index
- History is re-read from storage
- Completion flag, snapshots and clearing
- JSON files persist across store instances
- Write failures are reported, not raised
"""

import json
from unittest.mock import patch

import pytest

from performance_wizard.models import StepRecord
from performance_wizard.store import InMemoryStateStore, JsonFileStateStore, session_file_name


@pytest.fixture(params=["memory", "json"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemoryStateStore()
    return JsonFileStateStore(tmp_path / "state")


class TestStateStoreContract:
    """Behaviour shared by every store implementation."""

    def test_empty_session(self, any_store):
        assert any_store.load_records("site") == {}
        assert not any_store.is_complete("site")
        assert any_store.load_snapshot("site", 1) is None

    def test_save_overwrites_by_index(self, any_store):
        first = any_store.save_record("site", StepRecord(1, "prompt", "first"))
        second = any_store.save_record("site", StepRecord(1, "prompt", "second"))

        records = any_store.load_records("site")
        assert len(records) == 1
        assert records[1].response_text == "second"
        assert first.success and not first.warnings
        assert second.success and len(second.warnings) == 1

    def test_load_history_window(self, any_store):
        for index in (1, 2, 3):
            any_store.save_record("site", StepRecord(index, f"p{index}", f"r{index}"))

        history = any_store.load_history("site", current_step=3)

        assert history.indices() == [1, 2]

    def test_history_reflects_later_writes(self, any_store):
        any_store.save_record("site", StepRecord(1, "p1", "r1"))
        assert len(any_store.load_history("site", 5)) == 1

        any_store.save_record("site", StepRecord(2, "p2", "r2"))
        assert len(any_store.load_history("site", 5)) == 2

    def test_completion_flag(self, any_store):
        any_store.mark_complete("site")
        assert any_store.is_complete("site")

        any_store.mark_complete("site", False)
        assert not any_store.is_complete("site")

    def test_snapshots(self, any_store):
        any_store.save_snapshot("site", 1, '{"score": 1}')

        assert any_store.load_snapshot("site", 1) == '{"score": 1}'
        assert any_store.load_snapshot("site", 2) is None

    def test_clear_forgets_everything(self, any_store):
        any_store.save_record("site", StepRecord(1, "p", "r"))
        any_store.save_snapshot("site", 1, "data")
        any_store.mark_complete("site")

        report = any_store.clear("site")

        assert report.success
        assert any_store.load_records("site") == {}
        assert any_store.load_snapshot("site", 1) is None
        assert not any_store.is_complete("site")

    def test_sessions_are_isolated(self, any_store):
        any_store.save_record("a", StepRecord(1, "p", "r"))

        assert any_store.load_records("b") == {}
        assert any_store.list_sessions() == ["a"]

    def test_write_failure_reported(self, any_store):
        with patch.object(any_store, "_write", side_effect=OSError("disk full")):
            report = any_store.save_record("site", StepRecord(1, "p", "r"))

        assert not report.success
        assert report.errors == ["disk full"]

    def test_locks_are_per_session_and_reentrant(self, any_store):
        with any_store.lock("a") as lock_a:
            with any_store.lock("a") as again:
                assert again is lock_a
            with any_store.lock("b") as lock_b:
                assert lock_b is not lock_a


class TestJsonFileStateStore:
    """Tests specific to the file-backed store."""

    def test_persists_across_instances(self, tmp_path):
        JsonFileStateStore(tmp_path).save_record("site", StepRecord(2, "p", "r"))

        records = JsonFileStateStore(tmp_path).load_records("site")

        assert records[2].prompt_text == "p"

    def test_file_layout(self, tmp_path):
        store = JsonFileStateStore(tmp_path)
        store.save_record("site", StepRecord(1, "p", "r"))
        store.save_snapshot("site", 1, "raw")

        payload = json.loads((tmp_path / "site.json").read_text())

        assert payload == {
            "steps": {"1": {"prompt_text": "p", "response_text": "r"}},
            "complete": False,
            "snapshots": {"1": "raw"},
        }

    def test_session_ids_are_sanitized(self, tmp_path):
        store = JsonFileStateStore(tmp_path)
        store.save_record("https://example.com/shop", StepRecord(1, "p", "r"))

        name = session_file_name("https://example.com/shop")
        assert name.startswith("https_example.com_shop-")
        assert name.endswith(".json")
        assert (tmp_path / name).exists()
        assert session_file_name("example.com") == "example.com.json"

    def test_ids_sanitizing_alike_keep_separate_files(self, tmp_path):
        store = JsonFileStateStore(tmp_path)
        store.save_record("a/b", StepRecord(1, "slash", "r"))
        store.save_record("a_b", StepRecord(1, "underscore", "r"))

        assert session_file_name("a/b") != session_file_name("a_b")
        assert store.load_record("a/b", 1).prompt_text == "slash"
        assert store.load_record("a_b", 1).prompt_text == "underscore"

    def test_lock_follows_session_file(self, tmp_path):
        store = JsonFileStateStore(tmp_path)

        with store.lock("site") as lock:
            assert store.lock_key("site") == "site.json"
        with store.lock("other") as other:
            assert other is not lock
        with store.lock("site") as again:
            assert again is lock

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        (tmp_path / "site.json").write_text("{not json")

        assert JsonFileStateStore(tmp_path).load_records("site") == {}

    def test_no_temporary_files_left(self, tmp_path):
        store = JsonFileStateStore(tmp_path)
        store.save_record("site", StepRecord(1, "p", "r"))

        assert sorted(p.name for p in tmp_path.iterdir()) == ["site.json"]
