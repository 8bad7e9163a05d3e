import csv
from dataclasses import replace
from pathlib import Path

import pytest

from cogniread import history as history_module
from cogniread.history import (
    CSV_COLUMNS,
    HistoryStoreError,
    InMemorySessionStore,
    JsonSessionStore,
    export_history_csv,
)
from cogniread.models import KeypointResult
from tests.utils import make_session


def test_in_memory_store_is_most_recent_first():
    store = InMemorySessionStore()
    assert store.latest() is None
    first = make_session(session_id="s1", coverage_pct=50.0)
    second = make_session(session_id="s2", coverage_pct=66.7)
    store.save(first)
    store.save(second)
    assert [s.session_id for s in store.list_all()] == ["s2", "s1"]
    assert store.latest() == second
    store.clear()
    assert store.list_all() == []


def test_json_store_persists_sessions(tmp_path: Path):
    path = tmp_path / "nested" / "sessions.json"
    store = JsonSessionStore(path)
    assert store.list_all() == []

    session = replace(
        make_session(session_id="s1", z_wpm=1.25, rci_coverage=None),
        keypoint_results=(KeypointResult(0, "Idea", True, ("idea", "core")),),
    )
    store.save(session)
    store.save(make_session(session_id="s2"))

    reloaded = JsonSessionStore(path)
    sessions = reloaded.list_all()
    assert [s.session_id for s in sessions] == ["s2", "s1"]
    assert sessions[1] == session
    assert reloaded.latest().session_id == "s2"

    reloaded.clear()
    assert not path.exists()
    assert reloaded.latest() is None


def test_json_store_rejects_corrupt_file(tmp_path: Path):
    path = tmp_path / "sessions.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(HistoryStoreError):
        JsonSessionStore(path).list_all()
    path.write_text('{"session_id": "x"}', encoding="utf-8")
    with pytest.raises(HistoryStoreError):
        JsonSessionStore(path).latest()


def test_export_history_csv(tmp_path: Path):
    sessions = [make_session(session_id="s2", coverage_pct=83.33), make_session()]
    dest = tmp_path / "history.csv"
    assert export_history_csv(sessions, dest) == 2
    with dest.open(encoding="utf-8", newline="") as handle:
        rows = list(csv.reader(handle))
    assert rows[0] == CSV_COLUMNS
    assert rows[1][1] == "83.33"
    assert rows[1][4] == "test-0"
    assert len(rows) == 3


def test_json_store_failed_write_keeps_previous_history(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
):
    path = tmp_path / "sessions.json"
    store = JsonSessionStore(path)
    store.save(make_session(session_id="s1"))
    before = path.read_text(encoding="utf-8")

    def failing_replace(src: str, dst: object) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(history_module.os, "replace", failing_replace)
    with pytest.raises(OSError):
        store.save(make_session(session_id="s2"))

    assert path.read_text(encoding="utf-8") == before
    assert [s.session_id for s in store.list_all()] == ["s1"]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["sessions.json"]
