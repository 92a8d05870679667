from __future__ import annotations

import json
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

import state.session_store as session_store_module
from core.errors import PersistenceWriteFailure, SessionNotFoundError
from state.session_store import InMemoryKeyValueStore, JsonFileKeyValueStore, SessionStore


@pytest.fixture
def ticking_clock(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make every ``utc_now`` call one second later than the previous one."""

    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    ticks = iter(range(10_000))
    monkeypatch.setattr(session_store_module, "utc_now", lambda: start + timedelta(seconds=next(ticks)))


def test_create_writes_session_and_active_pointer(session_store: SessionStore) -> None:
    session = session_store.create("game_1", {"gameId": "game_1", "displayName": "New Slot Game"})

    assert session_store.active_session_id() == "game_1"
    loaded = session_store.load("game_1")
    assert loaded.config == {"gameId": "game_1", "displayName": "New Slot Game"}
    assert loaded.created_at == session.created_at


def test_persist_upserts_config_and_keeps_other_sessions(session_store: SessionStore, ticking_clock) -> None:
    first = session_store.create("game_1", {"displayName": "One"})
    session_store.create("game_2", {"displayName": "Two"})

    updated = session_store.persist("game_1", {"displayName": "One, renamed"})

    assert updated.created_at == first.created_at
    assert updated.last_modified > first.last_modified
    assert session_store.load("game_1").config == {"displayName": "One, renamed"}
    assert session_store.load("game_2").config == {"displayName": "Two"}


def test_persist_creates_missing_record(session_store: SessionStore) -> None:
    session_store.persist("game_9", {"displayName": "Recovered"})

    assert session_store.exists("game_9")
    # Persisting never moves the active pointer.
    assert session_store.active_session_id() is None


def test_load_missing_session_raises(session_store: SessionStore) -> None:
    with pytest.raises(SessionNotFoundError) as excinfo:
        session_store.load("game_404")

    assert excinfo.value.session_id == "game_404"


def test_unreadable_record_is_reported_as_missing(caplog) -> None:
    backend = InMemoryKeyValueStore({"session_game_1": "{not json"})
    store = SessionStore(backend)

    assert store.exists("game_1") is False
    assert "unreadable session record" in caplog.text


def test_list_sessions_newest_first(session_store: SessionStore, ticking_clock) -> None:
    session_store.create("game_1", {})
    session_store.create("game_2", {})
    session_store.persist("game_1", {"displayName": "Touched"})

    assert [item.session_id for item in session_store.list_sessions()] == ["game_1", "game_2"]


def test_delete_clears_active_pointer(session_store: SessionStore) -> None:
    session_store.create("game_1", {})

    session_store.delete("game_1")

    assert session_store.active_session_id() is None
    assert session_store.list_sessions() == []


def test_json_file_store_writes_one_record_per_key(tmp_path: Path) -> None:
    store = SessionStore(JsonFileKeyValueStore(tmp_path))

    store.create("game_1", {"gameId": "game_1"})

    record = json.loads((tmp_path / "session_game_1.json").read_text(encoding="utf-8"))
    assert set(record) == {"sessionId", "config", "createdAt", "lastModified"}
    assert record["sessionId"] == "game_1"
    assert json.loads((tmp_path / "active_session.json").read_text(encoding="utf-8")) == "game_1"
    assert sorted(path.name for path in tmp_path.iterdir()) == ["active_session.json", "session_game_1.json"]


def test_failed_write_leaves_previous_record_intact(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    store = SessionStore(JsonFileKeyValueStore(tmp_path))
    store.create("game_1", {"displayName": "Before"})
    before = (tmp_path / "session_game_1.json").read_text(encoding="utf-8")

    def _fail_replace(src: str, dst: object) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", _fail_replace)

    with pytest.raises(PersistenceWriteFailure):
        store.persist("game_1", {"displayName": "After"})

    assert (tmp_path / "session_game_1.json").read_text(encoding="utf-8") == before
    assert not [path for path in tmp_path.iterdir() if path.name.endswith(".tmp")]


def test_json_file_store_rejects_path_like_keys(tmp_path: Path) -> None:
    backend = JsonFileKeyValueStore(tmp_path)

    with pytest.raises(ValueError):
        backend.set("../escape", "{}")
    assert backend.keys() == []


def test_path_like_session_id_is_reported_as_missing(tmp_path: Path, caplog) -> None:
    store = SessionStore(JsonFileKeyValueStore(tmp_path))

    with pytest.raises(SessionNotFoundError):
        store.load("../evil")
    assert store.exists("..\\evil") is False
    assert "Ignoring invalid session id '../evil'" in caplog.text
