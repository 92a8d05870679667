from __future__ import annotations

import logging

import pytest

from constants.keys import StateKeys
from core.merge import deep_merge, get_in, merge_config, patch_for_path
from models.session import WorkflowMirror
from state.config_store import ConfigStore


def test_update_to_one_subtree_keeps_siblings(config_store: ConfigStore) -> None:
    config_store.load(
        {
            "gameId": "game_1",
            "theme": {"mainTheme": "ancient-egypt", "mood": "playful", "colors": {"primary": "gold"}},
            "audio": {"volume": 80, "musicStyle": "orchestral"},
        }
    )

    config_store.apply_update({"theme": {"mood": "epic", "colors": {"accent": "blue"}}})

    snapshot = config_store.snapshot()
    assert snapshot["audio"] == {"volume": 80, "musicStyle": "orchestral"}
    assert snapshot["theme"] == {
        "mainTheme": "ancient-egypt",
        "mood": "epic",
        "colors": {"primary": "gold", "accent": "blue"},
    }
    assert snapshot["gameId"] == "game_1"


def test_unknown_top_level_keys_are_replaced_whole(config_store: ConfigStore) -> None:
    config_store.load({"meta": {"a": 1}, "displayName": "Old"})

    config_store.apply_update({"meta": {"b": 2}})

    assert config_store.snapshot() == {"meta": {"b": 2}, "displayName": "Old"}


def test_editor_patches_cannot_write_the_workflow_subtree(config_store: ConfigStore, caplog) -> None:
    config_store.write_workflow(WorkflowMirror(current_step=2, total_steps=12, progress=18))

    with caplog.at_level(logging.WARNING, logger="state.config_store"):
        config_store.apply_update({"workflow": {"currentStep": 9}, "displayName": "Pharaoh's Gold"})

    assert config_store.step_pointer() == 2
    assert config_store.get("displayName") == "Pharaoh's Gold"
    assert "reserved 'workflow' sub-tree" in caplog.text


def test_write_workflow_updates_the_step_pointer(config_store: ConfigStore) -> None:
    config_store.load({"selectedGameType": "plinko"})

    config_store.write_workflow(
        WorkflowMirror(current_step=3, total_steps=6, progress=60, completed_steps={"theme-design": True})
    )

    assert config_store.step_pointer() == 3
    assert config_store.get("workflow") == {
        "currentStep": 3,
        "totalSteps": 6,
        "progress": 60,
        "completedSteps": {"theme-design": True},
    }
    assert config_store.get("selectedGameType") == "plinko"


def test_listeners_receive_isolated_snapshots(config_store: ConfigStore) -> None:
    received: list[dict] = []
    unsubscribe = config_store.subscribe(received.append)

    config_store.apply_update({"theme": {"mood": "epic"}})
    received[0]["theme"]["mood"] = "tampered"

    assert config_store.get("theme.mood") == "epic"

    unsubscribe()
    config_store.apply_update({"displayName": "Quiet"})
    assert len(received) == 1


def test_load_does_not_notify_listeners(config_store: ConfigStore) -> None:
    received: list[dict] = []
    config_store.subscribe(received.append)

    config_store.load({"gameId": "game_1"})

    assert received == []
    assert config_store.session_id() == "game_1"


def test_apply_update_rejects_non_mappings(config_store: ConfigStore) -> None:
    with pytest.raises(TypeError):
        config_store.apply_update(["theme"])  # type: ignore[arg-type]


def test_store_state_lives_in_session_state(session_state, config_store: ConfigStore) -> None:
    config_store.apply_update({"displayName": "Shared"})

    other = ConfigStore(session_state)

    assert other.get("displayName") == "Shared"
    assert session_state[StateKeys.CONFIG]["displayName"] == "Shared"


def test_merge_helpers_do_not_mutate_inputs() -> None:
    base = {"theme": {"mood": "playful"}, "reels": {"layout": {"rows": 3}}}
    patch = {"reels": {"layout": {"reels": 5}}}

    merged = merge_config(base, patch)
    deep = deep_merge(base, patch)

    assert base == {"theme": {"mood": "playful"}, "reels": {"layout": {"rows": 3}}}
    assert merged["reels"]["layout"] == {"rows": 3, "reels": 5}
    assert deep == merged
    assert get_in(merged, "reels.layout.rows") == 3
    assert get_in(merged, "reels.missing.rows", "n/a") == "n/a"
    assert patch_for_path("reels.layout.rows", 4) == {"reels": {"layout": {"rows": 4}}}
