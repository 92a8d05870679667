import dataclasses
from pathlib import Path

import pytest

import config


def test_defaults_without_environment():
    settings = config.load_settings({})

    assert settings.storage_dir == Path(".sessions")
    assert settings.draft_endpoint == ""
    assert settings.draft_autosave_enabled is False
    assert settings.draft_debounce_seconds == 1.0
    assert settings.draft_request_timeout == 10.0
    assert settings.recovery_verify_delay == 0.0
    assert settings.safe_default_location == "/home"
    assert settings.workflow_path == "/"
    assert settings.debug is False


def test_environment_overrides(tmp_path):
    settings = config.load_settings(
        {
            "WORKFLOW_STORAGE_DIR": str(tmp_path),
            "DRAFT_ENDPOINT": " https://drafts.example/api/drafts ",
            "DRAFT_DEBOUNCE_SECONDS": "0.25",
            "RECOVERY_VERIFY_DELAY": "0.05",
            "RECOVERY_RECHECK_DELAY": "0.1",
            "SAFE_DEFAULT_LOCATION": "dashboard",
            "WORKFLOW_DEBUG": "Yes",
        }
    )

    assert settings.storage_dir == tmp_path
    assert settings.draft_endpoint == "https://drafts.example/api/drafts"
    assert settings.draft_autosave_enabled
    assert settings.draft_debounce_seconds == 0.25
    assert settings.recovery_verify_delay == 0.05
    assert settings.recovery_recheck_delay == 0.1
    # Locations are always absolute paths.
    assert settings.safe_default_location == "/dashboard"
    assert settings.debug is True


@pytest.mark.parametrize("raw", ["soon", "-1"])
def test_invalid_numbers_warn_and_fall_back(raw):
    with pytest.warns(RuntimeWarning, match="DRAFT_DEBOUNCE_SECONDS"):
        settings = config.load_settings({"DRAFT_DEBOUNCE_SECONDS": raw})

    assert settings.draft_debounce_seconds == 1.0


def test_settings_are_frozen():
    settings = config.load_settings({})

    with pytest.raises(dataclasses.FrozenInstanceError):
        settings.debug = True  # type: ignore[misc]


def test_module_exports_settings_and_storage_dir_only():
    assert config.STORAGE_DIR == config.SETTINGS.storage_dir
    assert sorted(config.__all__) == ["SETTINGS", "STORAGE_DIR", "WorkflowSettings", "load_settings"]
    assert not hasattr(config, "DRAFT_ENDPOINT")
