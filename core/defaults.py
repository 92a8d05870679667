"""Seed configurations for new workflow sessions."""

from __future__ import annotations

import logging
from copy import deepcopy
from types import MappingProxyType
from typing import Any, Final, Mapping

from constants.keys import ConfigFields
from core.merge import merge_config

logger = logging.getLogger(__name__)

DEFAULT_THEME: Final[Mapping[str, str]] = MappingProxyType(
    {
        "selectedThemeId": "ancient-egypt",
        "mainTheme": "ancient-egypt",
        "artStyle": "cartoon",
        "colorScheme": "warm-vibrant",
        "mood": "playful",
    }
)

_BASE_CONFIG: Final[Mapping[str, Any]] = MappingProxyType(
    {
        ConfigFields.DISPLAY_NAME: "New Slot Game",
        ConfigFields.GAME_TYPE: "slots",
        ConfigFields.SELECTED_GAME_TYPE: "classic-reels",
        ConfigFields.THEME: dict(DEFAULT_THEME),
        "reels": {
            "layout": {
                "reels": 5,
                "rows": 3,
                "orientation": "landscape",
                "payMechanism": "betlines",
            },
        },
    }
)

# Presets addressed by the ``template`` deep-link parameter.
TEMPLATES: Final[Mapping[str, Mapping[str, Any]]] = MappingProxyType(
    {
        "classic-reels": {
            ConfigFields.DISPLAY_NAME: "Classic Reels",
            ConfigFields.SELECTED_GAME_TYPE: "classic-reels",
        },
        "plinko": {
            ConfigFields.DISPLAY_NAME: "New Plinko Game",
            ConfigFields.GAME_TYPE: "instant",
            ConfigFields.SELECTED_GAME_TYPE: "plinko",
            "instant": {"mechanic": "plinko", "rows": 12},
        },
        "mines": {
            ConfigFields.DISPLAY_NAME: "New Mines Game",
            ConfigFields.GAME_TYPE: "instant",
            ConfigFields.SELECTED_GAME_TYPE: "mines",
            "instant": {"mechanic": "mines", "gridSize": 5},
        },
        "crash": {
            ConfigFields.DISPLAY_NAME: "New Crash Game",
            ConfigFields.GAME_TYPE: "crash",
            ConfigFields.SELECTED_GAME_TYPE: "crash",
            "crash": {"growthRate": 0.1, "houseEdge": 4, "minMultiplier": 1.0, "maxMultiplier": 1000},
        },
    }
)


def default_config(session_id: str, *, template: str | None = None) -> dict[str, Any]:
    """Return the seed configuration for a new session.

    Unknown templates are ignored so a stale deep link still opens a usable
    workflow.
    """

    config = deepcopy(dict(_BASE_CONFIG))
    config[ConfigFields.GAME_ID] = session_id
    if template:
        preset = TEMPLATES.get(template)
        if preset is None:
            logger.warning("Unknown template '%s'; using the default configuration", template)
        else:
            config = merge_config(config, preset)
    return config


__all__ = ["DEFAULT_THEME", "TEMPLATES", "default_config"]
