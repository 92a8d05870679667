"""Merge helpers for the shared game configuration object."""

from __future__ import annotations

from collections.abc import Collection, Mapping
from copy import deepcopy
from typing import Any, Final

# Sub-objects that receive a recursive merge. Every other top-level key is
# replaced as a whole when it appears in a patch.
KNOWN_SUBTREES: Final[frozenset[str]] = frozenset(
    {
        "theme",
        "reels",
        "bonus",
        "audio",
        "crash",
        "instant",
        "scratch",
        "loadingAssets",
        "steps",
        "workflow",
    }
)


def deep_merge(base: Mapping[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``patch`` merged in recursively.

    Mappings on both sides are merged key by key; any other value in
    ``patch`` replaces the one in ``base``. Neither input is mutated.
    """

    merged: dict[str, Any] = {key: deepcopy(value) for key, value in base.items()}
    for key, value in patch.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


def merge_config(
    config: Mapping[str, Any],
    patch: Mapping[str, Any],
    *,
    subtrees: Collection[str] = KNOWN_SUBTREES,
) -> dict[str, Any]:
    """Apply ``patch`` to ``config`` using the configuration merge rules.

    Top-level keys are merged shallowly, the ``subtrees`` are merged
    recursively. Keys absent from ``patch`` are always kept.
    """

    merged: dict[str, Any] = {key: deepcopy(value) for key, value in config.items()}
    for key, value in patch.items():
        current = merged.get(key)
        if key in subtrees and isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


def get_in(data: Mapping[str, Any] | None, path: str, default: Any = None) -> Any:
    """Return the nested value for ``path`` from ``data`` when available."""

    cursor: Any = data
    for part in path.split("."):
        if isinstance(cursor, Mapping) and part in cursor:
            cursor = cursor[part]
        else:
            return default
    return cursor


def patch_for_path(path: str, value: Any) -> dict[str, Any]:
    """Build a nested patch that sets ``value`` at the dot-separated ``path``."""

    parts = path.split(".")
    patch: dict[str, Any] = {parts[-1]: value}
    for part in reversed(parts[:-1]):
        patch = {part: patch}
    return patch


__all__ = [
    "KNOWN_SUBTREES",
    "deep_merge",
    "get_in",
    "merge_config",
    "patch_for_path",
]
