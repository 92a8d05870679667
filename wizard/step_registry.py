"""Registry for workflow variants, their steps and canonical order."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Final

from constants.keys import ConfigFields


class Variant(StrEnum):
    """Step-sequence family selected from the configuration."""

    SLOTS = "slots"
    INSTANT = "instant"
    CRASH = "crash"


@dataclass(frozen=True)
class StepDefinition:
    """Metadata for a single workflow step.

    ``component_ref`` names the editor that renders the step; the UI layer
    resolves it and falls back to a generic placeholder when unknown.
    """

    id: str
    title: str
    description: str
    component_ref: str


SLOT_STEPS: Final[tuple[StepDefinition, ...]] = (
    StepDefinition("theme-design", "Design Your Theme", "Select and customize your game's visual theme", "theme"),
    StepDefinition("game-type", "Choose Game Type", "Select the type of slot game you want to create", "game_type"),
    StepDefinition("grid-layout", "Create Game Grid", "Design your game grid and pay mechanism", "grid_layout"),
    StepDefinition(
        "animation-studio",
        "Animation & Masking Studio",
        "Configure real-time animations, masking, and visual effects",
        "animation_studio",
    ),
    StepDefinition(
        "loading-experience",
        "Loading Experience",
        "Design professional loading screens and progress indicators",
        "loading_experience",
    ),
    StepDefinition(
        "splash-screen",
        "Game Splash & Branding",
        "Design game introduction screen and branding elements",
        "splash_screen",
    ),
    StepDefinition("audio-experience", "Audio & Experience", "Compose theme music and sound effects", "audio"),
    StepDefinition(
        "bonus-features",
        "Feature Selection",
        "Configure free spins, bonus games and special features",
        "bonus_features",
    ),
    StepDefinition(
        "math-model", "Math Laboratory", "Configure RTP, volatility and optimize symbol weights", "math_model"
    ),
    StepDefinition(
        "deep-simulation", "Deep Simulation", "Run comprehensive simulations to verify math model", "simulation"
    ),
    StepDefinition(
        "market-compliance",
        "Market Compliance",
        "Ensure game compliance with different market regulations",
        "market_compliance",
    ),
    StepDefinition("api-export", "API Export", "Export configuration to API and RGS", "api_export"),
)

CRASH_STEPS: Final[tuple[StepDefinition, ...]] = (
    StepDefinition("crash-mechanics", "Game Mechanics", "Configure multiplier curve and crash probability", "crash"),
    StepDefinition(
        "crash-visuals", "Visual Customization", "Design the graph, background, and object assets", "crash_visuals"
    ),
    StepDefinition("crash-social", "Social Features", "Configure chat, leaderboards and social feed", "crash_social"),
    StepDefinition(
        "crash-ultimate", "Ultimate Polish", "Configure particles, camera effects, and skins", "crash_ultimate"
    ),
    StepDefinition("crash-analytics", "Analytics & Math", "Verify RTP and run simulations", "simulation"),
    StepDefinition("crash-export", "Export & Launch", "Generate manifest and export game bundle", "api_export"),
)

INSTANT_STEPS: Final[tuple[StepDefinition, ...]] = (
    StepDefinition("theme-design", "Design Your Theme", "Select and customize your game's visual theme", "theme"),
    StepDefinition("game-type", "Instant Game Selection", "Choose your instant win mechanic", "game_type"),
    StepDefinition("mechanics", "Mechanics & Physics", "Tune the physics, math, and logic of your game", "instant"),
    StepDefinition(
        "visual-assets", "Visual Assets", "Customize balls, bombs, coins and other assets", "instant_assets"
    ),
    StepDefinition("audio-experience", "Audio & Experience", "Compose theme music and sound effects", "audio"),
    StepDefinition("api-export", "API Export", "Export configuration to API and RGS", "api_export"),
)

_STEPS_BY_VARIANT: Final[Mapping[Variant, tuple[StepDefinition, ...]]] = {
    Variant.SLOTS: SLOT_STEPS,
    Variant.INSTANT: INSTANT_STEPS,
    Variant.CRASH: CRASH_STEPS,
}

CRASH_GAME_TYPES: Final[frozenset[str]] = frozenset({"crash", "grid"})
INSTANT_GAME_TYPES: Final[frozenset[str]] = frozenset({"plinko", "mines", "coin_flip", "scratch"})

DISCRIMINATOR_FIELDS: Final[tuple[str, ...]] = (
    ConfigFields.SELECTED_GAME_TYPE,
    ConfigFields.INSTANT_GAME_TYPE,
)


def discriminator(config: Mapping[str, Any] | None) -> str | None:
    """Return the first non-empty variant discriminator in ``config``."""

    if not isinstance(config, Mapping):
        return None
    for field in DISCRIMINATOR_FIELDS:
        value = config.get(field)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def resolve_variant(config: Mapping[str, Any] | None) -> Variant:
    """Classify ``config`` into a workflow variant.

    Only ``selectedGameType`` can pick the crash flow; the instant flow also
    accepts ``instantGameType`` when no game type is selected.
    """

    if not isinstance(config, Mapping):
        return Variant.SLOTS
    selected = config.get(ConfigFields.SELECTED_GAME_TYPE)
    selected = selected.strip() if isinstance(selected, str) else ""
    if selected in CRASH_GAME_TYPES:
        return Variant.CRASH
    if discriminator(config) in INSTANT_GAME_TYPES:
        return Variant.INSTANT
    return Variant.SLOTS


def steps_for(variant: Variant) -> tuple[StepDefinition, ...]:
    """Return the ordered steps for ``variant`` (the same tuple on every call)."""

    return _STEPS_BY_VARIANT[Variant(variant)]


def step_ids(variant: Variant) -> tuple[str, ...]:
    """Return step ids of ``variant`` in canonical order."""

    return tuple(step.id for step in steps_for(variant))


def get_step(variant: Variant, step_id: str) -> StepDefinition | None:
    """Lookup step metadata by id within ``variant``."""

    return next((step for step in steps_for(variant) if step.id == step_id), None)


__all__ = [
    "CRASH_GAME_TYPES",
    "CRASH_STEPS",
    "DISCRIMINATOR_FIELDS",
    "INSTANT_GAME_TYPES",
    "INSTANT_STEPS",
    "SLOT_STEPS",
    "StepDefinition",
    "Variant",
    "discriminator",
    "get_step",
    "resolve_variant",
    "step_ids",
    "steps_for",
]
