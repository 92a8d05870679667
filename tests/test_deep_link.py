from __future__ import annotations

import pytest

from wizard.deep_link import DeepLink, NavigationTarget


def test_empty_location_has_no_deep_link(query_params) -> None:
    link = DeepLink.from_query_params(query_params)

    assert link.is_empty
    assert link == DeepLink()


def test_full_deep_link_is_parsed(query_params) -> None:
    query_params.update({"step": "4", "force": "true", "game": "game_1", "template": "plinko"})

    link = DeepLink.from_query_params(query_params)

    assert link == DeepLink(step=4, force=True, game="game_1", template="plinko")


@pytest.mark.parametrize("raw", ["abc", "-2", "", "1.5"])
def test_malformed_step_is_ignored(raw: str) -> None:
    assert DeepLink.from_query_params({"step": raw}).step is None


@pytest.mark.parametrize(("raw", "expected"), [("1", True), ("YES", True), ("on", True), ("false", False), ("0", False)])
def test_force_flag_values(raw: str, expected: bool) -> None:
    assert DeepLink.from_query_params({"force": raw}).force is expected


def test_repeated_parameters_use_the_first_value(query_params) -> None:
    query_params["step"] = ["2", "7"]

    assert DeepLink.from_query_params(query_params).step == 2
    assert DeepLink.from_query_params({"step": ["5", "9"]}).step == 5


def test_navigation_target_url() -> None:
    target = NavigationTarget(path="/", step=3, session_id="game_1")

    assert target.query_params() == {"step": "3", "force": "true", "game": "game_1"}
    assert target.url() == "/?step=3&force=true&game=game_1"
    assert NavigationTarget(path="/", step=0, force=False).url() == "/?step=0"
