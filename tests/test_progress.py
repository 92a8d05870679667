from __future__ import annotations

import pytest

from wizard.progress import percentage


@pytest.mark.parametrize("total", range(1, 25))
def test_percentage_stays_in_bounds_and_hits_both_ends(total: int) -> None:
    values = [percentage(index, total) for index in range(total)]
    assert all(0 <= value <= 100 for value in values)
    assert values == sorted(values)
    assert percentage(total - 1, total) == 100
    if total > 1:
        assert percentage(0, total) == 0


def test_single_step_workflow_is_complete() -> None:
    assert percentage(0, 1) == 100
    assert percentage(0, 0) == 100


def test_percentage_examples() -> None:
    assert percentage(3, 12) == 27
    assert percentage(1, 3) == 50
    assert percentage(2, 6) == 40


def test_halves_round_up() -> None:
    # 1 / 8 * 100 == 12.5
    assert percentage(1, 9) == 13
    # 3 / 8 * 100 == 37.5
    assert percentage(3, 9) == 38


def test_out_of_range_index_is_clamped() -> None:
    assert percentage(-3, 5) == 0
    assert percentage(42, 5) == 100
