"""Progress percentage for the workflow position."""

from __future__ import annotations

import math


def percentage(index: int, total: int) -> int:
    """Return the completion percentage for step ``index`` of ``total``.

    A single-step (or empty) workflow is always complete. ``index`` is
    clamped into range and halves round up, so both ends map exactly to
    ``0`` and ``100``.
    """

    if total <= 1:
        return 100
    clamped = min(max(index, 0), total - 1)
    return int(math.floor(clamped / (total - 1) * 100 + 0.5))


__all__ = ["percentage"]
