"""Weighted random selection over relative (un-normalized) weights."""

from __future__ import annotations

import math
from typing import Sequence, TypeVar

from promo_engine.errors import InvalidInput

T = TypeVar("T")


def _check_weights(weights: Sequence[float]) -> float:
    if not weights:
        raise InvalidInput("candidate set is empty")
    for i, w in enumerate(weights):
        if not isinstance(w, (int, float)) or isinstance(w, bool) or not math.isfinite(w) or w <= 0:
            raise InvalidInput(f"weight[{i}]={w!r} must be a positive number")
    return float(sum(weights))


def weighted_index(weights: Sequence[float], rng) -> int:
    """Pick index i with probability weights[i] / sum(weights).

    Draws r uniform in [0, total) and walks the running remainder; the last
    index absorbs floating-point slack left after the loop.
    """
    total = _check_weights(weights)
    r = rng.random() * total
    for i, w in enumerate(weights):
        r -= w
        if r < 0:
            return i
    return len(weights) - 1


def weighted_choice(candidates: Sequence[T], rng) -> T:
    """Pick one candidate carrying a `.weight` attribute."""
    return candidates[weighted_index([c.weight for c in candidates], rng)]
