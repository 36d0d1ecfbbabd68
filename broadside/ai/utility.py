"""Score-map helpers shared by the ensemble policies."""

from __future__ import annotations

import random
from collections.abc import Hashable, Mapping
from typing import TypeVar

K = TypeVar("K", bound=Hashable)


def normalize_scores(scores: Mapping[K, float]) -> dict[K, float]:
    """Normalize non-negative scores to probabilities."""
    if not scores:
        return {}
    clamped = {key: max(0.0, value) for key, value in scores.items()}
    total = sum(clamped.values())
    if total == 0.0:
        uniform = 1.0 / len(clamped)
        return {key: uniform for key in clamped}
    return {key: value / total for key, value in clamped.items()}


def ranked(scores: Mapping[K, float]) -> list[K]:
    """Keys by descending score; insertion order breaks ties."""
    order = {key: index for index, key in enumerate(scores)}
    return sorted(scores, key=lambda key: (-scores[key], order[key]))


def weighted_choice(weights: Mapping[K, float], rng: random.Random) -> K:
    """Draw one key with probability proportional to its weight."""
    if not weights:
        raise ValueError("weighted_choice needs at least one option")
    probabilities = normalize_scores(weights)
    keys = list(probabilities)
    return rng.choices(keys, weights=[probabilities[key] for key in keys], k=1)[0]
