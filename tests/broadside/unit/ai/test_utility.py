from __future__ import annotations

import random

import pytest

from broadside.ai.utility import normalize_scores, ranked, weighted_choice


def test_normalize_scores() -> None:
    assert normalize_scores({}) == {}
    assert normalize_scores({"a": 0.0, "b": 0.0}) == {"a": 0.5, "b": 0.5}
    assert normalize_scores({"a": 3.0, "b": 1.0, "c": -4.0}) == {"a": 0.75, "b": 0.25, "c": 0.0}


def test_ranked_keeps_insertion_order_for_ties() -> None:
    assert ranked({"x": 1.0, "y": 2.0, "z": 1.0}) == ["y", "x", "z"]


def test_weighted_choice_never_picks_zero_weight() -> None:
    rng = random.Random(0)
    picks = {weighted_choice({"never": 0.0, "always": 2.0}, rng) for _ in range(50)}
    assert picks == {"always"}


def test_weighted_choice_requires_options() -> None:
    with pytest.raises(ValueError):
        weighted_choice({}, random.Random(0))
