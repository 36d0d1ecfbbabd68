from __future__ import annotations

import random

import numpy as np

from broadside.ai.search import NeuralScorer, TTLCache, minimax, monte_carlo
from broadside.core.board import BoardState
from broadside.core.models import Coord


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_minimax_without_candidates_is_inconclusive() -> None:
    result = minimax([], depth=3, own_health=1.0, enemy_health=1.0, opponent_skill=0.5)
    assert result.cell is None
    assert result.inconclusive


def test_minimax_prefers_likely_hit() -> None:
    likely, unlikely = Coord(1, 1), Coord(8, 8)
    result = minimax(
        [(unlikely, 0.1), (likely, 0.9)],
        depth=1,
        own_health=1.0,
        enemy_health=1.0,
        opponent_skill=0.5,
    )
    assert result.cell == likely
    assert not result.inconclusive


def test_minimax_flags_ties_as_inconclusive() -> None:
    result = minimax(
        [(Coord(0, 0), 0.5), (Coord(1, 0), 0.5)],
        depth=2,
        own_health=1.0,
        enemy_health=1.0,
        opponent_skill=0.5,
    )
    assert result.inconclusive


def test_monte_carlo_finds_the_sure_hit() -> None:
    result = monte_carlo([(Coord(0, 0), 0.0), (Coord(5, 5), 1.0)], random.Random(2), 50)
    assert result.cell == Coord(5, 5)
    assert result.value == 1.0


def test_monte_carlo_without_candidates() -> None:
    assert monte_carlo([], random.Random(0)).cell is None


def test_neural_scorer_is_seeded_and_bounded(empty_board: BoardState) -> None:
    empty_board.hits[0, 0] = True
    empty_board.hits[0, 1] = True
    first = NeuralScorer(99)
    second = NeuralScorer(99)
    features = first.encode(empty_board, {Coord(0, 0)}, Coord(5, 5))
    assert features[0] == 1.0
    assert features[1] == -1.0
    assert features[55] == 0.5
    assert np.count_nonzero(features) == 3
    assert first.score(features) == second.score(features)
    assert 0.0 < first.score(features) < 1.0


def test_ttl_cache_expires_entries() -> None:
    clock = FakeClock()
    cache = TTLCache(5.0, clock=clock)
    cache.put("a", 1.0)
    assert cache.get("a") == 1.0
    clock.now = 6.0
    assert cache.get("a") is None
    assert len(cache) == 0


def test_ttl_cache_computes_once_while_fresh() -> None:
    clock = FakeClock()
    cache = TTLCache(5.0, clock=clock)
    calls: list[int] = []

    def compute() -> float:
        calls.append(1)
        return 42.0

    assert cache.get_or_compute("k", compute) == 42.0
    assert cache.get_or_compute("k", compute) == 42.0
    assert len(calls) == 1

    clock.now = 10.0
    cache.put("fresh", 1.0)
    cache.prune()
    assert cache.get("fresh") == 1.0
    assert len(cache) == 1
    cache.clear()
    assert len(cache) == 0
