"""Lookahead helpers for the expert tier: minimax, UCB1 rollouts, a toy scorer and a TTL cache."""

from __future__ import annotations

import math
import random
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import numpy as np

from broadside.core.board import BoardState
from broadside.core.models import Coord

HIT_DAMAGE = 0.2
INCONCLUSIVE_MARGIN = 0.01
UCB_EXPLORATION = math.sqrt(2)


@dataclass(frozen=True, slots=True)
class SearchResult:
    cell: Coord | None
    value: float
    inconclusive: bool


def minimax(
    candidates: Sequence[tuple[Coord, float]],
    *,
    depth: int,
    own_health: float,
    enemy_health: float,
    opponent_skill: float,
    branching: int = 5,
) -> SearchResult:
    """Alpha-beta search on the fleet health differential.

    Our plies pick one of the ``branching`` most likely cells and remove the expected
    damage from the enemy; opponent plies remove ``opponent_skill`` worth of damage from us.
    """
    ordered = sorted(candidates, key=lambda item: -item[1])
    root_moves = ordered[:branching]
    if not root_moves:
        return SearchResult(None, own_health - enemy_health, True)

    values: list[tuple[float, Coord]] = []
    for cell, probability in root_moves:
        remaining = [item for item in ordered if item[0] != cell]
        value = _minimax_value(
            remaining,
            depth - 1,
            -math.inf,
            math.inf,
            False,
            own_health,
            max(0.0, enemy_health - probability * HIT_DAMAGE),
            opponent_skill,
            branching,
        )
        values.append((value, cell))
    values.sort(key=lambda item: -item[0])
    best_value, best_cell = values[0]
    inconclusive = len(values) > 1 and best_value - values[1][0] < INCONCLUSIVE_MARGIN
    return SearchResult(best_cell, best_value, inconclusive)


def _minimax_value(
    ordered: Sequence[tuple[Coord, float]],
    depth: int,
    alpha: float,
    beta: float,
    maximizing: bool,
    own_health: float,
    enemy_health: float,
    opponent_skill: float,
    branching: int,
) -> float:
    if depth <= 0 or own_health <= 0.0 or enemy_health <= 0.0:
        return own_health - enemy_health
    if not maximizing:
        return _minimax_value(
            ordered,
            depth - 1,
            alpha,
            beta,
            True,
            max(0.0, own_health - opponent_skill * HIT_DAMAGE),
            enemy_health,
            opponent_skill,
            branching,
        )
    if not ordered:
        return own_health - enemy_health
    best = -math.inf
    for index, (_, probability) in enumerate(ordered[:branching]):
        remaining = list(ordered[:index]) + list(ordered[index + 1 :])
        value = _minimax_value(
            remaining,
            depth - 1,
            alpha,
            beta,
            False,
            own_health,
            max(0.0, enemy_health - probability * HIT_DAMAGE),
            opponent_skill,
            branching,
        )
        best = max(best, value)
        alpha = max(alpha, best)
        if beta <= alpha:
            break
    return best


def monte_carlo(
    candidates: Sequence[tuple[Coord, float]],
    rng: random.Random,
    simulations: int = 100,
) -> SearchResult:
    """UCB1 bandit over candidate cells; each rollout draws a hit with the cell probability."""
    if not candidates:
        return SearchResult(None, 0.0, True)
    visits = [0] * len(candidates)
    wins = [0.0] * len(candidates)
    for total in range(simulations):
        arm = _select_arm(visits, wins, total)
        _, probability = candidates[arm]
        visits[arm] += 1
        if rng.random() < probability:
            wins[arm] += 1.0

    best_arm = max(
        range(len(candidates)),
        key=lambda i: (wins[i] / visits[i] if visits[i] else 0.0, visits[i], -i),
    )
    rate = wins[best_arm] / visits[best_arm] if visits[best_arm] else 0.0
    return SearchResult(candidates[best_arm][0], rate, False)


def _select_arm(visits: Sequence[int], wins: Sequence[float], total: int) -> int:
    for index, count in enumerate(visits):
        if count == 0:
            return index
    log_total = math.log(total)
    return max(
        range(len(visits)),
        key=lambda i: wins[i] / visits[i] + UCB_EXPLORATION * math.sqrt(log_total / visits[i]),
    )


class NeuralScorer:
    """Fixed random 100-50-10 sigmoid network used as a small heuristic term.

    Weights are drawn once from the owner's RNG and never trained.
    """

    INPUT_SIZE = 100
    HIDDEN_SIZE = 50
    OUTPUT_SIZE = 10

    def __init__(self, seed: int) -> None:
        generator = np.random.default_rng(seed)
        self.w1 = generator.uniform(-1.0, 1.0, size=(self.INPUT_SIZE, self.HIDDEN_SIZE))
        self.w2 = generator.uniform(-1.0, 1.0, size=(self.HIDDEN_SIZE, self.OUTPUT_SIZE))

    def encode(self, board: BoardState, hits: set[Coord], cell: Coord) -> np.ndarray:
        """Board as +1 (hit) / -1 (miss) / 0, with the candidate cell marked 0.5."""
        features = np.zeros(self.INPUT_SIZE, dtype=np.float64)
        ys, xs = np.nonzero(board.hits)
        for y, x in zip(ys, xs):
            index = int(y) * board.width + int(x)
            if index < self.INPUT_SIZE:
                features[index] = 1.0 if Coord(int(x), int(y)) in hits else -1.0
        index = cell.y * board.width + cell.x
        if index < self.INPUT_SIZE:
            features[index] = 0.5
        return features

    def score(self, features: np.ndarray) -> float:
        hidden = _sigmoid(features @ self.w1)
        output = _sigmoid(hidden @ self.w2)
        return float(output.max())


def _sigmoid(values: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-values))


class TTLCache:
    """Small time-bounded memo; entries may be dropped at any time without harm."""

    def __init__(self, ttl_seconds: float = 5.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, float]] = {}

    def get(self, key: str) -> float | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at > self._ttl:
            del self._entries[key]
            return None
        return value

    def put(self, key: str, value: float) -> None:
        self._entries[key] = (self._clock(), value)

    def get_or_compute(self, key: str, compute: Callable[[], float]) -> float:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = compute()
        self.put(key, value)
        return value

    def prune(self) -> None:
        now = self._clock()
        expired = [key for key, (stored_at, _) in self._entries.items() if now - stored_at > self._ttl]
        for key in expired:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
