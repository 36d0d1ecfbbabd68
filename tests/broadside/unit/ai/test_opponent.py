from __future__ import annotations

from broadside.ai.decision import MoveKind, OpponentMove
from broadside.ai.opponent import (
    DetectedPattern,
    OpponentBehavior,
    OpponentModel,
    PatternType,
    detect_patterns,
)
from broadside.core.models import Coord


def _attacks(cells: list[Coord], hits: int = 0) -> tuple[OpponentMove, ...]:
    return tuple(
        OpponentMove(turn=i + 1, kind=MoveKind.ATTACK, target=cell, hit=i < hits)
        for i, cell in enumerate(cells)
    )


def test_detects_linear_and_edge_heavy_sweeps() -> None:
    row = [Coord(x, 0) for x in range(6)]
    kinds = {pattern.kind for pattern in detect_patterns(row)}
    assert PatternType.LINEAR in kinds
    assert PatternType.EDGE_HEAVY in kinds


def test_detects_diagonal_sweep() -> None:
    diagonal = [Coord(i, i) for i in range(1, 7)]
    kinds = {pattern.kind for pattern in detect_patterns(diagonal)}
    assert PatternType.DIAGONAL in kinds


def test_observe_updates_skill_and_patterns() -> None:
    model = OpponentModel()
    history = _attacks([Coord(x, 0) for x in range(6)], hits=3)
    model.observe(history)
    assert model.estimated_skill == 0.5
    assert model.pattern(PatternType.LINEAR) is not None
    assert model.predictability >= 0.8


def test_pattern_confidence_only_grows() -> None:
    model = OpponentModel()
    first = DetectedPattern(PatternType.SPIRAL, "outward spiral", 0.6)
    model.store_pattern(first, 5)
    model.store_pattern(DetectedPattern(PatternType.SPIRAL, "outward spiral", 0.3), 6)
    stored = model.pattern(PatternType.SPIRAL)
    assert stored is not None
    assert stored.confidence > 0.6
    assert stored.occurrences == 2
    for turn in range(10):
        model.store_pattern(DetectedPattern(PatternType.SPIRAL, "outward spiral", 0.6), turn)
    assert stored.confidence == 1.0

    model.clear_history()
    assert model.targeting_patterns == []


def test_behavior_classification() -> None:
    defensive = OpponentModel()
    moves = (
        OpponentMove(turn=1, kind=MoveKind.POWERUP),
        OpponentMove(turn=2, kind=MoveKind.ABILITY),
        OpponentMove(turn=3, kind=MoveKind.ATTACK, target=Coord(0, 0)),
    )
    defensive.observe(moves)
    assert defensive.observed_behavior is OpponentBehavior.DEFENSIVE

    aggressive = OpponentModel()
    cells = [Coord(i, (i * 3) % 10) for i in range(8)]
    history = _attacks(cells) + (OpponentMove(turn=9, kind=MoveKind.POWERUP),)
    aggressive.observe(history)
    assert aggressive.observed_behavior is OpponentBehavior.AGGRESSIVE


def test_observe_ignores_already_seen_history() -> None:
    model = OpponentModel()
    history = _attacks([Coord(1, 1), Coord(2, 2)], hits=2)
    model.observe(history)
    model.estimated_skill = 0.1
    model.observe(history)
    assert model.estimated_skill == 0.1
