from __future__ import annotations

import random
from dataclasses import replace

import pytest

from broadside.ai.decision import AIContext, AIDecision, DecisionType
from broadside.ai.factory import create_player
from broadside.ai.monitor import PerformanceMonitor
from broadside.ai.policy import attack, make_decision
from broadside.ai.settings import DifficultyLevel, PerformanceMetrics
from broadside.core.board import BoardState
from broadside.core.models import AttackResult, Coord, ShotResult
from broadside.infra.config import EngineConfig
from broadside.infra.json_codec import loads_object


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _decision(confidence: float, factors: int = 1, turn: int = 1) -> AIDecision:
    factor_names = [f"factor_{i}" for i in range(factors)]
    return replace(make_decision(attack(Coord(0, 0)), factor_names, 0.2, confidence), turn=turn)


def _track(monitor: PerformanceMonitor, clock: FakeClock, seconds: float, decision: AIDecision) -> None:
    token = monitor.begin_decision()
    clock.now += seconds
    monitor.end_decision(token, decision)


def _result(shot: ShotResult) -> AttackResult:
    ship_id = None if shot is ShotResult.MISS else "cruiser_1"
    return AttackResult(coord=Coord(0, 0), result=shot, ship_id=ship_id)


def test_timing_summary_from_tracked_decisions() -> None:
    clock = FakeClock()
    monitor = PerformanceMonitor(clock=clock)
    _track(monitor, clock, 0.25, _decision(0.5))
    _track(monitor, clock, 0.75, _decision(0.5))

    timing = monitor.timing_summary()
    assert timing.count == 2
    assert timing.average_ms == pytest.approx(500.0)
    assert timing.min_ms == pytest.approx(250.0)
    assert timing.max_ms == pytest.approx(750.0)
    assert timing.median_ms == pytest.approx(500.0)
    assert timing.stdev_ms == pytest.approx(250.0)


def test_empty_monitor_reports_zeros() -> None:
    monitor = PerformanceMonitor()
    assert monitor.timing_summary().count == 0
    assert monitor.session().average_confidence == 0.0
    assert monitor.analyze_quality().best_type is None


def test_unknown_token_is_ignored() -> None:
    monitor = PerformanceMonitor()
    assert monitor.end_decision(99, _decision(0.5)) is None
    assert monitor.records == []


def test_outcome_moves_quality_toward_confidence() -> None:
    clock = FakeClock()
    monitor = PerformanceMonitor(clock=clock)
    _track(monitor, clock, 0.01, _decision(0.8, factors=3))
    assert monitor.records[-1].quality == pytest.approx(0.55)

    monitor.record_outcome(_result(ShotResult.MISS))
    assert monitor.records[-1].hit is False
    assert monitor.records[-1].quality == pytest.approx(0.44)

    monitor.record_outcome(_result(ShotResult.HIT))
    assert monitor.records[-1].hit is True
    assert monitor.records[-1].quality == pytest.approx(0.99)

    monitor.record_outcome(_result(ShotResult.MISS))
    assert monitor.records[-1].hit is True


def test_quality_trend_and_session_counts() -> None:
    clock = FakeClock()
    monitor = PerformanceMonitor(clock=clock)
    for turn in range(1, 21):
        _track(monitor, clock, 0.01, _decision(0.2, turn=turn))
        monitor.record_outcome(_result(ShotResult.MISS))
    for turn in range(21, 41):
        _track(monitor, clock, 0.01, _decision(0.9, turn=turn))
        monitor.record_outcome(_result(ShotResult.HIT))

    quality = monitor.analyze_quality()
    assert quality.trend == "improving"
    assert quality.overall == pytest.approx(0.95)
    assert quality.best_type is DecisionType.ATTACK
    assert set(quality.by_type) == {DecisionType.ATTACK}

    session = monitor.session()
    assert session.decisions == 40
    assert session.successful == 20
    assert session.failed == 20
    assert session.average_confidence == pytest.approx(0.55)


def test_benchmark_on_target_meets_standard() -> None:
    monitor = PerformanceMonitor()
    result = monitor.benchmark(PerformanceMetrics(win_rate=0.7, accuracy=0.8, optimal_rate=0.8), "advanced")
    assert result.level is DifficultyLevel.ADVANCED
    assert result.scores["accuracy"] == pytest.approx(1.0)
    assert result.scores["win_rate"] == pytest.approx(1.0)
    assert result.meets_standard
    assert not result.exceeds_standard
    assert result.recommendations == ()


def test_benchmark_flags_weak_results() -> None:
    monitor = PerformanceMonitor()
    result = monitor.benchmark(PerformanceMetrics(win_rate=0.1, accuracy=0.2, optimal_rate=0.3), "expert")
    assert not result.meets_standard
    assert "Focus on strategic improvements and ship preservation" in result.recommendations
    assert "Enhance decision quality evaluation" in result.recommendations


def test_improvement_areas_for_low_accuracy_and_quality() -> None:
    monitor = PerformanceMonitor()
    areas = monitor.improvement_areas(PerformanceMetrics(win_rate=0.5, accuracy=0.3, optimal_rate=0.4))
    assert [area.area for area in areas] == ["targeting_accuracy", "decision_quality"]
    assert areas[0].current == pytest.approx(0.3)
    assert areas[0].suggestions


def test_report_collects_recent_decisions() -> None:
    clock = FakeClock()
    monitor = PerformanceMonitor(clock=clock)
    for turn in range(1, 61):
        _track(monitor, clock, 0.01, _decision(0.6, turn=turn))
    report = monitor.report(PerformanceMetrics(win_rate=0.5, accuracy=0.6, optimal_rate=0.6), "intermediate")
    assert len(report.recent_decisions) == 50
    assert report.recent_decisions[-1].turn == 60
    assert report.timing.count == 60


def test_snapshots_survive_reset_and_export() -> None:
    clock = FakeClock()
    monitor = PerformanceMonitor(clock=clock)
    _track(monitor, clock, 0.1, _decision(0.7))
    monitor.save_snapshot(PerformanceMetrics(win_rate=1.0, accuracy=0.5, optimal_rate=0.4), "beginner", "g1")
    monitor.reset()

    assert monitor.records == []
    assert len(monitor.history()) == 1
    payload = loads_object(monitor.export_data())
    assert payload["version"] == 1
    assert payload["kind"] == "performance_monitor"
    assert payload["history"][0]["game_id"] == "g1"
    assert payload["history"][0]["level"] == "beginner"
    assert payload["decisions"] == []
    assert payload["session"]["decisions"] == 0


def test_snapshot_history_is_bounded() -> None:
    monitor = PerformanceMonitor(snapshot_limit=3)
    for index in range(5):
        metrics = PerformanceMetrics(win_rate=0.5, accuracy=0.5, optimal_rate=0.5)
        monitor.save_snapshot(metrics, "advanced", f"g{index}")
    assert [item.game_id for item in monitor.history()] == ["g2", "g3", "g4"]


def test_player_feeds_its_monitor(standard_fleet) -> None:
    player = create_player(
        DifficultyLevel.INTERMEDIATE,
        rng=random.Random(3),
        config=EngineConfig(mcts_simulations=20, minimax_depth=2),
    )
    board = BoardState.from_ships(standard_fleet)
    for turn in range(1, 6):
        decision = player.decide(AIContext(opponent_board=board, turn=turn))
        for cell in decision.action.targeted_cells():
            player.observe_result(board.apply_attack(cell))

    records = player.monitor.records
    assert [record.turn for record in records] == [1, 2, 3, 4, 5]
    assert all(record.hit is not None for record in records)

    player.finish_game(won=True)
    assert player.monitor.records == []
    snapshot = player.monitor.history()[-1]
    assert snapshot.level is DifficultyLevel.INTERMEDIATE
    assert snapshot.metrics.win_rate == 1.0
