"""Per-decision timing and quality tracking for one AI player.

The monitor times each ``decide`` call, keeps a rolling window of decision records and
folds attack outcomes back into the record that produced them. Summaries cover timing
spread, move quality by decision type, a benchmark against the tier's targets and
improvement suggestions. Game-level snapshots survive ``reset`` and can be exported as a
versioned JSON document.
"""

from __future__ import annotations

import logging
import statistics
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from time import perf_counter

from broadside.ai.decision import AIDecision, DecisionType
from broadside.ai.opponent import DetectedPattern
from broadside.ai.settings import DEFAULT_SETTINGS, DifficultyLevel, PerformanceMetrics
from broadside.ai.tuning import performance_benchmarks
from broadside.core.models import AttackResult, ShotResult
from broadside.infra.json_codec import dumps_text
from broadside.presets.schema import SCHEMA_VERSION

logger = logging.getLogger(__name__)

MONITOR_KIND = "performance_monitor"
DECISION_WINDOW = 100
SNAPSHOT_LIMIT = 1000
QUALITY_WINDOW = 20
REPORT_DECISIONS = 50
SUCCESS_QUALITY = 0.6
FAILURE_QUALITY = 0.4
SLOW_DECISION_MS = 5000.0
STANDARD_SCORE = 0.8
EXCEPTIONAL_SCORE = 1.2


@dataclass(frozen=True, slots=True)
class DecisionRecord:
    turn: int
    type: DecisionType
    confidence: float
    duration_ms: float
    thinking_ms: int
    factor_count: int
    alternative_count: int
    hit: bool | None = None

    @property
    def quality(self) -> float:
        """0.5 until an outcome arrives, then pulled toward the stated confidence."""
        score = 0.5
        if self.hit is True:
            score = 0.5 + self.confidence * 0.5
        elif self.hit is False:
            score = 0.5 - (1.0 - self.confidence) * 0.5
        if self.alternative_count > 5:
            score *= 0.9
        if self.factor_count >= 3:
            score *= 1.1
        return max(0.0, min(1.0, score))

    @property
    def efficiency(self) -> float:
        speed = max(0.0, 1.0 - self.duration_ms / SLOW_DECISION_MS)
        return 0.4 * speed + 0.6 * self.quality


@dataclass(frozen=True, slots=True)
class TimingSummary:
    count: int
    average_ms: float
    min_ms: float
    max_ms: float
    median_ms: float
    p95_ms: float
    stdev_ms: float


@dataclass(frozen=True, slots=True)
class QualityAnalysis:
    overall: float
    trend: str
    by_type: dict[DecisionType, float]
    best_type: DecisionType | None
    worst_type: DecisionType | None


@dataclass(frozen=True, slots=True)
class SessionSummary:
    decisions: int
    total_duration_ms: float
    successful: int
    failed: int
    average_confidence: float


@dataclass(frozen=True, slots=True)
class BenchmarkResult:
    level: DifficultyLevel
    overall: float
    scores: dict[str, float]
    meets_standard: bool
    exceeds_standard: bool
    recommendations: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ImprovementArea:
    area: str
    current: float
    target: float
    suggestions: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class PerformanceSnapshot:
    timestamp: datetime
    level: DifficultyLevel
    metrics: PerformanceMetrics
    game_id: str | None = None


@dataclass(frozen=True, slots=True)
class PerformanceReport:
    metrics: PerformanceMetrics
    timing: TimingSummary
    quality: QualityAnalysis
    benchmark: BenchmarkResult
    improvements: tuple[ImprovementArea, ...]
    recommendations: tuple[str, ...]
    recent_decisions: tuple[DecisionRecord, ...]
    patterns: tuple[DetectedPattern, ...] = field(default_factory=tuple)


class PerformanceMonitor:
    """Rolling decision metrics for one player; not shared between players."""

    def __init__(
        self,
        *,
        window_size: int = DECISION_WINDOW,
        snapshot_limit: int = SNAPSHOT_LIMIT,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._clock = clock or perf_counter
        self._records: deque[DecisionRecord] = deque(maxlen=max(1, int(window_size)))
        self._snapshots: deque[PerformanceSnapshot] = deque(maxlen=max(1, int(snapshot_limit)))
        self._open: dict[int, float] = {}
        self._next_token = 1
        self._decisions = 0
        self._total_ms = 0.0
        self._confidence_sum = 0.0

    def begin_decision(self) -> int:
        token = self._next_token
        self._next_token += 1
        self._open[token] = self._clock()
        return token

    def end_decision(self, token: int, decision: AIDecision) -> DecisionRecord | None:
        """Close a timing token and record the decision it produced."""
        started = self._open.pop(token, None)
        if started is None:
            return None
        record = DecisionRecord(
            turn=decision.turn,
            type=decision.type,
            confidence=decision.confidence,
            duration_ms=max(0.0, (self._clock() - started) * 1000.0),
            thinking_ms=decision.thinking_ms,
            factor_count=len(decision.reasoning.factors),
            alternative_count=len(decision.alternatives),
        )
        self._records.append(record)
        self._decisions += 1
        self._total_ms += record.duration_ms
        self._confidence_sum += record.confidence
        return record

    def record_outcome(self, result: AttackResult) -> None:
        """Mark the latest decision as a hit if any of its cells found a ship."""
        if not self._records:
            return
        latest = self._records[-1]
        hit = result.result is not ShotResult.MISS
        self._records[-1] = replace(latest, hit=hit or bool(latest.hit))

    @property
    def records(self) -> list[DecisionRecord]:
        return list(self._records)

    def session(self) -> SessionSummary:
        records = list(self._records)
        return SessionSummary(
            decisions=self._decisions,
            total_duration_ms=self._total_ms,
            successful=sum(1 for r in records if r.quality > SUCCESS_QUALITY),
            failed=sum(1 for r in records if r.quality < FAILURE_QUALITY),
            average_confidence=self._confidence_sum / self._decisions if self._decisions else 0.0,
        )

    def timing_summary(self) -> TimingSummary:
        durations = [record.duration_ms for record in self._records]
        if not durations:
            return TimingSummary(0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0)
        ordered = sorted(durations)
        return TimingSummary(
            count=len(durations),
            average_ms=statistics.fmean(durations),
            min_ms=ordered[0],
            max_ms=ordered[-1],
            median_ms=statistics.median(ordered),
            p95_ms=_percentile(ordered, 0.95),
            stdev_ms=statistics.pstdev(durations),
        )

    def analyze_quality(self) -> QualityAnalysis:
        """Recent quality against the window before it, plus a per-type breakdown."""
        records = list(self._records)
        recent = _mean(r.quality for r in records[-QUALITY_WINDOW:])
        older = _mean(r.quality for r in records[-2 * QUALITY_WINDOW : -QUALITY_WINDOW])
        if not records[:-QUALITY_WINDOW] or recent == older:
            trend = "stable"
        else:
            trend = "improving" if recent > older else "declining"

        by_type = {
            kind: _mean(r.quality for r in records if r.type is kind)
            for kind in DecisionType
            if any(r.type is kind for r in records)
        }
        best = max(by_type, key=by_type.__getitem__) if by_type else None
        worst = min(by_type, key=by_type.__getitem__) if by_type else None
        return QualityAnalysis(recent, trend, by_type, best, worst)

    def benchmark(self, metrics: PerformanceMetrics, level: DifficultyLevel | str) -> BenchmarkResult:
        """Ratios of observed results to the tier's targets; 1.0 means on target."""
        tier = DifficultyLevel.parse(level)
        targets = performance_benchmarks(tier)
        settings = DEFAULT_SETTINGS[tier]
        session = self.session()
        thinking = _mean(r.thinking_ms + r.duration_ms for r in self._records)
        failure_rate = session.failed / len(self._records) if self._records else 0.0
        scores = {
            "accuracy": metrics.accuracy / targets.expected_accuracy,
            "win_rate": metrics.win_rate / targets.expected_win_rate,
            "decision_speed": min(2.0, targets.max_thinking_ms / thinking) if thinking else 1.0,
            "optimal_decisions": metrics.optimal_rate / settings.optimal_move_rate,
            "blunder_control": (1.0 - failure_rate) / (1.0 - settings.mistake_rate),
        }
        overall = _mean(scores.values())
        return BenchmarkResult(
            level=tier,
            overall=overall,
            scores=scores,
            meets_standard=overall >= STANDARD_SCORE,
            exceeds_standard=overall >= EXCEPTIONAL_SCORE,
            recommendations=tuple(_benchmark_advice(scores)),
        )

    def improvement_areas(self, metrics: PerformanceMetrics) -> list[ImprovementArea]:
        areas: list[ImprovementArea] = []
        if metrics.accuracy < 0.7:
            areas.append(
                ImprovementArea(
                    "targeting_accuracy",
                    metrics.accuracy,
                    0.7,
                    (
                        "Use probability density targeting",
                        "Follow up hits along the inferred axis",
                        "Weight hunting toward cells where ships still fit",
                    ),
                )
            )
        if metrics.optimal_rate < 0.7:
            areas.append(
                ImprovementArea(
                    "decision_quality",
                    metrics.optimal_rate,
                    0.7,
                    (
                        "Increase search depth",
                        "Tighten risk estimates for powerup use",
                        "Learn from decisions that led to hits",
                    ),
                )
            )
        timing = self.timing_summary()
        if timing.average_ms > 2000:
            areas.append(
                ImprovementArea(
                    "decision_speed",
                    timing.average_ms,
                    1500.0,
                    (
                        "Cache repeated cell evaluations",
                        "Lower Monte Carlo simulation counts",
                        "Reduce minimax depth",
                    ),
                )
            )
        return areas

    def report(
        self,
        metrics: PerformanceMetrics,
        level: DifficultyLevel | str,
        patterns: Iterable[DetectedPattern] = (),
    ) -> PerformanceReport:
        timing = self.timing_summary()
        quality = self.analyze_quality()
        benchmark = self.benchmark(metrics, level)
        recommendations = list(benchmark.recommendations)
        if timing.count and timing.stdev_ms > timing.average_ms * 0.5:
            recommendations.append("Decision timing is inconsistent")
        if quality.trend == "declining":
            recommendations.append("Decision quality is declining; review recent strategy changes")
        return PerformanceReport(
            metrics=metrics,
            timing=timing,
            quality=quality,
            benchmark=benchmark,
            improvements=tuple(self.improvement_areas(metrics)),
            recommendations=tuple(recommendations),
            recent_decisions=tuple(list(self._records)[-REPORT_DECISIONS:]),
            patterns=tuple(patterns),
        )

    def save_snapshot(
        self,
        metrics: PerformanceMetrics,
        level: DifficultyLevel | str,
        game_id: str | None = None,
    ) -> PerformanceSnapshot:
        snapshot = PerformanceSnapshot(
            timestamp=datetime.now(UTC),
            level=DifficultyLevel.parse(level),
            metrics=metrics,
            game_id=game_id,
        )
        self._snapshots.append(snapshot)
        logger.info(
            "ai_performance_snapshot level=%s win_rate=%.2f accuracy=%.2f decisions=%d",
            snapshot.level,
            metrics.win_rate,
            metrics.accuracy,
            self._decisions,
        )
        return snapshot

    def history(self) -> list[PerformanceSnapshot]:
        return list(self._snapshots)

    def reset(self) -> None:
        """Start a new game; saved snapshots are kept."""
        self._records.clear()
        self._open.clear()
        self._decisions = 0
        self._total_ms = 0.0
        self._confidence_sum = 0.0

    def to_payload(self) -> dict[str, object]:
        session = self.session()
        return {
            "version": SCHEMA_VERSION,
            "kind": MONITOR_KIND,
            "history": [
                {
                    "timestamp": item.timestamp.isoformat(),
                    "level": item.level.value,
                    "game_id": item.game_id,
                    "win_rate": item.metrics.win_rate,
                    "accuracy": item.metrics.accuracy,
                    "optimal_rate": item.metrics.optimal_rate,
                    "average_game_length": item.metrics.average_game_length,
                }
                for item in self._snapshots
            ],
            "session": {
                "decisions": session.decisions,
                "total_duration_ms": session.total_duration_ms,
                "successful": session.successful,
                "failed": session.failed,
                "average_confidence": session.average_confidence,
            },
            "decisions": [
                {
                    "turn": record.turn,
                    "type": record.type.value,
                    "confidence": record.confidence,
                    "duration_ms": record.duration_ms,
                    "thinking_ms": record.thinking_ms,
                    "hit": record.hit,
                    "quality": record.quality,
                }
                for record in self._records
            ],
        }

    def export_data(self, *, pretty: bool = True) -> str:
        return dumps_text(self.to_payload(), pretty=pretty)


def _mean(values: Iterable[float]) -> float:
    items = list(values)
    return statistics.fmean(items) if items else 0.0


def _percentile(ordered: list[float], q: float) -> float:
    if len(ordered) == 1:
        return ordered[0]
    index = q * (len(ordered) - 1)
    lo = int(index)
    hi = min(lo + 1, len(ordered) - 1)
    weight = index - lo
    return ordered[lo] * (1.0 - weight) + ordered[hi] * weight


def _benchmark_advice(scores: dict[str, float]) -> list[str]:
    advice = {
        "accuracy": "Improve targeting accuracy through better pattern recognition",
        "win_rate": "Focus on strategic improvements and ship preservation",
        "decision_speed": "Optimize decision algorithms for faster processing",
        "optimal_decisions": "Enhance decision quality evaluation",
        "blunder_control": "Reduce low-quality decisions",
    }
    return [advice[name] for name, score in scores.items() if score < STANDARD_SCORE]
