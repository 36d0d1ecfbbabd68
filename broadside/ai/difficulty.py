"""Difficulty tuning service: per-tier settings, performance history, recommendations."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from enum import StrEnum
from types import MappingProxyType

from broadside.ai.settings import (
    BOOLEAN_FIELDS,
    DEFAULT_SETTINGS,
    DIFFICULTY_ORDER,
    INTEGER_FIELDS,
    DifficultyLevel,
    DifficultySettings,
    PerformanceMetrics,
    PerformanceRecord,
)
from broadside.infra.json_codec import dumps_text, loads_object
from broadside.presets.schema import difficulty_to_payload, payload_to_difficulty

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.3
MIN_THRESHOLD = 0.1
MAX_THRESHOLD = 0.5
MIN_GAMES_FOR_ADJUSTMENT = 5
HISTORY_LIMIT = 100
TREND_WINDOW = 10
TREND_MARGIN = 0.05


class Trend(StrEnum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


@dataclass(frozen=True, slots=True)
class DifficultyRecommendation:
    should_adjust: bool
    current_level: DifficultyLevel
    recommended_level: DifficultyLevel
    reason: str
    score: float | None = None
    metrics: PerformanceMetrics | None = None


@dataclass(frozen=True, slots=True)
class DifficultyStats:
    games_played: int
    average_win_rate: float
    average_score: float
    trend: Trend
    recommended_adjustment: DifficultyLevel | None


@dataclass(frozen=True, slots=True)
class DifficultyBenchmark:
    stats: Mapping[DifficultyLevel, DifficultyStats]
    total_games: int
    overall_win_rate: float
    most_played: DifficultyLevel | None
    most_successful: DifficultyLevel | None


def _interpolate(start: float, end: float, factor: float) -> float:
    return start + (end - start) * factor


def blend_settings(
    current: DifficultySettings, target: DifficultySettings, factor: float
) -> DifficultySettings:
    """Linear blend of two tiers; integers are rounded and flags flip past 0.5."""
    factor = max(0.0, min(1.0, factor))
    values: dict[str, object] = {}
    for f in fields(current):
        if f.name == "level":
            continue
        start = getattr(current, f.name)
        end = getattr(target, f.name)
        if f.name in BOOLEAN_FIELDS:
            values[f.name] = end if factor > 0.5 else start
        elif f.name in INTEGER_FIELDS:
            values[f.name] = round(_interpolate(start, end, factor))
        else:
            values[f.name] = _interpolate(start, end, factor)
    return replace(current, **values)  # type: ignore[arg-type]


class DifficultyManager:
    """Explicitly constructed per session; never a process-wide singleton."""

    def __init__(
        self,
        settings: Mapping[DifficultyLevel, DifficultySettings] | None = None,
        *,
        dynamic_adjustment: bool = True,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> None:
        self._settings: dict[DifficultyLevel, DifficultySettings] = dict(
            settings if settings is not None else DEFAULT_SETTINGS
        )
        self._history: dict[DifficultyLevel, list[PerformanceRecord]] = {
            level: [] for level in DIFFICULTY_ORDER
        }
        self._dynamic_enabled = dynamic_adjustment
        self._threshold = threshold

    @property
    def dynamic_adjustment_enabled(self) -> bool:
        return self._dynamic_enabled

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def settings(self) -> Mapping[DifficultyLevel, DifficultySettings]:
        return MappingProxyType(self._settings)

    def history(self, level: DifficultyLevel | str) -> tuple[PerformanceRecord, ...]:
        return tuple(self._history[DifficultyLevel.parse(level)])

    def get_settings(self, level: DifficultyLevel | str) -> DifficultySettings:
        """Return tier settings; unknown tiers raise ``UnknownDifficultyError``."""
        return self._settings[DifficultyLevel.parse(level)]

    def update_settings(self, level: DifficultyLevel | str, **updates: object) -> DifficultySettings:
        tier = DifficultyLevel.parse(level)
        updated = replace(self._settings[tier], **updates)  # type: ignore[arg-type]
        self._settings[tier] = replace(updated, level=tier)
        return self._settings[tier]

    def set_dynamic_adjustment(self, enabled: bool, threshold: float | None = None) -> None:
        self._dynamic_enabled = enabled
        if threshold is not None:
            self._threshold = max(MIN_THRESHOLD, min(MAX_THRESHOLD, threshold))

    def analyze_difficulty(
        self,
        current_level: DifficultyLevel | str,
        metrics: PerformanceMetrics,
        games_played: int,
    ) -> DifficultyRecommendation:
        """Recommend a one-step tier change from aggregated opponent performance."""
        level = DifficultyLevel.parse(current_level)
        if not self._dynamic_enabled or games_played < MIN_GAMES_FOR_ADJUSTMENT:
            return DifficultyRecommendation(
                should_adjust=False,
                current_level=level,
                recommended_level=level,
                reason="Not enough data or dynamic adjustment disabled",
            )

        score = metrics.score()
        recommended = level
        reason = "Performance within target band"
        if score < self._threshold and level is not DifficultyLevel.BEGINNER:
            recommended = level.step(-1)
            reason = f"Performance score ({score * 100:.1f}%) below threshold"
        elif score > 1 - self._threshold and level is not DifficultyLevel.EXPERT:
            recommended = level.step(1)
            reason = f"Performance score ({score * 100:.1f}%) above threshold"

        self.record_performance(level, metrics, games_played)
        if recommended is not level:
            logger.info(
                "difficulty_recommendation current=%s recommended=%s score=%.3f",
                level,
                recommended,
                score,
            )
        return DifficultyRecommendation(
            should_adjust=recommended is not level,
            current_level=level,
            recommended_level=recommended,
            reason=reason,
            score=score,
            metrics=metrics,
        )

    def apply_gradual_adjustment(
        self,
        current_level: DifficultyLevel | str,
        target_level: DifficultyLevel | str,
        transition_factor: float,
    ) -> DifficultySettings:
        """Settings part-way between two tiers; ``level`` stays the current tier."""
        return blend_settings(
            self.get_settings(current_level), self.get_settings(target_level), transition_factor
        )

    def record_performance(
        self, level: DifficultyLevel | str, metrics: PerformanceMetrics, games_played: int = 1
    ) -> PerformanceRecord:
        tier = DifficultyLevel.parse(level)
        record = PerformanceRecord(
            level=tier, metrics=metrics, score=metrics.score(), games_played=games_played
        )
        entries = self._history[tier]
        entries.append(record)
        if len(entries) > HISTORY_LIMIT:
            del entries[0]
        return record

    def get_performance_stats(self, level: DifficultyLevel | str) -> DifficultyStats:
        tier = DifficultyLevel.parse(level)
        entries = self._history[tier]
        if not entries:
            return DifficultyStats(0, 0.0, 0.0, Trend.STABLE, None)

        total = len(entries)
        average_win = sum(r.metrics.win_rate for r in entries) / total
        average_score = sum(r.score for r in entries) / total
        recent = entries[-TREND_WINDOW:]
        recent_win = sum(r.metrics.win_rate for r in recent) / len(recent)
        if recent_win > average_win + TREND_MARGIN:
            trend = Trend.IMPROVING
        elif recent_win < average_win - TREND_MARGIN:
            trend = Trend.DECLINING
        else:
            trend = Trend.STABLE

        adjustment: DifficultyLevel | None = None
        if average_win < 0.3 and tier is not DifficultyLevel.BEGINNER:
            adjustment = tier.step(-1)
        elif average_win > 0.7 and tier is not DifficultyLevel.EXPERT:
            adjustment = tier.step(1)
        return DifficultyStats(total, average_win, average_score, trend, adjustment)

    def benchmark_all_difficulties(self) -> DifficultyBenchmark:
        stats = {level: self.get_performance_stats(level) for level in DIFFICULTY_ORDER}
        total = sum(s.games_played for s in stats.values())
        overall = (
            sum(s.average_win_rate * s.games_played for s in stats.values()) / total if total else 0.0
        )
        played = [level for level in DIFFICULTY_ORDER if stats[level].games_played > 0]
        most_played = max(played, key=lambda lv: stats[lv].games_played, default=None)
        most_successful = max(played, key=lambda lv: stats[lv].average_win_rate, default=None)
        return DifficultyBenchmark(
            stats=MappingProxyType(stats),
            total_games=total,
            overall_win_rate=overall,
            most_played=most_played,
            most_successful=most_successful,
        )

    def reset_history(self) -> None:
        for entries in self._history.values():
            entries.clear()

    def export_config(self) -> str:
        records = [record for level in DIFFICULTY_ORDER for record in self._history[level]]
        payload = difficulty_to_payload(
            self._settings, records, self._dynamic_enabled, self._threshold
        )
        return dumps_text(payload, pretty=True)

    def import_config(self, text: str | bytes) -> None:
        """Load settings, history and adjustment flags; raises ``ConfigurationError``."""
        model = payload_to_difficulty(loads_object(text))
        self._settings.update(model.settings)
        self.reset_history()
        for record in model.history:
            self._history[record.level].append(record)
        for entries in self._history.values():
            del entries[:-HISTORY_LIMIT]
        self._dynamic_enabled = model.dynamic_enabled
        self._threshold = max(MIN_THRESHOLD, min(MAX_THRESHOLD, model.threshold))
        logger.info("difficulty_config_imported records=%d", len(model.history))
