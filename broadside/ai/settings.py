"""Difficulty tiers and their tunable parameters."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import StrEnum

from broadside.errors import UnknownDifficultyError


class DifficultyLevel(StrEnum):
    """Escalating AI skill tiers."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @classmethod
    def parse(cls, value: object) -> DifficultyLevel:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise UnknownDifficultyError(value) from exc

    @property
    def rank(self) -> int:
        return DIFFICULTY_ORDER.index(self)

    def step(self, delta: int) -> DifficultyLevel:
        """Move ``delta`` tiers, clamped at the beginner/expert boundaries."""
        index = min(len(DIFFICULTY_ORDER) - 1, max(0, self.rank + delta))
        return DIFFICULTY_ORDER[index]


DIFFICULTY_ORDER: tuple[DifficultyLevel, ...] = (
    DifficultyLevel.BEGINNER,
    DifficultyLevel.INTERMEDIATE,
    DifficultyLevel.ADVANCED,
    DifficultyLevel.EXPERT,
)


@dataclass(frozen=True, slots=True)
class DifficultySettings:
    """Numeric parameters and capability flags of one tier."""

    level: DifficultyLevel
    search_depth: int
    exploration_factor: float
    memory_capacity: int
    learning_rate: float
    targeting_accuracy: float
    pattern_recognition: bool
    probability_analysis: bool
    adaptive_targeting: bool
    aggressiveness: float
    defensiveness: float
    risk_tolerance: float
    bluffing_frequency: float
    think_time_min_ms: int
    think_time_max_ms: int
    mistake_rate: float
    optimal_move_rate: float

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {f.name: getattr(self, f.name) for f in fields(self)}
        payload["level"] = self.level.value
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, object]) -> DifficultySettings:
        values: dict[str, object] = {"level": DifficultyLevel.parse(payload["level"])}
        for f in fields(cls):
            if f.name == "level":
                continue
            raw = payload[f.name]
            if f.name in BOOLEAN_FIELDS:
                if not isinstance(raw, bool):
                    raise TypeError(f"{f.name} must be a boolean.")
                values[f.name] = raw
            elif f.name in INTEGER_FIELDS:
                values[f.name] = int(raw)  # type: ignore[call-overload]
            else:
                values[f.name] = float(raw)  # type: ignore[arg-type]
        return cls(**values)  # type: ignore[arg-type]


INTEGER_FIELDS = ("search_depth", "memory_capacity", "think_time_min_ms", "think_time_max_ms")
BOOLEAN_FIELDS = ("pattern_recognition", "probability_analysis", "adaptive_targeting")


DEFAULT_SETTINGS: dict[DifficultyLevel, DifficultySettings] = {
    DifficultyLevel.BEGINNER: DifficultySettings(
        level=DifficultyLevel.BEGINNER,
        search_depth=1,
        exploration_factor=0.2,
        memory_capacity=5,
        learning_rate=0.1,
        targeting_accuracy=0.4,
        pattern_recognition=False,
        probability_analysis=False,
        adaptive_targeting=False,
        aggressiveness=0.3,
        defensiveness=0.7,
        risk_tolerance=0.2,
        bluffing_frequency=0.05,
        think_time_min_ms=1000,
        think_time_max_ms=3000,
        mistake_rate=0.3,
        optimal_move_rate=0.4,
    ),
    DifficultyLevel.INTERMEDIATE: DifficultySettings(
        level=DifficultyLevel.INTERMEDIATE,
        search_depth=2,
        exploration_factor=0.4,
        memory_capacity=15,
        learning_rate=0.3,
        targeting_accuracy=0.6,
        pattern_recognition=True,
        probability_analysis=False,
        adaptive_targeting=False,
        aggressiveness=0.5,
        defensiveness=0.5,
        risk_tolerance=0.4,
        bluffing_frequency=0.1,
        think_time_min_ms=800,
        think_time_max_ms=2000,
        mistake_rate=0.15,
        optimal_move_rate=0.6,
    ),
    DifficultyLevel.ADVANCED: DifficultySettings(
        level=DifficultyLevel.ADVANCED,
        search_depth=3,
        exploration_factor=0.6,
        memory_capacity=30,
        learning_rate=0.5,
        targeting_accuracy=0.8,
        pattern_recognition=True,
        probability_analysis=True,
        adaptive_targeting=True,
        aggressiveness=0.7,
        defensiveness=0.4,
        risk_tolerance=0.6,
        bluffing_frequency=0.15,
        think_time_min_ms=500,
        think_time_max_ms=1500,
        mistake_rate=0.05,
        optimal_move_rate=0.8,
    ),
    DifficultyLevel.EXPERT: DifficultySettings(
        level=DifficultyLevel.EXPERT,
        search_depth=5,
        exploration_factor=0.8,
        memory_capacity=100,
        learning_rate=0.8,
        targeting_accuracy=0.95,
        pattern_recognition=True,
        probability_analysis=True,
        adaptive_targeting=True,
        aggressiveness=0.6,
        defensiveness=0.6,
        risk_tolerance=0.7,
        bluffing_frequency=0.2,
        think_time_min_ms=300,
        think_time_max_ms=1000,
        mistake_rate=0.01,
        optimal_move_rate=0.95,
    ),
}


@dataclass(frozen=True, slots=True)
class PerformanceMetrics:
    """Rolling results a session manager reports for one tier."""

    win_rate: float
    accuracy: float
    optimal_rate: float
    average_game_length: float = 0.0

    def score(self) -> float:
        return 0.5 * self.win_rate + 0.3 * self.accuracy + 0.2 * self.optimal_rate


@dataclass(frozen=True, slots=True)
class PerformanceRecord:
    level: DifficultyLevel
    metrics: PerformanceMetrics
    score: float
    games_played: int
