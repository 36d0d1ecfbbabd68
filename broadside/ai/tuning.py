"""Match-setup helpers: strength rating, tier recommendation and scenario presets."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from types import MappingProxyType

from broadside.ai.behavior import AIBehaviorConfig
from broadside.ai.difficulty import DifficultyManager
from broadside.ai.settings import DifficultyLevel, DifficultySettings
from broadside.ai.traits import BehaviorTraits
from broadside.errors import ConfigurationError

TOURNAMENT_TURN_LIMIT_MS = 60_000
CAMPAIGN_POWERUP_MISSION = 5


class ScenarioType(StrEnum):
    TUTORIAL = "tutorial"
    CAMPAIGN = "campaign"
    MULTIPLAYER = "multiplayer"
    TOURNAMENT = "tournament"
    PRACTICE = "practice"


@dataclass(frozen=True, slots=True)
class PerformanceBenchmarks:
    expected_win_rate: float
    expected_accuracy: float
    expected_game_length: int
    max_thinking_ms: int


@dataclass(frozen=True, slots=True)
class GameScenario:
    type: ScenarioType
    mission_number: int = 1
    preferred_opponent: str | None = None


@dataclass(frozen=True, slots=True)
class SpecialRules:
    allow_powerups: bool = True
    allow_abilities: bool = True
    fog_of_war: bool = True
    turn_time_limit_ms: int | None = None
    special_conditions: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ConfiguredAI:
    level: DifficultyLevel
    settings: DifficultySettings
    traits: BehaviorTraits
    scenario: GameScenario
    rules: SpecialRules = field(default_factory=SpecialRules)


BENCHMARKS: Mapping[DifficultyLevel, PerformanceBenchmarks] = MappingProxyType(
    {
        DifficultyLevel.BEGINNER: PerformanceBenchmarks(0.3, 0.4, 40, 3000),
        DifficultyLevel.INTERMEDIATE: PerformanceBenchmarks(0.5, 0.6, 35, 2000),
        DifficultyLevel.ADVANCED: PerformanceBenchmarks(0.7, 0.8, 30, 1500),
        DifficultyLevel.EXPERT: PerformanceBenchmarks(0.85, 0.95, 25, 1000),
    }
)


def calculate_ai_strength(win_rate: float, accuracy: float, average_game_length: float) -> float:
    """Strength in ``[0, 1]``; games shorter than 50 turns count as faster play."""
    speed = max(0.0, min(1.0, (50 - average_game_length) / 30))
    strength = 0.5 * win_rate + 0.3 * accuracy + 0.2 * speed
    return max(0.0, min(1.0, strength))


def recommend_difficulty(player_win_rate: float, games_played: int) -> DifficultyLevel:
    if games_played < 3:
        return DifficultyLevel.BEGINNER
    if player_win_rate > 0.8:
        return DifficultyLevel.EXPERT
    if player_win_rate > 0.6:
        return DifficultyLevel.ADVANCED
    if player_win_rate > 0.4:
        return DifficultyLevel.INTERMEDIATE
    return DifficultyLevel.BEGINNER


def performance_benchmarks(level: DifficultyLevel | str) -> PerformanceBenchmarks:
    return BENCHMARKS[DifficultyLevel.parse(level)]


def scenario_rules(scenario: GameScenario) -> SpecialRules:
    if scenario.type is ScenarioType.TUTORIAL:
        return SpecialRules(allow_powerups=False, allow_abilities=False, fog_of_war=False)
    if scenario.type is ScenarioType.TOURNAMENT:
        return SpecialRules(
            turn_time_limit_ms=TOURNAMENT_TURN_LIMIT_MS,
            special_conditions=("No takebacks", "Best of 3"),
        )
    if scenario.type is ScenarioType.CAMPAIGN and scenario.mission_number < CAMPAIGN_POWERUP_MISSION:
        return SpecialRules(allow_powerups=False)
    if scenario.type is ScenarioType.PRACTICE:
        return SpecialRules(special_conditions=("Unlimited retries", "Hints available"))
    return SpecialRules()


def configure_for_scenario(
    level: DifficultyLevel | str,
    scenario: GameScenario,
    *,
    behavior: AIBehaviorConfig,
    difficulty: DifficultyManager,
) -> ConfiguredAI:
    """Pick traits and shift targeting accuracy for a game scenario.

    Accuracy moves by the scenario adjustment and the mistake rate moves the opposite
    way, both clamped to ``[0, 1]``. The manager's stored settings are left untouched.
    """
    tier = DifficultyLevel.parse(level)
    adjustment = 0.0
    if scenario.type is ScenarioType.TUTORIAL:
        traits = behavior.get_behavior("defensive")
        adjustment = -0.3
    elif scenario.type is ScenarioType.CAMPAIGN:
        traits = behavior.select_behavior(tier, "campaign", scenario.mission_number / 20)
        adjustment = (scenario.mission_number - 1) * 0.05
    elif scenario.type is ScenarioType.MULTIPLAYER:
        traits = behavior.get_behavior("balanced")
    elif scenario.type is ScenarioType.TOURNAMENT:
        traits = behavior.create_custom_behavior(
            "aggressive", adaptability=0.9, persistence=0.8, ability_frequency=0.7
        )
        adjustment = 0.1
    elif scenario.type is ScenarioType.PRACTICE:
        traits = behavior.get_behavior(scenario.preferred_opponent or "balanced")
    else:
        raise ConfigurationError(f"Unsupported scenario: {scenario.type!r}.")

    settings = difficulty.get_settings(tier)
    if adjustment:
        settings = replace(
            settings,
            targeting_accuracy=max(0.0, min(1.0, settings.targeting_accuracy + adjustment)),
            mistake_rate=max(0.0, min(1.0, settings.mistake_rate - adjustment)),
        )
    return ConfiguredAI(
        level=tier,
        settings=settings,
        traits=traits,
        scenario=scenario,
        rules=scenario_rules(scenario),
    )
