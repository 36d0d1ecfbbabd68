from __future__ import annotations

import random

import pytest

from broadside.ai.behavior import AIBehaviorConfig, GameSituation, apply_modifiers, default_presets
from broadside.ai.opponent import DetectedPattern, OpponentBehavior, OpponentModel, PatternType
from broadside.ai.traits import BehaviorModifier, BehaviorProfile, PlacementStrategy
from broadside.core.models import ShipKind
from broadside.errors import ConfigurationError

EVEN = GameSituation(turn=1, own_ships_remaining=3, enemy_ships_remaining=3)


@pytest.fixture
def config() -> AIBehaviorConfig:
    return AIBehaviorConfig(random.Random(8))


def test_default_presets() -> None:
    presets = default_presets()
    assert set(presets) == {"aggressive", "defensive", "balanced", "unpredictable", "hunter", "tactician"}
    assert presets["hunter"].profile is BehaviorProfile.AGGRESSIVE


def test_get_behavior_applies_modifiers(config: AIBehaviorConfig) -> None:
    traits = config.get_behavior("Aggressive")
    assert traits.aggression == 1.0
    assert traits.caution == pytest.approx(0.2 / 1.5 * 0.5)
    assert traits.persistence == pytest.approx(0.96)
    assert traits.powerup_conservation == pytest.approx(0.1)


def test_unknown_behavior_falls_back_to_balanced(config: AIBehaviorConfig) -> None:
    assert config.get_behavior("berserker") == config.get_behavior("balanced")
    with pytest.raises(ConfigurationError):
        config.get_preset("berserker")


def test_apply_modifiers_ignores_unknown_factors() -> None:
    traits = default_presets()["balanced"].traits
    assert apply_modifiers(traits, [BehaviorModifier("mystery", 9.0)]) == traits


def test_custom_behavior_overrides_and_clamps(config: AIBehaviorConfig) -> None:
    traits = config.create_custom_behavior("defensive", adaptability=1.7, persistence=0.8)
    assert traits.adaptability == 1.0
    assert traits.persistence == 0.8
    assert traits.profile is BehaviorProfile.DEFENSIVE


def test_winning_rule_raises_aggression(config: AIBehaviorConfig) -> None:
    base = config.get_behavior("balanced")
    situation = GameSituation(turn=4, own_ships_remaining=5, enemy_ships_remaining=2)
    updated = config.update_behavior(base, situation)
    assert updated.aggression == pytest.approx(base.aggression + 0.2)
    assert updated.caution == pytest.approx(base.caution - 0.1)
    assert config.history[-1].triggers == ("winning",)
    assert config.active_triggers() == ("winning",)
    assert config.current == updated

    config.update_behavior(updated, GameSituation(turn=9, own_ships_remaining=3, enemy_ships_remaining=3))
    assert config.active_triggers() == ()


def test_failing_strategy_switches_to_random_placement(config: AIBehaviorConfig) -> None:
    base = config.get_behavior("defensive")
    situation = GameSituation(turn=12, own_ships_remaining=3, enemy_ships_remaining=3, recent_misses=6)
    updated = config.update_behavior(base, situation)
    assert updated.placement_strategy is PlacementStrategy.RANDOM
    assert updated.creativity == pytest.approx(base.creativity + 0.2)


def test_losing_an_important_ship_makes_ai_cautious(config: AIBehaviorConfig) -> None:
    base = config.get_behavior("balanced")
    situation = GameSituation(
        turn=7, own_ships_remaining=4, enemy_ships_remaining=4, lost_ship_kinds=(ShipKind.CARRIER,)
    )
    updated = config.update_behavior(base, situation)
    assert updated.caution == pytest.approx(min(1.0, base.caution + 0.3))
    assert "important_ship_lost" in config.history[-1].triggers


def test_disabled_adaptation_leaves_traits_alone(config: AIBehaviorConfig) -> None:
    config.set_adaptation_enabled(False)
    base = config.get_behavior("balanced")
    situation = GameSituation(turn=4, own_ships_remaining=5, enemy_ships_remaining=1)
    assert config.update_behavior(base, situation) == base
    assert config.history == ()


def test_no_rule_fires_in_an_even_game(config: AIBehaviorConfig) -> None:
    base = config.get_behavior("balanced")
    assert config.update_behavior(base, EVEN) == base
    assert config.history == ()


def test_adapt_to_aggressive_predictable_opponent(config: AIBehaviorConfig) -> None:
    base = config.get_behavior("balanced")
    opponent = OpponentModel(observed_behavior=OpponentBehavior.AGGRESSIVE)
    opponent.targeting_patterns.append(DetectedPattern(PatternType.LINEAR, "row", 0.8))
    adapted = config.adapt_to_opponent(base, opponent)
    assert adapted.caution == pytest.approx(base.caution + 0.2)
    assert adapted.creativity == pytest.approx(min(1.0, base.creativity + 0.3))


def test_select_behavior_for_expert_tournament(config: AIBehaviorConfig) -> None:
    traits = config.select_behavior("expert", "tournament", opponent_strength=0.9)
    unpredictable = config.get_behavior("unpredictable")
    assert traits.profile is BehaviorProfile.UNPREDICTABLE
    assert traits.caution == pytest.approx(min(1.0, unpredictable.caution + 0.1 + 0.15))
    assert config.current == traits


def test_effectiveness_without_history(config: AIBehaviorConfig) -> None:
    report = config.analyze_behavior_effectiveness()
    assert report.most_effective is None
    assert report.adaptation_frequency == 0.0


def test_effectiveness_uses_recorded_outcomes(config: AIBehaviorConfig) -> None:
    base = config.get_behavior("aggressive")
    config.update_behavior(base, GameSituation(turn=2, own_ships_remaining=5, enemy_ships_remaining=2))
    config.update_behavior(base, GameSituation(turn=6, own_ships_remaining=5, enemy_ships_remaining=2))
    config.record_outcome(BehaviorProfile.AGGRESSIVE, won=True)
    report = config.analyze_behavior_effectiveness()
    assert report.most_effective is BehaviorProfile.AGGRESSIVE
    assert report.average_interval == 4.0
    assert report.common_triggers[0] == "winning"


def test_export_import_round_trip(config: AIBehaviorConfig) -> None:
    config.set_adaptation_enabled(False)
    text = config.export_config()
    restored = AIBehaviorConfig(random.Random(1))
    restored.import_config(text)
    assert set(restored.presets) == set(config.presets)
    assert restored.get_behavior("tactician") == config.get_behavior("tactician")
    assert restored.adaptation_enabled is False


@pytest.mark.parametrize(
    "text",
    [
        "{",
        '{"version": 1, "kind": "behavior_config", "presets": []}',
        '{"version": 1, "kind": "behavior_config", "presets": [{"name": "x"}]}',
        '{"version": 1, "kind": "difficulty_manager", "presets": []}',
    ],
)
def test_import_rejects_bad_payloads(config: AIBehaviorConfig, text: str) -> None:
    with pytest.raises(ConfigurationError):
        config.import_config(text)
    assert "balanced" in config.presets
