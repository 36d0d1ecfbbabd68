"""Behavior presets, modifiers and reactive trait adaptation."""

from __future__ import annotations

import logging
import random
from collections import Counter
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from types import MappingProxyType

from broadside.ai.opponent import OpponentBehavior, OpponentModel
from broadside.ai.settings import DifficultyLevel
from broadside.ai.traits import (
    BehaviorModifier,
    BehaviorPreset,
    BehaviorProfile,
    BehaviorTraits,
    PlacementStrategy,
    TargetPriority,
)
from broadside.core.models import ShipKind
from broadside.errors import ConfigurationError
from broadside.infra.json_codec import dumps_text, loads_object
from broadside.presets.schema import behavior_config_to_payload, payload_to_behavior_config

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100
IMPORTANT_KINDS = frozenset({ShipKind.CARRIER, ShipKind.BATTLESHIP})

_T = TargetPriority


def _traits(
    profile: BehaviorProfile,
    values: tuple[float, float, float, float, float],
    targets: tuple[TargetPriority, ...],
    placement: PlacementStrategy,
    ability_frequency: float,
    powerup_conservation: float,
) -> BehaviorTraits:
    aggression, caution, adaptability, persistence, creativity = values
    return BehaviorTraits(
        profile=profile,
        aggression=aggression,
        caution=caution,
        adaptability=adaptability,
        persistence=persistence,
        creativity=creativity,
        preferred_targets=targets,
        placement_strategy=placement,
        ability_frequency=ability_frequency,
        powerup_conservation=powerup_conservation,
    )


TIER_BEHAVIOR: Mapping[DifficultyLevel, BehaviorTraits] = MappingProxyType(
    {
        DifficultyLevel.BEGINNER: _traits(
            BehaviorProfile.BALANCED,
            (0.3, 0.7, 0.2, 0.4, 0.1),
            (_T.LARGEST_SHIP, _T.CENTER_CELLS),
            PlacementStrategy.RANDOM,
            0.2,
            0.8,
        ),
        DifficultyLevel.INTERMEDIATE: _traits(
            BehaviorProfile.BALANCED,
            (0.5, 0.5, 0.5, 0.6, 0.3),
            (_T.DAMAGED_SHIP, _T.HIGH_VALUE),
            PlacementStrategy.DISTRIBUTED,
            0.4,
            0.6,
        ),
        DifficultyLevel.ADVANCED: _traits(
            BehaviorProfile.AGGRESSIVE,
            (0.7, 0.4, 0.7, 0.8, 0.6),
            (_T.DAMAGED_SHIP, _T.CLUSTERED_AREA, _T.HIGH_VALUE),
            PlacementStrategy.DEFENSIVE,
            0.6,
            0.4,
        ),
        DifficultyLevel.EXPERT: _traits(
            BehaviorProfile.UNPREDICTABLE,
            (0.6, 0.6, 0.9, 0.9, 0.8),
            (_T.HIGH_VALUE, _T.DAMAGED_SHIP, _T.CLUSTERED_AREA),
            PlacementStrategy.DEFENSIVE,
            0.8,
            0.3,
        ),
    }
)


def default_presets() -> dict[str, BehaviorPreset]:
    """Built-in personality presets keyed by lowercase name."""
    presets = (
        BehaviorPreset(
            name="Aggressive",
            profile=BehaviorProfile.AGGRESSIVE,
            description="High-pressure play that chases damaged ships.",
            traits=_traits(
                BehaviorProfile.AGGRESSIVE,
                (0.9, 0.2, 0.5, 0.8, 0.4),
                (_T.DAMAGED_SHIP, _T.LARGEST_SHIP, _T.CLUSTERED_AREA),
                PlacementStrategy.CLUSTERED,
                0.8,
                0.2,
            ),
            modifiers=(
                BehaviorModifier("risk_tolerance", 1.5, "Takes more risks"),
                BehaviorModifier("attack_speed", 0.8, "Attacks quickly"),
                BehaviorModifier("defense_priority", 0.5, "Low defensive focus"),
            ),
        ),
        BehaviorPreset(
            name="Defensive",
            profile=BehaviorProfile.DEFENSIVE,
            description="Careful play that hoards powerups and spreads the fleet.",
            traits=_traits(
                BehaviorProfile.DEFENSIVE,
                (0.3, 0.9, 0.6, 0.5, 0.3),
                (_T.HIGH_VALUE, _T.EDGE_CELLS, _T.SMALLEST_SHIP),
                PlacementStrategy.DISTRIBUTED,
                0.4,
                0.8,
            ),
            modifiers=(
                BehaviorModifier("risk_tolerance", 0.5, "Avoids risks"),
                BehaviorModifier("attack_speed", 1.2, "Deliberate attacks"),
                BehaviorModifier("defense_priority", 1.5, "High defensive focus"),
            ),
        ),
        BehaviorPreset(
            name="Balanced",
            profile=BehaviorProfile.BALANCED,
            description="Even mix of offense and defense.",
            traits=_traits(
                BehaviorProfile.BALANCED,
                (0.5, 0.5, 0.7, 0.6, 0.5),
                (_T.DAMAGED_SHIP, _T.HIGH_VALUE, _T.CENTER_CELLS),
                PlacementStrategy.DISTRIBUTED,
                0.5,
                0.5,
            ),
            modifiers=(
                BehaviorModifier("risk_tolerance", 1.0, "Moderate risk"),
                BehaviorModifier("attack_speed", 1.0, "Normal pace"),
                BehaviorModifier("defense_priority", 1.0, "Balanced focus"),
            ),
        ),
        BehaviorPreset(
            name="Unpredictable",
            profile=BehaviorProfile.UNPREDICTABLE,
            description="Erratic targeting that is hard to read.",
            traits=_traits(
                BehaviorProfile.UNPREDICTABLE,
                (0.6, 0.4, 0.9, 0.3, 0.9),
                (_T.CLUSTERED_AREA, _T.EDGE_CELLS, _T.CENTER_CELLS, _T.DAMAGED_SHIP),
                PlacementStrategy.RANDOM,
                0.6,
                0.4,
            ),
            modifiers=(
                BehaviorModifier("risk_tolerance", 1.3, "Variable risk"),
                BehaviorModifier("attack_speed", 0.9, "Irregular pace"),
                BehaviorModifier("randomness", 1.5, "High randomness"),
            ),
        ),
        BehaviorPreset(
            name="Hunter",
            profile=BehaviorProfile.AGGRESSIVE,
            description="Relentless follow-up once a ship is found.",
            traits=_traits(
                BehaviorProfile.AGGRESSIVE,
                (0.7, 0.3, 0.8, 0.9, 0.5),
                (_T.DAMAGED_SHIP, _T.CLUSTERED_AREA, _T.HIGH_VALUE),
                PlacementStrategy.DEFENSIVE,
                0.7,
                0.3,
            ),
            modifiers=(
                BehaviorModifier("search_efficiency", 1.5, "Efficient searching"),
                BehaviorModifier("follow_up_accuracy", 1.3, "Accurate follow-ups"),
                BehaviorModifier("pattern_detection", 1.2, "Reads search patterns"),
            ),
        ),
        BehaviorPreset(
            name="Tactician",
            profile=BehaviorProfile.BALANCED,
            description="Ability-driven play with long-term planning.",
            traits=_traits(
                BehaviorProfile.BALANCED,
                (0.6, 0.6, 0.8, 0.7, 0.8),
                (_T.HIGH_VALUE, _T.DAMAGED_SHIP, _T.CLUSTERED_AREA),
                PlacementStrategy.DEFENSIVE,
                0.9,
                0.6,
            ),
            modifiers=(
                BehaviorModifier("ability_timing", 1.4, "Times abilities well"),
                BehaviorModifier("combo_detection", 1.3, "Chains abilities"),
                BehaviorModifier("strategic_planning", 1.5, "Plans ahead"),
            ),
        ),
    )
    return {preset.name.lower(): preset for preset in presets}


def apply_modifiers(
    traits: BehaviorTraits, modifiers: tuple[BehaviorModifier, ...] | list[BehaviorModifier]
) -> BehaviorTraits:
    """Scale traits by preset modifiers and clamp to ``[0, 1]``.

    Unknown factors are carried as documentation only.
    """
    modified = traits
    for modifier in modifiers:
        value = modifier.value
        if modifier.factor == "risk_tolerance":
            modified = replace(
                modified,
                aggression=modified.aggression * value,
                caution=modified.caution / value if value else 1.0,
            )
        elif modifier.factor == "attack_speed":
            modified = replace(modified, persistence=modified.persistence * (2 - value))
        elif modifier.factor == "defense_priority":
            modified = replace(
                modified,
                caution=modified.caution * value,
                powerup_conservation=modified.powerup_conservation * value,
            )
        elif modifier.factor == "randomness":
            modified = replace(
                modified,
                creativity=modified.creativity * value,
                adaptability=modified.adaptability * value,
            )
        elif modifier.factor == "search_efficiency":
            if _T.CLUSTERED_AREA not in modified.preferred_targets:
                modified = replace(
                    modified,
                    preferred_targets=(_T.CLUSTERED_AREA, *modified.preferred_targets),
                )
        elif modifier.factor == "ability_timing":
            modified = replace(modified, ability_frequency=modified.ability_frequency * value)
    return modified.clamped()


@dataclass(frozen=True, slots=True)
class GameSituation:
    """Score line the reactive rules look at."""

    turn: int
    own_ships_remaining: int
    enemy_ships_remaining: int
    damaged_enemy_ships: int = 0
    recent_misses: int = 0
    lost_ship_kinds: tuple[ShipKind, ...] = ()


@dataclass(frozen=True, slots=True)
class AdaptiveRule:
    trigger: str
    condition: Callable[[GameSituation], bool]
    adjustments: Mapping[str, float]
    duration: int
    placement: PlacementStrategy | None = None


def default_rules() -> tuple[AdaptiveRule, ...]:
    return (
        AdaptiveRule(
            trigger="winning",
            condition=lambda s: s.own_ships_remaining > s.enemy_ships_remaining * 1.5,
            adjustments={"aggression": 0.2, "caution": -0.1, "ability_frequency": 0.1},
            duration=5,
        ),
        AdaptiveRule(
            trigger="losing",
            condition=lambda s: s.own_ships_remaining < s.enemy_ships_remaining * 0.7,
            adjustments={"aggression": -0.2, "caution": 0.3, "powerup_conservation": 0.2},
            duration=5,
        ),
        AdaptiveRule(
            trigger="ship_damaged",
            condition=lambda s: s.damaged_enemy_ships > 0,
            adjustments={"persistence": 0.3, "aggression": 0.1},
            duration=3,
        ),
        AdaptiveRule(
            trigger="strategy_failing",
            condition=lambda s: s.recent_misses > 5,
            adjustments={"creativity": 0.2, "adaptability": 0.2},
            duration=4,
            placement=PlacementStrategy.RANDOM,
        ),
        AdaptiveRule(
            trigger="important_ship_lost",
            condition=lambda s: any(kind in IMPORTANT_KINDS for kind in s.lost_ship_kinds),
            adjustments={"caution": 0.3, "aggression": -0.2, "powerup_conservation": 0.3},
            duration=6,
        ),
    )


@dataclass(frozen=True, slots=True)
class BehaviorChange:
    turn: int
    before: BehaviorTraits
    after: BehaviorTraits
    triggers: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class BehaviorEffectiveness:
    most_effective: BehaviorProfile | None
    least_effective: BehaviorProfile | None
    adaptation_frequency: float
    average_interval: float
    common_triggers: tuple[str, ...]


@dataclass(slots=True)
class _ProfileStats:
    occurrences: int = 0
    games: int = 0
    wins: int = 0

    @property
    def success_rate(self) -> float:
        return self.wins / self.games if self.games else 0.0


@dataclass(slots=True)
class _ActiveAdaptation:
    trigger: str
    expires_turn: int


class AIBehaviorConfig:
    """Owned per session; holds presets, reactive rules and change history."""

    def __init__(
        self,
        rng: random.Random | None = None,
        *,
        adaptation_enabled: bool = True,
        presets: Mapping[str, BehaviorPreset] | None = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._adaptation_enabled = adaptation_enabled
        self._presets: dict[str, BehaviorPreset] = dict(presets) if presets else default_presets()
        self._rules = default_rules()
        self._history: list[BehaviorChange] = []
        self._outcomes: dict[BehaviorProfile, _ProfileStats] = {}
        self._active: list[_ActiveAdaptation] = []
        self.current: BehaviorTraits | None = None

    @property
    def adaptation_enabled(self) -> bool:
        return self._adaptation_enabled

    def set_adaptation_enabled(self, enabled: bool) -> None:
        self._adaptation_enabled = enabled

    @property
    def presets(self) -> Mapping[str, BehaviorPreset]:
        return MappingProxyType(self._presets)

    @property
    def rules(self) -> tuple[AdaptiveRule, ...]:
        return self._rules

    @property
    def history(self) -> tuple[BehaviorChange, ...]:
        return tuple(self._history)

    def add_preset(self, preset: BehaviorPreset) -> None:
        self._presets[preset.name.lower()] = preset

    def get_preset(self, name: str) -> BehaviorPreset:
        try:
            return self._presets[name.strip().lower()]
        except KeyError as exc:
            raise ConfigurationError(f"Unknown behavior preset: {name!r}.") from exc

    def get_behavior(self, name: str) -> BehaviorTraits:
        """Traits of a preset with its modifiers applied; unknown names fall back to balanced."""
        preset = self._presets.get(name.strip().lower()) or self._presets.get("balanced")
        if preset is None:
            raise ConfigurationError("No balanced preset available as fallback.")
        return apply_modifiers(preset.traits, preset.modifiers)

    def create_custom_behavior(self, base: str, **overrides: object) -> BehaviorTraits:
        return replace(self.get_behavior(base), **overrides).clamped()  # type: ignore[arg-type]

    def update_behavior(self, traits: BehaviorTraits, situation: GameSituation) -> BehaviorTraits:
        """Apply every reactive rule whose condition holds for ``situation``."""
        self._active = [item for item in self._active if item.expires_turn > situation.turn]
        if not self._adaptation_enabled:
            return traits
        updated = traits
        triggered: list[str] = []
        for rule in self._rules:
            if not rule.condition(situation):
                continue
            updated = updated.adjusted(**rule.adjustments)
            if rule.placement is not None:
                updated = replace(updated, placement_strategy=rule.placement)
            triggered.append(rule.trigger)
            self._active.append(_ActiveAdaptation(rule.trigger, situation.turn + rule.duration))
        if triggered:
            self._record(traits, updated, tuple(triggered), situation.turn)
            logger.debug("behavior_adapted turn=%d triggers=%s", situation.turn, ",".join(triggered))
        self.current = updated
        return updated

    def active_triggers(self) -> tuple[str, ...]:
        return tuple(item.trigger for item in self._active)

    def adapt_to_opponent(self, traits: BehaviorTraits, opponent: OpponentModel) -> BehaviorTraits:
        adapted = traits
        if opponent.observed_behavior is OpponentBehavior.AGGRESSIVE:
            adapted = adapted.adjusted(caution=0.2)
        elif opponent.observed_behavior is OpponentBehavior.DEFENSIVE:
            adapted = adapted.adjusted(aggression=0.2, creativity=0.1)
        if opponent.predictability > 0.7:
            adapted = adapted.adjusted(creativity=0.3, adaptability=0.2)
        return adapted

    def select_behavior(
        self,
        level: DifficultyLevel | str,
        game_mode: str = "standard",
        opponent_strength: float = 0.5,
    ) -> BehaviorTraits:
        """Pick a starting personality for a match."""
        tier = DifficultyLevel.parse(level)
        if tier is DifficultyLevel.BEGINNER:
            name = "defensive" if self._rng.random() < 0.3 else "balanced"
        elif tier is DifficultyLevel.INTERMEDIATE:
            name = self._rng.choice(("balanced", "defensive", "aggressive"))
        elif tier is DifficultyLevel.ADVANCED:
            name = "aggressive" if self._rng.random() < 0.5 else "balanced"
        else:
            name = "unpredictable"
        traits = self.get_behavior(name)

        if game_mode == "tournament":
            traits = traits.adjusted(caution=0.1, powerup_conservation=0.1)
        elif game_mode == "blitz":
            traits = traits.adjusted(aggression=0.2, ability_frequency=0.2)

        if opponent_strength > 0.7:
            traits = traits.adjusted(caution=0.15, adaptability=0.1)
        elif opponent_strength < 0.3:
            traits = traits.adjusted(aggression=0.15, creativity=0.1)

        logger.info("behavior_selected level=%s preset=%s mode=%s", tier, name, game_mode)
        self.current = traits
        return traits

    def record_outcome(self, profile: BehaviorProfile, won: bool) -> None:
        stats = self._outcomes.setdefault(profile, _ProfileStats())
        stats.games += 1
        if won:
            stats.wins += 1

    def analyze_behavior_effectiveness(self) -> BehaviorEffectiveness:
        if not self._history:
            return BehaviorEffectiveness(None, None, 0.0, 0.0, ())
        stats: dict[BehaviorProfile, _ProfileStats] = {}
        for change in self._history:
            profile = change.after.profile
            entry = stats.setdefault(profile, _ProfileStats())
            entry.occurrences += 1
            outcome = self._outcomes.get(profile)
            if outcome is not None:
                entry.games, entry.wins = outcome.games, outcome.wins

        total_turns = max(1, self._history[-1].turn)
        intervals = [b.turn - a.turn for a, b in zip(self._history, self._history[1:])]
        triggers = Counter(trigger for change in self._history for trigger in change.triggers)

        scored = {profile: s.occurrences * s.success_rate for profile, s in stats.items()}
        most = max(scored, key=scored.__getitem__) if scored else None
        if most is not None and scored[most] <= 0:
            most = None
        least = min(scored, key=scored.__getitem__) if len(scored) > 1 else None
        return BehaviorEffectiveness(
            most_effective=most,
            least_effective=least,
            adaptation_frequency=len(self._history) / total_turns,
            average_interval=sum(intervals) / len(intervals) if intervals else 0.0,
            common_triggers=tuple(trigger for trigger, _ in triggers.most_common(5)),
        )

    def reset_history(self) -> None:
        self._history.clear()
        self._active.clear()
        self.current = None

    def export_config(self) -> str:
        return dumps_text(
            behavior_config_to_payload(self._presets, self._adaptation_enabled), pretty=True
        )

    def import_config(self, text: str | bytes) -> None:
        """Replace presets and the adaptation flag; raises ``ConfigurationError`` on bad input."""
        model = payload_to_behavior_config(loads_object(text))
        if not model.presets:
            raise ConfigurationError("Behavior config must contain at least one preset.")
        self._presets = model.presets
        self._adaptation_enabled = model.adaptation_enabled
        logger.info("behavior_config_imported presets=%d", len(self._presets))

    def _record(
        self,
        before: BehaviorTraits,
        after: BehaviorTraits,
        triggers: tuple[str, ...],
        turn: int,
    ) -> None:
        self._history.append(BehaviorChange(turn=turn, before=before, after=after, triggers=triggers))
        if len(self._history) > HISTORY_LIMIT:
            del self._history[0]

