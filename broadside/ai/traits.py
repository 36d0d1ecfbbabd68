"""Behavior trait value types shared by policies and the behavior config."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import StrEnum

TRAIT_FIELDS = (
    "aggression",
    "caution",
    "adaptability",
    "persistence",
    "creativity",
    "ability_frequency",
    "powerup_conservation",
)


class BehaviorProfile(StrEnum):
    AGGRESSIVE = "aggressive"
    DEFENSIVE = "defensive"
    BALANCED = "balanced"
    UNPREDICTABLE = "unpredictable"


class TargetPriority(StrEnum):
    LARGEST_SHIP = "largest_ship"
    SMALLEST_SHIP = "smallest_ship"
    DAMAGED_SHIP = "damaged_ship"
    HIGH_VALUE = "high_value"
    CENTER_CELLS = "center_cells"
    EDGE_CELLS = "edge_cells"
    CLUSTERED_AREA = "clustered_area"


class PlacementStrategy(StrEnum):
    RANDOM = "random"
    CLUSTERED = "clustered"
    DISTRIBUTED = "distributed"
    DEFENSIVE = "defensive"


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(frozen=True, slots=True)
class BehaviorTraits:
    """Personality of an AI player; numeric traits are in ``[0, 1]``."""

    profile: BehaviorProfile
    aggression: float
    caution: float
    adaptability: float
    persistence: float
    creativity: float
    preferred_targets: tuple[TargetPriority, ...]
    placement_strategy: PlacementStrategy
    ability_frequency: float
    powerup_conservation: float

    def adjusted(self, **deltas: float) -> BehaviorTraits:
        """Add deltas to numeric traits, clamping each to ``[0, 1]``."""
        unknown = set(deltas) - set(TRAIT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown trait(s): {', '.join(sorted(unknown))}.")
        return replace(
            self, **{name: _clamp(getattr(self, name) + delta) for name, delta in deltas.items()}
        )

    def clamped(self) -> BehaviorTraits:
        return replace(self, **{name: _clamp(getattr(self, name)) for name in TRAIT_FIELDS})

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {f.name: getattr(self, f.name) for f in fields(self)}
        payload["profile"] = self.profile.value
        payload["preferred_targets"] = [target.value for target in self.preferred_targets]
        payload["placement_strategy"] = self.placement_strategy.value
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, object]) -> BehaviorTraits:
        raw_targets = payload["preferred_targets"]
        if not isinstance(raw_targets, list):
            raise TypeError("preferred_targets must be a list.")
        numeric = {name: float(payload[name]) for name in TRAIT_FIELDS}  # type: ignore[arg-type]
        return cls(
            profile=BehaviorProfile(str(payload["profile"])),
            preferred_targets=tuple(TargetPriority(str(item)) for item in raw_targets),
            placement_strategy=PlacementStrategy(str(payload["placement_strategy"])),
            **numeric,
        )


@dataclass(frozen=True, slots=True)
class BehaviorModifier:
    factor: str
    value: float
    description: str = ""


@dataclass(frozen=True, slots=True)
class BehaviorPreset:
    """Named, documented trait bundle with optional modifiers."""

    name: str
    profile: BehaviorProfile
    description: str
    traits: BehaviorTraits
    modifiers: tuple[BehaviorModifier, ...] = ()
