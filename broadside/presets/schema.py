"""Versioned payload schema for behavior and difficulty configuration."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from broadside.ai.settings import (
    DifficultyLevel,
    DifficultySettings,
    PerformanceMetrics,
    PerformanceRecord,
)
from broadside.ai.traits import BehaviorModifier, BehaviorPreset, BehaviorProfile, BehaviorTraits
from broadside.errors import ConfigurationError

SCHEMA_VERSION = 1
BEHAVIOR_KIND = "behavior_config"
DIFFICULTY_KIND = "difficulty_manager"


@dataclass(slots=True)
class BehaviorConfigModel:
    presets: dict[str, BehaviorPreset]
    adaptation_enabled: bool


@dataclass(slots=True)
class DifficultyConfigModel:
    settings: dict[DifficultyLevel, DifficultySettings]
    history: list[PerformanceRecord]
    dynamic_enabled: bool
    threshold: float


def _check_envelope(payload: Mapping[str, object], kind: str) -> None:
    raw_version = payload.get("version", -1)
    if not isinstance(raw_version, (int, str)):
        raise ConfigurationError("Config version must be int-compatible.")
    try:
        version = int(raw_version)
    except ValueError as exc:
        raise ConfigurationError("Config version must be int-compatible.") from exc
    if version != SCHEMA_VERSION:
        raise ConfigurationError("Unsupported config version.")
    if payload.get("kind") != kind:
        raise ConfigurationError(f"Expected a {kind} payload.")


def preset_to_payload(preset: BehaviorPreset) -> dict[str, object]:
    return {
        "name": preset.name,
        "profile": preset.profile.value,
        "description": preset.description,
        "traits": preset.traits.to_dict(),
        "modifiers": [
            {"factor": m.factor, "value": m.value, "description": m.description}
            for m in preset.modifiers
        ],
    }


def payload_to_preset(item: object) -> BehaviorPreset:
    if not isinstance(item, dict):
        raise ConfigurationError("Each preset must be an object.")
    try:
        name = str(item["name"]).strip()
        if not name:
            raise ValueError("Preset name is required.")
        traits = item["traits"]
        if not isinstance(traits, dict):
            raise TypeError("Preset traits must be an object.")
        raw_modifiers = item.get("modifiers", [])
        if not isinstance(raw_modifiers, list):
            raise TypeError("Preset modifiers must be a list.")
        modifiers = tuple(
            BehaviorModifier(
                factor=str(m["factor"]),
                value=float(m["value"]),
                description=str(m.get("description", "")),
            )
            for m in raw_modifiers
        )
        return BehaviorPreset(
            name=name,
            profile=BehaviorProfile(str(item["profile"])),
            description=str(item.get("description", "")),
            traits=BehaviorTraits.from_dict(traits),
            modifiers=modifiers,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError("Malformed preset entry in behavior payload.") from exc


def behavior_config_to_payload(
    presets: Mapping[str, BehaviorPreset], adaptation_enabled: bool
) -> dict[str, object]:
    """Convert behavior presets to a JSON-serializable payload."""
    return {
        "version": SCHEMA_VERSION,
        "kind": BEHAVIOR_KIND,
        "adaptation_enabled": adaptation_enabled,
        "presets": [
            {"key": key, **preset_to_payload(preset)} for key, preset in presets.items()
        ],
    }


def payload_to_behavior_config(payload: Mapping[str, object]) -> BehaviorConfigModel:
    _check_envelope(payload, BEHAVIOR_KIND)
    raw_presets = payload.get("presets")
    if not isinstance(raw_presets, list):
        raise ConfigurationError("Behavior presets must be a list.")
    presets: dict[str, BehaviorPreset] = {}
    for item in raw_presets:
        preset = payload_to_preset(item)
        key = str(item.get("key") or preset.name.lower())  # type: ignore[union-attr]
        presets[key] = preset
    enabled = payload.get("adaptation_enabled", True)
    if not isinstance(enabled, bool):
        raise ConfigurationError("adaptation_enabled must be a boolean.")
    return BehaviorConfigModel(presets=presets, adaptation_enabled=enabled)


def record_to_payload(record: PerformanceRecord) -> dict[str, object]:
    return {
        "level": record.level.value,
        "win_rate": record.metrics.win_rate,
        "accuracy": record.metrics.accuracy,
        "optimal_rate": record.metrics.optimal_rate,
        "average_game_length": record.metrics.average_game_length,
        "score": record.score,
        "games_played": record.games_played,
    }


def payload_to_record(item: object) -> PerformanceRecord:
    if not isinstance(item, dict):
        raise ConfigurationError("Each history entry must be an object.")
    try:
        metrics = PerformanceMetrics(
            win_rate=float(item["win_rate"]),
            accuracy=float(item["accuracy"]),
            optimal_rate=float(item["optimal_rate"]),
            average_game_length=float(item.get("average_game_length", 0.0)),
        )
        return PerformanceRecord(
            level=DifficultyLevel.parse(item["level"]),
            metrics=metrics,
            score=float(item["score"]),
            games_played=int(item["games_played"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError("Malformed history entry in difficulty payload.") from exc


def difficulty_to_payload(
    settings: Mapping[DifficultyLevel, DifficultySettings],
    history: Sequence[PerformanceRecord],
    dynamic_enabled: bool,
    threshold: float,
) -> dict[str, object]:
    """Convert difficulty manager state to a JSON-serializable payload."""
    return {
        "version": SCHEMA_VERSION,
        "kind": DIFFICULTY_KIND,
        "settings": {level.value: item.to_dict() for level, item in settings.items()},
        "history": [record_to_payload(record) for record in history],
        "dynamic_adjustment": {"enabled": dynamic_enabled, "threshold": threshold},
    }


def payload_to_difficulty(payload: Mapping[str, object]) -> DifficultyConfigModel:
    _check_envelope(payload, DIFFICULTY_KIND)
    raw_settings = payload.get("settings")
    if not isinstance(raw_settings, dict):
        raise ConfigurationError("Difficulty settings must be an object.")
    settings: dict[DifficultyLevel, DifficultySettings] = {}
    for key, item in raw_settings.items():
        if not isinstance(item, dict):
            raise ConfigurationError("Each difficulty settings entry must be an object.")
        try:
            parsed = DifficultySettings.from_dict(item)
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError(f"Malformed settings for {key!r}.") from exc
        settings[parsed.level] = parsed

    raw_history = payload.get("history", [])
    if not isinstance(raw_history, list):
        raise ConfigurationError("Difficulty history must be a list.")
    history = [payload_to_record(item) for item in raw_history]

    dynamic = payload.get("dynamic_adjustment", {})
    if not isinstance(dynamic, dict):
        raise ConfigurationError("dynamic_adjustment must be an object.")
    enabled = dynamic.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ConfigurationError("dynamic_adjustment.enabled must be a boolean.")
    try:
        threshold = float(dynamic.get("threshold", 0.3))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError("dynamic_adjustment.threshold must be numeric.") from exc
    return DifficultyConfigModel(
        settings=settings, history=history, dynamic_enabled=enabled, threshold=threshold
    )
