"""Engine configuration sourced from environment and env files."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _optional_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Immutable runtime configuration for AI players."""

    log_level: str = "INFO"
    seed: int | None = None
    simulate_thinking: bool = False
    thinking_scale: float = 1.0
    exploration_rate: float = 0.15
    mcts_simulations: int = 100
    minimax_depth: int = 3
    cache_ttl_seconds: float = 5.0


def resolve_log_level_name(default: str = "INFO") -> str:
    """Resolve log level with project-prefixed override."""
    value = os.getenv("BROADSIDE_LOG_LEVEL")
    if value is None:
        value = os.getenv("LOG_LEVEL", default)
    return value.strip().upper()


def load_engine_config() -> EngineConfig:
    """Load immutable engine configuration from env vars."""
    return EngineConfig(
        log_level=resolve_log_level_name(),
        seed=_optional_int("BROADSIDE_SEED"),
        simulate_thinking=_flag("BROADSIDE_SIMULATE_THINKING", False),
        thinking_scale=max(0.0, _float("BROADSIDE_THINKING_SCALE", 1.0)),
        exploration_rate=min(1.0, max(0.0, _float("BROADSIDE_EXPLORATION_RATE", 0.15))),
        mcts_simulations=max(1, _int("BROADSIDE_MCTS_SIMULATIONS", 100)),
        minimax_depth=max(1, _int("BROADSIDE_MINIMAX_DEPTH", 3)),
        cache_ttl_seconds=max(0.0, _float("BROADSIDE_CACHE_TTL", 5.0)),
    )


def load_env_file(path: str = ".env", *, override_existing: bool = True) -> None:
    """Load KEY=VALUE pairs from an env file into process environment.

    By default, values from the env file overwrite existing environment variables.
    """
    env_path = Path(path)
    if not env_path.exists():
        return

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            continue

        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]

        if override_existing or key not in os.environ:
            os.environ[key] = value
