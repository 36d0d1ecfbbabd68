"""Error types surfaced to callers of the engine."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised for invalid configuration: unknown tiers, malformed imports."""


class UnknownDifficultyError(ConfigurationError):
    """Raised when a difficulty tier name is not recognised."""

    def __init__(self, level: object) -> None:
        super().__init__(f"Unknown difficulty level: {level!r}.")
        self.level = level
