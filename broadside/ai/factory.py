"""Construct AI players for a difficulty tier."""

from __future__ import annotations

import random

from broadside.ai.advanced import AdvancedPolicy
from broadside.ai.behavior import TIER_BEHAVIOR
from broadside.ai.beginner import BeginnerPolicy
from broadside.ai.expert import ExpertPolicy
from broadside.ai.intermediate import IntermediatePolicy
from broadside.ai.player import AIPlayer
from broadside.ai.policy import AIState, DecisionPolicy
from broadside.ai.settings import DEFAULT_SETTINGS, DifficultyLevel, DifficultySettings
from broadside.ai.traits import BehaviorTraits
from broadside.errors import ConfigurationError
from broadside.infra.config import EngineConfig, load_engine_config


def create_policy(level: DifficultyLevel, config: EngineConfig | None = None) -> DecisionPolicy:
    cfg = config or EngineConfig()
    if level is DifficultyLevel.BEGINNER:
        return BeginnerPolicy()
    if level is DifficultyLevel.INTERMEDIATE:
        return IntermediatePolicy()
    if level is DifficultyLevel.ADVANCED:
        return AdvancedPolicy()
    if level is DifficultyLevel.EXPERT:
        return ExpertPolicy(
            exploration_rate=cfg.exploration_rate,
            mcts_simulations=cfg.mcts_simulations,
            minimax_depth=cfg.minimax_depth,
            cache_ttl_seconds=cfg.cache_ttl_seconds,
        )
    raise ConfigurationError(f"No policy registered for tier {level!r}.")


def create_player(
    level: DifficultyLevel | str,
    *,
    rng: random.Random | None = None,
    config: EngineConfig | None = None,
    settings: DifficultySettings | None = None,
    traits: BehaviorTraits | None = None,
) -> AIPlayer:
    """Build an ``AIPlayer`` with its own state.

    Unknown tier names raise ``UnknownDifficultyError``. Without an explicit ``rng`` the
    player is seeded from ``BROADSIDE_SEED`` when set.
    """
    tier = DifficultyLevel.parse(level)
    cfg = config or load_engine_config()
    tier_settings = settings or DEFAULT_SETTINGS[tier]
    if tier_settings.level is not tier:
        raise ConfigurationError(
            f"Settings for {tier_settings.level} cannot drive a {tier} player."
        )
    state = AIState(
        settings=tier_settings,
        traits=traits or TIER_BEHAVIOR[tier],
        rng=rng or random.Random(cfg.seed),
    )
    return AIPlayer(create_policy(tier, cfg), state, cfg)
