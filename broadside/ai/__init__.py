"""AI opponents: difficulty tiers, opponent modeling, behavior and difficulty management."""

from broadside.ai.behavior import AIBehaviorConfig
from broadside.ai.decision import Action, AIContext, AIDecision, DecisionType, OpponentMove
from broadside.ai.difficulty import DifficultyManager
from broadside.ai.factory import create_player, create_policy
from broadside.ai.monitor import PerformanceMonitor
from broadside.ai.player import AIPlayer
from broadside.ai.settings import DifficultyLevel, DifficultySettings, PerformanceMetrics

__all__ = [
    "AIBehaviorConfig",
    "AIContext",
    "AIDecision",
    "AIPlayer",
    "Action",
    "DecisionType",
    "DifficultyLevel",
    "DifficultyManager",
    "DifficultySettings",
    "OpponentMove",
    "PerformanceMonitor",
    "PerformanceMetrics",
    "create_player",
    "create_policy",
]
