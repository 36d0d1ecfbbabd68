"""AI player facade: owns one policy and its state, enforces the turn contract."""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Sequence
from dataclasses import replace

from broadside.ai.decision import AIContext, AIDecision
from broadside.ai.monitor import PerformanceMonitor
from broadside.ai.policy import AIState, DecisionPolicy
from broadside.ai.settings import DifficultyLevel, DifficultySettings, PerformanceMetrics
from broadside.ai.traits import BehaviorTraits
from broadside.core.models import BOARD_SIZE, AttackResult, Coord, ShipKind, ShipPosition
from broadside.infra.config import EngineConfig

logger = logging.getLogger(__name__)

LOW_WIN_RATE = 0.3
HIGH_WIN_RATE = 0.7
LOW_ACCURACY = 0.3
TRAIT_STEP = 0.1


def thinking_time(settings: DifficultySettings, rng: random.Random, scale: float = 1.0) -> int:
    """Simulated delay in milliseconds, uniform in the tier's bounds."""
    low, high = settings.think_time_min_ms, settings.think_time_max_ms
    if high < low:
        low, high = high, low
    return int(rng.uniform(low, high) * max(0.0, scale))


class AIPlayer:
    """One AI opponent for one seat; not shared between games running in parallel."""

    def __init__(
        self,
        policy: DecisionPolicy,
        state: AIState,
        config: EngineConfig | None = None,
        monitor: PerformanceMonitor | None = None,
    ) -> None:
        if policy.level is not state.level:
            raise ValueError(
                f"policy tier {policy.level} does not match settings tier {state.level}."
            )
        self._policy = policy
        self._state = state
        self._config = config or EngineConfig()
        self._monitor = monitor or PerformanceMonitor()
        self._pending: set[Coord] = set()

    @property
    def level(self) -> DifficultyLevel:
        return self._policy.level

    @property
    def policy(self) -> DecisionPolicy:
        return self._policy

    @property
    def state(self) -> AIState:
        return self._state

    @property
    def monitor(self) -> PerformanceMonitor:
        return self._monitor

    @property
    def traits(self) -> BehaviorTraits:
        return self._state.traits

    def decide(self, context: AIContext) -> AIDecision:
        """Pick this turn's move; every targeted cell is guaranteed un-hit."""
        if context.opponent_board is None:
            raise ValueError("AIContext.opponent_board is required to decide a move")
        board = context.opponent_board
        self._state.turn = context.turn
        self._state.observe_opponent(context.opponent_history, board.width)

        token = self._monitor.begin_decision()
        decision = self._policy.decide(context, self._state)
        targeted = decision.action.targeted_cells()
        already_hit = [cell for cell in targeted if not board.in_bounds(cell) or board.is_hit(cell)]
        if already_hit:
            raise RuntimeError(
                f"{self.level} policy targeted unavailable cell(s): {already_hit}"
            )

        delay_ms = thinking_time(self._state.settings, self._state.rng, self._config.thinking_scale)
        if self._config.simulate_thinking and delay_ms > 0:
            time.sleep(delay_ms / 1000.0)
        self._pending.update(targeted)
        logger.debug(
            "ai_decision level=%s turn=%d type=%s target=%s confidence=%.2f",
            self.level,
            context.turn,
            decision.type,
            decision.action.target,
            decision.confidence,
        )
        decision = replace(decision, turn=context.turn, thinking_ms=delay_ms)
        self._monitor.end_decision(token, decision)
        return decision

    def observe_result(self, result: AttackResult) -> None:
        """Feed one resolved attack back; only cells this player targeted are accepted."""
        if result.coord not in self._pending:
            raise ValueError(f"{result.coord} was not targeted by this player.")
        self._pending.discard(result.coord)
        self._state.record(result)
        self._monitor.record_outcome(result)
        self._policy.observe(result, self._state)

    def place_fleet(
        self, ships: Sequence[ShipKind], board_size: int = BOARD_SIZE
    ) -> list[ShipPosition]:
        positions = self._policy.place_fleet(ships, self._state, board_size)
        logger.info(
            "ai_fleet_placed level=%s requested=%d placed=%d",
            self.level,
            len(ships),
            len(positions),
        )
        return positions

    def finish_game(self, won: bool) -> BehaviorTraits:
        """Record the outcome and nudge traits toward what worked."""
        state = self._state
        state.games_played += 1
        if won:
            state.wins += 1
        accuracy = state.memory.accuracy()
        state.accuracy_history.append(accuracy)

        deltas: dict[str, float] = {}
        if state.win_rate < LOW_WIN_RATE:
            deltas["caution"] = TRAIT_STEP
            deltas["aggression"] = -TRAIT_STEP
        elif state.win_rate > HIGH_WIN_RATE:
            deltas["aggression"] = TRAIT_STEP
            deltas["creativity"] = TRAIT_STEP
        if accuracy < LOW_ACCURACY:
            deltas["adaptability"] = TRAIT_STEP
        if deltas:
            state.traits = state.traits.adjusted(**deltas)
        logger.info(
            "ai_game_finished level=%s won=%s win_rate=%.2f accuracy=%.2f",
            self.level,
            won,
            state.win_rate,
            accuracy,
        )
        session = self._monitor.session()
        decided = len(self._monitor.records)
        self._monitor.save_snapshot(
            PerformanceMetrics(
                win_rate=state.win_rate,
                accuracy=accuracy,
                optimal_rate=session.successful / decided if decided else 0.0,
                average_game_length=float(state.turn),
            ),
            self.level,
        )
        self.reset()
        return state.traits

    def reset(self) -> None:
        """Forget the current game and its opponent model; learned traits survive."""
        self._state.reset_game()
        self._policy.reset()
        self._pending.clear()
        self._monitor.reset()
