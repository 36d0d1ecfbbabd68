from __future__ import annotations

import random

import pytest

from broadside.ai.behavior import TIER_BEHAVIOR
from broadside.ai.decision import AIContext, DecisionType
from broadside.ai.expert import (
    ABILITY_THRESHOLD,
    POWERUP_THRESHOLD,
    ExpertPolicy,
    GamePhase,
    counter_strategies,
    game_phase,
    placement_strategy_for,
    strategic_placement_score,
    strategy_weights,
)
from broadside.ai.opponent import DetectedPattern, OpponentBehavior, OpponentModel, PatternType
from broadside.ai.policy import AIState
from broadside.ai.settings import DEFAULT_SETTINGS, DifficultyLevel
from broadside.core.board import BoardState
from broadside.core.models import (
    DEFAULT_FLEET,
    Ability,
    AttackResult,
    Coord,
    Orientation,
    PowerupType,
    ShipKind,
    ShotResult,
)
from broadside.placement.domain import create_placed_ship


def _state(seed: int = 17) -> AIState:
    return AIState(
        settings=DEFAULT_SETTINGS[DifficultyLevel.EXPERT],
        traits=TIER_BEHAVIOR[DifficultyLevel.EXPERT],
        rng=random.Random(seed),
    )


def _policy() -> ExpertPolicy:
    return ExpertPolicy(exploration_rate=0.0, mcts_simulations=20, minimax_depth=2)


@pytest.mark.parametrize(
    ("turn", "phase"),
    [(1, GamePhase.EARLY), (9, GamePhase.EARLY), (10, GamePhase.MID), (29, GamePhase.MID), (30, GamePhase.LATE)],
)
def test_game_phase_boundaries(turn: int, phase: GamePhase) -> None:
    assert game_phase(turn) is phase


def test_strategy_weights_track_opponent_class() -> None:
    unpredictable = OpponentModel(observed_behavior=OpponentBehavior.UNPREDICTABLE)
    weights = strategy_weights(unpredictable)
    assert weights["monte_carlo"] == 1.5
    assert weights["probability_maximum"] == 1.2

    aggressive = strategy_weights(OpponentModel(observed_behavior=OpponentBehavior.AGGRESSIVE))
    assert aggressive["misdirection"] == 1.5
    assert strategy_weights(OpponentModel())["minimax"] == 1.5


def test_counter_strategies_need_confident_patterns() -> None:
    opponent = OpponentModel()
    opponent.targeting_patterns.extend(
        [
            DetectedPattern(PatternType.LINEAR, "row sweep", 0.8),
            DetectedPattern(PatternType.EDGE_HEAVY, "edges", 0.4),
        ]
    )
    counters = counter_strategies(opponent)
    assert set(counters) == {"counter_systematic"}
    assert counters["counter_systematic"].effectiveness == 0.85


def test_placement_strategy_for_each_class() -> None:
    assert placement_strategy_for(OpponentBehavior.AGGRESSIVE) == "defensive_spread"
    assert placement_strategy_for(OpponentBehavior.DEFENSIVE) == "aggressive_cluster"
    assert placement_strategy_for(OpponentBehavior.UNPREDICTABLE) == "random_anti_pattern"
    assert placement_strategy_for(OpponentBehavior.BALANCED) == "balanced_distribution"


def test_edge_counter_pushes_ships_inland() -> None:
    edge = create_placed_ship("a", ShipKind.DESTROYER, Coord(0, 0), Orientation.HORIZONTAL)
    inland = create_placed_ship("b", ShipKind.DESTROYER, Coord(4, 4), Orientation.HORIZONTAL)
    opponent = OpponentModel()
    opponent.targeting_patterns.append(DetectedPattern(PatternType.EDGE_HEAVY, "edges", 0.9))
    counters = counter_strategies(opponent)

    def score(ship) -> float:
        return strategic_placement_score(ship, [], "defensive_spread", counters, 10, 0.0)

    assert score(inland) > score(edge)


def test_cell_probabilities_stay_in_unit_range(empty_board: BoardState) -> None:
    state = _state()
    empty_board.hits[4, 4] = True
    state.record(AttackResult(Coord(4, 4), ShotResult.HIT, ship_id="c", ship_kind=ShipKind.CRUISER))
    grid = _policy().cell_probabilities(empty_board, state)
    assert float(grid.min()) >= 0.0
    assert float(grid.max()) <= 1.0
    assert grid[4, 4] == 0.0


def test_decision_shape(empty_board: BoardState) -> None:
    state = _state()
    decision = _policy().decide(AIContext(opponent_board=empty_board, turn=1), state)
    assert decision.type is DecisionType.ATTACK
    assert 0.8 <= decision.confidence <= 0.99
    assert any(factor.startswith("strategy:") for factor in decision.reasoning.factors)
    assert "phase:early" in decision.reasoning.factors
    assert len(decision.alternatives) == 3
    assert state.analysis is not None


def test_synergy_ability_beats_plain_attack(empty_board: BoardState, ship_factory) -> None:
    ship = ship_factory("sub", ShipKind.SUBMARINE, Coord(0, 0), abilities=[Ability("SonarPing")])
    context = AIContext(opponent_board=empty_board, turn=1, own_ships=(ship,))
    decision = _policy().decide(context, _state())
    assert decision.type is DecisionType.ABILITY_USE
    assert decision.action.ability == "SonarPing"
    assert decision.action.ship_id == "sub"


def test_plain_ability_is_not_worth_it_early(empty_board: BoardState, ship_factory) -> None:
    ship = ship_factory("sub", ShipKind.SUBMARINE, Coord(0, 0), abilities=[Ability("Repair")])
    context = AIContext(opponent_board=empty_board, turn=1, own_ships=(ship,))
    policy = _policy()
    state = _state()
    assert policy._ability_value("Repair", context, state) <= ABILITY_THRESHOLD
    assert policy.decide(context, state).type is DecisionType.ATTACK


def test_powerup_values_by_phase() -> None:
    policy = _policy()
    state = _state()
    assert policy._powerup_value(PowerupType.RADAR_SCAN, GamePhase.EARLY, state) == 1.0
    assert policy._powerup_value(PowerupType.SMOKE_SCREEN, GamePhase.MID, state) <= POWERUP_THRESHOLD


def test_reset_restores_default_strategy(empty_board: BoardState) -> None:
    policy = _policy()
    policy.decide(AIContext(opponent_board=empty_board, turn=1), _state())
    assert len(policy.cache) > 0
    policy.reset()
    assert len(policy.cache) == 0
    assert policy.current_strategy == "probability_maximum"


@pytest.mark.parametrize("behavior", list(OpponentBehavior))
def test_place_fleet_is_legal_for_every_opponent_class(behavior: OpponentBehavior) -> None:
    state = _state()
    state.opponent.observed_behavior = behavior
    positions = _policy().place_fleet(DEFAULT_FLEET, state, 10)
    assert len(positions) == len(DEFAULT_FLEET)
    cells = [cell for position in positions for cell in position.cells]
    assert len(cells) == len(set(cells))
    assert all(0 <= c.x < 10 and 0 <= c.y < 10 for c in cells)
