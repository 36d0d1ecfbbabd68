from __future__ import annotations

import random

import pytest

from broadside.ai.decision import AIContext, DecisionType, MoveKind, OpponentMove
from broadside.ai.factory import create_player
from broadside.ai.opponent import PatternType
from broadside.ai.player import AIPlayer, thinking_time
from broadside.ai.settings import DEFAULT_SETTINGS, DifficultyLevel
from broadside.core.board import BoardState
from broadside.core.models import (
    DEFAULT_FLEET,
    Ability,
    AttackResult,
    Coord,
    PowerupType,
    ShipKind,
    ShotResult,
)
from broadside.errors import ConfigurationError, UnknownDifficultyError
from broadside.infra.config import EngineConfig
from broadside.placement.domain import PlacementRules, can_place, create_placed_ship

FAST = EngineConfig(mcts_simulations=20, minimax_depth=2)
ALL_POWERUPS = (PowerupType.RADAR_SCAN, PowerupType.BARRAGE, PowerupType.SONAR_PING)


def _player(level: DifficultyLevel, seed: int = 7) -> AIPlayer:
    return create_player(level, rng=random.Random(seed), config=FAST)


def _play(player: AIPlayer, board: BoardState, own_ships, turns: int) -> list[Coord]:
    fired: list[Coord] = []
    history: list[OpponentMove] = []
    for turn in range(1, turns + 1):
        if board.all_ships_sunk():
            break
        context = AIContext(
            opponent_board=board,
            turn=turn,
            own_ships=tuple(own_ships),
            available_powerups=ALL_POWERUPS,
            opponent_history=tuple(history),
        )
        decision = player.decide(context)
        assert 0.0 <= decision.confidence <= 1.0
        assert decision.turn == turn
        for cell in decision.action.targeted_cells():
            assert not board.is_hit(cell)
            player.observe_result(board.apply_attack(cell))
            fired.append(cell)
        history.append(OpponentMove(turn=turn, kind=MoveKind.ATTACK, target=Coord(turn % 10, 0)))
    return fired


@pytest.mark.parametrize("level", list(DifficultyLevel))
def test_every_tier_only_targets_unhit_cells(level, standard_fleet, ship_factory) -> None:
    board = BoardState.from_ships(standard_fleet)
    own = [
        ship_factory("mine", ShipKind.SUBMARINE, Coord(0, 0), abilities=[Ability("SonarPing")]),
    ]
    fired = _play(_player(level), board, own, turns=25)
    assert fired
    assert len(fired) == len(set(fired))


@pytest.mark.parametrize("level", [DifficultyLevel.ADVANCED, DifficultyLevel.EXPERT])
def test_probability_grid_stays_in_unit_range(level, standard_fleet) -> None:
    player = _player(level)
    board = BoardState.from_ships(standard_fleet)
    _play(player, board, [], turns=8)
    analysis = player.state.analysis
    assert analysis is not None
    grid = analysis.probability_grid
    assert float(grid.min()) >= 0.0
    assert float(grid.max()) <= 1.0
    assert all(not board.is_hit(cell) for cell in analysis.high_value_targets)


def test_decide_requires_opponent_board() -> None:
    player = _player(DifficultyLevel.BEGINNER)
    with pytest.raises(ValueError):
        player.decide(AIContext(opponent_board=None, turn=1))  # type: ignore[arg-type]


def test_observe_result_rejects_untargeted_cells(empty_board: BoardState) -> None:
    player = _player(DifficultyLevel.BEGINNER)
    with pytest.raises(ValueError):
        player.observe_result(AttackResult(Coord(0, 0), ShotResult.MISS))
    decision = player.decide(AIContext(opponent_board=empty_board, turn=1))
    target = decision.action.target
    assert target is not None
    player.observe_result(AttackResult(target, ShotResult.MISS))
    with pytest.raises(ValueError):
        player.observe_result(AttackResult(target, ShotResult.MISS))


def test_full_board_raises(empty_board: BoardState) -> None:
    empty_board.hits[:, :] = True
    player = _player(DifficultyLevel.INTERMEDIATE)
    with pytest.raises(RuntimeError):
        player.decide(AIContext(opponent_board=empty_board, turn=1))


@pytest.mark.parametrize("level", list(DifficultyLevel))
def test_place_fleet_returns_legal_layout(level) -> None:
    positions = _player(level).place_fleet(DEFAULT_FLEET)
    assert sorted(p.kind for p in positions) == sorted(DEFAULT_FLEET)
    placed = []
    relaxed = PlacementRules(allow_touch=True)
    for index, position in enumerate(positions):
        ship = create_placed_ship(f"s{index}", position.kind, position.origin, position.orientation)
        assert ship.cells == position.cells
        assert can_place(ship.cells, placed, relaxed).valid
        placed.append(ship)


def test_thinking_time_within_tier_bounds() -> None:
    settings = DEFAULT_SETTINGS[DifficultyLevel.ADVANCED]
    rng = random.Random(3)
    for _ in range(20):
        value = thinking_time(settings, rng)
        assert settings.think_time_min_ms <= value <= settings.think_time_max_ms
    assert thinking_time(settings, rng, scale=0.0) == 0


def test_decision_reports_thinking_time_without_sleeping(empty_board: BoardState, monkeypatch) -> None:
    def _no_sleep(_: float) -> None:
        raise AssertionError("sleep must not be called when simulation is off")

    monkeypatch.setattr("broadside.ai.player.time.sleep", _no_sleep)
    player = _player(DifficultyLevel.EXPERT)
    decision = player.decide(AIContext(opponent_board=empty_board, turn=1))
    settings = DEFAULT_SETTINGS[DifficultyLevel.EXPERT]
    assert settings.think_time_min_ms <= decision.thinking_ms <= settings.think_time_max_ms


def test_finish_game_adjusts_traits_after_losses(empty_board: BoardState) -> None:
    player = _player(DifficultyLevel.INTERMEDIATE)
    before = player.traits
    after = player.finish_game(won=False)
    assert after.caution == pytest.approx(before.caution + 0.1)
    assert after.aggression == pytest.approx(before.aggression - 0.1)
    # No shots fired, so accuracy is zero.
    assert after.adaptability == pytest.approx(before.adaptability + 0.1)
    assert player.state.games_played == 1
    assert player.state.memory.shots_fired == []


def test_finish_game_rewards_winning_streak() -> None:
    player = _player(DifficultyLevel.ADVANCED)
    before = player.traits
    after = player.finish_game(won=True)
    assert after.aggression == pytest.approx(min(1.0, before.aggression + 0.1))
    assert after.creativity == pytest.approx(min(1.0, before.creativity + 0.1))


def test_create_player_rejects_unknown_tier() -> None:
    with pytest.raises(UnknownDifficultyError):
        create_player("grandmaster", config=FAST)


def test_seeded_players_are_deterministic(empty_board: BoardState) -> None:
    first = create_player("advanced", rng=random.Random(11), config=FAST)
    second = create_player("advanced", rng=random.Random(11), config=FAST)
    assert first.place_fleet(DEFAULT_FLEET) == second.place_fleet(DEFAULT_FLEET)
    context = AIContext(opponent_board=empty_board, turn=1)
    assert first.decide(context).action == second.decide(context).action


def test_powerup_area_cells_are_unhit(standard_fleet) -> None:
    player = _player(DifficultyLevel.ADVANCED)
    board = BoardState.from_ships(standard_fleet)
    for turn in range(1, 40):
        context = AIContext(
            opponent_board=board,
            turn=turn,
            available_powerups=(PowerupType.BARRAGE, PowerupType.RADAR_SCAN),
        )
        decision = player.decide(context)
        if decision.type is DecisionType.POWERUP_USE:
            assert decision.action.area
            assert all(not board.is_hit(cell) for cell in decision.action.area)
        for cell in decision.action.targeted_cells():
            player.observe_result(board.apply_attack(cell))
        if board.all_ships_sunk():
            break


def test_environment_seed_makes_players_repeatable(monkeypatch) -> None:
    monkeypatch.setenv("BROADSIDE_SEED", "5")
    first = create_player("beginner").place_fleet(DEFAULT_FLEET)
    second = create_player("beginner").place_fleet(DEFAULT_FLEET)
    assert first == second


def test_player_rejects_mismatched_settings() -> None:
    with pytest.raises(ConfigurationError):
        create_player("expert", settings=DEFAULT_SETTINGS[DifficultyLevel.BEGINNER], config=FAST)


def _history(kinds: list[MoveKind]) -> tuple[OpponentMove, ...]:
    return tuple(
        OpponentMove(
            turn=i + 1,
            kind=kind,
            target=Coord(i, 0) if kind is MoveKind.ATTACK else None,
        )
        for i, kind in enumerate(kinds)
    )


def test_opponent_model_starts_fresh_each_game(empty_board: BoardState) -> None:
    player = _player(DifficultyLevel.BEGINNER)
    first_game = _history([MoveKind.ATTACK] * 10)
    player.decide(AIContext(opponent_board=empty_board, turn=11, opponent_history=first_game))
    assert player.state.opponent.moves_seen == 10
    assert player.state.opponent.powerup_frequency == 0.0
    assert player.state.memory.detected_patterns

    player.finish_game(won=False)
    assert player.state.opponent.moves_seen == 0
    assert player.state.opponent.targeting_patterns == []
    assert player.state.memory.detected_patterns == []

    second_game = _history([MoveKind.ATTACK, MoveKind.POWERUP] * 3)
    player.decide(AIContext(opponent_board=empty_board, turn=7, opponent_history=second_game))
    opponent = player.state.opponent
    assert opponent.moves_seen == 6
    assert opponent.powerup_frequency == pytest.approx(0.5)
    assert opponent.attack_frequency == pytest.approx(0.5)


def test_memory_tracks_detected_patterns(empty_board: BoardState) -> None:
    player = _player(DifficultyLevel.BEGINNER)
    history = _history([MoveKind.ATTACK] * 6)
    player.decide(AIContext(opponent_board=empty_board, turn=7, opponent_history=history))
    kinds = [pattern.kind for pattern in player.state.memory.detected_patterns]
    assert PatternType.LINEAR in kinds
    assert len(kinds) == len(set(kinds))

    longer = history + _history([MoveKind.ATTACK] * 8)[6:]
    player.decide(AIContext(opponent_board=empty_board, turn=9, opponent_history=longer))
    linear = player.state.opponent.pattern(PatternType.LINEAR)
    remembered = [p for p in player.state.memory.detected_patterns if p.kind is PatternType.LINEAR]
    assert remembered == [linear]
    assert linear is not None and linear.confidence > 0.8
