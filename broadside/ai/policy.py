"""Decision policy contract, per-player AI state and helpers shared by the tiers."""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

import numpy as np

from broadside.ai.analysis import BoardAnalysis, update_heat_map
from broadside.ai.decision import (
    Action,
    AIContext,
    AIDecision,
    DecisionType,
    OpponentMove,
    Reasoning,
)
from broadside.ai.memory import AIMemory
from broadside.ai.opponent import OpponentModel
from broadside.ai.settings import DifficultyLevel, DifficultySettings
from broadside.ai.traits import BehaviorTraits
from broadside.core.board import BoardState
from broadside.core.models import (
    DEFAULT_SHIP_LENGTHS,
    Ability,
    AttackResult,
    Coord,
    Orientation,
    Ship,
    ShipKind,
    ShipPosition,
)
from broadside.placement.domain import (
    PlacedShip,
    PlacementRules,
    create_placed_ship,
    valid_placements,
)

logger = logging.getLogger(__name__)

TIER_CONFIDENCE: dict[DifficultyLevel, float] = {
    DifficultyLevel.BEGINNER: 0.7,
    DifficultyLevel.INTERMEDIATE: 0.85,
    DifficultyLevel.ADVANCED: 0.95,
    DifficultyLevel.EXPERT: 1.0,
}


@dataclass(slots=True)
class AIState:
    """Everything one AI instance knows; owned by a single ``AIPlayer``."""

    settings: DifficultySettings
    traits: BehaviorTraits
    rng: random.Random
    memory: AIMemory = field(default_factory=AIMemory)
    opponent: OpponentModel = field(default_factory=OpponentModel)
    analysis: BoardAnalysis | None = None
    fleet_lengths: tuple[int, ...] = DEFAULT_SHIP_LENGTHS
    turn: int = 0
    games_played: int = 0
    wins: int = 0
    accuracy_history: list[float] = field(default_factory=list)

    @property
    def level(self) -> DifficultyLevel:
        return self.settings.level

    @property
    def win_rate(self) -> float:
        return self.wins / self.games_played if self.games_played else 0.0

    def observe_opponent(self, history: Sequence[OpponentMove], board_size: int) -> None:
        self.opponent.observe(history, board_size)
        self.memory.note_patterns(self.opponent.targeting_patterns)

    def ensure_analysis(self, board: BoardState) -> BoardAnalysis:
        if self.analysis is None or self.analysis.heat_map.shape != (board.height, board.width):
            self.analysis = BoardAnalysis.empty(board.width, board.height)
        return self.analysis

    def remaining_lengths(self) -> list[int]:
        return self.memory.remaining_ship_lengths(self.fleet_lengths)

    def record(self, result: AttackResult) -> None:
        """Fold one resolved attack into memory and the heat map."""
        ship = self.memory.record(result, self.turn)
        if self.analysis is not None:
            axis = ship.orientation if ship is not None else None
            update_heat_map(self.analysis.heat_map, result, axis)

    def reset_game(self) -> None:
        self.memory = AIMemory()
        self.opponent = OpponentModel()
        self.analysis = None
        self.turn = 0


class DecisionPolicy(Protocol):
    """One difficulty tier's turn logic."""

    level: DifficultyLevel

    def decide(self, context: AIContext, state: AIState) -> AIDecision:
        """Choose this turn's move; only un-hit cells may be targeted."""
        ...

    def observe(self, result: AttackResult, state: AIState) -> None:
        """Update tier-private state after memory has recorded ``result``."""
        ...

    def place_fleet(
        self, ships: Sequence[ShipKind], state: AIState, board_size: int
    ) -> list[ShipPosition]:
        ...

    def reset(self) -> None:
        ...


def decision_confidence(factors: Sequence[str], risk: float, level: DifficultyLevel) -> float:
    """Confidence from the number of supporting factors and the move risk."""
    confidence = 0.5 + min(0.3, 0.1 * max(0, len(factors) - 3))
    confidence -= 0.2 * risk
    confidence *= TIER_CONFIDENCE[level]
    return max(0.1, min(1.0, confidence))


def require_board(context: AIContext) -> BoardState:
    board = context.opponent_board
    if board is None:
        raise ValueError("AIContext.opponent_board is required to decide a move")
    return board


def attack(target: Coord) -> Action:
    return Action(type=DecisionType.ATTACK, target=target)


def make_decision(
    action: Action,
    factors: Iterable[str],
    risk: float,
    confidence: float,
    *,
    alternatives: Iterable[Action] = (),
    expected_outcome: str = "",
) -> AIDecision:
    return AIDecision(
        type=action.type,
        action=action,
        confidence=max(0.0, min(1.0, confidence)),
        reasoning=Reasoning(
            factors=tuple(factors), risk=max(0.0, min(1.0, risk)), expected_outcome=expected_outcome
        ),
        alternatives=tuple(alternatives),
    )


def ready_abilities(ships: Iterable[Ship]) -> list[tuple[Ship, Ability]]:
    """Usable abilities on ships still afloat."""
    return [
        (ship, ability)
        for ship in ships
        if not ship.is_sunk
        for ability in ship.ready_abilities()
    ]


def square_area(board: BoardState, top_left: Coord, size: int) -> list[Coord]:
    """Un-hit in-bounds cells of a ``size`` x ``size`` square."""
    cells: list[Coord] = []
    for y in range(top_left.y, top_left.y + size):
        for x in range(top_left.x, top_left.x + size):
            cell = Coord(x, y)
            if board.in_bounds(cell) and not board.is_hit(cell):
                cells.append(cell)
    return cells


def best_square(board: BoardState, grid: np.ndarray, size: int) -> list[Coord]:
    """Un-hit cells of the ``size`` square with the largest summed grid value."""
    best: list[Coord] = []
    best_value = -1.0
    for y in range(max(1, board.height - size + 1)):
        for x in range(max(1, board.width - size + 1)):
            cells = square_area(board, Coord(x, y), size)
            value = sum(float(grid[c.y, c.x]) for c in cells)
            if cells and value > best_value:
                best, best_value = cells, value
    return best


def to_positions(placed: Iterable[PlacedShip]) -> list[ShipPosition]:
    return [
        ShipPosition(kind=ship.kind, origin=ship.origin, orientation=ship.orientation, cells=ship.cells)
        for ship in placed
    ]


def scan_place(
    kind: ShipKind, placed: Sequence[PlacedShip], board_size: int, *, allow_touch: bool = True
) -> PlacedShip | None:
    """First legal row-major placement, used when randomized placement gives up."""
    rules = PlacementRules(board_size=board_size, allow_touch=allow_touch)
    options = valid_placements(kind.size, placed, rules)
    if not options:
        return None
    origin, orientation = options[0]
    return create_placed_ship(f"{kind.value.lower()}_{len(placed) + 1}", kind, origin, orientation)


def random_orientation(rng: random.Random, horizontal_bias: float = 0.5) -> Orientation:
    return Orientation.HORIZONTAL if rng.random() < horizontal_bias else Orientation.VERTICAL
