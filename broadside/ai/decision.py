"""Decision contract value types: turn context in, decision out."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from broadside.core.board import BoardState
from broadside.core.models import Coord, PowerupType, Ship, ShipPosition


class DecisionType(StrEnum):
    ATTACK = "attack"
    ABILITY_USE = "ability_use"
    POWERUP_USE = "powerup_use"
    SHIP_PLACEMENT = "ship_placement"


class MoveKind(StrEnum):
    """Kind of move observed from the opponent."""

    ATTACK = "attack"
    ABILITY = "ability"
    POWERUP = "powerup"


@dataclass(frozen=True, slots=True)
class OpponentMove:
    """One resolved opponent move as reported by the orchestrator."""

    turn: int
    kind: MoveKind = MoveKind.ATTACK
    target: Coord | None = None
    hit: bool = False


@dataclass(frozen=True, slots=True)
class Action:
    """Concrete move chosen by a policy.

    ``target`` is always the primary attacked cell; ``area`` lists the extra cells
    swept by area powerups such as a barrage.
    """

    type: DecisionType
    target: Coord | None = None
    ability: str | None = None
    ship_id: str | None = None
    powerup: PowerupType | None = None
    area: tuple[Coord, ...] = ()
    placement: tuple[ShipPosition, ...] = ()

    def targeted_cells(self) -> tuple[Coord, ...]:
        cells = (self.target,) if self.target is not None else ()
        return cells + tuple(cell for cell in self.area if cell != self.target)


@dataclass(frozen=True, slots=True)
class Reasoning:
    """Ordered decision factors and the estimated risk of the move."""

    factors: tuple[str, ...]
    risk: float
    expected_outcome: str = ""


@dataclass(frozen=True, slots=True)
class AIDecision:
    """Immutable per-turn decision."""

    type: DecisionType
    action: Action
    confidence: float
    reasoning: Reasoning
    alternatives: tuple[Action, ...] = ()
    turn: int = 0
    thinking_ms: int = 0


@dataclass(frozen=True, slots=True)
class AIContext:
    """Read-only snapshot handed to ``decide`` each turn.

    ``opponent_board`` is the opponent's board as seen by this AI; only its
    hit markers are consulted. ``opponent_history`` lists the opponent's moves
    against this AI, oldest first.
    """

    opponent_board: BoardState
    turn: int
    own_ships: tuple[Ship, ...] = ()
    available_powerups: tuple[PowerupType, ...] = ()
    opponent_history: tuple[OpponentMove, ...] = field(default_factory=tuple)
    max_turns: int = 50
