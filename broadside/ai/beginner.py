"""Beginner tier: random targeting with a short recency buffer."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from broadside.ai.decision import Action, AIContext, AIDecision, DecisionType
from broadside.ai.policy import (
    AIState,
    attack,
    decision_confidence,
    make_decision,
    random_orientation,
    ready_abilities,
    require_board,
    to_positions,
)
from broadside.ai.settings import DifficultyLevel
from broadside.core.board import BoardState
from broadside.core.models import AttackResult, Coord, Orientation, ShipKind, ShipPosition
from broadside.placement.domain import PlacedShip, PlacementRules, can_place, create_placed_ship

logger = logging.getLogger(__name__)

RECENT_WINDOW = 5
CENTER_BIAS = 0.3
CENTER_RADIUS = 2
PLACEMENT_ATTEMPTS = 100
ABILITY_CHANCE = 0.2
POWERUP_CHANCE = 0.15
RISK = 0.5


class BeginnerPolicy:
    """Stateless random shooter; places ships anywhere they fit."""

    level = DifficultyLevel.BEGINNER

    def decide(self, context: AIContext, state: AIState) -> AIDecision:
        board = require_board(context)
        rng = state.rng
        target = self._pick_target(board, state)
        factors = ["random_target"]

        abilities = ready_abilities(context.own_ships)
        if abilities and rng.random() < ABILITY_CHANCE:
            ship, ability = rng.choice(abilities)
            action = Action(
                type=DecisionType.ABILITY_USE, target=target, ability=ability.name, ship_id=ship.id
            )
            factors.append(f"ability:{ability.name}")
        elif context.available_powerups and rng.random() < POWERUP_CHANCE:
            powerup = rng.choice(context.available_powerups)
            action = Action(type=DecisionType.POWERUP_USE, target=target, powerup=powerup)
            factors.append(f"powerup:{powerup.value}")
        else:
            action = attack(target)

        return make_decision(
            action,
            factors,
            RISK,
            decision_confidence(factors, RISK, self.level),
            expected_outcome="Random shot",
        )

    def _pick_target(self, board: BoardState, state: AIState) -> Coord:
        candidates = board.unhit_cells()
        if not candidates:
            raise RuntimeError("no un-hit cells left to target")
        recent = set(state.memory.shots_fired[-RECENT_WINDOW:])
        pool = [cell for cell in candidates if cell not in recent] or candidates
        if state.rng.random() < CENTER_BIAS:
            half_w, half_h = board.width / 2, board.height / 2
            central = [
                cell
                for cell in pool
                if abs(cell.x - half_w) <= CENTER_RADIUS and abs(cell.y - half_h) <= CENTER_RADIUS
            ]
            pool = central or pool
        return state.rng.choice(pool)

    def observe(self, result: AttackResult, state: AIState) -> None:
        return None

    def place_fleet(
        self, ships: Sequence[ShipKind], state: AIState, board_size: int
    ) -> list[ShipPosition]:
        """Random placement with overlap-only checks; ships that never fit are skipped."""
        rng = state.rng
        rules = PlacementRules(board_size=board_size, allow_touch=True)
        placed: list[PlacedShip] = []
        for kind in ships:
            for _ in range(PLACEMENT_ATTEMPTS):
                orientation = random_orientation(rng)
                span_x = board_size - (kind.size - 1 if orientation is Orientation.HORIZONTAL else 0)
                span_y = board_size - (kind.size - 1 if orientation is Orientation.VERTICAL else 0)
                if span_x <= 0 or span_y <= 0:
                    continue
                origin = Coord(rng.randrange(span_x), rng.randrange(span_y))
                ship = create_placed_ship(
                    f"{kind.value.lower()}_{len(placed) + 1}", kind, origin, orientation
                )
                if can_place(ship.cells, placed, rules).valid:
                    placed.append(ship)
                    break
            else:
                logger.warning("beginner_placement_skipped kind=%s attempts=%d", kind, PLACEMENT_ATTEMPTS)
        return to_positions(placed)

    def reset(self) -> None:
        return None
