"""Intermediate tier: hunt/target state machine over a shuffled parity sweep."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import StrEnum

from broadside.ai.analysis import adjacent_hit_count, checkerboard_cells
from broadside.ai.decision import Action, AIContext, AIDecision, DecisionType
from broadside.ai.memory import infer_orientation
from broadside.ai.policy import (
    AIState,
    attack,
    decision_confidence,
    make_decision,
    random_orientation,
    ready_abilities,
    require_board,
    scan_place,
    square_area,
    to_positions,
)
from broadside.ai.settings import DifficultyLevel
from broadside.core.board import BoardState
from broadside.core.models import (
    BOARD_SIZE,
    AttackResult,
    Coord,
    Orientation,
    PowerupType,
    ShipKind,
    ShipPosition,
    ShotResult,
    orthogonal_neighbors,
)
from broadside.placement.domain import PlacedShip, PlacementRules, can_place, create_placed_ship

logger = logging.getLogger(__name__)

PLACEMENT_BUFFER = 1
PLACEMENT_ATTEMPTS = 200
FALLBACK_ATTEMPTS = 100
HORIZONTAL_BIAS = 0.6
EDGE_PREFERENCE = 0.7
EDGE_MIN_SIZE = 4
ABILITY_ROLL = 0.4
POWERUP_RANDOM = 0.3
RISK = 0.3


class TargetMode(StrEnum):
    HUNT = "hunt"
    TARGET = "target"
    FINISH = "finish"


class IntermediatePolicy:
    """Hunt with parity, follow up hits, and finish partially found ships."""

    level = DifficultyLevel.INTERMEDIATE

    def __init__(self, buffer: int = PLACEMENT_BUFFER) -> None:
        self.buffer = buffer
        self.mode = TargetMode.HUNT
        self.target_queue: list[Coord] = []
        self.orientation: Orientation | None = None
        self.last_hit: Coord | None = None
        self._hunt_cells: list[Coord] | None = None
        self._size: tuple[int, int] | None = None

    def reset(self) -> None:
        self.mode = TargetMode.HUNT
        self.target_queue.clear()
        self.orientation = None
        self.last_hit = None
        self._hunt_cells = None
        self._size = None

    def decide(self, context: AIContext, state: AIState) -> AIDecision:
        board = require_board(context)
        if self._size != (board.width, board.height):
            self._size = (board.width, board.height)
            self._hunt_cells = checkerboard_cells(board.width, board.height)
            state.rng.shuffle(self._hunt_cells)

        target = self._next_target(board, state)
        factors = [f"mode:{self.mode.value}"]
        factors.append("following_up_hit" if self.mode is not TargetMode.HUNT else "systematic_hunt")

        action = self._maybe_ability(context, state, target, factors)
        if action is None:
            action = self._maybe_powerup(context, state, board, target, factors)
        if action is None:
            action = attack(target)
            factors.append("standard_attack")

        chasing = self.mode is not TargetMode.HUNT
        confidence = decision_confidence(factors, RISK, self.level)
        if chasing:
            confidence = max(confidence, 0.7)
        return make_decision(
            action,
            factors,
            RISK,
            confidence,
            expected_outcome="Likely hit on damaged ship" if chasing else "Searching for ships",
        )

    def _next_target(self, board: BoardState, state: AIState) -> Coord:
        if self.mode is not TargetMode.HUNT:
            self.target_queue = [c for c in self.target_queue if not board.is_hit(c)]
            if not self.target_queue:
                self._refill_from_unsunk(board, state)
            if self.target_queue:
                return self._pop_best_candidate()
            logger.debug("intermediate_mode_change from=%s to=hunt", self.mode)
            self.mode = TargetMode.HUNT
            self.orientation = None

        while self._hunt_cells:
            cell = self._hunt_cells.pop()
            if not board.is_hit(cell):
                return cell
        return self._weighted_scan(board, state)

    def _pop_best_candidate(self) -> Coord:
        best_index = 0
        best_priority = -1.0
        for index, cell in enumerate(self.target_queue):
            priority = 1.0
            if self.orientation is not None and self.last_hit is not None:
                if self.orientation is Orientation.HORIZONTAL and cell.y == self.last_hit.y:
                    priority += 2.0
                elif self.orientation is Orientation.VERTICAL and cell.x == self.last_hit.x:
                    priority += 2.0
            if priority > best_priority:
                best_index, best_priority = index, priority
        return self.target_queue.pop(best_index)

    def _refill_from_unsunk(self, board: BoardState, state: AIState) -> None:
        for hit in state.memory.unsunk_hits():
            for cell in orthogonal_neighbors(hit, board.width, board.height):
                if not board.is_hit(cell) and cell not in self.target_queue:
                    self.target_queue.append(cell)
        self._prune_by_orientation(state)

    def _weighted_scan(self, board: BoardState, state: AIState) -> Coord:
        candidates = board.unhit_cells()
        if not candidates:
            raise RuntimeError("no un-hit cells left to target")
        hits = set(state.memory.unsunk_hits())
        lengths = state.remaining_lengths()
        best = candidates[0]
        best_weight = -1.0
        for cell in candidates:
            weight = 1.0 + 0.5 * adjacent_hit_count(cell, hits)
            weight += 0.2 * _fitting_placements(board, cell, lengths)
            if weight > best_weight:
                best, best_weight = cell, weight
        return best

    def _maybe_ability(
        self, context: AIContext, state: AIState, target: Coord, factors: list[str]
    ) -> Action | None:
        abilities = ready_abilities(context.own_ships)
        if not abilities or state.rng.random() >= ABILITY_ROLL:
            return None
        damaged = sum(1 for ship in context.own_ships if ship.hits_taken > 0 and not ship.is_sunk)
        priority = 0.5 + (0.3 if self.mode is TargetMode.TARGET else 0.0) + 0.1 * damaged
        if priority <= 0.5:
            return None
        ship, ability = abilities[0]
        factors.append(f"ability:{ability.name}")
        return Action(
            type=DecisionType.ABILITY_USE, target=target, ability=ability.name, ship_id=ship.id
        )

    def _maybe_powerup(
        self,
        context: AIContext,
        state: AIState,
        board: BoardState,
        target: Coord,
        factors: list[str],
    ) -> Action | None:
        available = context.available_powerups
        if not available or state.rng.random() < state.traits.powerup_conservation:
            return None
        powerup: PowerupType | None = None
        if self.mode is TargetMode.TARGET and PowerupType.SONAR_PING in available:
            powerup = PowerupType.SONAR_PING
        elif len(state.memory.confirmed_ships) >= 2 and PowerupType.BARRAGE in available:
            powerup = PowerupType.BARRAGE
        elif state.rng.random() < POWERUP_RANDOM:
            powerup = state.rng.choice(available)
        if powerup is None:
            return None
        area: tuple[Coord, ...] = ()
        if powerup is PowerupType.BARRAGE:
            area = tuple(square_area(board, Coord(target.x - 1, target.y - 1), 3))
        factors.append(f"powerup:{powerup.value}")
        return Action(type=DecisionType.POWERUP_USE, target=target, powerup=powerup, area=area)

    def observe(self, result: AttackResult, state: AIState) -> None:
        coord = result.coord
        if coord in self.target_queue:
            self.target_queue.remove(coord)

        if result.result is ShotResult.SUNK:
            self.target_queue.clear()
            self.orientation = None
            self.last_hit = None
            self.mode = TargetMode.FINISH if state.memory.unsunk_hits() else TargetMode.HUNT
            logger.debug("intermediate_ship_sunk next_mode=%s", self.mode)
            return

        if result.result is ShotResult.HIT:
            self.mode = TargetMode.TARGET
            self.last_hit = coord
            width, height = self._size or (BOARD_SIZE, BOARD_SIZE)
            for cell in orthogonal_neighbors(coord, width, height):
                if not state.memory.has_fired_at(cell) and cell not in self.target_queue:
                    self.target_queue.append(cell)
            self.orientation = self._infer_axis(result, state)
            self._prune_by_orientation(state)
            return

        if self.mode is TargetMode.TARGET:
            self._prune_by_orientation(state)

    def _infer_axis(self, result: AttackResult, state: AIState) -> Orientation | None:
        if result.ship_id is not None:
            ship = state.memory.confirmed_ships.get(result.ship_id)
            return ship.orientation if ship is not None else None
        return infer_orientation(state.memory.unsunk_hits())

    def _prune_by_orientation(self, state: AIState) -> None:
        if self.orientation is None or self.last_hit is None:
            return
        if self.orientation is Orientation.HORIZONTAL:
            kept = [c for c in self.target_queue if c.y == self.last_hit.y]
        else:
            kept = [c for c in self.target_queue if c.x == self.last_hit.x]
        self.target_queue = kept

    def place_fleet(
        self, ships: Sequence[ShipKind], state: AIState, board_size: int
    ) -> list[ShipPosition]:
        """Largest ships first with spacing, big ships hugging edges; relax spacing if stuck."""
        rng = state.rng
        spaced = PlacementRules(board_size=board_size, allow_touch=False, min_distance=self.buffer)
        touching = PlacementRules(board_size=board_size, allow_touch=True)
        placed: list[PlacedShip] = []
        for kind in sorted(ships, key=lambda k: k.size, reverse=True):
            ship = self._random_fit(kind, placed, spaced, PLACEMENT_ATTEMPTS, state)
            if ship is None:
                ship = self._random_fit(kind, placed, touching, FALLBACK_ATTEMPTS, state)
            if ship is None:
                ship = scan_place(kind, placed, board_size)
            if ship is None:
                logger.warning("intermediate_placement_failed kind=%s", kind)
                continue
            placed.append(ship)
        rng.shuffle(placed)
        return to_positions(placed)

    def _random_fit(
        self,
        kind: ShipKind,
        placed: list[PlacedShip],
        rules: PlacementRules,
        attempts: int,
        state: AIState,
    ) -> PlacedShip | None:
        rng = state.rng
        size = rules.board_size
        for _ in range(attempts):
            orientation = random_orientation(rng, HORIZONTAL_BIAS)
            max_x = size - (kind.size if orientation is Orientation.HORIZONTAL else 1)
            max_y = size - (kind.size if orientation is Orientation.VERTICAL else 1)
            if max_x < 0 or max_y < 0:
                return None
            x, y = rng.randint(0, max_x), rng.randint(0, max_y)
            if kind.size >= EDGE_MIN_SIZE and rng.random() < EDGE_PREFERENCE:
                if orientation is Orientation.HORIZONTAL:
                    y = rng.choice((0, size - 1))
                else:
                    x = rng.choice((0, size - 1))
            ship = create_placed_ship(
                f"{kind.value.lower()}_{len(placed) + 1}", kind, Coord(x, y), orientation
            )
            if can_place(ship.cells, placed, rules).valid:
                return ship
        return None


def _fitting_placements(board: BoardState, cell: Coord, lengths: Sequence[int]) -> int:
    """Count ship lengths and axes that could still cover ``cell``."""
    count = 0
    for length in set(lengths):
        for dx, dy in ((1, 0), (0, 1)):
            for offset in range(length):
                start = Coord(cell.x - dx * offset, cell.y - dy * offset)
                span = [Coord(start.x + dx * i, start.y + dy * i) for i in range(length)]
                if all(board.in_bounds(c) and not board.is_hit(c) for c in span):
                    count += 1
                    break
    return count
