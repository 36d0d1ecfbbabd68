"""Advanced tier: placement-density targeting, ability combos and hot-zone aware fleets."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from broadside.ai.analysis import (
    adjacent_hit_count,
    best_cells,
    completes_line,
    extrapolate_danger_zones,
    probability_grid,
    select_high_value_targets,
)
from broadside.ai.decision import Action, AIContext, AIDecision, DecisionType
from broadside.ai.policy import (
    AIState,
    attack,
    best_square,
    make_decision,
    ready_abilities,
    require_board,
    scan_place,
    to_positions,
)
from broadside.ai.settings import DifficultyLevel
from broadside.core.board import BoardState
from broadside.core.models import (
    AttackResult,
    Coord,
    Orientation,
    PowerupType,
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

DENSITY_DECAY = 0.9
DENSITY_ADJACENT = 2.0
DENSITY_AXIS = 1.5
DENSITY_REACH = 4
DENSITY_WEIGHT = 0.3
PATTERN_EDGE_BONUS = 0.2
COMBO_CHANCE = 0.6
EXPECTED_TURNS = 50
TOP_PLACEMENTS = 3

ABILITY_SYNERGIES: dict[str, tuple[str, ...]] = {
    "sonar_barrage": ("SonarPing", "Barrage"),
    "scout_precision": ("AirScout", "ArmorPiercing"),
    "silent_ambush": ("SilentRunning", "AllBigGuns"),
}


class AdvancedPolicy:
    """Arg-max over ``probability + 0.3 * density`` with deterministic tie-breaks."""

    level = DifficultyLevel.ADVANCED

    def __init__(self) -> None:
        self.density: np.ndarray | None = None

    def reset(self) -> None:
        self.density = None

    def decide(self, context: AIContext, state: AIState) -> AIDecision:
        board = require_board(context)
        analysis = state.ensure_analysis(board)
        edge_bonus = PATTERN_EDGE_BONUS if state.opponent.targeting_patterns else 0.0
        grid = probability_grid(board, state.memory, state.remaining_lengths(), edge_bonus=edge_bonus)
        analysis.probability_grid = grid
        threshold = 0.7 - 0.3 * board.shot_ratio()
        analysis.high_value_targets = select_high_value_targets(grid, board, threshold)
        analysis.danger_zones = extrapolate_danger_zones(context.opponent_history, board)
        density = self._update_density(board, state)

        ranking = self._rank_cells(board, state, grid + DENSITY_WEIGHT * density, analysis.danger_zones)
        if not ranking:
            raise RuntimeError("no un-hit cells left to target")
        target = ranking[0]
        factors = [
            f"probability:{grid[target.y, target.x]:.2f}",
            f"density:{density[target.y, target.x]:.2f}",
        ]
        if target in analysis.high_value_targets:
            factors.append("high_value_target")

        action = self._combo_action(context, state, target, factors)
        if action is None and context.available_powerups and self._should_use_powerup(context):
            action = self._powerup_action(context, state, board, grid, factors)
        if action is None:
            action = attack(target)
            factors.append("probability_attack")

        risk = 1.0 - float(grid[target.y, target.x])
        return make_decision(
            action,
            factors,
            risk,
            self._confidence(context, state, risk),
            alternatives=[attack(cell) for cell in ranking[1:4]],
            expected_outcome="Highest-density cell",
        )

    def observe(self, result: AttackResult, state: AIState) -> None:
        return None

    def _update_density(self, board: BoardState, state: AIState) -> np.ndarray:
        if self.density is None or self.density.shape != (board.height, board.width):
            self.density = np.zeros((board.height, board.width), dtype=np.float64)
        self.density *= DENSITY_DECAY
        axes_by_hit: dict[Coord, Orientation | None] = {}
        for ship in state.memory.active_ships():
            for coord in ship.positions:
                axes_by_hit[coord] = ship.orientation
        for coord in state.memory.unsunk_hits():
            axes_by_hit.setdefault(coord, None)

        for coord, axis in axes_by_hit.items():
            for dx, dy in ((0, -1), (0, 1), (-1, 0), (1, 0)):
                cell = Coord(coord.x + dx, coord.y + dy)
                if board.in_bounds(cell):
                    self.density[cell.y, cell.x] += DENSITY_ADJACENT
            directions = [(1, 0), (0, 1)]
            if axis is Orientation.HORIZONTAL:
                directions = [(1, 0)]
            elif axis is Orientation.VERTICAL:
                directions = [(0, 1)]
            for dx, dy in directions:
                for step in range(1, DENSITY_REACH + 1):
                    for sign in (-1, 1):
                        cell = Coord(coord.x + sign * dx * step, coord.y + sign * dy * step)
                        if board.in_bounds(cell):
                            self.density[cell.y, cell.x] += DENSITY_AXIS / step
        self.density[board.hits] = 0.0
        return self.density

    def _rank_cells(
        self,
        board: BoardState,
        state: AIState,
        scores: np.ndarray,
        danger_zones: Sequence[Coord],
    ) -> list[Coord]:
        hits = set(state.memory.unsunk_hits())
        danger = set(danger_zones)

        def tiebreak(cell: Coord) -> float:
            value = 2.0 * adjacent_hit_count(cell, hits)
            if completes_line(cell, hits):
                value += 3.0
            if cell not in danger:
                value += 1.0
            return value

        candidates = board.unhit_cells()
        return sorted(
            candidates,
            key=lambda c: (-round(float(scores[c.y, c.x]), 9), -tiebreak(c), c.y, c.x),
        )

    def _combo_action(
        self, context: AIContext, state: AIState, target: Coord, factors: list[str]
    ) -> Action | None:
        abilities = ready_abilities(context.own_ships)
        if not abilities:
            return None
        for combo, names in ABILITY_SYNERGIES.items():
            matching = [(ship, ability) for ship, ability in abilities if ability.name in names]
            if not matching:
                continue
            if state.rng.random() >= COMBO_CHANCE:
                return None
            ship, ability = matching[0]
            factors.append(f"combo:{combo}")
            return Action(
                type=DecisionType.ABILITY_USE, target=target, ability=ability.name, ship_id=ship.id
            )
        return None

    def _should_use_powerup(self, context: AIContext) -> bool:
        progress = context.turn / EXPECTED_TURNS
        ships = context.own_ships
        health = sum(ship.health for ship in ships) / len(ships) if ships else 1.0
        return 0.3 < progress < 0.8 or health < 0.5

    def _powerup_action(
        self,
        context: AIContext,
        state: AIState,
        board: BoardState,
        grid: np.ndarray,
        factors: list[str],
    ) -> Action | None:
        available = context.available_powerups
        if PowerupType.BARRAGE in available and len(state.memory.confirmed_ships) >= 2:
            cells = best_square(board, grid, 3)
            powerup = PowerupType.BARRAGE
        elif PowerupType.SONAR_PING in available and state.memory.accuracy() < 0.4:
            cells = best_cells(grid, board.unhit_cells(), 5)
            powerup = PowerupType.SONAR_PING
        elif PowerupType.RADAR_SCAN in available:
            cells = best_square(board, grid, 2)
            powerup = PowerupType.RADAR_SCAN
        else:
            return None
        if not cells:
            return None
        primary = max(cells, key=lambda c: (grid[c.y, c.x], -c.y, -c.x))
        factors.append(f"powerup:{powerup.value}")
        return Action(
            type=DecisionType.POWERUP_USE, target=primary, powerup=powerup, area=tuple(cells)
        )

    def _confidence(self, context: AIContext, state: AIState, risk: float) -> float:
        confidence = 0.7
        progress = context.turn / max(1, context.max_turns)
        if progress < 0.2:
            confidence *= 0.9
        elif progress > 0.7:
            confidence *= 1.1
        if state.memory.accuracy() > 0.5:
            confidence *= 1.1
        confidence *= 1.0 - 0.3 * risk
        return max(0.5, min(0.95, confidence))

    def place_fleet(
        self, ships: Sequence[ShipKind], state: AIState, board_size: int
    ) -> list[ShipPosition]:
        """Score every legal spot against projected enemy hot zones; draw from the top three."""
        hot = hot_zone_map(state, board_size)
        rules = PlacementRules(board_size=board_size, allow_touch=True)
        placed: list[PlacedShip] = []
        for kind in sorted(ships, key=lambda k: k.size, reverse=True):
            ship_id = f"{kind.value.lower()}_{len(placed) + 1}"
            scored: list[tuple[float, PlacedShip]] = []
            for origin, orientation in valid_placements(kind.size, placed, rules):
                candidate = create_placed_ship(ship_id, kind, origin, orientation)
                scored.append((placement_value(candidate, placed, hot, board_size), candidate))
            if not scored:
                fallback = scan_place(kind, placed, board_size)
                if fallback is None:
                    logger.warning("advanced_placement_failed kind=%s", kind)
                    continue
                placed.append(fallback)
                continue
            scored.sort(key=lambda item: -item[0])
            placed.append(state.rng.choice(scored[:TOP_PLACEMENTS])[1])
        return to_positions(placed)


def hot_zone_map(state: AIState, board_size: int) -> np.ndarray:
    """Where the opponent is expected to shoot: pattern examples, or a centre prior."""
    hot = np.zeros((board_size, board_size), dtype=np.float64)
    patterns = state.opponent.targeting_patterns
    if patterns:
        for pattern in patterns:
            for coord in pattern.examples:
                if 0 <= coord.x < board_size and 0 <= coord.y < board_size:
                    hot[coord.y, coord.x] += pattern.confidence
        return hot
    center = board_size // 2
    for dy in range(-2, 3):
        for dx in range(-2, 3):
            x, y = center + dx, center + dy
            if 0 <= x < board_size and 0 <= y < board_size:
                hot[y, x] = 0.5 / (abs(dx) + abs(dy) + 1)
    return hot


def placement_value(
    ship: PlacedShip, placed: Sequence[PlacedShip], hot: np.ndarray, board_size: int
) -> float:
    last = board_size - 1
    score = 100.0 - 10.0 * sum(float(hot[c.y, c.x]) for c in ship.cells)
    score += 3.0 * sum(1 for c in ship.cells if c.x in (0, last) or c.y in (0, last))
    if ship.length <= 3 and any(c.x in (0, last) and c.y in (0, last) for c in ship.cells):
        score += 5.0
    occupied = {cell for other in placed for cell in other.cells}
    touching = 0
    for cell in ship.cells:
        for dx, dy in ((0, -1), (0, 1), (-1, 0), (1, 0)):
            if Coord(cell.x + dx, cell.y + dy) in occupied:
                touching += 1
    return score - 2.0 * touching

