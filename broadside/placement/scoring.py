"""Placement quality scoring.

Each metric is an integer in ``[0, 100]``; the aggregate is a weighted blend::

    score = 0.3 * distribution + 0.25 * unpredictability + 0.25 * defense + 0.2 * efficiency

The metrics are heuristics. Efficiency in particular counts blocked neighbour cells
per ship cell, so a cell next to two ships is counted twice.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from broadside.core.models import BOARD_SIZE, Coord
from broadside.placement.domain import STANDARD_RULES, PlacedShip, PlacementRules

DISTRIBUTION_WEIGHT = 0.3
UNPREDICTABILITY_WEIGHT = 0.25
DEFENSE_WEIGHT = 0.25
EFFICIENCY_WEIGHT = 0.2


class Grade(StrEnum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"


@dataclass(frozen=True, slots=True)
class PlacementMetrics:
    distribution: int
    unpredictability: int
    defense: int
    efficiency: int


@dataclass(frozen=True, slots=True)
class PlacementQuality:
    """Aggregate score, letter grade and component metrics."""

    score: int
    grade: Grade
    metrics: PlacementMetrics


def letter_grade(score: float) -> Grade:
    if score >= 90:
        return Grade.A
    if score >= 80:
        return Grade.B
    if score >= 70:
        return Grade.C
    return Grade.D


def score_placement(
    placed_ships: Sequence[PlacedShip], rules: PlacementRules = STANDARD_RULES
) -> PlacementQuality:
    """Score a fleet layout."""
    size = rules.board_size
    metrics = PlacementMetrics(
        distribution=distribution_score(placed_ships, size),
        unpredictability=unpredictability_score(placed_ships, size),
        defense=defense_score(placed_ships, size),
        efficiency=efficiency_score(placed_ships, size),
    )
    score = round(
        metrics.distribution * DISTRIBUTION_WEIGHT
        + metrics.unpredictability * UNPREDICTABILITY_WEIGHT
        + metrics.defense * DEFENSE_WEIGHT
        + metrics.efficiency * EFFICIENCY_WEIGHT
    )
    return PlacementQuality(score=score, grade=letter_grade(score), metrics=metrics)


def distribution_score(placed_ships: Sequence[PlacedShip], board_size: int = BOARD_SIZE) -> int:
    """Quadrant-occupancy evenness normalised against the worst case."""
    if not placed_ships:
        return 0
    half = board_size / 2
    quadrants = [0, 0, 0, 0]
    for ship in placed_ships:
        cx, cy = _center(ship.cells)
        quadrants[(1 if cy >= half else 0) * 2 + (1 if cx >= half else 0)] += 1

    total = len(placed_ships)
    average = total / 4
    variance = sum((count - average) ** 2 for count in quadrants) / 4
    max_variance = total**2 / 4
    return max(0, round(100 - (variance / max_variance) * 100))


def unpredictability_score(
    placed_ships: Sequence[PlacedShip], board_size: int = BOARD_SIZE
) -> int:
    """Start from 100 and subtract penalties for recognisable layouts."""
    if len(placed_ships) < 2:
        return 50
    score = 100.0
    score -= _linear_alignment(placed_ships) * 20
    score -= _edge_bias(placed_ships, board_size) * 15
    score -= _symmetry(placed_ships, board_size) * 10
    score -= _clustering(placed_ships) * 15
    return max(0, round(score))


def defense_score(placed_ships: Sequence[PlacedShip], board_size: int = BOARD_SIZE) -> int:
    if not placed_ships:
        return 0
    score = 0.0
    for ship in placed_ships:
        if ship.length >= 4:
            score += max(0.0, 30 - _min_edge_distance(ship.cells, board_size) * 10)
        if ship.length <= 2:
            score += max(0.0, 20 - _mean_center_distance(ship.cells, board_size) * 5)
        score += _concealment_bonus(ship, board_size)
    return max(0, min(100, round(score / len(placed_ships))))


def efficiency_score(placed_ships: Sequence[PlacedShip], board_size: int = BOARD_SIZE) -> int:
    if not placed_ships:
        return 0
    used = sum(ship.length for ship in placed_ships)
    efficiency = used / (board_size * board_size) * 100
    return max(0, round(efficiency - _spacing_penalty(placed_ships, board_size)))


def score_ship_placement(
    ship: PlacedShip, existing_ships: Sequence[PlacedShip], board_size: int = BOARD_SIZE
) -> int:
    """Score one ship in isolation against the already placed ones."""
    score = 50.0
    if ship.length >= 4:
        score += max(0.0, 20 - _min_edge_distance(ship.cells, board_size) * 5)
    else:
        score += max(0.0, 20 - _mean_center_distance(ship.cells, board_size) * 3)
    score += min(20.0, _min_distance_to_others(ship, existing_ships) * 4)
    if _is_predictable_position(ship, board_size):
        score -= 15
    return max(0, min(100, round(score)))


def _center(cells: Sequence[Coord]) -> tuple[float, float]:
    return (
        sum(cell.x for cell in cells) / len(cells),
        sum(cell.y for cell in cells) / len(cells),
    )


def _linear_alignment(placed_ships: Sequence[PlacedShip]) -> float:
    patterns = 0
    for i, first in enumerate(placed_ships):
        for second in placed_ships[i + 1 :]:
            second_rows = {cell.y for cell in second.cells}
            second_cols = {cell.x for cell in second.cells}
            same_row = all(cell.y in second_rows for cell in first.cells)
            same_col = all(cell.x in second_cols for cell in first.cells)
            if same_row or same_col:
                patterns += 1
    return min(1.0, patterns / len(placed_ships))


def _edge_bias(placed_ships: Sequence[PlacedShip], board_size: int) -> float:
    last = board_size - 1
    on_edge = sum(
        1
        for ship in placed_ships
        if any(cell.x in (0, last) or cell.y in (0, last) for cell in ship.cells)
    )
    # Penalty starts once more than 40% of ships touch the border.
    return max(0.0, on_edge / len(placed_ships) - 0.4) * 2


def _symmetry(placed_ships: Sequence[PlacedShip], board_size: int) -> float:
    mid = (board_size - 1) / 2
    centers = {ship.id: _center(ship.cells) for ship in placed_ships}
    mirrored = 0
    for ship in placed_ships:
        sx, sy = centers[ship.id]
        for other in placed_ships:
            if other.id == ship.id:
                continue
            ox, oy = centers[other.id]
            horizontal = math.isclose(abs(sx - mid), abs(ox - mid)) and abs(sy - oy) < 1
            vertical = math.isclose(abs(sy - mid), abs(oy - mid)) and abs(sx - ox) < 1
            if horizontal or vertical:
                mirrored += 1
                break
    return min(1.0, mirrored / len(placed_ships))


def _clustering(placed_ships: Sequence[PlacedShip]) -> float:
    clustered = 0
    for ship in placed_ships:
        nearby = 0
        for other in placed_ships:
            if other.id == ship.id:
                continue
            if any(
                abs(a.x - b.x) <= 2 and abs(a.y - b.y) <= 2
                for a in ship.cells
                for b in other.cells
            ):
                nearby += 1
        if nearby > 1:
            clustered += 1
    return min(1.0, clustered / len(placed_ships))


def _min_edge_distance(cells: Sequence[Coord], board_size: int) -> int:
    last = board_size - 1
    return min(min(cell.x, last - cell.x, cell.y, last - cell.y) for cell in cells)


def _mean_center_distance(cells: Sequence[Coord], board_size: int) -> float:
    mid = (board_size - 1) / 2
    return sum(math.hypot(cell.x - mid, cell.y - mid) for cell in cells) / len(cells)


def _concealment_bonus(ship: PlacedShip, board_size: int) -> float:
    last = board_size - 1
    bonus = 0.0
    for cx, cy in ((0, 0), (last, 0), (0, last), (last, last)):
        if any(abs(cell.x - cx) <= 1 and abs(cell.y - cy) <= 1 for cell in ship.cells):
            bonus += 5
    mid = last / 2
    if any(abs(cell.x - mid) <= 1 and abs(cell.y - mid) <= 1 for cell in ship.cells):
        bonus -= 10
    return bonus


def _spacing_penalty(placed_ships: Sequence[PlacedShip], board_size: int) -> float:
    occupied = {cell for ship in placed_ships for cell in ship.cells}
    wasted = 0
    for ship in placed_ships:
        for cell in ship.cells:
            for dx in (-1, 0, 1):
                for dy in (-1, 0, 1):
                    if dx == 0 and dy == 0:
                        continue
                    x = cell.x + dx
                    y = cell.y + dy
                    if 0 <= x < board_size and 0 <= y < board_size and Coord(x, y) not in occupied:
                        wasted += 1
    return min(50.0, wasted / (board_size * board_size) * 100)


def _min_distance_to_others(ship: PlacedShip, others: Sequence[PlacedShip]) -> float:
    distances = [
        math.hypot(a.x - b.x, a.y - b.y)
        for other in others
        if other.id != ship.id
        for a in ship.cells
        for b in other.cells
    ]
    return min(distances) if distances else 10.0


def _is_predictable_position(ship: PlacedShip, board_size: int) -> bool:
    last = board_size - 1
    if all(cell.y == 0 for cell in ship.cells) or all(cell.y == last for cell in ship.cells):
        return True
    if all(cell.x == 0 for cell in ship.cells) or all(cell.x == last for cell in ship.cells):
        return True
    mid = last / 2
    return all(abs(cell.x - mid) <= 0.5 and abs(cell.y - mid) <= 0.5 for cell in ship.cells)
