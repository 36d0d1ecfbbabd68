"""Pure ship placement validation and footprint helpers."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum

from broadside.core.models import (
    BOARD_SIZE,
    DEFAULT_FLEET,
    Coord,
    Orientation,
    ShipKind,
    cells_for,
)


class ValidationReason(StrEnum):
    """Why a candidate placement was rejected."""

    OUT_OF_BOUNDS = "out_of_bounds"
    COLLISION = "collision"
    TOO_CLOSE = "too_close"
    INVALID_CELLS = "invalid_cells"


@dataclass(frozen=True, slots=True)
class PlacementRules:
    """Board size and spacing rules for placement."""

    board_size: int = BOARD_SIZE
    allow_touch: bool = False
    min_distance: int = 1

    def __post_init__(self) -> None:
        if self.board_size <= 0:
            raise ValueError("board_size must be positive.")
        if self.min_distance < 0:
            raise ValueError("min_distance must be non-negative.")


STANDARD_RULES = PlacementRules()


@dataclass(frozen=True, slots=True)
class PlacedShip:
    """Ship committed to the placement board."""

    id: str
    kind: ShipKind
    origin: Coord
    orientation: Orientation
    cells: tuple[Coord, ...]

    @property
    def length(self) -> int:
        return len(self.cells)


@dataclass(frozen=True, slots=True)
class PlacementValidation:
    """Outcome of a placement check."""

    valid: bool
    reason: ValidationReason | None = None
    message: str = ""
    problem_cells: tuple[Coord, ...] = ()


def cells_for_ship(origin: Coord, orientation: Orientation, length: int) -> tuple[Coord, ...]:
    """Compute cells a ship of ``length`` would occupy."""
    return cells_for(origin, orientation, length)


def in_bounds(cells: Iterable[Coord], board_size: int = BOARD_SIZE) -> bool:
    return all(0 <= cell.x < board_size and 0 <= cell.y < board_size for cell in cells)


def collides(cells_a: Iterable[Coord], cells_b: Iterable[Coord]) -> bool:
    return not set(cells_a).isdisjoint(cells_b)


def has_adjacency(
    cells: Iterable[Coord],
    placed_ships: Sequence[PlacedShip],
    board_size: int = BOARD_SIZE,
    distance: int = 1,
) -> bool:
    """Return whether any cell lies within ``distance`` (Chebyshev) of a placed ship."""
    occupied = {cell for ship in placed_ships for cell in ship.cells}
    if not occupied:
        return False
    for cell in cells:
        for dx in range(-distance, distance + 1):
            for dy in range(-distance, distance + 1):
                if dx == 0 and dy == 0:
                    continue
                x = cell.x + dx
                y = cell.y + dy
                if not (0 <= x < board_size and 0 <= y < board_size):
                    continue
                if Coord(x, y) in occupied:
                    return True
    return False


def can_place(
    candidate_cells: Sequence[Coord],
    placed_ships: Sequence[PlacedShip],
    rules: PlacementRules = STANDARD_RULES,
) -> PlacementValidation:
    """Validate candidate cells against bounds, collisions and spacing."""
    if not candidate_cells:
        return PlacementValidation(
            valid=False,
            reason=ValidationReason.INVALID_CELLS,
            message="No cells provided for placement.",
        )

    size = rules.board_size
    if not in_bounds(candidate_cells, size):
        outside = tuple(
            cell
            for cell in candidate_cells
            if not (0 <= cell.x < size and 0 <= cell.y < size)
        )
        return PlacementValidation(
            valid=False,
            reason=ValidationReason.OUT_OF_BOUNDS,
            message="Ship extends outside board boundaries.",
            problem_cells=outside,
        )

    for ship in placed_ships:
        overlap = tuple(cell for cell in candidate_cells if cell in ship.cells)
        if overlap:
            return PlacementValidation(
                valid=False,
                reason=ValidationReason.COLLISION,
                message=f"Ship would overlap with existing ship {ship.id}.",
                problem_cells=overlap,
            )

    if not rules.allow_touch and rules.min_distance > 0:
        if has_adjacency(candidate_cells, placed_ships, size, rules.min_distance):
            return PlacementValidation(
                valid=False,
                reason=ValidationReason.TOO_CLOSE,
                message="Ships cannot be adjacent to each other.",
            )

    return PlacementValidation(valid=True)


def validate_placement(
    origin: Coord,
    orientation: Orientation,
    length: int,
    placed_ships: Sequence[PlacedShip],
    rules: PlacementRules = STANDARD_RULES,
) -> PlacementValidation:
    """Validate a placement given by origin, orientation and length."""
    return can_place(cells_for_ship(origin, orientation, length), placed_ships, rules)


def valid_placements(
    length: int,
    placed_ships: Sequence[PlacedShip],
    rules: PlacementRules = STANDARD_RULES,
) -> list[tuple[Coord, Orientation]]:
    """Enumerate every legal origin/orientation pair, row-major."""
    result: list[tuple[Coord, Orientation]] = []
    for y in range(rules.board_size):
        for x in range(rules.board_size):
            origin = Coord(x, y)
            for orientation in (Orientation.HORIZONTAL, Orientation.VERTICAL):
                if validate_placement(origin, orientation, length, placed_ships, rules).valid:
                    result.append((origin, orientation))
    return result


def is_fleet_complete(
    placed_ships: Sequence[PlacedShip],
    required_fleet: Sequence[ShipKind] = DEFAULT_FLEET,
) -> bool:
    """Return whether every required ship length is present."""
    placed = Counter(ship.length for ship in placed_ships)
    required = Counter(kind.size for kind in required_fleet)
    return all(placed[length] >= count for length, count in required.items())


def create_placed_ship(
    ship_id: str, kind: ShipKind, origin: Coord, orientation: Orientation
) -> PlacedShip:
    return PlacedShip(
        id=ship_id,
        kind=kind,
        origin=origin,
        orientation=orientation,
        cells=cells_for_ship(origin, orientation, kind.size),
    )


def remove_ship(ship_id: str, placed_ships: Sequence[PlacedShip]) -> list[PlacedShip]:
    return [ship for ship in placed_ships if ship.id != ship_id]


def find_ship_at_cell(cell: Coord, placed_ships: Sequence[PlacedShip]) -> PlacedShip | None:
    for ship in placed_ships:
        if cell in ship.cells:
            return ship
    return None


def is_cell_occupied(cell: Coord, placed_ships: Sequence[PlacedShip]) -> bool:
    return find_ship_at_cell(cell, placed_ships) is not None
