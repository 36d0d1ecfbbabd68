"""Board state representation and mutation helpers."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import numpy as np

from broadside.core.models import BOARD_SIZE, AttackResult, Coord, Ship, ShotResult


@dataclass(frozen=True, slots=True)
class Cell:
    """Read-only view of one board cell."""

    is_hit: bool
    has_ship: bool
    ship_id: str | None = None


@dataclass(slots=True)
class BoardState:
    """Numpy-backed ``width x height`` board, indexed ``[y, x]``."""

    width: int = BOARD_SIZE
    height: int = BOARD_SIZE
    hits: np.ndarray = field(
        default_factory=lambda: np.zeros((BOARD_SIZE, BOARD_SIZE), dtype=bool)
    )
    ships: np.ndarray = field(
        default_factory=lambda: np.zeros((BOARD_SIZE, BOARD_SIZE), dtype=np.int16)
    )
    fleet: dict[str, Ship] = field(default_factory=dict)
    _ship_index: dict[int, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.hits.shape != (self.height, self.width):
            self.hits = np.zeros((self.height, self.width), dtype=bool)
        if self.ships.shape != (self.height, self.width):
            self.ships = np.zeros((self.height, self.width), dtype=np.int16)

    @classmethod
    def from_ships(
        cls, ships: Iterable[Ship], width: int = BOARD_SIZE, height: int = BOARD_SIZE
    ) -> BoardState:
        board = cls(width=width, height=height)
        for ship in ships:
            board.place_ship(ship)
        return board

    @property
    def cell_count(self) -> int:
        return self.width * self.height

    def in_bounds(self, coord: Coord) -> bool:
        """Return whether the coordinate is in board bounds."""
        return 0 <= coord.x < self.width and 0 <= coord.y < self.height

    def is_hit(self, coord: Coord) -> bool:
        return bool(self.hits[coord.y, coord.x])

    def has_ship(self, coord: Coord) -> bool:
        return self.ships[coord.y, coord.x] != 0

    def ship_id_at(self, coord: Coord) -> str | None:
        index = int(self.ships[coord.y, coord.x])
        return self._ship_index.get(index)

    def cell(self, coord: Coord) -> Cell:
        return Cell(
            is_hit=self.is_hit(coord),
            has_ship=self.has_ship(coord),
            ship_id=self.ship_id_at(coord),
        )

    def unhit_cells(self) -> list[Coord]:
        """Return every cell not yet attacked, row-major."""
        ys, xs = np.nonzero(~self.hits)
        return [Coord(int(x), int(y)) for y, x in zip(ys, xs)]

    def shot_ratio(self) -> float:
        return float(self.hits.sum()) / self.cell_count

    def place_ship(self, ship: Ship) -> None:
        """Place a ship on the board."""
        for cell in ship.cells:
            if not self.in_bounds(cell):
                raise ValueError(f"Ship {ship.id} extends outside the board.")
            if self.has_ship(cell):
                raise ValueError(f"Ship {ship.id} overlaps another ship.")
        index = len(self._ship_index) + 1
        for cell in ship.cells:
            self.ships[cell.y, cell.x] = index
        self._ship_index[index] = ship.id
        self.fleet[ship.id] = ship

    def apply_attack(self, coord: Coord) -> AttackResult:
        """Resolve an attack against this board and record the hit marker."""
        if not self.in_bounds(coord):
            raise ValueError(f"Attack at {coord} is outside the board.")
        if self.is_hit(coord):
            raise ValueError(f"Cell {coord} was already attacked.")
        self.hits[coord.y, coord.x] = True
        ship_id = self.ship_id_at(coord)
        if ship_id is None:
            return AttackResult(coord=coord, result=ShotResult.MISS)
        ship = self.fleet[ship_id]
        ship.hits_taken += 1
        result = ShotResult.SUNK if ship.is_sunk else ShotResult.HIT
        return AttackResult(coord=coord, result=result, ship_id=ship_id, ship_kind=ship.kind)

    def ships_afloat(self) -> list[Ship]:
        return [ship for ship in self.fleet.values() if not ship.is_sunk]

    def all_ships_sunk(self) -> bool:
        """Return whether every ship has been sunk."""
        return all(ship.is_sunk for ship in self.fleet.values())
