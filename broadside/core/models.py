"""Core domain models shared by the decision engine and placement logic."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

BOARD_SIZE = 10


class Orientation(StrEnum):
    """Ship orientation."""

    HORIZONTAL = "HORIZONTAL"
    VERTICAL = "VERTICAL"

    def flipped(self) -> Orientation:
        if self is Orientation.HORIZONTAL:
            return Orientation.VERTICAL
        return Orientation.HORIZONTAL


class ShipKind(StrEnum):
    """Classic fleet ship kinds."""

    CARRIER = "CARRIER"
    BATTLESHIP = "BATTLESHIP"
    CRUISER = "CRUISER"
    SUBMARINE = "SUBMARINE"
    DESTROYER = "DESTROYER"

    @property
    def size(self) -> int:
        return SHIP_LENGTHS[self]


SHIP_LENGTHS: dict[ShipKind, int] = {
    ShipKind.CARRIER: 5,
    ShipKind.BATTLESHIP: 4,
    ShipKind.CRUISER: 3,
    ShipKind.SUBMARINE: 3,
    ShipKind.DESTROYER: 2,
}

DEFAULT_FLEET: tuple[ShipKind, ...] = (
    ShipKind.CARRIER,
    ShipKind.BATTLESHIP,
    ShipKind.CRUISER,
    ShipKind.SUBMARINE,
    ShipKind.DESTROYER,
)

DEFAULT_SHIP_LENGTHS: tuple[int, ...] = tuple(kind.size for kind in DEFAULT_FLEET)


class ShotResult(StrEnum):
    """Result of a single resolved attack."""

    MISS = "MISS"
    HIT = "HIT"
    SUNK = "SUNK"


class PowerupType(StrEnum):
    """Consumable powerups an AI may trigger."""

    RADAR_SCAN = "RADAR_SCAN"
    BARRAGE = "BARRAGE"
    SONAR_PING = "SONAR_PING"
    SMOKE_SCREEN = "SMOKE_SCREEN"
    REPAIR_KIT = "REPAIR_KIT"
    TORPEDO_SALVO = "TORPEDO_SALVO"
    AIR_STRIKE = "AIR_STRIKE"


@dataclass(frozen=True, slots=True)
class Coord:
    """Zero-based board coordinate."""

    x: int
    y: int


@dataclass(slots=True)
class Ability:
    """Ship-bound special ability with cooldown and limited uses."""

    name: str
    cooldown: int = 0
    remaining_uses: int = 1
    is_active: bool = True

    @property
    def ready(self) -> bool:
        return self.is_active and self.cooldown == 0 and self.remaining_uses > 0


@dataclass(slots=True)
class Ship:
    """Ship with position, damage record and abilities."""

    id: str
    kind: ShipKind
    cells: tuple[Coord, ...]
    orientation: Orientation
    hits_taken: int = 0
    abilities: list[Ability] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.cells)

    @property
    def is_sunk(self) -> bool:
        return self.hits_taken >= len(self.cells)

    @property
    def health(self) -> float:
        """Remaining fraction of undamaged cells."""
        if not self.cells:
            return 0.0
        return max(0.0, 1.0 - self.hits_taken / len(self.cells))

    def ready_abilities(self) -> list[Ability]:
        return [ability for ability in self.abilities if ability.ready]


@dataclass(frozen=True, slots=True)
class ShipPosition:
    """Fleet placement answer for one ship."""

    kind: ShipKind
    origin: Coord
    orientation: Orientation
    cells: tuple[Coord, ...]


@dataclass(frozen=True, slots=True)
class AttackResult:
    """Outcome of a resolved attack, fed back into AI memory."""

    coord: Coord
    result: ShotResult
    ship_id: str | None = None
    ship_kind: ShipKind | None = None

    @property
    def is_hit(self) -> bool:
        return self.result is not ShotResult.MISS


def cells_for(origin: Coord, orientation: Orientation, length: int) -> tuple[Coord, ...]:
    """Compute cells covered by a ship starting at ``origin``."""
    if orientation is Orientation.HORIZONTAL:
        return tuple(Coord(origin.x + i, origin.y) for i in range(length))
    return tuple(Coord(origin.x, origin.y + i) for i in range(length))


def orthogonal_neighbors(coord: Coord, width: int, height: int) -> list[Coord]:
    """Return in-bounds up/down/left/right neighbours."""
    result: list[Coord] = []
    for dx, dy in ((0, -1), (0, 1), (-1, 0), (1, 0)):
        x = coord.x + dx
        y = coord.y + dy
        if 0 <= x < width and 0 <= y < height:
            result.append(Coord(x, y))
    return result


def manhattan(a: Coord, b: Coord) -> int:
    return abs(a.x - b.x) + abs(a.y - b.y)
