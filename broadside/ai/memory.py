"""Per-game AI memory of fired shots and what they revealed."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from broadside.ai.opponent import DetectedPattern
from broadside.core.models import (
    DEFAULT_SHIP_LENGTHS,
    AttackResult,
    Coord,
    Orientation,
    ShipKind,
    ShotResult,
)


@dataclass(frozen=True, slots=True)
class HitRecord:
    coord: Coord
    ship_id: str | None
    turn: int


@dataclass(slots=True)
class ConfirmedShip:
    """Known hit cells of one enemy ship and the inferred axis."""

    ship_id: str
    positions: list[Coord] = field(default_factory=list)
    orientation: Orientation | None = None
    kind: ShipKind | None = None
    sunk: bool = False

    def add(self, coord: Coord) -> None:
        if coord not in self.positions:
            self.positions.append(coord)
        if self.orientation is None and len(self.positions) >= 2:
            self.orientation = infer_orientation(self.positions)


@dataclass(slots=True)
class AIMemory:
    """Append-only record of this AI's own shots within one game."""

    shots_fired: list[Coord] = field(default_factory=list)
    hits: list[HitRecord] = field(default_factory=list)
    misses: list[Coord] = field(default_factory=list)
    confirmed_ships: dict[str, ConfirmedShip] = field(default_factory=dict)
    sunken_ships: list[str] = field(default_factory=list)
    sunk_kinds: list[ShipKind] = field(default_factory=list)
    detected_patterns: list[DetectedPattern] = field(default_factory=list)

    def record(self, result: AttackResult, turn: int) -> ConfirmedShip | None:
        """Append one resolved attack; returns the touched ship entry if any."""
        coord = result.coord
        self.shots_fired.append(coord)
        if result.result is ShotResult.MISS:
            self.misses.append(coord)
            return None

        self.hits.append(HitRecord(coord=coord, ship_id=result.ship_id, turn=turn))
        if result.ship_id is None:
            return None
        ship = self.confirmed_ships.get(result.ship_id)
        if ship is None:
            ship = ConfirmedShip(ship_id=result.ship_id, kind=result.ship_kind)
            self.confirmed_ships[result.ship_id] = ship
        ship.add(coord)
        if result.ship_kind is not None:
            ship.kind = result.ship_kind
        if result.result is ShotResult.SUNK and not ship.sunk:
            ship.sunk = True
            self.sunken_ships.append(ship.ship_id)
            if ship.kind is not None:
                self.sunk_kinds.append(ship.kind)
        return ship

    def note_patterns(self, patterns: Iterable[DetectedPattern]) -> None:
        """Keep a reference to each opponent pattern seen this game, once per kind."""
        known = {pattern.kind for pattern in self.detected_patterns}
        for pattern in patterns:
            if pattern.kind not in known:
                self.detected_patterns.append(pattern)
                known.add(pattern.kind)

    def has_fired_at(self, coord: Coord) -> bool:
        return coord in self.shots_fired

    def hit_cells(self) -> set[Coord]:
        return {record.coord for record in self.hits}

    def unsunk_hits(self) -> list[Coord]:
        """Hits not yet attributed to a sunk ship, oldest first."""
        sunk = set(self.sunken_ships)
        return [record.coord for record in self.hits if record.ship_id not in sunk]

    def active_ships(self) -> list[ConfirmedShip]:
        return [ship for ship in self.confirmed_ships.values() if not ship.sunk]

    def remaining_ship_lengths(
        self, fleet_lengths: Sequence[int] = DEFAULT_SHIP_LENGTHS
    ) -> list[int]:
        """Lengths of ships not yet sunk, taken from the expected fleet."""
        remaining = list(fleet_lengths)
        for ship_id in self.sunken_ships:
            ship = self.confirmed_ships[ship_id]
            length = ship.kind.size if ship.kind is not None else len(ship.positions)
            if length in remaining:
                remaining.remove(length)
            elif remaining:
                remaining.remove(max(remaining))
        return remaining

    def accuracy(self) -> float:
        if not self.shots_fired:
            return 0.0
        return len(self.hits) / len(self.shots_fired)


def infer_orientation(positions: Sequence[Coord]) -> Orientation | None:
    """Infer a ship axis from at least two known cells sharing a row or column."""
    if len(positions) < 2:
        return None
    if len({coord.y for coord in positions}) == 1:
        return Orientation.HORIZONTAL
    if len({coord.x for coord in positions}) == 1:
        return Orientation.VERTICAL
    return None
