from __future__ import annotations

import random

import pytest

from broadside.core.board import BoardState
from broadside.core.models import Ability, Coord, Orientation, Ship, ShipKind, cells_for


def make_ship(
    ship_id: str,
    kind: ShipKind,
    origin: Coord,
    orientation: Orientation = Orientation.HORIZONTAL,
    abilities: list[Ability] | None = None,
) -> Ship:
    return Ship(
        id=ship_id,
        kind=kind,
        cells=cells_for(origin, orientation, kind.size),
        orientation=orientation,
        abilities=abilities or [],
    )


def make_standard_fleet() -> list[Ship]:
    return [
        make_ship("carrier", ShipKind.CARRIER, Coord(0, 0)),
        make_ship("battleship", ShipKind.BATTLESHIP, Coord(6, 6), Orientation.VERTICAL),
        make_ship("cruiser", ShipKind.CRUISER, Coord(3, 9)),
        make_ship("submarine", ShipKind.SUBMARINE, Coord(9, 3), Orientation.VERTICAL),
        make_ship("destroyer", ShipKind.DESTROYER, Coord(0, 8)),
    ]


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(1337)


@pytest.fixture
def empty_board() -> BoardState:
    return BoardState()


@pytest.fixture
def standard_fleet() -> list[Ship]:
    return make_standard_fleet()


@pytest.fixture
def ship_factory():
    return make_ship
