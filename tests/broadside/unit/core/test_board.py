from __future__ import annotations

import pytest

from broadside.core.board import BoardState
from broadside.core.models import Coord, Orientation, ShipKind, ShotResult, manhattan, orthogonal_neighbors


def test_from_ships_marks_cells_and_ids(standard_fleet) -> None:
    board = BoardState.from_ships(standard_fleet)
    cell = board.cell(Coord(2, 0))
    assert cell.has_ship
    assert cell.ship_id == "carrier"
    assert not cell.is_hit
    assert not board.has_ship(Coord(5, 5))


def test_apply_attack_reports_miss_hit_and_sunk(standard_fleet) -> None:
    board = BoardState.from_ships(standard_fleet)
    assert board.apply_attack(Coord(5, 0)).result is ShotResult.MISS
    first = board.apply_attack(Coord(0, 8))
    assert first.result is ShotResult.HIT
    assert first.ship_id == "destroyer"
    second = board.apply_attack(Coord(1, 8))
    assert second.result is ShotResult.SUNK
    assert second.ship_kind is ShipKind.DESTROYER
    assert len(board.ships_afloat()) == 4


def test_apply_attack_rejects_repeat_and_out_of_bounds(empty_board: BoardState) -> None:
    empty_board.apply_attack(Coord(1, 1))
    with pytest.raises(ValueError):
        empty_board.apply_attack(Coord(1, 1))
    with pytest.raises(ValueError):
        empty_board.apply_attack(Coord(10, 0))


def test_unhit_cells_and_shot_ratio(empty_board: BoardState) -> None:
    assert len(empty_board.unhit_cells()) == 100
    empty_board.apply_attack(Coord(0, 0))
    empty_board.apply_attack(Coord(9, 9))
    assert Coord(0, 0) not in empty_board.unhit_cells()
    assert empty_board.shot_ratio() == pytest.approx(0.02)


def test_place_ship_rejects_overlap(ship_factory, empty_board: BoardState) -> None:
    empty_board.place_ship(ship_factory("a", ShipKind.CRUISER, Coord(0, 0)))
    with pytest.raises(ValueError):
        empty_board.place_ship(ship_factory("b", ShipKind.DESTROYER, Coord(1, 0), Orientation.VERTICAL))


def test_all_ships_sunk_after_every_cell_hit(standard_fleet) -> None:
    board = BoardState.from_ships(standard_fleet)
    for ship in standard_fleet:
        for cell in ship.cells:
            board.apply_attack(cell)
    assert board.all_ships_sunk()


def test_neighbors_stay_in_bounds() -> None:
    assert set(orthogonal_neighbors(Coord(0, 0), 10, 10)) == {Coord(1, 0), Coord(0, 1)}
    assert len(orthogonal_neighbors(Coord(5, 5), 10, 10)) == 4
    assert manhattan(Coord(0, 0), Coord(3, 4)) == 7
