from __future__ import annotations

from broadside.core.models import Coord, Orientation, ShipKind
from broadside.placement.domain import create_placed_ship
from broadside.placement.scoring import (
    Grade,
    distribution_score,
    efficiency_score,
    letter_grade,
    score_placement,
    score_ship_placement,
    unpredictability_score,
)

H = Orientation.HORIZONTAL
V = Orientation.VERTICAL


def _spread_fleet():
    return [
        create_placed_ship("carrier", ShipKind.CARRIER, Coord(0, 0), H),
        create_placed_ship("battleship", ShipKind.BATTLESHIP, Coord(6, 6), V),
        create_placed_ship("cruiser", ShipKind.CRUISER, Coord(3, 9), H),
        create_placed_ship("submarine", ShipKind.SUBMARINE, Coord(9, 3), V),
        create_placed_ship("destroyer", ShipKind.DESTROYER, Coord(0, 8), H),
    ]


def _stacked_fleet():
    return [
        create_placed_ship("d1", ShipKind.DESTROYER, Coord(0, 0), H),
        create_placed_ship("d2", ShipKind.DESTROYER, Coord(0, 1), H),
        create_placed_ship("d3", ShipKind.DESTROYER, Coord(0, 2), H),
    ]


def test_empty_fleet_scores_low() -> None:
    quality = score_placement([])
    assert quality.score < 50
    assert quality.grade is Grade.D


def test_spread_fleet_distributes_well() -> None:
    quality = score_placement(_spread_fleet())
    assert quality.metrics.distribution > 80
    assert 0 <= quality.score <= 100


def test_ships_sharing_columns_are_predictable() -> None:
    fleet = _stacked_fleet()
    assert unpredictability_score(fleet) < 50
    assert distribution_score(fleet) < 50


def test_single_ship_unpredictability_is_neutral() -> None:
    assert unpredictability_score(_spread_fleet()[:1]) == 50


def test_grade_thresholds() -> None:
    assert letter_grade(95) is Grade.A
    assert letter_grade(90) is Grade.A
    assert letter_grade(85) is Grade.B
    assert letter_grade(70) is Grade.C
    assert letter_grade(69.9) is Grade.D


def test_efficiency_is_bounded() -> None:
    assert efficiency_score([]) == 0
    assert 0 <= efficiency_score(_spread_fleet()) <= 100


def test_single_ship_score_penalises_border_rows() -> None:
    existing = _spread_fleet()[1:]
    border = create_placed_ship("c", ShipKind.CRUISER, Coord(3, 0), H)
    inland = create_placed_ship("c", ShipKind.CRUISER, Coord(3, 3), H)
    assert 0 <= score_ship_placement(border, existing) <= 100
    assert score_ship_placement(border, existing) < score_ship_placement(inland, existing)
