from __future__ import annotations

from broadside.core.models import (
    DEFAULT_SHIP_LENGTHS,
    Ability,
    AttackResult,
    Coord,
    Orientation,
    ShipKind,
    ShotResult,
)


def test_ship_kind_sizes_match_default_fleet() -> None:
    assert ShipKind.CARRIER.size == 5
    assert ShipKind.DESTROYER.size == 2
    assert DEFAULT_SHIP_LENGTHS == (5, 4, 3, 3, 2)


def test_orientation_flips() -> None:
    assert Orientation.HORIZONTAL.flipped() is Orientation.VERTICAL
    assert Orientation.VERTICAL.flipped() is Orientation.HORIZONTAL


def test_ship_health_and_ready_abilities(ship_factory) -> None:
    ship = ship_factory(
        "sub",
        ShipKind.SUBMARINE,
        Coord(0, 0),
        abilities=[Ability("SonarPing"), Ability("SilentRunning", cooldown=2)],
    )
    assert ship.health == 1.0
    ship.hits_taken = 1
    assert 0.6 < ship.health < 0.7
    assert [ability.name for ability in ship.ready_abilities()] == ["SonarPing"]
    ship.hits_taken = 3
    assert ship.is_sunk
    assert ship.health == 0.0


def test_attack_result_is_hit() -> None:
    assert not AttackResult(Coord(0, 0), ShotResult.MISS).is_hit
    assert AttackResult(Coord(0, 0), ShotResult.SUNK, "d1").is_hit
