"""Interactive fleet placement state machine.

Modes flow ``IDLE -> SELECTING -> PREVIEW -> IDLE`` for new ships and
``IDLE -> EDITING -> IDLE`` for ships already on the board. Rejected transitions
return ``False``; they are routine outcomes of interactive use, not errors.
"""

from __future__ import annotations

import itertools
import logging
from collections import Counter
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType

from broadside.core.models import DEFAULT_FLEET, Coord, Orientation, ShipKind
from broadside.placement.domain import (
    STANDARD_RULES,
    PlacedShip,
    PlacementRules,
    cells_for_ship,
    create_placed_ship,
    find_ship_at_cell,
    remove_ship,
    validate_placement,
)
from broadside.placement.scoring import Grade, score_placement

logger = logging.getLogger(__name__)


class UiMode(StrEnum):
    """Placement interaction mode."""

    IDLE = "IDLE"
    SELECTING = "SELECTING"
    PREVIEW = "PREVIEW"
    PLACING = "PLACING"
    EDITING = "EDITING"


@dataclass(frozen=True, slots=True)
class PlacementPreview:
    origin: Coord
    orientation: Orientation
    cells: tuple[Coord, ...]
    is_valid: bool
    reason: str = ""


@dataclass(frozen=True, slots=True)
class PlacementState:
    """Immutable snapshot handed to subscribers and callers."""

    mode: UiMode
    placed_ships: tuple[PlacedShip, ...]
    available_ships: Mapping[ShipKind, int]
    rules: PlacementRules
    placement_score: int = 0
    placement_grade: Grade = Grade.D
    selected_kind: ShipKind | None = None
    preview: PlacementPreview | None = None
    editing_ship_id: str | None = None
    finalized: bool = False


Listener = Callable[[PlacementState], None]


@dataclass(slots=True)
class _MachineData:
    mode: UiMode = UiMode.IDLE
    placed: list[PlacedShip] = field(default_factory=list)
    available: dict[ShipKind, int] = field(default_factory=dict)
    selected_kind: ShipKind | None = None
    preview: PlacementPreview | None = None
    editing: PlacedShip | None = None
    score: int = 0
    grade: Grade = Grade.D
    finalized: bool = False


class PlacementStateMachine:
    """Owns one placement phase for one fleet."""

    def __init__(
        self,
        rules: PlacementRules = STANDARD_RULES,
        fleet: Sequence[ShipKind] = DEFAULT_FLEET,
    ) -> None:
        self._rules = rules
        self._fleet_counts: dict[ShipKind, int] = dict(Counter(fleet))
        self._listeners: list[Listener] = []
        self._ids = itertools.count(1)
        self._data = self._initial_data()

    def _initial_data(self) -> _MachineData:
        return _MachineData(available=dict(self._fleet_counts))

    # State access

    def get_state(self) -> PlacementState:
        data = self._data
        return PlacementState(
            mode=data.mode,
            placed_ships=tuple(data.placed),
            available_ships=MappingProxyType(dict(data.available)),
            rules=self._rules,
            placement_score=data.score,
            placement_grade=data.grade,
            selected_kind=data.selected_kind,
            preview=data.preview,
            editing_ship_id=data.editing.id if data.editing is not None else None,
            finalized=data.finalized,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _commit(self) -> None:
        data = self._data
        if data.placed:
            quality = score_placement(data.placed, self._rules)
            data.score = quality.score
            data.grade = quality.grade
        else:
            data.score = 0
            data.grade = Grade.D
        self._notify()

    def _notify(self) -> None:
        snapshot = self.get_state()
        for listener in list(self._listeners):
            listener(snapshot)

    def _to_idle(self) -> None:
        data = self._data
        data.mode = UiMode.IDLE
        data.selected_kind = None
        data.preview = None
        data.editing = None

    def _next_id(self, kind: ShipKind) -> str:
        return f"{kind.value.lower()}_{next(self._ids)}"

    # Transitions

    def select_ship(self, kind: ShipKind) -> bool:
        data = self._data
        if data.finalized or data.mode is UiMode.EDITING:
            return False
        if data.available.get(kind, 0) <= 0:
            return False
        data.mode = UiMode.SELECTING
        data.selected_kind = kind
        data.preview = None
        self._commit()
        return True

    def deselect_ship(self) -> None:
        if self._data.mode is UiMode.EDITING:
            self.cancel_edit()
            return
        self._to_idle()
        self._commit()

    def preview_ship(self, cell: Coord, orientation: Orientation = Orientation.HORIZONTAL) -> bool:
        data = self._data
        if data.mode not in (UiMode.SELECTING, UiMode.PREVIEW) or data.selected_kind is None:
            return False
        length = data.selected_kind.size
        validation = validate_placement(cell, orientation, length, data.placed, self._rules)
        data.preview = PlacementPreview(
            origin=cell,
            orientation=orientation,
            cells=cells_for_ship(cell, orientation, length),
            is_valid=validation.valid,
            reason=validation.message,
        )
        data.mode = UiMode.PREVIEW
        self._commit()
        return True

    def clear_preview(self) -> None:
        data = self._data
        if data.mode is not UiMode.PREVIEW:
            return
        data.preview = None
        data.mode = UiMode.SELECTING if data.selected_kind is not None else UiMode.IDLE
        self._commit()

    def place_ship(self, cell: Coord, orientation: Orientation = Orientation.HORIZONTAL) -> bool:
        data = self._data
        kind = data.selected_kind
        if data.finalized or data.mode not in (UiMode.SELECTING, UiMode.PREVIEW) or kind is None:
            return False
        if data.available.get(kind, 0) <= 0:
            return False
        if not validate_placement(cell, orientation, kind.size, data.placed, self._rules).valid:
            return False

        data.placed.append(create_placed_ship(self._next_id(kind), kind, cell, orientation))
        data.available[kind] -= 1
        self._to_idle()
        self._commit()
        return True

    def edit_ship(self, ship_id: str) -> bool:
        """Lift a placed ship for editing; only allowed from ``IDLE``."""
        data = self._data
        if data.finalized or data.mode is not UiMode.IDLE:
            return False
        ship = next((item for item in data.placed if item.id == ship_id), None)
        if ship is None:
            return False
        data.placed = remove_ship(ship_id, data.placed)
        data.available[ship.kind] += 1
        data.mode = UiMode.EDITING
        data.editing = ship
        data.selected_kind = ship.kind
        data.preview = None
        self._commit()
        return True

    def move_ship(
        self, ship_id: str, new_cell: Coord, orientation: Orientation | None = None
    ) -> bool:
        data = self._data
        if data.finalized:
            return False
        if data.mode is UiMode.EDITING:
            ship = data.editing
            if ship is None or ship.id != ship_id:
                return False
            others = data.placed
        elif data.mode is UiMode.IDLE:
            ship = next((item for item in data.placed if item.id == ship_id), None)
            if ship is None:
                return False
            others = remove_ship(ship_id, data.placed)
        else:
            return False

        final_orientation = orientation or ship.orientation
        if not validate_placement(new_cell, final_orientation, ship.length, others, self._rules).valid:
            return False

        moved = create_placed_ship(ship.id, ship.kind, new_cell, final_orientation)
        if data.mode is UiMode.EDITING:
            data.available[ship.kind] = max(0, data.available[ship.kind] - 1)
            data.placed.append(moved)
        else:
            data.placed = [moved if item.id == ship_id else item for item in data.placed]
        self._to_idle()
        self._commit()
        return True

    def rotate_ship(self, ship_id: str | None = None) -> bool:
        data = self._data
        if data.mode is UiMode.PREVIEW and data.preview is not None:
            preview = data.preview
            return self.preview_ship(preview.origin, preview.orientation.flipped())

        if ship_id is None:
            return False
        if data.mode is UiMode.EDITING:
            ship = data.editing
            if ship is None or ship.id != ship_id:
                return False
        elif data.mode is UiMode.IDLE:
            ship = next((item for item in data.placed if item.id == ship_id), None)
            if ship is None:
                return False
        else:
            return False
        return self.move_ship(ship_id, ship.origin, ship.orientation.flipped())

    def remove_ship(self, ship_id: str) -> bool:
        data = self._data
        if data.finalized or data.mode is UiMode.EDITING:
            return False
        ship = next((item for item in data.placed if item.id == ship_id), None)
        if ship is None:
            return False
        data.placed = remove_ship(ship_id, data.placed)
        data.available[ship.kind] += 1
        self._to_idle()
        self._commit()
        return True

    def cancel_edit(self) -> None:
        data = self._data
        if data.mode is UiMode.EDITING and data.editing is not None:
            original = data.editing
            data.placed.append(original)
            data.available[original.kind] = max(0, data.available[original.kind] - 1)
            self._to_idle()
            self._commit()
        elif data.mode in (UiMode.PREVIEW, UiMode.SELECTING):
            self.deselect_ship()

    def auto_place_remaining(self) -> bool:
        """Fill every remaining slot with the first legal row-major position."""
        data = self._data
        if data.finalized:
            return False
        if data.mode is UiMode.EDITING:
            self.cancel_edit()
        data.mode = UiMode.PLACING
        self._notify()

        relaxed = PlacementRules(board_size=self._rules.board_size, allow_touch=True)
        for kind in self._fleet_counts:
            while data.available.get(kind, 0) > 0:
                found = self._scan_first_fit(kind, self._rules) or self._scan_first_fit(kind, relaxed)
                if found is None:
                    logger.warning("auto_place_failed kind=%s", kind.value)
                    break
                origin, orientation = found
                data.placed.append(
                    create_placed_ship(self._next_id(kind), kind, origin, orientation)
                )
                data.available[kind] -= 1

        self._to_idle()
        self._commit()
        return self.is_fleet_complete()

    def _scan_first_fit(
        self, kind: ShipKind, rules: PlacementRules
    ) -> tuple[Coord, Orientation] | None:
        size = rules.board_size
        for y in range(size):
            for x in range(size):
                for orientation in (Orientation.HORIZONTAL, Orientation.VERTICAL):
                    origin = Coord(x, y)
                    if validate_placement(origin, orientation, kind.size, self._data.placed, rules).valid:
                        return origin, orientation
        return None

    def clear_all_ships(self) -> bool:
        data = self._data
        if data.finalized:
            return False
        data.placed = []
        data.available = dict(self._fleet_counts)
        self._to_idle()
        self._commit()
        return True

    def confirm(self) -> bool:
        """Freeze a complete fleet; later mutations are rejected."""
        data = self._data
        if data.finalized or data.mode is UiMode.EDITING or not self.is_fleet_complete():
            return False
        data.finalized = True
        self._to_idle()
        self._commit()
        logger.info("placement_confirmed score=%d grade=%s", data.score, data.grade.value)
        return True

    def reset(self) -> None:
        self._data = self._initial_data()
        self._notify()

    # Queries

    def can_place_ship(self, kind: ShipKind) -> bool:
        return self._data.available.get(kind, 0) > 0

    def is_fleet_complete(self) -> bool:
        return all(count == 0 for count in self._data.available.values())

    def total_ships_placed(self) -> int:
        return len(self._data.placed)

    def total_ships_remaining(self) -> int:
        return sum(self._data.available.values())

    def ship_at_cell(self, cell: Coord) -> PlacedShip | None:
        return find_ship_at_cell(cell, self._data.placed)

    def validate_current_state(self) -> tuple[bool, list[str]]:
        errors: list[str] = []
        placed = self._data.placed
        for i, first in enumerate(placed):
            for second in placed[i + 1 :]:
                if not set(first.cells).isdisjoint(second.cells):
                    errors.append(f"Ships {first.id} and {second.id} overlap.")
        size = self._rules.board_size
        for ship in placed:
            if any(not (0 <= c.x < size and 0 <= c.y < size) for c in ship.cells):
                errors.append(f"Ship {ship.id} extends outside board boundaries.")
        return not errors, errors
