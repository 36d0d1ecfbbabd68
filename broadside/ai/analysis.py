"""Board analysis: heat map, placement-probability grid and derived target lists."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from broadside.ai.decision import MoveKind, OpponentMove
from broadside.ai.memory import AIMemory
from broadside.core.board import BoardState
from broadside.core.models import AttackResult, Coord, Orientation, ShotResult

HEAT_DECAY = 0.9
HEAT_FALLOFF = 0.5
HEAT_RADIUS = 3
HIT_HEAT = 1.0
MISS_HEAT = -0.5
AXIS_BOOST = 0.75
AXIS_REACH = 4
HIT_OVERLAP_WEIGHT = 0.5


@dataclass(slots=True)
class BoardAnalysis:
    """Derived view of the opponent board, rebuilt or decayed every turn."""

    heat_map: np.ndarray
    probability_grid: np.ndarray
    high_value_targets: list[Coord] = field(default_factory=list)
    danger_zones: list[Coord] = field(default_factory=list)

    @classmethod
    def empty(cls, width: int, height: int) -> BoardAnalysis:
        return cls(
            heat_map=np.zeros((height, width), dtype=np.float64),
            probability_grid=np.zeros((height, width), dtype=np.float64),
        )


def update_heat_map(
    heat_map: np.ndarray,
    result: AttackResult,
    axis: Orientation | None = None,
) -> None:
    """Decay the heat map in place and stamp the influence of one result.

    Influence falls off exponentially with Manhattan distance. A non-sinking hit on a
    ship with a known axis also boosts the cells along that axis.
    """
    heat_map *= HEAT_DECAY
    height, width = heat_map.shape
    origin = result.coord
    value = MISS_HEAT if result.result is ShotResult.MISS else HIT_HEAT
    for y in range(max(0, origin.y - HEAT_RADIUS), min(height, origin.y + HEAT_RADIUS + 1)):
        for x in range(max(0, origin.x - HEAT_RADIUS), min(width, origin.x + HEAT_RADIUS + 1)):
            distance = abs(x - origin.x) + abs(y - origin.y)
            if distance > HEAT_RADIUS:
                continue
            heat_map[y, x] += value * math.exp(-HEAT_FALLOFF * distance)

    if result.result is not ShotResult.HIT or axis is None:
        return
    dx, dy = (1, 0) if axis is Orientation.HORIZONTAL else (0, 1)
    for step in range(1, AXIS_REACH + 1):
        boost = AXIS_BOOST * math.exp(-HEAT_FALLOFF * (step - 1))
        for sign in (-1, 1):
            x = origin.x + sign * dx * step
            y = origin.y + sign * dy * step
            if 0 <= x < width and 0 <= y < height:
                heat_map[y, x] += boost


def blocked_mask(board: BoardState, memory: AIMemory) -> np.ndarray:
    """Cells no unsunk ship can occupy: misses and cells of sunk ships."""
    blocked = board.hits.copy()
    for coord in memory.unsunk_hits():
        blocked[coord.y, coord.x] = False
    return blocked


def unsunk_hit_mask(board: BoardState, memory: AIMemory) -> np.ndarray:
    mask = np.zeros((board.height, board.width), dtype=np.float64)
    for coord in memory.unsunk_hits():
        mask[coord.y, coord.x] = 1.0
    return mask


def placement_density(
    board: BoardState,
    memory: AIMemory,
    lengths: Sequence[int],
    *,
    hit_weight: float = HIT_OVERLAP_WEIGHT,
    edge_bonus: float = 0.0,
) -> np.ndarray:
    """Accumulate candidate-placement weight on every un-hit cell.

    For each remaining ship length every horizontal and vertical window that avoids
    blocked cells counts ``1 + hit_weight * overlapping_unsunk_hits`` (plus
    ``edge_bonus`` when the window touches the border) towards each of its cells.
    """
    height, width = board.height, board.width
    blocked = blocked_mask(board, memory).astype(np.int16)
    hit_mask = unsunk_hit_mask(board, memory)
    density = np.zeros((height, width), dtype=np.float64)

    for length in lengths:
        if length <= width:
            windows_blocked = sliding_window_view(blocked, length, axis=1).sum(axis=-1)
            windows_hits = sliding_window_view(hit_mask, length, axis=1).sum(axis=-1)
            weight = (windows_blocked == 0) * (1.0 + hit_weight * windows_hits)
            if edge_bonus:
                rows = np.arange(height)[:, None]
                starts = np.arange(width - length + 1)[None, :]
                edge = (rows == 0) | (rows == height - 1) | (starts == 0) | (starts + length == width)
                weight = weight + (windows_blocked == 0) * edge * edge_bonus
            for offset in range(length):
                density[:, offset : offset + width - length + 1] += weight
        if length <= height:
            windows_blocked = sliding_window_view(blocked, length, axis=0).sum(axis=-1)
            windows_hits = sliding_window_view(hit_mask, length, axis=0).sum(axis=-1)
            weight = (windows_blocked == 0) * (1.0 + hit_weight * windows_hits)
            if edge_bonus:
                starts = np.arange(height - length + 1)[:, None]
                cols = np.arange(width)[None, :]
                edge = (cols == 0) | (cols == width - 1) | (starts == 0) | (starts + length == height)
                weight = weight + (windows_blocked == 0) * edge * edge_bonus
            for offset in range(length):
                density[offset : offset + height - length + 1, :] += weight

    density[board.hits] = 0.0
    return density


def normalize_grid(grid: np.ndarray) -> np.ndarray:
    """Scale a non-negative grid into ``[0, 1]``."""
    clipped = np.clip(grid, 0.0, None)
    peak = float(clipped.max()) if clipped.size else 0.0
    if peak <= 0.0:
        return np.zeros_like(clipped)
    return clipped / peak


def probability_grid(
    board: BoardState,
    memory: AIMemory,
    lengths: Sequence[int],
    *,
    edge_bonus: float = 0.0,
) -> np.ndarray:
    """Estimated P(ship present) per cell, in ``[0, 1]``; zero on attacked cells."""
    return normalize_grid(placement_density(board, memory, lengths, edge_bonus=edge_bonus))


def select_high_value_targets(
    grid: np.ndarray, board: BoardState, threshold: float, limit: int = 10
) -> list[Coord]:
    """Un-hit cells whose probability reaches ``threshold``, best first."""
    ys, xs = np.nonzero((grid >= threshold) & ~board.hits & (grid > 0.0))
    cells = sorted(
        (Coord(int(x), int(y)) for y, x in zip(ys, xs)),
        key=lambda c: (-grid[c.y, c.x], c.y, c.x),
    )
    return cells[:limit]


def extrapolate_danger_zones(
    history: Sequence[OpponentMove], board: BoardState, reach: int = 2
) -> list[Coord]:
    """Project the opponent's last attack step forward, keeping un-hit cells only."""
    targets = [move.target for move in history if move.kind is MoveKind.ATTACK and move.target]
    if len(targets) < 2:
        return []
    prev, last = targets[-2], targets[-1]
    dx, dy = last.x - prev.x, last.y - prev.y
    if dx == 0 and dy == 0:
        return []
    zones: list[Coord] = []
    for step in range(1, reach + 1):
        cell = Coord(last.x + dx * step, last.y + dy * step)
        if board.in_bounds(cell) and not board.is_hit(cell):
            zones.append(cell)
    return zones


def adjacent_hit_count(coord: Coord, hits: Iterable[Coord]) -> int:
    hit_set = hits if isinstance(hits, set) else set(hits)
    return sum(
        1
        for dx, dy in ((0, -1), (0, 1), (-1, 0), (1, 0))
        if Coord(coord.x + dx, coord.y + dy) in hit_set
    )


def completes_line(coord: Coord, hits: set[Coord]) -> bool:
    """True when firing at ``coord`` bridges or extends two hits on one axis."""
    for dx, dy in ((1, 0), (0, 1)):
        forward = Coord(coord.x + dx, coord.y + dy)
        backward = Coord(coord.x - dx, coord.y - dy)
        if forward in hits and backward in hits:
            return True
        if forward in hits and Coord(coord.x + 2 * dx, coord.y + 2 * dy) in hits:
            return True
        if backward in hits and Coord(coord.x - 2 * dx, coord.y - 2 * dy) in hits:
            return True
    return False


def checkerboard_cells(width: int, height: int) -> list[Coord]:
    """Stride-two parity cells; every ship of length two or more covers one."""
    return [Coord(x, y) for y in range(height) for x in range(width) if (x + y) % 2 == 0]


def best_cells(grid: np.ndarray, candidates: Sequence[Coord], count: int) -> list[Coord]:
    """Top ``count`` candidates by grid value with row-major tie-break."""
    ranked = sorted(candidates, key=lambda c: (-grid[c.y, c.x], c.y, c.x))
    return ranked[:count]


def ships_fitting_at(
    board: BoardState, memory: AIMemory, cell: Coord, lengths: Sequence[int]
) -> int:
    """How many of the remaining ships could still lie across ``cell``."""
    blocked = blocked_mask(board, memory)
    count = 0
    for length in lengths:
        if _fits_through(blocked, cell, length):
            count += 1
    return count


def _fits_through(blocked: np.ndarray, cell: Coord, length: int) -> bool:
    height, width = blocked.shape
    for dx, dy in ((1, 0), (0, 1)):
        for offset in range(length):
            x0, y0 = cell.x - dx * offset, cell.y - dy * offset
            x1, y1 = x0 + dx * (length - 1), y0 + dy * (length - 1)
            if x0 < 0 or y0 < 0 or x1 >= width or y1 >= height:
                continue
            if not blocked[y0 : y1 + 1, x0 : x1 + 1].any():
                return True
    return False
