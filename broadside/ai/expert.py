"""Expert tier: weighted strategy ensemble with lookahead, rollouts and counter-play."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

import numpy as np

from broadside.ai.analysis import (
    adjacent_hit_count,
    best_cells,
    completes_line,
    extrapolate_danger_zones,
    normalize_grid,
    probability_grid,
    select_high_value_targets,
    ships_fitting_at,
)
from broadside.ai.decision import Action, AIContext, AIDecision, DecisionType
from broadside.ai.opponent import OpponentBehavior, OpponentModel, PatternType
from broadside.ai.policy import (
    AIState,
    attack,
    best_square,
    make_decision,
    ready_abilities,
    require_board,
    scan_place,
    to_positions,
)
from broadside.ai.search import NeuralScorer, TTLCache, minimax, monte_carlo
from broadside.ai.settings import DifficultyLevel
from broadside.ai.utility import ranked, weighted_choice
from broadside.core.board import BoardState
from broadside.core.models import (
    AttackResult,
    Coord,
    Orientation,
    PowerupType,
    ShipKind,
    ShipPosition,
)
from broadside.placement.domain import (
    PlacedShip,
    PlacementRules,
    create_placed_ship,
    valid_placements,
)

logger = logging.getLogger(__name__)

BASE_STRATEGY_WEIGHTS: dict[str, float] = {
    "aggressive_hunt": 1.0,
    "probability_maximum": 1.0,
    "pattern_exploitation": 1.0,
    "misdirection": 0.8,
    "adaptive_targeting": 1.2,
    "minimax": 1.5,
    "monte_carlo": 1.3,
}

COUNTER_EFFECTIVENESS: dict[PatternType, tuple[str, float]] = {
    PatternType.DIAGONAL: ("counter_diagonal", 0.8),
    PatternType.EDGE_HEAVY: ("counter_edge_heavy", 0.75),
    PatternType.LINEAR: ("counter_systematic", 0.85),
    PatternType.SPIRAL: ("counter_systematic", 0.85),
}

ATTACK_CANDIDATES = 10
EXPLORATION_POOL = 3
STRATEGY_BONUS = 1.2
ABILITY_THRESHOLD = 0.7
POWERUP_THRESHOLD = 0.65
PLACEMENT_POOL = 5
PLACEMENT_DECAY = 0.7
COUNTER_MIN_CONFIDENCE = 0.5
SYNERGY_ABILITIES = frozenset(
    {"SonarPing", "Barrage", "AirScout", "ArmorPiercing", "SilentRunning", "AllBigGuns"}
)


class GamePhase(StrEnum):
    EARLY = "early"
    MID = "mid"
    LATE = "late"


def game_phase(turn: int) -> GamePhase:
    if turn < 10:
        return GamePhase.EARLY
    if turn < 30:
        return GamePhase.MID
    return GamePhase.LATE


@dataclass(frozen=True, slots=True)
class CounterStrategy:
    name: str
    pattern: PatternType
    effectiveness: float


@dataclass(frozen=True, slots=True)
class ScoredAction:
    action: Action
    score: float


def strategy_weights(opponent: OpponentModel) -> dict[str, float]:
    """Base ensemble weights re-tuned for the observed opponent class."""
    weights = dict(BASE_STRATEGY_WEIGHTS)
    behavior = opponent.observed_behavior
    if behavior is OpponentBehavior.AGGRESSIVE:
        weights["misdirection"] = 1.5
        weights["adaptive_targeting"] = 1.3
    elif behavior is OpponentBehavior.DEFENSIVE:
        weights["aggressive_hunt"] = 1.4
        weights["pattern_exploitation"] = 1.2
    elif behavior is OpponentBehavior.UNPREDICTABLE:
        weights["monte_carlo"] = 1.5
        weights["probability_maximum"] = 1.2
    return weights


def counter_strategies(opponent: OpponentModel) -> dict[str, CounterStrategy]:
    counters: dict[str, CounterStrategy] = {}
    for pattern in opponent.targeting_patterns:
        if pattern.confidence < COUNTER_MIN_CONFIDENCE:
            continue
        name, effectiveness = COUNTER_EFFECTIVENESS[pattern.kind]
        counters[name] = CounterStrategy(name, pattern.kind, effectiveness)
    return counters


class ExpertPolicy:
    """Scores attacks, abilities and powerups together and picks with light exploration."""

    level = DifficultyLevel.EXPERT

    def __init__(
        self,
        *,
        exploration_rate: float = 0.15,
        mcts_simulations: int = 100,
        minimax_depth: int = 3,
        cache_ttl_seconds: float = 5.0,
        cache: TTLCache | None = None,
    ) -> None:
        self.exploration_rate = exploration_rate
        self.mcts_simulations = mcts_simulations
        self.minimax_depth = minimax_depth
        self.cache = cache or TTLCache(cache_ttl_seconds)
        self.weights = dict(BASE_STRATEGY_WEIGHTS)
        self.counters: dict[str, CounterStrategy] = {}
        self.current_strategy = "probability_maximum"
        self._scorer: NeuralScorer | None = None

    def reset(self) -> None:
        self.cache.clear()
        self.weights = dict(BASE_STRATEGY_WEIGHTS)
        self.counters = {}
        self.current_strategy = "probability_maximum"

    def observe(self, result: AttackResult, state: AIState) -> None:
        return None

    def decide(self, context: AIContext, state: AIState) -> AIDecision:
        board = require_board(context)
        if not board.unhit_cells():
            raise RuntimeError("no un-hit cells left to target")
        if self._scorer is None:
            self._scorer = NeuralScorer(state.rng.getrandbits(32))
        self.cache.prune()
        self.weights = strategy_weights(state.opponent)
        self.counters = counter_strategies(state.opponent)

        grid = self.cell_probabilities(board, state)
        analysis = state.ensure_analysis(board)
        analysis.probability_grid = grid
        analysis.high_value_targets = select_high_value_targets(
            grid, board, 0.7 - 0.3 * board.shot_ratio()
        )
        analysis.danger_zones = extrapolate_danger_zones(context.opponent_history, board)

        self.current_strategy = weighted_choice(self.weights, state.rng)
        preferred = self._strategy_target(self.current_strategy, board, grid, state)
        evaluated = self._evaluate(context, state, board, grid, preferred)

        if len(evaluated) > 1 and state.rng.random() < self.exploration_rate:
            selected = state.rng.choice(evaluated[:EXPLORATION_POOL])
        else:
            selected = evaluated[0]

        phase = game_phase(context.turn)
        factors = [
            f"action_score:{selected.score:.1f}",
            f"strategy:{self.current_strategy}",
            f"countering:{state.opponent.observed_behavior.value}",
            f"phase:{phase.value}",
        ]
        factors.extend(sorted(self.counters))
        risk = max(0.0, min(1.0, 1.0 - selected.score / 100.0))
        confidence = min(0.99, 0.8 + (selected.score / 100.0) * 0.15)
        alternatives = [item.action for item in evaluated if item is not selected][:3]
        logger.debug(
            "expert_decision strategy=%s score=%.1f type=%s",
            self.current_strategy,
            selected.score,
            selected.action.type,
        )
        return make_decision(
            selected.action,
            factors,
            risk,
            confidence,
            alternatives=alternatives,
            expected_outcome="High probability of success" if selected.score > 70 else "Exploratory action",
        )

    def cell_probabilities(self, board: BoardState, state: AIState) -> np.ndarray:
        """Blend of geometric, Bayesian-style and pattern priors, in ``[0, 1]``."""
        lengths = state.remaining_lengths()
        base = probability_grid(board, state.memory, lengths)
        hits = set(state.memory.unsunk_hits())
        grid = np.zeros_like(base)
        for cell in board.unhit_cells():
            possible = ships_fitting_at(board, state.memory, cell, lengths)
            bayes = min(1.0, 0.3 * (possible / 5) * (1 + 0.5 * adjacent_hit_count(cell, hits)))
            grid[cell.y, cell.x] = (
                0.3 * base[cell.y, cell.x] + 0.5 * bayes + 0.2 * _pattern_prior(cell, state.opponent)
            )
        return np.clip(grid, 0.0, 1.0)

    def _strategy_target(
        self, strategy: str, board: BoardState, grid: np.ndarray, state: AIState
    ) -> Coord:
        candidates = board.unhit_cells()
        best = best_cells(grid, candidates, 1)[0]
        hits = set(state.memory.unsunk_hits())
        if strategy == "aggressive_hunt":
            padded = np.pad(grid, 1)
            local = sum(
                padded[dy : dy + board.height, dx : dx + board.width]
                for dy in range(3)
                for dx in range(3)
            )
            return best_cells(local, candidates, 1)[0]
        if strategy == "pattern_exploitation":
            finishing = [c for c in candidates if completes_line(c, hits)]
            return best_cells(grid, finishing, 1)[0] if finishing else best
        if strategy == "misdirection":
            recent = state.memory.shots_fired[-3:]
            far = [c for c in candidates if all(max(abs(c.x - r.x), abs(c.y - r.y)) > 2 for r in recent)]
            return best_cells(grid, far, 1)[0] if far else best
        if strategy == "adaptive_targeting" and state.analysis is not None:
            heat = normalize_grid(state.analysis.heat_map)
            return best_cells(grid * (1.0 + heat), candidates, 1)[0]
        if strategy in ("minimax", "monte_carlo"):
            top = [(c, float(grid[c.y, c.x])) for c in best_cells(grid, candidates, ATTACK_CANDIDATES)]
            if strategy == "minimax":
                result = minimax(
                    top,
                    depth=self.minimax_depth,
                    own_health=1.0,
                    enemy_health=1.0 - state.memory.accuracy() * 0.5,
                    opponent_skill=state.opponent.estimated_skill,
                )
                if result.cell is not None and not result.inconclusive:
                    return result.cell
            rollout = monte_carlo(top, state.rng, self.mcts_simulations)
            if rollout.cell is not None:
                return rollout.cell
        return best

    def _evaluate(
        self,
        context: AIContext,
        state: AIState,
        board: BoardState,
        grid: np.ndarray,
        preferred: Coord,
    ) -> list[ScoredAction]:
        candidates = best_cells(grid, board.unhit_cells(), ATTACK_CANDIDATES)
        if preferred not in candidates:
            candidates.append(preferred)
        hits = set(state.memory.unsunk_hits())
        multiplier = _game_state_multiplier(context)

        scored: dict[Action, float] = {}
        for cell in candidates:
            action = attack(cell)
            base = self.cache.get_or_compute(
                f"eval_{state.games_played}_{cell.x}_{cell.y}_{context.turn}",
                lambda cell=cell: self._attack_score(cell, board, grid, hits, state),
            )
            score = base * multiplier * _opponent_multiplier(action, state.opponent)
            if cell == preferred:
                score *= STRATEGY_BONUS
            scored[action] = score

        top_cell = max(candidates, key=lambda c: scored[attack(c)])
        best_attack = scored[attack(top_cell)]
        for ship, ability in ready_abilities(context.own_ships):
            value = self._ability_value(ability.name, context, state)
            if value <= ABILITY_THRESHOLD:
                continue
            action = Action(
                type=DecisionType.ABILITY_USE, target=top_cell, ability=ability.name, ship_id=ship.id
            )
            scored[action] = best_attack + 10.0 * value

        phase = game_phase(context.turn)
        for powerup in context.available_powerups:
            value = self._powerup_value(powerup, phase, state)
            if value <= POWERUP_THRESHOLD:
                continue
            action = self._powerup_action(powerup, board, grid)
            if action is None:
                continue
            score = 50.0
            if phase is GamePhase.EARLY and powerup is PowerupType.RADAR_SCAN:
                score += 30.0
            elif phase is GamePhase.LATE and powerup is PowerupType.BARRAGE:
                score += 40.0
            scored[action] = score * multiplier * _opponent_multiplier(action, state.opponent)

        return [ScoredAction(action, scored[action]) for action in ranked(scored)]

    def _attack_score(
        self,
        cell: Coord,
        board: BoardState,
        grid: np.ndarray,
        hits: set[Coord],
        state: AIState,
    ) -> float:
        probability = float(grid[cell.y, cell.x])
        score = probability * 100.0
        if completes_line(cell, hits):
            score += 30.0
        if _would_finish_ship(cell, state):
            score += 50.0
        score += _information_gain(probability) * 20.0
        if self._scorer is not None:
            score += self._scorer.score(self._scorer.encode(board, state.memory.hit_cells(), cell)) * 25.0
        return score

    def _ability_value(self, name: str, context: AIContext, state: AIState) -> float:
        value = 0.5
        if name in SYNERGY_ABILITIES:
            value += 0.3
        if state.opponent.observed_behavior is OpponentBehavior.AGGRESSIVE:
            value += 0.25
        value += 0.2 * min(1.0, context.turn / max(1, context.max_turns))
        return min(1.0, value)

    def _powerup_value(self, powerup: PowerupType, phase: GamePhase, state: AIState) -> float:
        value = 0.5
        if phase is GamePhase.EARLY and powerup is PowerupType.RADAR_SCAN:
            value += 0.3
        elif phase is GamePhase.MID and powerup is PowerupType.SONAR_PING:
            value += 0.25
        elif phase is GamePhase.LATE and powerup is PowerupType.BARRAGE:
            value += 0.35
        if state.memory.confirmed_ships and powerup is PowerupType.BARRAGE:
            value += 0.2
        if state.memory.accuracy() < 0.4 and powerup in (PowerupType.SONAR_PING, PowerupType.RADAR_SCAN):
            value += 0.25
        return min(1.0, value)

    def _powerup_action(
        self, powerup: PowerupType, board: BoardState, grid: np.ndarray
    ) -> Action | None:
        if powerup is PowerupType.BARRAGE:
            cells = best_square(board, grid, 3)
        elif powerup is PowerupType.RADAR_SCAN:
            cells = best_square(board, grid, 2)
        elif powerup is PowerupType.SONAR_PING:
            cells = best_cells(grid, board.unhit_cells(), 5)
        else:
            cells = best_cells(grid, board.unhit_cells(), 1)
        if not cells:
            return None
        primary = best_cells(grid, cells, 1)[0]
        return Action(type=DecisionType.POWERUP_USE, target=primary, powerup=powerup, area=tuple(cells))

    def place_fleet(
        self, ships: Sequence[ShipKind], state: AIState, board_size: int
    ) -> list[ShipPosition]:
        """Anti-pattern layout chosen from the opponent class, drawn from the top five spots."""
        strategy = placement_strategy_for(state.opponent.observed_behavior)
        counters = counter_strategies(state.opponent)
        spaced = PlacementRules(board_size=board_size, allow_touch=False)
        touching = PlacementRules(board_size=board_size, allow_touch=True)
        placed: list[PlacedShip] = []
        for kind in sorted(ships, key=lambda k: k.size, reverse=True):
            ship_id = f"{kind.value.lower()}_{len(placed) + 1}"
            options = valid_placements(kind.size, placed, spaced) or valid_placements(
                kind.size, placed, touching
            )
            if not options:
                fallback = scan_place(kind, placed, board_size)
                if fallback is None:
                    logger.warning("expert_placement_failed kind=%s", kind)
                    continue
                placed.append(fallback)
                continue
            scored = []
            for origin, orientation in options:
                candidate = create_placed_ship(ship_id, kind, origin, orientation)
                value = strategic_placement_score(
                    candidate, placed, strategy, counters, board_size, state.rng.random()
                )
                scored.append((value, candidate))
            scored.sort(key=lambda item: -item[0])
            pool = scored[:PLACEMENT_POOL]
            weights = {index: PLACEMENT_DECAY**index for index in range(len(pool))}
            placed.append(pool[weighted_choice(weights, state.rng)][1])
        logger.debug("expert_fleet_placed strategy=%s ships=%d", strategy, len(placed))
        return to_positions(placed)


def placement_strategy_for(behavior: OpponentBehavior) -> str:
    if behavior is OpponentBehavior.AGGRESSIVE:
        return "defensive_spread"
    if behavior is OpponentBehavior.DEFENSIVE:
        return "aggressive_cluster"
    if behavior is OpponentBehavior.UNPREDICTABLE:
        return "random_anti_pattern"
    return "balanced_distribution"


def strategic_placement_score(
    ship: PlacedShip,
    placed: Sequence[PlacedShip],
    strategy: str,
    counters: dict[str, CounterStrategy],
    board_size: int,
    noise: float,
) -> float:
    """Score one candidate spot; ``noise`` in ``[0, 1)`` feeds the anti-pattern jitter."""
    last = board_size - 1
    edge = sum(1 for c in ship.cells if c.x in (0, last) or c.y in (0, last)) / ship.length
    spacing = _spacing(ship, placed, board_size)
    mid = last / 2
    center = 1.0 - sum(abs(c.x - mid) + abs(c.y - mid) for c in ship.cells) / (ship.length * 2 * mid or 1)

    score = 100.0
    if strategy == "defensive_spread":
        score += spacing * 20 - edge * 10
    elif strategy == "aggressive_cluster":
        score += center * 10 - spacing * 15
    elif strategy == "random_anti_pattern":
        score += noise * 50 - _alignment(ship, placed) * 20
    else:
        score += _quadrant_balance(ship, placed, board_size) * 15

    if ship.kind is ShipKind.SUBMARINE:
        score += spacing * 10
    elif ship.kind is ShipKind.CARRIER:
        score += (1.0 - edge) * 15

    if "counter_edge_heavy" in counters:
        score -= edge * 10 * counters["counter_edge_heavy"].effectiveness
    if "counter_diagonal" in counters:
        on_diagonal = sum(1 for c in ship.cells if c.x == c.y or c.x + c.y == last)
        score -= on_diagonal * 5 * counters["counter_diagonal"].effectiveness
    if "counter_systematic" in counters:
        score += noise * 10 * counters["counter_systematic"].effectiveness
    return score


def _spacing(ship: PlacedShip, placed: Sequence[PlacedShip], board_size: int) -> float:
    if not placed:
        return 1.0
    nearest = min(
        max(abs(a.x - b.x), abs(a.y - b.y)) for other in placed for a in ship.cells for b in other.cells
    )
    return min(1.0, nearest / max(1, board_size // 2))


def _alignment(ship: PlacedShip, placed: Sequence[PlacedShip]) -> float:
    for other in placed:
        if other.orientation is not ship.orientation:
            continue
        if ship.orientation is Orientation.HORIZONTAL and other.origin.y == ship.origin.y:
            return 1.0
        if ship.orientation is Orientation.VERTICAL and other.origin.x == ship.origin.x:
            return 1.0
    return 0.0


def _quadrant(cell: Coord, board_size: int) -> int:
    half = board_size / 2
    return (1 if cell.x >= half else 0) + (2 if cell.y >= half else 0)


def _quadrant_balance(ship: PlacedShip, placed: Sequence[PlacedShip], board_size: int) -> float:
    counts = [0, 0, 0, 0]
    for other in placed:
        counts[_quadrant(other.cells[0], board_size)] += 1
    occupancy = counts[_quadrant(ship.cells[0], board_size)]
    return 1.0 / (1 + occupancy)


def _pattern_prior(cell: Coord, opponent: OpponentModel) -> float:
    probability = 0.5
    for pattern in opponent.targeting_patterns:
        if any(max(abs(cell.x - e.x), abs(cell.y - e.y)) <= 2 for e in pattern.examples):
            probability += pattern.confidence * 0.2
    return min(1.0, probability)


def _would_finish_ship(cell: Coord, state: AIState) -> bool:
    """A known-kind ship one hit from sinking whose open end is ``cell``."""
    for ship in state.memory.active_ships():
        if ship.kind is None or len(ship.positions) != ship.kind.size - 1:
            continue
        if ship.orientation is None and len(ship.positions) > 1:
            continue
        for known in ship.positions:
            if abs(known.x - cell.x) + abs(known.y - cell.y) != 1:
                continue
            if ship.orientation is Orientation.HORIZONTAL and known.y != cell.y:
                continue
            if ship.orientation is Orientation.VERTICAL and known.x != cell.x:
                continue
            return True
    return False


def _information_gain(probability: float) -> float:
    """Binary entropy of a shot outcome, in bits."""
    if probability <= 0.0 or probability >= 1.0:
        return 0.0
    return -(probability * math.log2(probability) + (1 - probability) * math.log2(1 - probability))


def _game_state_multiplier(context: AIContext) -> float:
    ships = context.own_ships
    health = 100.0 * sum(ship.health for ship in ships) / len(ships) if ships else 100.0
    multiplier = 1.0
    if health < 30:
        multiplier *= 1.3
    elif health > 70:
        multiplier *= 0.9
    if context.turn / max(1, context.max_turns) > 0.7:
        multiplier *= 1.2
    return multiplier


def _opponent_multiplier(action: Action, opponent: OpponentModel) -> float:
    if opponent.observed_behavior is OpponentBehavior.AGGRESSIVE and action.type is DecisionType.ATTACK:
        return 1.1
    if opponent.observed_behavior is OpponentBehavior.DEFENSIVE and action.type is DecisionType.POWERUP_USE:
        return 1.15
    return 1.0

