"""Opponent modeling: skill estimate, behavior class and shot-pattern detection."""

from __future__ import annotations

import logging
import math
import statistics
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from broadside.ai.decision import MoveKind, OpponentMove
from broadside.core.models import BOARD_SIZE, Coord

logger = logging.getLogger(__name__)

PATTERN_CONFIDENCE_STEP = 0.1
PATTERN_WINDOW = 10
MIN_ATTACKS_FOR_PATTERNS = 5
UNPREDICTABLE_VARIATION = 0.75


class OpponentBehavior(StrEnum):
    AGGRESSIVE = "aggressive"
    DEFENSIVE = "defensive"
    BALANCED = "balanced"
    UNPREDICTABLE = "unpredictable"


class PatternType(StrEnum):
    LINEAR = "linear"
    DIAGONAL = "diagonal"
    SPIRAL = "spiral"
    EDGE_HEAVY = "edge_heavy"


@dataclass(slots=True)
class DetectedPattern:
    """A recurring shot pattern; confidence only ever grows."""

    kind: PatternType
    description: str
    confidence: float
    occurrences: int = 1
    examples: list[Coord] = field(default_factory=list)
    last_seen_turn: int = 0


@dataclass(slots=True)
class OpponentModel:
    """What this AI believes about the opponent."""

    estimated_skill: float = 0.5
    observed_behavior: OpponentBehavior = OpponentBehavior.BALANCED
    targeting_patterns: list[DetectedPattern] = field(default_factory=list)
    attack_frequency: float = 1.0
    powerup_frequency: float = 0.0
    moves_seen: int = 0

    @property
    def predictability(self) -> float:
        return max((p.confidence for p in self.targeting_patterns), default=0.0)

    @property
    def aggression(self) -> float:
        return min(1.0, self.attack_frequency * 0.7 + self.powerup_frequency * 3.0)

    def pattern(self, kind: PatternType) -> DetectedPattern | None:
        for item in self.targeting_patterns:
            if item.kind is kind:
                return item
        return None

    def observe(self, history: Sequence[OpponentMove], board_size: int = BOARD_SIZE) -> None:
        """Refresh skill/behavior and fold newly seen moves into pattern memory."""
        if len(history) <= self.moves_seen:
            return
        self.moves_seen = len(history)
        attacks = [move for move in history if move.kind is MoveKind.ATTACK and move.target]
        if attacks:
            self.estimated_skill = sum(1 for move in attacks if move.hit) / len(attacks)
        total = len(history)
        self.attack_frequency = sum(1 for m in history if m.kind is MoveKind.ATTACK) / total
        self.powerup_frequency = sum(1 for m in history if m.kind is MoveKind.POWERUP) / total
        self.observed_behavior = classify_behavior(
            self.attack_frequency, self.powerup_frequency, attacks
        )
        if len(attacks) < MIN_ATTACKS_FOR_PATTERNS:
            return
        turn = history[-1].turn
        recent = [move.target for move in attacks[-PATTERN_WINDOW:] if move.target is not None]
        for detected in detect_patterns(recent, board_size):
            self.store_pattern(detected, turn)

    def store_pattern(self, detected: DetectedPattern, turn: int) -> DetectedPattern:
        existing = self.pattern(detected.kind)
        if existing is None:
            detected.last_seen_turn = turn
            self.targeting_patterns.append(detected)
            logger.debug("opponent_pattern_new kind=%s conf=%.2f", detected.kind, detected.confidence)
            return detected
        existing.occurrences += 1
        existing.confidence = min(
            1.0, max(existing.confidence, detected.confidence) + PATTERN_CONFIDENCE_STEP
        )
        existing.examples = list(detected.examples)
        existing.last_seen_turn = turn
        return existing

    def clear_history(self) -> None:
        """Drop all learned patterns; the only way confidence ever decreases."""
        self.targeting_patterns.clear()
        self.estimated_skill = 0.5
        self.observed_behavior = OpponentBehavior.BALANCED
        self.attack_frequency = 1.0
        self.powerup_frequency = 0.0
        self.moves_seen = 0


def classify_behavior(
    attack_frequency: float,
    powerup_frequency: float,
    attacks: Sequence[OpponentMove],
) -> OpponentBehavior:
    if attack_frequency > 0.8 and powerup_frequency > 0.1:
        return OpponentBehavior.AGGRESSIVE
    if attack_frequency < 0.6:
        return OpponentBehavior.DEFENSIVE
    if _step_variation([m.target for m in attacks if m.target is not None]) > UNPREDICTABLE_VARIATION:
        return OpponentBehavior.UNPREDICTABLE
    return OpponentBehavior.BALANCED


def _step_variation(targets: Sequence[Coord]) -> float:
    """Coefficient of variation of consecutive shot distances."""
    if len(targets) < 4:
        return 0.0
    steps = [math.dist((a.x, a.y), (b.x, b.y)) for a, b in zip(targets, targets[1:])]
    mean = statistics.fmean(steps)
    if mean == 0:
        return 0.0
    return statistics.pstdev(steps) / mean


def detect_patterns(targets: Sequence[Coord], board_size: int = BOARD_SIZE) -> list[DetectedPattern]:
    """Detect linear, diagonal, spiral and edge-heavy shot sequences."""
    found: list[DetectedPattern] = []
    if len(targets) < 2:
        return found
    steps = [(b.x - a.x, b.y - a.y) for a, b in zip(targets, targets[1:])]
    examples = list(targets[-5:])

    if len(targets) >= MIN_ATTACKS_FOR_PATTERNS and len(set(steps)) == 1 and steps[0] != (0, 0):
        dx, dy = steps[0]
        found.append(
            DetectedPattern(
                kind=PatternType.LINEAR,
                description=f"step ({dx},{dy})",
                confidence=0.8,
                examples=examples,
            )
        )

    diagonal = sum(1 for dx, dy in steps if abs(dx) == 1 and abs(dy) == 1)
    if diagonal / len(steps) >= 0.6:
        found.append(
            DetectedPattern(
                kind=PatternType.DIAGONAL,
                description="diagonal sweep",
                confidence=0.7,
                examples=examples,
            )
        )

    mid = (board_size - 1) / 2
    distances = [math.hypot(c.x - mid, c.y - mid) for c in targets]
    outward = sum(1 for a, b in zip(distances, distances[1:]) if b > a)
    if outward / len(steps) >= 0.6:
        found.append(
            DetectedPattern(
                kind=PatternType.SPIRAL,
                description="outward spiral",
                confidence=0.6,
                examples=examples,
            )
        )

    last = board_size - 1
    edge = sum(1 for c in targets if c.x in (0, last) or c.y in (0, last))
    if edge / len(targets) > 0.5:
        found.append(
            DetectedPattern(
                kind=PatternType.EDGE_HEAVY,
                description="border-first search",
                confidence=0.6,
                examples=examples,
            )
        )
    return found
