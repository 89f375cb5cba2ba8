"""
Board Analyzer - Summarizes a battle board for the planner.

The analysis is computed once per planning call from the acting side's
point of view and drives which tactics fire.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Sequence

from ..engine_core.state import Creature, Difficulty, Rarity


IMMEDIATE_THREAT_RATIO = 0.3
CRITICAL_RATIO = 0.15
CRITICAL_LEGENDARY_RATIO = 0.25
WEAK_ENEMY_RATIO = 0.4


@dataclass
class BoardAnalysis:
    """Summary of the board for one side."""
    own_total_power: int = 0
    opposing_total_power: int = 0
    own_avg_health: float = 0.0
    opposing_avg_health: float = 0.0

    immediate_threats: list[Creature] = field(default_factory=list)  # Own creatures below 30%
    critical_creatures: list[Creature] = field(default_factory=list)
    weak_enemies: list[Creature] = field(default_factory=list)

    should_attack_aggressively: bool = False
    field_control_ratio: float = 0.0
    energy_efficiency: float = 0.0
    hand_quality: float = 0.0
    board_tension: float = 0.0

    def is_weak_enemy(self, creature: Creature) -> bool:
        return any(c.creature_id == creature.creature_id for c in self.weak_enemies)


def _avg_health(field: Sequence[Creature]) -> float:
    if not field:
        return 0.0
    return sum(c.health_ratio for c in field) / len(field)


def analyze_board(
    own_field: Sequence[Creature],
    opposing_field: Sequence[Creature],
    own_hand: Sequence[Creature],
    energy: int,
    difficulty: Difficulty,
) -> BoardAnalysis:
    """
    Analyze the board from the acting side's point of view.

    Aggression is triggered by a power, health or numbers advantage, by
    two or more finishable enemies, on hard and expert, or by a tense
    board the acting side is not losing.
    """
    analysis = BoardAnalysis(
        energy_efficiency=energy / max(len(own_field), 1),
    )

    for creature in own_field:
        analysis.own_total_power += creature.power
        ratio = creature.health_ratio
        if ratio < IMMEDIATE_THREAT_RATIO:
            analysis.immediate_threats.append(creature)
        if ratio < CRITICAL_RATIO or (creature.rarity is Rarity.LEGENDARY and ratio < CRITICAL_LEGENDARY_RATIO):
            analysis.critical_creatures.append(creature)

    for creature in opposing_field:
        analysis.opposing_total_power += creature.power
        if creature.health_ratio < WEAK_ENEMY_RATIO:
            analysis.weak_enemies.append(creature)

    analysis.own_avg_health = _avg_health(own_field)
    analysis.opposing_avg_health = _avg_health(opposing_field)

    if own_hand:
        analysis.hand_quality = sum(
            c.power / max(c.deployment_cost, 1) for c in own_hand
        ) / len(own_hand)

    own, opposing = analysis.own_total_power, analysis.opposing_total_power
    analysis.board_tension = abs(own - opposing) / max(own, opposing, 1)
    analysis.field_control_ratio = len(own_field) / max(len(opposing_field), 1)

    analysis.should_attack_aggressively = (
        own > opposing * 1.2
        or analysis.own_avg_health > analysis.opposing_avg_health * 1.3
        or analysis.field_control_ratio >= 1.5
        or len(analysis.weak_enemies) >= 2
        or difficulty.is_hard_or_above
        or (analysis.board_tension > 0.6 and own >= opposing)
    )
    return analysis
