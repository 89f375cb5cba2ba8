"""
Heuristic Evaluator - Scores creatures, items and board states for the planner.

The evaluator assigns numeric scores used by the tactics:
- Deployment candidates (stats, attack power, rarity, form, matchups, synergy)
- Defensive tools for a creature in danger
- (spell, caster, target) options
- Attack target priorities
- Whole-board material for one side

Weights can be adjusted to create different personalities.
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Sequence

from ..engine_core.combat import type_advantage
from ..engine_core.state import Creature, Difficulty, ItemEffect, Rarity, Spell, Tool

if TYPE_CHECKING:
    from ..engine_core.state import BattleState, Side
    from .analyzer import BoardAnalysis


DEPLOY_RARITY = {Rarity.COMMON: 1.0, Rarity.RARE: 1.3, Rarity.EPIC: 1.6, Rarity.LEGENDARY: 2.0}
SPELL_RARITY = {Rarity.COMMON: 1.0, Rarity.RARE: 1.1, Rarity.EPIC: 1.3, Rarity.LEGENDARY: 1.5}
TOOL_RARITY_SCORE = {Rarity.COMMON: 10, Rarity.RARE: 20, Rarity.EPIC: 30, Rarity.LEGENDARY: 40}
CREATURE_RARITY_VALUE = {Rarity.COMMON: 5, Rarity.RARE: 15, Rarity.EPIC: 30, Rarity.LEGENDARY: 50}
RARITY_RANK = {Rarity.COMMON: 1, Rarity.RARE: 2, Rarity.EPIC: 3, Rarity.LEGENDARY: 4}

# (stat on the new creature, stat on the partner, bonus)
COMPLEMENTARY_STATS = (
    ("strength", "stamina", 1.5),
    ("magic", "energy", 1.5),
    ("speed", "strength", 1.0),
    ("stamina", "magic", 1.0),
    ("energy", "speed", 1.0),
)

# Strong attribute > 7 against a victim attribute > 6
MATCHUP_CYCLE = (
    ("strength", "stamina"),
    ("stamina", "speed"),
    ("speed", "magic"),
    ("magic", "energy"),
    ("energy", "strength"),
)

SPELL_BASE_DAMAGE = 20


@dataclass
class EvaluationWeights:
    """
    Weights for the heuristic evaluator.

    Higher values = more importance.
    Can be adjusted to create different play styles.
    """
    # Deployment
    deploy_stat_total: float = 2.0
    deploy_attack: float = 3.0
    deploy_type_advantage: float = 25.0
    deploy_synergy: float = 10.0
    deploy_heavy_bonus: float = 1.2  # Hard/expert, cost >= 5

    # Spells
    spell_damage: float = 2.0
    spell_lethal: float = 100.0
    spell_magic_specialist: float = 20.0
    spell_per_target: float = 10.0  # Echo or energy spells

    # Attack targets
    target_low_health: float = 100.0  # Below 30%
    target_mid_health: float = 50.0  # Below 50%
    target_threat: float = 2.0
    target_legendary: float = 40.0
    target_epic: float = 25.0
    target_weak: float = 30.0

    # Defensive tools
    shield_missing_health: float = 100.0
    stamina_tank: float = 50.0

    # Board material
    health_point: float = 1.0
    power_point: float = 2.0
    field_creature: float = 10.0
    reserve_creature: float = 5.0
    energy_point: float = 0.5
    opponent_penalty: float = -1.0  # Multiply opponent's material by this


@dataclass
class StateEvaluation:
    """
    Result of evaluating a battle state.
    """
    total_score: float
    side_scores: dict[str, float] = field(default_factory=dict)
    feature_breakdown: dict[str, float] = field(default_factory=dict)


@dataclass
class TargetPriority:
    """An opposing creature ranked for attack assignment."""
    target: Creature
    priority: float
    health_ratio: float
    threat: int


# =============================================================================
# Creature ratings
# =============================================================================

def creature_power(creature: Creature) -> int:
    """Overall strength of a creature: attack, defense, health, utility, form, rarity."""
    stats = creature.battle_stats
    if stats is None:
        return 0
    utility = stats.initiative + stats.critical_chance + stats.dodge_chance
    return round(
        stats.power * 2
        + max(stats.physical_defense, stats.magical_defense)
        + stats.max_health * 0.1
        + utility * 0.5
        + creature.form * 5
        + RARITY_RANK[creature.rarity] * 10
    )


def combat_rating(creature: Creature) -> int:
    """Matchmaking rating of a single creature."""
    stats = creature.battle_stats
    if stats is None:
        return 0
    rating = (
        stats.power * 2
        + (stats.physical_defense + stats.magical_defense) * 0.5
        + stats.max_health * 0.2
        + (stats.initiative + stats.critical_chance + stats.dodge_chance) * 0.5
    )
    return round(rating + creature.form * 50 + RARITY_RANK[creature.rarity] * 30)


def synergy_bonus(creatures: Sequence[Creature]) -> float:
    """Team bonus from same-species and complementary pairs, capped at 0.3."""
    bonus = 0.0
    for i, first in enumerate(creatures):
        for second in creatures[i + 1:]:
            if first.attributes is None or second.attributes is None:
                continue
            if first.species_id == second.species_id:
                bonus += 0.1
            for stat1, stat2, _ in COMPLEMENTARY_STATS:
                if first.attribute(stat1) > 7 and second.attribute(stat2) > 7:
                    bonus += 0.05
    return min(0.3, bonus)


def team_rating(creatures: Sequence[Creature]) -> int:
    if not creatures:
        return 0
    total = sum(combat_rating(c) for c in creatures)
    return round(total * (1 + synergy_bonus(creatures)))


def battle_odds(attacker: Creature, defender: Creature) -> float:
    """Probability-like estimate that attacker beats defender, in [0.1, 0.9]."""
    ratio = creature_power(attacker) * type_advantage(attacker, defender) / max(creature_power(defender), 1)
    return max(0.1, min(0.9, ratio / (ratio + 1)))


def creature_value(creature: Creature) -> float:
    """How much a creature is worth protecting or buffing."""
    total = creature.attributes.total if creature.attributes else 0
    return total + creature.power * 2 + CREATURE_RARITY_VALUE[creature.rarity] + creature.form * 10


def has_type_advantage(attacker: Creature, defender: Creature) -> bool:
    if attacker.attributes is None or defender.attributes is None:
        return False
    return any(
        attacker.attribute(strong) > 7 and defender.attribute(weak) > 6
        for strong, weak in MATCHUP_CYCLE
    )


def field_synergy(creature: Creature, field: Sequence[Creature]) -> float:
    """Synergy of a deployment candidate with the creatures already fielded."""
    score = 0.0
    for partner in field:
        if creature.species_id == partner.species_id:
            score += 2
        for stat1, stat2, bonus in COMPLEMENTARY_STATS:
            if creature.attribute(stat1) > 7 and partner.attribute(stat2) > 7:
                score += bonus
        shared = set(creature.specialties) & set(partner.specialties)
        score += len(shared) * 0.5
    return score


# =============================================================================
# Damage estimates
# =============================================================================

def estimate_attack_damage(attacker: Creature, defender: Creature) -> float:
    """Rough attack damage: the better of atk - def/2 over both attack types."""
    a, d = attacker.battle_stats, defender.battle_stats
    if a is None or d is None:
        return 1
    physical = max(1, a.physical_attack - d.physical_defense * 0.5)
    magical = max(1, a.magical_attack - d.magical_defense * 0.5)
    return max(physical, magical)


def estimate_spell_damage(spell: Spell, caster: Creature, target: Creature) -> int:
    magic = caster.attribute("magic")
    damage = SPELL_BASE_DAMAGE * (1 + magic * 0.15)
    if spell.effect is ItemEffect.SURGE:
        damage *= 1.5
    damage *= SPELL_RARITY.get(spell.rarity, 1.0)
    defense = target.battle_stats.magical_defense if target.battle_stats else 0
    return math.floor(max(1, damage - defense))


# =============================================================================
# Evaluator
# =============================================================================

class HeuristicEvaluator:
    """
    Scores planner options using weighted heuristics.

    Used by the tactics to rank:
    1. Deployment candidates
    2. Defensive tools
    3. Spell options
    4. Attack targets
    """

    def __init__(self, weights: EvaluationWeights | None = None):
        self.weights = weights or EvaluationWeights()

    def deployment_score(
        self,
        creature: Creature,
        own_field: Sequence[Creature],
        opposing_field: Sequence[Creature],
        difficulty: Difficulty,
    ) -> float:
        """
        Score a hand creature for deployment.

        Raw strength scaled by rarity and form, plus matchups against the
        opposing field and synergy with the own field, per energy spent.
        """
        w = self.weights
        total = creature.attributes.total if creature.attributes else 0
        score = total * w.deploy_stat_total + creature.power * w.deploy_attack + creature.max_health
        score *= DEPLOY_RARITY[creature.rarity]
        score *= 1 + creature.form * 0.3

        score += sum(w.deploy_type_advantage for foe in opposing_field if has_type_advantage(creature, foe))
        score += field_synergy(creature, own_field) * w.deploy_synergy

        cost = creature.deployment_cost
        score /= cost
        if difficulty.is_hard_or_above and cost >= 5:
            score *= w.deploy_heavy_bonus
        return score

    def defensive_tool_score(self, tool: Tool, creature: Creature) -> float:
        w = self.weights
        score = 0.0
        if tool.effect is ItemEffect.SHIELD:
            score += (1 - creature.health_ratio) * w.shield_missing_health
        if tool.item_type == "stamina" and creature.attribute("stamina") > 7:
            score += w.stamina_tank
        return score + TOOL_RARITY_SCORE.get(tool.rarity, 10)

    def spell_option_score(
        self,
        spell: Spell,
        caster: Creature,
        target: Creature,
        all_targets: Sequence[Creature],
    ) -> float:
        w = self.weights
        damage = estimate_spell_damage(spell, caster, target)
        score = damage * w.spell_damage
        if damage >= target.current_health:
            score += w.spell_lethal
        score += target.power
        if caster.has_specialty("magic"):
            score += w.spell_magic_specialist
        if spell.effect is ItemEffect.ECHO or spell.item_type == "energy":
            score += len(all_targets) * w.spell_per_target
        return score

    def target_priorities(
        self,
        opposing_field: Sequence[Creature],
        analysis: BoardAnalysis,
    ) -> list[TargetPriority]:
        """Rank opposing creatures, highest priority first."""
        w = self.weights
        ranked = []
        for target in opposing_field:
            ratio = target.health_ratio
            threat = target.power
            priority = 0.0
            if ratio < 0.3:
                priority += w.target_low_health
            elif ratio < 0.5:
                priority += w.target_mid_health
            priority += threat * w.target_threat
            if target.rarity is Rarity.LEGENDARY:
                priority += w.target_legendary
            elif target.rarity is Rarity.EPIC:
                priority += w.target_epic
            if analysis.is_weak_enemy(target):
                priority += w.target_weak
            ranked.append(TargetPriority(target=target, priority=priority, health_ratio=ratio, threat=threat))
        ranked.sort(key=lambda t: t.priority, reverse=True)
        return ranked

    def evaluate(self, state: BattleState, for_side: Side) -> StateEvaluation:
        """
        Evaluate a battle state from one side's perspective.

        Returns positive score if state is good for the side,
        negative if bad.
        """
        side_scores = {
            s.value: self._evaluate_side(state, s) for s in (for_side, for_side.opponent)
        }
        mine = side_scores[for_side.value]
        theirs = side_scores[for_side.opponent.value]
        relative = mine + self.weights.opponent_penalty * theirs

        # Check for winning state
        if state.winner is for_side:
            relative += 1000
        elif state.winner is not None:
            relative -= 1000

        return StateEvaluation(
            total_score=relative,
            side_scores=side_scores,
            feature_breakdown={"own": mine, "opposing": theirs},
        )

    def _evaluate_side(self, state: BattleState, side: Side) -> float:
        w = self.weights
        side_state = state.side(side)
        score = 0.0
        for creature in side_state.field:
            score += creature.current_health * w.health_point
            score += creature.power * w.power_point
            score += w.field_creature
        score += (len(side_state.hand) + len(side_state.deck)) * w.reserve_creature
        score += side_state.energy * w.energy_point
        return score
