"""
Tactics - Ranked planning steps for the battle AI.

Each tactic looks at a shared PlanContext and yields candidate actions. The
planner commits them one at a time, so a tactic always sees the budget, pools
and used-creature set as they stand after its previous yield.

Ranks (lower runs first):
0. DefensiveItem     - defensive tool on a critical creature
1. Lethal            - spells then attacks that finish the opposing field
2. EmergencyDefense  - shield tools or defend for creatures in danger
3. Deployment        - a deployment wave sized by urgency
4. OffensiveSpell    - best (spell, caster, target) option
5. AttackBuff        - attack tool on the strongest attacker
6. CoordinatedAttack - kill-weighted attack assignment
7. Utility           - echo tools and defensive positioning
"""

from __future__ import annotations
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterator

from ..engine_core.action import Action, ActionType
from ..engine_core.difficulty import DifficultySettings, get_settings
from ..engine_core.energy import ATTACK_COST, DEFEND_COST
from ..engine_core.items import is_attack_tool, is_damage_spell, is_defensive_tool
from ..engine_core.state import BattleState, Creature, Difficulty, ItemEffect, Side, Spell, Tool
from .analyzer import BoardAnalysis, analyze_board
from .evaluator import HeuristicEvaluator, creature_value, estimate_attack_damage, estimate_spell_damage
from .personality import Personality


LETHAL_THRESHOLD = 0.9
EMERGENCY_ACTION_CAP = 8
ATTACK_ACTION_CAP = 10
UTILITY_LIMIT = 2

URGENCY_CRITICAL = "critical"
URGENCY_HIGH = "high"
URGENCY_MEDIUM = "medium"
URGENCY_NORMAL = "normal"


@dataclass
class PlanContext:
    """
    Simulated pools for one planning call.

    Pools are copies; committing an action updates them so later tactics
    never reuse a spent item, a deployed creature or the energy already
    promised.
    """
    side: Side
    difficulty: Difficulty
    settings: DifficultySettings
    analysis: BoardAnalysis
    evaluator: HeuristicEvaluator
    personality: Personality
    budget: int
    field: list[Creature]
    hand: list[Creature]
    opposing_field: list[Creature]
    tools: list[Tool]
    spells: list[Spell]
    actions: list[Action] = field(default_factory=list)
    used: set[str] = field(default_factory=set)  # Creatures that already act this turn
    deployed: set[str] = field(default_factory=set)

    @classmethod
    def from_state(
        cls,
        state: BattleState,
        evaluator: HeuristicEvaluator,
        personality: Personality,
    ) -> PlanContext:
        """Build a context for the active side."""
        own = state.active
        opposing = state.side(own.side.opponent)
        return cls(
            side=own.side,
            difficulty=state.difficulty,
            settings=get_settings(state.difficulty),
            analysis=analyze_board(own.field, opposing.field, own.hand, own.energy, state.difficulty),
            evaluator=evaluator,
            personality=personality,
            budget=own.energy,
            field=list(own.field),
            hand=list(own.hand),
            opposing_field=list(opposing.field),
            tools=list(own.tools),
            spells=list(own.spells),
        )

    @property
    def field_space(self) -> int:
        return self.settings.max_field_size - len(self.field)

    def is_used(self, creature: Creature) -> bool:
        return creature.creature_id in self.used

    def accepts(self, action: Action) -> bool:
        """True when the action fits the remaining budget and pools."""
        if action.energy_cost > self.budget:
            return False
        if action.action_type is ActionType.DEPLOY:
            return self.field_space > 0 and action.payload.creature_id not in self.deployed
        return True

    def commit(self, action: Action, claim_tool_target: bool = False) -> None:
        """Record an action and update the simulated pools."""
        payload = action.payload
        self.actions.append(action)
        self.budget -= action.energy_cost

        if action.action_type is ActionType.DEPLOY:
            creature = next(c for c in self.hand if c.creature_id == payload.creature_id)
            self.hand.remove(creature)
            self.field.append(creature)
            self.deployed.add(creature.creature_id)
        elif action.action_type in (ActionType.ATTACK, ActionType.DEFEND, ActionType.USE_SPELL):
            self.used.add(payload.creature_id)
        elif action.action_type is ActionType.USE_TOOL and claim_tool_target:
            self.used.add(payload.target_id)

        if action.action_type is ActionType.USE_TOOL:
            self.tools = [t for t in self.tools if t.item_id != payload.item_id]
        elif action.action_type is ActionType.USE_SPELL:
            self.spells = [s for s in self.spells if s.item_id != payload.item_id]


class Tactic(ABC):
    """
    A ranked planning step.

    action_cap stops the tactic once the plan holds that many actions;
    claims_tool_target marks a tool's target as having acted.
    """
    rank: int = 0
    name: str = "tactic"
    action_cap: int | None = None
    claims_tool_target: bool = False

    @abstractmethod
    def plan(self, ctx: PlanContext) -> Iterator[Action]:
        """Yield candidate actions in the order they should run."""

    def _tagged(self, action: Action) -> Action:
        action.priority = self.rank
        return action


# =============================================================================
# Shared selection helpers
# =============================================================================

def strongest(creatures: list[Creature]) -> Creature | None:
    """Highest attack power, first wins ties."""
    best = None
    for creature in creatures:
        if best is None or creature.power > best.power:
            best = creature
    return best


def best_spell_caster(field: list[Creature], spell: Spell) -> Creature | None:
    """Highest magic, +5 for a specialty matching the spell type."""
    best, best_score = None, None
    for creature in field:
        score = creature.attribute("magic") + (5 if creature.has_specialty(spell.item_type) else 0)
        if best_score is None or score > best_score:
            best, best_score = creature, score
    return best


def best_spell_target(targets: list[Creature], spell: Spell) -> Creature | None:
    """Weakest target for Surge or strength spells, otherwise the biggest threat."""
    if not targets:
        return None
    if spell.effect is ItemEffect.SURGE or spell.item_type == "strength":
        return min(targets, key=lambda c: c.current_health)
    return strongest(targets)


def is_offensive_spell(spell: Spell) -> bool:
    return spell.effect not in (ItemEffect.SHIELD, ItemEffect.CHARGE)


def available_attackers(ctx: PlanContext) -> list[Creature]:
    return [c for c in ctx.field if not c.is_defending and not ctx.is_used(c)]


# =============================================================================
# Tactics
# =============================================================================

class DefensiveItemTactic(Tactic):
    rank = 0
    name = "defensive_item"

    def plan(self, ctx: PlanContext) -> Iterator[Action]:
        if not ctx.analysis.critical_creatures or not ctx.tools:
            return
        target = ctx.analysis.critical_creatures[0]
        best, best_score = None, None
        for tool in ctx.tools:
            if not is_defensive_tool(tool):
                continue
            score = ctx.evaluator.defensive_tool_score(tool, target)
            if best_score is None or score > best_score:
                best, best_score = tool, score
        if best is not None:
            yield self._tagged(Action.use_tool(ctx.side, best.item_id, target.creature_id))


class LethalTactic(Tactic):
    """
    Finish the opposing field this turn.

    Damage spells are projected first, then attacks; the sequence is only
    planned when the projection covers 90% of the opposing field's health.
    """
    rank = 1
    name = "lethal"

    def plan(self, ctx: PlanContext) -> Iterator[Action]:
        if not ctx.opposing_field or ctx.budget < ATTACK_COST:
            return
        needed = sum(c.current_health for c in ctx.opposing_field)
        remaining = {c.creature_id: c.current_health for c in ctx.opposing_field}
        budget = ctx.budget
        projected = 0
        sequence: list[Action] = []

        def land(target: Creature, damage: float) -> None:
            nonlocal projected
            dealt = min(damage, remaining[target.creature_id])
            remaining[target.creature_id] -= dealt
            projected += dealt

        for spell in ctx.spells:
            if not is_damage_spell(spell) or budget < spell.energy_cost:
                continue
            caster = best_spell_caster(ctx.field, spell)
            alive = [c for c in ctx.opposing_field if remaining[c.creature_id] > 0]
            target = best_spell_target(alive, spell)
            if caster is None or target is None:
                break
            land(target, estimate_spell_damage(spell, caster, target))
            sequence.append(Action.use_spell(ctx.side, spell.item_id, caster.creature_id, target.creature_id, spell.energy_cost))
            budget -= spell.energy_cost
            if projected >= needed * LETHAL_THRESHOLD:
                break

        casters = {a.payload.creature_id for a in sequence}
        for attacker in available_attackers(ctx):
            if projected >= needed * LETHAL_THRESHOLD or budget < ATTACK_COST:
                break
            if attacker.creature_id in casters:
                continue
            alive = [c for c in ctx.opposing_field if remaining[c.creature_id] > 0]
            if not alive:
                break
            # Finish what this attacker can kill, else chip the weakest
            killable = [c for c in alive if estimate_attack_damage(attacker, c) >= remaining[c.creature_id]]
            pool = killable or alive
            target = min(pool, key=lambda c: remaining[c.creature_id])
            land(target, estimate_attack_damage(attacker, target))
            sequence.append(Action.attack(ctx.side, attacker.creature_id, target.creature_id))
            budget -= ATTACK_COST

        if needed <= 0 or projected < needed * LETHAL_THRESHOLD:
            return
        for action in sequence:
            yield self._tagged(action)


class EmergencyDefenseTactic(Tactic):
    rank = 2
    name = "emergency_defense"
    action_cap = EMERGENCY_ACTION_CAP
    claims_tool_target = True

    def plan(self, ctx: PlanContext) -> Iterator[Action]:
        for threat in ctx.analysis.immediate_threats:
            if ctx.budget < DEFEND_COST or threat.is_defending or ctx.is_used(threat):
                continue
            shield = next(
                (t for t in ctx.tools if t.effect is ItemEffect.SHIELD or t.item_type == "stamina"),
                None,
            )
            if shield is not None:
                yield self._tagged(Action.use_tool(ctx.side, shield.item_id, threat.creature_id))
            else:
                yield self._tagged(Action.defend(ctx.side, threat.creature_id))


@dataclass
class DeploymentAnalysis:
    should_deploy: bool
    urgency: str
    score: int


class DeploymentTactic(Tactic):
    rank = 3
    name = "deployment"

    def analyze(self, ctx: PlanContext) -> DeploymentAnalysis:
        """Multi-factor deployment decision."""
        analysis = ctx.analysis
        max_field = ctx.settings.max_field_size
        field_space = len(ctx.field) / max_field < 0.8
        energy_available = ctx.budget >= 3

        score = 0
        if field_space:
            score += 2
        if energy_available:
            score += 1
        if len(ctx.field) < len(ctx.opposing_field):
            score += 3
        if analysis.own_total_power < analysis.opposing_total_power * 0.8:
            score += 3
        if len(ctx.field) < 3:
            score += 2
        if analysis.hand_quality > 5:
            score += 1
        if analysis.should_attack_aggressively:
            score += 1

        if not ctx.field:
            urgency = URGENCY_CRITICAL
        elif score >= 8:
            urgency = URGENCY_HIGH
        elif score >= 5:
            urgency = URGENCY_MEDIUM
        else:
            urgency = URGENCY_NORMAL

        return DeploymentAnalysis(
            should_deploy=score >= 3 and field_space and energy_available,
            urgency=urgency,
            score=score,
        )

    @staticmethod
    def wave_size(urgency: str, field_space: int, energy: int) -> int:
        if urgency == URGENCY_CRITICAL:
            return min(field_space, 3, energy // 3)
        if urgency == URGENCY_HIGH:
            return min(field_space, 2, energy // 4)
        if urgency == URGENCY_MEDIUM:
            return min(field_space, 2, energy // 5)
        return 1

    def plan(self, ctx: PlanContext) -> Iterator[Action]:
        if not ctx.hand:
            return
        decision = self.analyze(ctx)
        if not decision.should_deploy:
            return

        ranked = sorted(
            ctx.hand,
            key=lambda c: ctx.evaluator.deployment_score(c, ctx.field, ctx.opposing_field, ctx.difficulty),
            reverse=True,
        )
        target_count = self.wave_size(decision.urgency, ctx.field_space, ctx.budget)
        planned = 0
        for creature in ranked:
            if planned >= target_count or ctx.field_space <= 0:
                break
            cost = creature.deployment_cost
            if creature.creature_id in ctx.deployed or cost > ctx.budget:
                continue
            yield self._tagged(Action.deploy(ctx.side, creature.creature_id, cost))
            planned += 1


class OffensiveSpellTactic(Tactic):
    rank = 4
    name = "offensive_spell"

    def plan(self, ctx: PlanContext) -> Iterator[Action]:
        if not ctx.spells or not ctx.opposing_field:
            return
        casters = [c for c in ctx.field if not ctx.is_used(c)]
        best, best_score = None, -1.0
        for spell in ctx.spells:
            if not is_offensive_spell(spell) or spell.energy_cost > ctx.budget:
                continue
            for caster in casters:
                for target in ctx.opposing_field:
                    score = ctx.evaluator.spell_option_score(spell, caster, target, ctx.opposing_field)
                    if score > best_score:
                        best, best_score = (spell, caster, target), score
        if best is not None:
            spell, caster, target = best
            yield self._tagged(
                Action.use_spell(ctx.side, spell.item_id, caster.creature_id, target.creature_id, spell.energy_cost)
            )


class AttackBuffTactic(Tactic):
    """Buffs the strongest attacker; the creature stays free to attack."""
    rank = 5
    name = "attack_buff"

    def plan(self, ctx: PlanContext) -> Iterator[Action]:
        if not ctx.field or not ctx.opposing_field or ctx.budget < ATTACK_COST:
            return
        attacker = strongest(available_attackers(ctx))
        buff = next((t for t in ctx.tools if is_attack_tool(t)), None)
        if attacker is not None and buff is not None:
            yield self._tagged(Action.use_tool(ctx.side, buff.item_id, attacker.creature_id))


class CoordinatedAttackTactic(Tactic):
    rank = 6
    name = "coordinated_attack"
    action_cap = ATTACK_ACTION_CAP

    def plan(self, ctx: PlanContext) -> Iterator[Action]:
        if not ctx.analysis.should_attack_aggressively or ctx.budget < ATTACK_COST:
            return
        attackers = available_attackers(ctx)
        priorities = ctx.evaluator.target_priorities(ctx.opposing_field, ctx.analysis)
        if not attackers or not priorities:
            return

        max_attacks = ctx.budget // ATTACK_COST
        target_attacks = math.ceil(max_attacks * ctx.personality.aggression)
        for attacker, target in self.assign(attackers, priorities, target_attacks):
            yield self._tagged(Action.attack(ctx.side, attacker.creature_id, target.creature_id))

    @staticmethod
    def assign(attackers, priorities, limit: int) -> list[tuple[Creature, Creature]]:
        """
        Greedy assignment.

        First pass gives each target, by priority, the attacker with the best
        kill-weighted damage; the second pass sends leftover attackers at the
        top-priority target.
        """
        assignments: list[tuple[Creature, Creature]] = []
        assigned: set[str] = set()
        dealt: dict[str, float] = {}

        for entry in priorities:
            target = entry.target
            remaining = target.current_health - dealt.get(target.creature_id, 0)
            if remaining <= 0 or len(assignments) >= limit:
                continue
            best, best_score, best_damage = None, 0.0, 0.0
            for attacker in attackers:
                if attacker.creature_id in assigned:
                    continue
                damage = estimate_attack_damage(attacker, target)
                score = damage + 100 if damage >= remaining else damage
                if score > best_score:
                    best, best_score, best_damage = attacker, score, damage
            if best is not None:
                assignments.append((best, target))
                assigned.add(best.creature_id)
                dealt[target.creature_id] = dealt.get(target.creature_id, 0) + best_damage

        top = priorities[0].target
        for attacker in attackers:
            if len(assignments) >= limit:
                break
            if attacker.creature_id not in assigned:
                assignments.append((attacker, top))
                assigned.add(attacker.creature_id)
        return assignments


class UtilityTactic(Tactic):
    rank = 7
    name = "utility"

    def plan(self, ctx: PlanContext) -> Iterator[Action]:
        if ctx.budget < DEFEND_COST or not ctx.field:
            return
        planned = sum(1 for a in ctx.actions if a.priority == self.rank)
        if planned >= UTILITY_LIMIT:
            return

        echo = next((t for t in ctx.tools if t.effect is ItemEffect.ECHO), None)
        if echo is not None:
            candidates = [c for c in ctx.field if not ctx.is_used(c)]
            if candidates:
                target = max(candidates, key=creature_value)
                yield self._tagged(Action.use_tool(ctx.side, echo.item_id, target.creature_id))

        if ctx.budget >= DEFEND_COST:
            needs_defense = next(
                (
                    c for c in ctx.field
                    if not c.is_defending and not ctx.is_used(c) and 0.3 < c.health_ratio < 0.7
                ),
                None,
            )
            if needs_defense is not None:
                yield self._tagged(Action.defend(ctx.side, needs_defense.creature_id))


DEFAULT_TACTICS: tuple[Tactic, ...] = (
    DefensiveItemTactic(),
    LethalTactic(),
    EmergencyDefenseTactic(),
    DeploymentTactic(),
    OffensiveSpellTactic(),
    AttackBuffTactic(),
    CoordinatedAttackTactic(),
    UtilityTactic(),
)
