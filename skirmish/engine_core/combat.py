"""
Combat Resolver - Attack, tool, spell and defend resolution.

Design principles:
- Pure: creatures in, updated creatures and a typed result out
- Randomness comes from an injected rng exposing random()
- Malformed input yields an identity result with a diagnostic line, never raises
- Removing defeated creatures is the caller's job
"""

from __future__ import annotations
import logging
import math
import random
from dataclasses import dataclass, field, replace
from typing import Protocol

from .effects import add_effect, effect_id
from .items import effect_power, power_label, spell_profile, tool_profile
from .state import ActiveEffect, ChargeData, Creature, Difficulty, EffectKind, Rarity, Spell, Tool
from .stats import round_half_up

logger = logging.getLogger(__name__)


class RandomSource(Protocol):
    def random(self) -> float: ...


ATTACK_TYPES = ("physical", "magical", "auto")

# Strength > Stamina > Speed > Magic > Energy > Strength
ADVANTAGE_CYCLE = (
    ("strength", "stamina"),
    ("stamina", "speed"),
    ("speed", "magic"),
    ("magic", "energy"),
    ("energy", "strength"),
)
CYCLE_MULTIPLIER = 1.3

MIN_EFFECTIVENESS = 0.5
MAX_EFFECTIVENESS = 1.8

CRITICAL_MULTIPLIER = 1.5
TRAUMA_CHANCE = 0.2
WEAKNESS_CHANCE = 0.25

DEFENSE_BOOST = {
    Difficulty.EASY: 0.25,
    Difficulty.MEDIUM: 0.3,
    Difficulty.HARD: 0.4,
    Difficulty.EXPERT: 0.5,
}
DEFEND_RARITY_BONUS = {
    Rarity.RARE: 1,
    Rarity.EPIC: 2,
    Rarity.LEGENDARY: 3,
}
STANCE_DAMAGE_REDUCTION = 0.05

TOOL_STAT_CAP = 10
TOOL_HEAL_CAP = 50
SPELL_STAT_CAP = 12
SPELL_DAMAGE_CAP = 100
SPELL_HEALING_CAP = 80
SPELL_SELF_HEAL_CAP = 40


@dataclass
class AttackResult:
    """Outcome of one attack. damage is always an int, 0 when dodged."""
    attacker: Creature
    defender: Creature
    damage: int = 0
    attack_type: str = "physical"
    effectiveness: float = 1.0
    effectiveness_text: str = "normal"
    damage_type: str = "normal"
    is_critical: bool = False
    is_dodged: bool = False
    is_valid: bool = True
    message: str = ""

    @property
    def defeated(self) -> bool:
        return not self.defender.is_alive


@dataclass
class ToolResult:
    creature: Creature
    power: float = 1.0
    power_label: str = "normal"
    healed: int = 0
    is_valid: bool = True
    messages: list[str] = field(default_factory=list)


@dataclass
class SpellResult:
    caster: Creature
    target: Creature
    power: float = 1.0
    power_label: str = "normal"
    damage: int = 0
    healed: int = 0
    is_critical: bool = False
    is_valid: bool = True
    messages: list[str] = field(default_factory=list)


# =============================================================================
# Effectiveness
# =============================================================================

def type_advantage(attacker: Creature, defender: Creature) -> float:
    """x1.3 for the first cycle attribute exceeding its victim by more than 2."""
    for strong, weak in ADVANTAGE_CYCLE:
        if attacker.attribute(strong) > defender.attribute(weak) + 2:
            return CYCLE_MULTIPLIER
    return 1.0


def effectiveness_multiplier(attack_type: str, attacker: Creature, defender: Creature) -> float:
    """Attack-type rules times the cycle advantage, clamped to [0.5, 1.8]."""
    effectiveness = 1.0
    if attack_type == "physical":
        strength = attacker.attribute("strength")
        def_stamina = defender.attribute("stamina")
        def_magic = defender.attribute("magic")
        if strength > 7 and def_stamina > def_magic:
            effectiveness = 1.4
        elif def_magic > 7 and def_magic > def_stamina:
            effectiveness = 0.75
        elif strength > def_stamina + 2:
            effectiveness = 1.2
        if attacker.attribute("speed") > defender.attribute("speed") + 3:
            effectiveness *= 1.1
    else:
        magic = attacker.attribute("magic")
        def_speed = defender.attribute("speed")
        def_energy = defender.attribute("energy")
        if magic > 7 and def_speed > def_energy:
            effectiveness = 1.4
        elif def_energy > 7 and def_energy > def_speed:
            effectiveness = 0.75
        elif magic > def_energy + 2:
            effectiveness = 1.2
        if attacker.attribute("energy") > defender.attribute("magic") + 3:
            effectiveness *= 1.1

    effectiveness *= type_advantage(attacker, defender)
    return max(MIN_EFFECTIVENESS, min(MAX_EFFECTIVENESS, effectiveness))


def effectiveness_text(multiplier: float) -> str:
    if multiplier >= 1.6:
        return "very effective"
    if multiplier >= 1.3:
        return "effective"
    if multiplier >= 1.1:
        return "slightly effective"
    if multiplier <= 0.6:
        return "not very effective"
    if multiplier <= 0.8:
        return "resisted"
    return "normal"


def resolve_attack_type(attacker: Creature, attack_type: str = "auto") -> str:
    if attack_type in ("physical", "magical"):
        return attack_type
    stats = attacker.battle_stats
    if stats is None or stats.physical_attack >= stats.magical_attack:
        return "physical"
    return "magical"


def _stance_reduction(creature: Creature) -> float:
    if not creature.is_defending:
        return 0.0
    return max((e.damage_reduction for e in creature.effects), default=0.0)


def _health_suffix(defender: Creature) -> str:
    name = defender.name
    if defender.current_health <= 0:
        if defender.rarity is Rarity.LEGENDARY:
            return f" {name} falls in battle!"
        if defender.rarity is Rarity.EPIC:
            return f" {name} has been defeated!"
        return f" {name} was defeated!"
    if defender.current_health < defender.max_health * 0.2:
        return f" {name} is critically wounded!"
    if defender.current_health < defender.max_health * 0.5:
        return f" {name} is wounded!"
    return ""


# =============================================================================
# Attack
# =============================================================================

def resolve_attack(
    attacker: Creature,
    defender: Creature,
    attack_type: str = "auto",
    rng: RandomSource | None = None,
    damage_multiplier: float = 1.0,
    turn: int = 0,
) -> AttackResult:
    """
    Resolve one attack.

    Rolls are drawn in a fixed order: variance, critical, dodge, then the
    critical trauma and elemental weakness side effects.
    """
    if not attacker.is_well_formed or not defender.is_well_formed:
        logger.warning("Attack skipped: %s -> %s missing stats", attacker.creature_id, defender.creature_id)
        return AttackResult(
            attacker=attacker,
            defender=defender,
            is_valid=False,
            message="Invalid attack - missing stats",
        )

    rng = rng or random.Random()

    kind = resolve_attack_type(attacker, attack_type)
    stats = attacker.battle_stats
    def_stats = defender.battle_stats

    attack_value = stats.physical_attack if kind == "physical" else stats.magical_attack
    if attacker.next_attack_bonus:
        attack_value += attacker.next_attack_bonus
    defense_value = def_stats.physical_defense if kind == "physical" else def_stats.magical_defense

    effectiveness = effectiveness_multiplier(kind, attacker, defender)
    text = effectiveness_text(effectiveness)
    variance = 0.85 + rng.random() * 0.3
    is_critical = rng.random() * 100 <= stats.critical_chance
    is_dodged = rng.random() * 100 <= def_stats.dodge_chance

    # The charge burst is spent even when the attack is dodged
    spent_attacker = attacker._copy_with(next_attack_bonus=0) if attacker.next_attack_bonus else attacker

    if is_dodged:
        return AttackResult(
            attacker=spent_attacker,
            defender=defender,
            damage=0,
            attack_type=kind,
            effectiveness=effectiveness,
            effectiveness_text="normal",
            damage_type="dodged",
            message=f"{attacker.name}'s {kind} attack was dodged by {defender.name}!",
        )

    raw = attack_value * effectiveness * variance * (CRITICAL_MULTIPLIER if is_critical else 1) * damage_multiplier
    reduction = defense_value / (defense_value + 100) * 0.7
    damage = max(1, round_half_up(raw * (1 - reduction)))

    stance = _stance_reduction(defender)
    if stance:
        damage = max(1, round_half_up(damage * (1 - stance)))

    form_gap = attacker.form - defender.form
    damage_type = "normal"
    if form_gap >= 2:
        cap = round_half_up(def_stats.max_health * 0.5)
        if damage > cap:
            damage, damage_type = cap, "devastating"
    elif form_gap >= 1:
        cap = round_half_up(def_stats.max_health * 0.35)
        if damage > cap:
            damage, damage_type = cap, "powerful"
    elif form_gap <= -2:
        damage, damage_type = round_half_up(damage * 0.5), "glancing"
    elif form_gap <= -1:
        damage, damage_type = round_half_up(damage * 0.75), "reduced"
    damage = max(max(1, attacker.form * 2 + 1), damage)

    hit = defender._copy_with(current_health=max(0, defender.current_health - damage))

    if is_critical and rng.random() < TRAUMA_CHANCE:
        hit = add_effect(hit, ActiveEffect(
            effect_id=effect_id("critical-trauma", turn, hit),
            name="Critical Strike Trauma",
            kind=EffectKind.DEBUFF,
            duration=1,
            stat_modifications={"physical_defense": -2, "magical_defense": -2},
            start_turn=turn,
            source=attacker.creature_id,
        ))
    if text in ("very effective", "effective") and rng.random() < WEAKNESS_CHANCE:
        hit = add_effect(hit, ActiveEffect(
            effect_id=effect_id("elemental-weakness", turn, hit),
            name="Elemental Weakness",
            kind=EffectKind.DEBUFF,
            duration=2,
            stat_modifications={"physical_defense": -1, "magical_defense": -1},
            start_turn=turn,
            source=attacker.creature_id,
        ))

    message = f"{attacker.name} used {kind} attack on {defender.name}"
    if is_critical:
        message += " (Critical Hit!)"
    if text != "normal":
        message += f" - {text}!"
    if damage_type != "normal":
        message += f" [{damage_type}]"
    message += f" dealing {damage} damage."
    message += _health_suffix(hit)

    logger.debug(
        "Attack %s -> %s: atk=%s def=%s eff=%.2f var=%.2f crit=%s dmg=%d",
        attacker.creature_id, defender.creature_id, attack_value, defense_value,
        effectiveness, variance, is_critical, damage,
    )
    return AttackResult(
        attacker=spent_attacker,
        defender=hit,
        damage=damage,
        attack_type=kind,
        effectiveness=effectiveness,
        effectiveness_text=text,
        damage_type=damage_type,
        is_critical=is_critical,
        message=message,
    )


# =============================================================================
# Tools and spells
# =============================================================================

def _scale_stats(changes: dict[str, int], cap: int, power: float) -> dict[str, int]:
    factor = min(power, 1.5)
    scaled = {}
    for stat, value in changes.items():
        capped = math.copysign(min(abs(value), cap), value)
        scaled[stat] = round_half_up(capped * factor)
    return scaled


def _scale_charge(charge: ChargeData, power: float) -> ChargeData:
    return replace(
        charge,
        per_turn_bonus=round_half_up(charge.per_turn_bonus * power),
        final_burst=round_half_up(charge.final_burst * power),
    )


def _heal(creature: Creature, amount: int) -> tuple[Creature, int]:
    if amount <= 0:
        return creature, 0
    health = min(creature.current_health + amount, creature.max_health)
    return creature._copy_with(current_health=health), health - creature.current_health


def resolve_tool(target: Creature, tool: Tool, difficulty: Difficulty, turn: int = 0) -> ToolResult:
    """Apply a tool to a creature. Tools cost no energy and are consumed."""
    profile = tool_profile(tool)
    if not target.is_well_formed or profile is None:
        logger.warning("Tool %s could not be applied to %s", tool.item_id, target.creature_id)
        return ToolResult(
            creature=target,
            is_valid=False,
            messages=[f"{tool.name} had no effect"],
        )

    power = effect_power(tool, target.attributes, difficulty)
    label = power_label(power)
    changes = _scale_stats(profile.stat_changes, TOOL_STAT_CAP, power)
    healing = round_half_up(min(profile.health_change * power, TOOL_HEAL_CAP)) if profile.health_change else 0
    hot = round_half_up(profile.health_over_time * power) if profile.health_over_time else 0
    duration = profile.duration or 1

    charge = None
    if profile.charge is not None:
        charge = _scale_charge(profile.charge, power)

    updated = add_effect(target, ActiveEffect(
        effect_id=effect_id(f"tool-{tool.effect.value.lower()}", turn, target),
        name=f"{tool.name} Effect",
        kind=profile.kind,
        duration=duration,
        stat_modifications=changes,
        health_over_time=hot,
        start_turn=turn,
        source=tool.item_id,
        charge=charge,
        power_label=label,
    ))
    updated, healed = _heal(updated, healing)

    messages = [f"Used {tool.name} on {target.name} ({label})"]
    if healed:
        messages.append(f"{tool.name} healed {target.name} for {healed} health")
    return ToolResult(creature=updated, power=power, power_label=label, healed=healed, messages=messages)


def resolve_spell(
    caster: Creature,
    target: Creature,
    spell: Spell,
    difficulty: Difficulty,
    turn: int = 0,
    rng: RandomSource | None = None,
) -> SpellResult:
    """
    Cast a spell from caster onto target.

    Healing only applies when the caster targets itself; the drain self-heal
    only applies to another target. Stat drain is carried by a pair of timed
    effects: a loss on the target and a matching gain on the caster.
    """
    magic = caster.attribute("magic")
    profile = spell_profile(spell, magic)
    if not caster.is_well_formed or not target.is_well_formed or profile is None:
        logger.warning("Spell %s failed: %s -> %s", spell.item_id, caster.creature_id, target.creature_id)
        return SpellResult(
            caster=caster,
            target=target,
            is_valid=False,
            messages=[f"{spell.name} fizzled"],
        )

    rng = rng or random.Random()

    self_cast = caster.creature_id == target.creature_id
    power = effect_power(spell, caster.attributes, difficulty)
    label = power_label(power)
    messages = [f"{caster.name} cast {spell.name} on {target.name} ({label})"]

    damage = round_half_up(min(profile.damage * power, SPELL_DAMAGE_CAP)) if profile.damage else 0
    healing = round_half_up(min(profile.healing * power, SPELL_HEALING_CAP)) if profile.healing else 0
    self_heal = round_half_up(min(profile.self_heal * power, SPELL_SELF_HEAL_CAP)) if profile.self_heal else 0
    hot = round_half_up(profile.health_over_time * power) if profile.health_over_time else 0
    changes = _scale_stats(profile.stat_changes, SPELL_STAT_CAP, power)
    drain = _scale_stats(profile.stat_drain, SPELL_STAT_CAP, power)

    is_critical = False
    if damage:
        crit_chance = min(3 + math.floor(magic * 0.3), 15)
        is_critical = rng.random() * 100 <= crit_chance
        if is_critical:
            damage = round_half_up(damage * 1.5)
        if power >= 1.3:
            damage += round_half_up(damage * 0.2)
        target = target._copy_with(current_health=max(0, target.current_health - damage))
        crit = " (Critical!)" if is_critical else ""
        messages.append(f"{spell.name} dealt {damage} damage to {target.name}{crit}")

    healed = 0
    if healing and self_cast:
        target, healed = _heal(target, healing)
        if healed:
            messages.append(f"{spell.name} healed {target.name} for {healed} health")

    if self_heal and not self_cast:
        caster, drained = _heal(caster, self_heal)
        healed += drained
        if drained:
            messages.append(f"{caster.name} drained {drained} health from {target.name}")

    if profile.duration > 0:
        target_mods = dict(changes)
        if drain and not self_cast:
            for stat, value in drain.items():
                target_mods[stat] = target_mods.get(stat, 0) - value

        charge = None
        if profile.charge is not None:
            charge = _scale_charge(profile.charge, power)

        target = add_effect(target, ActiveEffect(
            effect_id=effect_id(f"spell-{spell.effect.value.lower()}", turn, target),
            name=f"{spell.name} Effect",
            kind=profile.kind,
            duration=profile.duration,
            stat_modifications=target_mods,
            health_over_time=hot,
            start_turn=turn,
            source=spell.item_id,
            charge=charge,
            power_label=label,
        ))

        if drain and not self_cast:
            caster = add_effect(caster, ActiveEffect(
                effect_id=effect_id("spell-siphon", turn, caster),
                name=f"{spell.name} Siphon",
                kind=EffectKind.BUFF,
                duration=profile.duration,
                stat_modifications=dict(drain),
                start_turn=turn,
                source=spell.item_id,
                power_label=label,
            ))

    if self_cast:
        caster = target

    return SpellResult(
        caster=caster,
        target=target,
        power=power,
        power_label=label,
        damage=damage,
        healed=healed,
        is_critical=is_critical,
        messages=messages,
    )


# =============================================================================
# Defend
# =============================================================================

def resolve_defend(creature: Creature, difficulty: Difficulty, turn: int = 0) -> tuple[Creature, str]:
    """
    Put a creature in a defensive stance until its side's next tick.

    Each defense gains a difficulty-scaled share of itself plus a rarity bonus.
    """
    if not creature.is_well_formed:
        logger.warning("Defend skipped for malformed creature %s", creature.creature_id)
        return creature, f"{creature.name} could not defend (missing stats)"

    stats = creature.battle_stats
    boost = DEFENSE_BOOST.get(difficulty, 0.3)
    bonus = DEFEND_RARITY_BONUS.get(creature.rarity, 0)
    physical = round_half_up(stats.physical_defense * boost) + bonus
    magical = round_half_up(stats.magical_defense * boost) + bonus

    defended = creature._copy_with(is_defending=True)
    defended = add_effect(defended, ActiveEffect(
        effect_id=effect_id("defensive-stance", turn, creature),
        name="Defensive Stance",
        kind=EffectKind.DEFENSE,
        duration=1,
        stat_modifications={"physical_defense": physical, "magical_defense": magical},
        start_turn=turn,
        source=creature.creature_id,
        damage_reduction=STANCE_DAMAGE_REDUCTION,
    ))
    return defended, f"{creature.name} took a defensive stance (+{physical} defense)"
