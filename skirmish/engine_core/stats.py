"""
Stat Deriver - Converts creature attributes into combat stats.

Raw stats are a base value plus weighted attribute contributions, scaled by
form, rarity and combination multipliers. A square-root soft cap compresses
values above a per-stat threshold up to a hard ceiling.

Deployment cost is always 5 + form and is never derived from attributes.
"""

from __future__ import annotations
import math

from .state import (
    ATTRIBUTE_NAMES,
    ActiveEffect,
    Attributes,
    BattleStats,
    Creature,
    Rarity,
)


RARITY_MULTIPLIERS = {
    Rarity.COMMON: 1.0,
    Rarity.RARE: 1.1,
    Rarity.EPIC: 1.2,
    Rarity.LEGENDARY: 1.3,
}

# (soft cap, hard cap)
SOFT_CAPS = {
    "physical_attack": (60, 120),
    "magical_attack": (60, 120),
    "physical_defense": (40, 80),
    "magical_defense": (40, 80),
    "max_health": (200, 400),
    "initiative": (40, 60),
}

# Lower bounds applied after effect modifications
STAT_FLOORS = {
    "physical_attack": 1,
    "magical_attack": 1,
    "physical_defense": 1,
    "magical_defense": 1,
    "max_health": 10,
    "initiative": 0,
    "critical_chance": 0,
    "dodge_chance": 0,
}

CRIT_CAP = 30
DODGE_CAP = 20


def rarity_multiplier(rarity: Rarity) -> float:
    return RARITY_MULTIPLIERS.get(rarity, 1.0)


def form_multiplier(form: int) -> float:
    return 1 + form * 0.25


def combination_multiplier(level: int) -> float:
    return 1 + level * 0.1


def deployment_cost(form: int) -> int:
    """Energy needed to deploy a creature. Depends on form only."""
    return 5 + int(form)


def specialty_multipliers(specialties: tuple[str, ...] | list[str]) -> dict[str, float]:
    """One specialty gets x1.8, two or more get x1.4 each."""
    multipliers = {name: 1.0 for name in ATTRIBUTE_NAMES}
    tags = [s for s in specialties if s in multipliers]
    if len(tags) == 1:
        multipliers[tags[0]] = 1.8
    elif len(tags) >= 2:
        for tag in tags:
            multipliers[tag] = 1.4
    return multipliers


def soft_cap(value: float, soft: float, hard: float) -> float:
    """Diminishing returns above the soft cap, bounded by the hard cap."""
    if value <= soft:
        return value
    return min(soft + math.sqrt(value - soft) * 5, hard)


def round_half_up(value: float) -> int:
    """Round halves toward positive infinity, matching the game tables."""
    return int(math.floor(value + 0.5))


def default_stats(form: int = 0) -> BattleStats:
    """Stat block used when a creature has no attributes."""
    return BattleStats(energy_cost=deployment_cost(form))


def derive_stats(
    attributes: Attributes | None,
    rarity: Rarity = Rarity.COMMON,
    form: int = 0,
    specialties: tuple[str, ...] | list[str] = (),
    combination_level: int = 0,
) -> BattleStats:
    """Derive the full battle stat record from base attributes."""
    if attributes is None:
        return default_stats(form)

    en = attributes.energy
    st = attributes.strength
    mg = attributes.magic
    sa = attributes.stamina
    sp = attributes.speed

    spec = specialty_multipliers(specialties)
    scale = form_multiplier(form) * combination_multiplier(combination_level)
    rar = rarity_multiplier(rarity)

    raw = {
        "physical_attack": (10 + st * 2.5 * spec["strength"] + sp * 0.5) * scale * rar,
        "magical_attack": (10 + mg * 2.5 * spec["magic"] + en * 0.5) * scale * rar,
        "physical_defense": (5 + sa * 2 * spec["stamina"] + st * 0.5) * scale * rar,
        "magical_defense": (5 + en * 2 * spec["energy"] + mg * 0.5) * scale * rar,
        "max_health": (50 + sa * 4 * spec["stamina"] + en * 1.5) * scale * rar,
        # Initiative ignores rarity
        "initiative": (10 + sp * 2.5 * spec["speed"] + en * 0.3) * scale,
    }
    capped = {
        stat: round_half_up(soft_cap(value, *SOFT_CAPS[stat]))
        for stat, value in raw.items()
    }

    return BattleStats(
        critical_chance=min(5 + sp * 0.6 * spec["speed"] + mg * 0.2, CRIT_CAP),
        dodge_chance=min(3 + sp * 0.4 * spec["speed"] + sa * 0.1, DODGE_CAP),
        energy_cost=deployment_cost(form),
        **capped,
    )


def apply_modifications(base: BattleStats, effects: tuple[ActiveEffect, ...] | list[ActiveEffect]) -> BattleStats:
    """
    Replay effect stat modifications on top of base stats.

    energy_cost is never modified. Floors keep attacks and defenses >= 1,
    max health >= 10 and chance stats >= 0.
    """
    totals: dict[str, float] = {}
    for effect in effects:
        for stat, delta in effect.stat_modifications.items():
            if stat in STAT_FLOORS:
                totals[stat] = totals.get(stat, 0) + delta

    if not totals:
        return base

    changes = {
        stat: max(STAT_FLOORS[stat], base.get(stat) + delta)
        for stat, delta in totals.items()
    }
    return base._copy_with(**changes)


def refresh_creature(creature: Creature, effects: tuple[ActiveEffect, ...] | None = None) -> Creature:
    """
    Return the creature with battle stats recomputed from its effect list.

    Current health is clamped to the recomputed max health.
    """
    new_effects = creature.effects if effects is None else tuple(effects)
    if creature.base_stats is None:
        return creature._copy_with(effects=new_effects)

    stats = apply_modifications(creature.base_stats, new_effects)
    health = max(0, min(creature.current_health, stats.max_health))
    return creature._copy_with(effects=new_effects, battle_stats=stats, current_health=health)


def build_creature(
    creature_id: str,
    species_id: str,
    name: str,
    attributes: Attributes | None,
    rarity: Rarity = Rarity.COMMON,
    form: int = 0,
    specialties: tuple[str, ...] | list[str] = (),
    combination_level: int = 0,
) -> Creature:
    """Create a battle-ready creature at full health."""
    stats = derive_stats(attributes, rarity, form, specialties, combination_level)
    return Creature(
        creature_id=creature_id,
        species_id=species_id,
        name=name,
        rarity=rarity,
        form=form,
        attributes=attributes,
        specialties=tuple(specialties),
        combination_level=combination_level,
        base_stats=stats,
        battle_stats=stats,
        current_health=stats.max_health,
    )
