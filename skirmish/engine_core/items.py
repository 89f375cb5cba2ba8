"""
Item Tables - What each tool and spell does before scaling.

A profile is the unscaled outcome of an item: stat changes, healing, damage,
health over time and optional charge data. Combat resolution scales a profile
by effect power and applies the caps.

Stats touched by an item follow its type tag:
- strength -> physical attack
- magic -> magical attack
- stamina -> both defenses
- speed -> initiative and dodge
- energy -> magical attack and magical defense
"""

from __future__ import annotations
from dataclasses import dataclass, field

from .state import Attributes, ChargeData, Difficulty, EffectKind, Item, ItemEffect, Rarity
from .stats import round_half_up


TYPE_STATS: dict[str, tuple[str, ...]] = {
    "strength": ("physical_attack",),
    "magic": ("magical_attack",),
    "stamina": ("physical_defense", "magical_defense"),
    "speed": ("initiative", "dodge_chance"),
    "energy": ("magical_attack", "magical_defense"),
}

ITEM_RARITY_POWER = {
    Rarity.COMMON: 1.0,
    Rarity.RARE: 1.2,
    Rarity.EPIC: 1.4,
    Rarity.LEGENDARY: 1.6,
}

DIFFICULTY_POWER = {
    Difficulty.EASY: 0.9,
    Difficulty.MEDIUM: 1.0,
    Difficulty.HARD: 1.1,
    Difficulty.EXPERT: 1.2,
}

MIN_POWER = 0.5
MAX_POWER = 2.0


@dataclass(frozen=True)
class ItemProfile:
    """Unscaled outcome of a tool or spell."""
    kind: EffectKind = EffectKind.BUFF
    stat_changes: dict[str, int] = field(default_factory=dict)
    health_change: int = 0  # Immediate heal (tools)
    health_over_time: int = 0
    duration: int = 1
    damage: int = 0
    healing: int = 0  # Applies only when a spell targets its caster
    self_heal: int = 0  # Applies only when a spell targets another creature
    stat_drain: dict[str, int] = field(default_factory=dict)  # Moved from target to caster
    charge: ChargeData | None = None


def type_stats(item_type: str) -> tuple[str, ...]:
    """Stats an item of this type tag modifies."""
    return TYPE_STATS.get(item_type, ("physical_attack",))


def _spread(item_type: str, amount: int) -> dict[str, int]:
    return {stat: amount for stat in type_stats(item_type)}


def effect_power(item: Item, attributes: Attributes | None, difficulty: Difficulty) -> float:
    """
    Power multiplier of an item in the hands of a creature.

    Rarity power times difficulty scaling times an attribute factor from the
    user's attribute matching the item type, clamped to [0.5, 2.0].
    """
    attr = attributes.get(item.item_type) if attributes is not None else 5
    power = (
        ITEM_RARITY_POWER.get(item.rarity, 1.0)
        * DIFFICULTY_POWER.get(difficulty, 1.0)
        * (1 + 0.03 * (attr - 5))
    )
    return max(MIN_POWER, min(MAX_POWER, power))


def power_label(power: float) -> str:
    if power >= 1.3:
        return "strong"
    if power >= 1.1:
        return "normal"
    return "weak"


def tool_profile(item: Item) -> ItemProfile | None:
    """Unscaled profile of a tool, None for an unknown effect."""
    effect = item.effect
    if effect is ItemEffect.SURGE:
        return ItemProfile(stat_changes=_spread(item.item_type, 6), duration=2)
    if effect is ItemEffect.SHIELD:
        return ItemProfile(
            kind=EffectKind.DEFENSE,
            stat_changes={"physical_defense": 6, "magical_defense": 6},
            health_change=10,
            duration=2,
        )
    if effect is ItemEffect.ECHO:
        return ItemProfile(
            kind=EffectKind.ECHO,
            stat_changes=_spread(item.item_type, 2),
            health_over_time=5,
            duration=3,
        )
    if effect is ItemEffect.DRAIN:
        return ItemProfile(stat_changes=_spread(item.item_type, 2), health_change=15, duration=2)
    if effect is ItemEffect.CHARGE:
        return ItemProfile(
            kind=EffectKind.CHARGE,
            duration=4,
            charge=ChargeData(
                max_turns=3,
                per_turn_bonus=4,
                final_burst=12,
                target_stat=type_stats(item.item_type)[0],
            ),
        )
    return None


def spell_profile(item: Item, caster_magic: int = 5) -> ItemProfile | None:
    """Unscaled profile of a spell cast by a creature with the given magic."""
    effect = item.effect
    if effect is ItemEffect.SURGE:
        return ItemProfile(damage=14 + round_half_up(caster_magic * 0.6), duration=0)
    if effect is ItemEffect.DRAIN:
        return ItemProfile(
            kind=EffectKind.DEBUFF,
            damage=10,
            self_heal=10,
            stat_drain=_spread(item.item_type, 3),
            duration=2,
        )
    if effect is ItemEffect.ECHO:
        return ItemProfile(kind=EffectKind.ECHO, health_over_time=-5, duration=3)
    if effect is ItemEffect.SHIELD:
        return ItemProfile(
            kind=EffectKind.DEFENSE,
            stat_changes={"physical_defense": 5, "magical_defense": 5},
            healing=20,
            duration=2,
        )
    if effect is ItemEffect.CHARGE:
        return ItemProfile(
            kind=EffectKind.CHARGE,
            duration=4,
            charge=ChargeData(
                max_turns=3,
                per_turn_bonus=3,
                final_burst=15,
                target_stat="magical_attack",
            ),
        )
    return None


def is_defensive_tool(item: Item) -> bool:
    """Shield, stamina or energy-Echo tools protect a creature."""
    return (
        item.effect is ItemEffect.SHIELD
        or item.item_type == "stamina"
        or (item.effect is ItemEffect.ECHO and item.item_type == "energy")
    )


def is_damage_spell(item: Item) -> bool:
    return (
        item.effect in (ItemEffect.SURGE, ItemEffect.DRAIN)
        or item.item_type in ("strength", "magic")
    ) and item.effect not in (ItemEffect.SHIELD, ItemEffect.CHARGE)


def is_attack_tool(item: Item) -> bool:
    if item.effect is ItemEffect.SHIELD:
        return False
    return item.effect is ItemEffect.SURGE or item.item_type in ("strength", "magic")
