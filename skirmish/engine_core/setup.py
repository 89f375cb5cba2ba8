"""
Battle Setup - Builds the initial battle state and the enemy loadout.

Enemy creatures, tools and spells are generated from the difficulty table
with a seeded random source, so the same seed yields the same opponent.
"""

from __future__ import annotations
import logging
import random
import uuid
from typing import Iterable

from .difficulty import DifficultySettings, get_settings
from .energy import STARTING_ENERGY
from .state import (
    ATTRIBUTE_NAMES,
    Attributes,
    BattleState,
    Creature,
    Difficulty,
    ItemEffect,
    Phase,
    Rarity,
    Side,
    SideState,
    Spell,
    Tool,
)
from .stats import build_creature, round_half_up

logger = logging.getLogger(__name__)


PLAYER_INITIAL_HAND = 3

BASE_ATTRIBUTE_BY_RARITY = {
    Rarity.COMMON: 5,
    Rarity.RARE: 6,
    Rarity.EPIC: 7,
    Rarity.LEGENDARY: 8,
}

# Used when the player brings no species to mirror
DEFAULT_SPECIES = (
    ("emberling", "Emberling"),
    ("tidecaller", "Tidecaller"),
    ("stonehide", "Stonehide"),
    ("galewing", "Galewing"),
    ("voidmoth", "Voidmoth"),
)


def select_rarity(distribution: dict[Rarity, float], rng: random.Random) -> Rarity:
    """Pick a rarity from a cumulative probability table."""
    roll = rng.random()
    cumulative = 0.0
    for rarity in Rarity:
        cumulative += distribution.get(rarity, 0.0)
        if roll <= cumulative:
            return rarity
    return Rarity.COMMON


def _select_form(settings: DifficultySettings, rng: random.Random) -> int:
    low, high = settings.form_min, settings.form_max
    if settings.difficulty is Difficulty.EXPERT:
        return high if rng.random() < 0.6 else rng.randint(low, high)
    if settings.difficulty is Difficulty.HARD:
        return rng.randint(low, high)
    return low if rng.random() < 0.7 else rng.randint(low, high)


def _base_attributes(rarity: Rarity, multiplier: float, rng: random.Random) -> dict[str, int]:
    base = BASE_ATTRIBUTE_BY_RARITY[rarity]
    values = {}
    for name in ATTRIBUTE_NAMES:
        variance = 0.9 + rng.random() * 0.2
        values[name] = max(1, min(15, round_half_up(base * multiplier * variance)))
    return values


def _evolution_boosts(values: dict[str, int], form: int, specialties: list[str]) -> None:
    for name in ATTRIBUTE_NAMES:
        if form >= 1:
            values[name] += 1
        if form >= 2:
            values[name] += 1
            if name in specialties:
                values[name] += 1
        if form >= 3:
            values[name] += 2


def _random_upgrades(
    values: dict[str, int],
    form: int,
    specialties: list[str],
    settings: DifficultySettings,
    rng: random.Random,
) -> None:
    for _ in range(form * 3 + settings.extra_upgrades):
        if specialties and rng.random() < 0.5:
            name = rng.choice(specialties)
        else:
            name = rng.choice(ATTRIBUTE_NAMES)
        values[name] += 1


def generate_enemy_creature(
    index: int,
    settings: DifficultySettings,
    rng: random.Random,
    species_pool: list[tuple[str, str]],
) -> Creature:
    """Generate one enemy creature for a difficulty."""
    rarity = select_rarity(settings.enemy_rarity, rng)
    form = _select_form(settings, rng)
    species_id, species_name = rng.choice(species_pool)
    values = _base_attributes(rarity, settings.enemy_stats_multiplier, rng)

    two_chance = 0.6 if settings.difficulty.is_hard_or_above else 0.3
    count = 2 if rng.random() < two_chance else 1
    specialties: list[str] = []
    for _ in range(count):
        available = [name for name in ATTRIBUTE_NAMES if name not in specialties]
        specialties.append(rng.choice(available))

    _evolution_boosts(values, form, specialties)
    _random_upgrades(values, form, specialties, settings, rng)

    combination_level = 0
    if settings.difficulty.is_hard_or_above and rng.random() < 0.3:
        combination_level = rng.randint(1, 2)
        for name in specialties:
            values[name] += combination_level

    return build_creature(
        creature_id=f"enemy-{index}",
        species_id=species_id,
        name=f"Wild {species_name}",
        attributes=Attributes(**values),
        rarity=rarity,
        form=form,
        specialties=specialties,
        combination_level=combination_level,
    )


def generate_enemy_creatures(
    settings: DifficultySettings,
    rng: random.Random,
    player_creatures: Iterable[Creature] = (),
) -> list[Creature]:
    """Generate the enemy deck, mirroring the player's species when possible."""
    pool: dict[str, str] = {}
    for creature in player_creatures:
        pool.setdefault(creature.species_id, creature.name)
    species_pool = list(pool.items()) or list(DEFAULT_SPECIES)

    return [
        generate_enemy_creature(i, settings, rng, species_pool)
        for i in range(settings.enemy_deck_size)
    ]


def _item_name(rarity: Rarity, effect: ItemEffect, item_type: str, kind: str) -> str:
    return f"{rarity.value} {effect.value} {item_type.capitalize()} {kind}"


def generate_enemy_tools(settings: DifficultySettings, rng: random.Random) -> list[Tool]:
    tools = []
    for i in range(settings.tool_count):
        item_type = rng.choice(ATTRIBUTE_NAMES)
        effect = rng.choice(list(ItemEffect))
        rarity = select_rarity(settings.tool_rarity, rng)
        tools.append(Tool(
            item_id=f"enemy-tool-{i}",
            name=_item_name(rarity, effect, item_type, "Tool"),
            item_type=item_type,
            effect=effect,
            rarity=rarity,
        ))
    return tools


def generate_enemy_spells(settings: DifficultySettings, rng: random.Random) -> list[Spell]:
    spells = []
    for i in range(settings.spell_count):
        item_type = rng.choice(ATTRIBUTE_NAMES)
        effect = rng.choice(list(ItemEffect))
        rarity = select_rarity(settings.spell_rarity, rng)
        spells.append(Spell(
            item_id=f"enemy-spell-{i}",
            name=_item_name(rarity, effect, item_type, "Spell"),
            item_type=item_type,
            effect=effect,
            rarity=rarity,
        ))
    return spells


def start_battle(
    player_creatures: Iterable[Creature],
    difficulty: Difficulty | str = Difficulty.MEDIUM,
    tools: Iterable[Tool] = (),
    spells: Iterable[Spell] = (),
    seed: int | None = None,
    battle_id: str | None = None,
) -> BattleState:
    """
    Build the opening state of a battle.

    The player's first three creatures form the hand, the rest the deck.
    The enemy deck, hand and items come from the difficulty table. Both
    sides start with 10 energy and the player acts first.
    """
    creatures = list(player_creatures)
    if not creatures:
        raise ValueError("A battle needs at least one player creature")
    ids = [c.creature_id for c in creatures]
    if len(set(ids)) != len(ids):
        raise ValueError("Player creature ids must be unique")

    settings = get_settings(difficulty)
    rng = random.Random(seed)

    enemy_creatures = generate_enemy_creatures(settings, rng, creatures)
    enemy_tools = generate_enemy_tools(settings, rng)
    enemy_spells = generate_enemy_spells(settings, rng)

    hand_size = min(PLAYER_INITIAL_HAND, len(creatures))
    player = SideState(
        side=Side.PLAYER,
        hand=tuple(creatures[:hand_size]),
        deck=tuple(creatures[hand_size:]),
        tools=tuple(tools),
        spells=tuple(spells),
        energy=STARTING_ENERGY,
        last_tick_turn=1,  # The opening turn has no turn-start tick
    )
    enemy_hand = settings.initial_hand_size
    enemy = SideState(
        side=Side.ENEMY,
        hand=tuple(enemy_creatures[:enemy_hand]),
        deck=tuple(enemy_creatures[enemy_hand:]),
        tools=tuple(enemy_tools),
        spells=tuple(enemy_spells),
        energy=STARTING_ENERGY,
    )

    state = BattleState(
        battle_id=battle_id or uuid.uuid4().hex,
        player=player,
        enemy=enemy,
        difficulty=settings.difficulty,
        turn=1,
        active_side=Side.PLAYER,
        phase=Phase.ACTION,
        seed=seed,
    )
    logger.info(
        "Battle %s started on %s: %d player creatures vs %d enemies",
        state.battle_id, settings.difficulty.value, len(creatures), len(enemy_creatures),
    )
    return state.with_log(
        f"Battle started on {settings.difficulty.value} difficulty",
        f"Enemy fields {len(enemy_creatures)} creatures",
    )
