"""
Pytest fixtures for Skirmish tests.
"""

import pytest

from ..engine_core.state import (
    Attributes,
    BattleState,
    BattleStats,
    Creature,
    Difficulty,
    ItemEffect,
    Rarity,
    Side,
    SideState,
    Spell,
    Tool,
)
from ..engine_core.stats import build_creature


class ScriptedRng:
    """Returns scripted values from random(), then repeats the last one."""

    def __init__(self, *values: float):
        self.values = list(values) or [0.5]
        self.calls = 0

    def random(self) -> float:
        value = self.values[min(self.calls, len(self.values) - 1)]
        self.calls += 1
        return value

    def choice(self, seq):
        return seq[0]


# Variance 1.0, no critical, no dodge
NO_ROLLS = (0.5, 0.99, 0.99, 0.99, 0.99)


def make_creature(
    creature_id: str = "c1",
    name: str | None = None,
    rarity: Rarity = Rarity.COMMON,
    form: int = 0,
    specialties=(),
    **attributes,
) -> Creature:
    """Build a creature with 5 in every attribute unless overridden."""
    return build_creature(
        creature_id=creature_id,
        species_id=f"species_{creature_id}",
        name=name or creature_id.title(),
        attributes=Attributes(**attributes),
        rarity=rarity,
        form=form,
        specialties=specialties,
    )


def fixed_creature(creature_id: str, form: int = 0, health: int | None = None, **stats) -> Creature:
    """Creature with an explicit stat block and neutral attributes."""
    block = BattleStats(**stats)
    return Creature(
        creature_id=creature_id,
        species_id=f"species_{creature_id}",
        name=creature_id.title(),
        form=form,
        base_stats=block,
        battle_stats=block,
        current_health=block.max_health if health is None else health,
    )


def make_state(
    player_field=(),
    enemy_field=(),
    player_hand=(),
    enemy_hand=(),
    player_energy: int = 10,
    enemy_energy: int = 10,
    active_side: Side = Side.PLAYER,
    difficulty: Difficulty = Difficulty.MEDIUM,
    turn: int = 1,
    **sides,
) -> BattleState:
    """Battle state in the action phase with the given boards."""
    player = SideState(
        side=Side.PLAYER,
        field=tuple(player_field),
        hand=tuple(player_hand),
        deck=tuple(sides.get("player_deck", ())),
        tools=tuple(sides.get("player_tools", ())),
        spells=tuple(sides.get("player_spells", ())),
        energy=player_energy,
        last_tick_turn=turn if active_side is Side.PLAYER else turn - 1,
    )
    enemy = SideState(
        side=Side.ENEMY,
        field=tuple(enemy_field),
        hand=tuple(enemy_hand),
        deck=tuple(sides.get("enemy_deck", ())),
        tools=tuple(sides.get("enemy_tools", ())),
        spells=tuple(sides.get("enemy_spells", ())),
        energy=enemy_energy,
        last_tick_turn=turn if active_side is Side.ENEMY else turn - 1,
    )
    return BattleState(
        battle_id="test_battle",
        player=player,
        enemy=enemy,
        difficulty=difficulty,
        turn=turn,
        active_side=active_side,
    )


@pytest.fixture
def scripted_rng():
    return ScriptedRng(*NO_ROLLS)


@pytest.fixture
def roster() -> list[Creature]:
    """Four player creatures: three start in hand, one in the deck."""
    return [
        make_creature("ember", strength=9, speed=8, rarity=Rarity.RARE, form=1, specialties=("strength",)),
        make_creature("mistral", magic=10, energy=7, rarity=Rarity.EPIC, form=1, specialties=("magic",)),
        make_creature("bulwark", stamina=10, strength=6, specialties=("stamina",)),
        make_creature("flicker", speed=9, magic=6),
    ]


@pytest.fixture
def shield_tool() -> Tool:
    return Tool(item_id="ward", name="Stone Ward", item_type="stamina", effect=ItemEffect.SHIELD)


@pytest.fixture
def surge_spell() -> Spell:
    return Spell(item_id="bolt", name="Arc Bolt", item_type="magic", effect=ItemEffect.SURGE, rarity=Rarity.RARE)
