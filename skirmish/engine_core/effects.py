"""
Effect Timeline - Advances time-limited modifiers at turn boundaries.

Design principles:
- One tick per side per turn; the reducer guards it with a turn-id stamp
- Stat modifications stay on the effect and are replayed on recompute
- Health over time scales with difficulty, then creature rarity
- Charge effects build a stat bonus and finish with a next-attack burst
"""

from __future__ import annotations
import logging
import math

from .energy import EnergyLedger
from .state import (
    ActiveEffect,
    BattleState,
    Creature,
    Difficulty,
    EffectKind,
    Rarity,
    Side,
    SideState,
)
from .stats import refresh_creature, round_half_up

logger = logging.getLogger(__name__)


HOT_DIFFICULTY_SCALE = {
    Difficulty.HARD: 1.15,
    Difficulty.EXPERT: 1.25,
}

HOT_RARITY_SCALE = {
    Rarity.RARE: 1.1,
    Rarity.EPIC: 1.15,
    Rarity.LEGENDARY: 1.2,
}

ENERGY_RELEASE_AMOUNT = 2

COMBO_BONUS_THRESHOLD = 3
COMBO_BONUS_DURATION = 2
COMBO_BONUS_MODS = {"physical_attack": 2, "magical_attack": 2}


def effect_id(slug: str, turn: int, creature: Creature) -> str:
    """Deterministic effect id, unique within a creature's effect list."""
    return f"{slug}:{turn}:{len(creature.effects)}"


def add_effect(creature: Creature, effect: ActiveEffect) -> Creature:
    """Attach an effect and recompute battle stats."""
    return refresh_creature(creature, creature.effects + (effect,))


def scale_health_over_time(amount: int, difficulty: Difficulty, rarity: Rarity) -> int:
    scaled = amount
    if difficulty in HOT_DIFFICULTY_SCALE:
        scaled = round_half_up(scaled * HOT_DIFFICULTY_SCALE[difficulty])
    if rarity in HOT_RARITY_SCALE:
        scaled = round_half_up(scaled * HOT_RARITY_SCALE[rarity])
    return scaled


def charge_progress(effect: ActiveEffect, turn: int) -> float:
    if effect.charge is None:
        return 0.0
    max_turns = effect.charge.max_turns or 3
    return min((turn - effect.start_turn) / max_turns, 1.0)


def tick_creature(creature: Creature, difficulty: Difficulty, turn: int) -> tuple[Creature, list[str]]:
    """
    Advance every effect on a creature by one tick.

    Returns the updated creature and log lines. A malformed creature is
    returned unchanged.
    """
    if not creature.is_well_formed:
        logger.warning("Skipping effect tick for malformed creature %s", creature.creature_id)
        return creature, [f"{creature.name} could not process effects (missing stats)"]

    messages: list[str] = []
    health = creature.current_health
    max_health = creature.max_health
    bonus = creature.next_attack_bonus
    remaining: list[ActiveEffect] = []

    for effect in creature.effects:
        current = effect

        if effect.health_over_time:
            change = scale_health_over_time(effect.health_over_time, difficulty, creature.rarity)
            previous = health
            health = max(0, min(max_health, health + change))
            actual = health - previous
            if abs(actual) >= 5:
                verb = "healed" if actual > 0 else "damaged"
                messages.append(f"{creature.name} {verb} for {abs(actual)} ({effect.name})")

        if effect.kind is EffectKind.CHARGE and effect.charge is not None:
            progress = charge_progress(effect, turn)
            if progress >= 1.0 and effect.charge.final_burst:
                bonus += effect.charge.final_burst
                messages.append(
                    f"{creature.name}'s charge is ready! Next attack gains {effect.charge.final_burst} damage"
                )
                continue
            step = math.floor(effect.charge.per_turn_bonus * progress)
            mods = {effect.charge.target_stat: step} if step > 0 else {}
            current = current._copy_with(stat_modifications=mods)

        current = current._copy_with(duration=current.duration - 1)
        if current.duration > 0:
            remaining.append(current)
        else:
            messages.append(f"{effect.name} wore off {creature.name}")

    updated = creature._copy_with(
        current_health=health,
        next_attack_bonus=bonus,
        is_defending=False,
    )
    return refresh_creature(updated, tuple(remaining)), messages


def tick_side(side: SideState, difficulty: Difficulty, turn: int) -> tuple[SideState, list[str]]:
    """Tick every creature on a side's field."""
    messages: list[str] = []
    field = []
    for creature in side.field:
        ticked, lines = tick_creature(creature, difficulty, turn)
        field.append(ticked)
        messages.extend(lines)
    return side._copy_with(field=tuple(field)), messages


# =============================================================================
# Death effects
# =============================================================================

def _bless_all(
    creatures: tuple[Creature, ...],
    slug: str,
    name: str,
    kind: EffectKind,
    duration: int,
    mods: dict[str, int],
    turn: int,
    source: str,
) -> tuple[Creature, ...]:
    return tuple(
        add_effect(c, ActiveEffect(
            effect_id=effect_id(slug, turn, c),
            name=name,
            kind=kind,
            duration=duration,
            stat_modifications=dict(mods),
            start_turn=turn,
            source=source,
        ))
        for c in creatures
    )


def grant_combo_bonus(side: SideState, turn: int) -> SideState:
    """
    Reward a side that took COMBO_BONUS_THRESHOLD or more actions this turn.

    Every creature on its field gains +2 attacks as a timed blessing that
    lasts through the side's next turn.
    """
    if side.consecutive_actions < COMBO_BONUS_THRESHOLD or not side.field:
        return side
    field = _bless_all(
        side.field, "combo-bonus", "Combo Bonus", EffectKind.BLESSING, COMBO_BONUS_DURATION,
        COMBO_BONUS_MODS, turn, side.side.value,
    )
    return side._copy_with(field=field)


def remove_defeated(state: BattleState, side: Side) -> BattleState:
    """
    Remove creatures at 0 health from a side's field and fire death effects.

    - Legendary: allies gain Final Gift (+2 attacks, 5 turns)
    - Energy specialist: owning side regains 2 energy
    - Epic: allies gain Epic Essence (+1 attacks, 3 turns)
    - Legendary or Epic: opposing creatures gain Guilty Conscience
    """
    own = state.side(side)
    fallen = [c for c in own.field if not c.is_alive]
    if not fallen:
        return state

    ledger = EnergyLedger.for_difficulty(state.difficulty)
    opposing = state.side(side.opponent)
    allies = tuple(c for c in own.field if c.is_alive)
    foes = opposing.field
    energy_gain = 0
    messages: list[str] = []

    for creature in fallen:
        messages.append(f"{creature.name} was defeated!")
        if creature.rarity is Rarity.LEGENDARY:
            messages.append(f"{creature.name}'s sacrifice empowers its allies")
            allies = _bless_all(
                allies, "final-gift", f"{creature.name}'s Final Gift", EffectKind.BLESSING, 5,
                {"physical_attack": 2, "magical_attack": 2}, state.turn, creature.creature_id,
            )
        elif creature.has_specialty("energy"):
            messages.append(f"{creature.name} releases its stored energy")
            energy_gain += ENERGY_RELEASE_AMOUNT
        elif creature.rarity is Rarity.EPIC:
            messages.append(f"{creature.name}'s essence lingers")
            allies = _bless_all(
                allies, "epic-essence", "Epic Essence", EffectKind.BLESSING, 3,
                {"physical_attack": 1, "magical_attack": 1}, state.turn, creature.creature_id,
            )

        if creature.rarity in (Rarity.LEGENDARY, Rarity.EPIC):
            foes = _bless_all(
                foes, "guilty-conscience", "Guilty Conscience", EffectKind.DEBUFF, 2,
                {"initiative": -2, "dodge_chance": -1}, state.turn, creature.creature_id,
            )

    new_own = own._copy_with(field=allies, defeated=own.defeated + len(fallen))
    # a smaller field lowers the cap
    new_own = ledger.gain(new_own, energy_gain) if energy_gain else ledger.clamp(new_own)

    logger.debug("Removed %d defeated creature(s) from %s", len(fallen), side.value)
    new_state = state.with_side(new_own).with_side(opposing._copy_with(field=foes))
    return new_state.with_log(*messages, side=side)


def remove_all_defeated(state: BattleState) -> BattleState:
    """Remove defeated creatures from both sides, player first."""
    state = remove_defeated(state, Side.PLAYER)
    return remove_defeated(state, Side.ENEMY)
