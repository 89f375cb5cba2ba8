"""
Energy Ledger - Costs, regeneration, momentum, decay and caps.

Every function returns a new SideState; energy is clamped to
[0, max_energy] after each ledger call.
"""

from __future__ import annotations
import math
from dataclasses import dataclass

from .difficulty import DifficultySettings, get_settings
from .state import Creature, Difficulty, Rarity, SideState
from .stats import deployment_cost, round_half_up


ATTACK_COST = 2
DEFEND_COST = 1
SPELL_COST = 4
TOOL_COST = 0
STARTING_ENERGY = 10

DECAY_THRESHOLD = 10
DECAY_RATE = 0.1

MOMENTUM_PER_SPEND = 5  # Energy spent per momentum point
MOMENTUM_PER_REGEN = 10  # Momentum per bonus regen point

REGEN_RARITY = {
    Rarity.COMMON: 1.0,
    Rarity.RARE: 1.1,
    Rarity.EPIC: 1.2,
    Rarity.LEGENDARY: 1.3,
}


@dataclass(frozen=True)
class EnergyLedger:
    """Energy rules for one difficulty."""
    settings: DifficultySettings

    @classmethod
    def for_difficulty(cls, difficulty: Difficulty | str) -> EnergyLedger:
        return cls(settings=get_settings(difficulty))

    # ------------------------------------------------------------------
    # Costs and caps
    # ------------------------------------------------------------------

    @staticmethod
    def deploy_cost(creature: Creature) -> int:
        return deployment_cost(creature.form)

    def max_energy(self, field: tuple[Creature, ...] | list[Creature]) -> int:
        return self.settings.base_max_energy + math.floor(len(field) * 0.25)

    @property
    def max_hand_size(self) -> int:
        return self.settings.max_hand_size

    def clamp(self, side: SideState) -> SideState:
        energy = max(0, min(side.energy, self.max_energy(side.field)))
        if energy == side.energy:
            return side
        return side._copy_with(energy=energy)

    # ------------------------------------------------------------------
    # Spending
    # ------------------------------------------------------------------

    def can_afford(self, side: SideState, cost: int) -> bool:
        return side.energy >= cost

    def spend(self, side: SideState, cost: int) -> SideState:
        """
        Deduct an action's cost.

        Counts toward the combo streak and builds momentum at one point per
        five energy spent.
        """
        if cost > side.energy:
            raise ValueError(f"Cannot spend {cost} energy with {side.energy} available")
        spent = side._copy_with(
            energy=side.energy - cost,
            consecutive_actions=side.consecutive_actions + 1,
            momentum=side.momentum + cost // MOMENTUM_PER_SPEND,
        )
        return self.clamp(spent)

    def gain(self, side: SideState, amount: int) -> SideState:
        return self.clamp(side._copy_with(energy=side.energy + amount))

    @staticmethod
    def combo_multiplier(consecutive_actions: int) -> float:
        if consecutive_actions <= 1:
            return 1.0
        return 1 + min(consecutive_actions * 0.05, 0.25)

    # ------------------------------------------------------------------
    # Turn boundaries
    # ------------------------------------------------------------------

    def base_regen(self, field: tuple[Creature, ...] | list[Creature]) -> int:
        """Regeneration from difficulty and creatures on the field."""
        contribution = 0.0
        specialists = 0.0
        for creature in field:
            energy = creature.attribute("energy") if creature.attributes else 0
            contribution += energy * 0.1 * REGEN_RARITY.get(creature.rarity, 1.0) * (1 + creature.form * 0.05)
            if creature.has_specialty("energy"):
                specialists += 0.5
        return round_half_up(self.settings.base_regen + contribution + specialists)

    def regen_amount(self, side: SideState) -> int:
        return self.base_regen(side.field) + side.momentum // MOMENTUM_PER_REGEN

    def regenerate(self, side: SideState) -> tuple[SideState, int]:
        """Apply turn-start regeneration and reset momentum."""
        before = side.energy
        regenerated = self.clamp(side._copy_with(
            energy=side.energy + self.regen_amount(side),
            momentum=0,
        ))
        return regenerated, regenerated.energy - before

    def decay(self, side: SideState) -> tuple[SideState, int]:
        """Turn-end decay: lose 10% (floored) while holding more than 10."""
        if side.energy <= DECAY_THRESHOLD:
            return side, 0
        lost = math.floor(side.energy * DECAY_RATE)
        return self.clamp(side._copy_with(energy=side.energy - lost)), lost

    def end_turn(self, side: SideState) -> tuple[SideState, int]:
        """Decay plus a reset of the combo streak."""
        decayed, lost = self.decay(side)
        return decayed._copy_with(consecutive_actions=0), lost
