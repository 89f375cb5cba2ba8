"""
Battle State - Immutable containers for a creature battle.

Design principles:
- Immutable: every container is a frozen dataclass, transitions return new state
- Tagged: creatures, effects and items have explicit required/optional fields
- Replayable: effect stat modifications live on the effect, never in base stats
- Serializable: plain values only, so state can be logged or sent over the API
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum


class Rarity(Enum):
    """Creature and item rarity tiers."""
    COMMON = "Common"
    RARE = "Rare"
    EPIC = "Epic"
    LEGENDARY = "Legendary"


class Difficulty(Enum):
    """Battle difficulty tiers."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"

    @classmethod
    def parse(cls, value: Difficulty | str) -> Difficulty:
        """Accept an enum member or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown difficulty: {value}") from None

    @property
    def is_hard_or_above(self) -> bool:
        return self in (Difficulty.HARD, Difficulty.EXPERT)


class Side(Enum):
    """The two sides of a battle."""
    PLAYER = "player"
    ENEMY = "enemy"

    @property
    def opponent(self) -> Side:
        return Side.ENEMY if self is Side.PLAYER else Side.PLAYER


class Phase(Enum):
    """Turn state machine phases."""
    ACTION = "action"  # Active side may act
    EFFECT_TICK = "effect_tick"  # Turn boundary processing is pending
    GAME_OVER = "game_over"


class EffectKind(Enum):
    """Discriminator for active effects."""
    BUFF = "buff"
    DEBUFF = "debuff"
    DEFENSE = "defense"
    CHARGE = "charge"
    ECHO = "echo"
    BLESSING = "blessing"


class ItemEffect(Enum):
    """Effect kinds carried by tools and spells."""
    SURGE = "Surge"
    SHIELD = "Shield"
    ECHO = "Echo"
    DRAIN = "Drain"
    CHARGE = "Charge"


ATTRIBUTE_NAMES = ("energy", "strength", "magic", "stamina", "speed")


@dataclass(frozen=True)
class Attributes:
    """Base attribute set of a creature."""
    energy: int = 5
    strength: int = 5
    magic: int = 5
    stamina: int = 5
    speed: int = 5

    def get(self, name: str, default: int = 5) -> int:
        """Get an attribute by name."""
        if name not in ATTRIBUTE_NAMES:
            return default
        return getattr(self, name)

    @property
    def total(self) -> int:
        return sum(getattr(self, name) for name in ATTRIBUTE_NAMES)

    def as_dict(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in ATTRIBUTE_NAMES}


@dataclass(frozen=True)
class BattleStats:
    """Derived combat stats."""
    physical_attack: int = 10
    magical_attack: int = 10
    physical_defense: int = 5
    magical_defense: int = 5
    max_health: int = 50
    initiative: int = 10
    critical_chance: float = 5.0
    dodge_chance: float = 3.0
    energy_cost: int = 5

    def get(self, stat: str) -> float:
        return getattr(self, stat)

    @property
    def power(self) -> int:
        """Best attack stat, used as the creature's threat value."""
        return max(self.physical_attack, self.magical_attack)

    def _copy_with(self, **kwargs) -> BattleStats:
        return replace(self, **kwargs)


STAT_NAMES = (
    "physical_attack",
    "magical_attack",
    "physical_defense",
    "magical_defense",
    "max_health",
    "initiative",
    "critical_chance",
    "dodge_chance",
    "energy_cost",
)


@dataclass(frozen=True)
class ChargeData:
    """Sub-data for charge effects."""
    max_turns: int = 3
    per_turn_bonus: int = 0
    final_burst: int = 0
    target_stat: str = "physical_attack"


@dataclass(frozen=True)
class ActiveEffect:
    """
    A time-limited modifier attached to a creature.

    Duration is decremented once per owning-side effect tick; the effect is
    dropped when it reaches 0 after its final tick.
    """
    effect_id: str
    name: str
    kind: EffectKind = EffectKind.BUFF
    duration: int = 1
    stat_modifications: dict[str, int] = field(default_factory=dict)
    health_over_time: int = 0
    start_turn: int = 0
    source: str | None = None  # Item or creature that created it
    charge: ChargeData | None = None
    damage_reduction: float = 0.0
    power_label: str | None = None

    def _copy_with(self, **kwargs) -> ActiveEffect:
        return replace(self, **kwargs)


@dataclass(frozen=True)
class Creature:
    """
    A creature battle instance.

    base_stats are derived from attributes only; battle_stats are base_stats
    plus the live effect list. Both are None for a malformed record.
    """
    creature_id: str
    species_id: str
    name: str
    rarity: Rarity = Rarity.COMMON
    form: int = 0
    attributes: Attributes | None = field(default_factory=Attributes)
    specialties: tuple[str, ...] = ()
    combination_level: int = 0

    base_stats: BattleStats | None = None
    battle_stats: BattleStats | None = None
    current_health: int = 0
    is_defending: bool = False
    effects: tuple[ActiveEffect, ...] = ()
    next_attack_bonus: int = 0

    @property
    def is_well_formed(self) -> bool:
        return self.attributes is not None and self.battle_stats is not None

    @property
    def max_health(self) -> int:
        return self.battle_stats.max_health if self.battle_stats else 0

    @property
    def health_ratio(self) -> float:
        if not self.battle_stats or self.battle_stats.max_health <= 0:
            return 0.0
        return self.current_health / self.battle_stats.max_health

    @property
    def is_alive(self) -> bool:
        return self.current_health > 0

    @property
    def power(self) -> int:
        return self.battle_stats.power if self.battle_stats else 0

    @property
    def deployment_cost(self) -> int:
        return 5 + self.form

    def attribute(self, name: str) -> int:
        """Attribute value, 5 when attributes are missing."""
        if self.attributes is None:
            return 5
        return self.attributes.get(name)

    def has_specialty(self, name: str) -> bool:
        return name in self.specialties

    def _copy_with(self, **kwargs) -> Creature:
        return replace(self, **kwargs)


@dataclass(frozen=True)
class Item:
    """A consumable tool or spell."""
    item_id: str
    name: str
    item_type: str  # One of ATTRIBUTE_NAMES
    effect: ItemEffect
    rarity: Rarity = Rarity.COMMON

    @property
    def energy_cost(self) -> int:
        return 0


@dataclass(frozen=True)
class Tool(Item):
    """Single-use item applied to a creature. Costs no energy."""


@dataclass(frozen=True)
class Spell(Item):
    """Single-use item cast by a creature on a target."""
    cost: int = 4

    @property
    def energy_cost(self) -> int:
        return self.cost


@dataclass(frozen=True)
class LogEntry:
    """A battle log line tagged with its turn."""
    turn: int
    message: str
    side: Side | None = None

    def __str__(self) -> str:
        return f"[Turn {self.turn}] {self.message}"


@dataclass(frozen=True)
class SideState:
    """
    One side of the battle.

    A creature id appears in at most one of deck, hand and field.
    """
    side: Side
    deck: tuple[Creature, ...] = ()
    hand: tuple[Creature, ...] = ()
    field: tuple[Creature, ...] = ()
    tools: tuple[Tool, ...] = ()
    spells: tuple[Spell, ...] = ()
    energy: int = 10
    consecutive_actions: int = 0
    momentum: int = 0
    last_tick_turn: int = 0  # Turn id of the last effect tick
    defeated: int = 0

    def field_creature(self, creature_id: str | None) -> Creature | None:
        for c in self.field:
            if c.creature_id == creature_id:
                return c
        return None

    def hand_creature(self, creature_id: str | None) -> Creature | None:
        for c in self.hand:
            if c.creature_id == creature_id:
                return c
        return None

    def tool(self, item_id: str | None) -> Tool | None:
        return next((t for t in self.tools if t.item_id == item_id), None)

    def spell(self, item_id: str | None) -> Spell | None:
        return next((s for s in self.spells if s.item_id == item_id), None)

    @property
    def is_exhausted(self) -> bool:
        """No creatures left in field, hand or deck."""
        return not self.field and not self.hand and not self.deck

    def with_field_creature(self, creature: Creature) -> SideState:
        """Return new side with a field creature replaced by id."""
        new_field = tuple(
            creature if c.creature_id == creature.creature_id else c
            for c in self.field
        )
        return self._copy_with(field=new_field)

    def _copy_with(self, **kwargs) -> SideState:
        return replace(self, **kwargs)


@dataclass(frozen=True)
class BattleState:
    """
    Complete battle state at a point in time.

    This is the canonical state the engine operates on.
    All state changes go through the reducer.
    """
    battle_id: str
    player: SideState
    enemy: SideState
    difficulty: Difficulty = Difficulty.MEDIUM
    turn: int = 1
    active_side: Side = Side.PLAYER
    phase: Phase = Phase.ACTION
    log: tuple[LogEntry, ...] = ()
    winner: Side | None = None
    seed: int | None = None

    @property
    def is_over(self) -> bool:
        return self.phase == Phase.GAME_OVER

    @property
    def active(self) -> SideState:
        return self.side(self.active_side)

    def side(self, side: Side) -> SideState:
        return self.player if side is Side.PLAYER else self.enemy

    def with_side(self, side_state: SideState) -> BattleState:
        """Return new state with one side replaced."""
        if side_state.side is Side.PLAYER:
            return self._copy_with(player=side_state)
        return self._copy_with(enemy=side_state)

    def with_log(self, *messages: str, side: Side | None = None) -> BattleState:
        """Return new state with log lines appended."""
        entries = tuple(LogEntry(turn=self.turn, message=m, side=side) for m in messages if m)
        if not entries:
            return self
        return self._copy_with(log=self.log + entries)

    def find_creature(self, creature_id: str | None) -> tuple[Side, Creature] | None:
        """Locate a field creature on either side."""
        for side in (Side.PLAYER, Side.ENEMY):
            creature = self.side(side).field_creature(creature_id)
            if creature is not None:
                return side, creature
        return None

    def _copy_with(self, **kwargs) -> BattleState:
        """Create a copy with some fields replaced."""
        return replace(self, **kwargs)
