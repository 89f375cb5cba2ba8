"""
Action System - Actions, payloads, and results.

Actions represent:
1. Side intents (deploy, attack, use tool, use spell, defend, end turn)
2. Turn boundary processing (effect tick)

All state changes flow through actions, for the player and the AI alike.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from .state import BattleState, Side

if TYPE_CHECKING:
    from .combat import AttackResult


class ActionType(Enum):
    """Types of actions in the system."""
    # Side intents
    DEPLOY = "deploy"
    ATTACK = "attack"
    USE_TOOL = "use_tool"
    USE_SPELL = "use_spell"
    DEFEND = "defend"
    END_TURN = "end_turn"

    # System actions
    EFFECT_TICK = "effect_tick"  # Turn-start regen, effects and draw


INTENT_TYPES = frozenset({
    ActionType.DEPLOY,
    ActionType.ATTACK,
    ActionType.USE_TOOL,
    ActionType.USE_SPELL,
    ActionType.DEFEND,
    ActionType.END_TURN,
})


@dataclass
class ActionPayload:
    """
    Payload for an action - contains the action parameters.

    Different action types use different fields:
    - deploy / defend: creature_id
    - attack: creature_id (attacker), target_id, attack_type
    - use_tool: item_id, target_id
    - use_spell: item_id, creature_id (caster), target_id
    """
    side: Side | None = None
    creature_id: str | None = None
    target_id: str | None = None
    item_id: str | None = None
    attack_type: str = "auto"

    # Generic params
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class Action:
    """
    A complete action to be applied to the battle state.

    energy_cost and priority are planning annotations; the reducer
    recomputes the real cost from the state.
    """
    action_type: ActionType
    payload: ActionPayload
    energy_cost: int = 0
    priority: int = 0
    action_id: str | None = None

    @property
    def side(self) -> Side | None:
        return self.payload.side

    @classmethod
    def deploy(cls, side: Side, creature_id: str, energy_cost: int = 0) -> Action:
        """Factory for deploy action."""
        return cls(
            action_type=ActionType.DEPLOY,
            payload=ActionPayload(side=side, creature_id=creature_id),
            energy_cost=energy_cost,
        )

    @classmethod
    def attack(cls, side: Side, attacker_id: str, target_id: str, attack_type: str = "auto") -> Action:
        """Factory for attack action."""
        return cls(
            action_type=ActionType.ATTACK,
            payload=ActionPayload(
                side=side,
                creature_id=attacker_id,
                target_id=target_id,
                attack_type=attack_type,
            ),
            energy_cost=2,
        )

    @classmethod
    def use_tool(cls, side: Side, item_id: str, target_id: str) -> Action:
        """Factory for tool action."""
        return cls(
            action_type=ActionType.USE_TOOL,
            payload=ActionPayload(side=side, item_id=item_id, target_id=target_id),
            energy_cost=0,
        )

    @classmethod
    def use_spell(
        cls,
        side: Side,
        item_id: str,
        caster_id: str,
        target_id: str,
        energy_cost: int = 4,
    ) -> Action:
        """Factory for spell action."""
        return cls(
            action_type=ActionType.USE_SPELL,
            payload=ActionPayload(
                side=side,
                item_id=item_id,
                creature_id=caster_id,
                target_id=target_id,
            ),
            energy_cost=energy_cost,
        )

    @classmethod
    def defend(cls, side: Side, creature_id: str) -> Action:
        """Factory for defend action."""
        return cls(
            action_type=ActionType.DEFEND,
            payload=ActionPayload(side=side, creature_id=creature_id),
            energy_cost=1,
        )

    @classmethod
    def end_turn(cls, side: Side) -> Action:
        """Factory for end turn action."""
        return cls(action_type=ActionType.END_TURN, payload=ActionPayload(side=side))

    @classmethod
    def effect_tick(cls, side: Side) -> Action:
        """Factory for the turn-start effect tick."""
        return cls(action_type=ActionType.EFFECT_TICK, payload=ActionPayload(side=side))

    def describe(self) -> str:
        """Short human-readable form, used in logs and the CLI."""
        p = self.payload
        who = p.side.value if p.side else "?"
        if self.action_type is ActionType.ATTACK:
            return f"{who}: attack {p.creature_id} -> {p.target_id} ({p.attack_type})"
        if self.action_type is ActionType.USE_SPELL:
            return f"{who}: spell {p.item_id} from {p.creature_id} -> {p.target_id}"
        if self.action_type is ActionType.USE_TOOL:
            return f"{who}: tool {p.item_id} -> {p.target_id}"
        if self.action_type in (ActionType.DEPLOY, ActionType.DEFEND):
            return f"{who}: {self.action_type.value} {p.creature_id}"
        return f"{who}: {self.action_type.value}"


@dataclass
class ActionResult:
    """
    Result of applying an action.

    Contains:
    - Whether action succeeded
    - New state (the unchanged state on failure)
    - Errors (if failed)
    - Log lines appended by this action
    """
    success: bool
    new_state: BattleState | None = None
    error: str | None = None
    error_code: str | None = None

    # For presentation
    log: list[str] = field(default_factory=list)

    # Typed combat outcome for attacks
    attack: AttackResult | None = None

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        state: BattleState | None = None,
    ) -> ActionResult:
        """Create a failure result."""
        return cls(success=False, new_state=state, error=error, error_code=error_code)

    @classmethod
    def success_with_state(
        cls,
        state: BattleState,
        log: list[str] | None = None,
        attack: AttackResult | None = None,
    ) -> ActionResult:
        """Create a success result with new state."""
        return cls(success=True, new_state=state, log=log or [], attack=attack)
