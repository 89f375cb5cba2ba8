"""
Action Generator - Generates all legal intents from a battle state.

The action generator is used by:
1. Bots to enumerate possible moves
2. The CLI and API to show available actions
3. Validation (is this action in legal_actions?)

Design: Generates Action objects, not just action types.
This ensures all generated actions are fully specified.
"""

from __future__ import annotations
from dataclasses import dataclass

from .action import Action, ActionType
from .difficulty import get_settings
from .energy import ATTACK_COST, DEFEND_COST
from .state import BattleState, Phase
from .stats import deployment_cost


@dataclass
class ActionGenerator:
    """
    Generates legal intents for the active side.

    Attacks are generated with attack type "auto".
    """
    include_end_turn: bool = True

    def generate(self, state: BattleState) -> list[Action]:
        """
        Generate all legal intents for the active side.

        Returns a list of fully-specified Action objects.
        """
        if state.phase is not Phase.ACTION:
            return []

        actions: list[Action] = []
        actions.extend(self._generate_deploy_actions(state))
        actions.extend(self._generate_attack_actions(state))
        actions.extend(self._generate_tool_actions(state))
        actions.extend(self._generate_spell_actions(state))
        actions.extend(self._generate_defend_actions(state))

        # End turn is always available
        if self.include_end_turn:
            actions.append(Action.end_turn(state.active_side))
        return actions

    def _generate_deploy_actions(self, state: BattleState) -> list[Action]:
        side = state.active
        if len(side.field) >= get_settings(state.difficulty).max_field_size:
            return []
        return [
            Action.deploy(side.side, c.creature_id, deployment_cost(c.form))
            for c in side.hand
            if deployment_cost(c.form) <= side.energy
        ]

    def _generate_attack_actions(self, state: BattleState) -> list[Action]:
        side = state.active
        if side.energy < ATTACK_COST:
            return []
        opposing = state.side(side.side.opponent)
        return [
            Action.attack(side.side, attacker.creature_id, target.creature_id)
            for attacker in side.field
            if not attacker.is_defending
            for target in opposing.field
        ]

    def _generate_tool_actions(self, state: BattleState) -> list[Action]:
        side = state.active
        return [
            Action.use_tool(side.side, tool.item_id, target.creature_id)
            for tool in side.tools
            for target in side.field
        ]

    def _generate_spell_actions(self, state: BattleState) -> list[Action]:
        side = state.active
        targets = side.field + state.side(side.side.opponent).field
        return [
            Action.use_spell(side.side, spell.item_id, caster.creature_id, target.creature_id, spell.energy_cost)
            for spell in side.spells
            if spell.energy_cost <= side.energy
            for caster in side.field
            for target in targets
        ]

    def _generate_defend_actions(self, state: BattleState) -> list[Action]:
        side = state.active
        if side.energy < DEFEND_COST:
            return []
        return [
            Action.defend(side.side, c.creature_id)
            for c in side.field
            if not c.is_defending
        ]


def legal_actions(state: BattleState) -> list[Action]:
    """
    Convenience function to get legal intents.

    Creates an ActionGenerator and generates actions.
    """
    return ActionGenerator().generate(state)


def is_legal(state: BattleState, action: Action) -> bool:
    """Check if an intent is legal in the current state."""
    for legal in legal_actions(state):
        if legal.action_type is not action.action_type:
            continue
        if action.action_type is ActionType.END_TURN:
            return True
        lp, ap = legal.payload, action.payload
        if (lp.creature_id, lp.target_id, lp.item_id) == (ap.creature_id, ap.target_id, ap.item_id):
            return True
    return False
