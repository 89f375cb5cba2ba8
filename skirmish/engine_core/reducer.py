"""
Reducer - Applies actions to battle state.

The reducer is the single point of state change.
All state changes must go through apply_action().

Design principles:
- Pure function: (state, action) -> new_state
- Validates before applying
- Returns ActionResult with success/failure
- Delegates combat math to the resolver and energy math to the ledger
- Turn-start processing is its own transition, stamped with the turn id
"""

from __future__ import annotations
import logging
import random
from dataclasses import dataclass, field, replace

from .action import Action, ActionResult, ActionType, INTENT_TYPES
from .combat import resolve_attack, resolve_defend, resolve_spell, resolve_tool
from .difficulty import get_settings
from .effects import grant_combo_bonus, remove_all_defeated, remove_defeated, tick_side
from .energy import ATTACK_COST, DEFEND_COST, EnergyLedger
from .state import BattleState, Phase, Side, SideState
from .stats import deployment_cost

logger = logging.getLogger(__name__)


SIDE_LABELS = {Side.PLAYER: "Player", Side.ENEMY: "Enemy"}


@dataclass
class Reducer:
    """
    Reducer applies actions to battle state.

    Stateless apart from the rng used for combat rolls - all battle state
    is in BattleState.
    """
    rng: random.Random = field(default_factory=random.Random)

    def apply(self, state: BattleState, action: Action) -> ActionResult:
        """
        Apply an action to the battle state.

        Returns ActionResult with new state or error.
        """
        # Validate action is legal
        validation_error, error_code = self._validate_action(state, action)
        if validation_error:
            logger.warning("Rejected %s: %s", action.describe(), validation_error)
            return ActionResult.failure(validation_error, error_code=error_code, state=state)

        # Dispatch to handler based on action type
        handler = self._get_handler(action.action_type)
        if not handler:
            return ActionResult.failure(
                f"No handler for action type: {action.action_type}",
                error_code="NO_HANDLER",
                state=state,
            )

        try:
            result = handler(state, action)
        except Exception as e:
            logger.exception("Handler failed for %s", action.describe())
            return ActionResult.failure(str(e), error_code="HANDLER_ERROR", state=state)

        if not result.success:
            logger.warning("Rejected %s: %s", action.describe(), result.error)
            if result.new_state is None:
                result.new_state = state
            return result

        new_state = self._check_winner(result.new_state, action)
        result.new_state = new_state
        result.log = [str(entry) for entry in new_state.log[len(state.log):]]
        logger.debug("Applied %s", action.describe())
        return result

    def _validate_action(self, state: BattleState, action: Action) -> tuple[str | None, str | None]:
        """
        Validate that an action is legal in the current state.

        Returns (error message, error code), both None if valid.
        """
        if state.is_over:
            return "Battle is over - no actions allowed", "GAME_OVER"

        side = action.payload.side or state.active_side
        if side is not state.active_side:
            return f"Not {side.value}'s turn", "INVALID_ACTION"

        if state.phase is Phase.EFFECT_TICK and action.action_type is not ActionType.EFFECT_TICK:
            return "Turn-start effects must be processed first", "WRONG_PHASE"

        if state.phase is Phase.ACTION and action.action_type is ActionType.EFFECT_TICK:
            if state.active.last_tick_turn >= state.turn:
                return f"Effects already applied for turn {state.turn}", "EFFECTS_ALREADY_APPLIED"
            return "Effect tick only runs at the start of a turn", "WRONG_PHASE"

        return None, None

    def _get_handler(self, action_type: ActionType):
        """Get the handler function for an action type."""
        handlers = {
            ActionType.DEPLOY: self._handle_deploy,
            ActionType.ATTACK: self._handle_attack,
            ActionType.USE_TOOL: self._handle_use_tool,
            ActionType.USE_SPELL: self._handle_use_spell,
            ActionType.DEFEND: self._handle_defend,
            ActionType.END_TURN: self._handle_end_turn,
            ActionType.EFFECT_TICK: self._handle_effect_tick,
        }
        return handlers.get(action_type)

    def _ledger(self, state: BattleState) -> EnergyLedger:
        return EnergyLedger.for_difficulty(state.difficulty)

    def _insufficient(self, state: BattleState, side: SideState, cost: int, what: str) -> ActionResult:
        return ActionResult.failure(
            f"Not enough energy to {what} (need {cost}, have {side.energy})",
            error_code="INSUFFICIENT_ENERGY",
            state=state,
        )

    def _handle_deploy(self, state: BattleState, action: Action) -> ActionResult:
        """Handle deploy action: move a creature from hand to field."""
        side = state.active
        creature_id = action.payload.creature_id
        creature = side.hand_creature(creature_id)

        if creature is None:
            if side.field_creature(creature_id) is not None:
                note = f"Skipped duplicate deploy of {creature_id}: already on the field"
                result = ActionResult.failure(note, error_code="DUPLICATE_ACTION", state=state)
                result.log.append(note)
                return result
            return ActionResult.failure(f"Creature {creature_id} not in hand", error_code="NOT_FOUND", state=state)

        max_field = get_settings(state.difficulty).max_field_size
        if len(side.field) >= max_field:
            return ActionResult.failure(
                f"Field is full ({max_field} creatures)", error_code="FIELD_FULL", state=state
            )

        cost = deployment_cost(creature.form)
        if not self._ledger(state).can_afford(side, cost):
            return self._insufficient(state, side, cost, f"deploy {creature.name}")

        new_side = side._copy_with(
            hand=tuple(c for c in side.hand if c.creature_id != creature_id),
            field=side.field + (creature,),
        )
        new_side = self._ledger(state).spend(new_side, cost)

        new_state = state.with_side(new_side).with_log(
            f"{SIDE_LABELS[side.side]} deployed {creature.name} ({cost} energy)",
            side=side.side,
        )
        return ActionResult.success_with_state(new_state)

    def _handle_attack(self, state: BattleState, action: Action) -> ActionResult:
        """Handle attack action."""
        side = state.active
        opposing = state.side(side.side.opponent)
        attacker = side.field_creature(action.payload.creature_id)
        defender = opposing.field_creature(action.payload.target_id)

        if attacker is None:
            return ActionResult.failure(
                f"Attacker {action.payload.creature_id} not on field", error_code="NOT_FOUND", state=state
            )
        if defender is None:
            return ActionResult.failure(
                f"Target {action.payload.target_id} not on opposing field", error_code="NOT_FOUND", state=state
            )
        if attacker.is_defending:
            return ActionResult.failure(
                f"{attacker.name} is defending and cannot attack", error_code="ALREADY_ACTED", state=state
            )
        if action.payload.attack_type not in ("physical", "magical", "auto"):
            return ActionResult.failure(
                f"Unknown attack type: {action.payload.attack_type}", error_code="INVALID_ACTION", state=state
            )

        ledger = self._ledger(state)
        if not ledger.can_afford(side, ATTACK_COST):
            return self._insufficient(state, side, ATTACK_COST, "attack")

        outcome = resolve_attack(
            attacker,
            defender,
            action.payload.attack_type,
            rng=self.rng,
            damage_multiplier=ledger.combo_multiplier(side.consecutive_actions),
            turn=state.turn,
        )
        if not outcome.is_valid:
            return ActionResult.success_with_state(state.with_log(outcome.message, side=side.side), attack=outcome)

        new_side = ledger.spend(side.with_field_creature(outcome.attacker), ATTACK_COST)
        new_state = (
            state.with_side(new_side)
            .with_side(opposing.with_field_creature(outcome.defender))
            .with_log(outcome.message, side=side.side)
        )
        new_state = remove_defeated(new_state, opposing.side)
        return ActionResult.success_with_state(new_state, attack=outcome)

    def _handle_use_tool(self, state: BattleState, action: Action) -> ActionResult:
        """Handle tool action: tools cost nothing and target own creatures."""
        side = state.active
        tool = side.tool(action.payload.item_id)
        target = side.field_creature(action.payload.target_id)

        if tool is None:
            return ActionResult.failure(f"Tool {action.payload.item_id} not available", error_code="NOT_FOUND", state=state)
        if target is None:
            return ActionResult.failure(
                f"Target {action.payload.target_id} not on own field", error_code="NOT_FOUND", state=state
            )

        outcome = resolve_tool(target, tool, state.difficulty, state.turn)
        if not outcome.is_valid:
            return ActionResult.success_with_state(state.with_log(*outcome.messages, side=side.side))

        new_side = side.with_field_creature(outcome.creature)._copy_with(
            tools=tuple(t for t in side.tools if t.item_id != tool.item_id),
        )
        new_side = self._ledger(state).spend(new_side, tool.energy_cost)
        new_state = state.with_side(new_side).with_log(*outcome.messages, side=side.side)
        return ActionResult.success_with_state(new_state)

    def _handle_use_spell(self, state: BattleState, action: Action) -> ActionResult:
        """Handle spell action: caster on own field, target on either field."""
        side = state.active
        spell = side.spell(action.payload.item_id)
        caster = side.field_creature(action.payload.creature_id)
        located = state.find_creature(action.payload.target_id)

        if spell is None:
            return ActionResult.failure(f"Spell {action.payload.item_id} not available", error_code="NOT_FOUND", state=state)
        if caster is None:
            return ActionResult.failure(
                f"Caster {action.payload.creature_id} not on own field", error_code="NOT_FOUND", state=state
            )
        if located is None:
            return ActionResult.failure(
                f"Target {action.payload.target_id} not on any field", error_code="NOT_FOUND", state=state
            )

        ledger = self._ledger(state)
        if not ledger.can_afford(side, spell.energy_cost):
            return self._insufficient(state, side, spell.energy_cost, f"cast {spell.name}")

        target_side, target = located
        outcome = resolve_spell(caster, target, spell, state.difficulty, state.turn, self.rng)
        if not outcome.is_valid:
            return ActionResult.success_with_state(state.with_log(*outcome.messages, side=side.side))

        new_side = side.with_field_creature(outcome.caster)
        if target_side is side.side:
            new_side = new_side.with_field_creature(outcome.target)
        new_side = new_side._copy_with(spells=tuple(s for s in side.spells if s.item_id != spell.item_id))
        new_side = ledger.spend(new_side, spell.energy_cost)

        new_state = state.with_side(new_side)
        if target_side is not side.side:
            new_state = new_state.with_side(new_state.side(target_side).with_field_creature(outcome.target))
        new_state = new_state.with_log(*outcome.messages, side=side.side)
        new_state = remove_all_defeated(new_state)
        return ActionResult.success_with_state(new_state)

    def _handle_defend(self, state: BattleState, action: Action) -> ActionResult:
        """Handle defend action."""
        side = state.active
        creature = side.field_creature(action.payload.creature_id)
        if creature is None:
            return ActionResult.failure(
                f"Creature {action.payload.creature_id} not on field", error_code="NOT_FOUND", state=state
            )
        if creature.is_defending:
            return ActionResult.failure(f"{creature.name} is already defending", error_code="ALREADY_ACTED", state=state)

        ledger = self._ledger(state)
        if not ledger.can_afford(side, DEFEND_COST):
            return self._insufficient(state, side, DEFEND_COST, "defend")

        defended, message = resolve_defend(creature, state.difficulty, state.turn)
        new_side = ledger.spend(side.with_field_creature(defended), DEFEND_COST)
        new_state = state.with_side(new_side).with_log(message, side=side.side)
        return ActionResult.success_with_state(new_state)

    def _handle_end_turn(self, state: BattleState, action: Action) -> ActionResult:
        """
        Handle end turn.

        Grants the combo bonus for three or more actions, applies decay to
        the ending side, hands control to the other side and enters the
        effect tick phase. The turn counter advances when control returns to
        the player.
        """
        side = state.active
        messages = []
        boosted = grant_combo_bonus(side, state.turn)
        if boosted is not side:
            messages.append(f"{SIDE_LABELS[side.side]} achieved a combo bonus! All creatures gain +2 attack")
        new_side, lost = self._ledger(state).end_turn(boosted)
        messages.append(f"{SIDE_LABELS[side.side]} ended their turn")
        if lost:
            messages.append(f"{SIDE_LABELS[side.side]} lost {lost} energy to decay")

        next_side = side.side.opponent
        next_turn = state.turn + 1 if next_side is Side.PLAYER else state.turn

        new_state = state.with_side(new_side).with_log(*messages, side=side.side)
        new_state = new_state._copy_with(
            active_side=next_side,
            turn=next_turn,
            phase=Phase.EFFECT_TICK,
        )
        return ActionResult.success_with_state(new_state)

    def _handle_effect_tick(self, state: BattleState, action: Action) -> ActionResult:
        """
        Handle the turn-start effect tick for the active side.

        Order: energy regen, effect timeline, defeated removal, draw.
        Runs at most once per side per turn (last_tick_turn stamp).
        """
        side = state.active
        if side.last_tick_turn >= state.turn:
            return ActionResult.failure(
                f"Effects already applied for turn {state.turn}",
                error_code="EFFECTS_ALREADY_APPLIED",
                state=state,
            )

        ledger = self._ledger(state)
        label = SIDE_LABELS[side.side]
        messages = []

        new_side, gained = ledger.regenerate(side)
        if gained:
            messages.append(f"{label} regenerated {gained} energy")

        new_side, effect_lines = tick_side(new_side, state.difficulty, state.turn)
        messages.extend(effect_lines)
        new_side = new_side._copy_with(last_tick_turn=state.turn)

        new_state = state.with_side(new_side).with_log(*messages, side=side.side)
        new_state = remove_all_defeated(new_state)

        new_side = new_state.side(side.side)
        if len(new_side.hand) < ledger.max_hand_size and new_side.deck:
            drawn = new_side.deck[0]
            new_side = new_side._copy_with(hand=new_side.hand + (drawn,), deck=new_side.deck[1:])
            new_state = new_state.with_side(new_side).with_log(f"{label} drew {drawn.name}", side=side.side)

        new_state = new_state._copy_with(phase=Phase.ACTION)
        return ActionResult.success_with_state(new_state)

    def _check_winner(self, state: BattleState, action: Action) -> BattleState:
        """End the battle once a side has no creatures left anywhere."""
        if state.is_over:
            return state

        player_out = state.player.is_exhausted
        enemy_out = state.enemy.is_exhausted
        if not player_out and not enemy_out:
            return state

        if player_out and enemy_out:
            # Both emptied by the same action: the acting side takes it
            winner = action.payload.side or state.active_side
        else:
            winner = Side.ENEMY if player_out else Side.PLAYER

        message = "Victory! The enemy has no creatures left" if winner is Side.PLAYER \
            else "Defeat! You have no creatures left"
        logger.info("Battle %s over, winner: %s", state.battle_id, winner.value)
        return state._copy_with(phase=Phase.GAME_OVER, winner=winner).with_log(message)


def apply_action(state: BattleState, action: Action, rng: random.Random | None = None) -> ActionResult:
    """
    Convenience function to apply an action.

    Creates a Reducer and applies the action.
    """
    reducer = Reducer(rng=rng) if rng is not None else Reducer()
    return reducer.apply(state, action)


def apply_intent(reducer: Reducer, state: BattleState, action: Action) -> ActionResult:
    """
    Apply a side intent and, for end turn, the next side's effect tick.

    Effect ticks are system actions and are rejected as intents.
    """
    if action.action_type not in INTENT_TYPES:
        return ActionResult.failure(
            f"{action.action_type.value} is not a side intent", error_code="INVALID_ACTION", state=state
        )

    result = reducer.apply(state, action)
    if not result.success or action.action_type is not ActionType.END_TURN:
        return result
    if result.new_state.is_over:
        return result

    tick = reducer.apply(result.new_state, Action.effect_tick(result.new_state.active_side))
    if not tick.success:
        return tick
    tick.log = result.log + tick.log
    return tick


def apply_player_action(state: BattleState, action: Action, rng: random.Random | None = None) -> ActionResult:
    """
    Apply a player intent.

    Intents deploy, attack, use_tool, use_spell, defend and end_turn are
    validated against the player's energy, hand and field. Rejected intents
    return the unchanged state with an error code.
    """
    if action.payload.side is None:
        action = replace(action, payload=replace(action.payload, side=Side.PLAYER))
    if action.payload.side is not Side.PLAYER:
        return ActionResult.failure("Player actions must come from the player side", error_code="INVALID_ACTION", state=state)

    reducer = Reducer(rng=rng) if rng is not None else Reducer()
    return apply_intent(reducer, state, action)
