"""
Game Loop - Drives a battle session turn by turn.

The loop:
1. Player sends an intent
2. Reducer validates and applies it
3. When the player ends the turn, the AI side plays:
   a. The planner returns one action or a short sequence
   b. Each step is re-validated through the reducer; invalid steps are skipped
   c. The AI side ends its turn
4. Control returns to the player
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING
import logging

from ..engine_core.action import Action, ActionResult, ActionType
from ..engine_core.combat import AttackResult
from ..engine_core.reducer import Reducer, apply_intent, apply_player_action
from ..engine_core.state import Side

if TYPE_CHECKING:
    from .manager import Session

logger = logging.getLogger(__name__)


class LoopState(Enum):
    """State of the game loop."""
    WAITING_PLAYER_ACTION = "waiting_player_action"
    RUNNING_AI = "running_ai"
    GAME_OVER = "game_over"


@dataclass
class TurnResult:
    """
    Result of processing a player intent or an AI turn.

    Contains the new log lines and what the AI did.
    """
    success: bool
    loop_state: LoopState

    # Battle log lines added during this call
    log: list[str] = field(default_factory=list)

    # AI steps applied and skipped
    ai_actions: list[str] = field(default_factory=list)
    skipped_actions: list[str] = field(default_factory=list)

    # Typed outcome of a player attack
    attack: AttackResult | None = None

    # Errors
    error: str | None = None
    error_code: str | None = None

    # Game over info
    winner: str | None = None


class GameLoop:
    """
    The battle loop driver.

    Usage:
        loop = GameLoop(session)
        result = loop.submit_player_action(Action.end_turn(Side.PLAYER))
        print(result.log)  # Includes the AI's turn
    """

    def __init__(self, session: Session, auto_ai: bool = True):
        self.session = session
        self.auto_ai = auto_ai
        self.reducer = Reducer(rng=session.rng)

    @property
    def state(self) -> LoopState:
        battle = self.session.battle
        if battle.is_over:
            return LoopState.GAME_OVER
        if battle.active_side is Side.PLAYER:
            return LoopState.WAITING_PLAYER_ACTION
        return LoopState.RUNNING_AI

    def submit_player_action(self, action: Action) -> TurnResult:
        """
        Apply a player intent.

        An accepted end turn hands control to the AI, which plays its whole
        turn before this returns when auto_ai is set.
        """
        result = apply_player_action(self.session.battle, action, rng=self.session.rng)
        if not result.success:
            return self._turn_result(result, log=result.log)

        self.session.update(result.new_state)
        turn = self._turn_result(result, log=list(result.log))
        if self.auto_ai and self.state is LoopState.RUNNING_AI:
            ai_turn = self.run_ai_turn()
            turn.log.extend(ai_turn.log)
            turn.ai_actions = ai_turn.ai_actions
            turn.skipped_actions = ai_turn.skipped_actions
            turn.loop_state = ai_turn.loop_state
            turn.winner = ai_turn.winner
        return turn

    def run_ai_turn(self) -> TurnResult:
        """
        Play the active AI side's turn.

        One planning call; each planned step is re-validated against the
        current state and skipped when it no longer applies. The turn then
        ends unless the battle is over.
        """
        from .manager import SessionState

        battle = self.session.battle
        if battle.is_over or battle.active_side is Side.PLAYER:
            return TurnResult(
                success=False,
                loop_state=self.state,
                error="Not the AI side's turn",
                error_code="INVALID_ACTION",
            )

        self.session.state = SessionState.AI_TURN
        side = battle.active_side
        decision = self.session.planner.select_action(battle)
        logger.debug("AI decision: %s", decision.explanation)

        log: list[str] = []
        applied: list[str] = []
        skipped: list[str] = []
        ended = False

        for action in decision.actions:
            if self.session.battle.is_over:
                break
            result = apply_intent(self.reducer, self.session.battle, action)
            if not result.success:
                logger.info("Skipping AI step %s: %s", action.describe(), result.error)
                skipped.append(f"{action.describe()} ({result.error_code})")
                continue
            self.session.update(result.new_state)
            log.extend(result.log)
            applied.append(action.describe())
            if action.action_type is ActionType.END_TURN:
                ended = True
                break

        if not ended and not self.session.battle.is_over:
            result = apply_intent(self.reducer, self.session.battle, Action.end_turn(side))
            if result.success:
                self.session.update(result.new_state)
                log.extend(result.log)
                applied.append(Action.end_turn(side).describe())

        if not self.session.battle.is_over:
            self.session.state = SessionState.ACTIVE

        winner = self.session.battle.winner
        return TurnResult(
            success=True,
            loop_state=self.state,
            log=log,
            ai_actions=applied,
            skipped_actions=skipped,
            winner=winner.value if winner else None,
        )

    def _turn_result(self, result: ActionResult, log: list[str]) -> TurnResult:
        winner = self.session.battle.winner
        return TurnResult(
            success=result.success,
            loop_state=self.state,
            log=log,
            error=result.error,
            error_code=result.error_code,
            attack=result.attack,
            winner=winner.value if winner else None,
        )
