"""
Action Planner - The battle AI.

The planner:
- Analyzes the board once per call
- Runs the ranked tactics through one driver loop
- Keeps every planned step inside the side's energy budget
- Returns a single action, or a short sequence on multi-action turns

The planner does NOT:
- Search ahead (each call plans from the current state only)
- Apply anything; callers re-validate each step through the reducer
"""

from __future__ import annotations
import logging
import random
from dataclasses import dataclass
from typing import Sequence

from ..engine_core.action import Action
from ..engine_core.state import BattleState, Phase
from .evaluator import HeuristicEvaluator
from .personality import Personality, personality_for
from .policy import BotDecision, BotPolicy
from .tactics import DEFAULT_TACTICS, PlanContext, Tactic

logger = logging.getLogger(__name__)


MIN_SEQUENCE_ENERGY = 4


@dataclass
class ActionPlanner(BotPolicy):
    """
    Ranked-tactic planner for the active side.

    Usage:
        planner = ActionPlanner(personality=personality_for("hard"))
        decision = planner.select_action(state)
        plan = decision.as_plan()  # Action or list[Action]
    """
    personality: Personality = None  # type: ignore
    evaluator: HeuristicEvaluator = None  # type: ignore
    rng: random.Random = None  # type: ignore
    tactics: Sequence[Tactic] = DEFAULT_TACTICS

    def __post_init__(self):
        if self.evaluator is None and self.personality is not None:
            self.evaluator = HeuristicEvaluator(weights=self.personality.weights)
        if self.rng is None:
            self.rng = random.Random()

    def get_name(self) -> str:
        if self.personality is None:
            return "ActionPlanner"
        return f"ActionPlanner({self.personality.name})"

    def plan(self, state: BattleState) -> list[Action]:
        """
        Run every tactic in rank order and return the committed actions.

        A tactic stops contributing at its first action that does not fit
        the remaining budget or when the plan reaches its action cap.
        """
        personality, evaluator = self._resolve(state)
        ctx = PlanContext.from_state(state, evaluator, personality)

        for tactic in sorted(self.tactics, key=lambda t: t.rank):
            for action in tactic.plan(ctx):
                if tactic.action_cap is not None and len(ctx.actions) >= tactic.action_cap:
                    break
                if not ctx.accepts(action):
                    logger.debug("%s: skipping %s, budget %d", tactic.name, action.describe(), ctx.budget)
                    break
                ctx.commit(action, claim_tool_target=tactic.claims_tool_target)

        logger.debug(
            "Planned %d actions for %s: %s",
            len(ctx.actions),
            ctx.side.value,
            [f"{a.action_type.value}(cost:{a.energy_cost})" for a in ctx.actions],
        )
        return ctx.actions

    def select_action(self, state: BattleState) -> BotDecision:
        """
        Decide the active side's next move.

        Ends the turn when the side has no creatures or no energy, when
        nothing could be planned, or on any planning error.
        """
        side = state.active
        personality, evaluator = self._resolve(state)

        if state.phase is not Phase.ACTION:
            return self._end_turn(state, f"Not in the action phase ({state.phase.value})")
        if not side.hand and not side.field:
            return self._end_turn(state, "No creatures available")
        if side.energy <= 0:
            return self._end_turn(state, "No energy available")

        try:
            actions = self.plan(state)
            best_score = evaluator.evaluate(state, side.side).total_score
        except Exception:
            logger.exception("Planning failed for %s in battle %s", side.side.value, state.battle_id)
            return self._end_turn(state, "Planning failed")

        if not actions:
            return self._end_turn(state, "Nothing worth doing")

        wants_sequence = self.rng.random() < personality.multi_action_chance
        if wants_sequence and side.energy >= MIN_SEQUENCE_ENERGY and len(actions) > 1:
            chosen = actions[:personality.max_sequence_length]
            explanation = f"Multi-action turn: {len(chosen)} of {len(actions)} planned actions"
        else:
            chosen = actions[:1]
            explanation = f"Single action from {len(actions)} planned"

        logger.info("%s %s: %s", side.side.value, explanation, "; ".join(a.describe() for a in chosen))
        return BotDecision(
            actions=chosen,
            explanation=explanation,
            evaluated_actions=len(actions),
            best_score=best_score,
            evaluation_details={"planned": [a.describe() for a in actions]},
        )

    def _resolve(self, state: BattleState) -> tuple[Personality, HeuristicEvaluator]:
        personality = self.personality or personality_for(state.difficulty)
        evaluator = self.evaluator or HeuristicEvaluator(weights=personality.weights)
        return personality, evaluator

    def _end_turn(self, state: BattleState, reason: str) -> BotDecision:
        logger.debug("%s ends turn: %s", state.active_side.value, reason)
        return BotDecision(actions=[Action.end_turn(state.active_side)], explanation=reason)


def plan_ai_action(state: BattleState, rng: random.Random | None = None) -> Action | list[Action]:
    """
    Plan the active side's move with the difficulty's personality.

    Returns one Action, or a list of Actions for a multi-action turn.
    """
    planner = ActionPlanner(personality=personality_for(state.difficulty), rng=rng)
    return planner.select_action(state).as_plan()
