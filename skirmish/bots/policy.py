"""
Bot Policy - Interface for bot decision-making.

A BotPolicy takes a battle state and returns a decision for the active side.
Decisions include:
- The ordered actions to take (one, or a short sequence)
- An explanation for logs and the CLI
"""

from __future__ import annotations
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..engine_core.action import Action, ActionType
from ..engine_core.action_generator import legal_actions

if TYPE_CHECKING:
    from ..engine_core.state import BattleState


@dataclass
class BotDecision:
    """
    A decision made by a bot.

    Contains:
    - The actions to take, in order
    - Explanation (for UI/debugging)
    - Confidence in the decision
    """
    actions: list[Action]
    explanation: str = ""
    confidence: float = 1.0

    # Evaluation details (for debugging)
    evaluated_actions: int = 0
    best_score: float = 0.0
    evaluation_details: dict[str, Any] = field(default_factory=dict)

    @property
    def action(self) -> Action:
        """First action of the decision."""
        return self.actions[0]

    @property
    def is_sequence(self) -> bool:
        return len(self.actions) > 1

    @property
    def ends_turn(self) -> bool:
        return len(self.actions) == 1 and self.action.action_type is ActionType.END_TURN

    def as_plan(self) -> Action | list[Action]:
        """A single action, or the list for a multi-action turn."""
        return list(self.actions) if self.is_sequence else self.action


class BotPolicy(ABC):
    """
    Abstract base class for bot policies.

    A policy defines how a bot selects actions.
    Implementations can range from random play to the ranked-tactic planner.
    """

    @abstractmethod
    def select_action(self, state: BattleState) -> BotDecision:
        """
        Select actions for the active side.

        Args:
            state: Current battle state, in the action phase

        Returns:
            BotDecision with the selected action(s)
        """

    def get_name(self) -> str:
        """Get the bot's name/identifier."""
        return self.__class__.__name__


class RandomPolicy(BotPolicy):
    """
    Random policy - selects legal intents uniformly at random.

    Used for:
    - Testing
    - Baseline comparison
    - Driving the player side in simulations
    """

    def __init__(self, seed: int | None = None):
        self.rng = random.Random(seed)

    def select_action(self, state: BattleState) -> BotDecision:
        actions = legal_actions(state)
        if not actions:
            raise ValueError("No legal actions available")

        action = self.rng.choice(actions)
        return BotDecision(
            actions=[action],
            explanation="Selected randomly",
            confidence=1.0 / len(actions),
            evaluated_actions=len(actions),
        )


class FirstLegalPolicy(BotPolicy):
    """
    First-legal policy - always selects the first legal intent.

    Used for:
    - Deterministic testing
    - Baseline comparison
    """

    def select_action(self, state: BattleState) -> BotDecision:
        actions = legal_actions(state)
        if not actions:
            raise ValueError("No legal actions available")

        return BotDecision(
            actions=[actions[0]],
            explanation="Selected first legal action",
            evaluated_actions=1,
        )
