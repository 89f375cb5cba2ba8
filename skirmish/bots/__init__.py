"""
Bots module - Battle AI implementations.

Provides:
- BotPolicy: Interface for bot decision-making
- ActionPlanner: Ranked-tactic planner, plan_ai_action entry point
- analyze_board: Board summary for the planner
- HeuristicEvaluator: Scores creatures, items and states
- Personality: Per-difficulty play styles
"""

from .policy import BotPolicy, BotDecision, RandomPolicy, FirstLegalPolicy
from .analyzer import BoardAnalysis, analyze_board
from .evaluator import (
    HeuristicEvaluator,
    EvaluationWeights,
    battle_odds,
    combat_rating,
    creature_power,
    team_rating,
)
from .personality import Personality, PERSONALITIES, personality_for
from .planner import ActionPlanner, plan_ai_action

__all__ = [
    "BotPolicy",
    "BotDecision",
    "RandomPolicy",
    "FirstLegalPolicy",
    "BoardAnalysis",
    "analyze_board",
    "HeuristicEvaluator",
    "EvaluationWeights",
    "battle_odds",
    "combat_rating",
    "creature_power",
    "team_rating",
    "Personality",
    "PERSONALITIES",
    "personality_for",
    "ActionPlanner",
    "plan_ai_action",
]
