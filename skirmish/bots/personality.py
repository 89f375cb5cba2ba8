"""
Bot Personalities - Per-difficulty play styles.

Personalities adjust:
- Evaluation weights (what the bot values)
- Aggression (share of the attack budget spent on attacks)
- Sequencing (chance and length of multi-action turns)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from ..engine_core.difficulty import get_settings
from ..engine_core.state import Difficulty
from .evaluator import EvaluationWeights


@dataclass
class Personality:
    """
    A bot personality that defines play style.

    Predefined per difficulty; the numbers mirror the difficulty table so
    the AI and the enemy generator agree on how hard a tier is.
    """
    name: str
    description: str = ""

    # Evaluation weights
    weights: EvaluationWeights = field(default_factory=EvaluationWeights)

    # Behavioral parameters
    aggression: float = 0.5  # Fraction of affordable attacks actually planned
    multi_action_chance: float = 0.4  # Probability of returning a sequence
    max_sequence_length: int = 3

    # Metadata
    metadata: dict[str, Any] = field(default_factory=dict)


def _from_settings(difficulty: Difficulty, name: str, description: str, **weights: float) -> Personality:
    settings = get_settings(difficulty)
    return Personality(
        name=name,
        description=description,
        weights=EvaluationWeights(**weights),
        aggression=settings.aggression_level,
        multi_action_chance=settings.multi_action_chance,
        max_sequence_length=settings.max_sequence_length,
        metadata={"difficulty": difficulty.value, "ai_level": settings.ai_level},
    )


# ============================================================================
# Predefined Personalities
# ============================================================================

NOVICE = _from_settings(
    Difficulty.EASY,
    "Novice",
    "Plays one thing at a time and rarely presses an advantage",
)


TACTICIAN = _from_settings(
    Difficulty.MEDIUM,
    "Tactician",
    "Balanced play, chains a few actions when it has the energy",
)


HUNTER = _from_settings(
    Difficulty.HARD,
    "Hunter",
    "Always on the attack, focuses wounded and rare targets",
    target_low_health=120.0,
    target_legendary=50.0,
)


WARLORD = _from_settings(
    Difficulty.EXPERT,
    "Warlord",
    "Long action chains, values finishing blows and board synergy",
    target_low_health=130.0,
    spell_lethal=130.0,
    deploy_synergy=15.0,
)


# All predefined personalities
PERSONALITIES: dict[Difficulty, Personality] = {
    Difficulty.EASY: NOVICE,
    Difficulty.MEDIUM: TACTICIAN,
    Difficulty.HARD: HUNTER,
    Difficulty.EXPERT: WARLORD,
}


def personality_for(difficulty: Difficulty | str) -> Personality:
    """Get the predefined personality for a difficulty."""
    return PERSONALITIES[Difficulty.parse(difficulty)]
