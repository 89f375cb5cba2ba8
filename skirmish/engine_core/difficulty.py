"""
Difficulty Settings - One fixed table per difficulty tier.

Every per-difficulty constant the engine and the AI read lives here so the
rest of the code looks values up instead of switching on difficulty.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from .state import Difficulty, Rarity


@dataclass(frozen=True)
class DifficultySettings:
    """Per-difficulty tuning for enemy generation, energy and AI behavior."""
    difficulty: Difficulty
    enemy_stats_multiplier: float
    form_min: int
    form_max: int
    enemy_rarity: dict[Rarity, float]
    initial_hand_size: int
    enemy_deck_size: int
    max_field_size: int
    ai_level: int
    enemy_energy_regen: int
    reward_multiplier: float
    multi_action_chance: float
    aggression_level: float

    # Energy
    base_max_energy: int = 15
    base_regen: int = 3
    max_hand_size: int = 4

    # Combat scaling
    defense_boost: float = 0.3
    health_over_time_scale: float = 1.0
    item_power_scale: float = 1.0
    max_sequence_length: int = 3

    # Enemy loadout
    tool_count: int = 2
    spell_count: int = 1
    tool_rarity: dict[Rarity, float] = field(default_factory=dict)
    spell_rarity: dict[Rarity, float] = field(default_factory=dict)
    extra_upgrades: int = 0


SETTINGS: dict[Difficulty, DifficultySettings] = {
    Difficulty.EASY: DifficultySettings(
        difficulty=Difficulty.EASY,
        enemy_stats_multiplier=0.9,
        form_min=0,
        form_max=1,
        enemy_rarity={Rarity.COMMON: 0.7, Rarity.RARE: 0.25, Rarity.EPIC: 0.05, Rarity.LEGENDARY: 0.0},
        initial_hand_size=2,
        enemy_deck_size=4,
        max_field_size=4,
        ai_level=1,
        enemy_energy_regen=2,
        reward_multiplier=0.5,
        multi_action_chance=0.2,
        aggression_level=0.3,
        base_max_energy=12,
        base_regen=2,
        max_hand_size=5,
        defense_boost=0.25,
        health_over_time_scale=1.0,
        item_power_scale=0.9,
        max_sequence_length=2,
        tool_count=1,
        spell_count=0,
        tool_rarity={Rarity.COMMON: 0.8, Rarity.RARE: 0.2},
        spell_rarity={Rarity.COMMON: 0.7, Rarity.RARE: 0.25, Rarity.EPIC: 0.05},
        extra_upgrades=0,
    ),
    Difficulty.MEDIUM: DifficultySettings(
        difficulty=Difficulty.MEDIUM,
        enemy_stats_multiplier=1.0,
        form_min=0,
        form_max=2,
        enemy_rarity={Rarity.COMMON: 0.5, Rarity.RARE: 0.35, Rarity.EPIC: 0.15, Rarity.LEGENDARY: 0.0},
        initial_hand_size=3,
        enemy_deck_size=5,
        max_field_size=5,
        ai_level=2,
        enemy_energy_regen=3,
        reward_multiplier=1.0,
        multi_action_chance=0.4,
        aggression_level=0.5,
        base_max_energy=15,
        base_regen=3,
        max_hand_size=4,
        defense_boost=0.3,
        health_over_time_scale=1.0,
        item_power_scale=1.0,
        max_sequence_length=3,
        tool_count=2,
        spell_count=1,
        tool_rarity={Rarity.COMMON: 0.6, Rarity.RARE: 0.3, Rarity.EPIC: 0.1},
        spell_rarity={Rarity.COMMON: 0.5, Rarity.RARE: 0.35, Rarity.EPIC: 0.13, Rarity.LEGENDARY: 0.02},
        extra_upgrades=2,
    ),
    Difficulty.HARD: DifficultySettings(
        difficulty=Difficulty.HARD,
        enemy_stats_multiplier=1.2,
        form_min=1,
        form_max=3,
        enemy_rarity={Rarity.COMMON: 0.2, Rarity.RARE: 0.4, Rarity.EPIC: 0.3, Rarity.LEGENDARY: 0.1},
        initial_hand_size=3,
        enemy_deck_size=6,
        max_field_size=5,
        ai_level=3,
        enemy_energy_regen=4,
        reward_multiplier=1.5,
        multi_action_chance=0.6,
        aggression_level=0.7,
        base_max_energy=18,
        base_regen=4,
        max_hand_size=3,
        defense_boost=0.4,
        health_over_time_scale=1.15,
        item_power_scale=1.1,
        max_sequence_length=4,
        tool_count=2,
        spell_count=2,
        tool_rarity={Rarity.COMMON: 0.4, Rarity.RARE: 0.4, Rarity.EPIC: 0.15, Rarity.LEGENDARY: 0.05},
        spell_rarity={Rarity.COMMON: 0.3, Rarity.RARE: 0.4, Rarity.EPIC: 0.25, Rarity.LEGENDARY: 0.05},
        extra_upgrades=4,
    ),
    Difficulty.EXPERT: DifficultySettings(
        difficulty=Difficulty.EXPERT,
        enemy_stats_multiplier=1.5,
        form_min=2,
        form_max=3,
        enemy_rarity={Rarity.COMMON: 0.0, Rarity.RARE: 0.3, Rarity.EPIC: 0.5, Rarity.LEGENDARY: 0.2},
        initial_hand_size=4,
        enemy_deck_size=7,
        max_field_size=6,
        ai_level=4,
        enemy_energy_regen=5,
        reward_multiplier=2.0,
        multi_action_chance=0.8,
        aggression_level=0.85,
        base_max_energy=20,
        base_regen=5,
        max_hand_size=3,
        defense_boost=0.5,
        health_over_time_scale=1.25,
        item_power_scale=1.2,
        max_sequence_length=5,
        tool_count=3,
        spell_count=3,
        tool_rarity={Rarity.COMMON: 0.2, Rarity.RARE: 0.4, Rarity.EPIC: 0.3, Rarity.LEGENDARY: 0.1},
        spell_rarity={Rarity.COMMON: 0.1, Rarity.RARE: 0.3, Rarity.EPIC: 0.45, Rarity.LEGENDARY: 0.15},
        extra_upgrades=6,
    ),
}


def get_settings(difficulty: Difficulty | str) -> DifficultySettings:
    """Look up the settings table for a difficulty."""
    return SETTINGS[Difficulty.parse(difficulty)]
