"""
Tests for battle setup and enemy generation.
"""

import random

import pytest

from ..engine_core.difficulty import SETTINGS, get_settings
from ..engine_core.setup import generate_enemy_creatures, select_rarity, start_battle
from ..engine_core.state import Difficulty, Phase, Rarity, Side


class TestStartBattle:
    """Tests for the opening state."""

    def test_hand_and_deck_split(self, roster):
        state = start_battle(roster, Difficulty.MEDIUM, seed=7)

        assert [c.creature_id for c in state.player.hand] == ["ember", "mistral", "bulwark"]
        assert [c.creature_id for c in state.player.deck] == ["flicker"]
        assert state.player.field == ()

    def test_opening_values(self, roster):
        state = start_battle(roster, "medium", seed=7)

        assert state.turn == 1
        assert state.active_side is Side.PLAYER
        assert state.phase is Phase.ACTION
        assert state.player.energy == 10
        assert state.enemy.energy == 10
        assert state.player.last_tick_turn == 1
        assert not state.is_over

    def test_enemy_loadout_follows_difficulty(self, roster):
        state = start_battle(roster, Difficulty.HARD, seed=3)
        settings = get_settings(Difficulty.HARD)

        assert len(state.enemy.hand) == settings.initial_hand_size
        assert len(state.enemy.hand) + len(state.enemy.deck) == settings.enemy_deck_size
        assert len(state.enemy.tools) == settings.tool_count
        assert len(state.enemy.spells) == settings.spell_count

    def test_enemy_mirrors_player_species(self, roster):
        state = start_battle(roster, seed=11)
        species = {c.species_id for c in roster}

        for creature in state.enemy.hand + state.enemy.deck:
            assert creature.species_id in species

    def test_short_roster(self, roster):
        state = start_battle(roster[:1], seed=1)
        assert len(state.player.hand) == 1
        assert state.player.deck == ()

    def test_same_seed_same_opponent(self, roster):
        first = start_battle(roster, seed=42, battle_id="b1")
        second = start_battle(roster, seed=42, battle_id="b1")
        assert first.enemy == second.enemy

    def test_empty_roster_rejected(self):
        with pytest.raises(ValueError):
            start_battle([])

    def test_duplicate_ids_rejected(self, roster):
        with pytest.raises(ValueError):
            start_battle([roster[0], roster[0]])


class TestEnemyGeneration:
    """Tests for the difficulty-driven generators."""

    def test_expert_forms(self):
        creatures = generate_enemy_creatures(SETTINGS[Difficulty.EXPERT], random.Random(5))
        assert all(2 <= c.form <= 3 for c in creatures)
        assert all(1 <= len(c.specialties) <= 2 for c in creatures)

    def test_easy_has_no_legendaries(self):
        rng = random.Random(9)
        distribution = SETTINGS[Difficulty.EASY].enemy_rarity
        rolls = {select_rarity(distribution, rng) for _ in range(200)}
        assert Rarity.LEGENDARY not in rolls

    def test_select_rarity_boundaries(self):
        class Fixed:
            def __init__(self, value):
                self.value = value

            def random(self):
                return self.value

        distribution = {Rarity.COMMON: 0.5, Rarity.RARE: 0.5}
        assert select_rarity(distribution, Fixed(0.1)) is Rarity.COMMON
        assert select_rarity(distribution, Fixed(0.7)) is Rarity.RARE
