"""
Tests for the effect timeline and death effects.

Tests:
- Duration countdown and expiry
- Health over time scaling
- Charge build-up and burst
- Defeated removal with death effects
"""

from ..engine_core.effects import (
    COMBO_BONUS_DURATION,
    grant_combo_bonus,
    remove_defeated,
    scale_health_over_time,
    tick_creature,
)
from ..engine_core.state import ActiveEffect, ChargeData, Difficulty, EffectKind, Rarity, Side
from ..engine_core.stats import refresh_creature
from .conftest import make_creature, make_state


def with_effect(creature, effect):
    return refresh_creature(creature, creature.effects + (effect,))


class TestTick:
    """Tests for one effect tick on a creature."""

    def test_duration_counts_down(self):
        creature = with_effect(make_creature(), ActiveEffect(
            effect_id="buff:1:0", name="Buff", duration=2, stat_modifications={"physical_attack": 4},
        ))

        ticked, _ = tick_creature(creature, Difficulty.MEDIUM, turn=2)

        assert len(ticked.effects) == 1
        assert ticked.effects[0].duration == 1
        assert ticked.battle_stats.physical_attack == creature.base_stats.physical_attack + 4

    def test_expired_effect_is_removed(self):
        creature = with_effect(make_creature(), ActiveEffect(
            effect_id="buff:1:0", name="Buff", duration=1, stat_modifications={"physical_attack": 4},
        ))

        ticked, messages = tick_creature(creature, Difficulty.MEDIUM, turn=2)

        assert ticked.effects == ()
        assert ticked.battle_stats == creature.base_stats
        assert any("wore off" in m for m in messages)

    def test_health_over_time_heals_up_to_max(self):
        creature = with_effect(make_creature(), ActiveEffect(
            effect_id="echo:1:0", name="Echo", duration=3, health_over_time=10,
        ))
        creature = creature._copy_with(current_health=creature.max_health - 4)

        ticked, _ = tick_creature(creature, Difficulty.MEDIUM, turn=2)

        assert ticked.current_health == creature.max_health

    def test_defending_resets(self):
        creature = make_creature()._copy_with(is_defending=True)
        ticked, _ = tick_creature(creature, Difficulty.MEDIUM, turn=2)
        assert not ticked.is_defending

    def test_malformed_creature_unchanged(self):
        creature = make_creature()._copy_with(battle_stats=None)
        ticked, messages = tick_creature(creature, Difficulty.MEDIUM, turn=2)
        assert ticked is creature
        assert messages


class TestHealthOverTimeScaling:
    """Difficulty then rarity scaling."""

    def test_medium_common_unscaled(self):
        assert scale_health_over_time(10, Difficulty.MEDIUM, Rarity.COMMON) == 10

    def test_hard_rare(self):
        """10 x 1.15 rounds to 12, then x 1.1 rounds to 13."""
        assert scale_health_over_time(10, Difficulty.HARD, Rarity.RARE) == 13

    def test_damage_scales_too(self):
        assert scale_health_over_time(-10, Difficulty.EXPERT, Rarity.COMMON) == -12


class TestCharge:
    """Charge effects build a bonus, then release a burst."""

    def charged(self):
        return with_effect(make_creature(), ActiveEffect(
            effect_id="charge:1:0",
            name="Charge",
            kind=EffectKind.CHARGE,
            duration=4,
            start_turn=1,
            charge=ChargeData(max_turns=3, per_turn_bonus=4, final_burst=12, target_stat="physical_attack"),
        ))

    def test_partial_progress(self):
        creature = self.charged()
        ticked, _ = tick_creature(creature, Difficulty.MEDIUM, turn=2)

        effect = ticked.effects[0]
        assert effect.stat_modifications == {"physical_attack": 1}
        assert ticked.battle_stats.physical_attack == creature.base_stats.physical_attack + 1

    def test_full_progress_releases_burst(self):
        creature = self.charged()
        ticked, messages = tick_creature(creature, Difficulty.MEDIUM, turn=4)

        assert ticked.effects == ()
        assert ticked.next_attack_bonus == 12
        assert any("charge is ready" in m for m in messages)


class TestDeathEffects:
    """Removing defeated creatures fires their death effects."""

    def test_defeated_creature_removed(self):
        fallen = make_creature("fallen")._copy_with(current_health=0)
        ally = make_creature("ally")
        state = make_state(player_field=[fallen, ally])

        new_state = remove_defeated(state, Side.PLAYER)

        assert [c.creature_id for c in new_state.player.field] == ["ally"]
        assert new_state.player.defeated == 1

    def test_legendary_blesses_all_allies(self):
        fallen = make_creature("hero", rarity=Rarity.LEGENDARY)._copy_with(current_health=0)
        allies = [make_creature("a1"), make_creature("a2")]
        foe = make_creature("foe")
        state = make_state(player_field=[fallen, *allies], enemy_field=[foe])

        new_state = remove_defeated(state, Side.PLAYER)

        for ally in new_state.player.field:
            assert any(e.kind is EffectKind.BLESSING for e in ally.effects)
            assert ally.battle_stats.physical_attack == ally.base_stats.physical_attack + 2
        assert any(e.name == "Guilty Conscience" for e in new_state.enemy.field[0].effects)

    def test_energy_specialist_releases_energy(self):
        fallen = make_creature("battery", specialties=("energy",))._copy_with(current_health=0)
        state = make_state(player_field=[fallen], player_energy=4)

        new_state = remove_defeated(state, Side.PLAYER)

        assert new_state.player.energy == 6

    def test_epic_essence(self):
        fallen = make_creature("epic", rarity=Rarity.EPIC)._copy_with(current_health=0)
        ally = make_creature("ally")
        state = make_state(player_field=[fallen, ally])

        new_state = remove_defeated(state, Side.PLAYER)

        survivor = new_state.player.field[0]
        assert survivor.battle_stats.magical_attack == survivor.base_stats.magical_attack + 1

    def test_energy_clamped_to_smaller_field(self):
        """Losing a creature lowers the cap, and the stored energy follows."""
        fallen = make_creature("fallen")._copy_with(current_health=0)
        others = [make_creature(f"a{i}") for i in range(3)]
        state = make_state(player_field=[fallen, *others], player_energy=16)

        new_state = remove_defeated(state, Side.PLAYER)

        assert len(new_state.player.field) == 3
        assert new_state.player.energy == 15


class TestComboBonus:
    """Three or more actions in a turn bless the whole field."""

    def test_bonus_at_threshold(self):
        field = [make_creature("a"), make_creature("b")]
        side = make_state(player_field=field).player._copy_with(consecutive_actions=3)

        boosted = grant_combo_bonus(side, turn=1)

        for creature in boosted.field:
            assert creature.effects[-1].name == "Combo Bonus"
            assert creature.effects[-1].duration == COMBO_BONUS_DURATION
            assert creature.battle_stats.physical_attack == creature.base_stats.physical_attack + 2
            assert creature.battle_stats.magical_attack == creature.base_stats.magical_attack + 2

    def test_no_bonus_below_threshold(self):
        side = make_state(player_field=[make_creature("a")]).player._copy_with(consecutive_actions=2)
        assert grant_combo_bonus(side, turn=1) is side
