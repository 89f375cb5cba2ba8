"""
Tests for the reducer (state transitions).

Tests:
- Action application
- State immutability
- Validation and error codes
- Turn boundaries and the effect tick guard
- Win detection
"""

import pytest

from ..engine_core.action import Action, ActionType
from ..engine_core.reducer import Reducer, apply_action, apply_intent, apply_player_action
from ..engine_core.state import Difficulty, Phase, Side
from .conftest import NO_ROLLS, ScriptedRng, fixed_creature, make_creature, make_state


@pytest.fixture
def reducer():
    return Reducer(rng=ScriptedRng(*NO_ROLLS))


def all_ids(side):
    return [c.creature_id for c in side.deck + side.hand + side.field]


class TestDeployAction:
    """Tests for deploy action."""

    def test_deploy_moves_hand_to_field(self, reducer):
        """Deploying removes the creature from hand and adds it to the field."""
        recruit = make_creature("recruit", form=1)
        state = make_state(player_hand=[recruit], enemy_field=[make_creature("foe")], player_energy=10)

        result = reducer.apply(state, Action.deploy(Side.PLAYER, "recruit"))

        assert result.success
        player = result.new_state.player
        assert player.hand == ()
        assert [c.creature_id for c in player.field] == ["recruit"]
        assert player.energy == 4  # 5 + form 1

    def test_hand_and_field_stay_disjoint(self, reducer):
        """A creature id lives in exactly one zone."""
        creatures = [make_creature(f"c{i}") for i in range(3)]
        state = make_state(player_hand=creatures, enemy_field=[make_creature("foe")], player_energy=15)

        for creature in creatures[:2]:
            state = reducer.apply(state, Action.deploy(Side.PLAYER, creature.creature_id)).new_state

        ids = all_ids(state.player)
        assert len(ids) == len(set(ids)) == 3

    def test_insufficient_energy(self, reducer):
        """Rejected deploys return the unchanged state."""
        state = make_state(player_hand=[make_creature("big", form=3)], player_energy=7)

        result = reducer.apply(state, Action.deploy(Side.PLAYER, "big"))

        assert not result.success
        assert result.error_code == "INSUFFICIENT_ENERGY"
        assert result.new_state is state

    def test_duplicate_deploy(self, reducer):
        creature = make_creature("c1")
        state = make_state(player_field=[creature])

        result = reducer.apply(state, Action.deploy(Side.PLAYER, "c1"))

        assert not result.success
        assert result.error_code == "DUPLICATE_ACTION"
        assert result.log

    def test_unknown_creature(self, reducer):
        result = reducer.apply(make_state(), Action.deploy(Side.PLAYER, "ghost"))
        assert result.error_code == "NOT_FOUND"

    def test_field_full(self, reducer):
        field = [make_creature(f"f{i}") for i in range(5)]
        state = make_state(player_field=field, player_hand=[make_creature("extra")])

        result = reducer.apply(state, Action.deploy(Side.PLAYER, "extra"))

        assert result.error_code == "FIELD_FULL"


class TestAttackAction:
    """Tests for attack action."""

    def test_attack_costs_two_and_damages(self, reducer):
        attacker = fixed_creature("a", physical_attack=20, magical_attack=5)
        defender = fixed_creature("d", physical_defense=10)
        state = make_state(player_field=[attacker], enemy_field=[defender], enemy_hand=[make_creature("r")])

        result = reducer.apply(state, Action.attack(Side.PLAYER, "a", "d", "physical"))

        assert result.success
        assert result.attack is not None
        assert result.attack.damage == 19
        assert result.new_state.player.energy == 8
        assert result.new_state.enemy.field[0].current_health == 31
        assert result.log

    def test_input_state_unchanged(self, reducer):
        attacker = fixed_creature("a", physical_attack=20, magical_attack=5)
        defender = fixed_creature("d", physical_defense=10)
        state = make_state(player_field=[attacker], enemy_field=[defender], enemy_hand=[make_creature("r")])

        reducer.apply(state, Action.attack(Side.PLAYER, "a", "d"))

        assert state.enemy.field[0].current_health == defender.current_health
        assert state.player.energy == 10

    def test_defending_creature_cannot_attack(self, reducer):
        attacker = fixed_creature("a")._copy_with(is_defending=True)
        state = make_state(player_field=[attacker], enemy_field=[fixed_creature("d")])

        result = reducer.apply(state, Action.attack(Side.PLAYER, "a", "d"))

        assert result.error_code == "ALREADY_ACTED"

    def test_double_defend_rejected(self, reducer):
        state = make_state(player_field=[make_creature("c1")], enemy_field=[make_creature("foe")])
        state = reducer.apply(state, Action.defend(Side.PLAYER, "c1")).new_state

        result = reducer.apply(state, Action.defend(Side.PLAYER, "c1"))

        assert result.error_code == "ALREADY_ACTED"

    def test_wrong_side(self, reducer):
        state = make_state(player_field=[fixed_creature("a")], enemy_field=[fixed_creature("d")])
        result = reducer.apply(state, Action.attack(Side.ENEMY, "d", "a"))
        assert result.error_code == "INVALID_ACTION"

    def test_malformed_attacker_is_identity(self, reducer):
        """Missing stats log a diagnostic and change nothing."""
        broken = make_creature("broken")._copy_with(battle_stats=None)
        defender = fixed_creature("d")
        state = make_state(player_field=[broken], enemy_field=[defender])

        result = reducer.apply(state, Action.attack(Side.PLAYER, "broken", "d"))

        assert result.success
        assert result.new_state.enemy.field == state.enemy.field
        assert result.new_state.player.energy == state.player.energy
        assert any("missing stats" in line for line in result.log)

    def test_combo_grows_streak(self, reducer):
        attacker = fixed_creature("a", physical_attack=20, magical_attack=5)
        defender = fixed_creature("d", max_health=400)
        state = make_state(player_field=[attacker], enemy_field=[defender])

        for _ in range(3):
            state = reducer.apply(state, Action.attack(Side.PLAYER, "a", "d")).new_state

        assert state.player.consecutive_actions == 3
        assert state.player.energy == 4


class TestTurnFlow:
    """Tests for end turn and the effect tick."""

    def test_end_turn_enters_effect_tick(self, reducer):
        state = make_state(player_field=[make_creature("p")], enemy_field=[make_creature("e")], player_energy=12)

        result = reducer.apply(state, Action.end_turn(Side.PLAYER))

        new_state = result.new_state
        assert new_state.phase is Phase.EFFECT_TICK
        assert new_state.active_side is Side.ENEMY
        assert new_state.turn == 1
        assert new_state.player.energy == 11

    def test_actions_blocked_until_tick(self, reducer):
        state = make_state(player_field=[make_creature("p")], enemy_field=[make_creature("e")])
        state = reducer.apply(state, Action.end_turn(Side.PLAYER)).new_state

        result = reducer.apply(state, Action.defend(Side.ENEMY, "e"))

        assert result.error_code == "WRONG_PHASE"

    def test_effect_tick_runs_once_per_turn(self, reducer):
        state = make_state(player_field=[make_creature("p")], enemy_field=[make_creature("e")], enemy_energy=5)
        state = reducer.apply(state, Action.end_turn(Side.PLAYER)).new_state

        first = reducer.apply(state, Action.effect_tick(Side.ENEMY))
        second = reducer.apply(first.new_state, Action.effect_tick(Side.ENEMY))

        assert first.success
        assert first.new_state.phase is Phase.ACTION
        assert first.new_state.enemy.energy == 9  # 3 base + 0.5 from the field rounds to 4
        assert first.new_state.enemy.last_tick_turn == 1
        assert not second.success
        assert second.error_code == "EFFECTS_ALREADY_APPLIED"
        assert second.new_state.enemy.energy == 9

    def test_intent_chains_tick(self, reducer):
        state = make_state(
            player_field=[make_creature("p")],
            enemy_hand=[make_creature("e")],
            enemy_deck=[make_creature("late")],
        )

        result = apply_intent(reducer, state, Action.end_turn(Side.PLAYER))

        assert result.new_state.phase is Phase.ACTION
        assert result.new_state.active_side is Side.ENEMY
        assert [c.creature_id for c in result.new_state.enemy.hand] == ["e", "late"]

    def test_effect_tick_is_not_an_intent(self, reducer):
        state = make_state(player_field=[make_creature("p")], enemy_field=[make_creature("e")])
        state = reducer.apply(state, Action.end_turn(Side.PLAYER)).new_state
        result = apply_intent(reducer, state, Action.effect_tick(Side.ENEMY))
        assert result.error_code == "INVALID_ACTION"

    def test_combo_bonus_on_end_turn(self, reducer):
        """Ending a turn after three actions blesses the field until the next turn ends."""
        state = make_state(player_field=[make_creature("p")], enemy_field=[make_creature("e")])
        state = state.with_side(state.player._copy_with(consecutive_actions=3))

        result = apply_intent(reducer, state, Action.end_turn(Side.PLAYER))

        creature = result.new_state.player.field[0]
        assert creature.battle_stats.physical_attack == creature.base_stats.physical_attack + 2
        assert result.new_state.player.consecutive_actions == 0
        assert any("combo bonus" in line for line in result.log)

        state = apply_intent(reducer, result.new_state, Action.end_turn(Side.ENEMY)).new_state
        creature = state.player.field[0]
        assert [e.duration for e in creature.effects if e.name == "Combo Bonus"] == [1]
        assert creature.battle_stats.magical_attack == creature.base_stats.magical_attack + 2

    def test_no_combo_bonus_for_short_turns(self, reducer):
        state = make_state(player_field=[make_creature("p")], enemy_field=[make_creature("e")])

        result = reducer.apply(state, Action.end_turn(Side.PLAYER))

        assert result.new_state.player.field[0].effects == ()

    def test_turn_advances_when_player_regains_control(self, reducer):
        state = make_state(player_field=[make_creature("p")], enemy_field=[make_creature("e")])
        state = apply_intent(reducer, state, Action.end_turn(Side.PLAYER)).new_state
        state = apply_intent(reducer, state, Action.end_turn(Side.ENEMY)).new_state

        assert state.turn == 2
        assert state.active_side is Side.PLAYER
        assert state.phase is Phase.ACTION
        assert state.player.last_tick_turn == 2


class TestWinDetection:
    """The battle ends once a side has no creatures left."""

    def finishing_state(self):
        attacker = fixed_creature("a", physical_attack=60, magical_attack=5)
        defender = fixed_creature("d", physical_defense=5, health=5)
        return make_state(player_field=[attacker], enemy_field=[defender])

    def test_last_kill_wins(self, reducer):
        result = reducer.apply(self.finishing_state(), Action.attack(Side.PLAYER, "a", "d"))

        state = result.new_state
        assert state.is_over
        assert state.winner is Side.PLAYER
        assert state.enemy.field == ()
        assert state.enemy.defeated == 1

    def test_win_fires_once(self, reducer):
        state = reducer.apply(self.finishing_state(), Action.attack(Side.PLAYER, "a", "d")).new_state

        again = reducer.apply(state, Action.end_turn(Side.PLAYER))

        assert again.error_code == "GAME_OVER"
        assert sum("Victory" in entry.message for entry in state.log) == 1

    def test_kill_clamps_energy_to_smaller_field(self, reducer):
        """The enemy cap drops from 16 to 15 when its fourth creature falls."""
        attacker = fixed_creature("p", physical_attack=60, magical_attack=5)
        victim = fixed_creature("e0", physical_defense=5, health=5)
        others = [make_creature(f"e{i}") for i in range(1, 4)]
        state = make_state(player_field=[attacker], enemy_field=[victim, *others], enemy_energy=16)

        result = reducer.apply(state, Action.attack(Side.PLAYER, "p", "e0"))

        enemy = result.new_state.enemy
        assert len(enemy.field) == 3
        assert enemy.energy == 15

    def test_reserves_keep_battle_going(self, reducer):
        attacker = fixed_creature("a", physical_attack=60, magical_attack=5)
        defender = fixed_creature("d", physical_defense=5, health=5)
        state = make_state(player_field=[attacker], enemy_field=[defender], enemy_deck=[make_creature("r")])

        result = reducer.apply(state, Action.attack(Side.PLAYER, "a", "d"))

        assert not result.new_state.is_over


class TestPlayerAction:
    """apply_player_action accepts player intents only."""

    def test_rejects_enemy_intent(self):
        state = make_state()
        result = apply_player_action(state, Action.end_turn(Side.ENEMY))
        assert result.error_code == "INVALID_ACTION"
        assert result.new_state is state

    def test_end_turn_runs_enemy_tick(self):
        state = make_state(
            player_field=[make_creature("p")],
            enemy_field=[make_creature("e")],
            enemy_energy=5,
            difficulty=Difficulty.EASY,
        )

        result = apply_player_action(state, Action.end_turn(Side.PLAYER), rng=ScriptedRng(*NO_ROLLS))

        assert result.success
        assert result.new_state.active_side is Side.ENEMY
        assert result.new_state.phase is Phase.ACTION
        assert result.new_state.enemy.energy > 5

    def test_apply_action_convenience(self):
        state = make_state(player_field=[make_creature("c1")], enemy_field=[make_creature("foe")])
        result = apply_action(state, Action.defend(Side.PLAYER, "c1"))
        assert result.success
        assert result.new_state.player.field[0].is_defending
        assert result.new_state.player.energy == 9
        assert ActionType.DEFEND.value == "defend"
