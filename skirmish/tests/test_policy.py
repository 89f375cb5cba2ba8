"""
Tests for legal intent generation and the baseline policies.
"""

import pytest

from ..bots.policy import FirstLegalPolicy, RandomPolicy
from ..engine_core.action import Action, ActionType
from ..engine_core.action_generator import ActionGenerator, is_legal, legal_actions
from ..engine_core.reducer import apply_player_action
from ..engine_core.state import Phase, Side
from .conftest import NO_ROLLS, ScriptedRng, make_creature, make_state


class TestLegalActions:
    """Tests for the action generator."""

    def test_opening_hand(self):
        state = make_state(player_hand=[make_creature("h1"), make_creature("h2", form=3)], player_energy=6)

        actions = legal_actions(state)

        assert [a.action_type for a in actions] == [ActionType.DEPLOY, ActionType.END_TURN]
        assert actions[0].payload.creature_id == "h1"

    def test_attacks_and_defends(self):
        state = make_state(player_field=[make_creature("a")], enemy_field=[make_creature("e1"), make_creature("e2")])

        types = [a.action_type for a in legal_actions(state)]

        assert types.count(ActionType.ATTACK) == 2
        assert types.count(ActionType.DEFEND) == 1

    def test_tools_target_own_field(self, shield_tool):
        state = make_state(player_field=[make_creature("a")], enemy_field=[make_creature("e")], player_tools=[shield_tool])

        tools = [a for a in legal_actions(state) if a.action_type is ActionType.USE_TOOL]

        assert [a.payload.target_id for a in tools] == ["a"]

    def test_spells_target_either_field(self, surge_spell):
        state = make_state(player_field=[make_creature("a")], enemy_field=[make_creature("e")], player_spells=[surge_spell])

        spells = [a for a in legal_actions(state) if a.action_type is ActionType.USE_SPELL]

        assert {a.payload.target_id for a in spells} == {"a", "e"}

    def test_nothing_during_effect_tick(self):
        state = make_state()._copy_with(phase=Phase.EFFECT_TICK)
        assert ActionGenerator().generate(state) == []

    def test_every_generated_action_applies(self, shield_tool, surge_spell):
        state = make_state(
            player_field=[make_creature("a")],
            player_hand=[make_creature("h")],
            enemy_field=[make_creature("e")],
            player_tools=[shield_tool],
            player_spells=[surge_spell],
        )

        for action in legal_actions(state):
            result = apply_player_action(state, action, rng=ScriptedRng(*NO_ROLLS))
            assert result.success, action.describe()

    def test_is_legal(self):
        state = make_state(player_field=[make_creature("a")], enemy_field=[make_creature("e")])

        assert is_legal(state, Action.attack(Side.PLAYER, "a", "e"))
        assert not is_legal(state, Action.attack(Side.PLAYER, "a", "ghost"))
        assert is_legal(state, Action.end_turn(Side.PLAYER))


class TestBaselinePolicies:
    """Random and first-legal bots."""

    def test_first_legal(self):
        state = make_state(player_hand=[make_creature("h1")])
        decision = FirstLegalPolicy().select_action(state)
        assert decision.action.action_type is ActionType.DEPLOY

    def test_random_is_seeded(self):
        state = make_state(player_field=[make_creature("a")], enemy_field=[make_creature("e1"), make_creature("e2")])

        first = RandomPolicy(seed=4).select_action(state).action
        second = RandomPolicy(seed=4).select_action(state).action

        assert first.describe() == second.describe()

    def test_no_actions_raises(self):
        state = make_state()._copy_with(phase=Phase.EFFECT_TICK)
        with pytest.raises(ValueError):
            RandomPolicy().select_action(state)
