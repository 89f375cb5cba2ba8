"""
Tests for the planner's ranked tactics.

Tests:
- Plan context budgeting and pools
- Deployment wave sizing
- Lethal detection
- Attack assignment
- Emergency defense
- Defensive items, offensive spells, attack buffs and utility
"""

from ..bots.analyzer import analyze_board
from ..bots.evaluator import HeuristicEvaluator, TargetPriority
from ..bots.personality import TACTICIAN
from ..bots.tactics import (
    DEFAULT_TACTICS,
    UTILITY_LIMIT,
    AttackBuffTactic,
    CoordinatedAttackTactic,
    DefensiveItemTactic,
    DeploymentTactic,
    EmergencyDefenseTactic,
    LethalTactic,
    OffensiveSpellTactic,
    PlanContext,
    URGENCY_CRITICAL,
    URGENCY_HIGH,
    URGENCY_MEDIUM,
    URGENCY_NORMAL,
    UtilityTactic,
)
from ..engine_core.action import Action, ActionType
from ..engine_core.state import Difficulty, ItemEffect, Side, Spell, Tool
from .conftest import fixed_creature, make_creature, make_state


def context(state):
    return PlanContext.from_state(state, HeuristicEvaluator(weights=TACTICIAN.weights), TACTICIAN)


def priorities(*targets):
    return [TargetPriority(target=t, priority=100 - i, health_ratio=t.health_ratio, threat=t.power)
            for i, t in enumerate(targets)]


class TestPlanContext:
    """Simulated pools for one planning call."""

    def test_budget_from_active_side(self):
        ctx = context(make_state(player_energy=7, enemy_energy=3))
        assert ctx.side is Side.PLAYER
        assert ctx.budget == 7

    def test_rejects_unaffordable(self):
        ctx = context(make_state(player_hand=[make_creature("c1", form=2)], player_energy=6))
        assert not ctx.accepts(Action.deploy(Side.PLAYER, "c1", 7))

    def test_commit_deploy_updates_pools(self):
        ctx = context(make_state(player_hand=[make_creature("c1")], player_energy=12))
        deploy = Action.deploy(Side.PLAYER, "c1", 5)

        ctx.commit(deploy)

        assert ctx.budget == 7
        assert ctx.hand == []
        assert [c.creature_id for c in ctx.field] == ["c1"]
        assert not ctx.accepts(deploy)

    def test_commit_attack_marks_used(self):
        attacker = make_creature("a")
        ctx = context(make_state(player_field=[attacker], enemy_field=[make_creature("e")]))

        ctx.commit(Action.attack(Side.PLAYER, "a", "e"))

        assert ctx.is_used(attacker)
        assert ctx.budget == 8

    def test_tool_target_only_claimed_on_request(self, shield_tool):
        creature = make_creature("a")
        state = make_state(player_field=[creature], player_tools=[shield_tool])

        ctx = context(state)
        ctx.commit(Action.use_tool(Side.PLAYER, "ward", "a"))
        assert not ctx.is_used(creature)
        assert ctx.tools == []

        ctx = context(state)
        ctx.commit(Action.use_tool(Side.PLAYER, "ward", "a"), claim_tool_target=True)
        assert ctx.is_used(creature)


class TestDeployment:
    """Wave sizing and the deploy decision."""

    def test_wave_size(self):
        assert DeploymentTactic.wave_size(URGENCY_CRITICAL, 5, 9) == 3
        assert DeploymentTactic.wave_size(URGENCY_CRITICAL, 2, 9) == 2
        assert DeploymentTactic.wave_size(URGENCY_HIGH, 5, 7) == 1
        assert DeploymentTactic.wave_size(URGENCY_MEDIUM, 5, 10) == 2
        assert DeploymentTactic.wave_size(URGENCY_NORMAL, 5, 0) == 1

    def test_empty_field_is_critical(self):
        state = make_state(
            player_hand=[make_creature("h1"), make_creature("h2")],
            enemy_field=[make_creature("e")],
        )

        decision = DeploymentTactic().analyze(context(state))

        assert decision.urgency == URGENCY_CRITICAL
        assert decision.should_deploy

    def test_deploys_within_budget(self):
        hand = [make_creature("h1"), make_creature("h2"), make_creature("h3")]
        ctx = context(make_state(player_hand=hand, enemy_field=[make_creature("e")], player_energy=10))

        for action in DeploymentTactic().plan(ctx):
            if not ctx.accepts(action):
                break
            ctx.commit(action)

        assert [a.payload.creature_id for a in ctx.actions] == ["h1", "h2"]
        assert ctx.budget == 0

    def test_low_energy_skips_deploy(self):
        ctx = context(make_state(player_hand=[make_creature("h1")], enemy_field=[make_creature("e")], player_energy=2))
        assert list(DeploymentTactic().plan(ctx)) == []


class TestLethal:
    """Lethal sequences are planned only when they finish the field."""

    def test_finishes_weak_field(self):
        attacker = fixed_creature("a", physical_attack=60, magical_attack=5)
        target = fixed_creature("e", health=10)
        ctx = context(make_state(player_field=[attacker], enemy_field=[target]))

        actions = list(LethalTactic().plan(ctx))

        assert len(actions) == 1
        assert actions[0].action_type is ActionType.ATTACK
        assert actions[0].payload.target_id == "e"
        assert actions[0].priority == 1

    def test_no_lethal_against_healthy_field(self):
        attacker = fixed_creature("a", physical_attack=20, magical_attack=5)
        target = fixed_creature("e", max_health=400)
        ctx = context(make_state(player_field=[attacker], enemy_field=[target]))

        assert list(LethalTactic().plan(ctx)) == []

    def test_needs_attack_budget(self):
        attacker = fixed_creature("a", physical_attack=60, magical_attack=5)
        target = fixed_creature("e", health=10)
        ctx = context(make_state(player_field=[attacker], enemy_field=[target], player_energy=1))

        assert list(LethalTactic().plan(ctx)) == []


class TestCoordinatedAttack:
    """Kill-weighted attack assignment."""

    def test_killer_goes_to_killable_target(self):
        heavy = fixed_creature("heavy", physical_attack=40, magical_attack=5)
        light = fixed_creature("light", physical_attack=10, magical_attack=5)
        wounded = fixed_creature("wounded", health=20)
        tank = fixed_creature("tank", max_health=100)

        pairs = CoordinatedAttackTactic.assign([light, heavy], priorities(wounded, tank), limit=5)

        assert [(a.creature_id, t.creature_id) for a, t in pairs] == [("heavy", "wounded"), ("light", "tank")]

    def test_limit_caps_assignments(self):
        attackers = [fixed_creature(f"a{i}", physical_attack=20, magical_attack=5) for i in range(3)]
        target = fixed_creature("t", max_health=300)

        pairs = CoordinatedAttackTactic.assign(attackers, priorities(target), limit=2)

        assert len(pairs) == 2

    def test_leftovers_hit_top_priority(self):
        attackers = [fixed_creature(f"a{i}", physical_attack=20, magical_attack=5) for i in range(3)]
        target = fixed_creature("t", max_health=300)

        pairs = CoordinatedAttackTactic.assign(attackers, priorities(target), limit=10)

        assert len(pairs) == 3
        assert {t.creature_id for _, t in pairs} == {"t"}


class TestEmergencyDefense:
    """Creatures in danger get a shield or a defend."""

    def test_defends_without_tools(self):
        low = make_creature("low")._copy_with(current_health=10)
        ctx = context(make_state(player_field=[low], enemy_field=[make_creature("e")]))

        actions = list(EmergencyDefenseTactic().plan(ctx))

        assert [a.action_type for a in actions] == [ActionType.DEFEND]

    def test_prefers_shield_tool(self, shield_tool):
        low = make_creature("low")._copy_with(current_health=10)
        ctx = context(make_state(player_field=[low], enemy_field=[make_creature("e")], player_tools=[shield_tool]))

        actions = list(EmergencyDefenseTactic().plan(ctx))

        assert actions[0].action_type is ActionType.USE_TOOL
        assert actions[0].payload.item_id == "ward"


def test_tactics_ranked_in_order():
    assert [t.rank for t in DEFAULT_TACTICS] == list(range(8))


def test_analysis_matches_context():
    state = make_state(player_field=[make_creature("a")], enemy_field=[make_creature("e")], difficulty=Difficulty.HARD)
    ctx = context(state)
    expected = analyze_board(state.player.field, state.enemy.field, (), 10, Difficulty.HARD)
    assert ctx.analysis.should_attack_aggressively == expected.should_attack_aggressively


BLADE = Tool(item_id="blade", name="Keen Blade", item_type="strength", effect=ItemEffect.SURGE)
ECHO_BELL = Tool(item_id="bell", name="Echo Bell", item_type="energy", effect=ItemEffect.ECHO)
AEGIS = Spell(item_id="aegis", name="Aegis", item_type="stamina", effect=ItemEffect.SHIELD)


def wounded(creature_id, fraction):
    creature = make_creature(creature_id)
    return creature._copy_with(current_health=int(creature.max_health * fraction))


class TestDefensiveItem:
    """Critical creatures get the best defensive tool."""

    def test_shields_critical_creature(self, shield_tool):
        low = wounded("low", 0.1)
        ctx = context(make_state(
            player_field=[make_creature("a"), low],
            enemy_field=[make_creature("e")],
            player_tools=[BLADE, shield_tool],
        ))

        actions = list(DefensiveItemTactic().plan(ctx))

        assert len(actions) == 1
        assert actions[0].action_type is ActionType.USE_TOOL
        assert actions[0].payload.item_id == "ward"
        assert actions[0].payload.target_id == "low"
        assert actions[0].priority == 0

    def test_ignores_attack_tools(self):
        ctx = context(make_state(player_field=[wounded("low", 0.1)], enemy_field=[make_creature("e")], player_tools=[BLADE]))
        assert list(DefensiveItemTactic().plan(ctx)) == []

    def test_healthy_field_needs_nothing(self, shield_tool):
        ctx = context(make_state(player_field=[make_creature("a")], player_tools=[shield_tool]))
        assert list(DefensiveItemTactic().plan(ctx)) == []


class TestOffensiveSpell:
    """The best damaging (spell, caster, target) option is cast."""

    def test_casts_damage_spell(self, surge_spell):
        ctx = context(make_state(
            player_field=[make_creature("a")],
            enemy_field=[make_creature("e")],
            player_spells=[AEGIS, surge_spell],
        ))

        actions = list(OffensiveSpellTactic().plan(ctx))

        assert len(actions) == 1
        payload = actions[0].payload
        assert (payload.item_id, payload.creature_id, payload.target_id) == ("bolt", "a", "e")
        assert actions[0].energy_cost == surge_spell.energy_cost

    def test_skips_shield_spells(self):
        ctx = context(make_state(player_field=[make_creature("a")], enemy_field=[make_creature("e")], player_spells=[AEGIS]))
        assert list(OffensiveSpellTactic().plan(ctx)) == []

    def test_unaffordable_spell(self, surge_spell):
        ctx = context(make_state(
            player_field=[make_creature("a")],
            enemy_field=[make_creature("e")],
            player_spells=[surge_spell],
            player_energy=3,
        ))
        assert list(OffensiveSpellTactic().plan(ctx)) == []


class TestAttackBuff:
    """Attack tools go to the strongest creature that can still attack."""

    def test_buffs_strongest_attacker(self):
        strong = fixed_creature("strong", physical_attack=40, magical_attack=5)
        weak = fixed_creature("weak", physical_attack=15, magical_attack=5)
        ctx = context(make_state(player_field=[weak, strong], enemy_field=[make_creature("e")], player_tools=[BLADE]))

        actions = list(AttackBuffTactic().plan(ctx))

        assert [a.payload.target_id for a in actions] == ["strong"]

    def test_skips_defending_creature(self):
        guard = fixed_creature("guard", physical_attack=40, magical_attack=5)._copy_with(is_defending=True)
        weak = fixed_creature("weak", physical_attack=15, magical_attack=5)
        ctx = context(make_state(player_field=[guard, weak], enemy_field=[make_creature("e")], player_tools=[BLADE]))

        actions = list(AttackBuffTactic().plan(ctx))

        assert [a.payload.target_id for a in actions] == ["weak"]

    def test_no_attack_tool(self, shield_tool):
        ctx = context(make_state(player_field=[make_creature("a")], enemy_field=[make_creature("e")], player_tools=[shield_tool]))
        assert list(AttackBuffTactic().plan(ctx)) == []


class TestUtility:
    """Echo tools and defensive positioning, at most two per plan."""

    def test_echo_then_defend(self):
        hurt = wounded("hurt", 0.5)
        ctx = context(make_state(player_field=[hurt], enemy_field=[make_creature("e")], player_tools=[ECHO_BELL]))

        actions = list(UtilityTactic().plan(ctx))

        assert [a.action_type for a in actions] == [ActionType.USE_TOOL, ActionType.DEFEND]
        assert actions[0].payload.item_id == "bell"
        assert all(a.priority == 7 for a in actions)

    def test_healthy_creatures_stay_in_position(self):
        ctx = context(make_state(player_field=[make_creature("a")], enemy_field=[make_creature("e")]))
        assert list(UtilityTactic().plan(ctx)) == []

    def test_limit_per_plan(self):
        ctx = context(make_state(
            player_field=[wounded("h1", 0.5), wounded("h2", 0.5)],
            enemy_field=[make_creature("e")],
            player_tools=[ECHO_BELL],
        ))
        tactic = UtilityTactic()
        for action in tactic.plan(ctx):
            ctx.commit(action)

        assert len(ctx.actions) == UTILITY_LIMIT
        assert list(tactic.plan(ctx)) == []
