"""
Tests for stat derivation.

Tests:
- Base formulas and rounding
- Specialty, form and rarity multipliers
- Soft caps
- Effect replay and floors
"""

import pytest

from ..engine_core.state import ActiveEffect, Attributes, Rarity
from ..engine_core.stats import (
    apply_modifications,
    derive_stats,
    deployment_cost,
    refresh_creature,
    round_half_up,
    soft_cap,
)
from .conftest import make_creature


class TestDeriveStats:
    """Tests for the attribute-to-stat formulas."""

    def test_neutral_attributes(self):
        """All-5 common creature at form 0."""
        stats = derive_stats(Attributes())

        assert stats.physical_attack == 25
        assert stats.magical_attack == 25
        assert stats.physical_defense == 18  # 17.5 rounds half up
        assert stats.magical_defense == 18
        assert stats.max_health == 78
        assert stats.initiative == 24
        assert stats.critical_chance == pytest.approx(9.0)
        assert stats.dodge_chance == pytest.approx(5.5)
        assert stats.energy_cost == 5

    def test_single_specialty_boost(self):
        """One specialty multiplies its attribute by 1.8."""
        stats = derive_stats(Attributes(), specialties=["strength"])
        assert stats.physical_attack == 35

    def test_two_specialties_split_boost(self):
        """Two specialties get x1.4 each."""
        stats = derive_stats(Attributes(), specialties=["strength", "magic"])
        assert stats.physical_attack == 30
        assert stats.magical_attack == 30

    def test_rarity_does_not_scale_initiative(self):
        """Initiative ignores rarity while attacks scale."""
        common = derive_stats(Attributes(), rarity=Rarity.COMMON)
        legendary = derive_stats(Attributes(), rarity=Rarity.LEGENDARY)

        assert legendary.initiative == common.initiative
        assert legendary.physical_attack > common.physical_attack

    def test_missing_attributes_use_defaults(self):
        """A creature without attributes gets the default stat block."""
        stats = derive_stats(None, form=2)
        assert stats.physical_attack == 10
        assert stats.max_health == 50
        assert stats.energy_cost == 7

    def test_chance_caps(self):
        """Critical chance caps at 30 and dodge at 20."""
        stats = derive_stats(Attributes(speed=50, magic=50, stamina=50))
        assert stats.critical_chance == 30
        assert stats.dodge_chance == 20


class TestSoftCap:
    """Tests for diminishing returns."""

    def test_below_soft_cap_unchanged(self):
        assert soft_cap(55, 60, 120) == 55

    def test_above_soft_cap_compressed(self):
        assert soft_cap(80, 60, 120) == pytest.approx(60 + 20 ** 0.5 * 5)

    def test_hard_cap(self):
        assert soft_cap(10_000, 60, 120) == 120

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.49) == 2


class TestDeploymentCost:
    """Deployment cost depends on form only."""

    @pytest.mark.parametrize("form", [0, 1, 2, 3])
    def test_cost_is_five_plus_form(self, form):
        strong = make_creature("a", form=form, strength=20, energy=20)
        weak = make_creature("b", form=form, strength=1, energy=1)

        assert deployment_cost(form) == 5 + form
        assert strong.deployment_cost == weak.deployment_cost == 5 + form
        assert strong.base_stats.energy_cost == 5 + form


class TestEffectReplay:
    """Tests for stat modifications carried by effects."""

    def test_modifications_apply_on_top_of_base(self):
        creature = make_creature()
        effect = ActiveEffect(effect_id="e", name="Buff", stat_modifications={"physical_attack": 6})
        stats = apply_modifications(creature.base_stats, [effect])
        assert stats.physical_attack == creature.base_stats.physical_attack + 6

    def test_floors(self):
        """Attacks floor at 1, max health at 10."""
        creature = make_creature()
        effect = ActiveEffect(
            effect_id="e",
            name="Curse",
            stat_modifications={"physical_attack": -500, "max_health": -500},
        )
        stats = apply_modifications(creature.base_stats, [effect])
        assert stats.physical_attack == 1
        assert stats.max_health == 10

    def test_energy_cost_never_modified(self):
        creature = make_creature(form=1)
        effect = ActiveEffect(effect_id="e", name="Odd", stat_modifications={"energy_cost": 10})
        stats = apply_modifications(creature.base_stats, [effect])
        assert stats.energy_cost == 6

    def test_refresh_clamps_health(self):
        """Dropping an effect that raised max health clamps current health."""
        creature = make_creature()
        boosted = refresh_creature(creature, (
            ActiveEffect(effect_id="e", name="Vigor", stat_modifications={"max_health": 20}),
        ))
        boosted = boosted._copy_with(current_health=boosted.max_health)

        restored = refresh_creature(boosted, ())

        assert restored.current_health == creature.max_health
        assert restored.battle_stats == creature.base_stats
