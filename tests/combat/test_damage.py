"""
Tests for the damage formulas.
"""

from idlecombat.combat.damage import (
    build_damage_details,
    compute_hit_damage,
    counter_damage,
    roll_critical,
    total_counter_damage,
)


def test_plain_attack_is_mitigated_by_half_the_defense(settings):
    assert compute_hit_damage(50, 10, settings) == 45


def test_critical_hit_multiplies_plain_attack(settings):
    damage = compute_hit_damage(50, 10, settings, is_crit=True, crit_multiplier=1.5)
    assert damage == 67


def test_skill_damage_is_added_and_ignores_critical(settings):
    damage = compute_hit_damage(
        50, 10, settings, skill_damage=30, is_crit=True, crit_multiplier=2.0
    )
    assert damage == 75


def test_area_scaling_applies_to_each_target(settings):
    assert compute_hit_damage(45, 10, settings) == 40
    assert compute_hit_damage(45, 10, settings, area_scaled=True) == 28


def test_damage_is_never_negative(settings):
    assert compute_hit_damage(2, 100, settings) == 0
    assert compute_hit_damage(2, 100, settings, is_crit=True, crit_multiplier=3.0) == 0


def test_counter_damage_only_counts_positive_contributions():
    assert counter_damage(10, 10, 0.3) == 7
    assert counter_damage(2, 10, 0.3) == 0


def test_total_counter_damage_skips_dead_monsters(settings, monster_factory):
    alive = monster_factory(0, hp=10, attack=10)
    dead = monster_factory(1, hp=0, max_hp=10, attack=50)
    assert total_counter_damage([alive, dead], 10, settings) == 7


def test_roll_critical_hits_at_or_below_rate(scripted):
    assert roll_critical(scripted(floats=[0.25]), 0.25)
    assert not roll_critical(scripted(floats=[0.26]), 0.25)


def test_roll_critical_always_consumes_a_draw(scripted):
    rng = scripted(floats=[0.0, 0.5])
    assert not roll_critical(rng, 0.0)
    assert rng.floats == [0.5]


def test_damage_details_report_critical_extra(settings):
    details = build_damage_details(
        50, 10, 1, 67, 7, settings, is_crit=True, crit_multiplier=1.5
    )
    assert details.base_attack == 45
    assert details.crit_damage == 22
    assert details.skill_damage == 0
    assert details.aoe_damage == 0
    assert details.total == 67
    assert details.monster_counter == 7
    assert details.defense_reduction == 0.5


def test_damage_details_with_area_skill(settings):
    details = build_damage_details(
        50, 10, 3, 135, 0, settings, skill_damage=20, is_area=True
    )
    assert details.base_attack == 20
    assert details.skill_damage == 20
    assert details.crit_damage == 0
    assert details.aoe_damage == 58


def test_damage_details_floor_base_attack(settings):
    details = build_damage_details(2, 100, 1, 0, 0, settings)
    assert details.base_attack == 0
