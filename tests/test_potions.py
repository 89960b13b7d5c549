"""
Tests for the automatic potion policy.
"""

import pytest

from idlecombat.core.constants import PotionGrade, PotionKind
from idlecombat.models.results import PotionDrop
from idlecombat.potions import (
    PotionItem,
    ThresholdPotionPolicy,
    find_best_potion,
    potion_from_drop,
    resource_percent,
)


@pytest.fixture
def bag(directory):
    record = directory.get(1)
    record.potions = [
        potion_from_drop(PotionDrop(kind=PotionKind.HP, grade=PotionGrade.MINOR)),
        potion_from_drop(PotionDrop(kind=PotionKind.HP, grade=PotionGrade.LIGHT)),
        potion_from_drop(PotionDrop(kind=PotionKind.MP, grade=PotionGrade.MINOR)),
    ]
    return record


@pytest.fixture
def policy(directory, settings):
    return ThresholdPotionPolicy(directory, settings)


def test_potion_from_drop_uses_the_catalog():
    potion = potion_from_drop(PotionDrop(kind=PotionKind.MP, grade=PotionGrade.FULL))
    assert potion.name == "Superior Mana Potion"
    assert potion.restore == 240
    assert potion.quantity == 1


def test_find_best_potion_prefers_the_strongest(bag):
    best = find_best_potion(bag.potions, PotionKind.HP)
    assert best.grade == PotionGrade.LIGHT
    assert find_best_potion([], PotionKind.HP) is None


def test_empty_stacks_are_ignored():
    empty = PotionItem(
        name="Healing Potion", kind=PotionKind.HP, grade=PotionGrade.LIGHT, restore=100, quantity=0
    )
    assert find_best_potion([empty], PotionKind.HP) is None


def test_resource_percent():
    assert resource_percent(50, 200) == 25.0
    assert resource_percent(0, 0) == 100.0


def test_drinks_when_at_or_below_threshold(policy, directory, bag, stats):
    profile = directory.update_potion_settings(
        1, auto_use_hp_potion=True, hp_potion_threshold=50
    )
    report = policy.try_auto_use(profile, 100, 100, stats)

    assert report.hp.name == "Healing Potion"
    assert report.hp.restored == 100
    assert report.mp is None
    assert [p.grade for p in directory.get_potions(1) if p.kind == PotionKind.HP] == [
        PotionGrade.MINOR
    ]


def test_restored_amount_is_capped_at_maximum(policy, directory, bag, stats):
    profile = directory.update_potion_settings(
        1, auto_use_hp_potion=True, hp_potion_threshold=100
    )
    report = policy.try_auto_use(profile, 170, 100, stats)
    assert report.hp.restored == 30


def test_does_not_drink_above_threshold(policy, directory, bag, stats):
    profile = directory.update_potion_settings(1, auto_use_hp_potion=True)
    # Default threshold is 30 percent, 61 of 200 is above it.
    report = policy.try_auto_use(profile, 61, 100, stats)
    assert report.hp is None
    assert len(directory.get_potions(1)) == 3


def test_disabled_auto_use_never_drinks(policy, directory, bag, stats):
    profile = directory.get_profile(1)
    report = policy.try_auto_use(profile, 1, 0, stats)
    assert report.hp is None and report.mp is None


def test_mana_potion(policy, directory, bag, stats):
    profile = directory.update_potion_settings(
        1, auto_use_mp_potion=True, mp_potion_threshold=20
    )
    report = policy.try_auto_use(profile, 200, 10, stats)
    assert report.mp.name == "Minor Mana Potion"
    assert report.mp.restored == 30


def test_out_of_range_threshold_is_clamped(policy, directory, bag, stats):
    profile = directory.update_potion_settings(
        1, auto_use_hp_potion=True, hp_potion_threshold=250
    )
    report = policy.try_auto_use(profile, 199, 100, stats)
    assert report.hp is not None


def test_no_potion_left(policy, directory, stats):
    profile = directory.update_potion_settings(1, auto_use_hp_potion=True)
    report = policy.try_auto_use(profile, 1, 100, stats)
    assert report.hp is None
