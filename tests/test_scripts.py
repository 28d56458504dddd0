"""
tests/test_scripts.py

Tests for the maintenance scripts: stored rule normalization and the
default rule set.
"""

from datetime import datetime
from types import SimpleNamespace

from advisor.schemas import DayQualifier, TimeSlot
from scripts.normalize_rules import normalize_records
from scripts.seed_rules import DEFAULT_RULES, build_default_rules
from tests.fixtures import TEST_USER_ID


def _record(**overrides) -> SimpleNamespace:
    values = {
        "id": "stored_001",
        "user_id": TEST_USER_ID,
        "name": "夕食後高血糖対応",
        "time_slot": "夜",
        "condition_type": "食後血糖",
        "threshold": 140,
        "comparison": "以上",
        "adjustment_amount": 2,
        "target_time_slot": "翌日夕食",
        "preset_id": None,
        "created_at": datetime(2024, 6, 1),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def test_normalize_records_rewrites_legacy_rows() -> None:
    legacy = _record(id="legacy")
    canonical = _record(
        id="canonical",
        time_slot="Evening",
        condition_type="SameDay:Evening:AfterMeal1h",
        comparison="GreaterOrEqual",
        target_time_slot="NextDay:Evening",
    )
    unknown = _record(id="unknown", comparison="等しい")

    counts = normalize_records([legacy, canonical, unknown])

    assert counts == {"updated": 1, "unchanged": 1, "failed": 1}
    assert legacy.time_slot == "Evening"
    assert legacy.condition_type == "SameDay:Evening:AfterMeal1h"
    assert legacy.comparison == "GreaterOrEqual"
    assert legacy.target_time_slot == "NextDay:Evening"
    assert unknown.comparison == "等しい"


def test_default_rules_are_valid() -> None:
    rules = build_default_rules(TEST_USER_ID)

    assert len(rules) == len(DEFAULT_RULES) == 9
    assert all(rule.user_id == TEST_USER_ID for rule in rules)
    assert len({rule.id for rule in rules}) == 9


def test_post_meal_defaults_adjust_the_next_day() -> None:
    rules = build_default_rules(TEST_USER_ID)
    post_meal = [
        rule for rule in rules if rule.name.startswith(("High after", "Low after"))
    ]

    assert len(post_meal) == 6
    for rule in post_meal:
        assert rule.target.day is DayQualifier.NEXT_DAY
        assert rule.target.slot is rule.time_slot


def test_bedtime_dose_defaults_target_same_day_bedtime() -> None:
    rules = build_default_rules(TEST_USER_ID)
    bedtime_targets = [rule for rule in rules if rule.target.slot is TimeSlot.BEDTIME]

    assert {rule.name for rule in bedtime_targets} == {
        "Overnight low",
        "Morning low",
        "Morning high",
    }
    assert all(rule.target.day is DayQualifier.SAME_DAY for rule in bedtime_targets)
