"""
tests/test_rules.py

Unit tests for rule creation and update validation in advisor/services/rules.py.
"""

import pytest

from advisor.errors import RuleValidationError
from advisor.schemas import Comparison, DayQualifier, MealReading, TimeSlot
from advisor.services.rules import (
    condition_code,
    rules_by_time_slot,
    target_code,
    validate_rule,
    validate_rule_update,
)
from tests.fixtures import TEST_USER_ID, build_rule


def _payload(**overrides) -> dict:
    payload = {
        "user_id": TEST_USER_ID,
        "name": "High after breakfast",
        "time_slot": "Morning",
        "condition": {"day": "SameDay", "slot": "Morning", "reading": "AfterMeal1h"},
        "threshold": 140,
        "comparison": "GreaterOrEqual",
        "adjustment_amount": 2,
        "target": {"day": "NextDay", "slot": "Morning"},
    }
    payload.update(overrides)
    return payload


def _error_fields(exc_info) -> set[str]:
    return {error["field"] for error in exc_info.value.errors}


def test_valid_rule_is_accepted() -> None:
    rule = validate_rule(_payload())

    assert rule.id
    assert rule.time_slot is TimeSlot.MORNING
    assert rule.condition.reading is MealReading.AFTER_MEAL_1H
    assert rule.comparison is Comparison.GREATER_OR_EQUAL
    assert rule.target.day is DayQualifier.NEXT_DAY


def test_blank_name_is_generated_from_fields() -> None:
    rule = validate_rule(_payload(name=""))

    assert rule.name == (
        "Morning: same day 1h after breakfast glucose >= 140 mg/dL "
        "-> next day morning dose +2u"
    )


def test_missing_name_is_generated() -> None:
    payload = _payload()
    del payload["name"]

    assert validate_rule(payload).name.startswith("Morning: ")


def test_negative_threshold_is_rejected() -> None:
    with pytest.raises(RuleValidationError) as exc_info:
        validate_rule(_payload(threshold=-1))
    assert _error_fields(exc_info) == {"threshold"}


@pytest.mark.parametrize("amount", [-21, 21, 100])
def test_adjustment_out_of_range_is_rejected(amount: int) -> None:
    with pytest.raises(RuleValidationError) as exc_info:
        validate_rule(_payload(adjustment_amount=amount))
    assert _error_fields(exc_info) == {"adjustment_amount"}


@pytest.mark.parametrize("amount", [-20, 0, 20])
def test_adjustment_range_is_inclusive(amount: int) -> None:
    assert validate_rule(_payload(adjustment_amount=amount)).adjustment_amount == amount


def test_numeric_strings_are_not_coerced() -> None:
    with pytest.raises(RuleValidationError) as exc_info:
        validate_rule(_payload(threshold="140"))
    assert _error_fields(exc_info) == {"threshold"}


def test_legacy_vocabulary_is_rejected_on_write() -> None:
    with pytest.raises(RuleValidationError) as exc_info:
        validate_rule(_payload(time_slot="朝", comparison="以上"))
    assert _error_fields(exc_info) == {"time_slot", "comparison"}


def test_missing_target_is_rejected() -> None:
    payload = _payload()
    del payload["target"]

    with pytest.raises(RuleValidationError) as exc_info:
        validate_rule(payload)
    assert _error_fields(exc_info) == {"target"}


def test_empty_target_is_rejected() -> None:
    with pytest.raises(RuleValidationError) as exc_info:
        validate_rule(_payload(target=""))
    assert _error_fields(exc_info) == {"target"}


def test_condition_without_measurement_is_rejected() -> None:
    condition = {"day": "SameDay", "slot": "Bedtime", "reading": "BeforeMeal"}
    with pytest.raises(RuleValidationError) as exc_info:
        validate_rule(_payload(condition=condition))
    assert _error_fields(exc_info) == {"condition"}


def test_next_day_condition_is_rejected() -> None:
    condition = {"day": "NextDay", "slot": "Morning", "reading": "BeforeMeal"}
    with pytest.raises(RuleValidationError):
        validate_rule(_payload(condition=condition))


def test_update_revalidates_merged_rule() -> None:
    rule = build_rule(adjustment_amount=2)

    updated = validate_rule_update(rule, {"adjustment_amount": -3})

    assert updated.adjustment_amount == -3
    assert updated.id == rule.id
    assert updated.name == rule.name
    assert rule.adjustment_amount == 2


def test_update_rejects_out_of_range_value() -> None:
    with pytest.raises(RuleValidationError):
        validate_rule_update(build_rule(), {"threshold": -10})


def test_update_cannot_change_owner() -> None:
    with pytest.raises(RuleValidationError) as exc_info:
        validate_rule_update(build_rule(), {"user_id": "someone_else"})
    assert _error_fields(exc_info) == {"user_id"}


def test_canonical_codes() -> None:
    rule = build_rule(
        condition=("PreviousDay", "Bedtime", "Bedtime"), target=("NextDay", "Noon")
    )
    assert condition_code(rule.condition) == "PreviousDay:Bedtime:Bedtime"
    assert target_code(rule.target) == "NextDay:Noon"


def test_rules_grouped_by_time_slot() -> None:
    rules = [
        build_rule("a", time_slot=TimeSlot.MORNING),
        build_rule("b", time_slot=TimeSlot.EVENING, target=("SameDay", "Evening")),
        build_rule("c", time_slot=TimeSlot.MORNING),
    ]

    grouped = rules_by_time_slot(rules)

    assert [r.id for r in grouped[TimeSlot.MORNING]] == ["a", "c"]
    assert [r.id for r in grouped[TimeSlot.EVENING]] == ["b"]
    assert grouped[TimeSlot.NOON] == []
    assert grouped[TimeSlot.BEDTIME] == []


def test_update_regenerates_generated_name() -> None:
    rule = validate_rule(_payload(name=""))

    updated = validate_rule_update(rule, {"threshold": 160})

    assert ">= 160 mg/dL" in updated.name
    assert ">= 140 mg/dL" not in updated.name


def test_update_with_explicit_name_keeps_it() -> None:
    rule = validate_rule(_payload(name=""))

    updated = validate_rule_update(rule, {"threshold": 160, "name": "Breakfast high"})

    assert updated.name == "Breakfast high"
