"""
advisor/services/legacy.py

Parse-and-normalize for adjustment rules read back from storage.
Rows may carry canonical codes or the legacy Japanese vocabulary
(including the synonyms 夜 -> 夕 and 夜間 -> 眠前). Values outside both
raise UnknownEnumValueError; the caller decides whether to skip the rule.
"""

from typing import Optional

from pydantic import ValidationError

from advisor.errors import RuleValidationError, UnknownEnumValueError
from advisor.schemas import (
    AdjustmentRule,
    Comparison,
    ConditionType,
    DayQualifier,
    MealReading,
    StoredRule,
    TargetSlot,
    TimeSlot,
)
from advisor.services.rules import CODE_SEPARATOR, condition_code, target_code

LEGACY_TIME_SLOTS: dict[str, TimeSlot] = {
    "朝": TimeSlot.MORNING,
    "朝食": TimeSlot.MORNING,
    "昼": TimeSlot.NOON,
    "昼食": TimeSlot.NOON,
    "夕": TimeSlot.EVENING,
    "夕食": TimeSlot.EVENING,
    "夜": TimeSlot.EVENING,
    "眠前": TimeSlot.BEDTIME,
    "夜間": TimeSlot.BEDTIME,
}

LEGACY_COMPARISONS: dict[str, Comparison] = {
    "以下": Comparison.LESS_OR_EQUAL,
    "未満": Comparison.LESS,
    "以上": Comparison.GREATER_OR_EQUAL,
    "超える": Comparison.GREATER,
}

LEGACY_DAY_PREFIXES: dict[str, DayQualifier] = {
    "前日の": DayQualifier.PREVIOUS_DAY,
    "前日": DayQualifier.PREVIOUS_DAY,
    "当日の": DayQualifier.SAME_DAY,
    "当日": DayQualifier.SAME_DAY,
    "翌日の": DayQualifier.NEXT_DAY,
    "翌日": DayQualifier.NEXT_DAY,
}

# Condition bodies; a None slot means "the rule's own dosing slot"
_LEGACY_READINGS: dict[str, tuple[Optional[TimeSlot], MealReading]] = {
    "食前": (None, MealReading.BEFORE_MEAL),
    "食後": (None, MealReading.AFTER_MEAL_1H),
    "朝食前": (TimeSlot.MORNING, MealReading.BEFORE_MEAL),
    "朝食後": (TimeSlot.MORNING, MealReading.AFTER_MEAL_1H),
    "昼食前": (TimeSlot.NOON, MealReading.BEFORE_MEAL),
    "昼食後": (TimeSlot.NOON, MealReading.AFTER_MEAL_1H),
    "夕食前": (TimeSlot.EVENING, MealReading.BEFORE_MEAL),
    "夕食後": (TimeSlot.EVENING, MealReading.AFTER_MEAL_1H),
    "眠前": (TimeSlot.BEDTIME, MealReading.BEDTIME),
    "夜間": (TimeSlot.BEDTIME, MealReading.OVERNIGHT),
}

_GLUCOSE_SUFFIXES = ("血糖値", "血糖")


def _split_day_prefix(value: str) -> tuple[Optional[DayQualifier], str]:
    for prefix, day in LEGACY_DAY_PREFIXES.items():
        if value.startswith(prefix):
            return day, value[len(prefix):]
    return None, value


def parse_time_slot(value: str, field: str = "time_slot") -> TimeSlot:
    try:
        return TimeSlot(value)
    except ValueError:
        pass
    if value in LEGACY_TIME_SLOTS:
        return LEGACY_TIME_SLOTS[value]
    raise UnknownEnumValueError(field, value)


def parse_comparison(value: str) -> Comparison:
    try:
        return Comparison(value)
    except ValueError:
        pass
    if value in LEGACY_COMPARISONS:
        return LEGACY_COMPARISONS[value]
    raise UnknownEnumValueError("comparison", value)


def _parse_condition_code(value: str) -> ConditionType:
    day, slot, reading = value.split(CODE_SEPARATOR)
    return ConditionType(
        day=DayQualifier(day), slot=TimeSlot(slot), reading=MealReading(reading)
    )


def parse_condition(value: str, rule_slot: TimeSlot) -> ConditionType:
    """
    Parse a stored condition type.

    Context-relative legacy values (食前血糖, 食後血糖) read the rule's own
    slot on the same day. 夜間血糖 without a day prefix reads the most recent
    completed night, i.e. the previous day's overnight measurement.
    """
    if value.count(CODE_SEPARATOR) == 2:
        try:
            return _parse_condition_code(value)
        except ValueError as exc:
            raise UnknownEnumValueError("condition_type", value) from exc

    day, body = _split_day_prefix(value)
    for suffix in _GLUCOSE_SUFFIXES:
        if body.endswith(suffix):
            body = body[: -len(suffix)]
            break
    else:
        raise UnknownEnumValueError("condition_type", value)
    body = body.replace("1h", "")
    if body not in _LEGACY_READINGS:
        raise UnknownEnumValueError("condition_type", value)

    slot, reading = _LEGACY_READINGS[body]
    if day is None:
        day = (
            DayQualifier.PREVIOUS_DAY
            if reading is MealReading.OVERNIGHT
            else DayQualifier.SAME_DAY
        )
    try:
        return ConditionType(day=day, slot=slot or rule_slot, reading=reading)
    except ValidationError as exc:
        raise UnknownEnumValueError("condition_type", value) from exc


def parse_target(value: str) -> TargetSlot:
    if value.count(CODE_SEPARATOR) == 1:
        day, slot = value.split(CODE_SEPARATOR)
        try:
            return TargetSlot(day=DayQualifier(day), slot=TimeSlot(slot))
        except ValueError as exc:
            raise UnknownEnumValueError("target_time_slot", value) from exc

    day, body = _split_day_prefix(value)
    slot = parse_time_slot(body, field="target_time_slot")
    return TargetSlot(day=day or DayQualifier.SAME_DAY, slot=slot)


def parse_stored_rule(stored: StoredRule) -> AdjustmentRule:
    """Normalize a stored row into an AdjustmentRule."""
    time_slot = parse_time_slot(stored.time_slot)
    try:
        return AdjustmentRule(
            id=stored.id,
            user_id=stored.user_id,
            name=stored.name,
            time_slot=time_slot,
            condition=parse_condition(stored.condition_type, time_slot),
            threshold=stored.threshold,
            comparison=parse_comparison(stored.comparison),
            adjustment_amount=stored.adjustment_amount,
            target=parse_target(stored.target_time_slot),
            preset_id=stored.preset_id,
            created_at=stored.created_at,
        )
    except ValidationError as exc:
        raise RuleValidationError(
            [
                {"field": ".".join(str(p) for p in err["loc"]), "reason": err["msg"]}
                for err in exc.errors()
            ]
        ) from exc


def canonical_columns(rule: AdjustmentRule) -> dict[str, str]:
    """The four enumerated columns of a rule in their canonical encoding."""
    return {
        "time_slot": rule.time_slot.value,
        "condition_type": condition_code(rule.condition),
        "comparison": rule.comparison.value,
        "target_time_slot": target_code(rule.target),
    }
