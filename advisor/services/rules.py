"""
advisor/services/rules.py

Rule creation and update validation.
- validate_rule: structural validation of a new rule, canonical values only
- validate_rule_update: partial update merged onto an existing rule
- condition_code / target_code: canonical storage encodings
- rules_by_time_slot: groups rules under their dosing occasion
"""

import uuid
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from advisor.errors import RuleValidationError
from advisor.schemas import AdjustmentRule, ConditionType, TargetSlot, TimeSlot

CODE_SEPARATOR = ":"

_PLACEHOLDER_NAME = "-"


def condition_code(condition: ConditionType) -> str:
    """Encode a condition as e.g. ``SameDay:Morning:AfterMeal1h``."""
    return CODE_SEPARATOR.join(
        (condition.day.value, condition.slot.value, condition.reading.value)
    )


def target_code(target: TargetSlot) -> str:
    """Encode a target as e.g. ``NextDay:Bedtime``."""
    return CODE_SEPARATOR.join((target.day.value, target.slot.value))


def default_rule_name(rule: AdjustmentRule) -> str:
    """Human label built from the rule's own fields."""
    return (
        f"{rule.time_slot.value}: {rule.condition.describe()} "
        f"{rule.comparison.symbol} {rule.threshold} mg/dL "
        f"-> {rule.target.describe()} {rule.adjustment_amount:+d}u"
    )


def _field_errors(exc: ValidationError) -> list[dict[str, str]]:
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "rule"
        errors.append({"field": field, "reason": error["msg"]})
    return errors


def _build(payload: dict[str, Any]) -> AdjustmentRule:
    name = payload.get("name")
    needs_name = not (isinstance(name, str) and name.strip())
    if needs_name:
        payload["name"] = _PLACEHOLDER_NAME
    try:
        rule = AdjustmentRule.model_validate(payload)
    except ValidationError as exc:
        raise RuleValidationError(_field_errors(exc)) from exc
    if needs_name:
        rule = rule.model_copy(update={"name": default_rule_name(rule)})
    return rule


def validate_rule(data: Mapping[str, Any]) -> AdjustmentRule:
    """
    Validate a rule submitted for creation.

    Raises RuleValidationError with field-level reasons when the threshold is
    negative, the adjustment is outside [-20, 20], an enumerated value is
    unknown, or the target is missing. A blank name is generated.
    """
    payload = dict(data)
    if not payload.get("id"):
        payload["id"] = str(uuid.uuid4())
    return _build(payload)


def validate_rule_update(
    rule: AdjustmentRule,
    changes: Mapping[str, Any],
) -> AdjustmentRule:
    """Apply a partial update to a rule and validate the merged result."""
    immutable = {"id", "user_id"} & set(changes)
    if immutable:
        raise RuleValidationError(
            [
                {"field": field, "reason": "cannot be changed"}
                for field in sorted(immutable)
            ]
        )
    payload = rule.model_dump()
    # a generated name follows the fields it describes
    if "name" not in changes and rule.name == default_rule_name(rule):
        payload["name"] = ""
    payload.update(changes)
    return _build(payload)


def rules_by_time_slot(
    rules: Iterable[AdjustmentRule],
) -> dict[TimeSlot, list[AdjustmentRule]]:
    grouped: dict[TimeSlot, list[AdjustmentRule]] = {slot: [] for slot in TimeSlot}
    for rule in rules:
        grouped[rule.time_slot].append(rule)
    return grouped
