"""
advisor/services/engine.py

Rule Engine: the single entry point called when a glucose value is entered.

Flow:
1. Keep rules configured under the dosing slot of the entered measurement
2. Resolve each condition, from the just-entered value when the condition
   names that very measurement on the same day, otherwise from the snapshot
3. Collect matching rules
4. Group them by resolved (target date, target slot) and compose each group
5. Return the group for the slot being dosed today, plus every other group

All matching rules stack; there is no first-match-wins. The engine is pure
over its EvaluationContext and performs no I/O.
"""

from datetime import date, datetime
from typing import Optional

import structlog

from advisor.schemas import (
    AdjustmentRule,
    DayQualifier,
    DoseEvaluation,
    EvaluationContext,
    FiredRule,
    MeasurementSlot,
    RecommendedDose,
    TimeSlot,
)
from advisor.services.composer import compose_dose, resolve_base_dose
from advisor.services.evaluator import condition_matches
from advisor.services.resolver import resolve_measurement

logger = structlog.get_logger(__name__)

_SLOT_ORDER: dict[TimeSlot, int] = {slot: index for index, slot in enumerate(TimeSlot)}


def _condition_value(
    rule: AdjustmentRule,
    user_id: str,
    on_date: date,
    entered_slot: MeasurementSlot,
    glucose_value: int,
    context: EvaluationContext,
) -> Optional[int]:
    condition = rule.condition
    if (
        condition.day is DayQualifier.SAME_DAY
        and condition.measurement_slot is entered_slot
    ):
        return glucose_value
    return resolve_measurement(condition, on_date, context.get_glucose, user_id)


def _fired_rule(
    rule: AdjustmentRule,
    measured_value: int,
    on_date: date,
    preset_names: dict[str, str],
) -> FiredRule:
    return FiredRule(
        rule_id=rule.id,
        name=rule.name,
        time_slot=rule.time_slot,
        condition_description=rule.condition.describe(),
        measured_value=measured_value,
        threshold=rule.threshold,
        comparison=rule.comparison,
        adjustment_amount=rule.adjustment_amount,
        target_date=rule.target.resolve_date(on_date),
        target_slot=rule.target.slot,
        preset_name=preset_names.get(rule.preset_id) if rule.preset_id else None,
    )


def evaluate(
    user_id: str,
    on_date: date,
    entered_slot: MeasurementSlot,
    glucose_value: int,
    context: EvaluationContext,
) -> DoseEvaluation:
    """Evaluate every applicable rule and compose a dose per target group."""
    dosing_slot = entered_slot.time_slot
    preset_names = {preset.id: preset.name for preset in context.presets}

    matched: list[tuple[AdjustmentRule, FiredRule]] = []
    for rule in context.rules:
        if rule.user_id != user_id or rule.time_slot is not dosing_slot:
            continue
        value = _condition_value(
            rule, user_id, on_date, entered_slot, glucose_value, context
        )
        if not condition_matches(value, rule.threshold, rule.comparison):
            continue
        fired = _fired_rule(rule, value, on_date, preset_names)
        matched.append((rule, fired))
        logger.info(
            "rule_fired",
            user_id=user_id,
            rule_id=rule.id,
            measured_value=value,
            adjustment_amount=rule.adjustment_amount,
            target_date=fired.target_date.isoformat(),
            target_slot=fired.target_slot.value,
        )

    matched.sort(key=lambda pair: (pair[0].created_at or datetime.min, pair[0].id))
    fired_rules = [fired for _, fired in matched]

    primary_key = (on_date, dosing_slot)
    group_keys = {(fired.target_date, fired.target_slot) for fired in fired_rules}
    group_keys.add(primary_key)

    groups: list[RecommendedDose] = []
    primary: Optional[RecommendedDose] = None
    for target_date, target_slot in sorted(
        group_keys, key=lambda key: (key[0], _SLOT_ORDER[key[1]])
    ):
        base_dose = resolve_base_dose(
            context.presets, target_slot, context.basal_default(target_slot)
        )
        dose = compose_dose(target_date, target_slot, base_dose, fired_rules)
        groups.append(dose)
        if (target_date, target_slot) == primary_key:
            primary = dose

    logger.info(
        "dose_suggested",
        user_id=user_id,
        date=on_date.isoformat(),
        entered_slot=entered_slot.value,
        fired_count=len(fired_rules),
        final_dose=primary.final_dose,
    )

    return DoseEvaluation(
        primary=primary,
        groups=groups,
        fired_rules=fired_rules,
        skipped_rule_ids=list(context.skipped_rule_ids),
    )


def suggest_dose(
    user_id: str,
    on_date: date,
    entered_slot: MeasurementSlot,
    glucose_value: int,
    context: EvaluationContext,
) -> RecommendedDose:
    """Dose to pre-fill for the slot being entered, same day."""
    return evaluate(user_id, on_date, entered_slot, glucose_value, context).primary


def explain_rules(
    user_id: str,
    on_date: date,
    entered_slot: MeasurementSlot,
    glucose_value: int,
    context: EvaluationContext,
) -> list[FiredRule]:
    """Every rule that matched, across all target groups."""
    return evaluate(
        user_id, on_date, entered_slot, glucose_value, context
    ).fired_rules
