"""
advisor/services/composer.py

Dose Composer.
Combines a base dose (first active preset covering the slot, else the flat
basal default) with the summed deltas of every matched rule targeting the
same (date, slot). The result is floored at zero; there is no upper clamp.
"""

from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from advisor.constants import DOSE_DECIMAL_PLACES, DOSE_FLOOR_UNITS
from advisor.schemas import FiredRule, InsulinPreset, RecommendedDose, TimeSlot


def ordered_presets(presets: Iterable[InsulinPreset]) -> list[InsulinPreset]:
    """Active presets in precedence order: sort_order, then creation time."""
    active = [preset for preset in presets if preset.is_active]
    return sorted(
        active,
        key=lambda preset: (preset.sort_order, preset.created_at or datetime.min),
    )


def preset_for_slot(
    presets: Iterable[InsulinPreset],
    slot: TimeSlot,
) -> Optional[InsulinPreset]:
    for preset in ordered_presets(presets):
        if preset.units_for(slot) is not None:
            return preset
    return None


def resolve_base_dose(
    presets: Iterable[InsulinPreset],
    slot: TimeSlot,
    basal_default: float = 0.0,
) -> float:
    """First preset value for the slot wins; otherwise the basal default."""
    preset = preset_for_slot(presets, slot)
    if preset is None:
        return basal_default
    return preset.units_for(slot)


def compose_dose(
    target_date: date,
    target_slot: TimeSlot,
    base_dose: float,
    fired_rules: Sequence[FiredRule],
) -> RecommendedDose:
    """
    Compose the recommended dose for one (target_date, target_slot).

    Only fired rules targeting that pair contribute. Deltas stack: every
    contributing rule is summed, none overrides another.
    """
    contributing = [
        fired
        for fired in fired_rules
        if fired.target_date == target_date and fired.target_slot is target_slot
    ]
    delta = sum(fired.adjustment_amount for fired in contributing)
    final_dose = max(
        DOSE_FLOOR_UNITS, round(base_dose + delta, DOSE_DECIMAL_PLACES)
    )
    return RecommendedDose(
        target_date=target_date,
        target_slot=target_slot,
        base_dose=base_dose,
        fired_rules=contributing,
        delta=delta,
        final_dose=final_dose,
    )
