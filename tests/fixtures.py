"""
tests/fixtures.py

Shared test data and helper functions for constructing rules, presets,
measurements and evaluation snapshots.
All tests must use these builders instead of hardcoding domain objects.
"""

from datetime import date, datetime
from typing import Iterable, Optional

from advisor.schemas import (
    AdjustmentRule,
    Comparison,
    ConditionType,
    EvaluationContext,
    GlucoseEntry,
    InsulinPreset,
    MeasurementSlot,
    StoredRule,
    TargetSlot,
    TimeSlot,
)

TEST_USER_ID: str = "user_001"
OTHER_USER_ID: str = "user_002"
TEST_DATE: date = date(2024, 6, 15)


def build_rule(
    rule_id: str = "rule_001",
    user_id: str = TEST_USER_ID,
    time_slot: TimeSlot = TimeSlot.MORNING,
    condition: tuple[str, str, str] = ("SameDay", "Morning", "AfterMeal1h"),
    threshold: int = 140,
    comparison: Comparison = Comparison.GREATER_OR_EQUAL,
    adjustment_amount: int = 2,
    target: tuple[str, str] = ("SameDay", "Morning"),
    preset_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> AdjustmentRule:
    """Build a validated AdjustmentRule with sensible defaults for testing."""
    day, slot, reading = condition
    target_day, target_slot = target
    return AdjustmentRule(
        id=rule_id,
        user_id=user_id,
        name=f"Test rule {rule_id}",
        time_slot=time_slot,
        condition=ConditionType(day=day, slot=slot, reading=reading),
        threshold=threshold,
        comparison=comparison,
        adjustment_amount=adjustment_amount,
        target=TargetSlot(day=target_day, slot=target_slot),
        preset_id=preset_id,
        created_at=created_at,
    )


def build_stored_rule(**overrides) -> StoredRule:
    """Build a persisted rule row using the legacy vocabulary by default."""
    values = {
        "id": "stored_001",
        "user_id": TEST_USER_ID,
        "name": "朝食後高血糖対応",
        "time_slot": "朝",
        "condition_type": "食後1h血糖値",
        "threshold": 140,
        "comparison": "以上",
        "adjustment_amount": 2,
        "target_time_slot": "朝",
        "preset_id": None,
        "created_at": datetime(2024, 6, 1, 9, 0, 0),
    }
    values.update(overrides)
    return StoredRule(**values)


def build_preset(
    preset_id: str = "preset_001",
    user_id: str = TEST_USER_ID,
    name: str = "Humalog",
    sort_order: int = 0,
    is_active: bool = True,
    morning_units: Optional[float] = 4,
    noon_units: Optional[float] = None,
    evening_units: Optional[float] = None,
    bedtime_units: Optional[float] = None,
    created_at: Optional[datetime] = None,
) -> InsulinPreset:
    """Build an InsulinPreset with sensible defaults for testing."""
    return InsulinPreset(
        id=preset_id,
        user_id=user_id,
        name=name,
        sort_order=sort_order,
        is_active=is_active,
        morning_units=morning_units,
        noon_units=noon_units,
        evening_units=evening_units,
        bedtime_units=bedtime_units,
        created_at=created_at,
    )


def build_entry(
    entry_id: str = "entry_001",
    user_id: str = TEST_USER_ID,
    day: date = TEST_DATE,
    time_slot: MeasurementSlot = MeasurementSlot.BREAKFAST_BEFORE,
    glucose_level: int = 110,
    created_at: Optional[datetime] = None,
) -> GlucoseEntry:
    """Build a GlucoseEntry with sensible defaults for testing."""
    return GlucoseEntry(
        id=entry_id,
        user_id=user_id,
        date=day,
        time_slot=time_slot,
        glucose_level=glucose_level,
        created_at=created_at,
    )


def build_context(
    rules: Iterable[AdjustmentRule] = (),
    presets: Iterable[InsulinPreset] = (),
    basal_defaults: Optional[dict[TimeSlot, float]] = None,
    entries: Iterable[GlucoseEntry] = (),
    skipped_rule_ids: Iterable[str] = (),
) -> EvaluationContext:
    """Build an EvaluationContext snapshot for engine tests."""
    return EvaluationContext(
        rules=tuple(rules),
        presets=tuple(presets),
        basal_defaults=basal_defaults or {},
        glucose_entries=tuple(entries),
        skipped_rule_ids=tuple(skipped_rule_ids),
    )


class FakeRuleRepository:
    """In-memory RuleRepository that records the glucose lookups it serves."""

    def __init__(
        self,
        rules: Iterable[StoredRule] = (),
        presets: Iterable[InsulinPreset] = (),
        entries: Iterable[GlucoseEntry] = (),
        basal_defaults: Optional[dict[TimeSlot, float]] = None,
    ) -> None:
        self.rules = list(rules)
        self.presets = list(presets)
        self.entries = list(entries)
        self.basal_defaults = basal_defaults or {}
        self.glucose_lookups: list[tuple[str, date, MeasurementSlot]] = []

    async def list_rules(self, user_id: str) -> list[StoredRule]:
        return [rule for rule in self.rules if rule.user_id == user_id]

    async def get_glucose_entry(
        self, user_id: str, day: date, slot: MeasurementSlot
    ) -> Optional[GlucoseEntry]:
        self.glucose_lookups.append((user_id, day, slot))
        matches = [
            entry
            for entry in self.entries
            if entry.user_id == user_id
            and entry.date == day
            and entry.time_slot is slot
        ]
        return matches[-1] if matches else None

    async def list_presets(self, user_id: str) -> list[InsulinPreset]:
        return [preset for preset in self.presets if preset.user_id == user_id]

    async def get_basal_default(self, user_id: str, slot: TimeSlot) -> float:
        return self.basal_defaults.get(slot, 0.0)
