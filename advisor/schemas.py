"""
advisor/schemas.py

Pydantic data models and closed enumerations for the dose advisor.
- TimeSlot, MeasurementSlot, Comparison, DayQualifier, MealReading: enumerations
- ConditionType / TargetSlot: the two composite slot references a rule carries
- AdjustmentRule / InsulinPreset / GlucoseEntry: read-only domain records
- RecommendedDose / FiredRule / DoseEvaluation: engine output
- EvaluationContext: immutable snapshot the engine evaluates against
"""

from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from advisor.constants import (
    ADJUSTMENT_MAX_UNITS,
    ADJUSTMENT_MIN_UNITS,
    DOSE_DECIMAL_PLACES,
    GLUCOSE_MAX_MGDL,
    GLUCOSE_MIN_MGDL,
    NEXT_DAY_OFFSET,
    PRESET_MAX_UNITS,
    PREVIOUS_DAY_OFFSET,
    SAME_DAY_OFFSET,
    THRESHOLD_MIN_MGDL,
)


# ── Enumerations ─────────────────────────────────────────────

class TimeSlot(str, Enum):
    """The four daily insulin dosing occasions."""

    MORNING = "Morning"
    NOON = "Noon"
    EVENING = "Evening"
    BEDTIME = "Bedtime"


class DayQualifier(str, Enum):
    PREVIOUS_DAY = "PreviousDay"
    SAME_DAY = "SameDay"
    NEXT_DAY = "NextDay"

    @property
    def offset_days(self) -> int:
        return _DAY_OFFSETS[self]


_DAY_OFFSETS: dict[DayQualifier, int] = {
    DayQualifier.PREVIOUS_DAY: PREVIOUS_DAY_OFFSET,
    DayQualifier.SAME_DAY: SAME_DAY_OFFSET,
    DayQualifier.NEXT_DAY: NEXT_DAY_OFFSET,
}


class MealReading(str, Enum):
    BEFORE_MEAL = "BeforeMeal"
    AFTER_MEAL_1H = "AfterMeal1h"
    BEDTIME = "Bedtime"
    OVERNIGHT = "Overnight"


class MeasurementSlot(str, Enum):
    """Fine-grained glucose measurement occasions. NIGHT is a legacy value."""

    BREAKFAST_BEFORE = "BreakfastBefore"
    BREAKFAST_AFTER_1H = "BreakfastAfter1h"
    LUNCH_BEFORE = "LunchBefore"
    LUNCH_AFTER_1H = "LunchAfter1h"
    DINNER_BEFORE = "DinnerBefore"
    DINNER_AFTER_1H = "DinnerAfter1h"
    BEFORE_SLEEP = "BeforeSleep"
    NIGHT = "Night"

    @property
    def time_slot(self) -> TimeSlot:
        """The dosing occasion this measurement belongs to."""
        return _MEASUREMENT_TIME_SLOTS[self]


class Comparison(str, Enum):
    LESS_OR_EQUAL = "LessOrEqual"
    LESS = "Less"
    GREATER_OR_EQUAL = "GreaterOrEqual"
    GREATER = "Greater"

    @property
    def symbol(self) -> str:
        return _COMPARISON_SYMBOLS[self]


_COMPARISON_SYMBOLS: dict[Comparison, str] = {
    Comparison.LESS_OR_EQUAL: "<=",
    Comparison.LESS: "<",
    Comparison.GREATER_OR_EQUAL: ">=",
    Comparison.GREATER: ">",
}

# (dosing slot, meal-relative reading) -> stored measurement slot
MEASUREMENT_FOR_CONDITION: dict[tuple[TimeSlot, MealReading], MeasurementSlot] = {
    (TimeSlot.MORNING, MealReading.BEFORE_MEAL): MeasurementSlot.BREAKFAST_BEFORE,
    (TimeSlot.MORNING, MealReading.AFTER_MEAL_1H): MeasurementSlot.BREAKFAST_AFTER_1H,
    (TimeSlot.NOON, MealReading.BEFORE_MEAL): MeasurementSlot.LUNCH_BEFORE,
    (TimeSlot.NOON, MealReading.AFTER_MEAL_1H): MeasurementSlot.LUNCH_AFTER_1H,
    (TimeSlot.EVENING, MealReading.BEFORE_MEAL): MeasurementSlot.DINNER_BEFORE,
    (TimeSlot.EVENING, MealReading.AFTER_MEAL_1H): MeasurementSlot.DINNER_AFTER_1H,
    (TimeSlot.BEDTIME, MealReading.BEDTIME): MeasurementSlot.BEFORE_SLEEP,
    (TimeSlot.BEDTIME, MealReading.OVERNIGHT): MeasurementSlot.NIGHT,
}

_MEASUREMENT_TIME_SLOTS: dict[MeasurementSlot, TimeSlot] = {
    measurement: slot
    for (slot, _), measurement in MEASUREMENT_FOR_CONDITION.items()
}

_MEASUREMENT_LABELS: dict[MeasurementSlot, str] = {
    MeasurementSlot.BREAKFAST_BEFORE: "before-breakfast",
    MeasurementSlot.BREAKFAST_AFTER_1H: "1h after breakfast",
    MeasurementSlot.LUNCH_BEFORE: "before-lunch",
    MeasurementSlot.LUNCH_AFTER_1H: "1h after lunch",
    MeasurementSlot.DINNER_BEFORE: "before-dinner",
    MeasurementSlot.DINNER_AFTER_1H: "1h after dinner",
    MeasurementSlot.BEFORE_SLEEP: "bedtime",
    MeasurementSlot.NIGHT: "overnight",
}

_DAY_LABELS: dict[DayQualifier, str] = {
    DayQualifier.PREVIOUS_DAY: "previous day",
    DayQualifier.SAME_DAY: "same day",
    DayQualifier.NEXT_DAY: "next day",
}


# ── Composite slot references ────────────────────────────────

class ConditionType(BaseModel):
    """Which stored measurement a rule's threshold check reads."""

    model_config = {"frozen": True}

    day: DayQualifier
    slot: TimeSlot
    reading: MealReading

    @model_validator(mode="after")
    def validate_combination(self) -> "ConditionType":
        """Reject future readings and slot/reading pairs with no measurement."""
        if self.day is DayQualifier.NEXT_DAY:
            raise ValueError("a condition cannot read a next-day measurement")
        if (self.slot, self.reading) not in MEASUREMENT_FOR_CONDITION:
            raise ValueError(
                f"{self.reading.value} is not measured for {self.slot.value}"
            )
        return self

    @property
    def measurement_slot(self) -> MeasurementSlot:
        return MEASUREMENT_FOR_CONDITION[(self.slot, self.reading)]

    def describe(self) -> str:
        return (
            f"{_DAY_LABELS[self.day]} "
            f"{_MEASUREMENT_LABELS[self.measurement_slot]} glucose"
        )


class TargetSlot(BaseModel):
    """Which dose occasion a rule's delta applies to."""

    model_config = {"frozen": True}

    day: DayQualifier
    slot: TimeSlot

    def resolve_date(self, anchor: date) -> date:
        return anchor + timedelta(days=self.day.offset_days)

    def describe(self) -> str:
        return f"{_DAY_LABELS[self.day]} {self.slot.value.lower()} dose"


# ── Domain records ───────────────────────────────────────────

def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Aware timestamps are converted to UTC and stored without tzinfo."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class AdjustmentRule(BaseModel):
    """A validated, user-owned conditional dosing instruction."""

    model_config = {"frozen": True}

    id: str
    user_id: str
    name: str = Field(min_length=1)
    time_slot: TimeSlot
    condition: ConditionType
    threshold: int = Field(ge=THRESHOLD_MIN_MGDL, strict=True)
    comparison: Comparison
    adjustment_amount: int = Field(
        ge=ADJUSTMENT_MIN_UNITS, le=ADJUSTMENT_MAX_UNITS, strict=True
    )
    target: TargetSlot
    preset_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("created_at")
    @classmethod
    def created_at_as_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(value)


class StoredRule(BaseModel):
    """An adjustment rule row as persisted, before normalization."""

    model_config = {"from_attributes": True}

    id: str
    user_id: str
    name: str
    time_slot: str
    condition_type: str
    threshold: int
    comparison: str
    adjustment_amount: int
    target_time_slot: str
    preset_id: Optional[str] = None
    created_at: Optional[datetime] = None


class InsulinPreset(BaseModel):
    """A named insulin product carrying optional per-slot default units."""

    model_config = {"frozen": True}

    id: str
    user_id: str
    name: str
    sort_order: int = 0
    is_active: bool = True
    morning_units: Optional[float] = Field(default=None, ge=0, le=PRESET_MAX_UNITS)
    noon_units: Optional[float] = Field(default=None, ge=0, le=PRESET_MAX_UNITS)
    evening_units: Optional[float] = Field(default=None, ge=0, le=PRESET_MAX_UNITS)
    bedtime_units: Optional[float] = Field(default=None, ge=0, le=PRESET_MAX_UNITS)
    created_at: Optional[datetime] = None

    @field_validator(
        "morning_units", "noon_units", "evening_units", "bedtime_units"
    )
    @classmethod
    def keep_one_decimal(cls, value: Optional[float]) -> Optional[float]:
        if value is None:
            return None
        return round(value, DOSE_DECIMAL_PLACES)

    @field_validator("created_at")
    @classmethod
    def created_at_as_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(value)

    def units_for(self, slot: TimeSlot) -> Optional[float]:
        return {
            TimeSlot.MORNING: self.morning_units,
            TimeSlot.NOON: self.noon_units,
            TimeSlot.EVENING: self.evening_units,
            TimeSlot.BEDTIME: self.bedtime_units,
        }[slot]


class GlucoseEntry(BaseModel):
    """One blood glucose measurement."""

    model_config = {"frozen": True}

    id: str
    user_id: str
    date: date
    time_slot: MeasurementSlot
    glucose_level: int = Field(ge=GLUCOSE_MIN_MGDL, le=GLUCOSE_MAX_MGDL)
    note: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("created_at")
    @classmethod
    def created_at_as_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(value)


GlucoseLookup = Callable[[str, date, MeasurementSlot], Optional[GlucoseEntry]]


class EvaluationContext(BaseModel):
    """Immutable snapshot of everything one evaluation reads."""

    model_config = {"frozen": True}

    rules: tuple[AdjustmentRule, ...] = ()
    presets: tuple[InsulinPreset, ...] = ()
    basal_defaults: dict[TimeSlot, float] = Field(default_factory=dict)
    glucose_entries: tuple[GlucoseEntry, ...] = ()
    skipped_rule_ids: tuple[str, ...] = ()

    def get_glucose(
        self, user_id: str, day: date, slot: MeasurementSlot
    ) -> Optional[GlucoseEntry]:
        """Return the most recently created entry for (user, day, slot)."""
        matches = [
            (index, entry)
            for index, entry in enumerate(self.glucose_entries)
            if entry.user_id == user_id
            and entry.date == day
            and entry.time_slot is slot
        ]
        if not matches:
            return None
        _, latest = max(
            matches,
            key=lambda pair: (pair[1].created_at or datetime.min, pair[0]),
        )
        return latest

    def basal_default(self, slot: TimeSlot) -> float:
        return self.basal_defaults.get(slot, 0.0)


# ── Engine input / output ────────────────────────────────────

class DoseRequest(BaseModel):
    """A glucose reading just entered, for which a dose is suggested."""

    user_id: str
    date: date
    entered_slot: MeasurementSlot
    glucose_value: int = Field(ge=GLUCOSE_MIN_MGDL, le=GLUCOSE_MAX_MGDL)


class FiredRule(BaseModel):
    """A rule that matched, with what it read and what it changes."""

    rule_id: str
    name: str
    time_slot: TimeSlot
    condition_description: str
    measured_value: int
    threshold: int
    comparison: Comparison
    adjustment_amount: int
    target_date: date
    target_slot: TimeSlot
    preset_name: Optional[str] = None


class RecommendedDose(BaseModel):
    """Composed dose for one (target date, target slot) pair."""

    target_date: date
    target_slot: TimeSlot
    base_dose: float
    fired_rules: list[FiredRule] = Field(default_factory=list)
    delta: int = 0
    final_dose: float


class DoseEvaluation(BaseModel):
    """Full engine result: the dose to pre-fill plus every other target group."""

    primary: RecommendedDose
    groups: list[RecommendedDose]
    fired_rules: list[FiredRule]
    skipped_rule_ids: list[str] = Field(default_factory=list)
