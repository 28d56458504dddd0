"""
advisor/services/resolver.py

Measurement Resolver.
Translates a rule's condition into a concrete (user, date, measurement slot)
lookup and returns the stored glucose value, or None when nothing was logged.
"""

from datetime import date, timedelta
from typing import Optional

import structlog

from advisor.schemas import ConditionType, GlucoseLookup

logger = structlog.get_logger(__name__)


def measurement_date(condition: ConditionType, anchor_date: date) -> date:
    """Calendar date the condition reads, relative to the entry being recorded."""
    return anchor_date + timedelta(days=condition.day.offset_days)


def resolve_measurement(
    condition: ConditionType,
    anchor_date: date,
    lookup: GlucoseLookup,
    user_id: str,
) -> Optional[int]:
    """
    Resolve the glucose value a condition refers to.

    Returns None if no matching measurement exists; a rule whose referenced
    data is missing simply does not fire.
    """
    day = measurement_date(condition, anchor_date)
    entry = lookup(user_id, day, condition.measurement_slot)
    if entry is None:
        logger.debug(
            "measurement_missing",
            user_id=user_id,
            date=day.isoformat(),
            time_slot=condition.measurement_slot.value,
        )
        return None
    return entry.glucose_level
