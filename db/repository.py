"""
db/repository.py

MySQL-backed implementation of the RuleRepository interface.
Uses SQLAlchemy 2.0 async sessions; one session per call so lookups can run
concurrently. Rows are converted to read-only domain models; glucose and
preset rows that fail validation are logged and skipped.
"""

from datetime import date
from typing import Optional

import structlog
from pydantic import ValidationError
from sqlalchemy import select

from advisor.schemas import (
    GlucoseEntry,
    InsulinPreset,
    MeasurementSlot,
    StoredRule,
    TimeSlot,
)
from db.models import (
    AdjustmentRuleRecord,
    AsyncSessionLocal,
    BasalDoseSetting,
    GlucoseEntryRecord,
    InsulinPresetRecord,
)

logger = structlog.get_logger(__name__)


def _units(value) -> Optional[float]:
    return None if value is None else float(value)


class SqlRuleRepository:
    """Reads rules, measurements, presets and basal doses for one user."""

    async def list_rules(self, user_id: str) -> list[StoredRule]:
        try:
            async with AsyncSessionLocal() as session:
                result = await session.execute(
                    select(AdjustmentRuleRecord)
                    .where(AdjustmentRuleRecord.user_id == user_id)
                    .order_by(AdjustmentRuleRecord.created_at.desc())
                )
                records = result.scalars().all()
        except Exception as exc:
            logger.error(
                "repository_query_failed",
                query="list_rules",
                user_id=user_id,
                error=str(exc),
            )
            raise
        return [StoredRule.model_validate(record) for record in records]

    async def get_glucose_entry(
        self, user_id: str, day: date, slot: MeasurementSlot
    ) -> Optional[GlucoseEntry]:
        """Most recently created entry for (user, day, slot), if any."""
        try:
            async with AsyncSessionLocal() as session:
                result = await session.execute(
                    select(GlucoseEntryRecord)
                    .where(
                        GlucoseEntryRecord.user_id == user_id,
                        GlucoseEntryRecord.entry_date == day,
                        GlucoseEntryRecord.time_slot == slot.value,
                    )
                    .order_by(GlucoseEntryRecord.created_at.desc())
                    .limit(1)
                )
                record = result.scalar_one_or_none()
        except Exception as exc:
            logger.error(
                "repository_query_failed",
                query="get_glucose_entry",
                user_id=user_id,
                error=str(exc),
            )
            raise
        if record is None:
            return None
        try:
            return GlucoseEntry(
                id=record.id,
                user_id=record.user_id,
                date=record.entry_date,
                time_slot=record.time_slot,
                glucose_level=record.glucose_level,
                note=record.note,
                created_at=record.created_at,
            )
        except ValidationError as exc:
            logger.warning(
                "stored_row_invalid",
                table="glucose_entries",
                row_id=record.id,
                error=str(exc),
            )
            return None

    async def list_presets(self, user_id: str) -> list[InsulinPreset]:
        try:
            async with AsyncSessionLocal() as session:
                result = await session.execute(
                    select(InsulinPresetRecord)
                    .where(
                        InsulinPresetRecord.user_id == user_id,
                        InsulinPresetRecord.is_active.is_(True),
                    )
                    .order_by(
                        InsulinPresetRecord.sort_order,
                        InsulinPresetRecord.created_at,
                    )
                )
                records = result.scalars().all()
        except Exception as exc:
            logger.error(
                "repository_query_failed",
                query="list_presets",
                user_id=user_id,
                error=str(exc),
            )
            raise
        presets: list[InsulinPreset] = []
        for record in records:
            try:
                presets.append(
                    InsulinPreset(
                        id=record.id,
                        user_id=record.user_id,
                        name=record.name,
                        sort_order=record.sort_order,
                        is_active=record.is_active,
                        morning_units=_units(record.default_breakfast_units),
                        noon_units=_units(record.default_lunch_units),
                        evening_units=_units(record.default_dinner_units),
                        bedtime_units=_units(record.default_bedtime_units),
                        created_at=record.created_at,
                    )
                )
            except ValidationError as exc:
                logger.warning(
                    "stored_row_invalid",
                    table="insulin_presets",
                    row_id=record.id,
                    error=str(exc),
                )
        return presets

    async def get_basal_default(self, user_id: str, slot: TimeSlot) -> float:
        """Configured flat basal dose for the slot, 0 when unset."""
        try:
            async with AsyncSessionLocal() as session:
                result = await session.execute(
                    select(BasalDoseSetting.units).where(
                        BasalDoseSetting.user_id == user_id,
                        BasalDoseSetting.time_slot == slot.value,
                    )
                )
                units = result.scalars().first()
        except Exception as exc:
            logger.error(
                "repository_query_failed",
                query="get_basal_default",
                user_id=user_id,
                error=str(exc),
            )
            raise
        return _units(units) or 0.0
