"""
advisor/services/repository.py

Collaborator interface the engine's data is fetched through.
Implemented against MySQL in db/repository.py; tests supply in-memory fakes.
"""

from datetime import date
from typing import Optional, Protocol

from advisor.schemas import (
    GlucoseEntry,
    InsulinPreset,
    MeasurementSlot,
    StoredRule,
    TimeSlot,
)


class RuleRepository(Protocol):
    """Read access to one user's rules, measurements, presets and basal doses."""

    async def list_rules(self, user_id: str) -> list[StoredRule]:
        ...

    async def get_glucose_entry(
        self, user_id: str, day: date, slot: MeasurementSlot
    ) -> Optional[GlucoseEntry]:
        ...

    async def list_presets(self, user_id: str) -> list[InsulinPreset]:
        """Active presets ordered by sort order."""
        ...

    async def get_basal_default(self, user_id: str, slot: TimeSlot) -> float:
        ...
