"""
advisor/services/snapshot.py

Fetches everything an evaluation needs before the engine runs.
Stored rules are normalized here; rules holding values outside the current
enumerations are skipped and reported instead of being misinterpreted.
"""

import asyncio
from datetime import date
from typing import Iterable

import structlog

from advisor.errors import RuleValidationError, UnknownEnumValueError
from advisor.schemas import AdjustmentRule, EvaluationContext, StoredRule, TimeSlot
from advisor.services.legacy import parse_stored_rule
from advisor.services.repository import RuleRepository
from advisor.services.resolver import measurement_date

logger = structlog.get_logger(__name__)


def normalize_rules(
    stored_rules: Iterable[StoredRule],
) -> tuple[list[AdjustmentRule], list[str]]:
    """Parse stored rows, returning (usable rules, ids of skipped rows)."""
    rules: list[AdjustmentRule] = []
    skipped: list[str] = []
    for stored in stored_rules:
        try:
            rules.append(parse_stored_rule(stored))
        except (UnknownEnumValueError, RuleValidationError) as exc:
            logger.warning(
                "rule_needs_normalization",
                rule_id=stored.id,
                user_id=stored.user_id,
                error=str(exc),
            )
            skipped.append(stored.id)
    return rules, skipped


async def load_snapshot(
    repository: RuleRepository,
    user_id: str,
    anchor_date: date,
) -> EvaluationContext:
    """
    Build the immutable EvaluationContext for one user and anchor date.

    Only the measurements referenced by the user's rules are looked up,
    concurrently.
    """
    stored_rules, presets = await asyncio.gather(
        repository.list_rules(user_id),
        repository.list_presets(user_id),
    )
    rules, skipped = normalize_rules(stored_rules)

    lookups = sorted(
        {
            (
                measurement_date(rule.condition, anchor_date),
                rule.condition.measurement_slot,
            )
            for rule in rules
        }
    )
    entries = await asyncio.gather(
        *(repository.get_glucose_entry(user_id, day, slot) for day, slot in lookups)
    )
    slots = list(TimeSlot)
    basal_doses = await asyncio.gather(
        *(repository.get_basal_default(user_id, slot) for slot in slots)
    )

    logger.info(
        "snapshot_loaded",
        user_id=user_id,
        anchor_date=anchor_date.isoformat(),
        rule_count=len(rules),
        skipped_count=len(skipped),
        measurement_count=sum(entry is not None for entry in entries),
    )

    return EvaluationContext(
        rules=tuple(rules),
        presets=tuple(presets),
        basal_defaults=dict(zip(slots, basal_doses)),
        glucose_entries=tuple(entry for entry in entries if entry is not None),
        skipped_rule_ids=tuple(skipped),
    )
