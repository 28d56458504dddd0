"""
scripts/normalize_rules.py

Rewrites stored adjustment rules into canonical encodings.
Legacy vocabulary (夜 -> 夕, 夜間 -> 眠前, 以下, 前日の眠前, ...) is parsed and
written back as canonical codes; rows that cannot be parsed are reported and
left untouched for manual review.

Usage: python -m scripts.normalize_rules [--dry-run]
"""

import argparse
import asyncio
from typing import Iterable

import structlog
from sqlalchemy import select

from advisor.errors import RuleValidationError, UnknownEnumValueError
from advisor.schemas import StoredRule
from advisor.services.legacy import canonical_columns, parse_stored_rule

logger = structlog.get_logger(__name__)


def normalize_records(records: Iterable) -> dict[str, int]:
    """Update rule records in place; returns counts per outcome."""
    counts = {"updated": 0, "unchanged": 0, "failed": 0}
    for record in records:
        try:
            rule = parse_stored_rule(StoredRule.model_validate(record))
        except (UnknownEnumValueError, RuleValidationError) as exc:
            logger.warning(
                "rule_normalization_failed",
                rule_id=record.id,
                error=str(exc),
            )
            counts["failed"] += 1
            continue

        changes = {
            column: value
            for column, value in canonical_columns(rule).items()
            if getattr(record, column) != value
        }
        if not changes:
            counts["unchanged"] += 1
            continue
        for column, value in changes.items():
            setattr(record, column, value)
        logger.info("rule_normalized", rule_id=record.id, columns=sorted(changes))
        counts["updated"] += 1
    return counts


async def _run(dry_run: bool) -> dict[str, int]:
    from db.models import AdjustmentRuleRecord, AsyncSessionLocal

    async with AsyncSessionLocal() as session:
        result = await session.execute(select(AdjustmentRuleRecord))
        counts = normalize_records(result.scalars().all())
        if dry_run:
            await session.rollback()
        else:
            await session.commit()
    logger.info("rule_normalization_complete", dry_run=dry_run, **counts)
    return counts


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Rewrite stored adjustment rules into canonical encodings"
    )
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()
    counts = asyncio.run(_run(args.dry_run))
    if counts["failed"]:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
