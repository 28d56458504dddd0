"""
scripts/seed_rules.py

Registers the default adjustment rule set for a user.
- Bedtime dose: overnight and morning readings
- Breakfast / lunch / dinner doses: 1h post-meal readings adjust the next day

Usage: python -m scripts.seed_rules <user_id>
"""

import argparse
import asyncio

import structlog

from advisor.errors import RuleValidationError
from advisor.schemas import AdjustmentRule
from advisor.services.legacy import canonical_columns
from advisor.services.rules import validate_rule

logger = structlog.get_logger(__name__)


def _rule(
    name: str,
    time_slot: str,
    condition: tuple[str, str, str],
    threshold: int,
    comparison: str,
    amount: int,
    target: tuple[str, str],
) -> dict:
    day, slot, reading = condition
    target_day, target_slot = target
    return {
        "name": name,
        "time_slot": time_slot,
        "condition": {"day": day, "slot": slot, "reading": reading},
        "threshold": threshold,
        "comparison": comparison,
        "adjustment_amount": amount,
        "target": {"day": target_day, "slot": target_slot},
    }


DEFAULT_RULES: list[dict] = [
    # Bedtime dose
    _rule("Overnight low", "Bedtime", ("PreviousDay", "Bedtime", "Overnight"),
          70, "LessOrEqual", -2, ("SameDay", "Bedtime")),
    _rule("Morning low", "Morning", ("SameDay", "Morning", "BeforeMeal"),
          70, "LessOrEqual", -1, ("SameDay", "Bedtime")),
    _rule("Morning high", "Morning", ("SameDay", "Morning", "BeforeMeal"),
          100, "GreaterOrEqual", 2, ("SameDay", "Bedtime")),
    # Post-meal, next day's same meal
    _rule("High after breakfast", "Morning", ("SameDay", "Morning", "AfterMeal1h"),
          140, "GreaterOrEqual", 2, ("NextDay", "Morning")),
    _rule("Low after breakfast", "Morning", ("SameDay", "Morning", "AfterMeal1h"),
          80, "LessOrEqual", -1, ("NextDay", "Morning")),
    _rule("High after lunch", "Noon", ("SameDay", "Noon", "AfterMeal1h"),
          140, "GreaterOrEqual", 2, ("NextDay", "Noon")),
    _rule("Low after lunch", "Noon", ("SameDay", "Noon", "AfterMeal1h"),
          80, "LessOrEqual", -1, ("NextDay", "Noon")),
    _rule("High after dinner", "Evening", ("SameDay", "Evening", "AfterMeal1h"),
          140, "GreaterOrEqual", 2, ("NextDay", "Evening")),
    _rule("Low after dinner", "Evening", ("SameDay", "Evening", "AfterMeal1h"),
          80, "LessOrEqual", -1, ("NextDay", "Evening")),
]


def build_default_rules(user_id: str) -> list[AdjustmentRule]:
    """Validate the default rule set for a user."""
    return [
        validate_rule({**template, "user_id": user_id}) for template in DEFAULT_RULES
    ]


async def seed_adjustment_rules(user_id: str) -> int:
    from db.models import AdjustmentRuleRecord, AsyncSessionLocal

    rules = build_default_rules(user_id)
    async with AsyncSessionLocal() as session:
        for rule in rules:
            session.add(
                AdjustmentRuleRecord(
                    id=rule.id,
                    user_id=rule.user_id,
                    name=rule.name,
                    threshold=rule.threshold,
                    adjustment_amount=rule.adjustment_amount,
                    preset_id=rule.preset_id,
                    **canonical_columns(rule),
                )
            )
        await session.commit()
    logger.info("default_rules_seeded", user_id=user_id, rule_count=len(rules))
    return len(rules)


def main() -> None:
    parser = argparse.ArgumentParser(description="Register default adjustment rules")
    parser.add_argument("user_id")
    args = parser.parse_args()
    try:
        asyncio.run(seed_adjustment_rules(args.user_id))
    except RuleValidationError as exc:
        logger.error("default_rules_invalid", errors=exc.errors)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
