"""
advisor/routers/rules.py

POST /rules/validate.
Runs creation-time validation so the storage layer only ever persists
canonical, well-formed rules.
"""

from typing import Any

import structlog
from fastapi import APIRouter, Body, HTTPException

from advisor.errors import RuleValidationError
from advisor.schemas import AdjustmentRule
from advisor.services.rules import validate_rule

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/rules", tags=["rules"])


@router.post("/validate", response_model=AdjustmentRule)
async def validate(payload: dict[str, Any] = Body(...)) -> AdjustmentRule:
    """Return the normalized rule, or 422 with field-level reasons."""
    try:
        return validate_rule(payload)
    except RuleValidationError as exc:
        logger.info(
            "rule_rejected",
            user_id=payload.get("user_id"),
            fields=[error["field"] for error in exc.errors],
        )
        raise HTTPException(status_code=422, detail=exc.errors) from exc
