"""
advisor/routers/dose.py

POST /dose/suggest and POST /dose/explain.
Loads the user's snapshot, then runs the pure rule engine over it.
"""

import structlog
from fastapi import APIRouter, Depends

from advisor.dependencies import get_repository
from advisor.schemas import DoseEvaluation, DoseRequest, FiredRule
from advisor.services.engine import evaluate, explain_rules
from advisor.services.repository import RuleRepository
from advisor.services.snapshot import load_snapshot

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/dose", tags=["dose"])


@router.post("/suggest", response_model=DoseEvaluation)
async def suggest(
    request: DoseRequest,
    repository: RuleRepository = Depends(get_repository),
) -> DoseEvaluation:
    """
    Suggest the dose to pre-fill after a glucose reading is entered.

    The primary group is the slot being entered, same day; groups for other
    targets (e.g. a rule that adjusts tomorrow's dose) are returned as well.
    """
    logger.info(
        "dose_requested",
        user_id=request.user_id,
        date=request.date.isoformat(),
        entered_slot=request.entered_slot.value,
        glucose=request.glucose_value,
    )
    context = await load_snapshot(repository, request.user_id, request.date)
    return evaluate(
        request.user_id,
        request.date,
        request.entered_slot,
        request.glucose_value,
        context,
    )


@router.post("/explain", response_model=list[FiredRule])
async def explain(
    request: DoseRequest,
    repository: RuleRepository = Depends(get_repository),
) -> list[FiredRule]:
    """List the rules that matched, for "why this dose" display."""
    context = await load_snapshot(repository, request.user_id, request.date)
    return explain_rules(
        request.user_id,
        request.date,
        request.entered_slot,
        request.glucose_value,
        context,
    )
