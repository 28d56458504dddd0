"""
advisor/services/evaluator.py

Condition Evaluator: threshold comparison against a resolved measurement.
"""

import operator
from typing import Callable, Optional

from advisor.schemas import Comparison

_OPERATORS: dict[Comparison, Callable[[int, int], bool]] = {
    Comparison.LESS_OR_EQUAL: operator.le,
    Comparison.LESS: operator.lt,
    Comparison.GREATER_OR_EQUAL: operator.ge,
    Comparison.GREATER: operator.gt,
}


def condition_matches(
    value: Optional[int],
    threshold: int,
    comparison: Comparison,
) -> bool:
    """Return True when value compares to threshold as the rule requires."""
    if value is None:
        return False
    return _OPERATORS[comparison](value, threshold)
