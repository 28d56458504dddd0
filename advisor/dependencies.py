"""
advisor/dependencies.py

FastAPI dependency providers.
"""

from advisor.services.repository import RuleRepository


def get_repository() -> RuleRepository:
    """MySQL-backed repository; imported lazily so the engine stays DB-free."""
    from db.repository import SqlRuleRepository

    return SqlRuleRepository()
