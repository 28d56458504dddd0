"""
advisor/main.py

FastAPI application entry point for the dose advisor service.
Registers the dose and rule routers.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI

from advisor.routers.dose import router as dose_router
from advisor.routers.rules import router as rules_router
from config import settings

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle: startup and shutdown."""
    logger.info("advisor_starting", title=settings.app_title)
    yield
    logger.info("advisor_shutting_down")


app = FastAPI(
    title=settings.app_title,
    description="Adjustment rule evaluation and insulin dose suggestions",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(dose_router)
app.include_router(rules_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
