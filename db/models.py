"""
db/models.py

SQLAlchemy 2.0 async ORM model definitions.
Maps the tables the dose advisor reads: adjustment rules, glucose entries,
insulin presets and per-slot basal doses.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from config import settings

# Async engine with connection pool settings
engine = create_async_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
)

AsyncSessionLocal = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class AdjustmentRuleRecord(Base):
    """User-defined conditional dose adjustment, enumerations stored as text."""

    __tablename__ = "adjustment_rules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    time_slot: Mapped[str] = mapped_column(String(32), nullable=False)
    condition_type: Mapped[str] = mapped_column(String(64), nullable=False)
    threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    comparison: Mapped[str] = mapped_column(String(32), nullable=False)
    adjustment_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    target_time_slot: Mapped[str] = mapped_column(String(64), nullable=False)
    preset_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class GlucoseEntryRecord(Base):
    """One blood glucose measurement."""

    __tablename__ = "glucose_entries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    entry_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    time_slot: Mapped[str] = mapped_column(String(32), nullable=False)
    glucose_level: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )


class InsulinPresetRecord(Base):
    """Named insulin product with optional per-slot default units."""

    __tablename__ = "insulin_presets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    default_breakfast_units: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 1), nullable=True
    )
    default_lunch_units: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 1), nullable=True
    )
    default_dinner_units: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 1), nullable=True
    )
    default_bedtime_units: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 1), nullable=True
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )


class BasalDoseSetting(Base):
    """Flat per-slot basal dose used when no preset covers a slot."""

    __tablename__ = "basal_dose_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    time_slot: Mapped[str] = mapped_column(String(32), nullable=False)
    units: Mapped[Decimal] = mapped_column(Numeric(5, 1), nullable=False, default=0)
