"""
DocTree Database Base — SQLAlchemy declarative base and timestamp mixin.

Provides:
- Base: SQLAlchemy declarative base for all DocTree models
- TimestampMixin: created_at, updated_at
- utcnow / next_timestamp: timestamp helpers shared by the node stores
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all DocTree models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def next_timestamp(previous: Optional[datetime]) -> datetime:
    """Current UTC time, strictly after ``previous``."""
    now = utcnow()
    if previous is not None:
        previous = as_utc(previous)
        if now <= previous:
            now = previous + timedelta(microseconds=1)
    return now


class TimestampMixin:
    """Adds created_at / updated_at columns. Stores set updated_at explicitly."""
    created_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
