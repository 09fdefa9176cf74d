"""
Declarative base, id column type and the status column type for all models.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import BigInteger, DateTime, Integer, String, func
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from shared.config.constants import normalize_status


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


# BIGINT everywhere except SQLite, where only INTEGER PRIMARY KEY autoincrements
BigIntId = BigInteger().with_variant(Integer(), "sqlite")


class StatusType(TypeDecorator):
    """
    Status column stored as its canonical string.

    Legacy spellings ("preparing", "completed", "canceled", ...) are mapped onto
    the enum both when written and when read, so rows written by older clients
    load as proper enum members.
    """

    impl = String(20)
    cache_ok = True

    def __init__(self, enum_cls: type[Enum], *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.enum_cls = enum_cls

    def process_bind_param(self, value: Any, dialect: Dialect) -> str | None:
        member = normalize_status(self.enum_cls, value)
        return member.value if member is not None else None

    def process_result_value(self, value: Any, dialect: Dialect) -> Enum | None:
        return normalize_status(self.enum_cls, value)


class CreatedAtMixin:
    """``created_at`` set by the database on insert."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={getattr(self, 'id', None)})>"
