"""Declarative base, column types and mixins shared by the pipeline tables."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import String, TypeDecorator

from app.core.ids import generate_cuid


class CuidString(TypeDecorator):
    """32-char string column holding CUID identifiers (pk or reference)."""

    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else str(value)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models.

    `dict`/`list` annotations map to JSONB, which every seed, page and
    content payload column uses.
    """

    type_annotation_map = {
        dict[str, Any]: JSONB,
        list[Any]: JSONB,
    }


class CuidPrimaryKeyMixin:
    """String primary key generated client-side."""

    id: Mapped[str] = mapped_column(CuidString(), primary_key=True, default=generate_cuid)


class CreatedAtMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class TimestampMixin(CreatedAtMixin):
    """created_at plus an updated_at bumped on every ORM update."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
