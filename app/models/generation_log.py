"""Append-only log of AI generation attempts."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, CuidPrimaryKeyMixin, CuidString


class GenerationLogEntry(Base, CuidPrimaryKeyMixin):
    """One AI invocation attempt. Never updated after insert."""

    __tablename__ = "content_generation_logs"

    queue_item_id: Mapped[str | None] = mapped_column(CuidString(), nullable=True, index=True)
    content_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    target_slug: Mapped[str] = mapped_column(String(450), nullable=False)
    ai_model: Mapped[str | None] = mapped_column(String(100), nullable=True)

    prompt_length: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    response_length: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    duration_ms: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    status: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    error_detail: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<GenerationLogEntry {self.content_type}:{self.target_slug} ({self.status})>"
