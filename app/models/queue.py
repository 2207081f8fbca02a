"""Content generation work queue models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, CuidPrimaryKeyMixin, CuidString, TimestampMixin


class QueueItem(Base, CuidPrimaryKeyMixin, TimestampMixin):
    """A generation task; status moves queued -> processing -> terminal."""

    __tablename__ = "content_generation_queue"
    __table_args__ = (
        # At most one outstanding item per target.
        Index(
            "uq_content_generation_queue_outstanding_target",
            "target_key",
            unique=True,
            postgresql_where=text("status IN ('queued', 'processing')"),
        ),
        Index(
            "ix_content_generation_queue_pull_order",
            "status",
            "priority",
            "created_at",
        ),
    )

    content_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    location_slug: Mapped[str | None] = mapped_column(String(200), nullable=True)
    industry_slug: Mapped[str | None] = mapped_column(String(200), nullable=True)
    target_key: Mapped[str] = mapped_column(String(450), nullable=False, index=True)

    status: Mapped[str] = mapped_column(String(20), default="queued", nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=5, nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    published_ref: Mapped[str | None] = mapped_column(CuidString(), nullable=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<QueueItem {self.id} {self.target_key} ({self.status})>"
