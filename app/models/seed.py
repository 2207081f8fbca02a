"""SEO seed data models (locations and industries)."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Boolean, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, CuidPrimaryKeyMixin, TimestampMixin


class SeedItem(Base, CuidPrimaryKeyMixin, TimestampMixin):
    """One entry of a seed dimension; soft-deactivated, never deleted."""

    __tablename__ = "seo_seed_items"
    __table_args__ = (
        UniqueConstraint("dimension", "slug", name="uq_seo_seed_items_dimension_slug"),
        Index("ix_seo_seed_items_dimension_active_priority", "dimension", "is_active", "priority"),
    )

    dimension: Mapped[str] = mapped_column(String(20), nullable=False)
    slug: Mapped[str] = mapped_column(String(200), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=5, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # `metadata` is reserved on declarative classes.
    seed_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        default=dict,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<SeedItem {self.dimension}:{self.slug} (p{self.priority})>"
