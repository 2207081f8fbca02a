"""Published SEO page models (location, industry and combo pages)."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, CuidPrimaryKeyMixin, TimestampMixin


class PageMixin:
    """Columns shared by every generated page; `slug` is the sole identity."""

    slug: Mapped[str] = mapped_column(String(450), unique=True, nullable=False)
    headline: Mapped[str] = mapped_column(String(500), nullable=False)
    subheadline: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta_title: Mapped[str] = mapped_column(String(200), nullable=False)
    meta_description: Mapped[str] = mapped_column(String(400), nullable=False)

    # Full validated payload, including optional sections (faq, stats, ...).
    content: Mapped[dict[str, Any]] = mapped_column(default=dict, nullable=False)

    status: Mapped[str] = mapped_column(String(20), default="draft", nullable=False, index=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class LocationPage(Base, CuidPrimaryKeyMixin, TimestampMixin, PageMixin):
    """Landing page for one location."""

    __tablename__ = "seo_location_pages"

    city_name: Mapped[str] = mapped_column(String(255), nullable=False)
    region: Mapped[str | None] = mapped_column(String(255), nullable=True)
    local_description: Mapped[str] = mapped_column(Text, nullable=False)
    local_benefits: Mapped[list[Any]] = mapped_column(default=list, nullable=False)

    def __repr__(self) -> str:
        return f"<LocationPage {self.slug} ({self.status})>"


class IndustryPage(Base, CuidPrimaryKeyMixin, TimestampMixin, PageMixin):
    """Landing page for one industry."""

    __tablename__ = "seo_industry_pages"

    industry_name: Mapped[str] = mapped_column(String(255), nullable=False)
    problem_statement: Mapped[str] = mapped_column(Text, nullable=False)
    solution_description: Mapped[str] = mapped_column(Text, nullable=False)
    benefits: Mapped[list[Any]] = mapped_column(default=list, nullable=False)

    def __repr__(self) -> str:
        return f"<IndustryPage {self.slug} ({self.status})>"


class ComboPage(Base, CuidPrimaryKeyMixin, TimestampMixin, PageMixin):
    """Landing page for one industry in one location."""

    __tablename__ = "seo_combo_pages"
    __table_args__ = (
        UniqueConstraint(
            "location_slug",
            "industry_slug",
            name="uq_seo_combo_pages_location_industry",
        ),
    )

    location_slug: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    industry_slug: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    city_name: Mapped[str] = mapped_column(String(255), nullable=False)
    industry_name: Mapped[str] = mapped_column(String(255), nullable=False)
    intro: Mapped[str] = mapped_column(Text, nullable=False)
    why_need: Mapped[str] = mapped_column(Text, nullable=False)
    benefits: Mapped[list[Any]] = mapped_column(default=list, nullable=False)

    def __repr__(self) -> str:
        return f"<ComboPage {self.slug} ({self.status})>"
