"""create seo seed, queue, generation log and page tables

Revision ID: 3f9a1c7e2b40
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f9a1c7e2b40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _page_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("slug", sa.String(length=450), nullable=False),
        sa.Column("headline", sa.String(length=500), nullable=False),
        sa.Column("subheadline", sa.Text(), nullable=True),
        sa.Column("meta_title", sa.String(length=200), nullable=False),
        sa.Column("meta_description", sa.String(length=400), nullable=False),
        sa.Column(
            "content",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column("status", sa.String(length=20), server_default="draft", nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    ]


def upgrade() -> None:
    op.create_table(
        "seo_seed_items",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("dimension", sa.String(length=20), nullable=False),
        sa.Column("slug", sa.String(length=200), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("priority", sa.Integer(), server_default="5", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("dimension", "slug", name="uq_seo_seed_items_dimension_slug"),
    )
    op.create_index(
        "ix_seo_seed_items_dimension_active_priority",
        "seo_seed_items",
        ["dimension", "is_active", "priority"],
        unique=False,
    )

    op.create_table(
        "content_generation_queue",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("content_type", sa.String(length=20), nullable=False),
        sa.Column("location_slug", sa.String(length=200), nullable=True),
        sa.Column("industry_slug", sa.String(length=200), nullable=True),
        sa.Column("target_key", sa.String(length=450), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="queued", nullable=False),
        sa.Column("priority", sa.Integer(), server_default="5", nullable=False),
        sa.Column("attempts", sa.Integer(), server_default="0", nullable=False),
        sa.Column("published_ref", sa.String(length=32), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_content_generation_queue_content_type",
        "content_generation_queue",
        ["content_type"],
        unique=False,
    )
    op.create_index(
        "ix_content_generation_queue_target_key",
        "content_generation_queue",
        ["target_key"],
        unique=False,
    )
    op.create_index(
        "ix_content_generation_queue_pull_order",
        "content_generation_queue",
        ["status", "priority", "created_at"],
        unique=False,
    )
    op.create_index(
        "uq_content_generation_queue_outstanding_target",
        "content_generation_queue",
        ["target_key"],
        unique=True,
        postgresql_where=sa.text("status IN ('queued', 'processing')"),
    )

    op.create_table(
        "content_generation_logs",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("queue_item_id", sa.String(length=32), nullable=True),
        sa.Column("content_type", sa.String(length=20), nullable=False),
        sa.Column("target_slug", sa.String(length=450), nullable=False),
        sa.Column("ai_model", sa.String(length=100), nullable=True),
        sa.Column("prompt_length", sa.Integer(), server_default="0", nullable=False),
        sa.Column("response_length", sa.Integer(), server_default="0", nullable=False),
        sa.Column("duration_ms", sa.Integer(), server_default="0", nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("error_detail", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("queue_item_id", "content_type", "status", "created_at"):
        op.create_index(
            f"ix_content_generation_logs_{column}",
            "content_generation_logs",
            [column],
            unique=False,
        )

    op.create_table(
        "seo_location_pages",
        *_page_columns(),
        sa.Column("city_name", sa.String(length=255), nullable=False),
        sa.Column("region", sa.String(length=255), nullable=True),
        sa.Column("local_description", sa.Text(), nullable=False),
        sa.Column(
            "local_benefits",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug", name="uq_seo_location_pages_slug"),
    )

    op.create_table(
        "seo_industry_pages",
        *_page_columns(),
        sa.Column("industry_name", sa.String(length=255), nullable=False),
        sa.Column("problem_statement", sa.Text(), nullable=False),
        sa.Column("solution_description", sa.Text(), nullable=False),
        sa.Column(
            "benefits",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug", name="uq_seo_industry_pages_slug"),
    )

    op.create_table(
        "seo_combo_pages",
        *_page_columns(),
        sa.Column("location_slug", sa.String(length=200), nullable=False),
        sa.Column("industry_slug", sa.String(length=200), nullable=False),
        sa.Column("city_name", sa.String(length=255), nullable=False),
        sa.Column("industry_name", sa.String(length=255), nullable=False),
        sa.Column("intro", sa.Text(), nullable=False),
        sa.Column("why_need", sa.Text(), nullable=False),
        sa.Column(
            "benefits",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug", name="uq_seo_combo_pages_slug"),
        sa.UniqueConstraint(
            "location_slug",
            "industry_slug",
            name="uq_seo_combo_pages_location_industry",
        ),
    )
    op.create_index(
        "ix_seo_combo_pages_location_slug",
        "seo_combo_pages",
        ["location_slug"],
        unique=False,
    )
    op.create_index(
        "ix_seo_combo_pages_industry_slug",
        "seo_combo_pages",
        ["industry_slug"],
        unique=False,
    )
    for table in ("seo_location_pages", "seo_industry_pages", "seo_combo_pages"):
        op.create_index(f"ix_{table}_status", table, ["status"], unique=False)


def downgrade() -> None:
    for table in ("seo_combo_pages", "seo_industry_pages", "seo_location_pages"):
        op.drop_index(f"ix_{table}_status", table_name=table)
    op.drop_index("ix_seo_combo_pages_industry_slug", table_name="seo_combo_pages")
    op.drop_index("ix_seo_combo_pages_location_slug", table_name="seo_combo_pages")
    op.drop_table("seo_combo_pages")
    op.drop_table("seo_industry_pages")
    op.drop_table("seo_location_pages")

    for column in ("created_at", "status", "content_type", "queue_item_id"):
        op.drop_index(
            f"ix_content_generation_logs_{column}",
            table_name="content_generation_logs",
        )
    op.drop_table("content_generation_logs")

    op.drop_index(
        "uq_content_generation_queue_outstanding_target",
        table_name="content_generation_queue",
    )
    op.drop_index("ix_content_generation_queue_pull_order", table_name="content_generation_queue")
    op.drop_index("ix_content_generation_queue_target_key", table_name="content_generation_queue")
    op.drop_index(
        "ix_content_generation_queue_content_type",
        table_name="content_generation_queue",
    )
    op.drop_table("content_generation_queue")

    op.drop_index("ix_seo_seed_items_dimension_active_priority", table_name="seo_seed_items")
    op.drop_table("seo_seed_items")
