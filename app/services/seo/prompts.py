"""Prompt builders for location, industry and combo pages."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from app.core.exceptions import InvalidTargetError
from app.services.seo.contracts import SeedRecord
from app.services.seo.targets import GenerationTarget

_COMMON_RULES = """Rules:
- Respond ONLY with one valid JSON object, no surrounding text.
- headline: at least 10 characters.
- meta_title: at most 70 characters.
- meta_description: at most 160 characters."""


def _context_lines(metadata: Mapping[str, Any], keys: tuple[str, ...]) -> str:
    lines = []
    for key in keys:
        value = metadata.get(key)
        if value in (None, ""):
            continue
        label = key.replace("_", " ").capitalize()
        lines.append(f"- {label}: {value}")
    return "\n".join(lines)


def build_location_prompt(location: SeedRecord) -> str:
    context = _context_lines(location.metadata, ("county", "region", "population"))
    return f"""Write SEO landing page content for businesses in "{location.name}".

Context:
- Audience: owners of local businesses of every type in {location.name}
- Tone: professional, helpful, locally relevant
{context}

Return this JSON structure:
{{
  "headline": "...",
  "subheadline": "...",
  "local_description": "2-3 paragraphs about the local business landscape",
  "local_benefits": [{{"title": "...", "description": "..."}}],
  "local_stats": {{"businesses_estimate": "...", "peak_times": "..."}},
  "faq": [{{"question": "...", "answer": "..."}}],
  "nearby_locations": ["..."],
  "meta_title": "...",
  "meta_description": "..."
}}

{_COMMON_RULES}
- local_benefits: at least 3 items."""


def build_industry_prompt(industry: SeedRecord) -> str:
    context = _context_lines(industry.metadata, ("type", "use_case"))
    return f"""Write SEO landing page content for "{industry.name}" businesses.

Context:
- Audience: {industry.name} owners and managers
- Tone: professional, helpful, industry-specific
{context}

Return this JSON structure:
{{
  "headline": "...",
  "subheadline": "...",
  "problem_statement": "2-3 paragraphs on the challenges this industry faces",
  "solution_description": "2-3 paragraphs on how the service solves them",
  "benefits": [{{"title": "...", "description": "..."}}],
  "use_cases": [{{"title": "...", "description": "..."}}],
  "faq": [{{"question": "...", "answer": "..."}}],
  "related_industries": ["..."],
  "meta_title": "...",
  "meta_description": "..."
}}

{_COMMON_RULES}
- benefits: at least 4 items."""


def build_combo_prompt(location: SeedRecord, industry: SeedRecord) -> str:
    context = "\n".join(
        part
        for part in (
            _context_lines(location.metadata, ("county", "region")),
            _context_lines(industry.metadata, ("type", "use_case")),
        )
        if part
    )
    return f"""Write SEO landing page content for "{industry.name}" in "{location.name}".

Context:
- Audience: {industry.name} owners in {location.name}
- Tone: professional, hyper-local and industry-specific
{context}

Return this JSON structure:
{{
  "headline": "...",
  "subheadline": "...",
  "intro": "2-3 paragraphs introducing the service for this industry and place",
  "why_need": "2-3 paragraphs on why local businesses of this type need it",
  "local_industry_context": "...",
  "benefits": [{{"title": "...", "description": "..."}}],
  "case_study": {{"business_name": "...", "challenge": "...", "solution": "...", "results": ["..."]}},
  "faq": [{{"question": "...", "answer": "..."}}],
  "cta_text": "...",
  "related_locations": ["..."],
  "related_industries": ["..."],
  "meta_title": "...",
  "meta_description": "..."
}}

{_COMMON_RULES}
- benefits: at least 3 items."""


def build_prompt(
    target: GenerationTarget,
    *,
    location: SeedRecord | None,
    industry: SeedRecord | None,
) -> str:
    """Build the prompt for a target from its resolved seed items."""
    if target.content_type == "location" and location is not None:
        return build_location_prompt(location)
    if target.content_type == "industry" and industry is not None:
        return build_industry_prompt(industry)
    if target.content_type == "combo" and location is not None and industry is not None:
        return build_combo_prompt(location, industry)
    raise InvalidTargetError(f"Missing seed data for {target.key}")
