"""Unit tests for page prompt builders."""

from __future__ import annotations

import pytest

from app.core.exceptions import InvalidTargetError
from app.services.seo.contracts import SeedRecord
from app.services.seo.prompts import build_prompt
from app.services.seo.targets import GenerationTarget

DUBLIN = SeedRecord(
    dimension="location",
    slug="dublin",
    name="Dublin",
    priority=1,
    metadata={"county": "Dublin", "population": 1_400_000, "region": ""},
)
DENTIST = SeedRecord(
    dimension="industry",
    slug="dentist",
    name="Dental Practices",
    priority=1,
    metadata={"use_case": "appointment booking"},
)


def test_location_prompt_includes_seed_context_and_list_minimum() -> None:
    prompt = build_prompt(GenerationTarget.location("dublin"), location=DUBLIN, industry=None)

    assert 'businesses in "Dublin"' in prompt
    assert "- County: Dublin" in prompt
    assert "- Population: 1400000" in prompt
    assert "- Region:" not in prompt
    assert "local_benefits: at least 3 items." in prompt


def test_industry_prompt_requires_four_benefits() -> None:
    prompt = build_prompt(GenerationTarget.industry("dentist"), location=None, industry=DENTIST)

    assert '"Dental Practices" businesses' in prompt
    assert "- Use case: appointment booking" in prompt
    assert "benefits: at least 4 items." in prompt


def test_combo_prompt_names_both_seeds() -> None:
    prompt = build_prompt(
        GenerationTarget.combo("dublin", "dentist"),
        location=DUBLIN,
        industry=DENTIST,
    )

    assert 'for "Dental Practices" in "Dublin"' in prompt
    assert '"why_need"' in prompt
    assert "meta_title: at most 70 characters." in prompt


def test_missing_seed_raises() -> None:
    with pytest.raises(InvalidTargetError, match="combo:dublin:dentist"):
        build_prompt(GenerationTarget.combo("dublin", "dentist"), location=DUBLIN, industry=None)
