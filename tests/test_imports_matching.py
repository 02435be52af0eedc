from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

APP_ROOT = Path(__file__).resolve().parents[1] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from sales_crm_app.imports.config import ImportSettings
from sales_crm_app.imports.contracts import ReferenceCandidate
from sales_crm_app.imports.matching import (
    MatchTier,
    ReferenceResolutionError,
    ReferenceResolver,
    find_nearest_match,
    similarity,
)


def _candidates(*names: str) -> list[ReferenceCandidate]:
    return [ReferenceCandidate(id=f"ref-{index}", name=name) for index, name in enumerate(names)]


def test_similarity_is_normalized_edit_distance() -> None:
    assert similarity("abc", "abc") == 1.0
    assert similarity("", "") == 1.0
    assert similarity("abcde", "abxye") == pytest.approx(0.6)


def test_exact_match_ignores_case_and_spacing() -> None:
    match = find_nearest_match("  tamil   NADU ", _candidates("Karnataka", "Tamil Nadu"), threshold=0.6)
    assert match is not None
    assert match.candidate.name == "Tamil Nadu"
    assert match.tier is MatchTier.EXACT


def test_synonyms_resolve_to_canonical_candidate() -> None:
    candidates = _candidates("Delhi (National Capital Territory)", "Jammu & Kashmir")
    synonyms = ImportSettings().synonyms_for("states")

    delhi = find_nearest_match("New Delhi", candidates, threshold=0.6, synonyms=synonyms)
    kashmir = find_nearest_match("J&K", candidates, threshold=0.6, synonyms=synonyms)

    assert delhi is not None and delhi.candidate.id == "ref-0"
    assert delhi.tier is MatchTier.EXACT
    assert kashmir is not None and kashmir.candidate.id == "ref-1"


def test_containment_beats_similarity() -> None:
    match = find_nearest_match("Road", _candidates("Rail", "Road Infrastructure"), threshold=0.6)
    assert match is not None
    assert match.candidate.name == "Road Infrastructure"
    assert match.tier is MatchTier.CONTAINS


def test_token_tier_matches_partial_words() -> None:
    match = find_nearest_match("Infra Transport", _candidates("Retail", "Transport Infrastructure"), threshold=0.6)
    assert match is not None
    assert match.candidate.name == "Transport Infrastructure"
    assert match.tier is MatchTier.TOKENS


def test_similarity_threshold_is_inclusive() -> None:
    accepted = find_nearest_match("abcde", _candidates("abxye"), threshold=0.6)
    assert accepted is not None
    assert accepted.tier is MatchTier.SIMILARITY

    rejected = find_nearest_match("abcdefghijklmnopqrstuv", _candidates("abcdefghijklm123456789"), threshold=0.6)
    assert rejected is None


def test_threshold_is_configurable() -> None:
    assert find_nearest_match("abcde", _candidates("abxye"), threshold=0.8) is None
    assert find_nearest_match("Karnatka", _candidates("Kerala", "Karnataka"), threshold=0.8).candidate.name == "Karnataka"


def test_ties_keep_candidate_order() -> None:
    match = find_nearest_match("abcd", _candidates("abcx", "abcy"), threshold=0.6)
    assert match is not None
    assert match.candidate.id == "ref-0"


def test_no_candidates_or_blank_text_returns_none() -> None:
    assert find_nearest_match("Retail", [], threshold=0.6) is None
    assert find_nearest_match("   ", _candidates("Retail"), threshold=0.6) is None


def test_resolver_creates_missing_reference_and_reuses_it(import_store) -> None:
    resolver = ReferenceResolver(import_store, ImportSettings())

    async def scenario():
        first = await resolver.resolve("industries", "Manufacturing")
        second = await resolver.resolve("industries", " manufacturing ")
        return first, second

    first, second = asyncio.run(scenario())

    assert first == second
    assert import_store.reference_names("industries") == ["Transport Infrastructure", "Manufacturing"]
    assert resolver.created["industries"] == 1
    assert resolver.match_passes == 1
    assert import_store.calls.count("list:industries") == 1
    assert import_store.calls.count("insert:industries") == 1


def test_created_reference_is_matchable_in_same_run(import_store) -> None:
    resolver = ReferenceResolver(import_store, ImportSettings())

    async def scenario():
        created = await resolver.resolve("industries", "Pharmaceuticals")
        near = await resolver.resolve("industries", "Pharmaceutical")
        return created, near

    created, near = asyncio.run(scenario())
    assert near.id == created.id
    assert resolver.created["industries"] == 1


def test_sub_industries_are_scoped_to_their_industry(import_store) -> None:
    resolver = ReferenceResolver(import_store, ImportSettings())

    async def scenario():
        manufacturing = await resolver.resolve("industries", "Manufacturing")
        retail = await resolver.resolve("industries", "Retail")
        general_m = await resolver.resolve("sub_industries", "General", parent_id=manufacturing.id)
        general_r = await resolver.resolve("sub_industries", "General", parent_id=retail.id)
        general_m_again = await resolver.resolve("sub_industries", "general", parent_id=manufacturing.id)
        return manufacturing, retail, general_m, general_r, general_m_again

    manufacturing, retail, general_m, general_r, general_m_again = asyncio.run(scenario())

    assert general_m.id != general_r.id
    assert general_m.parent_id == manufacturing.id
    assert general_r.parent_id == retail.id
    assert general_m_again.id == general_m.id
    assert resolver.created["sub_industries"] == 2


def test_cities_are_scoped_to_their_state(import_store) -> None:
    resolver = ReferenceResolver(import_store, ImportSettings())

    async def scenario():
        tamil_nadu = await resolver.resolve("states", "Tamil Nadu")
        karnataka = await resolver.resolve("states", "karnataka")
        chennai = await resolver.resolve("cities", "Chennai", parent_id=tamil_nadu.id)
        other_tn = await resolver.resolve("cities", "Other", parent_id=tamil_nadu.id)
        other_ka = await resolver.resolve("cities", "Other", parent_id=karnataka.id)
        return chennai, other_tn, other_ka

    chennai, other_tn, other_ka = asyncio.run(scenario())
    assert chennai.name == "Chennai"
    assert other_tn.id != other_ka.id
    assert resolver.created["states"] == 0
    assert resolver.created["cities"] == 3


def test_scoped_category_requires_parent(import_store) -> None:
    resolver = ReferenceResolver(import_store, ImportSettings())
    with pytest.raises(ValueError):
        asyncio.run(resolver.resolve("cities", "Chennai"))


def test_candidate_load_failure_raises_resolution_error(import_store) -> None:
    import_store.fail_list_categories.add("states")
    resolver = ReferenceResolver(import_store, ImportSettings())

    with pytest.raises(ReferenceResolutionError, match='Acme / HQ: State "Telangana" could not be matched'):
        asyncio.run(resolver.resolve("states", "Telangana", label="Acme / HQ"))
    assert resolver.match_passes == 0

    import_store.fail_list_categories.clear()
    resolved = asyncio.run(resolver.resolve("states", "Telangana"))
    assert resolved.name == "Telangana"
    assert resolver.match_passes == 1


def test_failed_creation_raises_and_is_not_cached(import_store) -> None:
    import_store.fail_reference_names.add("aerospace")
    resolver = ReferenceResolver(import_store, ImportSettings())

    with pytest.raises(ReferenceResolutionError, match='Industry "Aerospace" not found'):
        asyncio.run(resolver.resolve("industries", "Aerospace", label="Acme"))

    import_store.fail_reference_names.clear()
    created = asyncio.run(resolver.resolve("industries", "Aerospace"))
    assert created.name == "Aerospace"
    assert resolver.created["industries"] == 1
