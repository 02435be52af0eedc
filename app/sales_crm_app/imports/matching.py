from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Mapping, Sequence

from rapidfuzz.distance import Levenshtein

from sales_crm_app.core.util import collapse_whitespace, normalize_key
from sales_crm_app.imports.config import ImportSettings
from sales_crm_app.imports.contracts import ImportStore, ReferenceCandidate

LOGGER = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 3
SCORE_TOLERANCE = 1e-9
SCOPED_CATEGORIES = {"sub_industries": "industries", "cities": "states"}
CATEGORY_LABELS = {
    "industries": "Industry",
    "sub_industries": "Sub-industry",
    "states": "State",
    "cities": "City",
}


class MatchTier(str, Enum):
    EXACT = "exact"
    CONTAINS = "contains"
    TOKENS = "tokens"
    SIMILARITY = "similarity"


@dataclass(frozen=True)
class MatchResult:
    candidate: ReferenceCandidate
    tier: MatchTier
    score: float


class ReferenceResolutionError(RuntimeError):
    """Raised when a reference value can neither be matched nor created."""


def canonical_name(value: str, synonyms: Mapping[str, str] | None = None) -> str:
    key = normalize_key(value)
    if synonyms:
        return normalize_key(synonyms.get(key, key))
    return key


def similarity(left: str, right: str) -> float:
    """Normalized Levenshtein similarity: ``1 - distance / max(len)``."""
    longest = max(len(left), len(right))
    if longest == 0:
        return 1.0
    return 1.0 - (Levenshtein.distance(left, right) / longest)


def _significant_tokens(value: str) -> list[str]:
    return [token for token in value.split() if len(token) >= MIN_TOKEN_LENGTH]


def find_nearest_match(
    search_text: str,
    candidates: Sequence[ReferenceCandidate],
    *,
    threshold: float,
    synonyms: Mapping[str, str] | None = None,
) -> MatchResult | None:
    """Match free text against candidates; the first tier that hits wins.

    Tiers: exact (after synonyms), containment either way, every significant
    search token inside some candidate token, then best edit-distance
    similarity at or above ``threshold``. Ties keep candidate order.
    """
    search_key = canonical_name(search_text, synonyms)
    if not search_key:
        return None
    keyed = [(canonical_name(candidate.name, synonyms), candidate) for candidate in candidates]
    keyed = [(key, candidate) for key, candidate in keyed if key]
    if not keyed:
        return None

    for key, candidate in keyed:
        if key == search_key:
            return MatchResult(candidate, MatchTier.EXACT, 1.0)

    for key, candidate in keyed:
        if search_key in key or key in search_key:
            return MatchResult(candidate, MatchTier.CONTAINS, similarity(search_key, key))

    search_tokens = _significant_tokens(search_key)
    if search_tokens:
        for key, candidate in keyed:
            candidate_tokens = key.split()
            if all(any(token in candidate_token for candidate_token in candidate_tokens) for token in search_tokens):
                return MatchResult(candidate, MatchTier.TOKENS, similarity(search_key, key))

    best: MatchResult | None = None
    for key, candidate in keyed:
        score = similarity(search_key, key)
        if best is None or score > best.score:
            best = MatchResult(candidate, MatchTier.SIMILARITY, score)
    if best is not None and best.score + SCORE_TOLERANCE >= float(threshold):
        return best
    return None


class ReferenceResolver:
    """Per-run reference lookup state.

    Candidate lists are loaded once per category from the store and grow as
    rows get created. Resolved values are cached by (category, normalized
    text, parent id). One resolver must never be shared across runs.
    """

    def __init__(self, store: ImportStore, settings: ImportSettings) -> None:
        self.store = store
        self.settings = settings
        self.created: Counter[str] = Counter()
        self.match_passes = 0
        self._candidates: dict[str, list[ReferenceCandidate]] = {}
        self._resolved: dict[tuple[str, str, str | None], ReferenceCandidate] = {}

    async def candidates(self, category: str) -> list[ReferenceCandidate]:
        if category not in self._candidates:
            self._candidates[category] = list(await self.store.list_reference_candidates(category))
        return self._candidates[category]

    async def resolve(
        self,
        category: str,
        text: str,
        *,
        parent_id: str | None = None,
        label: str = "",
    ) -> ReferenceCandidate | None:
        cleaned = collapse_whitespace(text)
        if not cleaned:
            return None
        if category in SCOPED_CATEGORIES and not parent_id:
            raise ValueError(f"{category} resolution requires a resolved {SCOPED_CATEGORIES[category]} id.")

        cache_key = (category, normalize_key(cleaned), parent_id)
        cached = self._resolved.get(cache_key)
        if cached is not None:
            return cached

        kind = CATEGORY_LABELS.get(category, category)
        try:
            pool = await self.candidates(category)
        except Exception as exc:
            prefix = f"{label}: " if label else ""
            raise ReferenceResolutionError(
                f'{prefix}{kind} "{cleaned}" could not be matched; loading {category} failed: {exc}'
            ) from exc
        scoped = [candidate for candidate in pool if parent_id is None or candidate.parent_id == parent_id]
        self.match_passes += 1
        match = find_nearest_match(
            cleaned,
            scoped,
            threshold=self.settings.match_threshold,
            synonyms=self.settings.synonyms_for(category),
        )
        if match is not None:
            LOGGER.debug(
                "Resolved reference. category=%s text=%s match=%s tier=%s score=%.3f",
                category,
                cleaned,
                match.candidate.name,
                match.tier.value,
                match.score,
            )
            self._resolved[cache_key] = match.candidate
            return match.candidate

        created = await self._create(category, cleaned, parent_id=parent_id, label=label)
        pool.append(created)
        self._resolved[cache_key] = created
        return created

    async def _create(self, category: str, name: str, *, parent_id: str | None, label: str) -> ReferenceCandidate:
        kind = CATEGORY_LABELS.get(category, category)
        try:
            created = await self.store.insert_reference(category, name, parent_id)
        except Exception as exc:
            prefix = f"{label}: " if label else ""
            raise ReferenceResolutionError(
                f'{prefix}{kind} "{name}" not found and could not be created: {exc}'
            ) from exc
        self.created[category] += 1
        LOGGER.info(
            "Created %s reference. name=%s id=%s parent_id=%s",
            kind.lower(),
            created.name,
            created.id,
            parent_id or "-",
            extra={
                "event": "import_reference_created",
                "category": category,
                "reference_id": created.id,
                "parent_id": parent_id,
            },
        )
        return created
