"""Pairwise similarity scoring between paper records.

Five base components, each roughly in [0, 1], are combined under a
weighting policy on top of a base weight of 1.0. Context hints (keywords and
authors from the user's session) add a boost regardless of policy.
"""

from collections.abc import Iterable

from citation_network.models.schemas import (
    MAX_EDGE_WEIGHT,
    MIN_EDGE_WEIGHT,
    EdgeMetadata,
    PaperRecord,
    SearchContext,
    SimilarityResult,
    WeightingPolicy,
)

RECENCY_WINDOW_YEARS = 15
CONTEXT_BOOST_FACTOR = 0.5

# policy -> {component: coefficient}
POLICY_COEFFICIENTS: dict[str, dict[str, float]] = {
    "balanced": {
        "citation_strength": 0.8,
        "relevance": 0.8,
        "recency": 0.6,
        "keyword_sim": 0.6,
        "author_sim": 0.4,
    },
    "citations": {
        "citation_strength": 1.5,
        "relevance": 0.5,
        "keyword_sim": 0.3,
    },
    "recency": {
        "recency": 1.2,
        "relevance": 0.8,
        "citation_strength": 0.4,
    },
    "keywords": {
        "keyword_sim": 1.5,
        "author_sim": 0.8,
        "relevance": 0.5,
    },
}


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    """Case-insensitive Jaccard overlap of two string collections."""
    set_a = {s.lower() for s in a}
    set_b = {s.lower() for s in b}
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def shared_values(a: Iterable[str], b: Iterable[str]) -> list[str]:
    """Case-insensitive intersection, returned with the original casing of ``a``.

    Order follows first appearance in ``a``; duplicates are dropped.
    """
    lowered_b = {s.lower() for s in b}
    seen: set[str] = set()
    shared: list[str] = []
    for value in a:
        key = value.lower()
        if key in lowered_b and key not in seen:
            seen.add(key)
            shared.append(value)
    return shared


def year_recency(year_a: int | None, year_b: int | None) -> float:
    """Linear decay over a 15-year distance; 0 when either year is missing."""
    if not year_a or not year_b:
        return 0.0
    return clamp(1 - abs(year_a - year_b) / RECENCY_WINDOW_YEARS, 0.0, 1.0)


class SimilarityScorer:
    """Computes bounded edge weights between two papers."""

    def __init__(self, default_policy: WeightingPolicy = "balanced"):
        self.default_policy = default_policy

    def components(self, a: PaperRecord, b: PaperRecord) -> dict[str, float]:
        """Return the five base components for a pair."""
        cit_a, cit_b = a.citation_count, b.citation_count
        return {
            "citation_strength": min(cit_a, cit_b) / max(cit_a, cit_b, 1),
            "relevance": (a.relevance_score + b.relevance_score) / 2,
            "recency": year_recency(a.year, b.year),
            "keyword_sim": jaccard(a.fields_of_study, b.fields_of_study),
            "author_sim": jaccard(a.author_list, b.author_list),
        }

    @staticmethod
    def context_boost(
        a: PaperRecord, b: PaperRecord, context: SearchContext | None
    ) -> float:
        if context is None:
            return 0.0
        keyword_boost = 0.0
        author_boost = 0.0
        if context.keywords:
            keyword_boost = CONTEXT_BOOST_FACTOR * (
                jaccard(context.keywords, a.fields_of_study)
                + jaccard(context.keywords, b.fields_of_study)
            )
        if context.authors:
            author_boost = CONTEXT_BOOST_FACTOR * (
                jaccard(context.authors, a.author_list)
                + jaccard(context.authors, b.author_list)
            )
        return keyword_boost + author_boost

    def score(
        self,
        a: PaperRecord,
        b: PaperRecord,
        policy: WeightingPolicy | None = None,
        context: SearchContext | None = None,
    ) -> SimilarityResult:
        """Score a pair of papers.

        Args:
            a: First paper.
            b: Second paper.
            policy: Weighting policy; unknown values fall back to balanced.
            context: Optional keywords/authors of interest.

        Returns:
            SimilarityResult with weight in [0.1, 3.0] and metadata whose
            similarity_score is the clamped mean of the base components.
        """
        parts = self.components(a, b)
        coefficients = POLICY_COEFFICIENTS.get(
            policy or self.default_policy, POLICY_COEFFICIENTS["balanced"]
        )

        weight = 1.0 + sum(coef * parts[name] for name, coef in coefficients.items())
        boost = self.context_boost(a, b, context)
        weight += boost

        similarity = clamp(sum(parts.values()) / len(parts), 0.0, 1.0)

        return SimilarityResult(
            weight=clamp(weight, MIN_EDGE_WEIGHT, MAX_EDGE_WEIGHT),
            metadata=EdgeMetadata(
                shared_keywords=shared_values(a.fields_of_study, b.fields_of_study),
                shared_authors=shared_values(a.author_list, b.author_list),
                similarity_score=similarity,
                context_boost=boost,
            ),
        )
