"""Parsing of graph query parameters into GraphOptions."""

from collections.abc import Mapping
from typing import get_args

from citation_network.errors import ValidationError
from citation_network.models.schemas import (
    GraphFilters,
    GraphOptions,
    SearchContext,
    SortBy,
    SortOrder,
    WeightingPolicy,
)

MIN_LIMIT = 1
MAX_LIMIT = 1000


def _int_param(params: Mapping[str, str], name: str) -> int | None:
    raw = params.get(name)
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got {raw!r}") from None


def _list_param(params: Mapping[str, str], name: str) -> list[str] | None:
    raw = params.get(name)
    if not raw:
        return None
    values = [v.strip() for v in str(raw).split(",") if v.strip()]
    return values or None


def _choice(value: str | None, allowed: tuple[str, ...], default: str) -> str:
    return value if value in allowed else default


def parse_graph_options(
    params: Mapping[str, str],
    default_limit: int = 100,
    max_limit: int = MAX_LIMIT,
    default_policy: WeightingPolicy = "balanced",
    context: SearchContext | None = None,
) -> GraphOptions:
    """Build GraphOptions from camelCase query parameters.

    Unknown ``sortBy``/``sortOrder``/``weighting`` values fall back to the
    defaults. Malformed integers are rejected.

    Raises:
        ValidationError: an integer parameter is not numeric, or ``limit`` is
            outside 1..``max_limit``.
    """
    limit = _int_param(params, "limit")
    if limit is None:
        limit = default_limit
    if not MIN_LIMIT <= limit <= max_limit:
        raise ValidationError(f"limit must be between {MIN_LIMIT} and {max_limit}, got {limit}")

    min_citations = _int_param(params, "minCitations")
    max_citations = _int_param(params, "maxCitations")
    for name, value in (("minCitations", min_citations), ("maxCitations", max_citations)):
        if value is not None and value < 0:
            raise ValidationError(f"{name} must not be negative")

    filters = GraphFilters(
        min_citations=min_citations,
        max_citations=max_citations,
        min_year=_int_param(params, "minYear"),
        max_year=_int_param(params, "maxYear"),
        fields_of_study=_list_param(params, "fieldsOfStudy"),
        authors=_list_param(params, "authors"),
        publication_types=_list_param(params, "publicationTypes"),
    )

    return GraphOptions(
        root_paper_id=params.get("rootPaperId") or None,
        filters=filters,
        sort_by=_choice(params.get("sortBy"), get_args(SortBy), "relevance"),
        sort_order=_choice(params.get("sortOrder"), get_args(SortOrder), "desc"),
        limit=limit,
        policy=_choice(params.get("weighting"), get_args(WeightingPolicy), default_policy),
        context=context,
    )
