"""Search phrases and query text derived from a paper and the user's hints."""

from typing import NamedTuple

from citation_network.models.schemas import PaperRecord, SearchContext

MAX_PHRASES = 10
MIN_PHRASES = 3
MIN_QUERY_LENGTH = 50
MAX_QUERY_LENGTH = 5000
QUERY_FILLER = ". This research explores various aspects and applications in the field."


class PhraseSet(NamedTuple):
    phrases: list[str]
    query: str


def _clean(values: list[str] | tuple[str, ...] | None) -> list[str]:
    return [v.strip() for v in values or [] if v and v.strip()]


def build_phrases(paper: PaperRecord) -> PhraseSet:
    """Title plus the first three fields of study."""
    fields = _clean(paper.fields_of_study)
    phrases = _clean([paper.title, *fields[:3]])
    query = f"Research related to {paper.title} in fields: {', '.join(fields)}"
    return PhraseSet(phrases, query)


def build_phrases_from_user_input(
    paper: PaperRecord,
    keywords: list[str] | None = None,
    authors: list[str] | None = None,
    references: list[str] | None = None,
) -> PhraseSet:
    """Combine paper data with user-supplied keywords, authors and references.

    Phrases take the title, two fields, three keywords, two authors and two
    references (at most ten). The query labels each non-empty part and is
    kept within 50..5000 characters.
    """
    fields = _clean(paper.fields_of_study)
    keywords = _clean(keywords)
    authors = _clean(authors)
    references = _clean(references)

    phrases = _clean(
        [paper.title, *fields[:2], *keywords[:3], *authors[:2], *references[:2]]
    )[:MAX_PHRASES]
    if len(phrases) < MIN_PHRASES:
        phrases.extend(fields[2 : 2 + MIN_PHRASES - len(phrases)])

    parts = [f"Research related to {paper.title}"]
    if fields:
        parts.append(f"in fields: {', '.join(fields)}")
    if keywords:
        parts.append(f"focusing on keywords: {', '.join(keywords)}")
    if authors:
        parts.append(f"by authors: {', '.join(authors)}")
    if references:
        parts.append(f"related to references: {', '.join(references)}")

    query = ". ".join(parts)
    if len(query) < MIN_QUERY_LENGTH:
        query += QUERY_FILLER
    if len(query) > MAX_QUERY_LENGTH:
        query = query[: MAX_QUERY_LENGTH - 3] + "..."
    return PhraseSet(phrases, query)


def context_from_papers(papers: list[PaperRecord]) -> SearchContext:
    """Keywords and authors seen across a session's papers, first occurrence wins."""
    keywords: list[str] = []
    authors: list[str] = []
    seen_keywords: set[str] = set()
    seen_authors: set[str] = set()
    for paper in papers:
        for field in paper.fields_of_study:
            if field.strip() and field.lower() not in seen_keywords:
                seen_keywords.add(field.lower())
                keywords.append(field)
        for name in paper.author_list:
            if name.lower() not in seen_authors:
                seen_authors.add(name.lower())
                authors.append(name)
    return SearchContext(keywords=keywords, authors=authors)
