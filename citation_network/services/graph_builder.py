"""Builds node/edge graphs from a root paper and a candidate pool.

The root is picked from the full input; the remaining papers are filtered,
sorted and truncated, then nodes, root links and candidate-to-candidate
similarity links are built. The builder never mutates its inputs and is
deterministic for a fixed input, options and ``current_year``.
"""

import logging
from datetime import datetime

from citation_network.errors import GraphConstructionError
from citation_network.models.schemas import (
    MAX_EDGE_WEIGHT,
    MIN_EDGE_WEIGHT,
    EdgeMetadata,
    Graph,
    GraphEdge,
    GraphFilters,
    GraphNode,
    GraphOptions,
    PaperRecord,
    SortBy,
    SortOrder,
)
from citation_network.services.identifiers import normalize_paper_id
from citation_network.services.similarity import (
    SimilarityScorer,
    clamp,
    shared_values,
    year_recency,
)

logger = logging.getLogger(__name__)

ROOT_LINK_WEIGHT = 1.0
SIMILARITY_WEIGHT_CAP = 1.0
TLDR_MIN_WORD_LENGTH = 3
TLDR_SHARED_WORDS_FOR_FULL_BONUS = 10

_SORT_KEYS = {
    "relevance": lambda p: p.relevance_score or 0.0,
    "citations": lambda p: p.citation_count,
    "year": lambda p: p.year or 0,
    "title": lambda p: (p.title or "").casefold(),
}


def filter_papers(
    papers: list[PaperRecord], filters: GraphFilters | None
) -> list[PaperRecord]:
    """Keep papers matching every set criterion.

    Papers without a year are not excluded by the year range.
    """
    if filters is None:
        return list(papers)

    field_filter = {f.lower() for f in filters.fields_of_study or []}
    author_filter = [a.lower() for a in filters.authors or [] if a.strip()]
    type_filter = {t.lower() for t in filters.publication_types or []}

    kept: list[PaperRecord] = []
    for paper in papers:
        citations = paper.citation_count
        if filters.min_citations is not None and citations < filters.min_citations:
            continue
        if filters.max_citations is not None and citations > filters.max_citations:
            continue

        if paper.year is not None:
            if filters.min_year is not None and paper.year < filters.min_year:
                continue
            if filters.max_year is not None and paper.year > filters.max_year:
                continue

        if field_filter:
            paper_fields = {f.lower() for f in paper.fields_of_study}
            if not paper_fields & field_filter:
                continue

        if author_filter:
            paper_authors = [a.lower() for a in paper.author_list]
            if not any(wanted in name for name in paper_authors for wanted in author_filter):
                continue

        if type_filter:
            if (paper.publication_type or "").lower() not in type_filter:
                continue

        kept.append(paper)
    return kept


def sort_papers(
    papers: list[PaperRecord],
    sort_by: SortBy = "relevance",
    sort_order: SortOrder = "desc",
) -> list[PaperRecord]:
    """Return a sorted copy; missing values sort as 0 or the empty string."""
    key = _SORT_KEYS.get(sort_by, _SORT_KEYS["relevance"])
    return sorted(papers, key=key, reverse=(sort_order == "desc"))


def _tldr_words(tldr: str | None) -> set[str]:
    if not tldr or not tldr.strip():
        return set()
    return {w for w in tldr.lower().split() if len(w) > TLDR_MIN_WORD_LENGTH}


def tldr_overlap_bonus(a: PaperRecord, b: PaperRecord) -> float:
    """Bonus in (0, 1] when both TLDRs share content words, else 0."""
    shared = _tldr_words(a.tldr) & _tldr_words(b.tldr)
    if not shared:
        return 0.0
    return min(len(shared) / TLDR_SHARED_WORDS_FOR_FULL_BONUS, 1.0)


def _possible_attributes(paper: PaperRecord) -> int:
    has_tldr = 1 if paper.tldr and paper.tldr.strip() else 0
    return len(paper.fields_of_study) + len(paper.author_list) + has_tldr


def shared_attribute_score(a: PaperRecord, b: PaperRecord) -> tuple[float, list[str], list[str]]:
    """Score shared fields, authors and TLDR words relative to the richer paper.

    Returns:
        (score, shared fields, shared authors) with literal display values.
    """
    fields = shared_values(a.fields_of_study, b.fields_of_study)
    authors = shared_values(a.author_list, b.author_list)
    shared = len(fields) + len(authors) + tldr_overlap_bonus(a, b)
    if shared <= 0:
        return 0.0, fields, authors
    possible = max(_possible_attributes(a), _possible_attributes(b))
    if possible <= 0:
        return 0.0, fields, authors
    return shared / possible, fields, authors


class GraphBuilder:
    """Turns paper records into a deduplicated, weighted graph."""

    def __init__(
        self,
        scorer: SimilarityScorer | None = None,
        current_year: int | None = None,
    ):
        self.scorer = scorer or SimilarityScorer()
        self.current_year = current_year or datetime.now().year

    def node_weight(self, paper: PaperRecord) -> float:
        """Visual weight from citations, relevance and a mild recency boost."""
        recency = year_recency(paper.year, self.current_year)
        weight = (
            1
            + paper.citation_count / 200
            + paper.relevance_score * 0.5
            + recency * 0.5
        )
        return clamp(weight, 0.1, 3.0)

    def _make_node(self, paper: PaperRecord, role: str) -> GraphNode:
        return GraphNode(
            id=normalize_paper_id(paper.id),
            title=paper.title,
            role=role,
            weight=self.node_weight(paper),
            citation_count=paper.citation_count,
            year=paper.year,
            authors=paper.authors or None,
            relevance_score=paper.relevance_score,
            paper=paper,
        )

    def build(self, papers: list[PaperRecord], options: GraphOptions | None = None) -> Graph:
        """Build a graph from a candidate pool.

        Args:
            papers: Paper records; the first one is the fallback root.
            options: Root id, filters, ordering, limit, weighting policy and
                context hints.

        Returns:
            Graph with one root node, up to ``limit`` candidate nodes, root
            links to every candidate and similarity links between candidates.
            An empty input yields an empty graph.

        Raises:
            GraphConstructionError: if an internal step fails.
        """
        options = options or GraphOptions()
        if not papers:
            return Graph()

        try:
            return self._build(papers, options)
        except GraphConstructionError:
            raise
        except Exception as e:
            logger.exception("Graph construction failed for %d papers", len(papers))
            raise GraphConstructionError(
                f"Graph construction failed while assembling nodes and edges: {e}"
            ) from e

    def _build(self, papers: list[PaperRecord], options: GraphOptions) -> Graph:
        root = self._select_root(papers, options.root_paper_id)
        root_id = normalize_paper_id(root.id)

        pool = [p for p in papers if normalize_paper_id(p.id) != root_id]
        pool = filter_papers(pool, options.filters)
        pool = sort_papers(pool, options.sort_by, options.sort_order)

        candidates: list[PaperRecord] = []
        seen_ids = {root_id}
        for paper in pool:
            if len(candidates) >= options.limit:
                break
            paper_id = normalize_paper_id(paper.id)
            if paper_id in seen_ids:
                continue
            seen_ids.add(paper_id)
            candidates.append(paper)

        nodes = [self._make_node(root, "root")]
        nodes.extend(self._make_node(p, "candidate") for p in candidates)

        edges: list[GraphEdge] = []
        for paper, node in zip(candidates, nodes[1:], strict=True):
            scored = self.scorer.score(root, paper, options.policy, options.context)
            edges.append(
                GraphEdge(
                    source=root_id,
                    target=node.id,
                    type="root-link",
                    weight=ROOT_LINK_WEIGHT,
                    metadata=scored.metadata,
                )
            )

        candidate_nodes = nodes[1:]
        for i in range(len(candidates)):
            for j in range(i + 1, len(candidates)):
                score, fields, authors = shared_attribute_score(candidates[i], candidates[j])
                if score <= 0:
                    continue
                capped = min(score, SIMILARITY_WEIGHT_CAP)
                edges.append(
                    GraphEdge(
                        source=candidate_nodes[i].id,
                        target=candidate_nodes[j].id,
                        type="similarity",
                        weight=clamp(capped, MIN_EDGE_WEIGHT, MAX_EDGE_WEIGHT),
                        metadata=EdgeMetadata(
                            shared_keywords=fields,
                            shared_authors=authors,
                            similarity_score=capped,
                        ),
                    )
                )

        graph = Graph(root_id=root_id, nodes=nodes, edges=edges)
        graph.refresh_stats(restored_node_count=0)
        logger.info(
            "Built graph: %d nodes, %d edges (%d of %d papers kept as candidates)",
            graph.stats.total_nodes,
            graph.stats.total_edges,
            len(candidates),
            len(papers) - 1,
        )
        return graph

    @staticmethod
    def _select_root(papers: list[PaperRecord], root_paper_id: str | None) -> PaperRecord:
        if root_paper_id:
            wanted = normalize_paper_id(root_paper_id)
            for paper in papers:
                if normalize_paper_id(paper.id) == wanted:
                    return paper
            logger.debug("Root %s not among %d papers, using first paper", wanted, len(papers))
        return papers[0]
