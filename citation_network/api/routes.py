"""API routes for the citation-network engine."""

import logging

from fastapi import APIRouter, Request

from citation_network.config import get_settings
from citation_network.errors import JobFailedError, JobTimeoutError
from citation_network.models.schemas import (
    ChildRef,
    ExpandRequest,
    ExpandResponse,
    Graph,
    GraphRequest,
    PaperRecord,
    SearchContext,
    SearchRequest,
    SearchResponse,
    StoreChildrenRequest,
    StoreChildrenResult,
)
from citation_network.services.graph_builder import GraphBuilder
from citation_network.services.graph_query import parse_graph_options
from citation_network.services.identifiers import normalize_paper_id
from citation_network.services.phrase_builder import build_phrases_from_user_input
from citation_network.services.relationship_store import RelationshipStore, restore_into_graph
from citation_network.services.similarity import SimilarityScorer

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _relationship_store(request: Request, session_id: str) -> RelationshipStore:
    settings = get_settings()
    return RelationshipStore(
        request.app.state.session_backend,
        session_id,
        ttl_seconds=settings.session_ttl_seconds,
    )


def _rank_children(
    parent: PaperRecord,
    papers: list[PaperRecord],
    scorer: SimilarityScorer,
    context: SearchContext,
) -> list[ChildRef]:
    """Order search results by similarity to the parent, best first."""
    parent_id = normalize_paper_id(parent.id)
    scored = [
        (scorer.score(parent, p, context=context).weight, index, p)
        for index, p in enumerate(papers)
        if normalize_paper_id(p.id) != parent_id
    ]
    scored.sort(key=lambda item: (-item[0], item[1]))
    return [
        ChildRef(id=p.id, title=p.title, source_parent_id=parent_id, paper=p)
        for _, _, p in scored
    ]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/graph", response_model=Graph)
async def build_graph(request: Request, body: GraphRequest):
    """Build a citation graph from a paper pool.

    Query parameters control root, filters, ordering, limit and weighting.
    With a ``session_id``, relationships stored for that session are restored
    into the graph as stub nodes and links.
    """
    settings = get_settings()
    options = parse_graph_options(
        request.query_params,
        default_limit=settings.graph_default_limit,
        max_limit=settings.graph_max_limit,
        default_policy=settings.default_weighting_policy,
        context=body.context,
    )
    builder = GraphBuilder(SimilarityScorer(settings.default_weighting_policy))
    graph = builder.build(body.papers, options)

    if body.session_id:
        relationships = await _relationship_store(request, body.session_id).get_all()
        restored = restore_into_graph(graph, relationships)
        logger.info("Restored %d stub nodes from session %s", restored, body.session_id)

    return graph


@router.post("/search", response_model=SearchResponse)
async def search(request: Request, body: SearchRequest):
    """Run a combined search and return the best paper, or null."""
    client = request.app.state.search_client
    paper = await client.search(body.phrases, body.query, limit=body.limit)
    return SearchResponse(paper=paper)


@router.post("/sessions/{session_id}/expand", response_model=ExpandResponse)
async def expand_paper(request: Request, session_id: str, body: ExpandRequest):
    """Find related papers for a node and remember up to three as its children."""
    settings = get_settings()
    client = request.app.state.search_client
    phrase_set = build_phrases_from_user_input(
        body.paper, body.keywords, body.authors, body.references
    )

    try:
        papers = await client.search_papers(
            phrase_set.phrases, phrase_set.query, limit=settings.job_result_limit
        )
    except (JobFailedError, JobTimeoutError) as e:
        logger.info("Expansion search for %s found nothing: %s", body.paper.id, e)
        papers = []

    scorer = SimilarityScorer(body.weighting)
    context = SearchContext(keywords=body.keywords, authors=body.authors)
    ranked = _rank_children(body.paper, papers, scorer, context)

    store = _relationship_store(request, session_id)
    result = await store.store_children(body.paper.id, ranked)
    children = await store.get_children(body.paper.id)
    return ExpandResponse(parent_id=result.stored_key, children=children, result=result)


@router.post("/sessions/{session_id}/relationships", response_model=StoreChildrenResult)
async def store_relationships(request: Request, session_id: str, body: StoreChildrenRequest):
    store = _relationship_store(request, session_id)
    return await store.store_children(body.paper_id, body.child_papers)


@router.get("/sessions/{session_id}/relationships")
async def get_relationships(request: Request, session_id: str, paper_id: str | None = None):
    """Children of one parent when ``paper_id`` is given, else the whole map."""
    store = _relationship_store(request, session_id)
    if paper_id:
        entry = await store.get_entry(paper_id)
        return {
            "paper_id": normalize_paper_id(paper_id),
            **entry.model_dump(by_alias=True, mode="json", exclude_none=True),
        }
    relationships = await store.get_all()
    return {
        parent_id: entry.model_dump(by_alias=True, mode="json", exclude_none=True)
        for parent_id, entry in relationships.items()
    }


@router.delete("/sessions/{session_id}/relationships", status_code=204)
async def delete_relationships(request: Request, session_id: str):
    """Forget every relationship stored for a session."""
    await _relationship_store(request, session_id).clear()
    return None
