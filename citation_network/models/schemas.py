"""
Pydantic schemas for the citation-network engine.

This module contains the data validation and serialization models shared by
the search client, the graph builder and the relationship store, following
Pydantic V2 syntax. ``PaperRecord`` is the single parsing boundary for data
arriving from the external paper-search service.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Supporting Enums and Types
NodeRole = Literal["root", "candidate"]
EdgeType = Literal["root-link", "similarity"]
WeightingPolicy = Literal["balanced", "citations", "recency", "keywords"]
SortBy = Literal["relevance", "citations", "year", "title"]
SortOrder = Literal["asc", "desc"]
JobType = Literal["combinedSearch", "keywordSearch", "querySearch"]
RESULT_PAGE_SIZES = (100, 200, 300)

MIN_EDGE_WEIGHT = 0.1
MAX_EDGE_WEIGHT = 3.0


def split_authors(authors: str | None) -> list[str]:
    """Split a comma-joined author string into trimmed, non-empty names."""
    if not authors:
        return []
    return [a.strip() for a in authors.split(",") if a.strip()]


class PaperRecord(BaseModel):
    """
    A paper as returned by the external search service.

    Accepts the service's wire shape (nested ``impactFactor``, ``score``,
    camelCase keys) as well as its own snake_case field names. Records are
    immutable once parsed.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Paper identifier, possibly carrying a synthetic prefix")
    title: str = Field(default="", description="Paper title")
    authors: str = Field(default="", description="Comma-joined author names")
    year: int | None = Field(default=None, description="Publication year")
    fields_of_study: tuple[str, ...] = Field(
        default=(),
        alias="fieldsOfStudy",
        description="Fields of study (used as keywords)"
    )
    citation_count: int = Field(default=0, alias="citationCount", ge=0)
    reference_count: int = Field(default=0, alias="referenceCount", ge=0)
    relevance_score: float = Field(
        default=0.0,
        alias="score",
        description="Search-provided relevance score (0..1)"
    )
    tldr: str | None = Field(default=None, description="Short machine summary")
    abstract: str | None = Field(default=None, description="Abstract text")
    journal_name: str | None = Field(default=None, alias="journalName")
    publication_type: str | None = Field(default=None, alias="publicationType")

    @model_validator(mode="before")
    @classmethod
    def unpack_service_shape(cls, data: Any) -> Any:
        """Flatten ``impactFactor`` and replace nulls with neutral defaults."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        impact = data.pop("impactFactor", None)
        if isinstance(impact, dict):
            if data.get("citationCount") is None and data.get("citation_count") is None:
                data["citationCount"] = impact.get("citationCount")
            if data.get("referenceCount") is None and data.get("reference_count") is None:
                data["referenceCount"] = impact.get("referenceCount")
        for key in ("citationCount", "citation_count", "referenceCount", "reference_count"):
            if key in data and data[key] is None:
                data[key] = 0
        for key in ("score", "relevance_score"):
            if key in data and data[key] is None:
                data[key] = 0.0
        for key in ("fieldsOfStudy", "fields_of_study"):
            if key in data and data[key] is None:
                data[key] = ()
        if data.get("title") is None:
            data["title"] = ""
        if "id" in data and data["id"] is not None:
            data["id"] = str(data["id"])
        return data

    @field_validator("authors", mode="before")
    @classmethod
    def join_author_list(cls, v):
        """Accept authors as a list of names or a comma-joined string."""
        if v is None:
            return ""
        if isinstance(v, (list, tuple)):
            return ", ".join(str(a).strip() for a in v if str(a).strip())
        return v

    @property
    def author_list(self) -> list[str]:
        return split_authors(self.authors)

    def to_service_dict(self) -> dict:
        """Serialize with the service's camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")


class SearchContext(BaseModel):
    """
    User-context hints used to bias similarity toward a topic of interest.

    Usually derived from the keywords and authors gathered in a chat session.
    """
    keywords: list[str] = Field(default_factory=list, description="Topic keywords")
    authors: list[str] = Field(default_factory=list, description="Authors of interest")


class GraphFilters(BaseModel):
    """Candidate filters; an unset criterion is a no-op, set criteria are ANDed."""
    min_citations: int | None = Field(default=None, ge=0)
    max_citations: int | None = Field(default=None, ge=0)
    min_year: int | None = None
    max_year: int | None = None
    fields_of_study: list[str] | None = None
    authors: list[str] | None = None
    publication_types: list[str] | None = None


class GraphOptions(BaseModel):
    """Options controlling root selection, filtering, ordering and size of a graph."""
    root_paper_id: str | None = Field(default=None, description="Preferred root paper id")
    filters: GraphFilters | None = None
    sort_by: SortBy = "relevance"
    sort_order: SortOrder = "desc"
    limit: int = Field(default=100, ge=1, le=1000, description="Maximum candidate count")
    policy: WeightingPolicy = Field(
        default="balanced",
        description="Weighting policy for root-link similarity metadata"
    )
    context: SearchContext | None = None


class EdgeMetadata(BaseModel):
    """Explanatory data attached to an edge for display and analysis."""
    shared_keywords: list[str] = Field(default_factory=list)
    shared_authors: list[str] = Field(default_factory=list)
    similarity_score: float = Field(default=0.0, ge=0.0, le=1.0)
    context_boost: float = Field(default=0.0, ge=0.0)


class SimilarityResult(BaseModel):
    """Weight and metadata for one scored pair of papers."""
    weight: float = Field(..., ge=MIN_EDGE_WEIGHT, le=MAX_EDGE_WEIGHT)
    metadata: EdgeMetadata


class GraphNode(BaseModel):
    """
    One paper in a graph.

    Identity is the normalized paper id. Stub nodes are restored from stored
    relationships and carry only an id and a title.
    """
    id: str = Field(..., description="Normalized paper id")
    title: str = ""
    role: NodeRole
    weight: float = Field(default=1.0, description="Visual sizing weight")
    citation_count: int = 0
    year: int | None = None
    authors: str | None = None
    relevance_score: float = 0.0
    is_stub: bool = False
    paper: PaperRecord | None = None


class GraphEdge(BaseModel):
    """A directed edge between two normalized node ids."""
    source: str
    target: str
    type: EdgeType
    weight: float = Field(..., ge=MIN_EDGE_WEIGHT, le=MAX_EDGE_WEIGHT)
    metadata: EdgeMetadata = Field(default_factory=EdgeMetadata)


class GraphStats(BaseModel):
    """Summary counts for a graph."""
    total_nodes: int = 0
    total_edges: int = 0
    candidate_count: int = 0
    root_link_count: int = 0
    similarity_link_count: int = 0
    restored_node_count: int = 0


class Graph(BaseModel):
    """Node/edge graph centered on a root paper."""
    root_id: str | None = None
    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
    stats: GraphStats = Field(default_factory=GraphStats)

    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}

    def edge_pairs(self) -> set[tuple[str, str]]:
        return {(e.source, e.target) for e in self.edges}

    def refresh_stats(self, restored_node_count: int | None = None) -> None:
        """Recompute counts from the current nodes and edges."""
        self.stats = GraphStats(
            total_nodes=len(self.nodes),
            total_edges=len(self.edges),
            candidate_count=sum(1 for n in self.nodes if n.role == "candidate"),
            root_link_count=sum(1 for e in self.edges if e.type == "root-link"),
            similarity_link_count=sum(1 for e in self.edges if e.type == "similarity"),
            restored_node_count=(
                self.stats.restored_node_count
                if restored_node_count is None
                else restored_node_count
            ),
        )


class ChildRef(BaseModel):
    """A child paper stored under an expanded parent."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Normalized child paper id")
    title: str = Field(default="Unknown")
    source_parent_id: str | None = Field(default=None, alias="sourceParentId")
    paper: PaperRecord | None = Field(
        default=None,
        description="Full paper record when it was available at expansion time"
    )

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        return str(v) if v is not None else v

    @field_validator("title", mode="before")
    @classmethod
    def default_title(cls, v):
        return v or "Unknown"


class RelationshipEntry(BaseModel):
    """Children recorded for one parent (at most three)."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    child_papers: list[ChildRef] = Field(default_factory=list, alias="childPapers")


class StoreChildrenResult(BaseModel):
    """Outcome of merging children into a parent's entry."""
    added_count: int = Field(..., ge=0)
    total_children: int = Field(..., ge=0)
    stored_key: str


class JobFilters(BaseModel):
    """Optional server-side filters sent as query parameters with a job."""
    fields_of_study: list[str] | None = None
    min_citation_count: int | None = Field(default=None, ge=0)
    publication_types: list[str] | None = None
    year: str | None = Field(default=None, description="Year or range, e.g. '2019-2023'")
    sort: str | None = None

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.fields_of_study:
            params["fieldsOfStudy"] = ",".join(self.fields_of_study)
        if self.min_citation_count:
            params["minCitationCount"] = str(self.min_citation_count)
        if self.publication_types:
            params["publicationTypes"] = ",".join(self.publication_types)
        if self.year:
            params["year"] = self.year
        if self.sort:
            params["sort"] = self.sort
        return params


class JobStatus(BaseModel):
    """Polling response for a search job."""
    model_config = ConfigDict(extra="ignore")

    status: str = Field(
        ...,
        description="success and error are terminal; any other value means still running"
    )
    results: list[PaperRecord] = Field(default_factory=list)
    error: str | None = None

    @field_validator("results", mode="before")
    @classmethod
    def null_results(cls, v):
        return v or []


# Request/Response Models for API
class GraphRequest(BaseModel):
    """Request body for the /graph endpoint."""
    papers: list[PaperRecord] = Field(default_factory=list)
    session_id: str | None = Field(
        default=None,
        description="Session whose stored relationships are restored into the graph"
    )
    context: SearchContext | None = None


class SearchRequest(BaseModel):
    """Request body for the /search endpoint."""
    phrases: list[str] = Field(default_factory=list)
    query: str = ""
    limit: int = Field(default=100, description="Result page size: 100, 200 or 300")

    @field_validator("limit")
    @classmethod
    def check_page_size(cls, v: int) -> int:
        if v not in RESULT_PAGE_SIZES:
            raise ValueError("limit must be 100, 200 or 300")
        return v


class SearchResponse(BaseModel):
    """Best matching paper, or null when the job failed or timed out."""
    paper: PaperRecord | None = None


class ExpandRequest(BaseModel):
    """Request body for expanding a node within a session."""
    paper: PaperRecord
    keywords: list[str] = Field(default_factory=list)
    authors: list[str] = Field(default_factory=list)
    references: list[str] = Field(default_factory=list)
    weighting: WeightingPolicy = "balanced"


class ExpandResponse(BaseModel):
    """Children chosen for an expanded node and the store outcome."""
    parent_id: str
    children: list[ChildRef] = Field(default_factory=list)
    result: StoreChildrenResult


class StoreChildrenRequest(BaseModel):
    """Request body for storing parent-to-child relationships."""
    paper_id: str
    child_papers: list[ChildRef] = Field(default_factory=list)
