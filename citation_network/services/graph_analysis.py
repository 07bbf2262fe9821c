"""Path finding and clustering over built graphs.

Edges are treated as undirected for reachability. Ids are normalized before
lookup.
"""

import logging
from itertools import islice

import networkx as nx
from pydantic import BaseModel, Field

from citation_network.models.schemas import Graph, GraphNode
from citation_network.services.identifiers import normalize_paper_id

logger = logging.getLogger(__name__)

MAX_PATHS = 100
UNKNOWN_YEAR = "unknown"
OTHER_CLUSTER = "other"


class CitationRange(BaseModel):
    """Inclusive citation-count bucket."""
    min: int = Field(..., ge=0)
    max: int = Field(..., ge=0)
    label: str


class Cluster(BaseModel):
    id: str
    label: str
    node_ids: list[str] = Field(default_factory=list)


DEFAULT_CITATION_RANGES = [
    CitationRange(min=0, max=9, label="0-9"),
    CitationRange(min=10, max=99, label="10-99"),
    CitationRange(min=100, max=999, label="100-999"),
    CitationRange(min=1000, max=10**9, label="1000+"),
]


def to_networkx(graph: Graph) -> nx.Graph:
    """Undirected networkx view with node and edge attributes copied over."""
    g = nx.Graph()
    for node in graph.nodes:
        g.add_node(node.id, title=node.title, role=node.role, year=node.year)
    for edge in graph.edges:
        g.add_edge(
            normalize_paper_id(edge.source),
            normalize_paper_id(edge.target),
            type=edge.type,
            weight=edge.weight,
        )
    return g


def shortest_path(graph: Graph, start_id: str, end_id: str) -> list[str] | None:
    """Fewest-hop path between two papers, or None when unreachable."""
    g = to_networkx(graph)
    start, end = normalize_paper_id(start_id), normalize_paper_id(end_id)
    if start not in g or end not in g:
        return None
    try:
        return nx.shortest_path(g, start, end)
    except nx.NetworkXNoPath:
        return None


def all_paths(graph: Graph, start_id: str, end_id: str, max_depth: int = 5) -> list[list[str]]:
    """Simple paths of at most ``max_depth`` hops, shortest first."""
    g = to_networkx(graph)
    start, end = normalize_paper_id(start_id), normalize_paper_id(end_id)
    if start not in g or end not in g:
        return []
    if start == end:
        return [[start]]
    paths = list(islice(nx.all_simple_paths(g, start, end, cutoff=max_depth), MAX_PATHS))
    if len(paths) == MAX_PATHS:
        logger.debug("Path search %s -> %s stopped at %d paths", start, end, MAX_PATHS)
    return sorted(paths, key=lambda p: (len(p), p))


def connected_node_ids(graph: Graph, node_id: str) -> set[str]:
    """Every node reachable from ``node_id``, itself included."""
    g = to_networkx(graph)
    start = normalize_paper_id(node_id)
    if start not in g:
        return {start}
    return set(nx.node_connected_component(g, start))


def cluster_by_year(nodes: list[GraphNode], year_range: int = 5) -> list[Cluster]:
    """Group nodes into ``year_range``-wide buckets such as "2015-2019"."""
    if year_range < 1:
        raise ValueError("year_range must be at least 1")
    buckets: dict[str, list[str]] = {}
    for node in nodes:
        if not node.year:
            key = UNKNOWN_YEAR
        else:
            start = node.year // year_range * year_range
            key = f"{start}-{start + year_range - 1}"
        buckets.setdefault(key, []).append(node.id)
    return [
        Cluster(id=key, label="Unknown Year" if key == UNKNOWN_YEAR else key, node_ids=ids)
        for key, ids in buckets.items()
    ]


def cluster_by_citations(
    nodes: list[GraphNode], ranges: list[CitationRange] | None = None
) -> list[Cluster]:
    """Assign each node to the first matching range; the rest go to "other"."""
    ranges = DEFAULT_CITATION_RANGES if ranges is None else ranges
    buckets: dict[str, list[str]] = {r.label: [] for r in ranges}
    buckets[OTHER_CLUSTER] = []
    for node in nodes:
        label = next(
            (r.label for r in ranges if r.min <= node.citation_count <= r.max),
            OTHER_CLUSTER,
        )
        buckets[label].append(node.id)
    return [
        Cluster(id=label, label=label, node_ids=ids) for label, ids in buckets.items() if ids
    ]


def cluster_by_role(nodes: list[GraphNode]) -> list[Cluster]:
    buckets: dict[str, list[str]] = {}
    for node in nodes:
        buckets.setdefault(node.role, []).append(node.id)
    return [
        Cluster(id=role, label=role.capitalize(), node_ids=ids) for role, ids in buckets.items()
    ]
