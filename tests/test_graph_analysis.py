"""Tests for path finding and clustering."""

import pytest

from citation_network.models.schemas import Graph, GraphEdge, GraphNode
from citation_network.services.graph_analysis import (
    CitationRange,
    all_paths,
    cluster_by_citations,
    cluster_by_role,
    cluster_by_year,
    connected_node_ids,
    shortest_path,
    to_networkx,
)


def _edge(source, target, type_="root-link"):
    return GraphEdge(source=source, target=target, type=type_, weight=1.0)


@pytest.fixture
def graph():
    """1 - 2 - 3 - 4 chain with a shortcut 1 - 3, plus isolated 9."""
    nodes = [
        GraphNode(id="1", role="root", year=2020, citation_count=500),
        GraphNode(id="2", role="candidate", year=2016, citation_count=5),
        GraphNode(id="3", role="candidate", year=2019, citation_count=50),
        GraphNode(id="4", role="candidate", year=None, citation_count=5000),
        GraphNode(id="9", role="candidate", year=2001, citation_count=0),
    ]
    edges = [
        _edge("1", "2"),
        _edge("2", "3", "similarity"),
        _edge("3", "4", "similarity"),
        _edge("1", "3"),
    ]
    return Graph(root_id="1", nodes=nodes, edges=edges)


class TestPaths:
    """Test reachability queries."""

    def test_networkx_view(self, graph):
        g = to_networkx(graph)
        assert set(g.nodes) == {"1", "2", "3", "4", "9"}
        assert g.number_of_edges() == 4

    def test_shortest_path_is_undirected(self, graph):
        assert shortest_path(graph, "4", "1") == ["4", "3", "1"]

    def test_shortest_path_normalizes_ids(self, graph):
        assert shortest_path(graph, "root-1", "paper-4") == ["1", "3", "4"]

    def test_unreachable_or_unknown(self, graph):
        assert shortest_path(graph, "1", "9") is None
        assert shortest_path(graph, "1", "404") is None

    def test_same_node(self, graph):
        assert shortest_path(graph, "2", "2") == ["2"]
        assert all_paths(graph, "2", "2") == [["2"]]

    def test_all_paths_shortest_first(self, graph):
        paths = all_paths(graph, "1", "4")
        assert paths == [["1", "3", "4"], ["1", "2", "3", "4"]]

    def test_all_paths_depth_limit(self, graph):
        assert all_paths(graph, "1", "4", max_depth=2) == [["1", "3", "4"]]
        assert all_paths(graph, "1", "9") == []

    def test_connected_node_ids(self, graph):
        assert connected_node_ids(graph, "paper-2") == {"1", "2", "3", "4"}
        assert connected_node_ids(graph, "9") == {"9"}
        assert connected_node_ids(graph, "missing") == {"missing"}


class TestClusters:
    """Test grouping of nodes for display."""

    def test_cluster_by_year(self, graph):
        clusters = {c.id: c for c in cluster_by_year(graph.nodes)}

        assert clusters["2020-2024"].node_ids == ["1"]
        assert clusters["2015-2019"].node_ids == ["2", "3"]
        assert clusters["2000-2004"].node_ids == ["9"]
        assert clusters["unknown"].node_ids == ["4"]
        assert clusters["unknown"].label == "Unknown Year"

    def test_cluster_by_year_rejects_zero_range(self, graph):
        with pytest.raises(ValueError):
            cluster_by_year(graph.nodes, year_range=0)

    def test_cluster_by_citations_default_ranges(self, graph):
        clusters = {c.label: c.node_ids for c in cluster_by_citations(graph.nodes)}
        assert clusters == {
            "0-9": ["2", "9"],
            "10-99": ["3"],
            "100-999": ["1"],
            "1000+": ["4"],
        }

    def test_cluster_by_citations_other_and_empty_dropped(self, graph):
        ranges = [
            CitationRange(min=0, max=10, label="low"),
            CitationRange(min=5, max=100, label="overlapping"),
            CitationRange(min=10000, max=20000, label="huge"),
        ]
        clusters = {c.label: c.node_ids for c in cluster_by_citations(graph.nodes, ranges)}
        assert clusters == {"low": ["2", "9"], "overlapping": ["3"], "other": ["1", "4"]}

    def test_cluster_by_role(self, graph):
        clusters = cluster_by_role(graph.nodes)
        assert [(c.id, c.label, c.node_ids) for c in clusters] == [
            ("root", "Root", ["1"]),
            ("candidate", "Candidate", ["2", "3", "4", "9"]),
        ]
