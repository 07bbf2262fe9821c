"""Tests for the parsing boundary of service data."""

import pytest
from pydantic import ValidationError

from citation_network.models.schemas import (
    ChildRef,
    Graph,
    GraphEdge,
    GraphNode,
    JobFilters,
    JobStatus,
    PaperRecord,
    RelationshipEntry,
    SearchRequest,
    split_authors,
)


class TestPaperRecord:
    """Test PaperRecord parsing of the service's wire shape."""

    def test_parses_service_payload(self, service_paper_payload):
        paper = PaperRecord.model_validate(service_paper_payload)

        assert paper.id == "215416146"
        assert paper.citation_count == 90000
        assert paper.reference_count == 40
        assert paper.relevance_score == 0.92
        assert paper.fields_of_study == ("Computer Science", "Machine Learning")
        assert paper.journal_name == "NeurIPS"
        assert paper.author_list == ["Ashish Vaswani", "Noam Shazeer", "Niki Parmar"]

    def test_nulls_become_neutral_defaults(self):
        paper = PaperRecord.model_validate(
            {
                "id": "1",
                "title": None,
                "authors": None,
                "fieldsOfStudy": None,
                "impactFactor": None,
                "citationCount": None,
                "score": None,
            }
        )
        assert paper.title == ""
        assert paper.authors == ""
        assert paper.fields_of_study == ()
        assert paper.citation_count == 0
        assert paper.relevance_score == 0.0

    def test_author_list_input(self):
        paper = PaperRecord.model_validate({"id": "1", "authors": ["A. One", " ", "B. Two"]})
        assert paper.authors == "A. One, B. Two"

    def test_unknown_keys_ignored(self):
        paper = PaperRecord.model_validate({"id": "1", "pdfLink": "https://x"})
        assert not hasattr(paper, "pdfLink")

    def test_missing_id_rejected(self):
        with pytest.raises(ValidationError):
            PaperRecord.model_validate({"title": "No id"})

    def test_frozen(self, service_paper_payload):
        paper = PaperRecord.model_validate(service_paper_payload)
        with pytest.raises(ValidationError):
            paper.title = "changed"

    def test_service_dict_round_trips(self, service_paper_payload):
        paper = PaperRecord.model_validate(service_paper_payload)
        assert PaperRecord.model_validate(paper.to_service_dict()) == paper


class TestSplitAuthors:
    def test_trims_and_drops_blanks(self):
        assert split_authors(" A , ,B ") == ["A", "B"]
        assert split_authors(None) == []


class TestRelationshipLayout:
    """Persisted relationship maps use camelCase keys."""

    def test_child_ref_aliases(self):
        child = ChildRef.model_validate({"id": 456, "title": None, "sourceParentId": "123"})
        assert child.id == "456"
        assert child.title == "Unknown"
        assert child.source_parent_id == "123"
        dumped = child.model_dump(by_alias=True, exclude_none=True)
        assert dumped == {"id": "456", "title": "Unknown", "sourceParentId": "123"}

    def test_entry_accepts_stored_shape(self):
        entry = RelationshipEntry.model_validate(
            {"childPapers": [{"id": "1", "title": "A"}, {"id": "2", "title": "B"}]}
        )
        assert [c.id for c in entry.child_papers] == ["1", "2"]


class TestGraph:
    def test_refresh_stats_counts(self):
        graph = Graph(
            root_id="1",
            nodes=[
                GraphNode(id="1", role="root"),
                GraphNode(id="2", role="candidate"),
                GraphNode(id="3", role="candidate"),
            ],
            edges=[
                GraphEdge(source="1", target="2", type="root-link", weight=1.0),
                GraphEdge(source="1", target="3", type="root-link", weight=1.0),
                GraphEdge(source="2", target="3", type="similarity", weight=0.5),
            ],
        )
        graph.refresh_stats(restored_node_count=1)

        assert graph.stats.total_nodes == 3
        assert graph.stats.total_edges == 3
        assert graph.stats.candidate_count == 2
        assert graph.stats.root_link_count == 2
        assert graph.stats.similarity_link_count == 1
        assert graph.stats.restored_node_count == 1

    def test_edge_weight_bounds(self):
        with pytest.raises(ValidationError):
            GraphEdge(source="1", target="2", type="similarity", weight=0.05)
        with pytest.raises(ValidationError):
            GraphEdge(source="1", target="2", type="similarity", weight=3.5)


class TestJobModels:
    def test_filters_to_params(self):
        filters = JobFilters(
            fields_of_study=["Biology", "Medicine"],
            min_citation_count=10,
            year="2019-2023",
        )
        assert filters.to_params() == {
            "fieldsOfStudy": "Biology,Medicine",
            "minCitationCount": "10",
            "year": "2019-2023",
        }

    def test_status_null_results(self):
        status = JobStatus.model_validate({"status": "queued", "results": None})
        assert status.results == []

    def test_status_accepts_unlisted_state(self):
        assert JobStatus.model_validate({"status": "running"}).status == "running"

    def test_status_required(self):
        with pytest.raises(ValidationError):
            JobStatus.model_validate({"results": []})


class TestSearchRequest:
    @pytest.mark.parametrize("limit", [100, 200, 300])
    def test_service_page_sizes(self, limit):
        assert SearchRequest(limit=limit).limit == limit

    @pytest.mark.parametrize("limit", [1, 50, 150, 1000])
    def test_other_sizes_rejected(self, limit):
        with pytest.raises(ValidationError):
            SearchRequest(limit=limit)
