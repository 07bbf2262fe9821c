"""Tests for search phrase construction."""

from citation_network.services.phrase_builder import (
    build_phrases,
    build_phrases_from_user_input,
    context_from_papers,
)


class TestBuildPhrases:
    def test_title_and_three_fields(self, paper_factory):
        paper = paper_factory("1", title="Deep learning", fieldsOfStudy=["CS", "Math", "Bio", "Med"])
        phrases, query = build_phrases(paper)

        assert phrases == ["Deep learning", "CS", "Math", "Bio"]
        assert query == "Research related to Deep learning in fields: CS, Math, Bio, Med"

    def test_blank_title_dropped(self, paper_factory):
        phrases, _ = build_phrases(paper_factory("1", title="", fieldsOfStudy=["CS"]))
        assert phrases == ["CS"]


class TestBuildPhrasesFromUserInput:
    """Test combining paper data with user hints."""

    def test_phrase_mix_and_cap(self, paper_factory):
        paper = paper_factory("1", title="Protein folding", fieldsOfStudy=["Biology", "CS", "Chem"])
        result = build_phrases_from_user_input(
            paper,
            keywords=["alphafold", "structure", "prediction", "extra"],
            authors=["Jumper", "Hassabis", "Third"],
            references=["ref one", "ref two", "ref three"],
        )

        assert result.phrases == [
            "Protein folding",
            "Biology",
            "CS",
            "alphafold",
            "structure",
            "prediction",
            "Jumper",
            "Hassabis",
            "ref one",
            "ref two",
        ]
        assert len(result.phrases) <= 10

    def test_query_labels_parts(self, paper_factory):
        paper = paper_factory("1", title="Protein folding", fieldsOfStudy=["Biology"])
        result = build_phrases_from_user_input(paper, keywords=["alphafold"], authors=["Jumper"])

        assert result.query == (
            "Research related to Protein folding. in fields: Biology. "
            "focusing on keywords: alphafold. by authors: Jumper"
        )

    def test_short_query_padded(self, paper_factory):
        result = build_phrases_from_user_input(paper_factory("1", title="X"))
        assert len(result.query) >= 50
        assert result.query.startswith("Research related to X.")

    def test_long_query_truncated(self, paper_factory):
        paper = paper_factory("1", title="T")
        result = build_phrases_from_user_input(paper, references=["r" * 6000])
        assert len(result.query) == 5000
        assert result.query.endswith("...")

    def test_few_phrases_use_remaining_fields(self, paper_factory):
        paper = paper_factory("1", title="", fieldsOfStudy=["A", "B", "C"])
        result = build_phrases_from_user_input(paper)
        assert result.phrases == ["A", "B", "C"]


class TestContextFromPapers:
    def test_deduplicates_case_insensitively(self, paper_factory):
        papers = [
            paper_factory("1", fieldsOfStudy=["Biology", "CS"], authors="Jane Doe, John Roe"),
            paper_factory("2", fieldsOfStudy=["biology", "Physics"], authors="jane doe"),
        ]
        context = context_from_papers(papers)

        assert context.keywords == ["Biology", "CS", "Physics"]
        assert context.authors == ["Jane Doe", "John Roe"]

    def test_empty(self):
        context = context_from_papers([])
        assert context.keywords == []
        assert context.authors == []
