"""Test configuration and fixtures for pytest."""

import pytest

from citation_network.models.schemas import PaperRecord


def make_paper(paper_id: str, **overrides) -> PaperRecord:
    """Build a PaperRecord with neutral defaults."""
    data = {
        "id": paper_id,
        "title": f"Paper {paper_id}",
        "authors": "",
        "year": None,
        "fieldsOfStudy": [],
        "citationCount": 0,
        "score": 0.0,
    }
    data.update(overrides)
    return PaperRecord.model_validate(data)


@pytest.fixture
def paper_factory():
    return make_paper


@pytest.fixture
def service_paper_payload():
    """One paper in the search service's wire shape."""
    return {
        "id": 215416146,
        "title": "Attention Is All You Need",
        "authors": "Ashish Vaswani, Noam Shazeer, Niki Parmar",
        "year": 2017,
        "fieldsOfStudy": ["Computer Science", "Machine Learning"],
        "impactFactor": {"citationCount": 90000, "referenceCount": 40},
        "score": 0.92,
        "tldr": "A new simple network architecture based solely on attention mechanisms.",
        "abstract": None,
        "journalName": "NeurIPS",
        "publicationType": "conference",
    }


@pytest.fixture
def root_paper():
    return make_paper(
        "corpus:1000",
        title="Graph neural networks for citation analysis",
        authors="Ada Lovelace, Alan Turing",
        year=2020,
        fieldsOfStudy=["Computer Science", "Graph Theory"],
        citationCount=120,
        score=0.9,
        tldr="Graph neural networks model citation structure between scientific papers.",
    )


@pytest.fixture
def candidate_papers():
    """Five candidates with citation counts [0, 5, 50, 500, 5000]."""
    return [
        make_paper(
            f"paper-{i}",
            title=f"Candidate {i}",
            authors="Alan Turing" if i % 2 else "Grace Hopper",
            year=2015 + i,
            fieldsOfStudy=["Computer Science"] if i % 2 else ["Biology"],
            citationCount=citations,
            score=0.1 * (i + 1),
        )
        for i, citations in enumerate([0, 5, 50, 500, 5000])
    ]
