"""Tests for the searchContext tool."""

from __future__ import annotations

import pytest

from tailr_agent.core.session import ContentType, ContextUpdate, SessionContextStore
from tailr_agent.tools.base import ToolContext, UploadedFile
from tailr_agent.tools.search_tool import NO_DOCUMENTS_MESSAGE, SearchContextTool, keyword_snippet

NOTES = UploadedFile(
    id="file-1",
    name="notes.txt",
    content="Our platform team runs Kubernetes on AWS.\n\nThe office has a nice espresso machine.",
)


def _context(embeddings, files=(), session=None, **settings) -> ToolContext:
    return ToolContext(conversation_id="c1", files=files, session=session, embeddings=embeddings, settings=settings)


@pytest.mark.asyncio
async def test_no_documents(embeddings):
    result = await SearchContextTool().execute({"query": "python", "maxResults": 5}, _context(embeddings))

    assert result.success
    assert result.data == {"results": [], "totalFound": 0, "filesSearched": 0, "message": NO_DOCUMENTS_MESSAGE}


@pytest.mark.asyncio
async def test_keyword_hit_ranks_first_with_snippet(embeddings):
    session = SessionContextStore()
    session.update_content("c1", ContextUpdate(ContentType.RESUME, "Python engineer with Kafka experience", 1))

    result = await SearchContextTool().execute(
        {"query": "kubernetes", "maxResults": 5}, _context(embeddings, [NOTES], session)
    )

    data = result.data
    assert data["filesSearched"] == 2
    top = data["results"][0]
    assert top["source"] == "notes.txt"
    assert top["fileId"] == "file-1"
    assert top["matchType"] == "keyword"
    assert "Kubernetes" in top["content"]
    assert top["score"] >= 0.15
    assert data["message"].startswith(f"Found {data['totalFound']} relevant passages in 2 document(s)")


@pytest.mark.asyncio
async def test_session_documents_are_searched(embeddings):
    session = SessionContextStore()
    session.update_content("c1", ContextUpdate(ContentType.JOB_DESCRIPTION, "We use Terraform daily", 1))

    result = await SearchContextTool().execute({"query": "terraform", "maxResults": 5}, _context(embeddings, session=session))

    top = result.data["results"][0]
    assert top["source"] == "job_description"
    assert top["fileId"] == "c1-job_description"


@pytest.mark.asyncio
async def test_semantic_results_below_threshold_are_dropped(embeddings):
    result = await SearchContextTool().execute(
        {"query": "zebra", "maxResults": 5}, _context(embeddings, [NOTES], min_score=1.01)
    )

    assert result.data["results"] == []
    assert result.data["message"] == "No relevant information found in uploaded files for this query"


@pytest.mark.asyncio
async def test_results_are_limited_but_total_is_reported(embeddings):
    files = [UploadedFile(id=f"f{i}", name=f"doc{i}.txt", content=f"python note number {i}") for i in range(3)]

    result = await SearchContextTool().execute({"query": "python", "maxResults": 2}, _context(embeddings, files))

    assert len(result.data["results"]) == 2
    assert result.data["totalFound"] == 3
    scores = [r["score"] for r in result.data["results"]]
    assert scores == sorted(scores, reverse=True)


@pytest.mark.asyncio
async def test_unembeddable_passages_are_skipped(embeddings):
    files = [
        UploadedFile(id="ok", name="ok.txt", content="python developer"),
        UploadedFile(id="bad", name="bad.txt", content="python FAIL"),
    ]

    result = await SearchContextTool().execute({"query": "python", "maxResults": 5}, _context(embeddings, files))

    assert [r["fileId"] for r in result.data["results"]] == ["ok"]
    assert result.data["filesSearched"] == 2


def test_keyword_snippet_window():
    content = "a" * 300 + "needle" + "b" * 300

    snippet = keyword_snippet(content, "NEEDLE", radius=100)
    assert len(snippet) == 206
    assert "needle" in snippet
    assert keyword_snippet(content, "missing") is None
