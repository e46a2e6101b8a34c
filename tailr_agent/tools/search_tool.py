"""searchContext: semantic search over uploaded files and session documents."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from tailr_agent.core.session import ContentType
from tailr_agent.domain.resume_parser import split_passages

from .base import BaseTool, ToolContext, ToolResult, require_embeddings
from .definitions import SEARCH_CONTEXT

logger = logging.getLogger(__name__)

NO_DOCUMENTS_MESSAGE = "No context files available to search"


@dataclass
class _Document:
    source: str
    file_id: Optional[str]
    content: str


@dataclass
class _Passage:
    document: _Document
    text: str


def keyword_snippet(content: str, query: str, radius: int = 100) -> Optional[str]:
    """Text around the first case-insensitive occurrence of *query*, or None."""
    index = content.lower().find(query.lower())
    if index < 0:
        return None
    start = max(0, index - radius)
    end = min(len(content), index + len(query) + radius)
    return content[start:end]


class SearchContextTool(BaseTool):
    """Rank passages by cosine similarity to the query, with a bonus for literal hits."""

    definition = SEARCH_CONTEXT

    async def execute(self, input: Dict[str, Any], context: ToolContext) -> ToolResult:
        query = input["query"].strip()
        max_results = int(input.get("maxResults", 5))
        min_score = float(context.setting("min_score", 0.2))
        keyword_bonus = float(context.setting("keyword_bonus", 0.15))
        passage_chars = int(context.setting("passage_chars", 500))
        max_passages = int(context.setting("max_passages", 500))
        radius = int(context.setting("snippet_radius", 100))

        documents = self._collect_documents(context)
        if not documents:
            return ToolResult.ok(results=[], totalFound=0, filesSearched=0, message=NO_DOCUMENTS_MESSAGE)

        passages = [
            _Passage(document=doc, text=text)
            for doc in documents
            for text in split_passages(doc.content, max_chars=passage_chars)
        ]
        if len(passages) > max_passages:
            logger.warning("Searching only the first %d of %d passages", max_passages, len(passages))
            passages = passages[:max_passages]

        embeddings = require_embeddings(context)
        query_vector = (await embeddings.embed(query)).vector
        batch = await embeddings.embed_batch([p.text for p in passages])
        if batch.error:
            logger.warning("Some passages could not be embedded: %s", batch.error)

        scored: List[Dict[str, Any]] = []
        for result in batch.embeddings:
            passage = passages[result.index]
            score = embeddings.similarity(query_vector, result.vector)
            snippet = keyword_snippet(passage.text, query, radius)
            if snippet is not None:
                score = min(1.0, score + keyword_bonus)
            elif score < min_score:
                continue
            scored.append(
                {
                    "source": passage.document.source,
                    "fileId": passage.document.file_id,
                    "content": snippet if snippet is not None else passage.text,
                    "score": round(score, 4),
                    "matchType": "keyword" if snippet is not None else "semantic",
                }
            )

        scored.sort(key=lambda r: r["score"], reverse=True)
        logger.info("searchContext '%s': %d match(es) in %d document(s)", query, len(scored), len(documents))

        return ToolResult.ok(
            results=scored[:max_results],
            totalFound=len(scored),
            filesSearched=len(documents),
            message=(
                f"Found {len(scored)} relevant passages in {len(documents)} document(s)"
                if scored
                else "No relevant information found in uploaded files for this query"
            ),
        )

    def _collect_documents(self, context: ToolContext) -> List[_Document]:
        documents = [
            _Document(source=f.name, file_id=f.id, content=f.content) for f in context.files if f.content and f.content.strip()
        ]
        if context.session is not None:
            for content_type in (ContentType.RESUME, ContentType.JOB_DESCRIPTION):
                stored = context.session.get_content(context.conversation_id, content_type)
                if stored and stored.content.strip():
                    documents.append(_Document(source=content_type.value, file_id=stored.id, content=stored.content))
        return documents
