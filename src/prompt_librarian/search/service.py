"""
Semantic search over a user's prompts.

Pipeline per semantic_search call:
1. Empty query -> empty response (no embedding call, no history row)
2. Resolve threshold/limit defaults (0.7 / 10)
3. Embed the trimmed query
4. Fetch the owner's embedded candidates (status + tag-overlap filters)
5. Rank by cosine similarity at the threshold
6. Truncate to limit (rank first, never truncate-then-rank)
7. Map ranked ids back to full documents
8. Append a search history row (even for zero results)

Embedding/backend errors are NOT caught here: a failed query embed fails
the search visibly with a typed error. History is only written after
ranking succeeds, so a failed search never leaves a history row.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping, Sequence

from prompt_librarian.core.protocols import DocumentStore
from prompt_librarian.embeddings.client import EmbeddingClient
from prompt_librarian.observability.attributes import (
    LIBRARIAN_SEARCH_CANDIDATES,
    LIBRARIAN_SEARCH_RESULTS,
    LIBRARIAN_SOURCE_DOCUMENT_ID,
    search_attributes,
)
from prompt_librarian.observability.config import get_config as get_phoenix_config
from prompt_librarian.observability.tracer import TracerProtocol, get_tracer
from prompt_librarian.retrieval.document import Document, SearchHistoryEntry
from prompt_librarian.schemas.librarian import (
    SearchAnalytics,
    SearchFilters,
    SearchResponse,
    SearchResult,
    SearchResultMetadata,
)
from prompt_librarian.vector import Vector, rank_by_similarity

logger = logging.getLogger(__name__)

DEFAULT_SIMILAR_LIMIT = 5
DEFAULT_SIMILAR_THRESHOLD = 0.75
DEFAULT_RECENT_SEARCHES = 10


def to_search_result(doc: Document, similarity: float) -> SearchResult:
    """Map a ranked document onto the response contract."""
    return SearchResult(
        document_id=doc.id,
        title=doc.title,
        content=doc.content,
        similarity=similarity,
        status=doc.status,
        metadata=SearchResultMetadata(
            description=doc.description,
            tags=doc.tags,
            author=doc.author,
            created_at=doc.created_at,
            updated_at=doc.updated_at,
        ),
    )


class SearchService:
    """Answers semantic queries and "more like this" lookups for one store."""

    def __init__(
        self,
        embeddings: EmbeddingClient,
        store: DocumentStore,
        tracer: TracerProtocol | None = None,
    ):
        self._embeddings = embeddings
        self._store = store
        self._tracer = tracer or get_tracer()

    async def semantic_search(
        self,
        query_text: str,
        owner_id: str,
        filters: SearchFilters | Mapping[str, Any] | None = None,
    ) -> SearchResponse:
        """
        Search the owner's prompts by meaning.

        Args:
            query_text: Free-text query
            owner_id: Search is scoped to this owner's documents
            filters: SearchFilters (or a dict validated into one)

        Returns:
            SearchResponse with results ranked by similarity

        Raises:
            EmbeddingBackendError (and subclasses) if the query can't be embedded
        """
        filters = _coerce_filters(filters)
        query = (query_text or "").strip()

        if not query:
            return SearchResponse(results=[], query="", count=0, filters=filters, duration_ms=0.0)

        start = time.perf_counter()
        threshold = filters.effective_threshold
        limit = filters.effective_limit

        with self._tracer.start_span(
            "librarian.search.semantic",
            attributes=search_attributes(
                owner_id,
                threshold,
                limit,
                query=query if get_phoenix_config().capture_query_text else None,
            ),
        ) as span:
            query_embedding = await self._embeddings.generate_embedding(query)

            candidates = await self._store.fetch_candidates(
                owner_id,
                statuses=filters.statuses,
                tags=filters.tags,
            )
            span.set_attribute(LIBRARIAN_SEARCH_CANDIDATES, len(candidates))

            results = self._rank(query_embedding.vector, candidates, threshold, limit)

            await self._store.add_search_history(
                owner_id,
                query,
                len(results),
                filters.snapshot(),
            )
            span.set_attribute(LIBRARIAN_SEARCH_RESULTS, len(results))

        duration_ms = (time.perf_counter() - start) * 1000
        logger.debug(
            f"Search for {owner_id}: {len(results)}/{len(candidates)} results "
            f"in {duration_ms:.1f}ms"
        )

        return SearchResponse(
            results=results,
            query=query,
            count=len(results),
            filters=filters,
            duration_ms=duration_ms,
        )

    async def find_similar_prompts(
        self,
        doc_id: str,
        owner_id: str,
        limit: int = DEFAULT_SIMILAR_LIMIT,
        threshold: float = DEFAULT_SIMILAR_THRESHOLD,
    ) -> list[SearchResult]:
        """
        Prompts similar to an existing prompt (never including itself).

        Returns [] if the source doesn't exist, belongs to someone else,
        or has no embedding yet.
        """
        with self._tracer.start_span(
            "librarian.search.similar",
            attributes={
                **search_attributes(owner_id, threshold, limit),
                LIBRARIAN_SOURCE_DOCUMENT_ID: doc_id,
            },
        ) as span:
            source = await self._store.get_document(doc_id, owner_id)
            if source is None or not source.has_embedding:
                logger.debug(f"No embedded source document {doc_id} for {owner_id}")
                return []

            candidates = await self._store.fetch_candidates(owner_id, exclude_id=doc_id)
            candidates = [c for c in candidates if c.id != doc_id]
            span.set_attribute(LIBRARIAN_SEARCH_CANDIDATES, len(candidates))

            results = self._rank(source.embedding, candidates, threshold, limit)
            span.set_attribute(LIBRARIAN_SEARCH_RESULTS, len(results))
            return results

    async def get_recent_searches(
        self,
        owner_id: str,
        limit: int = DEFAULT_RECENT_SEARCHES,
    ) -> list[SearchHistoryEntry]:
        """Most recent searches first."""
        return await self._store.recent_searches(owner_id, limit)

    async def get_search_analytics(self, owner_id: str) -> SearchAnalytics:
        """Total searches, average result count, top 5 queries."""
        return await self._store.search_analytics(owner_id)

    @staticmethod
    def _rank(
        query: Vector,
        candidates: Sequence[Document],
        threshold: float,
        limit: int,
    ) -> list[SearchResult]:
        by_id = {doc.id: doc for doc in candidates}
        ranked = rank_by_similarity(query, candidates, threshold)[:limit]
        return [to_search_result(by_id[match.id], match.similarity) for match in ranked]


def _coerce_filters(filters: SearchFilters | Mapping[str, Any] | None) -> SearchFilters:
    if filters is None:
        return SearchFilters()
    if isinstance(filters, SearchFilters):
        return filters
    return SearchFilters.model_validate(dict(filters))
