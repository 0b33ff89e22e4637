"""Semantic search service."""

from prompt_librarian.search.service import (
    DEFAULT_SIMILAR_LIMIT,
    DEFAULT_SIMILAR_THRESHOLD,
    SearchService,
    to_search_result,
)

__all__ = [
    "SearchService",
    "to_search_result",
    "DEFAULT_SIMILAR_LIMIT",
    "DEFAULT_SIMILAR_THRESHOLD",
]
