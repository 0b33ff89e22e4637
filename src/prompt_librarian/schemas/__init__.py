"""Pydantic wire contracts returned to API/UI layers."""

from prompt_librarian.schemas.librarian import (
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_SEARCH_THRESHOLD,
    DEFAULT_SUGGESTION_TYPES,
    QueryFrequency,
    SearchAnalytics,
    SearchFilters,
    SearchResponse,
    SearchResult,
    SearchResultMetadata,
    Suggestion,
    SuggestionContext,
    SuggestionMetadata,
    SuggestionsResponse,
    SuggestionTrigger,
    SuggestionType,
)

__all__ = [
    "DEFAULT_SEARCH_LIMIT",
    "DEFAULT_SEARCH_THRESHOLD",
    "DEFAULT_SUGGESTION_TYPES",
    "QueryFrequency",
    "SearchAnalytics",
    "SearchFilters",
    "SearchResponse",
    "SearchResult",
    "SearchResultMetadata",
    "Suggestion",
    "SuggestionContext",
    "SuggestionMetadata",
    "SuggestionsResponse",
    "SuggestionTrigger",
    "SuggestionType",
]
