"""
Wire contracts for the librarian core.

These Pydantic models are the shapes handed to whatever UI or API layer
sits on top of the core. SearchResponse in particular is the de facto
contract consumers parse, so field names here must stay stable.

WHY PYDANTIC HERE (and dataclasses elsewhere):
----------------------------------------------
Inputs like SearchFilters arrive from request bodies and need validation
(threshold in [0, 1], limit within bounds, known statuses). Outputs need
predictable JSON serialization. Internal records (Document, EmbeddingResult)
never cross the boundary, so they stay plain dataclasses.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from prompt_librarian.retrieval.document import DocumentStatus

DEFAULT_SEARCH_THRESHOLD = 0.7
DEFAULT_SEARCH_LIMIT = 10
MAX_SEARCH_LIMIT = 100


# ---------------------------------------------------------------------------
# SEARCH
# ---------------------------------------------------------------------------


class SearchFilters(BaseModel):
    """
    Filters for one semantic search call.

    threshold/limit stay None when the caller didn't set them; the search
    service resolves the defaults so the response can echo exactly what
    the caller asked for.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status: DocumentStatus | list[DocumentStatus] | None = None
    tags: list[str] | None = Field(
        default=None,
        description="Match documents sharing at least one tag (overlap, not subset)",
    )
    threshold: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        validation_alias=AliasChoices("threshold", "similarity_threshold"),
    )
    limit: int | None = Field(default=None, ge=1, le=MAX_SEARCH_LIMIT)

    @property
    def statuses(self) -> list[str] | None:
        """Status filter normalized to a list (None = any status)."""
        if self.status is None:
            return None
        if isinstance(self.status, list):
            return list(self.status) or None
        return [self.status]

    @property
    def effective_threshold(self) -> float:
        return DEFAULT_SEARCH_THRESHOLD if self.threshold is None else self.threshold

    @property
    def effective_limit(self) -> int:
        return DEFAULT_SEARCH_LIMIT if self.limit is None else self.limit

    def snapshot(self) -> dict:
        """JSON-safe dict of the filters actually set (for search history)."""
        return self.model_dump(mode="json", exclude_none=True)


class SearchResultMetadata(BaseModel):
    description: str | None = None
    tags: list[str] | None = None
    author: str | None = None
    created_at: datetime
    updated_at: datetime


class SearchResult(BaseModel):
    """A ranked document in a search response."""

    document_id: str
    title: str
    content: str
    similarity: float
    status: DocumentStatus
    metadata: SearchResultMetadata


class SearchResponse(BaseModel):
    """Response contract of semantic_search."""

    results: list[SearchResult] = Field(default_factory=list)
    query: str
    count: int
    filters: SearchFilters
    duration_ms: float


class QueryFrequency(BaseModel):
    query: str
    count: int


class SearchAnalytics(BaseModel):
    total_searches: int = 0
    avg_results_per_search: float = 0.0
    most_common_queries: list[QueryFrequency] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# SUGGESTIONS
# ---------------------------------------------------------------------------

SuggestionType = Literal["similar_document", "recent_work", "related_seed"]
SuggestionTrigger = Literal["manual", "prompt_save", "session_complete", "page_load"]

DEFAULT_SUGGESTION_TYPES: tuple[SuggestionType, ...] = ("similar_document", "recent_work")


class SuggestionMetadata(BaseModel):
    status: DocumentStatus | None = None
    tags: list[str] | None = None
    updated_at: datetime | None = None


class Suggestion(BaseModel):
    """A derived, never-persisted suggestion card."""

    type: SuggestionType
    title: str
    description: str
    action_label: str
    target_id: str
    similarity: float | None = None
    metadata: SuggestionMetadata | None = None


class SuggestionContext(BaseModel):
    doc_id: str | None = None
    owner_id: str
    trigger: SuggestionTrigger = "manual"


class SuggestionsResponse(BaseModel):
    suggestions: list[Suggestion] = Field(default_factory=list)
    context: SuggestionContext
    generated_at: datetime
