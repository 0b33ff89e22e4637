"""
Proactive suggestions - a blended feed shown without an explicit query.

Suggestion types:
- similar_document: prompts close to an anchor prompt (explicit, or the
  owner's most recently updated embedded prompt)
- recent_work: the owner's most recently touched prompts
- related_seed: reserved type, always contributes nothing

Each generator is best-effort: its failure is logged and contributes zero
suggestions, never suppressing the other generators.

SCORING:
--------
similar_document  similarity x 100, +50 when similarity > 0.85
recent_work       +80 if updated < 24h ago, +40 if < 7 days, else +20
related_seed      +60
All types are merged, sorted by score descending (stable), then truncated.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Awaitable, Callable, Sequence

from prompt_librarian.core.outcome import Outcome
from prompt_librarian.core.protocols import DocumentStore
from prompt_librarian.observability.attributes import (
    LIBRARIAN_SUGGESTION_COUNT,
    suggestion_attributes,
)
from prompt_librarian.observability.tracer import TracerProtocol, get_tracer
from prompt_librarian.retrieval.document import utcnow
from prompt_librarian.schemas.librarian import (
    DEFAULT_SUGGESTION_TYPES,
    Suggestion,
    SuggestionContext,
    SuggestionMetadata,
    SuggestionsResponse,
    SuggestionTrigger,
    SuggestionType,
)
from prompt_librarian.search.service import SearchService

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTION_LIMIT = 8
DEFAULT_PROMPT_SUGGESTION_LIMIT = 5
SIMILAR_SUGGESTION_THRESHOLD = 0.4

HIGH_SIMILARITY = 0.85
HIGH_SIMILARITY_BONUS = 50
RECENT_DAY_SCORE = 80
RECENT_WEEK_SCORE = 40
RECENT_OLDER_SCORE = 20
RELATED_SEED_SCORE = 60

SUGGESTION_TYPES: tuple[str, ...] = ("similar_document", "recent_work", "related_seed")


# ---------------------------------------------------------------------------
# SCORING / FORMATTING (pure)
# ---------------------------------------------------------------------------


def hours_since(timestamp: datetime, now: datetime) -> float:
    return (now - timestamp).total_seconds() / 3600


def score_suggestion(suggestion: Suggestion, now: datetime) -> float:
    """Priority score for a suggestion (higher = shown first)."""
    score = 0.0

    if suggestion.type == "similar_document" and suggestion.similarity is not None:
        score += suggestion.similarity * 100
        if suggestion.similarity > HIGH_SIMILARITY:
            score += HIGH_SIMILARITY_BONUS

    elif suggestion.type == "recent_work":
        updated_at = suggestion.metadata.updated_at if suggestion.metadata else None
        if updated_at is not None:
            hours = hours_since(updated_at, now)
            if hours < 24:
                score += RECENT_DAY_SCORE
            elif hours < 24 * 7:
                score += RECENT_WEEK_SCORE
            else:
                score += RECENT_OLDER_SCORE

    elif suggestion.type == "related_seed":
        score += RELATED_SEED_SCORE

    return score


def rank_suggestions(suggestions: Sequence[Suggestion], now: datetime, limit: int) -> list[Suggestion]:
    """Merge-sort by score descending, keeping input order on ties, then truncate."""
    ranked = sorted(suggestions, key=lambda s: score_suggestion(s, now), reverse=True)
    return ranked[:limit]


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'} ago"


def format_relative_time(timestamp: datetime, now: datetime) -> str:
    """Human-readable age, e.g. "just now", "3 hours ago", "2 weeks ago"."""
    seconds = (now - timestamp).total_seconds()
    minutes = math.floor(seconds / 60)
    hours = math.floor(seconds / 3600)
    days = math.floor(seconds / 86400)

    if minutes < 1:
        return "just now"
    if minutes < 60:
        return _plural(minutes, "minute")
    if hours < 24:
        return _plural(hours, "hour")
    if days < 7:
        return _plural(days, "day")
    if days < 30:
        return _plural(days // 7, "week")
    if days < 365:
        return _plural(days // 30, "month")
    return _plural(days // 365, "year")


# ---------------------------------------------------------------------------
# ENGINE
# ---------------------------------------------------------------------------


class SuggestionEngine:
    """Builds the suggestion feed from search similarity plus recency."""

    def __init__(
        self,
        search: SearchService,
        store: DocumentStore,
        tracer: TracerProtocol | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._search = search
        self._store = store
        self._tracer = tracer or get_tracer()
        self._clock = clock

    async def generate_suggestions(
        self,
        owner_id: str,
        doc_id: str | None = None,
        trigger: SuggestionTrigger = "manual",
        limit: int = DEFAULT_SUGGESTION_LIMIT,
        include_types: Sequence[SuggestionType] = DEFAULT_SUGGESTION_TYPES,
        conversation_context: str | None = None,
    ) -> SuggestionsResponse:
        """
        Generate a blended, scored suggestion feed for an owner.

        Args:
            owner_id: Whose prompts to draw from
            doc_id: Anchor prompt for similar_document (optional)
            trigger: What caused the request (echoed in the response context)
            limit: Maximum suggestions returned after merging
            include_types: Which generators to run
            conversation_context: Reserved for related_seed
        """
        unknown = set(include_types) - set(SUGGESTION_TYPES)
        if unknown:
            raise ValueError(f"Unknown suggestion types: {sorted(unknown)}")

        now = self._clock()
        per_type = max(1, math.ceil(limit / 2))
        suggestions: list[Suggestion] = []
        anchor_id = doc_id

        with self._tracer.start_span(
            "librarian.suggestions.generate",
            attributes=suggestion_attributes(owner_id, trigger),
        ) as span:
            if "similar_document" in include_types:
                if anchor_id is None:
                    anchor_id = await self._implicit_anchor(owner_id)
                suggestions += await self._run(
                    "similar_document",
                    lambda: self._similar_document_suggestions(owner_id, anchor_id, per_type),
                )

            if "recent_work" in include_types:
                suggestions += await self._run(
                    "recent_work",
                    lambda: self._recent_work_suggestions(owner_id, per_type, anchor_id, now),
                )

            if "related_seed" in include_types:
                suggestions += await self._run(
                    "related_seed",
                    lambda: self._related_seed_suggestions(owner_id, conversation_context),
                )

            ranked = rank_suggestions(suggestions, now, limit)
            span.set_attribute(LIBRARIAN_SUGGESTION_COUNT, len(ranked))

        return SuggestionsResponse(
            suggestions=ranked,
            context=SuggestionContext(doc_id=doc_id, owner_id=owner_id, trigger=trigger),
            generated_at=now,
        )

    async def get_suggestions_for_prompt(
        self,
        doc_id: str,
        owner_id: str,
        limit: int = DEFAULT_PROMPT_SUGGESTION_LIMIT,
    ) -> SuggestionsResponse:
        """Suggestions right after a prompt is saved."""
        return await self.generate_suggestions(
            owner_id, doc_id=doc_id, trigger="prompt_save", limit=limit
        )

    async def get_suggestions_for_page_load(
        self,
        owner_id: str,
        limit: int = DEFAULT_SUGGESTION_LIMIT,
    ) -> SuggestionsResponse:
        """Suggestions when the librarian page opens."""
        return await self.generate_suggestions(owner_id, trigger="page_load", limit=limit)

    # -----------------------------------------------------------------------
    # GENERATORS
    # -----------------------------------------------------------------------

    async def _run(
        self,
        suggestion_type: str,
        generator: Callable[[], Awaitable[list[Suggestion]]],
    ) -> list[Suggestion]:
        """Run one generator; its failure never escapes."""
        try:
            produced = await generator()
        except Exception as e:
            outcome = Outcome.failed(e)
            logger.warning(
                f"Error generating {suggestion_type} suggestions: {outcome.reason}",
                exc_info=e,
            )
            return []

        outcome = Outcome.succeeded(f"{len(produced)} suggestions")
        logger.debug(f"{suggestion_type} generator {outcome.status.value}: {outcome.reason}")
        return produced

    async def _implicit_anchor(self, owner_id: str) -> str | None:
        try:
            latest = await self._store.latest_embedded_document(owner_id)
        except Exception as e:
            logger.warning(f"Could not resolve anchor document for {owner_id}: {e}")
            return None
        return latest.id if latest else None

    async def _similar_document_suggestions(
        self,
        owner_id: str,
        anchor_id: str | None,
        limit: int,
    ) -> list[Suggestion]:
        if anchor_id is None:
            return []

        similar = await self._search.find_similar_prompts(
            anchor_id, owner_id, limit=limit, threshold=SIMILAR_SUGGESTION_THRESHOLD
        )
        return [
            Suggestion(
                type="similar_document",
                title=result.title,
                description=f"{result.similarity * 100:.0f}% similar",
                action_label="View",
                target_id=result.document_id,
                similarity=result.similarity,
                metadata=SuggestionMetadata(
                    status=result.status,
                    tags=result.metadata.tags,
                    updated_at=result.metadata.updated_at,
                ),
            )
            for result in similar
        ]

    async def _recent_work_suggestions(
        self,
        owner_id: str,
        limit: int,
        exclude_id: str | None,
        now: datetime,
    ) -> list[Suggestion]:
        documents = await self._store.recent_documents(owner_id, limit, exclude_id=exclude_id)
        return [
            Suggestion(
                type="recent_work",
                title=doc.title,
                description=f"Last edited {format_relative_time(doc.updated_at, now)}",
                action_label="Open",
                target_id=doc.id,
                metadata=SuggestionMetadata(
                    status=doc.status,
                    tags=doc.tags,
                    updated_at=doc.updated_at,
                ),
            )
            for doc in documents
        ]

    async def _related_seed_suggestions(
        self,
        owner_id: str,
        conversation_context: str | None,
    ) -> list[Suggestion]:
        # TODO: produce suggestions once seed patches are stored alongside prompts
        return []
