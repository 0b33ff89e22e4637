"""Proactive suggestion feed."""

from prompt_librarian.suggestions.engine import (
    SUGGESTION_TYPES,
    SuggestionEngine,
    format_relative_time,
    rank_suggestions,
    score_suggestion,
)

__all__ = [
    "SuggestionEngine",
    "SUGGESTION_TYPES",
    "score_suggestion",
    "rank_suggestions",
    "format_relative_time",
]
