"""
Semantic Conventions for Span Attributes

Defines attribute keys following OpenTelemetry GenAI conventions
plus a custom librarian namespace for search and suggestion metrics.

Reference: https://opentelemetry.io/docs/specs/semconv/gen-ai/
"""

from typing import Any

# ---------------------------------------------------------------------------
# GENAI NAMESPACE (OTel standard)
# ---------------------------------------------------------------------------

GEN_AI_SYSTEM = "gen_ai.system"  # "openai"
GEN_AI_REQUEST_MODEL = "gen_ai.request.model"  # "text-embedding-3-small"
GEN_AI_USAGE_INPUT_TOKENS = "gen_ai.usage.input_tokens"


# ---------------------------------------------------------------------------
# LIBRARIAN NAMESPACE (custom)
# ---------------------------------------------------------------------------

# Embedding
LIBRARIAN_EMBEDDING_DIMENSIONS = "librarian.embedding.dimensions"
LIBRARIAN_EMBEDDING_ATTEMPTS = "librarian.embedding.attempts"
LIBRARIAN_EMBEDDING_COST_USD = "librarian.embedding.cost_usd"

# Search
LIBRARIAN_OWNER_ID = "librarian.owner_id"
LIBRARIAN_SEARCH_QUERY = "librarian.search.query"  # only when capture_query_text
LIBRARIAN_SEARCH_THRESHOLD = "librarian.search.threshold"
LIBRARIAN_SEARCH_LIMIT = "librarian.search.limit"
LIBRARIAN_SEARCH_CANDIDATES = "librarian.search.candidate_count"
LIBRARIAN_SEARCH_RESULTS = "librarian.search.result_count"
LIBRARIAN_SOURCE_DOCUMENT_ID = "librarian.search.source_document_id"

# Suggestions
LIBRARIAN_SUGGESTION_TRIGGER = "librarian.suggestions.trigger"
LIBRARIAN_SUGGESTION_COUNT = "librarian.suggestions.count"


# ---------------------------------------------------------------------------
# HELPERS
# ---------------------------------------------------------------------------


def search_attributes(
    owner_id: str,
    threshold: float,
    limit: int,
    query: str | None = None,
) -> dict[str, Any]:
    """Attributes for a librarian.search.* span."""
    attrs: dict[str, Any] = {
        LIBRARIAN_OWNER_ID: owner_id,
        LIBRARIAN_SEARCH_THRESHOLD: threshold,
        LIBRARIAN_SEARCH_LIMIT: limit,
    }
    if query is not None:
        attrs[LIBRARIAN_SEARCH_QUERY] = query
    return attrs


def suggestion_attributes(owner_id: str, trigger: str) -> dict[str, Any]:
    """Attributes for a librarian.suggestions.* span."""
    return {
        LIBRARIAN_OWNER_ID: owner_id,
        LIBRARIAN_SUGGESTION_TRIGGER: trigger,
    }
