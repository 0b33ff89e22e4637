"""
Unit Tests for SearchService

Tests semantic search, similar-prompt lookup and search history through
the in-memory store with a scripted embedding backend.

Query "budget planning" embeds to [1, 0, 0], so each document's
similarity is just the first component of its (unit) embedding.
"""

import pytest
from pydantic import ValidationError

from conftest import make_doc
from prompt_librarian.errors import AuthError, RateLimitError
from prompt_librarian.observability.tracer import NoOpTracer
from prompt_librarian.schemas.librarian import SearchFilters
from prompt_librarian.search.service import SearchService


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------


@pytest.fixture
def docs():
    return [
        make_doc("exact", [1.0, 0.0, 0.0], tags=["finance"], updated_hours_ago=5),
        make_doc("close", [0.8, 0.6, 0.0], tags=["finance", "planning"], status="draft"),
        make_doc("medium", [0.6, 0.8, 0.0], tags=["travel"], status="archived"),
        make_doc("unrelated", [0.0, 1.0, 0.0]),
        make_doc("unembedded", None),
        make_doc("someone-else", [1.0, 0.0, 0.0], owner_id="owner-2"),
    ]


@pytest.fixture
def search(client, store, docs):
    for doc in docs:
        store._documents[doc.id] = doc
    return SearchService(client, store, tracer=NoOpTracer())


def ids(results):
    return [r.document_id for r in results]


# ---------------------------------------------------------------------------
# SEMANTIC SEARCH
# ---------------------------------------------------------------------------


class TestSemanticSearch:
    """Tests for semantic_search."""

    @pytest.mark.asyncio
    async def test_default_threshold_ranks_descending(self, search):
        response = await search.semantic_search("budget planning", "owner-1")

        assert ids(response.results) == ["exact", "close"]
        assert response.count == 2
        assert response.query == "budget planning"
        assert response.results[0].similarity == pytest.approx(1.0)
        assert response.results[1].similarity == pytest.approx(0.8)
        assert response.duration_ms >= 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   "])
    async def test_empty_query_makes_no_calls(self, search, backend, store, query):
        response = await search.semantic_search(query, "owner-1", {})

        assert response.count == 0
        assert response.results == []
        assert response.query == ""
        assert response.duration_ms == 0.0
        assert backend.calls == []
        assert store.history == []

    @pytest.mark.asyncio
    async def test_higher_threshold_is_subset(self, search):
        strict = await search.semantic_search("budget planning", "owner-1", {"threshold": 0.9})
        loose = await search.semantic_search("budget planning", "owner-1", {"threshold": 0.5})

        assert set(ids(strict.results)) <= set(ids(loose.results))
        assert ids(loose.results) == ["exact", "close", "medium"]

    @pytest.mark.asyncio
    async def test_similarity_threshold_alias(self, search):
        response = await search.semantic_search(
            "budget planning", "owner-1", {"similarity_threshold": 0.5}
        )
        assert response.count == 3

    @pytest.mark.asyncio
    async def test_limit_applies_after_ranking(self, search):
        response = await search.semantic_search(
            "budget planning", "owner-1", SearchFilters(threshold=0.0, limit=2)
        )
        assert ids(response.results) == ["exact", "close"]

    @pytest.mark.asyncio
    async def test_status_filter(self, search):
        response = await search.semantic_search(
            "budget planning", "owner-1", {"status": "draft", "threshold": 0.0}
        )
        assert ids(response.results) == ["close"]

    @pytest.mark.asyncio
    async def test_status_list_filter(self, search):
        response = await search.semantic_search(
            "budget planning", "owner-1", {"status": ["draft", "archived"], "threshold": 0.0}
        )
        assert ids(response.results) == ["close", "medium"]

    @pytest.mark.asyncio
    async def test_tag_filter_matches_any_overlap(self, search):
        response = await search.semantic_search(
            "budget planning", "owner-1", {"tags": ["planning", "travel"], "threshold": 0.0}
        )
        assert ids(response.results) == ["close", "medium"]

    @pytest.mark.asyncio
    async def test_scoped_to_owner(self, search):
        response = await search.semantic_search("budget planning", "owner-1", {"threshold": 0.0})
        assert "someone-else" not in ids(response.results)
        assert "unembedded" not in ids(response.results)

    @pytest.mark.asyncio
    async def test_result_metadata(self, search, docs):
        response = await search.semantic_search("budget planning", "owner-1")
        top = response.results[0]

        assert top.title == "Prompt exact"
        assert top.content == "content of exact"
        assert top.status == "active"
        assert top.metadata.tags == ["finance"]
        assert top.metadata.updated_at == docs[0].updated_at

    @pytest.mark.asyncio
    async def test_filters_echoed_unresolved(self, search):
        response = await search.semantic_search("budget planning", "owner-1", {"tags": ["finance"]})

        assert response.filters.tags == ["finance"]
        assert response.filters.threshold is None
        assert response.filters.limit is None

    @pytest.mark.asyncio
    async def test_history_written_with_trimmed_query_and_filters(self, search, store):
        response = await search.semantic_search("  budget planning ", "owner-1", {"tags": ["finance"]})

        [entry] = store.history
        assert entry.owner_id == "owner-1"
        assert entry.query_text == "budget planning"
        # "exact" and "close" both clear the default threshold
        assert entry.result_count == response.count == 2
        assert entry.filters_snapshot == {"tags": ["finance"]}

    @pytest.mark.asyncio
    async def test_history_written_for_zero_results(self, search, store):
        response = await search.semantic_search("travel", "owner-1", {"threshold": 0.99})

        assert ids(response.results) == ["unrelated"]
        response = await search.semantic_search("budget planning", "nobody")

        assert response.count == 0
        assert [e.result_count for e in store.history] == [1, 0]

    @pytest.mark.asyncio
    async def test_backend_failure_propagates_without_history(self, search, backend, store):
        backend.failures = [AuthError("bad key")]

        with pytest.raises(AuthError):
            await search.semantic_search("budget planning", "owner-1")

        assert store.history == []

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self, search, backend, sleep):
        backend.failures = [RateLimitError("slow down")]

        response = await search.semantic_search("budget planning", "owner-1")

        assert response.count == 2
        assert sleep.delays == [1.0]

    @pytest.mark.asyncio
    async def test_invalid_filters_rejected(self, search):
        with pytest.raises(ValidationError):
            await search.semantic_search("budget planning", "owner-1", {"threshold": 1.5})

        with pytest.raises(ValidationError):
            await search.semantic_search("budget planning", "owner-1", {"status": "deleted"})


# ---------------------------------------------------------------------------
# SIMILAR PROMPTS
# ---------------------------------------------------------------------------


class TestFindSimilarPrompts:
    """Tests for find_similar_prompts."""

    @pytest.mark.asyncio
    async def test_never_includes_source(self, search):
        results = await search.find_similar_prompts("exact", "owner-1", threshold=0.0)

        assert "exact" not in ids(results)
        assert ids(results) == ["close", "medium", "unrelated"]

    @pytest.mark.asyncio
    async def test_default_threshold(self, search):
        results = await search.find_similar_prompts("exact", "owner-1")
        assert ids(results) == ["close"]

    @pytest.mark.asyncio
    async def test_limit(self, search):
        results = await search.find_similar_prompts("exact", "owner-1", limit=1, threshold=0.0)
        assert ids(results) == ["close"]

    @pytest.mark.asyncio
    async def test_missing_source_returns_empty(self, search):
        assert await search.find_similar_prompts("nope", "owner-1") == []

    @pytest.mark.asyncio
    async def test_unembedded_source_returns_empty(self, search):
        assert await search.find_similar_prompts("unembedded", "owner-1") == []

    @pytest.mark.asyncio
    async def test_other_owners_source_returns_empty(self, search):
        assert await search.find_similar_prompts("someone-else", "owner-1") == []

    @pytest.mark.asyncio
    async def test_makes_no_backend_call(self, search, backend):
        await search.find_similar_prompts("exact", "owner-1")
        assert backend.calls == []


# ---------------------------------------------------------------------------
# HISTORY / ANALYTICS
# ---------------------------------------------------------------------------


class TestSearchHistory:
    """Tests for get_recent_searches / get_search_analytics."""

    @pytest.mark.asyncio
    async def test_recent_searches_newest_first(self, search):
        for query in ["budget planning", "travel", "budget planning"]:
            await search.semantic_search(query, "owner-1")

        recent = await search.get_recent_searches("owner-1", limit=2)

        assert [e.query_text for e in recent] == ["budget planning", "travel"]

    @pytest.mark.asyncio
    async def test_analytics(self, search):
        for query in ["budget planning", "travel", "budget planning"]:
            await search.semantic_search(query, "owner-1", {"threshold": 0.0})

        analytics = await search.get_search_analytics("owner-1")

        assert analytics.total_searches == 3
        assert analytics.most_common_queries[0].query == "budget planning"
        assert analytics.most_common_queries[0].count == 2
        assert analytics.avg_results_per_search == pytest.approx(4.0)

    @pytest.mark.asyncio
    async def test_analytics_without_history(self, search):
        analytics = await search.get_search_analytics("owner-1")

        assert analytics.total_searches == 0
        assert analytics.avg_results_per_search == 0.0
        assert analytics.most_common_queries == []
