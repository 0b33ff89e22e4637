"""
Unit Tests for Document Stores

Tests the in-memory store directly and the PostgreSQL store against a
mocked query executor (SQL shape, parameters, row conversion).

STAFF ENGINEER PATTERNS:
------------------------
1. Test through the protocol interface
2. Both stores satisfy the same DocumentStore protocol
3. No database needed - the executor is injected
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest

from conftest import NOW, make_doc
from prompt_librarian.core.protocols import DocumentStore
from prompt_librarian.errors import DocumentNotFoundError
from prompt_librarian.retrieval.document import document_from_row, history_entry_from_row
from prompt_librarian.retrieval.store import (
    DocumentStoreConfig,
    InMemoryDocumentStore,
    PgDocumentStore,
    get_document_store,
)


def _row(doc_id="p1", **overrides):
    row = {
        "id": doc_id,
        "owner_id": "owner-1",
        "title": "Budget",
        "content": "plan the budget",
        "status": "active",
        "embedding": np.array([1.0, 0.0, 0.0], dtype=np.float32),
        "tags": ["finance"],
        "description": None,
        "author": "sam",
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2025, 1, 2, tzinfo=timezone.utc),
    }
    row.update(overrides)
    return row


# ---------------------------------------------------------------------------
# ROW CONVERSION
# ---------------------------------------------------------------------------


class TestRowConversion:
    """Rows become typed records at the store boundary."""

    def test_document_from_row(self):
        doc = document_from_row(_row())

        assert doc.embedding == [1.0, 0.0, 0.0]
        assert doc.tags == ["finance"]
        assert doc.has_embedding is True
        assert doc.updated_at.tzinfo is not None

    def test_json_embedding_and_naive_timestamp(self):
        doc = document_from_row(
            _row(embedding="[0.5, 0.5]", updated_at=datetime(2025, 1, 2, 8, 0), tags=None)
        )

        assert doc.embedding == [0.5, 0.5]
        assert doc.updated_at == datetime(2025, 1, 2, 8, 0, tzinfo=timezone.utc)
        assert doc.tags is None

    def test_missing_embedding(self):
        assert document_from_row(_row(embedding=None)).has_embedding is False

    def test_unknown_status_rejected(self):
        with pytest.raises(ValueError):
            document_from_row(_row(status="deleted"))

    def test_history_entry_from_row(self):
        entry = history_entry_from_row(
            {
                "id": "h1",
                "owner_id": "owner-1",
                "query_text": "budget",
                "result_count": 3,
                "filters_snapshot": '{"tags": ["finance"]}',
                "created_at": "2025-01-01T00:00:00+00:00",
            }
        )

        assert entry.filters_snapshot == {"tags": ["finance"]}
        assert entry.created_at.year == 2025


# ---------------------------------------------------------------------------
# IN-MEMORY STORE
# ---------------------------------------------------------------------------


class TestInMemoryDocumentStore:
    """Tests for InMemoryDocumentStore."""

    @pytest.fixture
    def store(self):
        return InMemoryDocumentStore(
            [
                make_doc("old", [1.0, 0.0, 0.0], updated_hours_ago=48, status="archived"),
                make_doc("new", [0.0, 1.0, 0.0], updated_hours_ago=1, tags=["travel"]),
                make_doc("draft", None, updated_hours_ago=0.5),
                make_doc("foreign", [1.0, 0.0, 0.0], owner_id="owner-2"),
            ]
        )

    def test_satisfies_protocol(self, store):
        assert isinstance(store, DocumentStore)

    @pytest.mark.asyncio
    async def test_get_document_scoped_by_owner(self, store):
        assert (await store.get_document("new", "owner-1")).id == "new"
        assert await store.get_document("foreign", "owner-1") is None
        assert (await store.get_document("foreign")).owner_id == "owner-2"

    @pytest.mark.asyncio
    async def test_returns_copies(self, store):
        doc = await store.get_document("new")
        doc.title = "changed"
        assert (await store.get_document("new")).title == "Prompt new"

    @pytest.mark.asyncio
    async def test_candidates_newest_first_embedded_only(self, store):
        candidates = await store.fetch_candidates("owner-1")
        assert [d.id for d in candidates] == ["new", "old"]

    @pytest.mark.asyncio
    async def test_candidate_filters(self, store):
        assert [d.id for d in await store.fetch_candidates("owner-1", statuses=["archived"])] == ["old"]
        assert [d.id for d in await store.fetch_candidates("owner-1", tags=["travel", "x"])] == ["new"]
        assert [d.id for d in await store.fetch_candidates("owner-1", exclude_id="new")] == ["old"]

    @pytest.mark.asyncio
    async def test_list_unembedded(self, store):
        assert [d.id for d in await store.list_unembedded("owner-1")] == ["draft"]

    @pytest.mark.asyncio
    async def test_update_embedding(self, store):
        await store.update_embedding("draft", [0.0, 0.0, 1.0])
        assert await store.has_embedding("draft") is True

    @pytest.mark.asyncio
    async def test_update_unknown_document_raises(self, store):
        with pytest.raises(DocumentNotFoundError):
            await store.update_embedding("ghost", [1.0])

    @pytest.mark.asyncio
    async def test_latest_embedded_document(self, store):
        assert (await store.latest_embedded_document("owner-1")).id == "new"
        assert await store.latest_embedded_document("nobody") is None

    @pytest.mark.asyncio
    async def test_recent_documents_include_unembedded(self, store):
        recent = await store.recent_documents("owner-1", 2, exclude_id="new")
        assert [d.id for d in recent] == ["draft", "old"]

    @pytest.mark.asyncio
    async def test_history_round_trip(self, store):
        await store.add_search_history("owner-1", "budget", 2, {"threshold": 0.8})
        await store.add_search_history("owner-2", "travel", 0, {})

        [entry] = await store.recent_searches("owner-1")
        assert entry.query_text == "budget"
        assert entry.filters_snapshot == {"threshold": 0.8}


class TestGetDocumentStore:
    """Tests for the factory function."""

    def test_in_memory_by_default(self):
        assert isinstance(get_document_store(), InMemoryDocumentStore)

    def test_postgres_when_requested(self):
        config = DocumentStoreConfig(connection_string="postgresql://db/test")
        store = get_document_store(use_postgres=True, config=config)

        assert isinstance(store, PgDocumentStore)
        assert store.config.connection_string == "postgresql://db/test"


# ---------------------------------------------------------------------------
# POSTGRES STORE (mocked executor)
# ---------------------------------------------------------------------------


class TestPgDocumentStore:
    """Tests for PgDocumentStore against a mocked executor."""

    @pytest.fixture
    def executor(self):
        executor = MagicMock()
        executor.fetch_all = AsyncMock(return_value=[])
        executor.execute = AsyncMock(return_value=1)
        executor.close = AsyncMock()
        return executor

    @pytest.fixture
    def store(self, executor):
        return PgDocumentStore(DocumentStoreConfig(embedding_dim=3), executor=executor)

    @pytest.mark.asyncio
    async def test_fetch_candidates_sql(self, store, executor):
        executor.fetch_all.return_value = [_row()]

        docs = await store.fetch_candidates(
            "owner-1", statuses=["active", "saved"], tags=["finance"], exclude_id="p9"
        )

        sql, params = executor.fetch_all.call_args.args
        assert "owner_id = %s AND embedding IS NOT NULL" in sql
        assert "status = ANY(%s)" in sql
        assert "tags && %s::text[]" in sql
        assert "id <> %s" in sql
        assert sql.endswith("ORDER BY updated_at DESC")
        assert params == ["owner-1", ["active", "saved"], ["finance"], "p9"]
        assert docs[0].embedding == [1.0, 0.0, 0.0]

    @pytest.mark.asyncio
    async def test_fetch_candidates_without_filters(self, store, executor):
        await store.fetch_candidates("owner-1")

        sql, params = executor.fetch_all.call_args.args
        assert "ANY" not in sql
        assert "&&" not in sql
        assert params == ["owner-1"]

    @pytest.mark.asyncio
    async def test_get_document_with_owner(self, store, executor):
        executor.fetch_all.return_value = [_row()]

        doc = await store.get_document("p1", "owner-1")

        sql, params = executor.fetch_all.call_args.args
        assert "WHERE id = %s AND owner_id = %s" in sql
        assert params == ["p1", "owner-1"]
        assert doc.title == "Budget"

    @pytest.mark.asyncio
    async def test_get_document_missing(self, store):
        assert await store.get_document("ghost") is None

    @pytest.mark.asyncio
    async def test_update_embedding_only_touches_embedding(self, store, executor):
        await store.update_embedding("p1", [0.1, 0.2, 0.3])

        sql, params = executor.execute.call_args.args
        assert "SET embedding = %s WHERE id = %s" in sql
        assert "updated_at" not in sql
        assert isinstance(params[0], np.ndarray)
        assert params[0].dtype == np.float32
        assert params[1] == "p1"

    @pytest.mark.asyncio
    async def test_update_embedding_unknown_id(self, store, executor):
        executor.execute.return_value = 0

        with pytest.raises(DocumentNotFoundError):
            await store.update_embedding("ghost", [0.1, 0.2, 0.3])

    @pytest.mark.asyncio
    async def test_has_embedding(self, store, executor):
        executor.fetch_all.return_value = [{"has_embedding": True}]
        assert await store.has_embedding("p1") is True

        executor.fetch_all.return_value = []
        assert await store.has_embedding("ghost") is False

    @pytest.mark.asyncio
    async def test_recent_documents_limit_param(self, store, executor):
        await store.recent_documents("owner-1", 4, exclude_id="p1")

        sql, params = executor.fetch_all.call_args.args
        assert sql.endswith("ORDER BY updated_at DESC LIMIT %s")
        assert params == ["owner-1", "p1", 4]

    @pytest.mark.asyncio
    async def test_add_search_history_returns_entry(self, store, executor):
        executor.fetch_all.return_value = [
            {
                "id": "h1",
                "owner_id": "owner-1",
                "query_text": "budget",
                "result_count": 2,
                "filters_snapshot": {"threshold": 0.8},
                "created_at": NOW,
            }
        ]

        entry = await store.add_search_history("owner-1", "budget", 2, {"threshold": 0.8})

        sql, params = executor.fetch_all.call_args.args
        assert "RETURNING" in sql
        assert params[:3] == ["owner-1", "budget", 2]
        assert params[3].obj == {"threshold": 0.8}
        assert entry.id == "h1"
        assert entry.created_at == NOW

    @pytest.mark.asyncio
    async def test_search_analytics(self, store, executor):
        executor.fetch_all.side_effect = [
            [{"total": 3, "avg_results": 2.5}],
            [{"query_text": "budget", "count": 2}, {"query_text": "travel", "count": 1}],
        ]

        analytics = await store.search_analytics("owner-1")

        assert analytics.total_searches == 3
        assert analytics.avg_results_per_search == 2.5
        assert [q.query for q in analytics.most_common_queries] == ["budget", "travel"]

    @pytest.mark.asyncio
    async def test_search_analytics_empty(self, store, executor):
        executor.fetch_all.side_effect = [[{"total": 0, "avg_results": None}], []]

        analytics = await store.search_analytics("owner-1")

        assert analytics.total_searches == 0
        assert analytics.avg_results_per_search == 0.0

    @pytest.mark.asyncio
    async def test_create_schema_uses_configured_dimension(self, store, executor):
        await store.create_schema()

        statements = [c.args[0] for c in executor.execute.call_args_list]
        assert any("vector(3)" in s for s in statements)
        assert any("USING GIN (tags)" in s for s in statements)

    @pytest.mark.asyncio
    async def test_close_releases_executor(self, store, executor):
        await store.close()
        executor.close.assert_awaited_once()
