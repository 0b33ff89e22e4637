"""
Document store implementations following the project pattern.

Pattern: Protocol -> Production impl -> Test double -> Factory

This module contains:
1. DocumentStoreConfig - Configuration dataclass
2. PsycopgExecutor - async parameterized query execution (QueryExecutor)
3. PgDocumentStore - PostgreSQL with pgvector (production)
4. InMemoryDocumentStore - In-memory store (testing/development)
5. get_document_store() - Factory function

INTERVIEW TALKING POINT:
------------------------
"The store only filters; it never ranks. Candidates come back scoped to an
owner with status and tag-overlap filters applied in SQL, and the ranking
runs in vector.py. Both stores return the same typed Document records, so
the search service can't tell them apart."
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Sequence

import numpy as np
import psycopg
from pgvector.psycopg import register_vector_async
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from prompt_librarian.errors import DocumentNotFoundError
from prompt_librarian.retrieval.document import (
    Document,
    SearchHistoryEntry,
    document_from_row,
    history_entry_from_row,
    utcnow,
)
if TYPE_CHECKING:
    from prompt_librarian.schemas.librarian import SearchAnalytics

logger = logging.getLogger(__name__)

TOP_QUERIES_LIMIT = 5


# ---------------------------------------------------------------------------
# CONFIGURATION
# ---------------------------------------------------------------------------


@dataclass
class DocumentStoreConfig:
    """Configuration for the document store."""

    connection_string: str = "postgresql://localhost/librarian"
    embedding_dim: int = 1536
    documents_table: str = "prompts"
    history_table: str = "search_history"


# ---------------------------------------------------------------------------
# QUERY EXECUTOR (psycopg)
# ---------------------------------------------------------------------------


class PsycopgExecutor:
    """QueryExecutor over a psycopg async connection returning dict rows."""

    def __init__(self, conn: psycopg.AsyncConnection):
        self._conn = conn

    @classmethod
    async def connect(cls, connection_string: str) -> "PsycopgExecutor":
        """Open an autocommit connection with the pgvector adapter registered."""
        conn = await psycopg.AsyncConnection.connect(
            connection_string,
            autocommit=True,
            row_factory=dict_row,
        )
        await conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
        await register_vector_async(conn)
        return cls(conn)

    async def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        cursor = await self._conn.execute(sql, params)
        return list(await cursor.fetchall())

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        cursor = await self._conn.execute(sql, params)
        return cursor.rowcount

    async def close(self) -> None:
        await self._conn.close()


# ---------------------------------------------------------------------------
# PGVECTOR STORE (Production)
# ---------------------------------------------------------------------------

_DOCUMENT_COLUMNS = (
    "id, owner_id, title, content, status, embedding, tags, "
    "description, author, created_at, updated_at"
)


class PgDocumentStore:
    """
    PostgreSQL document store using pgvector for the embedding column.

    The executor is INJECTED when given (tests pass a mock), otherwise a
    psycopg connection is opened lazily on first use.
    """

    def __init__(
        self,
        config: DocumentStoreConfig | None = None,
        executor: Any | None = None,
    ):
        self.config = config or DocumentStoreConfig()
        self._executor = executor

    async def connect(self) -> None:
        """Establish database connection."""
        if self._executor is None:
            self._executor = await PsycopgExecutor.connect(self.config.connection_string)

    async def close(self) -> None:
        """Close database connection."""
        if self._executor is not None and hasattr(self._executor, "close"):
            await self._executor.close()
        self._executor = None

    async def _db(self):
        if self._executor is None:
            await self.connect()
        return self._executor

    async def create_schema(self) -> None:
        """Create tables and indexes (development bootstrap, not migrations)."""
        db = await self._db()
        docs = self.config.documents_table
        history = self.config.history_table

        await db.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {docs} (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                title TEXT NOT NULL,
                content TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'draft'
                    CHECK (status IN ('draft', 'active', 'saved', 'archived')),
                embedding vector({self.config.embedding_dim}),
                tags TEXT[],
                description TEXT,
                author TEXT,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
            """
        )
        await db.execute(
            f"CREATE INDEX IF NOT EXISTS {docs}_owner_updated_idx "
            f"ON {docs} (owner_id, updated_at DESC)"
        )
        await db.execute(
            f"CREATE INDEX IF NOT EXISTS {docs}_tags_idx ON {docs} USING GIN (tags)"
        )
        await db.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {history} (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                owner_id TEXT NOT NULL,
                query_text TEXT NOT NULL,
                result_count INTEGER NOT NULL DEFAULT 0,
                filters_snapshot JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
            """
        )
        await db.execute(
            f"CREATE INDEX IF NOT EXISTS {history}_owner_created_idx "
            f"ON {history} (owner_id, created_at DESC)"
        )

    async def insert_document(self, doc: Document) -> None:
        """Insert or replace a document (seeding / surrounding app logic)."""
        db = await self._db()
        embedding = np.asarray(doc.embedding, dtype=np.float32) if doc.embedding else None
        await db.execute(
            f"""
            INSERT INTO {self.config.documents_table}
                (id, owner_id, title, content, status, embedding, tags,
                 description, author, created_at, updated_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (id) DO UPDATE SET
                title = EXCLUDED.title,
                content = EXCLUDED.content,
                status = EXCLUDED.status,
                embedding = EXCLUDED.embedding,
                tags = EXCLUDED.tags,
                description = EXCLUDED.description,
                author = EXCLUDED.author,
                updated_at = EXCLUDED.updated_at
            """,
            (
                doc.id, doc.owner_id, doc.title, doc.content, doc.status, embedding,
                doc.tags, doc.description, doc.author, doc.created_at, doc.updated_at,
            ),
        )

    async def get_document(self, doc_id: str, owner_id: str | None = None) -> Document | None:
        db = await self._db()
        sql = f"SELECT {_DOCUMENT_COLUMNS} FROM {self.config.documents_table} WHERE id = %s"
        params: list[Any] = [doc_id]
        if owner_id is not None:
            sql += " AND owner_id = %s"
            params.append(owner_id)

        rows = await db.fetch_all(sql, params)
        return document_from_row(rows[0]) if rows else None

    async def fetch_candidates(
        self,
        owner_id: str,
        statuses: Sequence[str] | None = None,
        tags: Sequence[str] | None = None,
        exclude_id: str | None = None,
    ) -> list[Document]:
        db = await self._db()
        sql = (
            f"SELECT {_DOCUMENT_COLUMNS} FROM {self.config.documents_table} "
            f"WHERE owner_id = %s AND embedding IS NOT NULL"
        )
        params: list[Any] = [owner_id]

        if statuses:
            sql += " AND status = ANY(%s)"
            params.append(list(statuses))

        if tags:
            sql += " AND tags && %s::text[]"
            params.append(list(tags))

        if exclude_id is not None:
            sql += " AND id <> %s"
            params.append(exclude_id)

        sql += " ORDER BY updated_at DESC"
        rows = await db.fetch_all(sql, params)
        return [document_from_row(row) for row in rows]

    async def list_unembedded(self, owner_id: str) -> list[Document]:
        db = await self._db()
        rows = await db.fetch_all(
            f"SELECT {_DOCUMENT_COLUMNS} FROM {self.config.documents_table} "
            f"WHERE owner_id = %s AND embedding IS NULL ORDER BY created_at DESC",
            [owner_id],
        )
        return [document_from_row(row) for row in rows]

    async def update_embedding(self, doc_id: str, embedding: Sequence[float]) -> None:
        db = await self._db()
        updated = await db.execute(
            f"UPDATE {self.config.documents_table} SET embedding = %s WHERE id = %s",
            [np.asarray(embedding, dtype=np.float32), doc_id],
        )
        if updated == 0:
            raise DocumentNotFoundError(f"Document {doc_id} not found")

    async def has_embedding(self, doc_id: str) -> bool:
        db = await self._db()
        rows = await db.fetch_all(
            f"SELECT embedding IS NOT NULL AS has_embedding "
            f"FROM {self.config.documents_table} WHERE id = %s",
            [doc_id],
        )
        return bool(rows and rows[0]["has_embedding"])

    async def latest_embedded_document(self, owner_id: str) -> Document | None:
        db = await self._db()
        rows = await db.fetch_all(
            f"SELECT {_DOCUMENT_COLUMNS} FROM {self.config.documents_table} "
            f"WHERE owner_id = %s AND embedding IS NOT NULL "
            f"ORDER BY updated_at DESC LIMIT 1",
            [owner_id],
        )
        return document_from_row(rows[0]) if rows else None

    async def recent_documents(
        self,
        owner_id: str,
        limit: int,
        exclude_id: str | None = None,
    ) -> list[Document]:
        db = await self._db()
        sql = (
            f"SELECT {_DOCUMENT_COLUMNS} FROM {self.config.documents_table} "
            f"WHERE owner_id = %s"
        )
        params: list[Any] = [owner_id]
        if exclude_id is not None:
            sql += " AND id <> %s"
            params.append(exclude_id)
        sql += " ORDER BY updated_at DESC LIMIT %s"
        params.append(limit)

        rows = await db.fetch_all(sql, params)
        return [document_from_row(row) for row in rows]

    async def add_search_history(
        self,
        owner_id: str,
        query_text: str,
        result_count: int,
        filters_snapshot: dict[str, Any],
    ) -> SearchHistoryEntry:
        db = await self._db()
        rows = await db.fetch_all(
            f"""
            INSERT INTO {self.config.history_table}
                (owner_id, query_text, result_count, filters_snapshot)
            VALUES (%s, %s, %s, %s)
            RETURNING id, owner_id, query_text, result_count, filters_snapshot, created_at
            """,
            [owner_id, query_text, result_count, Jsonb(filters_snapshot)],
        )
        return history_entry_from_row(rows[0])

    async def recent_searches(self, owner_id: str, limit: int = 10) -> list[SearchHistoryEntry]:
        db = await self._db()
        rows = await db.fetch_all(
            f"SELECT id, owner_id, query_text, result_count, filters_snapshot, created_at "
            f"FROM {self.config.history_table} WHERE owner_id = %s "
            f"ORDER BY created_at DESC LIMIT %s",
            [owner_id, limit],
        )
        return [history_entry_from_row(row) for row in rows]

    async def search_analytics(self, owner_id: str) -> SearchAnalytics:
        from prompt_librarian.schemas.librarian import QueryFrequency, SearchAnalytics

        db = await self._db()
        totals = await db.fetch_all(
            f"SELECT COUNT(*) AS total, AVG(result_count) AS avg_results "
            f"FROM {self.config.history_table} WHERE owner_id = %s",
            [owner_id],
        )
        top = await db.fetch_all(
            f"SELECT query_text, COUNT(*) AS count FROM {self.config.history_table} "
            f"WHERE owner_id = %s GROUP BY query_text "
            f"ORDER BY count DESC, MAX(created_at) DESC LIMIT {TOP_QUERIES_LIMIT}",
            [owner_id],
        )

        row = totals[0] if totals else {}
        return SearchAnalytics(
            total_searches=int(row.get("total") or 0),
            avg_results_per_search=float(row.get("avg_results") or 0.0),
            most_common_queries=[
                QueryFrequency(query=r["query_text"], count=int(r["count"])) for r in top
            ],
        )


# ---------------------------------------------------------------------------
# IN-MEMORY STORE (Testing/Development)
# ---------------------------------------------------------------------------


class InMemoryDocumentStore:
    """
    In-memory document store for development/testing.

    Implements the same interface as PgDocumentStore without Postgres.
    Returned documents are copies; mutating them never changes the store.
    """

    def __init__(self, documents: Sequence[Document] = ()):
        self._documents: dict[str, Document] = {}
        self._history: list[SearchHistoryEntry] = []
        for doc in documents:
            self._documents[doc.id] = replace(doc)

    async def connect(self) -> None:
        """No-op for in-memory store."""

    async def close(self) -> None:
        """No-op for in-memory store."""

    async def create_schema(self) -> None:
        """No-op for in-memory store."""

    async def insert_document(self, doc: Document) -> None:
        self._documents[doc.id] = replace(doc)

    @property
    def history(self) -> list[SearchHistoryEntry]:
        """All history entries in insertion order (for test assertions)."""
        return list(self._history)

    def _owned(self, owner_id: str) -> list[Document]:
        return [d for d in self._documents.values() if d.owner_id == owner_id]

    @staticmethod
    def _newest_first(docs: list[Document]) -> list[Document]:
        return sorted(docs, key=lambda d: d.updated_at, reverse=True)

    async def get_document(self, doc_id: str, owner_id: str | None = None) -> Document | None:
        doc = self._documents.get(doc_id)
        if doc is None or (owner_id is not None and doc.owner_id != owner_id):
            return None
        return replace(doc)

    async def fetch_candidates(
        self,
        owner_id: str,
        statuses: Sequence[str] | None = None,
        tags: Sequence[str] | None = None,
        exclude_id: str | None = None,
    ) -> list[Document]:
        candidates = []
        for doc in self._newest_first(self._owned(owner_id)):
            if doc.embedding is None or doc.id == exclude_id:
                continue
            if statuses and doc.status not in statuses:
                continue
            if tags and not set(tags).intersection(doc.tags or ()):
                continue
            candidates.append(replace(doc))
        return candidates

    async def list_unembedded(self, owner_id: str) -> list[Document]:
        docs = [d for d in self._owned(owner_id) if d.embedding is None]
        docs.sort(key=lambda d: d.created_at, reverse=True)
        return [replace(d) for d in docs]

    async def update_embedding(self, doc_id: str, embedding: Sequence[float]) -> None:
        doc = self._documents.get(doc_id)
        if doc is None:
            raise DocumentNotFoundError(f"Document {doc_id} not found")
        doc.embedding = [float(v) for v in embedding]

    async def has_embedding(self, doc_id: str) -> bool:
        doc = self._documents.get(doc_id)
        return doc is not None and doc.has_embedding

    async def latest_embedded_document(self, owner_id: str) -> Document | None:
        embedded = [d for d in self._owned(owner_id) if d.embedding is not None]
        if not embedded:
            return None
        return replace(self._newest_first(embedded)[0])

    async def recent_documents(
        self,
        owner_id: str,
        limit: int,
        exclude_id: str | None = None,
    ) -> list[Document]:
        docs = [d for d in self._owned(owner_id) if d.id != exclude_id]
        return [replace(d) for d in self._newest_first(docs)[:limit]]

    async def add_search_history(
        self,
        owner_id: str,
        query_text: str,
        result_count: int,
        filters_snapshot: dict[str, Any],
    ) -> SearchHistoryEntry:
        entry = SearchHistoryEntry(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            query_text=query_text,
            result_count=result_count,
            filters_snapshot=dict(filters_snapshot),
            created_at=utcnow(),
        )
        self._history.append(entry)
        return entry

    async def recent_searches(self, owner_id: str, limit: int = 10) -> list[SearchHistoryEntry]:
        # Reverse first so equal timestamps still come back newest-insert first
        owned = [e for e in reversed(self._history) if e.owner_id == owner_id]
        owned.sort(key=lambda e: e.created_at, reverse=True)
        return owned[:limit]

    async def search_analytics(self, owner_id: str) -> SearchAnalytics:
        from prompt_librarian.schemas.librarian import QueryFrequency, SearchAnalytics

        owned = [e for e in self._history if e.owner_id == owner_id]
        if not owned:
            return SearchAnalytics()

        counts = Counter(e.query_text for e in owned)
        return SearchAnalytics(
            total_searches=len(owned),
            avg_results_per_search=sum(e.result_count for e in owned) / len(owned),
            most_common_queries=[
                QueryFrequency(query=q, count=c)
                for q, c in counts.most_common(TOP_QUERIES_LIMIT)
            ],
        )


# ---------------------------------------------------------------------------
# FACTORY FUNCTION
# ---------------------------------------------------------------------------


def get_document_store(
    use_postgres: bool = False,
    config: DocumentStoreConfig | None = None,
) -> PgDocumentStore | InMemoryDocumentStore:
    """
    Factory function to get the appropriate document store.

    Args:
        use_postgres: Use PostgreSQL store (default: False for dev)
        config: Store configuration (uses defaults if not provided)
    """
    if use_postgres:
        return PgDocumentStore(config or DocumentStoreConfig())
    logger.debug("Using in-memory document store")
    return InMemoryDocumentStore()
