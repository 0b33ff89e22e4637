"""
Core protocols defining the collaborator contracts of the librarian.

The core talks to three things it doesn't own:
- EmbeddingBackend: the remote embedding API
- DocumentStore: persistence for prompts and search history
- CostSink: the cost ledger embedding usage is reported to

PATTERN: Protocol defines the contract, concrete classes implement it,
in-memory versions enable fast tests, factory functions handle instantiation.

INTERVIEW TALKING POINT:
------------------------
"Every collaborator is async and injected. The search service doesn't know
whether it's talking to Postgres or a dict, or whether embeddings come from
OpenAI or a hash. That's what lets the whole pipeline be tested offline."
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:
    from prompt_librarian.retrieval.document import Document, SearchHistoryEntry
    from prompt_librarian.schemas.librarian import SearchAnalytics


# ---------------------------------------------------------------------------
# EMBEDDING BACKEND PROTOCOL
# ---------------------------------------------------------------------------


@dataclass
class BackendEmbedding:
    """Raw backend output, before validation and cost accounting."""

    vector: list[float]
    tokens_used: int


@runtime_checkable
class EmbeddingBackend(Protocol):
    """
    Contract for the remote embedding service.

    Implementations raise the errors in prompt_librarian.errors:
    AuthError (401-class), RateLimitError (429-class),
    EmbeddingTimeoutError (408-class), EmbeddingBackendError otherwise.

    Implementations:
    - OpenAIEmbeddingBackend (production)
    - MockEmbeddingBackend (testing/offline)
    """

    def is_available(self) -> bool:
        """False when the backend is unconfigured (e.g. no API key)."""
        ...

    async def embed(self, text: str, model: str, dimensions: int) -> BackendEmbedding:
        """Embed a single text."""
        ...


@dataclass
class EmbeddingResult:
    """A validated embedding plus its cost. Ephemeral."""

    vector: list[float]
    tokens_used: int
    cost_usd: float
    model_id: str


@dataclass
class EmbeddingFailure:
    """One document that failed during a batch run."""

    id: str
    error: str


@dataclass
class BatchEmbeddingResult:
    """Outcome of embed_all_prompts."""

    processed: int = 0
    tokens: int = 0
    cost: float = 0.0
    errors: list[EmbeddingFailure] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def failed(self) -> int:
        return len(self.errors)


# ---------------------------------------------------------------------------
# DOCUMENT STORE PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class QueryExecutor(Protocol):
    """Parameterized query execution returning dict rows."""

    async def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        ...

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a statement, return the affected row count."""
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """
    Contract for prompt persistence.

    The core never migrates schemas; it only reads candidates, writes
    embeddings, and appends search history.

    Implementations:
    - PgDocumentStore (production with PostgreSQL + pgvector)
    - InMemoryDocumentStore (testing/development)
    """

    async def get_document(self, doc_id: str, owner_id: str | None = None) -> Document | None:
        """Load one document, optionally scoped to an owner."""
        ...

    async def fetch_candidates(
        self,
        owner_id: str,
        statuses: Sequence[str] | None = None,
        tags: Sequence[str] | None = None,
        exclude_id: str | None = None,
    ) -> list[Document]:
        """Owner's embedded documents matching status / tag-overlap filters."""
        ...

    async def list_unembedded(self, owner_id: str) -> list[Document]:
        """Owner's documents with a null embedding, newest first."""
        ...

    async def update_embedding(self, doc_id: str, embedding: Sequence[float]) -> None:
        """Overwrite one document's embedding. Touches no other field."""
        ...

    async def has_embedding(self, doc_id: str) -> bool:
        ...

    async def latest_embedded_document(self, owner_id: str) -> Document | None:
        """Owner's most recently updated document that has an embedding."""
        ...

    async def recent_documents(
        self,
        owner_id: str,
        limit: int,
        exclude_id: str | None = None,
    ) -> list[Document]:
        """Owner's documents by updated_at descending."""
        ...

    async def add_search_history(
        self,
        owner_id: str,
        query_text: str,
        result_count: int,
        filters_snapshot: dict[str, Any],
    ) -> SearchHistoryEntry:
        ...

    async def recent_searches(self, owner_id: str, limit: int = 10) -> list[SearchHistoryEntry]:
        ...

    async def search_analytics(self, owner_id: str) -> SearchAnalytics:
        ...


# ---------------------------------------------------------------------------
# COST SINK PROTOCOL
# ---------------------------------------------------------------------------

OperationType = Literal["routing", "agent_execution", "search", "critique", "other"]


@dataclass
class CostRecord:
    """Token/cost usage reported to the cost ledger."""

    owner_id: str
    model_id: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    cost_usd: float
    operation_type: OperationType = "search"
    session_id: str | None = None


@dataclass
class TrackCostResult:
    success: bool
    record_id: str | None = None
    error: str | None = None


@runtime_checkable
class CostSink(Protocol):
    """
    Contract for cost accounting.

    Implementations must not raise: a ledger outage never blocks embedding.

    Implementations:
    - PgCostSink (production)
    - InMemoryCostSink (testing)
    """

    async def track(self, record: CostRecord) -> TrackCostResult:
        ...
