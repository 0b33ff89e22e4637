"""
Application wiring - builds the librarian services from config.

Every service takes its collaborators explicitly; this module is the one
place that chooses implementations:

    DATABASE_URL set       -> PgDocumentStore + PgCostSink on one connection
    DATABASE_URL unset     -> InMemoryDocumentStore + InMemoryCostSink
    USE_MOCK_EMBEDDINGS    -> MockEmbeddingBackend (offline, deterministic)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from prompt_librarian.config import LibrarianConfig, get_config
from prompt_librarian.core.protocols import CostSink, DocumentStore
from prompt_librarian.cost.tracking import InMemoryCostSink, PgCostSink
from prompt_librarian.embeddings.client import EmbeddingClient
from prompt_librarian.embeddings.openai_embeddings import get_embedding_backend
from prompt_librarian.hooks.auto_embed import AutoEmbedHooks, AutoEmbedSettings
from prompt_librarian.observability.tracer import TracerProtocol, get_tracer
from prompt_librarian.retrieval.store import (
    DocumentStoreConfig,
    InMemoryDocumentStore,
    PgDocumentStore,
    PsycopgExecutor,
)
from prompt_librarian.search.service import SearchService
from prompt_librarian.suggestions.engine import SuggestionEngine

logger = logging.getLogger(__name__)


@dataclass
class Librarian:
    """The wired-up services sharing one store and one embedding client."""

    store: DocumentStore
    cost_sink: CostSink
    embeddings: EmbeddingClient
    search: SearchService
    suggestions: SuggestionEngine
    hooks: AutoEmbedHooks

    async def create_schema(self) -> None:
        """Create the prompt, search history and cost tables if missing."""
        for target in (self.store, self.cost_sink):
            create = getattr(target, "create_schema", None)
            if create is not None:
                await create()

    async def close(self) -> None:
        close = getattr(self.store, "close", None)
        if close is not None:
            await close()


async def build_librarian(
    config: LibrarianConfig | None = None,
    settings: AutoEmbedSettings | None = None,
    tracer: TracerProtocol | None = None,
) -> Librarian:
    """
    Build the services for a config (defaults to the environment).

    Opens the database connection when DATABASE_URL is configured.
    """
    config = config or get_config()
    tracer = tracer or get_tracer()

    if config.use_postgres:
        executor = await PsycopgExecutor.connect(config.database_url)
        store: DocumentStore = PgDocumentStore(
            DocumentStoreConfig(
                connection_string=config.database_url,
                embedding_dim=config.embedding_dimensions,
            ),
            executor=executor,
        )
        cost_sink: CostSink = PgCostSink(executor)
        logger.info("Using PostgreSQL document store")
    else:
        store = InMemoryDocumentStore()
        cost_sink = InMemoryCostSink()
        logger.info("Using in-memory document store (DATABASE_URL not set)")

    backend = get_embedding_backend(
        use_mock=config.use_mock_embeddings,
        api_key=config.openai_api_key,
        base_url=config.openai_base_url,
        timeout_s=config.embedding_timeout_s,
        dimensions=config.embedding_dimensions,
    )

    embeddings = EmbeddingClient(backend, store, cost_sink, config=config, tracer=tracer)
    search = SearchService(embeddings, store, tracer=tracer)

    return Librarian(
        store=store,
        cost_sink=cost_sink,
        embeddings=embeddings,
        search=search,
        suggestions=SuggestionEngine(search, store, tracer=tracer),
        hooks=AutoEmbedHooks(embeddings, store, settings=settings),
    )
